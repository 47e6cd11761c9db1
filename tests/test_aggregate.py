"""aggregate(): missing-value policy, empty inputs, result types"""
import math

import pytest
from tidy_vector import TidyVector, aggregate
from tidy_vector.errors import EmptyAggregateWarning, TidyVectorTypeError, TidyVectorValueError


class TestMissingPolicy:

    def test_mean_with_na_is_na(self):
        assert aggregate(TidyVector([1, 2, None]), "mean", skip_missing=False).to_list() == [None]

    def test_mean_skipping_na(self):
        assert aggregate(TidyVector([1, 2, None]), "mean", skip_missing=True).to_list() == [1.5]

    @pytest.mark.parametrize("fn", ["count", "sum", "mean", "median", "min", "max", "sd"])
    def test_every_aggregate_propagates_na(self, fn):
        result = aggregate(TidyVector([1.0, None, 3.0]), fn)
        assert result.to_list() == [None]

    @pytest.mark.parametrize("fn,expected", [
        ("count", 2),
        ("sum", 4.0),
        ("mean", 2.0),
        ("median", 2.0),
        ("min", 1.0),
        ("max", 3.0),
    ])
    def test_every_aggregate_skips_na(self, fn, expected):
        result = aggregate(TidyVector([1.0, None, 3.0]), fn, skip_missing=True)
        assert result.to_list() == [expected]

    def test_skip_drops_nan(self):
        assert TidyVector([1.0, math.nan, 3.0]).mean(skip_missing=True).to_list() == [2.0]

    def test_nan_without_skip_gives_nan(self):
        assert math.isnan(TidyVector([1.0, math.nan]).mean().item())

    def test_result_is_length_one_vector(self):
        result = TidyVector([1, 2, 3]).sum()
        assert isinstance(result, TidyVector)
        assert len(result) == 1

    def test_na_result_keeps_result_type(self):
        assert TidyVector([1, None]).mean().type_name == "double"
        assert TidyVector([1, None]).count().type_name == "integer"


class TestEmptyAggregates:

    def test_count_is_zero(self):
        assert TidyVector((), dtype=float).count().to_list() == [0]

    def test_sum_is_zero(self):
        assert TidyVector((), dtype=int).sum().to_list() == [0]
        assert TidyVector((), dtype=float).sum().to_list() == [0.0]

    def test_mean_is_nan(self):
        assert math.isnan(TidyVector((), dtype=float).mean().item())

    def test_all_missing_skipped_mean_is_nan(self):
        result = TidyVector([None, None], dtype=float).mean(skip_missing=True)
        assert math.isnan(result.item())

    def test_median_is_na(self):
        assert TidyVector((), dtype=float).median().to_list() == [None]

    def test_sd_of_fewer_than_two_is_na(self):
        assert TidyVector([5.0]).sd().to_list() == [None]
        assert TidyVector([None, None], dtype=float).sd(skip_missing=True).to_list() == [None]

    def test_min_is_inf_with_warning(self):
        with pytest.warns(EmptyAggregateWarning):
            result = TidyVector((), dtype=float).min()
        assert result.to_list() == [math.inf]

    def test_max_is_minus_inf_with_warning(self):
        with pytest.warns(EmptyAggregateWarning):
            result = TidyVector([None], dtype=int).max(skip_missing=True)
        assert result.to_list() == [-math.inf]


class TestStatistics:

    def test_sd_is_sample_estimator(self):
        # sum of squared deviations is 5, divided by N - 1 = 3
        assert TidyVector([1, 2, 3, 4]).sd().item() == pytest.approx(math.sqrt(5 / 3))

    def test_median_even_length(self):
        assert TidyVector([4, 1, 3, 2]).median().item() == 2.5

    def test_median_odd_length(self):
        assert TidyVector([3, 1, 2]).median().item() == 2.0

    def test_logical_sum_counts_true(self):
        result = TidyVector([True, False, True]).sum()
        assert result.to_list() == [2]
        assert result.type_name == "integer"

    def test_min_max_keep_type(self):
        assert TidyVector([3, 1, 2]).min().type_name == "integer"
        assert TidyVector(["b", "a", "c"]).max().to_list() == ["c"]

    def test_custom_callable(self):
        spread = aggregate(TidyVector([4, 1, 9]), lambda xs: max(xs) - min(xs))
        assert spread.to_list() == [8]


class TestAggregateErrors:

    @pytest.mark.parametrize("fn", ["sum", "mean", "median", "sd"])
    def test_numeric_aggregates_reject_character(self, fn):
        with pytest.raises(TidyVectorTypeError):
            aggregate(TidyVector(["a", "b"]), fn)

    def test_unknown_aggregate(self):
        with pytest.raises(TidyVectorValueError):
            aggregate(TidyVector([1]), "mode")
