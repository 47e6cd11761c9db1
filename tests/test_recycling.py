"""Elementwise combination: recycling, NA propagation, result types"""
import math
import warnings

import pytest
from tidy_vector import TidyVector, NA, NA_real_, combine, c
from tidy_vector.errors import PartialRecyclingWarning, TidyVectorTypeError, TidyVectorValueError


class TestRecycling:

    def test_partial_cycle_recycles_and_warns(self):
        a = TidyVector([1, 2, 3])
        b = TidyVector([10, 20])
        with pytest.warns(PartialRecyclingWarning):
            result = combine(a, b, '+')
        # b[1] is reused for position 3
        assert result.to_list() == [11, 22, 13]

    def test_operator_form_warns_too(self):
        with pytest.warns(PartialRecyclingWarning):
            result = TidyVector([1, 2, 3]) * TidyVector([2, 3])
        assert result.to_list() == [2, 6, 6]

    def test_whole_cycles_do_not_warn(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = combine(TidyVector([1, 2, 3, 4]), TidyVector([10, 20]), '+')
        assert result.to_list() == [11, 22, 13, 24]

    def test_scalar_operand_is_length_one(self):
        assert (TidyVector([1, 2, 3]) + 1).to_list() == [2, 3, 4]
        assert (10 - TidyVector([1, 2])).to_list() == [9, 8]

    def test_zero_length_operand_gives_zero_length(self):
        result = combine(TidyVector([1, 2, 3]), TidyVector((), dtype=int), '+')
        assert len(result) == 0

    def test_result_length_is_the_longer(self):
        result = combine(TidyVector([1]), TidyVector([1, 2, 3, 4, 5]), '*')
        assert len(result) == 5


class TestMissingPropagation:

    @pytest.mark.parametrize("op", ['+', '-', '*', '/', '==', '!=', '<', '>=', '**'])
    def test_na_operand_gives_na(self, op):
        result = combine(TidyVector([1, None, 3]), TidyVector([2, 2, None]), op)
        values = result.to_list()
        assert values[1] is None
        assert values[2] is None

    def test_na_scalar_operand(self):
        assert (TidyVector([1, 2]) + NA).to_list() == [None, None]

    def test_na_on_the_left_keeps_vector_length(self):
        v = TidyVector([1, 2, 3])
        result = NA + v
        assert isinstance(result, TidyVector)
        assert result.to_list() == [None, None, None]
        assert result.type_name == "integer"

    def test_na_on_the_left_of_comparison(self):
        result = NA == TidyVector([1, 2, 3])
        assert isinstance(result, TidyVector)
        assert result.to_list() == [None, None, None]
        assert result.type_name == "logical"

    def test_typed_na_on_the_left(self):
        result = NA_real_ * TidyVector([1, 2, 3])
        assert result.to_list() == [None, None, None]
        assert result.type_name == "double"

    def test_and_is_three_valued(self):
        x = TidyVector([NA, NA, NA, True])
        y = TidyVector([False, True, NA, True])
        assert (x & y).to_list() == [False, None, None, True]

    def test_or_is_three_valued(self):
        x = TidyVector([NA, NA, False])
        y = TidyVector([True, False, False])
        assert (x | y).to_list() == [True, None, False]

    def test_invert(self):
        assert (~TidyVector([True, NA, False])).to_list() == [False, None, True]


class TestResultTypes:

    def test_comparison_is_logical(self):
        assert (TidyVector([1, 2]) > 1).type_name == "logical"

    def test_integer_arithmetic_stays_integer(self):
        assert (TidyVector([1, 2]) + TidyVector([3, 4])).type_name == "integer"

    def test_logical_arithmetic_is_integer(self):
        result = TidyVector([True, False]) + TidyVector([True, True])
        assert result.type_name == "integer"
        assert result.to_list() == [2, 1]

    def test_division_is_double(self):
        result = TidyVector([4, 3]) / 2
        assert result.type_name == "double"
        assert result.to_list() == [2.0, 1.5]

    def test_division_by_zero_is_ieee(self):
        values = (TidyVector([1, -1, 0]) / 0).to_list()
        assert values[0] == math.inf
        assert values[1] == -math.inf
        assert math.isnan(values[2])

    def test_integer_floordiv_by_zero_is_na(self):
        assert (TidyVector([5]) // 0).to_list() == [None]
        assert (TidyVector([5]) % 0).to_list() == [None]

    def test_pow_is_double(self):
        result = TidyVector([2]) ** 3
        assert result.type_name == "double"
        assert result.to_list() == [8.0]

    def test_character_arithmetic_raises(self):
        with pytest.raises(TidyVectorTypeError):
            TidyVector(["a"]) + 1

    def test_character_compares_as_text(self):
        assert (TidyVector(["10", "9"]) > TidyVector(["2"])).to_list() == [False, True]

    def test_number_against_character_compares_as_text(self):
        assert (TidyVector(["1", "2"]) == 1).to_list() == [True, False]


class TestCombineForms:

    @pytest.mark.parametrize("alias,symbol", [('^', '**'), ('%/%', '//'), ('%%', '%')])
    def test_r_operator_spellings(self, alias, symbol):
        a, b = TidyVector([7, 8]), TidyVector([2, 3])
        assert combine(a, b, alias).to_list() == combine(a, b, symbol).to_list()

    def test_callable_op(self):
        result = combine(TidyVector([1, 2, None]), TidyVector([10]), lambda x, y: max(x, y))
        assert result.to_list() == [10, 10, None]

    def test_unknown_operator(self):
        with pytest.raises(TidyVectorValueError):
            combine(TidyVector([1]), TidyVector([1]), '<>')

    def test_c_promotes_along_the_ladder(self):
        assert c(1, 2.5).type_name == "double"
        assert c(1, "a").to_list() == ["1", "a"]
        assert c(TidyVector([True, False]), 3).to_list() == [1, 0, 3]
