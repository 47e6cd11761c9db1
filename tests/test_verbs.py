"""Pipeline verbs: filter, arrange, select, mutate, group_by/summarize and friends"""
from collections import Counter

import pytest
from tidy_vector import (
    TidyTable, GroupedTable, NULL, col, var, lit, desc, n, if_else, n_distinct,
)
from tidy_vector.errors import (
    TidyVectorIndexError, TidyVectorKeyError, TidyVectorTypeError,
    TidyVectorUsageError, TidyVectorValueError,
)


class TestFilter:

    def test_na_rows_are_dropped(self, estimates):
        result = estimates.filter(col("lo") > 0.5)
        assert result.pull("country").to_list() == ["BEN", "CMR"]
        assert 2009 not in [row.year for row in result if row.country == "AGO"]

    def test_keeps_rows_where_predicate_is_literally_true(self, estimates):
        result = estimates.filter("lo > 0.5")
        assert all(lo > 0.5 for lo in result.pull("lo"))
        assert result.nrow == 2

    def test_multiple_predicates_are_anded(self, estimates):
        result = estimates.filter("country == 'AGO'", col("year") > 2009)
        assert result.pull("year").to_list() == [2010, 2011]

    def test_text_and_keyword(self, estimates):
        result = estimates.filter("country == 'BEN' and year == 2010")
        assert result.nrow == 1

    def test_callable_predicate(self, estimates):
        result = estimates.filter(lambda d: d.year == 2009)
        assert result.nrow == 2

    def test_length_one_predicate_recycles(self, estimates):
        assert estimates.filter(lit(True)).nrow == 6
        assert estimates.filter(lit(False)).nrow == 0

    def test_no_predicates_returns_input(self, estimates):
        assert estimates.filter() is estimates

    def test_input_is_unchanged(self, estimates):
        estimates.filter("year == 2011")
        assert estimates.nrow == 6

    def test_keyword_argument_hints_equality(self, estimates):
        with pytest.raises(TidyVectorTypeError, match="=="):
            estimates.filter(country="AGO")

    def test_non_logical_predicate_raises(self, estimates):
        with pytest.raises(TidyVectorTypeError):
            estimates.filter(col("year"))

    def test_wrong_length_predicate_raises(self, estimates):
        with pytest.raises(TidyVectorValueError):
            estimates.filter(lit([True, False]))


class TestDataMasking:

    def test_column_shadows_env_variable(self, estimates):
        # `year` names a column, so the env entry is ignored
        result = estimates.filter("year == 2011", env={"year": 2009})
        assert result.nrow == 1

    def test_env_fallback(self, estimates):
        result = estimates.filter("lo > threshold", env={"threshold": 0.5})
        assert result.nrow == 2

    def test_var_forces_env(self, estimates):
        result = estimates.filter(col("year") == var("year"), env={"year": 2011})
        assert result.pull("year").to_list() == [2011]

    def test_quoted_text_is_literal(self, estimates):
        t = TidyTable({"country": ["AGO", "BEN"], "AGO": ["x", "y"]})
        assert t.filter("country == 'AGO'").nrow == 1

    def test_unknown_name_raises(self, estimates):
        with pytest.raises(TidyVectorKeyError):
            estimates.filter("nope > 1")

    def test_env_is_reserved_in_mutate(self, estimates):
        with pytest.raises(TidyVectorTypeError, match="reserved"):
            estimates.mutate(env=col("lo"))

    def test_env_is_reserved_in_summarize(self, estimates):
        with pytest.raises(TidyVectorTypeError, match="reserved"):
            estimates.summarize(env=n())
        with pytest.raises(TidyVectorTypeError, match="reserved"):
            estimates.group_by("country").summarize(env="mean(lo)")

    def test_env_must_be_a_mapping(self, estimates):
        with pytest.raises(TidyVectorTypeError):
            estimates.filter("lo > threshold", env=[("threshold", 0.5)])
        with pytest.raises(TidyVectorTypeError):
            estimates.arrange("year", env=0.5)


class TestArrange:

    def test_ascending_with_na_last(self, estimates):
        result = estimates.arrange("estimate")
        assert result.pull("estimate").to_list() == [0.03, 0.05, 0.52, 0.61, 0.72, None]

    def test_descending_with_na_last(self, estimates):
        result = estimates.arrange(desc("estimate"))
        assert result.pull("estimate").to_list() == [0.72, 0.61, 0.52, 0.05, 0.03, None]

    def test_descending_flag(self, estimates):
        result = estimates.arrange("lo", descending=True)
        assert result.pull("lo").to_list()[-1] is None

    def test_sort_is_stable(self, estimates):
        result = estimates.arrange("country")
        assert result.pull("year").to_list() == [2009, 2010, 2011, 2009, 2010, 2010]

    def test_several_keys(self, estimates):
        result = estimates.arrange("year", desc(col("lo")))
        assert result.pull("country").to_list() == ["BEN", "AGO", "CMR", "BEN", "AGO", "AGO"]

    def test_text_desc(self, estimates):
        result = estimates.arrange("desc(year)")
        assert result.pull("year").to_list()[0] == 2011

    def test_unknown_column(self, estimates):
        with pytest.raises(TidyVectorKeyError):
            estimates.arrange("nope")


class TestSelect:

    def test_positive_keeps_requested_order(self, estimates):
        assert estimates.select("year", "country").names == ["year", "country"]

    def test_negated_keeps_table_order(self, estimates):
        assert estimates.select("-hi", "-year").names == ["country", "estimate", "lo"]

    def test_negated_expression(self, estimates):
        assert estimates.select(-col("estimate")).names == ["country", "year", "hi", "lo"]

    def test_positions(self, estimates):
        assert estimates.select(5, 1).names == ["lo", "country"]
        assert estimates.select(-1).names == ["year", "estimate", "hi", "lo"]

    def test_list_argument(self, estimates):
        assert estimates.select(["hi", "lo"]).names == ["hi", "lo"]

    def test_mixing_raises(self, estimates):
        with pytest.raises(TidyVectorIndexError):
            estimates.select("year", "-hi")

    def test_unknown_column_raises(self, estimates):
        with pytest.raises(TidyVectorKeyError):
            estimates.select("nope")

    def test_empty_selection_keeps_rows(self, estimates):
        result = estimates.select()
        assert result.shape == (6, 0)


class TestMutate:

    def test_adds_column(self, estimates):
        result = estimates.mutate(width=col("hi") - col("lo"))
        assert result.names[-1] == "width"
        widths = result.pull("width").to_list()
        assert widths[0] is None
        assert widths[1] == pytest.approx(0.02)

    def test_replaces_in_place(self, estimates):
        result = estimates.mutate(year="year + 1")
        assert result.names == estimates.names
        assert result.pull("year").to_list()[0] == 2010

    def test_later_expressions_see_earlier(self, estimates):
        result = estimates.mutate(half="estimate / 2", back="half * 2")
        assert result.pull("back").to_list()[1] == pytest.approx(0.03)

    def test_length_one_recycles(self, estimates):
        result = estimates.mutate(source=lit("survey"))
        assert result.pull("source").to_list() == ["survey"] * 6

    def test_null_removes(self, estimates):
        assert "hi" not in estimates.mutate(hi=NULL)

    def test_preserves_rows(self, estimates):
        result = estimates.mutate(flag=if_else(col("lo") > 0.5, "high", "low"))
        assert result.nrow == estimates.nrow
        assert result.pull("flag").to_list() == [None, "low", "low", "low", "high", "high"]

    def test_wrong_length_raises(self, estimates):
        with pytest.raises(TidyVectorValueError):
            estimates.mutate(bad=lit([1, 2]))

    def test_desc_outside_arrange(self, estimates):
        with pytest.raises(TidyVectorUsageError):
            estimates.mutate(bad=desc("year"))


class TestGroupSummarize:

    def test_one_row_per_year_with_counts(self, estimates):
        result = estimates.group_by("year").summarize(count=n())
        tally = Counter(estimates.pull("year").to_list())
        assert result.nrow == len(tally)
        assert result.pull("year").to_list() == [2009, 2010, 2011]
        for row in result:
            assert row.count == tally[row.year]

    def test_group_by_returns_grouped_table(self, estimates):
        grouped = estimates.group_by("country")
        assert isinstance(grouped, GroupedTable)
        assert grouped.n_groups == 3
        assert grouped.group_vars == ["country"]
        assert grouped.ungroup() is estimates

    def test_group_keys(self, estimates):
        keys = estimates.group_by("country", "year").group_keys()
        assert keys.names == ["country", "year"]
        assert keys.nrow == 6

    def test_aggregates_per_group(self, estimates):
        result = estimates.group_by("country").summarize(
            avg=col("estimate").mean(skip_missing=True),
            rows=n(),
        )
        assert result.names == ["country", "avg", "rows"]
        assert result.pull("avg").to_list() == pytest.approx([0.04, 0.565, 0.72])
        assert result.pull("rows").to_list() == [3, 2, 1]

    def test_missing_propagates_without_skip(self, estimates):
        result = estimates.group_by("country").summarise(avg="mean(estimate)")
        assert result.pull("avg").to_list()[0] is None

    def test_text_na_rm(self, estimates):
        result = estimates.group_by("country").summarize(top="max(hi, na_rm=TRUE)")
        assert result.pull("top").to_list() == [0.07, 0.73, 0.81]

    def test_later_summaries_see_earlier(self, estimates):
        result = estimates.group_by("country").summarize(total=n(), half="total / 2")
        assert result.pull("half").to_list() == [1.5, 1.0, 0.5]

    def test_na_keys_form_a_group(self):
        t = TidyTable({"k": [1, None, 1, None], "v": [1, 2, 3, 4]})
        result = t.group_by("k").summarize(total=col("v").sum())
        assert result.to_dict() == {"k": [1, None], "total": [4, 6]}

    def test_summary_must_be_length_one(self, estimates):
        with pytest.raises(TidyVectorValueError):
            estimates.group_by("country").summarize(x=col("year"))

    def test_unknown_group_column(self, estimates):
        with pytest.raises(TidyVectorKeyError):
            estimates.group_by("nope")

    def test_ungrouped_summarize_gives_one_row(self, estimates):
        result = estimates.summarize(rows=n(), countries=n_distinct(col("country")))
        assert result.to_dict() == {"rows": [6], "countries": [3]}

    def test_grouped_repr(self, estimates):
        assert "# Groups: country [3]" in repr(estimates.group_by("country"))


class TestOtherVerbs:

    def test_count(self, estimates):
        result = estimates.count("country")
        assert result.to_dict() == {"country": ["AGO", "BEN", "CMR"], "n": [3, 2, 1]}

    def test_count_sorted(self, estimates):
        result = estimates.count("year", sort=True)
        assert result.pull("year").to_list()[0] == 2010

    def test_count_without_columns(self, estimates):
        assert estimates.count().to_dict() == {"n": [6]}

    def test_rename(self, estimates):
        result = estimates.rename(nation="country")
        assert result.names[0] == "nation"
        assert estimates.names[0] == "country"

    def test_rename_unknown(self, estimates):
        with pytest.raises(TidyVectorKeyError):
            estimates.rename(x="nope")

    def test_rename_collision(self, estimates):
        with pytest.raises(TidyVectorValueError):
            estimates.rename(year="country")

    def test_head(self, estimates):
        assert estimates.head(2).nrow == 2
        assert estimates.head(-4).nrow == 2

    def test_pipe(self, estimates):
        assert estimates.pipe(lambda d, k: d.head(k), 3).nrow == 3

    def test_pipeline(self, estimates):
        result = (
            estimates
            .filter("not is_na(estimate)")
            .mutate(width="hi - lo")
            .group_by("country")
            .summarize(widest=col("width").max())
            .arrange(desc("widest"))
        )
        assert result.pull("country").to_list()[0] == "BEN"
