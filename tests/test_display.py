"""R-style printing of vectors and tibble-style printing of tables"""
from tidy_vector import TidyTable, TidyVector


class TestVectorRepr:

    def test_integers_with_na(self):
        assert repr(TidyVector([1, 2, None])) == "[1]  1  2 NA"

    def test_character_is_quoted(self):
        assert repr(TidyVector(["a", None])) == '[1] "a" NA'

    def test_logical(self):
        assert repr(TidyVector([True, False])) == "[1]  TRUE FALSE"

    def test_doubles_use_seven_digits(self):
        assert repr(TidyVector([0.5, 1 / 3])) == "[1]       0.5 0.3333333"

    def test_special_doubles(self):
        assert repr(TidyVector([float("inf"), float("nan")])) == "[1] Inf NaN"

    def test_empty_vector_shows_type(self):
        assert repr(TidyVector((), dtype=int)) == "integer(0)"
        assert repr(TidyVector(())) == "logical(0)"

    def test_long_vector_wraps_with_position_labels(self):
        v = TidyVector([1000000000 + i for i in range(20)])
        lines = repr(v).split("\n")
        assert len(lines) == 4
        assert lines[0].startswith(" [1] 1000000000")
        assert lines[1].startswith(" [7] 1000000006")

    def test_long_vector_omits_tail(self):
        lines = repr(TidyVector(range(1, 26))).split("\n")
        assert lines[0].startswith(" [1]  1  2")
        assert lines[-1] == " [ omitted 5 entries ]"


class TestTableRepr:

    def test_layout(self):
        t = TidyTable({"a": [1, 2]})
        assert repr(t) == "\n".join([
            "# A tibble: 2 × 1",
            "      a",
            "  <int>",
            "1     1",
            "2     2",
        ])

    def test_header_and_types(self, estimates):
        text = repr(estimates)
        assert text.startswith("# A tibble: 6 × 5")
        for label in ("<chr>", "<int>", "<dbl>"):
            assert label in text

    def test_missing_shown_as_na(self, estimates):
        first_row = repr(estimates).split("\n")[3]
        assert first_row.startswith("1 AGO")
        assert first_row.rstrip().endswith("NA")

    def test_more_rows_footer(self):
        t = TidyTable({"x": list(range(12))})
        assert repr(t).split("\n")[-1] == "# ... with 2 more rows"

    def test_more_variables_footer(self):
        t = TidyTable({name: [1] for name in "abcdefghij"})
        assert repr(t).split("\n")[-1] == "# ... with 2 more variables: i <int>, j <int>"

    def test_nonsyntactic_names_are_backquoted(self):
        t = TidyTable({"first name": ["x"]})
        assert "`first name`" in repr(t)

    def test_empty_table(self):
        assert repr(TidyTable()) == "# A tibble: 0 × 0"

    def test_grouped_table_has_group_line(self, estimates):
        lines = repr(estimates.group_by("year")).split("\n")
        assert lines[0] == "# A tibble: 6 × 5"
        assert lines[1] == "# Groups: year [3]"
