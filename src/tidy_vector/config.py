"""Library-wide defaults.

There is no global missing-value policy: every aggregation
takes an explicit ``skip_missing`` argument instead.
"""

# read_csv: rows sampled for column type guessing
DEFAULT_GUESS_MAX = 1000

# read_csv: field values treated as missing
DEFAULT_NA_STRINGS = ("", "NA")

# write_csv: text written for a missing value
DEFAULT_NA_OUTPUT = "NA"

# How many rows/columns/elements to show before truncating a repr
MAX_PRINT_ROWS = 10
MAX_PRINT_COLS = 8
MAX_PRINT_ELEMENTS = 20
