"""
tidy-vector: R-style vectors and tibble-style tables in plain Python

Brings the data semantics of R and the tidyverse to Python: 1-based
indexing, recycling, typed missing values that propagate, and a
select/filter/mutate/arrange/group_by/summarize pipeline over tables.

Main classes:
    - TidyVector: immutable 1-based vector (logical, integer, double or character)
    - TidyTable: named columns of equal length
    - GroupedTable: a TidyTable partitioned by key columns

Type-specific subclasses (auto-created):
    - _TidyLogical: three-valued any()/all()
    - _TidyInteger, _TidyDouble
    - _TidyCharacter: nchar() and str method proxying

Zero external dependencies - pure Python stdlib only.
"""

from .missing import NA, NA_integer_, NA_real_, NA_character_, NULL, is_null
from .typing import DataType
from .vector import TidyVector, c, seq, combine, is_na
from .aggregate import aggregate
from .expressions import col, var, lit, desc, n, mean, median, sd, n_distinct, if_else, between, call, parse_expr
from .table import TidyTable, GroupedTable, subset
from .errors import (
	TidyVectorError,
	TidyVectorUsageError,
	TidyVectorKeyError,
	TidyVectorValueError,
	TidyVectorTypeError,
	TidyVectorIndexError,
	TidyVectorWarning,
	PartialRecyclingWarning,
	ParsingWarning,
	EmptyAggregateWarning,
)
from .csv import read_csv, write_csv

__version__ = "0.1.0"
__all__ = [
	"TidyVector",
	"TidyTable",
	"GroupedTable",
	"DataType",
	"c",
	"seq",
	"combine",
	"aggregate",
	"is_na",
	"is_null",
	"subset",
	"NA",
	"NA_integer_",
	"NA_real_",
	"NA_character_",
	"NULL",
	"col",
	"var",
	"lit",
	"desc",
	"n",
	"mean",
	"median",
	"sd",
	"n_distinct",
	"if_else",
	"between",
	"call",
	"parse_expr",
	"read_csv",
	"write_csv",
	"TidyVectorError",
	"TidyVectorUsageError",
	"TidyVectorKeyError",
	"TidyVectorValueError",
	"TidyVectorTypeError",
	"TidyVectorIndexError",
	"TidyVectorWarning",
	"PartialRecyclingWarning",
	"ParsingWarning",
	"EmptyAggregateWarning",
]
