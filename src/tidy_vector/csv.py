"""
CSV input and output.

read_csv guesses one element type per column from the first `guess_max`
data rows, taking the narrowest of logical < integer < double < character
that parses every sampled non-missing value. Values further down that do not
fit become NA and are reported with a ParsingWarning rather than an error.
"""

import csv
import io
import logging
import os
import warnings

from .config import DEFAULT_GUESS_MAX
from .config import DEFAULT_NA_OUTPUT
from .config import DEFAULT_NA_STRINGS
from .errors import ParsingWarning
from .errors import TidyVectorTypeError
from .errors import TidyVectorValueError
from .naming import _repair_names
from .table import TidyTable
from .typing import DataType
from .typing import KIND_LADDER
from .typing import PARSERS
from .typing import format_scalar
from .vector import TidyVector

logger = logging.getLogger(__name__)


def _guess_kind(values):
	"""Narrowest kind whose parser accepts every sampled value; None entries are missing."""
	present = [v for v in values if v is not None]
	if not present:
		return bool
	for kind in KIND_LADDER[:-1]:
		parse = PARSERS[kind]
		try:
			for v in present:
				parse(v)
		except ValueError:
			continue
		return kind
	return str


def _parse_column(name, raw, kind, lines):
	parse = PARSERS[kind]
	out = []
	failures = []
	for row_num, v in zip(lines, raw):
		if v is None:
			out.append(None)
			continue
		try:
			out.append(parse(v))
		except ValueError:
			out.append(None)
			failures.append((row_num, v))
	if failures:
		row_num, value = failures[0]
		warnings.warn(
			f"{len(failures)} parsing failure(s) in column '{name}': expected {DataType(kind).type_name}, "
			f"got {value!r} at row {row_num}",
			ParsingWarning,
			stacklevel=3,
		)
	return TidyVector(out, dtype=DataType(kind), name=name)


def _read_rows(source, delimiter):
	if isinstance(source, (str, os.PathLike)):
		if isinstance(source, str) and "\n" in source:
			# literal data, as readr accepts
			return list(csv.reader(io.StringIO(source), delimiter=delimiter))
		with open(source, newline='', encoding='utf-8') as f:
			return list(csv.reader(f, delimiter=delimiter))
	if hasattr(source, 'read'):
		return list(csv.reader(source, delimiter=delimiter))
	raise TidyVectorTypeError(
		f"read_csv() needs a path, CSV text or a file object, not {type(source).__name__}"
	)


def read_csv(source, na=DEFAULT_NA_STRINGS, guess_max=DEFAULT_GUESS_MAX, delimiter=","):
	"""
	Read delimited text into a TidyTable.

	Parameters
	----------
	source : str, PathLike or file object
		A path, a text file object, or literal CSV text (any string
		containing a newline).
	na : sequence of str
		Field values (after trimming whitespace) read as missing.
	guess_max : int
		How many data rows to sample when guessing column types.
	delimiter : str

	The first row names the columns: blank names become X1, X2, ... by
	position and duplicates get __2, __3 suffixes. Blank lines are skipped.
	A row with the wrong number of fields is an error.

	Examples
	--------
	>>> t = read_csv("country,year,estimate\\nAGO,2010,0.03\\nAGO,2009,NA\\n")
	>>> t.schema()["year"]
	<integer>
	"""
	if guess_max < 1:
		raise TidyVectorValueError(f"guess_max must be at least 1, not {guess_max}")
	na = frozenset(na)

	# file line numbers, counted before blank rows are dropped
	numbered = [(line, row) for line, row in enumerate(_read_rows(source, delimiter), start=1) if row]
	if not numbered:
		return TidyTable()

	names = _repair_names(numbered[0][1])
	width = len(names)
	data = [row for _, row in numbered[1:]]
	lines = [line for line, _ in numbered[1:]]
	for line, row in numbered[1:]:
		if len(row) != width:
			raise TidyVectorValueError(
				f"Row {line} has {len(row)} fields; the header has {width}"
			)

	columns = {}
	for idx, name in enumerate(names):
		raw = []
		for row in data:
			value = row[idx].strip()
			raw.append(None if value in na else value)
		kind = _guess_kind(raw[:guess_max])
		logger.debug("read_csv: column %r guessed as %s from %d rows", name, DataType(kind).type_name, min(len(raw), guess_max))
		columns[name] = _parse_column(name, raw, kind, lines)

	return TidyTable._from_columns(columns, len(data))


def _format_field(value, na):
	if value is None:
		return na
	return format_scalar(value)


def write_csv(table, dest=None, na=DEFAULT_NA_OUTPUT, delimiter=","):
	"""
	Write a TidyTable as CSV: a header row, then one line per row. Missing
	values are written as `na`, logicals as TRUE/FALSE.

	`dest` is a path or text file object. With no `dest` the CSV text is
	returned instead.
	"""
	if not isinstance(table, TidyTable):
		raise TidyVectorTypeError(f"write_csv() needs a TidyTable, not {type(table).__name__}")

	def emit(f):
		writer = csv.writer(f, delimiter=delimiter, lineterminator="\n")
		writer.writerow(table.names)
		cols = [col._underlying for col in table.cols()]
		for i in range(table.nrow):
			writer.writerow([_format_field(col[i], na) for col in cols])

	if dest is None:
		buffer = io.StringIO()
		emit(buffer)
		return buffer.getvalue()
	if isinstance(dest, (str, os.PathLike)):
		with open(dest, "w", newline='', encoding='utf-8') as f:
			emit(f)
		return None
	emit(dest)
	return None
