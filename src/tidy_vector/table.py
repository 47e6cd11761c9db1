import logging

from .display import _printr
from .display import _repr_table
from .errors import TidyVectorIndexError
from .errors import TidyVectorKeyError
from .errors import TidyVectorTypeError
from .errors import TidyVectorValueError
from .expressions import ColumnRef
from .expressions import DataMask
from .expressions import Desc
from .expressions import Symbol
from .expressions import UnaryOp
from .expressions import UnaryOperator
from .expressions import as_expr
from .expressions import check_env
from .expressions import evaluate
from .expressions import n as _n_expr
from .indexing import resolve_positions
from .missing import NULL
from .naming import _sanitize_user_name, _uniquify
from .typing import DataType
from .vector import TidyVector
from .vector import _order_positions

logger = logging.getLogger(__name__)


def _missing_col_error(name, context="TidyTable"):
	return TidyVectorKeyError(f"Column '{name}' not found in {context}")


class _RowView:
	"""One table row, reused while iterating; fields by attribute, name or 1-based position."""
	__slots__ = ('_cols', '_positions', '_column_map', '_index')

	def __init__(self, table, index):
		# raw tuples, so field access skips TidyVector indexing rules
		self._cols = [col._underlying for col in table._columns.values()]
		self._positions = {name: pos for pos, name in enumerate(table._columns)}
		self._column_map = table._column_map
		self._index = index

	def set_index(self, index):
		self._index = index
		return self

	def __getattr__(self, attr):
		name = self._column_map.get(attr.lower())
		if name is None:
			raise AttributeError(f"Row has no field '{attr}'")
		return self._cols[self._positions[name]][self._index]

	def __getitem__(self, key):
		if isinstance(key, str):
			if key not in self._positions:
				raise _missing_col_error(key, "row")
			return self._cols[self._positions[key]][self._index]
		if isinstance(key, int) and not isinstance(key, bool) and 1 <= key <= len(self._cols):
			return self._cols[key - 1][self._index]
		raise TidyVectorIndexError(f"Row fields are column names or 1-based positions, not {key!r}")

	def __iter__(self):
		idx = self._index
		return (col[idx] for col in self._cols)

	def __len__(self):
		return len(self._cols)

	def to_dict(self):
		"""{column name: value} for this row; missing values are None."""
		return dict(zip(self._positions, self))

	def __repr__(self):
		idx = self._index
		fields = ", ".join(f"{name}={self._cols[pos][idx]!r}" for name, pos in self._positions.items())
		return f"Row({idx + 1}: {fields})"


def _recycle_length(lengths):
	"""Common column length: all equal, with length-1 columns recycled."""
	distinct = set(lengths) - {1}
	if len(distinct) > 1:
		raise TidyVectorValueError(
			f"Columns must have compatible lengths; got {sorted(set(lengths))}. "
			"Only length-1 columns are recycled"
		)
	if distinct:
		return distinct.pop()
	return 1 if lengths else 0


def _recycle(vector, nrow):
	if len(vector) == nrow:
		return vector
	return vector._take([0] * nrow)


class TidyTable():
	""" Named columns of the same length; rows are numbered 1..nrow """
	_columns = None
	_nrow = 0
	_column_map = None

	def __init__(self, initial=None):
		"""
		Build a table from a dict of {name: values}, a list of named
		TidyVectors, or another TidyTable.

		Length-1 columns are recycled to the common length; NULL values are
		dropped.

		Examples
		--------
		>>> t = TidyTable({"x": [1, 2, 3], "label": "a"})
		>>> t.shape
		(3, 2)
		"""
		if initial is None:
			initial = {}
		if isinstance(initial, TidyTable):
			pairs = list(initial._columns.items())
		elif isinstance(initial, dict):
			pairs = list(initial.items())
		elif isinstance(initial, (list, tuple)):
			pairs = []
			for idx, col in enumerate(initial, start=1):
				if not isinstance(col, TidyVector):
					raise TidyVectorTypeError(
						"A list of columns must hold TidyVectors; use a dict to name raw values"
					)
				pairs.append((col.name if col.name is not None else f"V{idx}", col))
		else:
			raise TidyVectorTypeError(f"Cannot build a TidyTable from {type(initial).__name__}")

		columns = {}
		for name, values in pairs:
			if not isinstance(name, str) or not name:
				raise TidyVectorValueError(f"Column names must be non-empty strings, not {name!r}")
			if name in columns:
				raise TidyVectorValueError(f"Column name '{name}' must not be duplicated")
			if values is NULL:
				continue
			columns[name] = values if isinstance(values, TidyVector) else TidyVector(values)

		nrow = _recycle_length([len(v) for v in columns.values()])
		self._set_columns(
			{name: _recycle(v, nrow).rename(name) for name, v in columns.items()},
			nrow,
		)

	@classmethod
	def _from_columns(cls, columns, nrow):
		"""Trusted constructor: columns already named, equal length."""
		table = super(TidyTable, cls).__new__(cls)
		table._set_columns(columns, nrow)
		return table

	def _set_columns(self, columns, nrow):
		self._columns = columns
		self._nrow = nrow
		self._column_map = self._build_column_map()

	def _build_column_map(self):
		"""Build mapping from sanitized column names to column names.

		Computed once per table and used by __getattr__ and _RowView.
		"""
		column_map = {}
		seen = set()
		for idx, name in enumerate(self._columns, start=1):
			base = _sanitize_user_name(name)
			sanitized = f'col{idx}_' if base is None else _uniquify(base, seen)
			seen.add(sanitized)
			column_map[sanitized] = name
		return column_map

	""" Shape and metadata """
	@property
	def nrow(self):
		return self._nrow

	@property
	def ncol(self):
		return len(self._columns)

	@property
	def shape(self):
		return (self._nrow, len(self._columns))

	@property
	def names(self):
		return list(self._columns)

	def schema(self):
		"""Mapping of column name to DataType."""
		return {name: col.schema() for name, col in self._columns.items()}

	def cols(self):
		return list(self._columns.values())

	def has_column(self, name):
		return name in self._columns

	def __contains__(self, name):
		return name in self._columns

	def __len__(self):
		""" number of rows """
		return self._nrow

	def __dir__(self):
		"""Return list of available attributes including sanitized column names."""
		base_attrs = object.__dir__(self)
		return sorted(set(base_attrs + list(self._column_map.keys())))

	def __getattr__(self, attr):
		"""Access columns by sanitized attribute name using pre-computed column map."""
		if attr.startswith('_'):
			raise AttributeError(attr)
		name = self._column_map.get(attr.lower())
		if name is not None:
			return self._columns[name]
		raise AttributeError(f"{self.__class__.__name__!s} object has no attribute '{attr}'")

	def __repr__(self):
		return _printr(self)

	def __iter__(self):
		"""Iterate over rows using a reusable _RowView for memory efficiency."""
		row_view = _RowView(self, 0)
		for i in range(self._nrow):
			row_view.set_index(i)
			yield row_view

	def rows(self):
		"""Rows as plain dicts."""
		return [row.to_dict() for row in self]

	def to_dict(self):
		return {name: col.to_list() for name, col in self._columns.items()}

	""" Subsetting """
	def _column_names(self, spec):
		"""Resolve a column spec to a list of existing names (single-bracket rules)."""
		if spec is NULL:
			return []
		if isinstance(spec, str):
			wanted = [spec]
		elif isinstance(spec, TidyVector) and spec.schema().kind is str:
			wanted = list(spec)
		elif isinstance(spec, (list, tuple)) and spec and all(isinstance(s, str) for s in spec):
			wanted = list(spec)
		else:
			names = self.names
			return [names[p] for p in resolve_positions(spec, len(names), strict=True)]
		for name in wanted:
			if name is None:
				raise TidyVectorIndexError("Column names can't be missing")
			if name not in self._columns:
				raise _missing_col_error(name)
		return wanted

	def _take_columns(self, names):
		seen = set()
		columns = {}
		for name in names:
			# selecting the same column twice keeps both, renamed apart
			out = _uniquify(name, seen)
			seen.add(out)
			col = self._columns[name]
			columns[out] = col if out == name else col.rename(out)
		return TidyTable._from_columns(columns, self._nrow)

	def _take_rows(self, positions):
		"""Gather 0-based row positions; None positions give a row of NAs."""
		positions = list(positions)
		return TidyTable._from_columns(
			{name: col._take(positions) for name, col in self._columns.items()},
			len(positions),
		)

	def _subset(self, rows=None, cols=None):
		table = self if cols is None else self._take_columns(self._column_names(cols))
		if rows is None:
			return table
		if isinstance(rows, str) or (isinstance(rows, TidyVector) and rows.schema().kind is str):
			raise TidyVectorIndexError("Rows are selected by position or logical mask, not by name")
		return table._take_rows(resolve_positions(rows, self._nrow))

	def __getitem__(self, key):
		""" Tibble subsetting.
			# t["name"], t[2], t[c("a", "b")], t[-1], logical masks: columns, returns a TidyTable
			# t[rows, cols]: both axes, returns a TidyTable; None or : takes the whole axis
			# t[["name"]], t[[2]]: the double bracket, returns the column TidyVector
		"""
		if isinstance(key, tuple):
			if len(key) != 2:
				raise TidyVectorIndexError(
					f"Table indexing takes t[cols] or t[rows, cols], not {len(key)} subscripts"
				)
			rows, cols = key
			if isinstance(rows, slice) and rows == slice(None):
				rows = None
			if isinstance(cols, slice) and cols == slice(None):
				cols = None
			return self._subset(rows, cols)

		if isinstance(key, list):
			if len(key) != 1:
				raise TidyVectorIndexError(
					f"t[[...]] extracts exactly one column, got {len(key)} subscripts"
				)
			return self._column(key[0])

		return self._take_columns(self._column_names(key))

	def _column(self, key):
		"""The double bracket: exactly one column, returned as a vector."""
		if isinstance(key, str):
			try:
				return self._columns[key]
			except KeyError:
				raise _missing_col_error(key) from None
		if isinstance(key, int) and not isinstance(key, bool):
			names = self.names
			if 1 <= key <= len(names):
				return self._columns[names[key - 1]]
			raise TidyVectorKeyError(f"Column position {key} is out of bounds; there are {len(names)} columns")
		raise TidyVectorIndexError(f"t[[...]] takes a column name or 1-based position, not {key!r}")

	def get(self, name):
		"""The column called `name`, or NULL when there is none."""
		return self._columns.get(name, NULL)

	def pull(self, col=-1):
		"""
		Extract one column as a TidyVector.

		`col` is a name or a 1-based position; negative positions count from
		the right, so the default is the last column.
		"""
		if isinstance(col, (ColumnRef, Symbol)):
			col = col.name
		if isinstance(col, int) and not isinstance(col, bool) and col < 0:
			col = self.ncol + col + 1
			if col < 1:
				raise TidyVectorKeyError(f"Column position is out of bounds; there are {self.ncol} columns")
		return self._column(col)

	""" Verbs - each returns a new table """
	def filter(self, *predicates, env=None, **kwargs):
		"""
		Keep rows where every predicate is TRUE. NA counts as not TRUE, so
		those rows are dropped (unlike mask indexing, where NA gives an NA row).

		Examples
		--------
		>>> t.filter(col("lo") > 0.5)
		>>> t.filter("country == 'AGO'", "year > 2009")
		"""
		check_env(env)
		if kwargs:
			name, value = next(iter(kwargs.items()))
			raise TidyVectorTypeError(
				f"filter() got the named argument '{name}'; did you mean {name} == {value!r}?"
			)
		if not predicates:
			return self

		mask = DataMask(self, env)
		keep = [True] * self._nrow
		for pred in predicates:
			result = evaluate(as_expr(pred), mask)
			if result.schema().kind is not bool:
				raise TidyVectorTypeError(
					f"filter() predicates must be logical, not {result.type_name}"
				)
			if len(result) not in (1, self._nrow):
				raise TidyVectorValueError(
					f"filter() predicate has length {len(result)}; expected 1 or {self._nrow}"
				)
			flags = result._underlying
			width = len(flags)
			keep = [k and flags[i % width] is True for i, k in enumerate(keep)]
		return self._take_rows(i for i, k in enumerate(keep) if k)

	def arrange(self, *keys, descending=False, env=None):
		"""
		Stable sort by one or more keys. Wrap a key in desc() to reverse it;
		`descending=True` reverses every key not already wrapped. Missing
		values always sort last.
		"""
		check_env(env)
		if not keys:
			return self
		mask = DataMask(self, env)
		resolved = []
		for key in keys:
			expr = as_expr(key)
			reverse = descending
			if isinstance(expr, Desc):
				expr, reverse = expr.operand, True
			values = evaluate(expr, mask)
			if len(values) != self._nrow:
				if len(values) != 1:
					raise TidyVectorValueError(
						f"arrange() key has length {len(values)}; expected {self._nrow}"
					)
				values = _recycle(values, self._nrow)
			resolved.append((values._underlying, reverse))

		# least significant key first; each pass is stable
		positions = list(range(self._nrow))
		for values, reverse in reversed(resolved):
			positions = _order_positions(values, reverse, positions)
		return self._take_rows(positions)

	def _select_item(self, item, out):
		"""Append (name, negated) pairs for one select() argument."""
		if isinstance(item, str):
			if item not in self._columns and item.startswith('-'):
				out.append((self._select_item_name(item[1:].strip()), True))
			else:
				out.append((self._select_item_name(item), False))
		elif isinstance(item, (ColumnRef, Symbol)):
			out.append((self._select_item_name(item.name), False))
		elif isinstance(item, UnaryOp) and item.operator is UnaryOperator.NEG \
				and isinstance(item.operand, (ColumnRef, Symbol)):
			out.append((self._select_item_name(item.operand.name), True))
		elif isinstance(item, int) and not isinstance(item, bool):
			if item == 0:
				return
			pos = abs(item)
			if pos > self.ncol:
				raise TidyVectorKeyError(
					f"Can't select column {pos}; there are only {self.ncol} columns"
				)
			out.append((self.names[pos - 1], item < 0))
		elif isinstance(item, (list, tuple, TidyVector)):
			for sub in item:
				self._select_item(sub, out)
		else:
			raise TidyVectorTypeError(f"Can't select columns with {type(item).__name__}")

	def _select_item_name(self, name):
		if name not in self._columns:
			raise _missing_col_error(name)
		return name

	def select(self, *columns):
		"""
		Choose columns. Positive selections come back in the requested order;
		negated selections (`-col("x")`, "-x", -2) drop columns and keep the
		rest in table order. The two can't be mixed.
		"""
		items = []
		for column in columns:
			self._select_item(column, items)
		negated = {neg for _, neg in items}
		if len(negated) > 1:
			raise TidyVectorIndexError("Can't mix selected and negated columns in select()")
		if negated == {True}:
			dropped = {name for name, _ in items}
			return self._take_columns([n for n in self._columns if n not in dropped])
		picked = []
		for name, _ in items:
			if name not in picked:
				picked.append(name)
		return self._take_columns(picked)

	def mutate(self, env=None, **named_exprs):
		"""
		Add or replace columns. Expressions run in order, so later ones see
		earlier results. Length-1 results are recycled; NULL removes a column.

		Text is parsed as an expression: use lit("AGO") for a constant string.
		"""
		check_env(env)
		columns = dict(self._columns)
		for name, value in named_exprs.items():
			current = TidyTable._from_columns(columns, self._nrow)
			if value is NULL:
				columns.pop(name, None)
				continue
			result = evaluate(as_expr(value), DataMask(current, env))
			if len(result) not in (1, self._nrow):
				raise TidyVectorValueError(
					f"mutate() column '{name}' has length {len(result)}; expected 1 or {self._nrow}"
				)
			columns[name] = _recycle(result, self._nrow).rename(name)
		return TidyTable._from_columns(columns, self._nrow)

	def rename(self, **new_from_old):
		"""rename(new_name="old_name"); column order is kept."""
		mapping = {}
		for new, old in new_from_old.items():
			if old not in self._columns:
				raise _missing_col_error(old)
			mapping[old] = new
		columns = {}
		for name, col in self._columns.items():
			out = mapping.get(name, name)
			if out in columns:
				raise TidyVectorValueError(f"Column name '{out}' must not be duplicated")
			columns[out] = col if out == name else col.rename(out)
		return TidyTable._from_columns(columns, self._nrow)

	def head(self, n=6):
		"""First n rows; a negative n drops the last |n|."""
		stop = min(n, self._nrow) if n >= 0 else max(self._nrow + n, 0)
		return self._take_rows(range(stop))

	def group_by(self, *columns):
		return GroupedTable(self, columns)

	def ungroup(self):
		return self

	def summarize(self, env=None, **named_exprs):
		"""One row of summaries over the whole table."""
		check_env(env)
		values = _summarize_one(self, named_exprs, env)
		return TidyTable._from_columns(values, 1)

	summarise = summarize

	def count(self, *columns, sort=False, name="n"):
		"""Rows per combination of `columns` (group_by + summarize(n=n()))."""
		if not columns:
			return self.summarize(**{name: _n_expr()})
		result = self.group_by(*columns).summarize(**{name: _n_expr()})
		if sort:
			result = result.arrange(Desc(ColumnRef(name)))
		return result

	def pipe(self, func, *args, **kwargs):
		"""func(table, *args, **kwargs), for chaining user functions."""
		return func(self, *args, **kwargs)


def _summarize_one(table, named_exprs, env):
	"""Evaluate summaries on one (sub)table; each must be length 1."""
	results = {}
	for name, value in named_exprs.items():
		result = evaluate(as_expr(value), DataMask(table, env, results))
		if len(result) != 1:
			raise TidyVectorValueError(
				f"summarize() column '{name}' has length {len(result)}; summaries must be length 1"
			)
		results[name] = result.rename(name)
	return results


# NaN never equals itself; one shared key puts every NaN in the same group
_NAN_KEY = object()


def _group_key(value):
	if isinstance(value, float) and value != value:
		return _NAN_KEY
	return value


class GroupedTable():
	"""
	A table partitioned by key columns. Groups are ordered by first
	appearance; missing key values form a group of their own.
	"""

	def __init__(self, table, columns):
		keys = []
		for column in columns:
			if isinstance(column, (ColumnRef, Symbol)):
				column = column.name
			if not isinstance(column, str):
				raise TidyVectorTypeError(f"group_by() takes column names, not {type(column).__name__}")
			if column not in table._columns:
				raise _missing_col_error(column)
			if column not in keys:
				keys.append(column)
		self._table = table
		self._keys = tuple(keys)
		self._groups = self._partition()
		logger.debug("group_by(%s): %d rows in %d groups", ", ".join(self._keys), table.nrow, len(self._groups))

	def _partition(self):
		"""key tuple -> 0-based row positions, in first-appearance order."""
		key_data = [self._table._columns[k]._underlying for k in self._keys]
		partition_index = {}
		for row_idx in range(self._table.nrow):
			key = tuple(_group_key(col[row_idx]) for col in key_data)
			bucket = partition_index.get(key)
			if bucket is None:
				partition_index[key] = [row_idx]
			else:
				bucket.append(row_idx)
		return list(partition_index.values())

	@property
	def table(self):
		return self._table

	@property
	def group_vars(self):
		return list(self._keys)

	@property
	def n_groups(self):
		return len(self._groups)

	def group_keys(self):
		"""One row per group holding its key values."""
		firsts = [rows[0] for rows in self._groups]
		return self._table.select(list(self._keys))._take_rows(firsts)

	def ungroup(self):
		return self._table

	def summarize(self, env=None, **named_exprs):
		"""
		One row per group: key columns first, then one column per summary.
		`n()` inside an expression is the group's row count.

		Examples
		--------
		>>> t.group_by("country").summarize(avg=col("estimate").mean(skip_missing=True), rows=n())
		"""
		check_env(env)
		for name in named_exprs:
			if name in self._keys:
				raise TidyVectorValueError(f"Can't summarize into grouping column '{name}'")

		result = self.group_keys()
		columns = dict(result._columns)
		per_group = [
			_summarize_one(self._table._take_rows(rows), named_exprs, env)
			for rows in self._groups
		]
		for name in named_exprs:
			parts = [group[name] for group in per_group]
			dtype = None
			for part in parts:
				dtype = part.schema() if dtype is None else dtype.promote(part.schema())
			values = [v for part in parts for v in part._underlying]
			columns[name] = TidyVector(values, dtype=dtype or DataType(bool), name=name)
		return TidyTable._from_columns(columns, len(self._groups))

	summarise = summarize

	def count(self, sort=False, name="n"):
		return self._table.count(*self._keys, sort=sort, name=name)

	def pipe(self, func, *args, **kwargs):
		return func(self, *args, **kwargs)

	def __len__(self):
		return self._table.nrow

	def __repr__(self):
		return _repr_table(self._table, f"# Groups: {', '.join(self._keys)} [{len(self._groups)}]")


def subset(table, rows=None, cols=None):
	"""
	Functional form of t[rows, cols]. None takes the whole axis.

	Examples
	--------
	>>> subset(t, rows=[1, 2], cols="estimate")
	"""
	if not isinstance(table, TidyTable):
		raise TidyVectorTypeError(f"subset() needs a TidyTable, not {type(table).__name__}")
	return table._subset(rows, cols)
