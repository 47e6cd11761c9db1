"""
Subscript resolution.

Every index spec (int, slice, list, logical mask, integer or logical
TidyVector) is reduced to a list of 0-based positions, where ``None`` stands
for "emit a missing element here". Vectors and table rows use the lenient
rules: out-of-range positions and NA mask entries become ``None``. Table
columns use ``strict=True``: those same conditions raise, since a column that
does not exist cannot be conjured up as missing data.
"""

import math

from .errors import TidyVectorIndexError, TidyVectorKeyError
from .missing import _NAType


def _truncate(value):
	"""R truncates double subscripts toward zero; NaN acts as NA."""
	if value is None:
		return None
	if isinstance(value, float):
		if math.isnan(value):
			return None
		if math.isinf(value):
			raise TidyVectorIndexError(f"Invalid subscript {value!r}")
		return int(value)
	return value


def _slice_positions(s: slice, length: int):
	"""1-based inclusive slice: v[2:4] is elements 2, 3 and 4."""
	step = 1 if s.step is None else s.step
	if not isinstance(step, int) or step <= 0:
		raise TidyVectorIndexError(f"Slice step must be a positive integer, not {s.step!r}")
	start = 1 if s.start is None else s.start
	stop = length if s.stop is None else s.stop
	for bound in (s.start, s.stop):
		if bound is not None and (not isinstance(bound, int) or isinstance(bound, bool) or bound < 1):
			raise TidyVectorIndexError(
				f"Slice bounds are 1-based positions and must be >= 1, not {bound!r}"
			)
	if start <= stop:
		return list(range(start, stop + 1, step))
	if s.stop is None:
		# open end past the last element: nothing left to take
		return []
	return list(range(start, stop - 1, -step))


def _classify(values):
	"""Kind of a Python list used as a subscript: bool, int, or str."""
	kinds = set()
	typed_na = False
	for v in values:
		if v is None:
			continue
		if isinstance(v, _NAType):
			# a bare NA takes the kind of its neighbours, as in c(NA, 1)
			typed_na = typed_na or v.kind is not bool
		elif isinstance(v, bool):
			kinds.add(bool)
		elif isinstance(v, (int, float)):
			kinds.add(int)
		elif isinstance(v, str):
			kinds.add(str)
		else:
			raise TidyVectorIndexError(f"Invalid subscript element of type {type(v).__name__}")
	if not kinds:
		# [] selects nothing; [None, None] behaves like a logical NA mask
		return bool if values and not typed_na else int
	if len(kinds) > 1:
		raise TidyVectorIndexError(
			f"Subscript mixes incompatible kinds: {sorted(k.__name__ for k in kinds)}"
		)
	return kinds.pop()


def normalize_spec(spec, length):
	"""Return (values, kind) for any supported subscript."""
	from .vector import TidyVector

	if isinstance(spec, bool):
		return [spec], bool
	if isinstance(spec, _NAType):
		return [None], (bool if spec.kind is bool else int)
	if isinstance(spec, int):
		return [spec], int
	if isinstance(spec, float):
		return [_truncate(spec)], int
	if isinstance(spec, str):
		return [spec], str
	if isinstance(spec, slice):
		return _slice_positions(spec, length), int
	if isinstance(spec, range):
		return list(spec), int
	if isinstance(spec, TidyVector):
		kind = spec.schema().kind
		values = list(spec._underlying)
		if kind is float:
			return [_truncate(v) for v in values], int
		return values, kind
	if isinstance(spec, (list, tuple)):
		values = [None if isinstance(v, _NAType) else v for v in spec]
		kind = _classify(spec)
		if kind is int:
			values = [_truncate(v) for v in values]
		return values, kind
	raise TidyVectorIndexError(
		f"Invalid subscript type '{type(spec).__name__}'; use an int, slice, "
		"list of ints, logical mask, or TidyVector"
	)


def _resolve_integers(values, length, strict):
	has_pos = any(v is not None and v > 0 for v in values)
	has_neg = any(v is not None and v < 0 for v in values)
	if has_pos and has_neg:
		raise TidyVectorIndexError("Can't mix positive and negative subscripts")

	if has_neg:
		if any(v is None for v in values):
			raise TidyVectorIndexError("Can't mix missing and negative subscripts")
		excluded = set()
		for v in values:
			if v == 0:
				continue
			if strict and -v > length:
				raise TidyVectorKeyError(
					f"Can't negate location {-v}; there are only {length}"
				)
			excluded.add(-v - 1)
		return [p for p in range(length) if p not in excluded]

	out = []
	for v in values:
		if v is None:
			if strict:
				raise TidyVectorIndexError("Subscript can't contain missing values")
			out.append(None)
		elif v == 0:
			continue
		elif v <= length:
			out.append(v - 1)
		else:
			if strict:
				raise TidyVectorKeyError(
					f"Can't subset past the end: location {v} doesn't exist; there are only {length}"
				)
			out.append(None)
	return out


def _resolve_mask(values, length, strict):
	m = len(values)
	if m == 0:
		return []
	if strict and m > length:
		raise TidyVectorKeyError(
			f"Logical subscript of length {m} is longer than {length}"
		)
	n = max(length, m)
	out = []
	for i in range(n):
		flag = values[i % m]
		if flag is None:
			if strict:
				raise TidyVectorIndexError("Logical subscript can't contain missing values")
			out.append(None)
		elif flag:
			out.append(i if i < length else None)
	return out


def resolve_positions(spec, length, strict=False):
	"""
	Resolve a 1-based subscript against a sequence of `length`.

	Returns a list of 0-based positions, with None where the result holds a
	missing element. Raises TidyVectorIndexError for malformed specs.

	Examples
	--------
	>>> resolve_positions([3, 1, 1], 3)
	[2, 0, 0]
	>>> resolve_positions(-2, 3)
	[0, 2]
	>>> resolve_positions([True, None], 3)
	[0, None, 2]
	>>> resolve_positions(5, 3)
	[None]
	"""
	values, kind = normalize_spec(spec, length)
	if kind is bool:
		return _resolve_mask(values, length, strict)
	if kind is str:
		raise TidyVectorIndexError("Character subscripts are only supported for table columns")
	return _resolve_integers(values, length, strict)
