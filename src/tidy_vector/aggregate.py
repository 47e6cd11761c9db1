"""
Aggregation with an explicit missing-value policy.

``aggregate(vector, fn, skip_missing=False)`` always returns a length-1
TidyVector. With ``skip_missing=False`` a single missing element makes the
result missing. With ``skip_missing=True`` missing elements (NaN included)
are dropped first.

Empty-aggregate results, when nothing is left to aggregate:

=========  ===============================================
count      0
sum        0 (0.0 for doubles)
mean       NaN
median     NA
sd         NA (fewer than two values)
min        Inf, with an EmptyAggregateWarning
max        -Inf, with an EmptyAggregateWarning
=========  ===============================================

``sd`` is the sample (N - 1) estimator.
"""

import math
import warnings

from .errors import EmptyAggregateWarning
from .errors import TidyVectorTypeError
from .errors import TidyVectorValueError
from .missing import _is_missing
from .typing import DataType
from .vector import TidyVector
from .vector import _as_vector


def _require_numeric(kind, fn_name):
	if kind is str:
		raise TidyVectorTypeError(f"{fn_name}() needs a numeric or logical vector, not character")


def _count(values, kind):
	return len(values), int


def _sum(values, kind):
	_require_numeric(kind, "sum")
	if kind is float:
		return float(sum(values)), float
	return int(sum(values)), int


def _mean(values, kind):
	_require_numeric(kind, "mean")
	if not values:
		return math.nan, float
	return sum(values) / len(values), float


def _median(values, kind):
	_require_numeric(kind, "median")
	n = len(values)
	if n == 0:
		return None, float
	if any(isinstance(v, float) and v != v for v in values):
		return math.nan, float
	ordered = sorted(values)
	mid = n // 2
	if n % 2:
		return float(ordered[mid]), float
	return (ordered[mid - 1] + ordered[mid]) / 2, float


def _extreme(pick, empty, fn_name):
	def fn(values, kind):
		if not values:
			warnings.warn(
				f"no non-missing arguments to {fn_name}; returning {'Inf' if empty > 0 else '-Inf'}",
				EmptyAggregateWarning,
				stacklevel=4,
			)
			return empty, float
		if kind is float and any(v != v for v in values):
			return math.nan, float
		result = pick(values)
		if kind is bool:
			return int(result), int
		return result, kind
	return fn


def _sd(values, kind):
	_require_numeric(kind, "sd")
	n = len(values)
	if n <= 1:
		return None, float
	mean_val = sum(values) / n
	# two-pass: mean first, then squared deviations
	num = sum((x - mean_val) * (x - mean_val) for x in values)
	return (num / (n - 1)) ** 0.5, float


AGGREGATES = {
	"count": _count,
	"sum": _sum,
	"mean": _mean,
	"median": _median,
	"min": _extreme(min, math.inf, "min"),
	"max": _extreme(max, -math.inf, "max"),
	"sd": _sd,
}

# Result kind of each aggregate when the answer is NA
_NA_KINDS = {"count": int, "mean": float, "median": float, "sd": float}


def aggregate(vector, fn, skip_missing=False):
	"""
	Reduce a vector to a length-1 vector.

	Parameters
	----------
	vector : TidyVector (or anything combine() accepts as a vector)
	fn : str or callable
		One of "count", "sum", "mean", "median", "min", "max", "sd", or a
		callable taking a list of present values and returning a scalar.
	skip_missing : bool
		Drop missing elements before aggregating instead of returning NA.

	Examples
	--------
	>>> aggregate(TidyVector([1, 2, None]), "mean").to_list()
	[None]
	>>> aggregate(TidyVector([1, 2, None]), "mean", skip_missing=True).to_list()
	[1.5]
	"""
	vector = _as_vector(vector)
	kind = vector.schema().kind
	values = vector._underlying

	if callable(fn):
		func, fn_name = None, getattr(fn, "__name__", "aggregate")
	else:
		try:
			func, fn_name = AGGREGATES[fn], fn
		except (KeyError, TypeError):
			raise TidyVectorValueError(
				f"Unknown aggregate {fn!r}; expected one of {sorted(AGGREGATES)}"
			) from None
		if fn_name in ("sum", "mean", "median", "sd"):
			_require_numeric(kind, fn_name)

	if skip_missing:
		values = [v for v in values if not _is_missing(v)]
	elif any(v is None for v in values):
		na_kind = _NA_KINDS.get(fn_name, int if kind is bool else kind)
		if fn_name == "sum" and kind is not float:
			na_kind = int
		return TidyVector((None,), dtype=DataType(na_kind))

	if func is None:
		return TidyVector((fn(list(values)),))

	result, result_kind = func(list(values), kind)
	return TidyVector((result,), dtype=DataType(result_kind))
