"""
Missing-value and absent-container sentinels.

``NA`` and its typed siblings mark a single unknown element. They propagate:
any comparison or arithmetic that touches one gives back an NA. ``NULL``
marks the absence of a whole container and is not the same thing as a
zero-length vector.

Use identity to test for either: ``x is NULL`` or the ``is_null`` predicate.
``NA == NA`` is itself NA, never True.
"""

from .errors import TidyVectorTypeError


def _is_vector(other):
	"""Vectors and expressions: anything that is not a plain scalar or NA."""
	return not (other is None or isinstance(other, (bool, int, float, str, _NAType)))


class _NAType:
	"""One missing-value sentinel per element kind. Singleton per kind."""
	__slots__ = ('_kind',)
	_instances = {}
	_REPRS = {bool: "NA", int: "NA_integer_", float: "NA_real_", str: "NA_character_"}

	def __new__(cls, kind):
		instance = cls._instances.get(kind)
		if instance is None:
			instance = super().__new__(cls)
			instance._kind = kind
			cls._instances[kind] = instance
		return instance

	@property
	def kind(self):
		return self._kind

	def __repr__(self):
		return self._REPRS[self._kind]

	__str__ = __repr__

	def __bool__(self):
		raise TidyVectorTypeError("missing value where TRUE/FALSE needed")

	def __hash__(self):
		return hash(("NA", self._kind))

	def __copy__(self):
		return self

	def __deepcopy__(self, memo):
		return self

	def __reduce__(self):
		return (_NAType, (self._kind,))

	# Comparisons are unknown. A vector or expression operand takes over through
	# its reflected method, so the result keeps the vector's length.
	def _logical(self, other):
		if _is_vector(other):
			return NotImplemented
		return NA

	__eq__ = __ne__ = __lt__ = __le__ = __gt__ = __ge__ = _logical

	# Arithmetic stays unknown; the result kind follows the numeric ladder
	def _arith(self, other):
		if _is_vector(other):
			return NotImplemented
		if self._kind is float or isinstance(other, float) or getattr(other, 'kind', None) is float:
			return NA_real_
		return NA_integer_

	__add__ = __radd__ = __sub__ = __rsub__ = __mul__ = __rmul__ = _arith
	__floordiv__ = __rfloordiv__ = __mod__ = __rmod__ = _arith

	def _real(self, other):
		if _is_vector(other):
			return NotImplemented
		return NA_real_

	__truediv__ = __rtruediv__ = __pow__ = __rpow__ = _real

	def __neg__(self):
		return self

	__pos__ = __abs__ = __neg__

	def __invert__(self):
		return NA


NA = _NAType(bool)
NA_integer_ = _NAType(int)
NA_real_ = _NAType(float)
NA_character_ = _NAType(str)


def na_for(kind):
	"""The typed missing sentinel for an element kind."""
	return _NAType(kind)


class _AbsentContainer:
	"""``NULL``: no vector here. Distinct from any zero-length vector."""
	__slots__ = ()
	_instance = None

	def __new__(cls):
		if cls._instance is None:
			cls._instance = super().__new__(cls)
		return cls._instance

	def __repr__(self):
		return "NULL"

	__str__ = __repr__

	def __len__(self):
		return 0

	def __iter__(self):
		return iter(())

	def __bool__(self):
		raise TidyVectorTypeError("argument is of length zero")

	# Equality against NULL is never a logical answer; use is_null()
	def __eq__(self, other):
		return NA

	def __ne__(self, other):
		return NA

	def __hash__(self):
		return hash("NULL")

	def __copy__(self):
		return self

	def __deepcopy__(self, memo):
		return self

	def __reduce__(self):
		return (_AbsentContainer, ())


NULL = _AbsentContainer()


def is_null(x) -> bool:
	"""True only for the absent-container sentinel."""
	return x is NULL


def _is_missing(x) -> bool:
	"""Scalar missingness: None, any NA sentinel, or a float NaN."""
	if x is None or isinstance(x, _NAType):
		return True
	return isinstance(x, float) and x != x
