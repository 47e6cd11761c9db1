"""
DataType system for TidyVector / TidyTable.

Pure metadata design:
  - DataType describes element semantics (kind + nullable flag)
  - Missing slots live on TidyVector instances as None, not in DataType
  - Promotion is functional (immutable DataType instances)
  - The kind ladder is logical < integer < double < character
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Type
import math
import re

from .errors import TidyVectorTypeError
from .missing import _NAType


# Narrowest first; promotion always moves right.
KIND_LADDER = (bool, int, float, str)

KIND_NAMES = {
    bool: "logical",
    int: "integer",
    float: "double",
    str: "character",
}

KIND_ABBREV = {
    bool: "lgl",
    int: "int",
    float: "dbl",
    str: "chr",
}

_NAME_TO_KIND = {
    "logical": bool, "lgl": bool, "bool": bool,
    "integer": int, "int": int,
    "double": float, "dbl": float, "float": float, "numeric": float,
    "character": str, "chr": str, "str": str, "string": str,
}


@dataclass(frozen=True)
class DataType:
    """
    Describes the element type of a TidyVector.

    Attributes
    ----------
    kind : Type
        One of bool, int, float, str
    nullable : bool
        Whether the vector holds missing values

    Examples
    --------
    >>> DataType(int)
    <integer>
    >>> DataType(int, nullable=True)
    <integer nullable>
    >>> DataType(int).promote_with(2.5)
    <double>
    """

    kind: Type[Any]
    nullable: bool = False

    def __post_init__(self):
        if self.kind not in KIND_LADDER:
            raise TidyVectorTypeError(
                f"Unsupported element type {getattr(self.kind, '__name__', self.kind)!s}; "
                "expected one of logical, integer, double, character"
            )

    def __repr__(self):
        if self.nullable:
            return f"<{self.type_name} nullable>"
        return f"<{self.type_name}>"

    @property
    def type_name(self) -> str:
        return KIND_NAMES[self.kind]

    @property
    def abbrev(self) -> str:
        return KIND_ABBREV[self.kind]

    @property
    def rank(self) -> int:
        return KIND_LADDER.index(self.kind)

    @property
    def is_numeric(self) -> bool:
        """True for logical, integer and double (R treats logicals as numbers)."""
        return self.kind is not str

    def with_nullable(self, nullable: bool = True) -> "DataType":
        if nullable == self.nullable:
            return self
        return DataType(self.kind, nullable)

    def promote(self, other: "DataType") -> "DataType":
        """Smallest DataType that holds values of both self and other."""
        kind = self.kind if self.rank >= other.rank else other.kind
        return DataType(kind, self.nullable or other.nullable)

    def promote_with(self, value: Any) -> "DataType":
        """
        Promote this DataType to accommodate a new Python value.

        Never mutates; always returns new DataType.
        """
        if value is None:
            return self.with_nullable(True)
        if isinstance(value, _NAType):
            return self.promote(DataType(value.kind, nullable=True))
        if isinstance(value, float) and math.isnan(value):
            return self.promote(DataType(float))
        return self.promote(DataType(infer_kind(value)))


def as_datatype(dtype) -> Optional[DataType]:
    """Accept a DataType, a Python type, or an R type name."""
    if dtype is None or isinstance(dtype, DataType):
        return dtype
    if isinstance(dtype, str):
        try:
            return DataType(_NAME_TO_KIND[dtype.lower()])
        except KeyError:
            raise TidyVectorTypeError(f"Unknown type name '{dtype}'") from None
    return DataType(dtype)


def infer_kind(value: Any) -> Optional[Type]:
    """
    Infer the element kind for a single scalar.

    Returns None for None; the sentinel's own kind for typed NA values.
    """
    if value is None:
        return None
    if isinstance(value, _NAType):
        return value.kind

    # Check bool BEFORE int (bool is subclass of int)
    if isinstance(value, bool):
        return bool
    if isinstance(value, int):
        return int
    if isinstance(value, float):
        return float
    if isinstance(value, str):
        return str

    raise TidyVectorTypeError(
        f"Unsupported element of type {type(value).__name__}: {value!r}"
    )


def infer_dtype(values: Iterable[Any]) -> DataType:
    """
    Infer a DataType from an iterable of Python scalars.

    An empty or all-missing input is logical, as in R.

    Examples
    --------
    >>> infer_dtype([1, 2, 3])
    <integer>
    >>> infer_dtype([1, 2.5, 3])
    <double>
    >>> infer_dtype([1, None, 3])
    <integer nullable>
    >>> infer_dtype([1, "a"])
    <character>
    """
    dtype = DataType(bool)
    for v in values:
        dtype = dtype.promote_with(v)
    return dtype


def format_scalar(value: Any) -> str:
    """R-style text for a scalar: TRUE/FALSE, 15 significant digits, NA."""
    if value is None or isinstance(value, _NAType):
        return "NA"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Inf" if value > 0 else "-Inf"
        return format(value, ".15g")
    return str(value)


def coerce_scalar(value: Any, dtype: DataType) -> Any:
    """
    Convert a scalar up the kind ladder into dtype.kind.

    Missing values become None. Narrowing (e.g. 2.5 into an integer vector)
    is a TypeError; use TidyVector.cast() for lossy conversions.
    """
    if value is None or isinstance(value, _NAType):
        return None

    kind = dtype.kind
    vtype = type(value)
    if vtype is kind:
        return value

    if kind is str:
        return format_scalar(value)
    if kind is float and vtype in (int, bool):
        return float(value)
    if kind is int and vtype is bool:
        return int(value)

    raise TidyVectorTypeError(
        f"Incompatible value {value!r} for {dtype.type_name} vector"
    )


# ============================================================
# Text parsers (used by read_csv and TidyVector.cast)
# ============================================================

_TRUE_STRINGS = frozenset(("TRUE", "T", "True", "true"))
_FALSE_STRINGS = frozenset(("FALSE", "F", "False", "false"))
_INT_RE = re.compile(r"^[+-]?\d+$")
_DOUBLE_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
_SPECIAL_DOUBLES = {
    "Inf": math.inf, "+Inf": math.inf, "-Inf": -math.inf,
    "inf": math.inf, "-inf": -math.inf, "NaN": math.nan,
}


def parse_logical(text: str) -> bool:
    text = text.strip()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"not a logical: {text!r}")


def parse_integer(text: str) -> int:
    text = text.strip()
    if not _INT_RE.match(text):
        raise ValueError(f"not an integer: {text!r}")
    return int(text)


def parse_double(text: str) -> float:
    text = text.strip()
    if text in _SPECIAL_DOUBLES:
        return _SPECIAL_DOUBLES[text]
    if not _DOUBLE_RE.match(text):
        raise ValueError(f"not a double: {text!r}")
    return float(text)


def parse_character(text: str) -> str:
    return text


PARSERS = {
    bool: parse_logical,
    int: parse_integer,
    float: parse_double,
    str: parse_character,
}
