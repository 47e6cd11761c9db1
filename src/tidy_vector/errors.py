class TidyVectorError(Exception):
    """Base exception for tidy-vector library."""
    pass


class TidyVectorUsageError(TidyVectorError):
    """Raised when the library is called incorrectly; never for missing data."""
    pass


class TidyVectorKeyError(TidyVectorUsageError, KeyError):
    """Raised when a column/key is missing."""
    pass


class TidyVectorTypeError(TidyVectorUsageError, TypeError):
    """Raised for invalid types in API calls."""
    pass


class TidyVectorValueError(TidyVectorUsageError, ValueError):
    """Raised for invalid values or mismatched lengths."""
    pass


class TidyVectorIndexError(TidyVectorUsageError, IndexError):
    """Raised for malformed index specs (e.g. mixed-sign subscripts)."""
    pass


class TidyVectorWarning(UserWarning):
    """Base warning for tidy-vector diagnostics."""
    pass


class PartialRecyclingWarning(TidyVectorWarning):
    """Longer object length is not a multiple of shorter object length."""
    pass


class ParsingWarning(TidyVectorWarning):
    """Some fields could not be parsed as the inferred column type."""
    pass


class EmptyAggregateWarning(TidyVectorWarning):
    """min/max of an empty (or all-skipped) input."""
    pass
