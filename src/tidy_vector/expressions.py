"""
Expression system for table verbs.

Verb arguments (filter predicates, mutate/summarize values, arrange keys) are
captured as small expression trees and evaluated later against a table's
columns. Three ways to write them:

    col("lo") > 0.5                  # builder: explicit column reference
    "lo > 0.5"                       # text, parsed with Python's ast module
    lambda t: t.lo > 0.5             # callable receiving the (sub)table

In text expressions a bare identifier means a column when the table has one
of that name; only otherwise is it looked up in the ``env`` mapping given to
the verb. Quoted text is always a literal value. ``col("x")`` and
``var("x")`` force one reading or the other.

Python's operator precedence applies to text expressions: ``&`` binds tighter
than ``>``, so write ``"lo > 0.5 and hi < 1"`` or parenthesize. ``and``,
``or`` and ``not`` are vectorized.

Nodes are structure only. Evaluation lives in ``evaluate()``.
"""

from __future__ import annotations
import ast
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from .aggregate import aggregate
from .errors import TidyVectorKeyError
from .errors import TidyVectorTypeError
from .errors import TidyVectorUsageError
from .errors import TidyVectorValueError
from .missing import NA, NA_character_, NA_integer_, NA_real_, NULL
from .typing import DataType
from .vector import TidyVector, _as_vector, c, combine


class BinaryOperator(Enum):
    """Binary operators; values are the symbols combine() understands."""

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    FLOORDIV = "//"
    MOD = "%"
    POW = "**"
    EQUALS = "=="
    NOT_EQUALS = "!="
    LESS_THAN = "<"
    LESS_EQUAL = "<="
    GREATER_THAN = ">"
    GREATER_EQUAL = ">="
    AND = "&"
    OR = "|"


class UnaryOperator(Enum):
    NEG = "-"
    POS = "+"
    NOT = "!"


def _wrap(value) -> "Expr":
    """Operands of operators and helpers: expressions stay, anything else is a literal."""
    if isinstance(value, Expr):
        return value
    return Literal(value)


class Expr:
    """
    Base class for all expression nodes.

    Operators build new nodes rather than computing anything. Plain Python
    operands (including strings) become literals.
    """

    def _binary(self, op, other, reflected=False):
        if reflected:
            return BinaryOp(op, _wrap(other), self)
        return BinaryOp(op, self, _wrap(other))

    def __add__(self, other):
        return self._binary(BinaryOperator.ADD, other)

    def __radd__(self, other):
        return self._binary(BinaryOperator.ADD, other, True)

    def __sub__(self, other):
        return self._binary(BinaryOperator.SUB, other)

    def __rsub__(self, other):
        return self._binary(BinaryOperator.SUB, other, True)

    def __mul__(self, other):
        return self._binary(BinaryOperator.MUL, other)

    def __rmul__(self, other):
        return self._binary(BinaryOperator.MUL, other, True)

    def __truediv__(self, other):
        return self._binary(BinaryOperator.DIV, other)

    def __rtruediv__(self, other):
        return self._binary(BinaryOperator.DIV, other, True)

    def __floordiv__(self, other):
        return self._binary(BinaryOperator.FLOORDIV, other)

    def __rfloordiv__(self, other):
        return self._binary(BinaryOperator.FLOORDIV, other, True)

    def __mod__(self, other):
        return self._binary(BinaryOperator.MOD, other)

    def __rmod__(self, other):
        return self._binary(BinaryOperator.MOD, other, True)

    def __pow__(self, other):
        return self._binary(BinaryOperator.POW, other)

    def __rpow__(self, other):
        return self._binary(BinaryOperator.POW, other, True)

    def __eq__(self, other):
        return self._binary(BinaryOperator.EQUALS, other)

    def __ne__(self, other):
        return self._binary(BinaryOperator.NOT_EQUALS, other)

    def __lt__(self, other):
        return self._binary(BinaryOperator.LESS_THAN, other)

    def __le__(self, other):
        return self._binary(BinaryOperator.LESS_EQUAL, other)

    def __gt__(self, other):
        return self._binary(BinaryOperator.GREATER_THAN, other)

    def __ge__(self, other):
        return self._binary(BinaryOperator.GREATER_EQUAL, other)

    def __and__(self, other):
        return self._binary(BinaryOperator.AND, other)

    def __rand__(self, other):
        return self._binary(BinaryOperator.AND, other, True)

    def __or__(self, other):
        return self._binary(BinaryOperator.OR, other)

    def __ror__(self, other):
        return self._binary(BinaryOperator.OR, other, True)

    def __neg__(self):
        return UnaryOp(UnaryOperator.NEG, self)

    def __pos__(self):
        return UnaryOp(UnaryOperator.POS, self)

    def __invert__(self):
        return UnaryOp(UnaryOperator.NOT, self)

    def __abs__(self):
        return Call("abs", (self,))

    __hash__ = None

    def __bool__(self):
        raise TidyVectorTypeError(
            "An expression has no truth value until it is evaluated; "
            "use & | ~ instead of and/or/not, and avoid chained comparisons"
        )

    def __repr__(self):
        return f"<Expr {render(self)}>"

    # Aggregation shortcuts: col("x").mean(skip_missing=True)
    def _agg(self, name, skip_missing):
        return Call(name, (self,), (("skip_missing", Literal(skip_missing)),))

    def count(self, skip_missing=False):
        return self._agg("count", skip_missing)

    def sum(self, skip_missing=False):
        return self._agg("sum", skip_missing)

    def mean(self, skip_missing=False):
        return self._agg("mean", skip_missing)

    def median(self, skip_missing=False):
        return self._agg("median", skip_missing)

    def min(self, skip_missing=False):
        return self._agg("min", skip_missing)

    def max(self, skip_missing=False):
        return self._agg("max", skip_missing)

    def sd(self, skip_missing=False):
        return self._agg("sd", skip_missing)

    def is_na(self):
        return Call("is_na", (self,))

    def between(self, left, right):
        return Call("between", (self, _wrap(left), _wrap(right)))

    def desc(self):
        return Desc(self)


@dataclass(frozen=True, eq=False, repr=False)
class ColumnRef(Expr):
    """A column of the table being operated on (R's .data$name)."""

    name: str


@dataclass(frozen=True, eq=False, repr=False)
class EnvRef(Expr):
    """A variable from the caller's env mapping (R's .env$name)."""

    name: str


@dataclass(frozen=True, eq=False, repr=False)
class Symbol(Expr):
    """A bare identifier from a text expression: column first, then env."""

    name: str


@dataclass(frozen=True, eq=False, repr=False)
class Literal(Expr):
    """A constant: scalar, NA sentinel, sequence, or TidyVector."""

    value: Any


@dataclass(frozen=True, eq=False, repr=False)
class BinaryOp(Expr):
    operator: BinaryOperator
    left: Expr
    right: Expr


@dataclass(frozen=True, eq=False, repr=False)
class UnaryOp(Expr):
    operator: UnaryOperator
    operand: Expr


@dataclass(frozen=True, eq=False, repr=False)
class Call(Expr):
    """A named function from FUNCTIONS applied to argument expressions."""

    func: str
    args: Tuple[Expr, ...] = ()
    kwargs: Tuple[Tuple[str, Expr], ...] = ()


@dataclass(frozen=True, eq=False, repr=False)
class Desc(Expr):
    """Descending sort marker; only arrange() understands it."""

    operand: Expr


@dataclass(frozen=True, eq=False, repr=False)
class FunctionExpr(Expr):
    """A Python callable given the (sub)table at evaluation time."""

    func: Callable


# ============================================================
# Public builders
# ============================================================

def col(name: str) -> ColumnRef:
    """Reference a column by name; never falls back to a variable."""
    if not isinstance(name, str):
        raise TidyVectorTypeError(f"col() needs a column name, not {type(name).__name__}")
    return ColumnRef(name)


def var(name: str) -> EnvRef:
    """Reference a variable in the verb's env mapping; never a column."""
    if not isinstance(name, str):
        raise TidyVectorTypeError(f"var() needs a variable name, not {type(name).__name__}")
    return EnvRef(name)


def lit(value) -> Literal:
    return Literal(value)


def call(func: str, *args, **kwargs) -> Call:
    if func not in FUNCTIONS:
        raise TidyVectorValueError(f"Unknown function '{func}'")
    return Call(func, tuple(_wrap(a) for a in args), tuple((k, _wrap(v)) for k, v in kwargs.items()))


def n() -> Call:
    """Number of rows in the current group (or table)."""
    return Call("n")


def mean(x, skip_missing=False) -> Call:
    return _wrap(x).mean(skip_missing)


def median(x, skip_missing=False) -> Call:
    return _wrap(x).median(skip_missing)


def sd(x, skip_missing=False) -> Call:
    return _wrap(x).sd(skip_missing)


def n_distinct(x) -> Call:
    return Call("n_distinct", (_wrap(x),))


def if_else(condition, true, false, missing=None) -> Call:
    """Elementwise choice; a missing condition gives `missing` (NA by default)."""
    if missing is None:
        return call("if_else", condition, true, false)
    return call("if_else", condition, true, false, missing)


def between(x, left, right) -> Call:
    return _wrap(x).between(left, right)


def desc(x) -> Desc:
    """Sort key in descending order. A string names a column."""
    if isinstance(x, str):
        x = ColumnRef(x)
    return Desc(_wrap(x))


def as_expr(value) -> Expr:
    """
    Coerce a verb argument to an expression. Strings are parsed as
    expressions, callables are deferred, anything else is a literal.
    """
    if isinstance(value, Expr):
        return value
    if isinstance(value, str):
        return parse_expr(value)
    if callable(value) and not isinstance(value, TidyVector):
        return FunctionExpr(value)
    return Literal(value)


# ============================================================
# Text parsing
# ============================================================

_AST_BINOPS = {
    ast.Add: BinaryOperator.ADD,
    ast.Sub: BinaryOperator.SUB,
    ast.Mult: BinaryOperator.MUL,
    ast.Div: BinaryOperator.DIV,
    ast.FloorDiv: BinaryOperator.FLOORDIV,
    ast.Mod: BinaryOperator.MOD,
    ast.Pow: BinaryOperator.POW,
    ast.BitAnd: BinaryOperator.AND,
    ast.BitOr: BinaryOperator.OR,
}

_AST_CMPOPS = {
    ast.Eq: BinaryOperator.EQUALS,
    ast.NotEq: BinaryOperator.NOT_EQUALS,
    ast.Lt: BinaryOperator.LESS_THAN,
    ast.LtE: BinaryOperator.LESS_EQUAL,
    ast.Gt: BinaryOperator.GREATER_THAN,
    ast.GtE: BinaryOperator.GREATER_EQUAL,
}

_AST_UNARY = {
    ast.USub: UnaryOperator.NEG,
    ast.UAdd: UnaryOperator.POS,
    ast.Not: UnaryOperator.NOT,
    ast.Invert: UnaryOperator.NOT,
}

# R spellings usable inside text expressions
_R_CONSTANTS = {
    "TRUE": True,
    "FALSE": False,
    "NA": NA,
    "NA_integer_": NA_integer_,
    "NA_real_": NA_real_,
    "NA_character_": NA_character_,
    "NULL": NULL,
    "Inf": math.inf,
    "NaN": math.nan,
}


def parse_expr(text: str) -> Expr:
    """
    Parse a text expression into an expression tree.

    Examples
    --------
    >>> render(parse_expr("lo > 0.5 and country == 'AGO'"))
    "((lo > 0.5) & (country == 'AGO'))"
    """
    try:
        tree = ast.parse(text.strip(), mode="eval")
    except SyntaxError as e:
        raise TidyVectorValueError(f"Cannot parse expression {text!r}: {e.msg}") from None
    return _from_ast(tree.body, text)


def _from_ast(node, text) -> Expr:
    if isinstance(node, ast.Constant):
        if node.value is None:
            return Literal(NA)
        if isinstance(node.value, (bool, int, float, str)):
            return Literal(node.value)
        raise TidyVectorValueError(f"Unsupported constant {node.value!r} in {text!r}")

    if isinstance(node, ast.Name):
        if node.id in _R_CONSTANTS:
            return Literal(_R_CONSTANTS[node.id])
        return Symbol(node.id)

    if isinstance(node, ast.BinOp):
        op = _AST_BINOPS.get(type(node.op))
        if op is None:
            raise TidyVectorValueError(f"Unsupported operator {type(node.op).__name__} in {text!r}")
        return BinaryOp(op, _from_ast(node.left, text), _from_ast(node.right, text))

    if isinstance(node, ast.Compare):
        # a < b < c  ->  (a < b) & (b < c)
        parts = []
        left = _from_ast(node.left, text)
        for op_node, right_node in zip(node.ops, node.comparators):
            op = _AST_CMPOPS.get(type(op_node))
            if op is None:
                raise TidyVectorValueError(f"Unsupported comparison {type(op_node).__name__} in {text!r}")
            right = _from_ast(right_node, text)
            parts.append(BinaryOp(op, left, right))
            left = right
        result = parts[0]
        for part in parts[1:]:
            result = BinaryOp(BinaryOperator.AND, result, part)
        return result

    if isinstance(node, ast.BoolOp):
        op = BinaryOperator.AND if isinstance(node.op, ast.And) else BinaryOperator.OR
        values = [_from_ast(v, text) for v in node.values]
        result = values[0]
        for value in values[1:]:
            result = BinaryOp(op, result, value)
        return result

    if isinstance(node, ast.UnaryOp):
        op = _AST_UNARY[type(node.op)]
        operand = _from_ast(node.operand, text)
        # fold -1 into a literal so select("-1") and t[-1] read the same way
        if op is UnaryOperator.NEG and isinstance(operand, Literal) and isinstance(operand.value, (int, float)) \
                and not isinstance(operand.value, bool):
            return Literal(-operand.value)
        return UnaryOp(op, operand)

    if isinstance(node, (ast.List, ast.Tuple)):
        return Call("c", tuple(_from_ast(e, text) for e in node.elts))

    if isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name):
            raise TidyVectorValueError(f"Only plain function names can be called in {text!r}")
        name = node.func.id
        args = tuple(_from_ast(a, text) for a in node.args)
        kwargs = tuple((k.arg, _from_ast(k.value, text)) for k in node.keywords)
        if name in ("col", "var"):
            if len(args) != 1 or not isinstance(args[0], Literal) or not isinstance(args[0].value, str):
                raise TidyVectorValueError(f"{name}() takes one quoted name in {text!r}")
            return ColumnRef(args[0].value) if name == "col" else EnvRef(args[0].value)
        if name == "desc":
            if len(args) != 1:
                raise TidyVectorValueError(f"desc() takes one argument in {text!r}")
            return Desc(args[0])
        if name not in FUNCTIONS:
            raise TidyVectorValueError(f"Unknown function '{name}' in {text!r}")
        return Call(name, args, kwargs)

    raise TidyVectorValueError(f"Unsupported syntax {type(node).__name__} in {text!r}")


def render(expr: Expr) -> str:
    """Readable text for an expression tree."""
    if isinstance(expr, (ColumnRef, Symbol)):
        return expr.name
    if isinstance(expr, EnvRef):
        return f"var({expr.name!r})"
    if isinstance(expr, Literal):
        return repr(expr.value)
    if isinstance(expr, BinaryOp):
        return f"({render(expr.left)} {expr.operator.value} {render(expr.right)})"
    if isinstance(expr, UnaryOp):
        return f"{expr.operator.value}{render(expr.operand)}"
    if isinstance(expr, Call):
        parts = [render(a) for a in expr.args]
        parts += [f"{k}={render(v)}" for k, v in expr.kwargs]
        return f"{expr.func}({', '.join(parts)})"
    if isinstance(expr, Desc):
        return f"desc({render(expr.operand)})"
    if isinstance(expr, FunctionExpr):
        return getattr(expr.func, "__name__", "<function>")
    return type(expr).__name__


# ============================================================
# Evaluation
# ============================================================

def check_env(env) -> None:
    """`env` is a reserved verb argument and must be a mapping of names to values."""
    if env is not None and not isinstance(env, Mapping):
        raise TidyVectorTypeError(
            f"env must be a mapping of variable names, not {type(env).__name__}; "
            "'env' is reserved and cannot name a column"
        )


class DataMask:
    """
    Name resolution for one evaluation: table columns shadow env variables.

    `extra` holds values computed earlier in the same verb call (summarize
    results), which shadow both.
    """

    def __init__(self, table, env: Optional[Mapping[str, Any]] = None, extra: Optional[Dict[str, TidyVector]] = None):
        check_env(env)
        self.table = table
        self.env = env if env is not None else {}
        self.extra = dict(extra) if extra else {}

    @property
    def nrow(self) -> int:
        return self.table.nrow

    def has_column(self, name: str) -> bool:
        return name in self.extra or self.table.has_column(name)

    def column(self, name: str) -> TidyVector:
        if name in self.extra:
            return self.extra[name]
        if not self.table.has_column(name):
            raise TidyVectorKeyError(f"Column '{name}' not found")
        return self.table.pull(name)

    def variable(self, name: str):
        try:
            return self.env[name]
        except KeyError:
            raise TidyVectorKeyError(f"Object '{name}' not found in env") from None


def evaluate(expr: Expr, mask: DataMask) -> TidyVector:
    """Evaluate an expression tree against a data mask; always returns a TidyVector."""
    if isinstance(expr, ColumnRef):
        return mask.column(expr.name)
    if isinstance(expr, EnvRef):
        return _as_vector(mask.variable(expr.name))
    if isinstance(expr, Symbol):
        if mask.has_column(expr.name):
            return mask.column(expr.name)
        if expr.name in mask.env:
            return _as_vector(mask.env[expr.name])
        raise TidyVectorKeyError(f"Object '{expr.name}' not found: no such column or variable")
    if isinstance(expr, Literal):
        return _as_vector(expr.value)
    if isinstance(expr, BinaryOp):
        return combine(evaluate(expr.left, mask), evaluate(expr.right, mask), expr.operator.value)
    if isinstance(expr, UnaryOp):
        operand = evaluate(expr.operand, mask)
        if expr.operator is UnaryOperator.NEG:
            return -operand
        if expr.operator is UnaryOperator.POS:
            return +operand
        return ~operand
    if isinstance(expr, Call):
        args = [evaluate(a, mask) for a in expr.args]
        kwargs = {k: (v.value if isinstance(v, Literal) else evaluate(v, mask)) for k, v in expr.kwargs}
        try:
            return FUNCTIONS[expr.func](mask, *args, **kwargs)
        except TypeError as e:
            if isinstance(e, TidyVectorUsageError):
                raise
            raise TidyVectorTypeError(f"Bad arguments to {expr.func}(): {e}") from None
    if isinstance(expr, Desc):
        raise TidyVectorUsageError("desc() is only meaningful as an arrange() key")
    if isinstance(expr, FunctionExpr):
        result = expr.func(mask.table)
        if isinstance(result, Expr):
            return evaluate(result, mask)
        return _as_vector(result)
    raise TidyVectorTypeError(f"Cannot evaluate {type(expr).__name__}")


# ============================================================
# Functions callable inside expressions
# ============================================================

def _flag(value) -> bool:
    if isinstance(value, TidyVector):
        value = value.item()
    if not isinstance(value, bool):
        raise TidyVectorTypeError(f"Expected TRUE or FALSE, not {value!r}")
    return value


def _aggregate_fn(name):
    def fn(mask, x, skip_missing=False, na_rm=None):
        if na_rm is not None:
            skip_missing = na_rm
        return aggregate(x, name, skip_missing=_flag(skip_missing))
    fn.__name__ = name
    return fn


def _elementwise(func, kind=float):
    """Lift a numeric scalar function over a vector, keeping NA."""
    def fn(mask, x, *args):
        if x.schema().kind is str:
            raise TidyVectorTypeError("non-numeric argument to mathematical function")
        extra = [a.item() if isinstance(a, TidyVector) else a for a in args]
        return TidyVector(
            tuple(None if v is None else func(v, *extra) for v in x),
            dtype=DataType(kind),
        )
    return fn


def _sqrt(v):
    return math.sqrt(v) if v >= 0 else math.nan


def _log(v, base=math.e):
    if v != v or v < 0:
        return math.nan
    if v == 0:
        return -math.inf
    if math.isinf(v):
        return math.inf
    return math.log(v, base)


def _exp(v):
    try:
        return math.exp(v)
    except OverflowError:
        return math.inf


def _round(v, digits=0):
    if isinstance(v, float) and (math.isnan(v) or math.isinf(v)):
        return v
    return float(round(v, int(digits)))


def _abs(mask, x):
    return abs(x)


def _n(mask):
    return TidyVector((mask.nrow,), dtype=DataType(int))


def _n_distinct(mask, x):
    return TidyVector((len(x.unique()),), dtype=DataType(int))


def _is_na_fn(mask, x):
    return x.is_na()


def _c_fn(mask, *parts):
    result = c(*parts)
    return TidyVector(()) if result is NULL else result


def _between(mask, x, left, right):
    return combine(combine(x, left, ">="), combine(x, right, "<="), "&")


def _if_else(mask, condition, true, false, missing=None):
    if condition.schema().kind is not bool:
        raise TidyVectorTypeError("if_else() condition must be a logical vector")
    branches = [true, false] + ([missing] if missing is not None else [])
    dtype = branches[0].schema()
    for b in branches[1:]:
        dtype = dtype.promote(b.schema())
    n_out = max(len(condition), *(len(b) for b in branches))
    for b in (condition, *branches):
        if len(b) not in (1, n_out):
            raise TidyVectorValueError(
                f"if_else() arguments must have length 1 or {n_out}, not {len(b)}"
            )
    out = []
    for i in range(n_out):
        flag = condition._underlying[i % len(condition)]
        if flag is None:
            out.append(None if missing is None else missing._underlying[i % len(missing)])
        elif flag:
            out.append(true._underlying[i % len(true)])
        else:
            out.append(false._underlying[i % len(false)])
    return TidyVector(out, dtype=dtype.with_nullable(False))


FUNCTIONS: Dict[str, Callable[..., TidyVector]] = {
    "n": _n,
    "count": _aggregate_fn("count"),
    "sum": _aggregate_fn("sum"),
    "mean": _aggregate_fn("mean"),
    "median": _aggregate_fn("median"),
    "min": _aggregate_fn("min"),
    "max": _aggregate_fn("max"),
    "sd": _aggregate_fn("sd"),
    "n_distinct": _n_distinct,
    "is_na": _is_na_fn,
    "abs": _abs,
    "sqrt": _elementwise(_sqrt),
    "log": _elementwise(_log),
    "exp": _elementwise(_exp),
    "round": _elementwise(_round),
    "if_else": _if_else,
    "between": _between,
    "c": _c_fn,
}
