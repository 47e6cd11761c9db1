"""Display and repr logic for TidyVector and TidyTable."""

from __future__ import annotations
import math
from typing import List, Optional

from .config import MAX_PRINT_COLS
from .config import MAX_PRINT_ELEMENTS
from .config import MAX_PRINT_ROWS
from .typing import KIND_ABBREV


LINE_WIDTH = 80


def _needs_quoting(name: str) -> bool:
	"""A name needs quoting if it contains anything outside [A-Za-z0-9_.]
	OR has leading/trailing whitespace OR starts with a digit."""
	if not name:
		return True
	if name != name.strip():
		return True
	if name[0].isdigit():
		return True
	return not all(c.isalnum() or c in "_." for c in name)


def _format_value(v, kind, quote=False) -> str:
	if v is None:
		return "NA"
	if kind is bool:
		return "TRUE" if v else "FALSE"
	if kind is float:
		if math.isnan(v):
			return "NaN"
		if math.isinf(v):
			return "Inf" if v > 0 else "-Inf"
		return format(v, ".7g")
	if kind is str and quote:
		return '"' + v.replace("\\", "\\\\").replace('"', '\\"') + '"'
	return str(v)


def _format_column(col, limit: Optional[int] = None, quote=False) -> List[str]:
	"""Returns a list of strings representing that column, truncated for display."""
	vals = col._underlying if limit is None else col._underlying[:limit]
	kind = col._dtype.kind
	out = [_format_value(v, kind, quote) for v in vals]

	# Align: character left, everything else right
	max_len = max(len(s) for s in out) if out else 0
	if kind is str:
		return [s.ljust(max_len) for s in out]
	return [s.rjust(max_len) for s in out]


def _repr_vector(v) -> str:
	"""R-style repr: `[1] 1 2 NA`, wrapped with the index of each line's first element."""
	n = len(v)
	if n == 0:
		return f"{v.type_name}(0)"

	shown = min(n, MAX_PRINT_ELEMENTS)
	formatted = _format_column(v, shown, quote=True)
	width = len(formatted[0])

	label_width = len(f"[{shown}]")
	per_line = max(1, (LINE_WIDTH - label_width) // (width + 1))

	lines = []
	for start in range(0, shown, per_line):
		label = f"[{start + 1}]".rjust(label_width)
		lines.append((label + " " + " ".join(formatted[start:start + per_line])).rstrip())
	if shown < n:
		lines.append(f" [ omitted {n - shown} entries ]")
	return "\n".join(lines)


def _header_name(name: str) -> str:
	return f"`{name}`" if _needs_quoting(name) else name


def _plural(count, word):
	return f"{count} more {word}" + ("" if count == 1 else "s")


def _repr_table(tbl, group_line: Optional[str] = None) -> str:
	"""Tibble-style repr: dimension line, names, <type> row, numbered rows."""
	names = list(tbl._columns)
	nrow = tbl.nrow
	ncol = len(names)

	lines = [f"# A tibble: {nrow} × {ncol}"]
	if group_line:
		lines.append(group_line)
	if ncol == 0:
		return "\n".join(lines)

	shown_cols = names[:MAX_PRINT_COLS]
	hidden_cols = names[MAX_PRINT_COLS:]
	shown_rows = min(nrow, MAX_PRINT_ROWS)

	row_labels = [str(i + 1) for i in range(shown_rows)]
	label_width = max((len(s) for s in row_labels), default=0)

	header, types, bodies = [], [], []
	for name in shown_cols:
		col = tbl._columns[name]
		kind = col._dtype.kind
		body = _format_column(col, shown_rows)
		head = _header_name(name)
		type_label = f"<{KIND_ABBREV[kind]}>"
		w = max([len(head), len(type_label)] + [len(s) for s in body])
		just = str.ljust if kind is str else str.rjust
		header.append(just(head, w))
		types.append(just(type_label, w))
		bodies.append([just(s, w) for s in body])

	pad = " " * label_width
	lines.append(pad + " " + " ".join(header))
	lines.append(pad + " " + " ".join(types))
	for r in range(shown_rows):
		lines.append(row_labels[r].ljust(label_width) + " " + " ".join(b[r] for b in bodies))

	if shown_rows < nrow:
		lines.append(f"# ... with {_plural(nrow - shown_rows, 'row')}")
	if hidden_cols:
		described = ", ".join(
			f"{_header_name(name)} <{KIND_ABBREV[tbl._columns[name]._dtype.kind]}>"
			for name in hidden_cols
		)
		lines.append(f"# ... with {_plural(len(hidden_cols), 'variable')}: {described}")
	return "\n".join(lines)


def _printr(obj) -> str:
	"""Entry point used by TidyVector.__repr__ and TidyTable.__repr__."""
	if hasattr(obj, "_columns"):
		return _repr_table(obj)
	return _repr_vector(obj)
