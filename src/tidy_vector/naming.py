"""Column names: attribute-safe keys, collision suffixes and read_csv header repair."""

from __future__ import annotations
import re

_INVALID_RUN = re.compile(r'[^a-z0-9_]+')


def _sanitize_user_name(name) -> str | None:
	"""Key under which a column is reachable as an attribute (`t.first_name`).

	'First Name' -> 'first_name', '2019 total' -> 'c2019_total', '$$' -> None.
	"""
	key = _INVALID_RUN.sub('_', str(name).lower()).strip('_')
	if not key:
		return None
	# identifiers cannot start with a digit
	return "c" + key if key[0].isdigit() else key


def _uniquify(base: str, seen: set[str]) -> str:
	"""First of base, base__2, base__3, ... not already in `seen`."""
	candidate, i = base, 1
	while candidate in seen:
		i += 1
		candidate = f"{base}__{i}"
	return candidate


def _repair_names(names) -> list[str]:
	"""Header repair for read_csv: blank names become X1, X2, ... (1-based
	position) and duplicates get __2, __3 suffixes. Otherwise names are kept
	verbatim, spaces and case included."""
	seen = set()
	out = []
	for idx, raw in enumerate(names, start=1):
		name = raw.strip() if isinstance(raw, str) else ""
		name = _uniquify(name or f"X{idx}", seen)
		seen.add(name)
		out.append(name)
	return out
