"""
Best-effort mapping from a failing judgment back to a 1-based source line.

Quotes produced by the model are free text: they may be re-wrapped, have
drifted in case, or not be present at all. Resolution order:

  1. explicit `line` on a suggested fix (first one in list order)
  2. quotation fields (`before`, `quote`, `original`, ...) searched with
     increasingly loose strategies
  3. line 1
"""
import re
from typing import Any, Iterable, List, Mapping, Optional

QUOTE_FIELDS = ("before", "quote", "original", "current_text", "match")

_WS = re.compile(r"\s+")


def _collapse(s: str) -> str:
    return _WS.sub(" ", s).strip().lower()


def _explicit_line(fix: Any) -> Optional[int]:
    if not isinstance(fix, Mapping):
        return None
    val = fix.get("line")
    if isinstance(val, bool):
        return None
    if isinstance(val, int):
        return val if val > 0 else None
    if isinstance(val, str) and val.strip().isdigit():
        n = int(val.strip())
        return n if n > 0 else None
    return None


def _line_of_offset(text: str, offset: int) -> int:
    return 1 + text.count("\n", 0, offset)


def _collapsed_search(lines: List[str], quote: str) -> Optional[int]:
    needle = _collapse(quote)
    if not needle:
        return None
    # Join non-empty collapsed lines with single spaces, remembering where
    # each one starts, then walk the cumulative lengths to the match offset.
    parts: List[str] = []
    owners: List[int] = []
    for i, line in enumerate(lines):
        c = _collapse(line)
        if c:
            parts.append(c)
            owners.append(i + 1)
    haystack = " ".join(parts)
    offset = haystack.find(needle)
    if offset < 0:
        return None
    cumulative = 0
    for part, line_no in zip(parts, owners):
        cumulative += len(part) + 1
        if cumulative > offset:
            return line_no
    return owners[-1] if owners else None


def find_line(source_text: str, quote: str) -> Optional[int]:
    """
    Locate a single quotation in source_text. Returns None when no strategy
    matches.
    """
    if not source_text or not isinstance(quote, str) or not quote.strip():
        return None

    idx = source_text.find(quote)
    if idx >= 0:
        return _line_of_offset(source_text, idx)

    lines = source_text.split("\n")
    q = quote.strip()

    for i, line in enumerate(lines):
        if q in line:
            return i + 1

    q_lower = q.lower()
    for i, line in enumerate(lines):
        if q_lower in line.lower():
            return i + 1

    return _collapsed_search(lines, quote)


def locate_line(source_text: Optional[str], suggested_fixes: Optional[Iterable[Any]]) -> int:
    fixes = list(suggested_fixes or [])

    for fx in fixes:
        line = _explicit_line(fx)
        if line is not None:
            return line

    if not source_text:
        return 1

    for name in QUOTE_FIELDS:
        for fx in fixes:
            if not isinstance(fx, Mapping):
                continue
            quote = fx.get(name)
            if not isinstance(quote, str) or not quote.strip():
                continue
            line = find_line(source_text, quote)
            if line is not None:
                return max(1, line)

    return 1
