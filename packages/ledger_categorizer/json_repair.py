"""Recover transaction rows from truncated or malformed model JSON.

The cascade runs in order and stops at the first stage that parses:

1. ``direct``: strict parse of the whole response.
2. ``bracket_balance``: close a ``"transactions": [`` array that never
   closes by cutting after the last ``}`` and appending ``]}``.
3. ``object_regex``: parse every date-anchored ``{...}`` object on its own,
   keeping those that parse.
4. ``none``: give up with an empty list.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any, NamedTuple

from .remote import extract_result_items

_ARRAY_OPEN_RE = re.compile(r'"transactions"\s*:\s*\[')
_OBJECT_RE = re.compile(r'\{\s*"date"\s*:\s*"[^"]*"[^{}]*?\}', re.DOTALL)


class RecoveredRows(NamedTuple):
    stage: str
    rows: list[dict[str, Any]]


def _rows_from(parsed: Any) -> list[dict[str, Any]]:
    try:
        items = extract_result_items(parsed)
    except ValueError:
        return []
    return [dict(item) for item in items if isinstance(item, Mapping)]


def parse_direct(text: str) -> list[dict[str, Any]]:
    return _rows_from(json.loads(text))


def close_truncated_array(text: str) -> str | None:
    """Return ``text`` with an unterminated transactions array closed.

    Returns ``None`` when there is no ``"transactions": [`` opening, when the
    array does close, or when no complete object precedes the cut. Brackets
    inside JSON strings are not counted.
    """

    m = _ARRAY_OPEN_RE.search(text)
    if m is None:
        return None
    depth = 0
    in_string = False
    escaped = False
    for ch in text[m.end() - 1 :]:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return None
    last = text.rfind("}")
    if last < m.end():
        return None
    return text[: last + 1] + "]}"


def parse_bracket_balanced(text: str) -> list[dict[str, Any]]:
    repaired = close_truncated_array(text)
    if repaired is None:
        raise ValueError("bracket repair not applicable")
    return parse_direct(repaired)


def parse_objects_individually(text: str) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for match in _OBJECT_RE.finditer(text):
        try:
            obj = json.loads(match.group(0))
        except (json.JSONDecodeError, RecursionError):
            continue
        if isinstance(obj, dict):
            rows.append(obj)
    if not rows:
        raise ValueError("no parsable transaction objects found")
    return rows


_STAGES = (
    ("direct", parse_direct),
    ("bracket_balance", parse_bracket_balanced),
    ("object_regex", parse_objects_individually),
)


def recover_transactions(text: str) -> RecoveredRows:
    """Run the repair cascade over ``text``; never raises."""

    for name, stage in _STAGES:
        try:
            return RecoveredRows(name, stage(text))
        except (ValueError, RecursionError):
            continue
    return RecoveredRows("none", [])


__all__ = [
    "RecoveredRows",
    "close_truncated_array",
    "parse_bracket_balanced",
    "parse_direct",
    "parse_objects_individually",
    "recover_transactions",
]
