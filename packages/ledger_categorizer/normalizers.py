"""Amount coercion shared by the rule engine and the document extractor."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any


def coerce_amount(raw: Any) -> float:
    """Return ``raw`` as a non-negative float; anything non-numeric becomes 0.0.

    Strings may carry thousands separators (``"1,25,000.50"``) and surrounding
    whitespace. Negative values are folded to their magnitude because the
    debit/credit columns already carry direction.
    """

    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
    else:
        s = str(raw).replace(",", "").strip()
        if not s:
            return 0.0
        try:
            value = float(Decimal(s))
        except (InvalidOperation, ValueError):
            # Decimal accepts "sNaN", which float() refuses.
            return 0.0
    if value != value or value in (float("inf"), float("-inf")):
        return 0.0
    return abs(value)


def is_inbound(transaction: Mapping[str, Any]) -> bool:
    """A transaction is inbound when its credit side is positive."""

    return coerce_amount(transaction.get("credit")) > 0


def signed_side(transaction: Mapping[str, Any]) -> tuple[str, float]:
    """Return ``("CR", credit)`` for inbound rows, else ``("DR", debit)``."""

    credit = coerce_amount(transaction.get("credit"))
    if credit > 0:
        return "CR", credit
    return "DR", coerce_amount(transaction.get("debit"))


__all__ = ["coerce_amount", "is_inbound", "signed_side"]
