"""Deterministic keyword classifier.

Total and offline: every transaction gets a suggestion, computed purely from
the lower-cased description and the direction of the amount.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import CategorySuggestion, TransactionRecord
from .normalizers import is_inbound
from .taxonomy import DEFAULT_INBOUND, DEFAULT_OUTBOUND, RULES, KeywordRule, SuggestionTemplate

RULE_NOTES = "Rule-based"


def _match(text: str, inbound: bool, rules: Sequence[KeywordRule]) -> SuggestionTemplate:
    for rule in rules:
        if rule.matches(text):
            return rule.resolve(text, inbound=inbound)
    return DEFAULT_INBOUND if inbound else DEFAULT_OUTBOUND


def classify(
    transaction: TransactionRecord, *, rules: Sequence[KeywordRule] = RULES
) -> CategorySuggestion:
    """Return the first matching rule group's suggestion for ``transaction``.

    Falls back to ``INCOME/Other Income`` for credits and
    ``EXPENSE/Other Expense`` otherwise, both at confidence 60.
    """

    text = str(transaction.get("description") or "").lower()
    tpl = _match(text, is_inbound(transaction), rules)
    return CategorySuggestion(
        category=tpl.category,
        subcategory=tpl.subcategory,
        suggested_ledger=tpl.ledger,
        confidence=tpl.confidence,
        source="rule",
        notes=RULE_NOTES,
    )


def classify_all(transactions: Iterable[TransactionRecord]) -> list[CategorySuggestion]:
    return [classify(t) for t in transactions]


__all__ = ["classify", "classify_all", "RULE_NOTES"]
