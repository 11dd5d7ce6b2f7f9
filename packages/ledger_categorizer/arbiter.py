"""Confidence arbitration between the rule pass and the model pass."""

from __future__ import annotations

from dataclasses import replace

from .models import CategorySuggestion


def merge(
    rule_result: CategorySuggestion, model_result: CategorySuggestion | None
) -> CategorySuggestion:
    """Return the model suggestion only when it is strictly more confident.

    A missing model result or a tie keeps the rule result. The winner's
    ``source`` is stamped so provenance survives downstream.
    """

    if model_result is not None and model_result.confidence > rule_result.confidence:
        winner = model_result
        source = "model"
    else:
        winner = rule_result
        source = "rule"
    if winner.source != source:
        winner = replace(winner, source=source)
    return winner


__all__ = ["merge"]
