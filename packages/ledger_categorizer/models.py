"""Data models and type aliases for ``ledger_categorizer``.

Transactions enter as opaque mappings (rows produced by upstream file
parsers) and are never mutated; every classification result is a separate
immutable :class:`CategorySuggestion` attached alongside the original row.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .taxonomy import Category

# ---------------------------------------------------------------------------
# Core record and collections
# ---------------------------------------------------------------------------

TransactionRecord: TypeAlias = Mapping[str, Any]
"""A single bank row: ``{description, debit?, credit?}`` plus any extra columns.

Amounts may be numbers or numeric strings; they are coerced where read.
"""

Transactions: TypeAlias = Iterable[TransactionRecord]

SuggestionSource: TypeAlias = Literal["rule", "model"]


@dataclass(frozen=True, slots=True)
class CategorySuggestion:
    """One classification of one transaction by one pass."""

    category: Category
    subcategory: str
    suggested_ledger: str
    confidence: int
    source: SuggestionSource
    notes: str = ""


@dataclass(frozen=True, slots=True)
class CategorizedTransaction:
    """A transaction paired with the suggestion the arbiter selected.

    ``transaction`` is the caller's original mapping object, unmodified.
    """

    transaction: TransactionRecord
    suggestion: CategorySuggestion

    @property
    def category(self) -> Category:
        return self.suggestion.category

    @property
    def confidence(self) -> int:
        return self.suggestion.confidence

    def as_dict(self) -> dict[str, Any]:
        """Flatten to the enriched-row shape consumed by persistence and UI."""

        out = dict(self.transaction)
        out.update(
            {
                "category": self.suggestion.category.value,
                "subcategory": self.suggestion.subcategory,
                "suggestedLedger": self.suggestion.suggested_ledger,
                "confidence": self.suggestion.confidence,
                "source": self.suggestion.source,
                "notes": self.suggestion.notes,
            }
        )
        return out


@dataclass(frozen=True, slots=True)
class ExtractedRecord:
    """A transaction row recovered from free document text by the model."""

    id: str
    date: str
    description: str
    reference: str
    debit: float
    credit: float
    balance: float
    type: Literal["CREDIT", "DEBIT"]
    amount: float
    source: str = "pdf-ai"

    def as_transaction(self) -> dict[str, Any]:
        """Return the row shape accepted by the categorization pipeline."""

        return {
            "id": self.id,
            "date": self.date,
            "description": self.description,
            "reference": self.reference,
            "debit": self.debit,
            "credit": self.credit,
            "balance": self.balance,
            "type": self.type,
            "amount": self.amount,
            "source": self.source,
        }


# ---------------------------------------------------------------------------
# Model-output DTO
# ---------------------------------------------------------------------------


class ModelSuggestion(BaseModel):
    """Typed, validated view of one item in a classification response.

    The prompt asks for compact keys (``i``, ``cat``, ``sub``, ``led``,
    ``conf``); long-form spellings are accepted too since models drift.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    index: int = Field(validation_alias=AliasChoices("i", "index", "idx"))
    category: Category = Field(validation_alias=AliasChoices("cat", "category"))
    subcategory: str | None = Field(
        default=None, validation_alias=AliasChoices("sub", "subcategory")
    )
    ledger: str | None = Field(
        default=None, validation_alias=AliasChoices("led", "ledger", "suggestedLedger")
    )
    confidence: int = Field(ge=0, le=100, validation_alias=AliasChoices("conf", "confidence"))

    @field_validator("category", mode="before")
    @classmethod
    def _upper_category(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("subcategory", "ledger")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v or None


__all__ = [
    "TransactionRecord",
    "Transactions",
    "SuggestionSource",
    "CategorySuggestion",
    "CategorizedTransaction",
    "ExtractedRecord",
    "ModelSuggestion",
]
