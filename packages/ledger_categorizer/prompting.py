# ruff: noqa: E501
"""Prompt construction for the two remote protocols.

- Classification: a system instruction enumerating the fixed taxonomy and
  the bookkeeping heuristics, plus a compact pipe-delimited batch payload.
- Extraction: a system instruction demanding a ``{"transactions": [...]}``
  document, plus the (already truncated) statement text.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import TransactionRecord
from .normalizers import signed_side
from .taxonomy import TAXONOMY

DESCRIPTION_LIMIT: int = 100


def _format_amount(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def build_classification_instructions() -> str:
    """Return the system instruction for batch classification."""

    category_lines = "\n".join(f"- {key}: {entry.description}" for key, entry in TAXONOMY.items())
    return f"""You are an expert Indian accountant categorizing bank transactions for Tally Prime.

CATEGORIES (use exact keys):
{category_lines}

INDIAN BANKING PATTERNS:
- "UPI" = Unified Payment Interface (categorize by merchant/purpose, NOT as TRANSFER unless self-transfer)
- "NEFT/RTGS/IMPS" = Bank transfers
- "ATM" = Cash withdrawal (EXPENSE)
- "ECS/NACH" = Auto-debit (bill payment, loan EMI)
- "INT.PYMT" = Interest payment
- "CHQ" = Cheque transaction

CRITICAL RULES:
1. UPI payments to businesses = EXPENSE or PURCHASE (NOT TRANSFER)
2. Transfers between own accounts = TRANSFER; nothing else is a TRANSFER
3. Salary credited = INCOME
4. Salary paid to employees = EXPENSE
5. Look at merchant name after UPI/ to determine category
6. Return results as a JSON object

OUTPUT FORMAT:
{{"results":[{{"i":1,"cat":"EXPENSE","sub":"Office Expenses","led":"Office Expenses","conf":85}}]}}
- i = transaction index (1-based)
- cat = category key
- sub = subcategory
- led = suggested Tally ledger name
- conf = confidence 0-100 (integer)"""


def build_classification_payload(transactions: Sequence[TransactionRecord]) -> str:
    """Return the user payload: one ``i|CR/DR|amount|description`` line per row."""

    lines: list[str] = []
    for i, tx in enumerate(transactions, start=1):
        side, amount = signed_side(tx)
        desc = str(tx.get("description") or "")[:DESCRIPTION_LIMIT]
        lines.append(f"{i}|{side}|{_format_amount(amount)}|{desc}")
    listing = "\n".join(lines)
    return f"Categorize these Indian bank transactions:\n\n{listing}\n\nReturn JSON only."


def build_extraction_instructions() -> str:
    """Return the system instruction for statement-text extraction."""

    return (
        "You extract bank transactions from raw bank statement text (OCR or PDF "
        "extraction output). Return JSON only, exactly in this shape:\n"
        '{"transactions":[{"date":"DD/MM/YYYY","description":"...","debit":0,"credit":0}]}\n'
        "Rules:\n"
        "- One element per transaction row; skip headers, footers, page numbers, "
        "opening/closing balance lines and summaries.\n"
        "- Keep the date exactly as printed in the statement.\n"
        "- debit and credit are plain numbers without thousands separators or "
        "currency symbols; use 0 for the side that does not apply.\n"
        "- Include \"reference\" and \"balance\" only when clearly present."
    )


def build_extraction_payload(text: str) -> str:
    return f"Extract all transactions from this bank statement text:\n\n{text}"


__all__ = [
    "DESCRIPTION_LIMIT",
    "build_classification_instructions",
    "build_classification_payload",
    "build_extraction_instructions",
    "build_extraction_payload",
]
