"""Public interface for the ``ledger_categorizer`` package.

Symbol re-exports only; no runtime logic, no client creation, no environment
reads at import time.
"""

from .api import (
    categorize_transactions,
    categorize_transactions_sync,
    extract_transactions,
    extract_transactions_sync,
    suggest_single,
    validate_api_key,
)
from .config import RemoteSettings
from .models import (
    CategorizedTransaction,
    CategorySuggestion,
    ExtractedRecord,
    TransactionRecord,
    Transactions,
)
from .taxonomy import TAXONOMY, Category

__all__ = [
    # API
    "categorize_transactions",
    "categorize_transactions_sync",
    "extract_transactions",
    "extract_transactions_sync",
    "suggest_single",
    "validate_api_key",
    # Config
    "RemoteSettings",
    # Models / types
    "Category",
    "TAXONOMY",
    "CategorySuggestion",
    "CategorizedTransaction",
    "ExtractedRecord",
    "TransactionRecord",
    "Transactions",
]
