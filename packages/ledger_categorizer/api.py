"""Public entrypoints for the ``ledger_categorizer`` package.

Async functions are the primary surface; ``*_sync`` wrappers run them on a
fresh event loop for synchronous callers (the CLI, scripts).
"""

from __future__ import annotations

import asyncio

from openai import APIError

from .config import RemoteSettings
from .extraction import DocumentExtractor
from .logging_setup import get_logger
from .models import CategorizedTransaction, ExtractedRecord, TransactionRecord, Transactions
from .pipeline import CategorizationPipeline
from .remote import create_client, run_with_timeout

_KEY_CHECK_TIMEOUT_SEC: float = 5.0

_logger = get_logger("ledger_categorizer.api")


async def categorize_transactions(
    transactions: Transactions,
    *,
    settings: RemoteSettings | None = None,
    abort: asyncio.Event | None = None,
) -> list[CategorizedTransaction]:
    """Categorize rows with the rule engine and, when configured, the model.

    Returns one :class:`CategorizedTransaction` per input row in input order.
    Remote failures degrade to rule results; they are never raised.
    """

    return await CategorizationPipeline(settings).categorize(transactions, abort=abort)


def categorize_transactions_sync(
    transactions: Transactions, *, settings: RemoteSettings | None = None
) -> list[CategorizedTransaction]:
    return asyncio.run(categorize_transactions(transactions, settings=settings))


async def suggest_single(
    transaction: TransactionRecord, *, settings: RemoteSettings | None = None
) -> CategorizedTransaction:
    """Categorize a single row through the full pipeline."""

    (result,) = await categorize_transactions([transaction], settings=settings)
    return result


async def extract_transactions(
    raw_text: str | None,
    *,
    settings: RemoteSettings | None = None,
    abort: asyncio.Event | None = None,
) -> list[ExtractedRecord]:
    """Recover transaction rows from statement text (OCR/PDF output)."""

    return await DocumentExtractor(settings).extract(raw_text, abort=abort)


def extract_transactions_sync(
    raw_text: str | None, *, settings: RemoteSettings | None = None
) -> list[ExtractedRecord]:
    return asyncio.run(extract_transactions(raw_text, settings=settings))


async def validate_api_key(settings: RemoteSettings | None = None) -> bool:
    """Return ``True`` when the configured credential authenticates; never raises."""

    settings = settings if settings is not None else RemoteSettings.from_env()
    if not settings.online:
        return False
    client = create_client(settings, timeout=_KEY_CHECK_TIMEOUT_SEC)
    try:
        await run_with_timeout(client.models.list(), timeout=_KEY_CHECK_TIMEOUT_SEC)
    except (APIError, TimeoutError) as e:
        _logger.info("api:key_check_failed error=%s", e.__class__.__name__)
        return False
    finally:
        await client.close()
    return True


__all__ = [
    "categorize_transactions",
    "categorize_transactions_sync",
    "extract_transactions",
    "extract_transactions_sync",
    "suggest_single",
    "validate_api_key",
]
