"""Hybrid categorization flow: rules first, then the model, then arbitration.

Public API:
    - :class:`CategorizationPipeline`
    - :func:`categorize`

The caller always receives one result per input row, in input order. Remote
failures are isolated per batch and substituted with that batch's rule
results.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Iterable, Mapping, Sequence
from contextlib import aclosing
from typing import Any

from . import arbiter, rules
from .config import RemoteSettings
from .logging_setup import get_logger
from .models import CategorizedTransaction, CategorySuggestion, Transactions
from .remote import BATCH_SIZE, BatchAborted, RemoteClassifier

HIGH_CONFIDENCE: int = 80

_logger = get_logger("ledger_categorizer.pipeline")


def _materialize(transactions: Transactions) -> list[Mapping[str, Any]]:
    items = list(transactions)
    if not all(isinstance(item, Mapping) for item in items):
        raise TypeError(
            "categorize expects each transaction to be a mapping with keys "
            "like 'description', 'debit', 'credit'."
        )
    return items


def _paginate(n_total: int, batch_size: int) -> Iterable[tuple[int, int, int]]:
    """Yield ``(batch_index, base, end)`` half-open ranges over ``n_total`` rows."""

    for k in range(math.ceil(n_total / batch_size)):
        base = k * batch_size
        yield k, base, min(base + batch_size, n_total)


class CategorizationPipeline:
    """Orchestrates the rule pass, the batched model pass and arbitration.

    Parameters
    ----------
    settings:
        Remote settings; defaults to :meth:`RemoteSettings.from_env`. Without a
        credential the pipeline is rule-only and never touches the network.
    classifier:
        Optional pre-built :class:`RemoteClassifier` (tests inject stubs).
    batch_size:
        Rows per remote request (default 15).
    """

    def __init__(
        self,
        settings: RemoteSettings | None = None,
        *,
        classifier: RemoteClassifier | None = None,
        batch_size: int = BATCH_SIZE,
    ) -> None:
        if not isinstance(batch_size, int) or batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")
        self.settings = settings if settings is not None else RemoteSettings.from_env()
        self.batch_size = batch_size
        self._classifier = classifier

    async def categorize(
        self,
        transactions: Transactions,
        *,
        abort: asyncio.Event | None = None,
    ) -> list[CategorizedTransaction]:
        """Categorize ``transactions``; never raises for remote trouble.

        When ``abort`` is set mid-run the in-flight request is dropped, no
        further batches are sent, and rows without a finished batch keep their
        rule results.
        """

        original_seq = _materialize(transactions)
        n_total = len(original_seq)
        if n_total == 0:
            return []

        _logger.info("categorize:start count=%d", n_total)
        rule_results = rules.classify_all(original_seq)

        if not self.settings.online:
            _logger.warning("categorize:offline count=%d reason=no_credential", n_total)
            return self._finish(original_seq, rule_results)

        classifier = self._classifier or RemoteClassifier(self.settings)
        async with aclosing(classifier):
            final = await self._run_batches(classifier, original_seq, rule_results, abort)
        return self._finish(original_seq, final)

    async def _run_batches(
        self,
        classifier: RemoteClassifier,
        original_seq: list[Mapping[str, Any]],
        rule_results: list[CategorySuggestion],
        abort: asyncio.Event | None,
    ) -> list[CategorySuggestion]:
        final: list[CategorySuggestion] = list(rule_results)
        for batch_index, base, end in _paginate(len(original_seq), self.batch_size):
            if abort is not None and abort.is_set():
                _logger.warning(
                    "categorize:aborted batch_index=%d completed_rows=%d", batch_index, base
                )
                break
            t0 = time.perf_counter()
            try:
                model_results = await classifier.classify_batch(
                    original_seq[base:end], self.batch_size, abort=abort
                )
            except BatchAborted:
                _logger.warning(
                    "categorize:aborted batch_index=%d completed_rows=%d", batch_index, base
                )
                break
            except Exception as e:  # noqa: BLE001 - one bad batch never sinks the run
                _logger.warning(
                    "categorize:batch_failed batch_index=%d count=%d error=%s",
                    batch_index,
                    end - base,
                    e.__class__.__name__,
                )
                continue

            # Positions are batch-relative; model_results[j] belongs to base + j.
            for j, model_result in enumerate(model_results[: end - base]):
                final[base + j] = arbiter.merge(rule_results[base + j], model_result)
            _logger.info(
                "categorize:batch_done batch_index=%d count=%d matched=%d latency_ms=%.2f",
                batch_index,
                end - base,
                sum(1 for m in model_results if m is not None),
                (time.perf_counter() - t0) * 1000.0,
            )
        return final

    @staticmethod
    def _finish(
        original_seq: Sequence[Mapping[str, Any]], suggestions: Sequence[CategorySuggestion]
    ) -> list[CategorizedTransaction]:
        results = [
            CategorizedTransaction(transaction=tx, suggestion=s)
            for tx, s in zip(original_seq, suggestions, strict=True)
        ]
        _logger.info(
            "categorize:done total=%d high_confidence=%d model_selected=%d",
            len(results),
            sum(1 for r in results if r.confidence >= HIGH_CONFIDENCE),
            sum(1 for r in results if r.suggestion.source == "model"),
        )
        return results


async def categorize(
    transactions: Transactions,
    *,
    settings: RemoteSettings | None = None,
    abort: asyncio.Event | None = None,
) -> list[CategorizedTransaction]:
    """Convenience wrapper around :meth:`CategorizationPipeline.categorize`."""

    return await CategorizationPipeline(settings).categorize(transactions, abort=abort)


__all__ = ["CategorizationPipeline", "categorize", "HIGH_CONFIDENCE"]
