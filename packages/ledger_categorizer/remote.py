"""Batched classification through the remote completion endpoint.

Public API:
    - :class:`RemoteClassifier` and its :meth:`RemoteClassifier.classify_batch`
    - :func:`extract_result_items` (response-shape tolerant array lookup)
    - :func:`run_with_timeout` and :class:`BatchAborted` (shared with extraction)

A batch either comes back fully parsed or is reported as all-``None``; a
partially trusted batch is never returned. No client is created and no
environment is read at import time.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from contextlib import suppress
from typing import Any, TypeVar

from openai import APIError, AsyncOpenAI
from openai.types.responses import ResponseTextConfigParam
from pydantic import ValidationError

from . import prompting
from .config import RemoteSettings
from .logging_setup import get_logger
from .models import CategorySuggestion, ModelSuggestion, TransactionRecord
from .taxonomy import TAXONOMY

# ---- Tunables ----------------------------------------------------------------

BATCH_SIZE: int = 15
_TEMPERATURE: float = 0.1
_MAX_OUTPUT_TOKENS: int = 3000
MODEL_NOTES = "AI-categorized"

_logger = get_logger("ledger_categorizer.remote")

T = TypeVar("T")


class BatchAborted(Exception):
    """The caller's abort event fired while a remote call was in flight."""


# ---- Remote call plumbing ----------------------------------------------------


def create_client(settings: RemoteSettings, *, timeout: float) -> AsyncOpenAI:
    # SDK retries would stretch the wall clock past ``timeout``.
    return AsyncOpenAI(api_key=settings.api_key, timeout=timeout, max_retries=0)


async def run_with_timeout(
    awaitable: Awaitable[T],
    *,
    timeout: float,
    abort: asyncio.Event | None = None,
) -> T:
    """Await ``awaitable`` under a hard wall-clock limit.

    The in-flight call is cancelled when ``timeout`` elapses (``TimeoutError``)
    or when ``abort`` is set first (:class:`BatchAborted`).
    """

    task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future[Any]] = {task}
    abort_waiter: asyncio.Future[Any] | None = None
    if abort is not None:
        abort_waiter = asyncio.ensure_future(abort.wait())
        waiters.add(abort_waiter)
    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if abort_waiter is not None:
            abort_waiter.cancel()
        if not task.done():
            task.cancel()
            # Let the request unwind before the caller closes the client.
            with suppress(asyncio.CancelledError):
                await task

    if task in done:
        return task.result()
    if abort_waiter is not None and abort_waiter in done:
        raise BatchAborted("remote call abandoned by caller")
    raise TimeoutError(f"remote call exceeded {timeout:.1f}s")


def extract_response_text(resp: Any) -> str:
    """Locate the text output of a Responses API result.

    Prefers ``resp.output_text``; falls back to ``resp.output[0].content[0].text``.
    Raises ``ValueError`` when no text can be found.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except (AttributeError, IndexError, TypeError):
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def decode_json_document(text: str) -> Any:
    """Parse ``text`` as JSON, tolerating prose around a single object."""

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])


# ---- Response-shape strategies -----------------------------------------------


def _bare_array(parsed: Any) -> list[Any] | None:
    return parsed if isinstance(parsed, list) else None


def _under_key(key: str) -> Callable[[Any], list[Any] | None]:
    def _strategy(parsed: Any) -> list[Any] | None:
        if isinstance(parsed, Mapping) and isinstance(parsed.get(key), list):
            return parsed[key]
        return None

    _strategy.__name__ = f"_under_key_{key}"
    return _strategy


def _first_array_field(parsed: Any) -> list[Any] | None:
    if isinstance(parsed, Mapping):
        for value in parsed.values():
            if isinstance(value, list):
                return value
    return None


RESULT_ARRAY_STRATEGIES: tuple[Callable[[Any], list[Any] | None], ...] = (
    _bare_array,
    _under_key("results"),
    _under_key("categorizations"),
    _under_key("transactions"),
    _first_array_field,
)


def extract_result_items(parsed: Any) -> list[Any]:
    """Return the per-transaction array from a decoded response.

    Strategies are tried in order; the first that yields a list wins.
    Raises ``ValueError`` if none applies.
    """

    for strategy in RESULT_ARRAY_STRATEGIES:
        items = strategy(parsed)
        if items is not None:
            return items
    raise ValueError("Invalid response: no result array found")


def align_suggestions(items: Sequence[Any], *, num_items: int) -> list[CategorySuggestion | None]:
    """Map validated items onto 1-based batch positions.

    Items that fail validation, fall outside ``1..num_items`` or repeat an
    index already seen are ignored; their slots stay ``None``.
    """

    out: list[CategorySuggestion | None] = [None] * num_items
    for raw in items:
        try:
            item = ModelSuggestion.model_validate(raw)
        except ValidationError as e:
            _logger.debug("remote:item_rejected errors=%d", e.error_count())
            continue
        pos = item.index - 1
        if not (0 <= pos < num_items) or out[pos] is not None:
            continue
        entry = TAXONOMY[item.category]
        out[pos] = CategorySuggestion(
            category=item.category,
            subcategory=item.subcategory or entry.default_subcategory,
            suggested_ledger=item.ledger or entry.default_ledger,
            confidence=item.confidence,
            source="model",
            notes=MODEL_NOTES,
        )
    return out


# ---- Classifier --------------------------------------------------------------


class RemoteClassifier:
    """Classify transactions in size-bounded batches via the remote model.

    ``client`` may be injected; otherwise one ``AsyncOpenAI`` client is created
    lazily and closed by :meth:`aclose`.
    """

    def __init__(self, settings: RemoteSettings, *, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client
        self._owns_client = client is None
        self._instructions = prompting.build_classification_instructions()

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = create_client(self._settings, timeout=self._settings.timeout_sec)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def _request(self, batch: Sequence[TransactionRecord]) -> list[CategorySuggestion | None]:
        client = self._get_client()
        resp = await client.responses.create(
            model=self._settings.model,
            instructions=self._instructions,
            input=prompting.build_classification_payload(batch),
            text=ResponseTextConfigParam(format={"type": "json_object"}),
            temperature=_TEMPERATURE,
            max_output_tokens=_MAX_OUTPUT_TOKENS,
        )
        parsed = decode_json_document(extract_response_text(resp))
        return align_suggestions(extract_result_items(parsed), num_items=len(batch))

    async def _classify_chunk(
        self,
        chunk: Sequence[TransactionRecord],
        *,
        abort: asyncio.Event | None,
    ) -> list[CategorySuggestion | None]:
        t0 = time.perf_counter()
        try:
            out = await run_with_timeout(
                self._request(chunk), timeout=self._settings.timeout_sec, abort=abort
            )
        except (APIError, TimeoutError, ValueError, RecursionError) as e:
            dt_ms = (time.perf_counter() - t0) * 1000.0
            _logger.warning(
                "remote:batch_failed count=%d latency_ms=%.2f error=%s",
                len(chunk),
                dt_ms,
                e.__class__.__name__,
            )
            return [None] * len(chunk)
        dt_ms = (time.perf_counter() - t0) * 1000.0
        _logger.debug(
            "remote:batch_ok count=%d matched=%d latency_ms=%.2f",
            len(chunk),
            sum(1 for s in out if s is not None),
            dt_ms,
        )
        return out

    async def classify_batch(
        self,
        transactions: Sequence[TransactionRecord],
        batch_size: int = BATCH_SIZE,
        *,
        abort: asyncio.Event | None = None,
    ) -> list[CategorySuggestion | None]:
        """Return one slot per input; ``None`` where that input's batch failed.

        Inputs longer than ``batch_size`` are split into sequential requests of
        at most ``batch_size`` rows. Network errors, timeouts, non-2xx
        statuses and unparsable output all mark the whole request as failed.
        Raises :class:`BatchAborted` when ``abort`` fires mid-request.
        """

        if not isinstance(batch_size, int) or batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")
        out: list[CategorySuggestion | None] = []
        for base in range(0, len(transactions), batch_size):
            chunk = transactions[base : base + batch_size]
            out.extend(await self._classify_chunk(chunk, abort=abort))
        return out


__all__ = [
    "BATCH_SIZE",
    "BatchAborted",
    "RemoteClassifier",
    "RESULT_ARRAY_STRATEGIES",
    "align_suggestions",
    "create_client",
    "decode_json_document",
    "extract_response_text",
    "extract_result_items",
    "run_with_timeout",
]
