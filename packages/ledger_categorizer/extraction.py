"""Structured transaction extraction from free statement text.

Public API:
    - :class:`DocumentExtractor` and its :meth:`DocumentExtractor.extract`
    - :func:`normalize_record`

Input text is capped at ``MAX_INPUT_CHARS`` before it is sent; rows past the
cap are not recovered. That keeps responses small enough to come back whole
far more often, at the cost of recall on long statements.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Mapping
from typing import Any

from openai import APIError, AsyncOpenAI
from openai.types.responses import ResponseTextConfigParam

from . import prompting
from .config import RemoteSettings
from .json_repair import recover_transactions
from .logging_setup import get_logger
from .models import ExtractedRecord
from .normalizers import coerce_amount
from .remote import BatchAborted, create_client, extract_response_text, run_with_timeout

MIN_INPUT_CHARS: int = 50
MAX_INPUT_CHARS: int = 4000
_MAX_OUTPUT_TOKENS: int = 4000
_TEMPERATURE: float = 0.1

_logger = get_logger("ledger_categorizer.extraction")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_record(raw: Mapping[str, Any], position: int) -> ExtractedRecord | None:
    """Coerce one recovered row; ``None`` when it is not a usable transaction.

    Rows without a date, or with both debit and credit at zero, are dropped.
    """

    date = _text(raw.get("date"))
    debit = coerce_amount(raw.get("debit"))
    credit = coerce_amount(raw.get("credit"))
    if not date or (debit == 0 and credit == 0):
        return None
    return ExtractedRecord(
        id=f"pdf-ai-{position}-{uuid.uuid4().hex[:8]}",
        date=date,
        description=_text(raw.get("description")),
        reference=_text(raw.get("reference")),
        debit=debit,
        credit=credit,
        balance=coerce_amount(raw.get("balance")),
        type="CREDIT" if credit > 0 else "DEBIT",
        amount=credit if credit > 0 else debit,
    )


class DocumentExtractor:
    """Ask the remote model for transaction rows found in ``raw_text``."""

    def __init__(
        self, settings: RemoteSettings | None = None, *, client: AsyncOpenAI | None = None
    ) -> None:
        self.settings = settings if settings is not None else RemoteSettings.from_env()
        self._client = client
        self._instructions = prompting.build_extraction_instructions()

    async def _request(self, client: AsyncOpenAI, text: str) -> str:
        resp = await client.responses.create(
            model=self.settings.model,
            instructions=self._instructions,
            input=prompting.build_extraction_payload(text),
            text=ResponseTextConfigParam(format={"type": "json_object"}),
            temperature=_TEMPERATURE,
            max_output_tokens=_MAX_OUTPUT_TOKENS,
        )
        return extract_response_text(resp)

    async def _fetch(self, text: str, abort: asyncio.Event | None) -> str | None:
        timeout = self.settings.extract_timeout_sec
        client = self._client or create_client(self.settings, timeout=timeout)
        t0 = time.perf_counter()
        try:
            return await run_with_timeout(self._request(client, text), timeout=timeout, abort=abort)
        except (APIError, TimeoutError, ValueError, BatchAborted) as e:
            _logger.warning(
                "extract:remote_failed latency_ms=%.2f error=%s",
                (time.perf_counter() - t0) * 1000.0,
                e.__class__.__name__,
            )
            return None
        finally:
            if self._client is None:
                await client.close()

    async def extract(
        self, raw_text: str | None, *, abort: asyncio.Event | None = None
    ) -> list[ExtractedRecord]:
        """Return the valid transaction rows the model finds in ``raw_text``.

        Returns ``[]`` without any network call when the text is shorter than
        ``MIN_INPUT_CHARS`` or no credential is configured, and ``[]`` when the
        remote call fails or nothing can be recovered from its output.
        """

        if not raw_text or len(raw_text.strip()) < MIN_INPUT_CHARS:
            _logger.info("extract:skipped reason=short_text")
            return []
        if not self.settings.online:
            _logger.warning("extract:skipped reason=no_credential")
            return []

        text = raw_text[:MAX_INPUT_CHARS]
        if len(raw_text) > MAX_INPUT_CHARS:
            _logger.info("extract:truncated chars=%d kept=%d", len(raw_text), MAX_INPUT_CHARS)

        content = await self._fetch(text, abort)
        if content is None:
            return []

        recovered = recover_transactions(content)
        if recovered.stage != "direct":
            _logger.info("extract:repair stage=%s rows=%d", recovered.stage, len(recovered.rows))

        records: list[ExtractedRecord] = []
        for position, raw in enumerate(recovered.rows):
            rec = normalize_record(raw, position)
            if rec is not None:
                records.append(rec)
        _logger.info(
            "extract:done records=%d dropped=%d",
            len(records),
            len(recovered.rows) - len(records),
        )
        return records


async def extract(
    raw_text: str | None,
    *,
    settings: RemoteSettings | None = None,
    abort: asyncio.Event | None = None,
) -> list[ExtractedRecord]:
    return await DocumentExtractor(settings).extract(raw_text, abort=abort)


__all__ = [
    "DocumentExtractor",
    "MAX_INPUT_CHARS",
    "MIN_INPUT_CHARS",
    "extract",
    "normalize_record",
]
