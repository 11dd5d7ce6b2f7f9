# ruff: noqa: E402, E501, I001
import asyncio
import json
import time
from typing import Any

import pytest

import ledger_categorizer.remote as remote_mod
from ledger_categorizer.config import RemoteSettings
from ledger_categorizer.remote import (
    BatchAborted,
    RemoteClassifier,
    align_suggestions,
    extract_response_text,
    extract_result_items,
    run_with_timeout,
)
from ledger_categorizer.taxonomy import Category
from tests.helpers.openai_stub import (
    connection_error,
    make_async_openai_stub,
    parse_batch_lines,
    results_json,
    status_error,
)

SETTINGS = RemoteSettings(api_key="test-key", timeout_sec=2.0)


def _install(monkeypatch: pytest.MonkeyPatch, respond, **kw) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []
    monkeypatch.setattr(remote_mod, "AsyncOpenAI", make_async_openai_stub(respond, calls, **kw))
    return calls


def _rows(n: int) -> list[dict[str, Any]]:
    return [{"description": f"UPI/vendor{i}/pay", "debit": 100 + i} for i in range(n)]


def _run(classifier: RemoteClassifier, rows, *args, **kw):
    async def _go():
        try:
            return await classifier.classify_batch(rows, *args, **kw)
        finally:
            await classifier.aclose()

    return asyncio.run(_go())


# ---- Response-shape strategies -------------------------------------------------


@pytest.mark.parametrize(
    "parsed",
    [
        [{"i": 1}],
        {"results": [{"i": 1}]},
        {"categorizations": [{"i": 1}]},
        {"transactions": [{"i": 1}]},
        {"meta": "x", "whatever": [{"i": 1}]},
    ],
)
def test_extract_result_items_accepts_known_shapes(parsed):
    assert extract_result_items(parsed) == [{"i": 1}]


def test_extract_result_items_prefers_results_over_other_arrays():
    parsed = {"notes": ["n"], "results": [{"i": 1}]}
    assert extract_result_items(parsed) == [{"i": 1}]


def test_extract_result_items_rejects_arrayless_object():
    with pytest.raises(ValueError):
        extract_result_items({"message": "no results"})


def test_extract_response_text_fallback_to_output_content():
    class _Node:
        def __init__(self, text: str) -> None:
            self.text = text

    class _Msg:
        def __init__(self, text: str) -> None:
            self.content = [_Node(text)]

    class Resp:
        output_text = ""

        def __init__(self, text: str) -> None:
            self.output = [_Msg(text)]

    assert extract_response_text(Resp('{"results": []}')) == '{"results": []}'
    with pytest.raises(ValueError):
        extract_response_text(object())


# ---- Alignment -----------------------------------------------------------------


def test_align_accepts_compact_and_long_keys_and_fills_defaults():
    items = [
        {"i": 2, "cat": "purchase", "sub": "Raw Materials", "led": "Purchase Account", "conf": 88},
        {"index": 1, "category": "TAX", "confidence": 92},
    ]
    out = align_suggestions(items, num_items=3)
    assert out[0] is not None and out[0].category is Category.TAX
    assert out[0].subcategory == "Tax Payment"  # taxonomy default
    assert out[0].suggested_ledger == "Duties & Taxes"
    assert out[1] is not None and out[1].category is Category.PURCHASE
    assert out[1].confidence == 88 and out[1].source == "model"
    assert out[2] is None


def test_align_drops_invalid_items():
    items = [
        {"i": 1, "cat": "GROCERIES", "conf": 90},  # unknown key
        {"i": 2, "cat": "EXPENSE", "conf": 140},  # out of range
        {"i": 9, "cat": "EXPENSE", "conf": 80},  # index outside batch
        {"cat": "EXPENSE", "conf": 80},  # no index
        "junk",
        {"i": 3, "cat": "EXPENSE", "conf": 81},
        {"i": 3, "cat": "INCOME", "conf": 99},  # duplicate index, first wins
    ]
    out = align_suggestions(items, num_items=3)
    assert out[0] is None and out[1] is None
    assert out[2] is not None and out[2].category is Category.EXPENSE


# ---- classify_batch -------------------------------------------------------------


def test_classify_batch_happy_path(monkeypatch: pytest.MonkeyPatch):
    def respond(kwargs):
        lines = parse_batch_lines(kwargs["input"])
        return results_json(
            [{"i": i, "cat": "PURCHASE", "sub": "Goods", "led": "Purchase Account", "conf": 88} for i, *_ in lines]
        )

    calls = _install(monkeypatch, respond)
    rows = [{"description": "UPI/swiggy/order123", "debit": 250}, {"description": "NEFT X", "credit": "1,000"}]
    out = _run(RemoteClassifier(SETTINGS), rows)

    assert [s.category for s in out] == [Category.PURCHASE, Category.PURCHASE]
    assert len(calls) == 1
    call = calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["text"] == {"format": {"type": "json_object"}}
    assert "INVESTMENT" in call["instructions"]
    assert parse_batch_lines(call["input"]) == [
        (1, "DR", "250", "UPI/swiggy/order123"),
        (2, "CR", "1000", "NEFT X"),
    ]


def test_classify_batch_truncates_long_descriptions(monkeypatch: pytest.MonkeyPatch):
    calls = _install(monkeypatch, lambda kw: results_json([]))
    _run(RemoteClassifier(SETTINGS), [{"description": "A" * 250, "debit": 1}])
    (_, _, _, desc), = parse_batch_lines(calls[0]["input"])
    assert desc == "A" * 100


def test_classify_batch_splits_into_bounded_requests(monkeypatch: pytest.MonkeyPatch):
    def respond(kwargs):
        lines = parse_batch_lines(kwargs["input"])
        return results_json([{"i": i, "cat": "EXPENSE", "conf": 70} for i, *_ in lines])

    calls = _install(monkeypatch, respond)
    out = _run(RemoteClassifier(SETTINGS), _rows(20), 15)
    assert len(calls) == 2
    assert len(parse_batch_lines(calls[0]["input"])) == 15
    assert len(parse_batch_lines(calls[1]["input"])) == 5
    assert all(s is not None for s in out) and len(out) == 20


@pytest.mark.parametrize(
    "failure",
    [connection_error, lambda: status_error(500), lambda: status_error(429)],
)
def test_classify_batch_transport_failures_yield_none(monkeypatch: pytest.MonkeyPatch, failure):
    def respond(kwargs):
        raise failure()

    _install(monkeypatch, respond)
    assert _run(RemoteClassifier(SETTINGS), _rows(3)) == [None, None, None]


@pytest.mark.parametrize(
    "text", ["not json at all", json.dumps({"message": "sorry"}), "[" * 100_000]
)
def test_classify_batch_unparsable_output_yields_none(monkeypatch: pytest.MonkeyPatch, text):
    _install(monkeypatch, lambda kw: text)
    assert _run(RemoteClassifier(SETTINGS), _rows(2)) == [None, None]


def test_classify_batch_tolerates_prose_around_json(monkeypatch: pytest.MonkeyPatch):
    text = 'Here you go:\n{"results":[{"i":1,"cat":"LOAN","conf":91}]}\nThanks!'
    _install(monkeypatch, lambda kw: text)
    (out,) = _run(RemoteClassifier(SETTINGS), _rows(1))
    assert out is not None and out.category is Category.LOAN


def test_classify_batch_timeout_yields_none_quickly(monkeypatch: pytest.MonkeyPatch):
    _install(monkeypatch, lambda kw: results_json([]), delay_sec=5.0)
    settings = RemoteSettings(api_key="test-key", timeout_sec=0.05)
    t0 = time.perf_counter()
    out = _run(RemoteClassifier(settings), _rows(2))
    assert out == [None, None]
    assert time.perf_counter() - t0 < 2.0


def test_client_created_with_timeout_and_closed(monkeypatch: pytest.MonkeyPatch):
    instances: list[Any] = []
    _install(monkeypatch, lambda kw: results_json([]), instances_out=instances)
    _run(RemoteClassifier(SETTINGS), _rows(1))
    (client,) = instances
    assert client.init_kwargs == {"api_key": "test-key", "timeout": 2.0, "max_retries": 0}
    assert client.closed


# ---- run_with_timeout -----------------------------------------------------------


def test_run_with_timeout_abort_raises_batch_aborted():
    async def _go():
        abort = asyncio.Event()
        asyncio.get_running_loop().call_later(0.01, abort.set)
        await run_with_timeout(asyncio.sleep(5, result="late"), timeout=2.0, abort=abort)

    with pytest.raises(BatchAborted):
        asyncio.run(_go())


def test_run_with_timeout_returns_result():
    async def _go():
        return await run_with_timeout(asyncio.sleep(0, result="ok"), timeout=1.0)

    assert asyncio.run(_go()) == "ok"


@pytest.mark.parametrize("use_abort", [False, True])
def test_run_with_timeout_lets_cancelled_call_unwind(use_abort):
    unwound: list[str] = []

    async def slow_call():
        try:
            await asyncio.sleep(5)
        finally:
            await asyncio.sleep(0)
            unwound.append("done")

    async def _go():
        abort = asyncio.Event()
        if use_abort:
            asyncio.get_running_loop().call_later(0.01, abort.set)
        with pytest.raises(BatchAborted if use_abort else TimeoutError):
            await run_with_timeout(slow_call(), timeout=2.0 if use_abort else 0.01, abort=abort)
        return list(unwound)

    assert asyncio.run(_go()) == ["done"]
