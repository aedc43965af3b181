"""
Tests for generation: context blocks, history, source links, answers and greetings.
"""

from __future__ import annotations

import pytest

from conftest import FakeChat
from sitechat.errors import UpstreamError
from sitechat.generation import (
    APOLOGY_MESSAGES,
    AnswerGenerator,
    build_context,
    format_history,
    sanitize_response,
    select_source_links,
)
from sitechat.generation.prompts import GENERIC_GREETINGS, SITE_GREETINGS
from sitechat.rag import RetrievalResult
from sitechat.storage import BotRecord, ChatMessage, ChunkRecord

BOT = BotRecord(id="b1", url="https://example.com", title="Acme Widgets")


def _result(text: str, url: str, score: float, hybrid=None, index: int = 0) -> RetrievalResult:
    chunk = ChunkRecord(text=text, url=url, chunk_index=index, bot_id="b1")
    return RetrievalResult(chunk=chunk, score=score, source="hybrid", hybrid_score=hybrid)


# --- Context and history ---


def test_build_context_numbers_blocks_in_order():
    results = [_result(f"text {i}", "https://example.com", 1.0, index=i) for i in range(10)]
    context = build_context(results, max_chunks=8)
    blocks = context.split("\n\n")
    assert len(blocks) == 8
    assert blocks[0] == "[Context 1]: text 0"
    assert blocks[7] == "[Context 8]: text 7"


def test_build_context_empty():
    assert build_context([]) == ""


def test_format_history_keeps_last_turns():
    messages = [
        ChatMessage(role="user" if i % 2 == 0 else "assistant", content=f"m{i}") for i in range(8)
    ]
    assert format_history(messages, 2) == "user: m6\nassistant: m7"
    assert format_history([], 6) == ""


def test_sanitize_response_strips_thinking_and_tags():
    raw = "<think>internal notes</think>\n<p>We ship <b>worldwide</b>.</p>"
    assert sanitize_response(raw) == "We ship worldwide."


# --- Source links ---


def test_links_use_hybrid_score_then_raw_score():
    results = [
        _result("a", "https://example.com/a", 0.1, hybrid=1.2),
        _result("b", "https://example.com/b", 0.9, hybrid=0.2),
        _result("c", "https://example.com/c", 0.45),
        _result("d", "https://example.com/d", 0.4),
    ]
    assert select_source_links(results) == ["https://example.com/a", "https://example.com/c"]


def test_links_are_deduplicated_and_capped():
    results = [
        _result("a", "https://example.com/a", 2.0, hybrid=2.0),
        _result("a2", "https://example.com/a", 1.9, hybrid=1.9),
        _result("b", "https://example.com/b", 1.8, hybrid=1.8),
        _result("c", "https://example.com/c", 1.7, hybrid=1.7),
        _result("d", "https://example.com/d", 1.6, hybrid=1.6),
    ]
    assert select_source_links(results) == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]


# --- Answers ---


@pytest.mark.anyio
async def test_generate_sends_context_and_question():
    chat = FakeChat(lambda messages: "<think>plan</think>We ship in five days.")
    generator = AnswerGenerator(chat)
    history = [ChatMessage(role="user", content="hi"), ChatMessage(role="assistant", content="hello")]
    answer = await generator.generate(
        "How fast is shipping?",
        "shipping speed",
        [_result("Shipping takes five days.", "https://example.com/s", 1.0)],
        history,
        "https://example.com",
    )
    assert answer == "We ship in five days."

    system, user = chat.calls[0]
    assert user == {"role": "user", "content": "How fast is shipping?"}
    assert "[Context 1]: Shipping takes five days." in system["content"]
    assert "https://example.com" in system["content"]
    assert "shipping speed" in system["content"]
    assert "assistant: hello" in system["content"]


@pytest.mark.anyio
async def test_empty_reply_becomes_localized_apology():
    generator = AnswerGenerator(FakeChat(lambda messages: "<think>only thoughts</think>"))
    answer = await generator.generate("¿Precio?", "precio", [], [], "https://example.com", "es")
    assert answer == APOLOGY_MESSAGES["es"]


@pytest.mark.anyio
async def test_generate_without_model_raises():
    with pytest.raises(UpstreamError):
        await AnswerGenerator(None).generate("q", "q", [], [], "https://example.com")


# --- Greetings ---


@pytest.mark.anyio
async def test_greeting_without_samples_is_generic():
    chat = FakeChat(lambda messages: "A very long and friendly generated greeting text.")
    greeting = await AnswerGenerator(chat).greeting(BOT, "es", [])
    assert greeting == GENERIC_GREETINGS["es"]
    assert chat.calls == []


@pytest.mark.anyio
async def test_greeting_uses_generated_text():
    reply = "Hi! Ask me about widgets, shipping or returns at Acme."
    chat = FakeChat(lambda messages: reply)
    greeting = await AnswerGenerator(chat).greeting(BOT, "en", ["Widgets ship worldwide."])
    assert greeting == reply
    assert "Widgets ship worldwide." in chat.calls[0][0]["content"]


@pytest.mark.anyio
async def test_short_or_missing_generation_falls_back_to_site_greeting():
    expected = SITE_GREETINGS["en"].format(site_name="Acme Widgets")
    short = await AnswerGenerator(FakeChat(lambda messages: "Hi!")).greeting(BOT, "en", ["x"])
    assert short == expected
    assert await AnswerGenerator(None).greeting(BOT, "en", ["x"]) == expected


@pytest.mark.anyio
async def test_site_greeting_without_title_uses_default_name():
    untitled = BotRecord(id="b2", url="https://example.com", title="")
    greeting = await AnswerGenerator(None).greeting(untitled, "es", ["x"])
    assert greeting == SITE_GREETINGS["es"].format(site_name="este sitio web")
