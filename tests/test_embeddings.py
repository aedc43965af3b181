"""
Tests for content hashes, bot ids and the caching batch embedder.
"""

from __future__ import annotations

import pytest

from conftest import FakeEmbedder, FailingEmbedder
from sitechat.errors import UpstreamError
from sitechat.rag.embeddings import BatchEmbedder, cache_key
from sitechat.retry import NO_RETRY
from sitechat.storage import InMemoryKeyValueStore
from sitechat.utils import generate_bot_id, rolling_hash, to_base36


def test_rolling_hash_known_values():
    assert rolling_hash("") == "0"
    assert rolling_hash("a") == "2p"
    assert rolling_hash("ab") == "2e9"
    assert rolling_hash("some longer text") == rolling_hash("some longer text")
    assert rolling_hash("some longer text") != rolling_hash("some longer text!")


def test_rolling_hash_wraps_to_signed_32_bit():
    h = rolling_hash("a fairly long string that overflows thirty-two bits many times")
    value = int(h, 36)
    assert -(2**31) <= value < 2**31


def test_base36_sign():
    assert to_base36(71) == "1z"
    assert to_base36(-71) == "-1z"


def test_bot_ids_are_unique_base36():
    ids = {generate_bot_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(i.isalnum() and i == i.lower() for i in ids)


@pytest.mark.anyio
async def test_cache_hit_skips_model():
    model = FakeEmbedder()
    embedder = BatchEmbedder(model=model, kv=InMemoryKeyValueStore(), retry=NO_RETRY)

    first = await embedder.embed(["alpha text", "beta text"])
    second = await embedder.embed(["beta text", "alpha text"])

    assert model.calls == [["alpha text", "beta text"]]
    assert first == [model.vector("alpha text"), model.vector("beta text")]
    assert second == [first[1], first[0]]


@pytest.mark.anyio
async def test_only_misses_reach_the_model():
    model = FakeEmbedder()
    embedder = BatchEmbedder(model=model, kv=InMemoryKeyValueStore(), retry=NO_RETRY)
    await embedder.embed(["alpha text"])
    result = await embedder.embed(["gamma text", "alpha text", "delta text"])
    assert model.calls[-1] == ["gamma text", "delta text"]
    assert result == [model.vector(t) for t in ("gamma text", "alpha text", "delta text")]


@pytest.mark.anyio
async def test_model_change_invalidates_cache():
    kv = InMemoryKeyValueStore()
    await BatchEmbedder(model=FakeEmbedder("model-a"), kv=kv, retry=NO_RETRY).embed(["alpha text"])

    other = FakeEmbedder("model-b")
    await BatchEmbedder(model=other, kv=kv, retry=NO_RETRY).embed(["alpha text"])
    assert other.calls == [["alpha text"]]


@pytest.mark.anyio
async def test_cache_entries_expire():
    now = [0.0]
    kv = InMemoryKeyValueStore(clock=lambda: now[0])
    model = FakeEmbedder()
    embedder = BatchEmbedder(model=model, kv=kv, ttl=60, retry=NO_RETRY)

    await embedder.embed(["alpha text"])
    assert await kv.get(cache_key("alpha text")) is not None
    now[0] = 61.0
    await embedder.embed(["alpha text"])
    assert len(model.calls) == 2


@pytest.mark.anyio
async def test_corrupt_cache_entry_is_a_miss():
    kv = InMemoryKeyValueStore()
    await kv.put(cache_key("alpha text"), '{"embedding": "nope"}')
    model = FakeEmbedder()
    result = await BatchEmbedder(model=model, kv=kv, retry=NO_RETRY).embed(["alpha text"])
    assert result == [model.vector("alpha text")]


@pytest.mark.anyio
async def test_model_failure_propagates_after_retries():
    embedder = BatchEmbedder(model=FailingEmbedder(), kv=InMemoryKeyValueStore(), retry=NO_RETRY)
    with pytest.raises(UpstreamError):
        await embedder.embed(["alpha text"])


@pytest.mark.anyio
async def test_short_model_output_is_rejected():
    class ShortEmbedder(FakeEmbedder):
        async def embed(self, texts):
            return [self.vector(texts[0])]

    embedder = BatchEmbedder(model=ShortEmbedder(), kv=InMemoryKeyValueStore(), retry=NO_RETRY)
    with pytest.raises(ValueError):
        await embedder.embed(["alpha text", "beta text"])
