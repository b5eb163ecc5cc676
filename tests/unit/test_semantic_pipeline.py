"""Unit tests for the SemanticPipeline — gating, caching, ranking and cancellation."""

import pytest

from chatlab_rag.application.services.embedding_config_service import EmbeddingConfigService
from chatlab_rag.application.services.rag_context import RagContext
from chatlab_rag.application.services.semantic_pipeline import (
    CANCELLED_MESSAGE,
    SemanticPipeline,
    format_evidence_block,
)
from chatlab_rag.config import Settings
from chatlab_rag.domain.entities import (
    CancellationToken,
    ChatCompletionResult,
    Chunk,
    ChunkMetadata,
    ChunkType,
    RankedChunk,
    SemanticPipelineOptions,
    TokenUsage,
)
from chatlab_rag.domain.exceptions import ChatProviderError
from chatlab_rag.infrastructure.vector_store import MemoryVectorStore


# ── Fakes ────────────────────────────────────────────────────────────


class FakeEmbeddingProvider:
    """Maps known texts to fixed vectors; records every batch it embeds."""

    def __init__(self, vectors: dict[str, list[float]], default: list[float] | None = None):
        self._vectors = vectors
        self._default = default or [1.0, 0.0]
        self.batches: list[list[str]] = []
        self.queries: list[str] = []

    async def embed_batch(self, texts):
        self.batches.append(list(texts))
        return [self._vectors.get(t, self._default) for t in texts]

    async def embed(self, text):
        self.queries.append(text)
        return self._vectors.get(text, self._default)

    def get_provider(self):
        return "Fake"

    async def dispose(self):
        pass


class FakeChatProvider:
    """Fake chat provider returning a canned rewrite."""

    provider_name = "fake"

    def __init__(self, content: str = "", error: Exception | None = None, on_call=None):
        self._content = content
        self._error = error
        self._on_call = on_call
        self.calls: list[dict] = []

    async def complete(self, messages, model, *, temperature=None, max_tokens=None, cancellation=None):
        self.calls.append(
            {"messages": messages, "model": model, "temperature": temperature, "max_tokens": max_tokens}
        )
        if self._on_call is not None:
            self._on_call()
        if self._error is not None:
            raise self._error
        return ChatCompletionResult(
            model=model,
            content=self._content,
            finish_reason="stop",
            usage=TokenUsage(),
        )


class FakeChunkingService:
    def __init__(self, chunks: list[Chunk], on_call=None):
        self._chunks = chunks
        self._on_call = on_call
        self.calls: list[tuple] = []

    async def get_session_chunks(self, db_path, options=None):
        self.calls.append((db_path, options))
        if self._on_call is not None:
            self._on_call()
        return list(self._chunks)


class FailingVectorStore(MemoryVectorStore):
    async def get(self, id):
        raise RuntimeError("disk I/O error")

    async def add(self, id, vector, metadata=None):
        raise RuntimeError("disk I/O error")


def _chunk(session_id: int, content: str) -> Chunk:
    return Chunk(
        id=f"session_{session_id}",
        type=ChunkType.SESSION,
        content=content,
        metadata=ChunkMetadata(
            session_id=session_id,
            start_ts=1_700_000_000,
            end_ts=1_700_000_600,
            message_count=2,
            participants=["Alice", "Bob"],
        ),
    )


CHUNKS = [_chunk(1, "alpha"), _chunk(2, "beta"), _chunk(3, "gamma")]
VECTORS = {"alpha": [1.0, 0.0], "beta": [0.0, 1.0], "gamma": [0.9, 0.1], "query": [1.0, 0.0]}


def _settings(**overrides) -> Settings:
    values = {"vector_store_enabled": True, "vector_store_type": "memory", "top_k": 10}
    values.update(overrides)
    return Settings(_env_file=None, **values)


async def _context(tmp_path, provider, *, enabled=True, settings=None, store=None) -> RagContext:
    vector_store = store if store is not None else MemoryVectorStore()

    async def open_store():
        return vector_store

    context = RagContext(
        settings or _settings(),
        EmbeddingConfigService(tmp_path / "embedding_configs.json"),
        llm_connection_resolver=lambda: None,
        embedding_factory=lambda config, connection: provider,
        vector_store_factory=open_store,
    )
    await context.add_embedding_config("Fake", "fake-embed")
    await context.set_embedding_enabled(enabled)
    return context


def _options(**overrides) -> SemanticPipelineOptions:
    values = {"user_message": "what did we plan?", "db_path": "chat.db"}
    values.update(overrides)
    return SemanticPipelineOptions(**values)


# ── Gating ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_disabled_embedding_fails_without_touching_chunks(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    chunking = FakeChunkingService(CHUNKS)
    context = await _context(tmp_path, provider, enabled=False)
    pipeline = SemanticPipeline(context, FakeChatProvider("query"), chunking)

    result = await pipeline.execute(_options())

    assert result.success is False
    assert result.error
    assert result.results == []
    assert result.cancelled is False
    assert chunking.calls == []


@pytest.mark.asyncio
async def test_pipeline_switched_off_in_settings(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider, settings=_settings(enable_semantic_pipeline=False))
    pipeline = SemanticPipeline(context, None, FakeChunkingService(CHUNKS))

    result = await pipeline.execute(_options())

    assert result.success is False
    assert result.results == []


@pytest.mark.asyncio
async def test_no_candidates_is_a_successful_empty_result(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider)
    pipeline = SemanticPipeline(context, FakeChatProvider("query"), FakeChunkingService([]))

    result = await pipeline.execute(_options())

    assert result.success is True
    assert result.results == []
    assert result.evidence_block == ""
    assert result.rewritten_query == "query"
    assert provider.batches == []


# ── Ranking & caching ────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ranks_chunks_by_similarity_and_keeps_top_k(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider)
    chat = FakeChatProvider("query")
    pipeline = SemanticPipeline(context, chat, FakeChunkingService(CHUNKS), model="deepseek-chat")

    result = await pipeline.execute(_options(top_k=2))

    assert result.success is True
    assert result.rewritten_query == "query"
    assert [r.chunk_id for r in result.results] == ["session_1", "session_3"]
    assert result.results[0].score == pytest.approx(1.0)
    assert result.results[1].score == pytest.approx(0.9939, abs=1e-3)
    assert result.results[0].score >= result.results[1].score
    assert result.results[0].metadata.session_id == 1
    assert provider.batches == [["alpha", "beta", "gamma"]]
    assert provider.queries == ["query"]
    assert chat.calls[0]["temperature"] == 0.3
    assert chat.calls[0]["max_tokens"] == 200
    assert chat.calls[0]["model"] == "deepseek-chat"
    assert result.evidence_block.startswith('<evidence query="query">')
    assert "--- Excerpt 1 (relevance: 100.0%) ---\nalpha" in result.evidence_block


@pytest.mark.asyncio
async def test_candidate_limit_and_defaults_come_from_settings(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider, settings=_settings(candidate_limit=7, top_k=1))
    chunking = FakeChunkingService(CHUNKS)
    pipeline = SemanticPipeline(context, None, chunking)

    result = await pipeline.execute(_options())

    db_path, options = chunking.calls[0]
    assert db_path == "chat.db"
    assert options.limit == 7
    assert options.filter_invalid is True
    assert len(result.results) == 1


@pytest.mark.asyncio
async def test_explicit_zero_limits_are_respected(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider)
    chunking = FakeChunkingService(CHUNKS)
    pipeline = SemanticPipeline(context, None, chunking)

    result = await pipeline.execute(_options(top_k=0, candidate_limit=0))

    assert result.success is True
    assert result.results == []
    assert result.evidence_block == ""
    assert chunking.calls[0][1].limit == 0


@pytest.mark.asyncio
async def test_second_run_reuses_cached_vectors(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    store = MemoryVectorStore()
    context = await _context(tmp_path, provider, store=store)
    pipeline = SemanticPipeline(context, FakeChatProvider("query"), FakeChunkingService(CHUNKS))

    first = await pipeline.execute(_options())
    second = await pipeline.execute(_options())

    assert provider.batches == [["alpha", "beta", "gamma"]]
    assert [r.chunk_id for r in first.results] == [r.chunk_id for r in second.results]
    assert await store.get("session_2") == [0.0, 1.0]
    assert (await store.search([1.0, 0.0], top_k=1))[0].metadata["participants"] == ["Alice", "Bob"]


@pytest.mark.asyncio
async def test_only_cache_misses_are_embedded(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    store = MemoryVectorStore()
    await store.add("session_1", [1.0, 0.0])
    context = await _context(tmp_path, provider, store=store)
    pipeline = SemanticPipeline(context, None, FakeChunkingService(CHUNKS))

    await pipeline.execute(_options())

    assert provider.batches == [["beta", "gamma"]]


@pytest.mark.asyncio
async def test_works_without_vector_store(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider, settings=_settings(vector_store_enabled=False))
    pipeline = SemanticPipeline(context, None, FakeChunkingService(CHUNKS))

    first = await pipeline.execute(_options())
    await pipeline.execute(_options())

    assert first.success is True
    assert len(provider.batches) == 2


@pytest.mark.asyncio
async def test_store_failures_degrade_to_cache_misses(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    failing = FailingVectorStore()
    context = await _context(tmp_path, provider, store=failing)
    pipeline = SemanticPipeline(context, FakeChatProvider("query"), FakeChunkingService(CHUNKS))

    result = await pipeline.execute(_options(top_k=1))

    assert result.success is True
    assert [r.chunk_id for r in result.results] == ["session_1"]
    assert await context.get_vector_store() is failing
    assert provider.batches == [["alpha", "beta", "gamma"]]


@pytest.mark.asyncio
async def test_chunks_with_empty_vectors_are_not_ranked(tmp_path):
    provider = FakeEmbeddingProvider({**VECTORS, "beta": []})
    context = await _context(tmp_path, provider)
    pipeline = SemanticPipeline(context, FakeChatProvider("query"), FakeChunkingService(CHUNKS))

    result = await pipeline.execute(_options())

    assert [r.chunk_id for r in result.results] == ["session_1", "session_3"]


# ── Query rewrite ────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_rewrite_failure_falls_back_to_original_query(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider)
    chat = FakeChatProvider(error=ChatProviderError("deepseek", 500, "boom"))
    pipeline = SemanticPipeline(context, chat, FakeChunkingService(CHUNKS))

    result = await pipeline.execute(_options(user_message="hiking plans"))

    assert result.success is True
    assert result.rewritten_query == "hiking plans"
    assert provider.queries == ["hiking plans"]


@pytest.mark.asyncio
async def test_blank_rewrite_falls_back_to_original_query(tmp_path):
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider)
    pipeline = SemanticPipeline(context, FakeChatProvider("   "), FakeChunkingService(CHUNKS))

    assert await pipeline.rewrite_query("hiking plans") == "hiking plans"


# ── Failures & cancellation ──────────────────────────────────────────


@pytest.mark.asyncio
async def test_embedding_failure_becomes_failed_result(tmp_path):
    class BrokenProvider(FakeEmbeddingProvider):
        async def embed_batch(self, texts):
            raise RuntimeError("connection refused")

    context = await _context(tmp_path, BrokenProvider(VECTORS))
    pipeline = SemanticPipeline(context, None, FakeChunkingService(CHUNKS))

    result = await pipeline.execute(_options())

    assert result.success is False
    assert result.results == []
    assert "connection refused" in result.error


@pytest.mark.asyncio
async def test_embedding_service_lookup_failure_becomes_failed_result(tmp_path, monkeypatch):
    context = await _context(tmp_path, FakeEmbeddingProvider(VECTORS))

    async def broken_lookup():
        raise OSError("config file unreadable")

    monkeypatch.setattr(context, "get_embedding_service", broken_lookup)
    pipeline = SemanticPipeline(context, None, FakeChunkingService(CHUNKS))

    result = await pipeline.execute(_options())

    assert result.success is False
    assert result.results == []
    assert "config file unreadable" in result.error


@pytest.mark.asyncio
async def test_cancel_during_rewrite_stops_before_retrieval(tmp_path):
    token = CancellationToken()
    provider = FakeEmbeddingProvider(VECTORS)
    chunking = FakeChunkingService(CHUNKS)
    context = await _context(tmp_path, provider)
    pipeline = SemanticPipeline(context, FakeChatProvider("query", on_call=token.cancel), chunking)

    result = await pipeline.execute(_options(cancellation=token))

    assert result.success is False
    assert result.cancelled is True
    assert result.error == CANCELLED_MESSAGE
    assert result.results == []
    assert chunking.calls == []


@pytest.mark.asyncio
async def test_cancel_during_retrieval_skips_embedding(tmp_path):
    token = CancellationToken()
    provider = FakeEmbeddingProvider(VECTORS)
    context = await _context(tmp_path, provider)
    pipeline = SemanticPipeline(context, None, FakeChunkingService(CHUNKS, on_call=token.cancel))

    result = await pipeline.execute(_options(cancellation=token))

    assert result.cancelled is True
    assert provider.batches == []
    assert provider.queries == []


# ── Evidence block ───────────────────────────────────────────────────


def test_evidence_block_empty_for_no_results():
    assert format_evidence_block("anything", []) == ""


def test_evidence_block_layout():
    block = format_evidence_block(
        "hiking weekend",
        [
            RankedChunk(score=0.9234, chunk_id="session_1", content="Ali: hiking?"),
            RankedChunk(score=0.5, chunk_id="session_3", content="Bob: budget"),
        ],
    )
    lines = block.split("\n")

    assert lines[0] == '<evidence query="hiking weekend">'
    assert lines[2] == ""
    assert lines[3] == "--- Excerpt 1 (relevance: 92.3%) ---"
    assert lines[4] == "Ali: hiking?"
    assert lines[6] == "--- Excerpt 2 (relevance: 50.0%) ---"
    assert "</evidence>" in lines
    assert lines[-2] == ""
    assert lines[-1]
