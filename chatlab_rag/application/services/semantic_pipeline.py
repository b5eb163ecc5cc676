"""Semantic pipeline — retrieval-augmented context for a chat question.

Flow:
  1. Query rewrite: the LLM turns the question into a retrieval query.
  2. Retrieval: recent sessions are chunked from the chat database.
  3. Embedding: chunk vectors come from the vector store cache, misses are
     embedded in one batch and written back.
  4. Ranking: chunks are scored against the query vector by cosine similarity.
  5. Evidence: the top results are formatted into a block for the system prompt.

Nothing raises out of :meth:`SemanticPipeline.execute`; every failure is
reported through :class:`SemanticPipelineResult`.
"""

import logging

from chatlab_rag.application.interfaces.chat_provider import ChatProvider
from chatlab_rag.application.interfaces.embedding_provider import EmbeddingProvider
from chatlab_rag.application.interfaces.vector_store import VectorStore
from chatlab_rag.application.services.chunking_service import ChunkingOptions, ChunkingService
from chatlab_rag.application.services.rag_context import RagContext
from chatlab_rag.config import Settings
from chatlab_rag.domain.entities import (
    CancellationToken,
    ChatMessage,
    Chunk,
    RankedChunk,
    SemanticPipelineOptions,
    SemanticPipelineResult,
)
from chatlab_rag.domain.exceptions import OperationCancelledError
from chatlab_rag.domain.similarity import cosine_similarity
from chatlab_rag.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("SemanticPipeline")

CANCELLED_MESSAGE = "Operation cancelled"
EMBEDDING_DISABLED_MESSAGE = "Embedding service is not enabled or not configured"
PIPELINE_DISABLED_MESSAGE = "Semantic pipeline is disabled"

# ── Prompts ─────────────────────────────────────────────────────────

_REWRITE_SYSTEM_PROMPT = (
    "You are a query optimization expert who rewrites user questions into a "
    "form better suited to semantic retrieval."
)

_REWRITE_USER_PROMPT = """\
Rewrite the user's question into a query better suited for semantic retrieval.

Requirements:
1. Keep the core meaning and drop conversational filler
2. Extract the key entities and concepts
3. Expand with synonyms or related expressions
4. Output one concise search query, without any explanation

User question: {query}

Rewritten query:"""

_REWRITE_TEMPERATURE = 0.3
_REWRITE_MAX_TOKENS = 200

_EVIDENCE_INTRO = (
    "The following excerpts from the chat history are semantically related "
    "to the user's question (sorted by relevance):"
)
_EVIDENCE_INSTRUCTION = (
    "Answer the user's question based on the excerpts above. "
    "If they contain no relevant information, say so."
)


def format_evidence_block(rewritten_query: str, results: list[RankedChunk]) -> str:
    """Render ranked chunks as an ``<evidence>`` block; "" when there are none."""
    if not results:
        return ""

    lines = [f'<evidence query="{rewritten_query}">', _EVIDENCE_INTRO, ""]
    for i, result in enumerate(results, start=1):
        lines.append(f"--- Excerpt {i} (relevance: {result.score * 100:.1f}%) ---")
        lines.append(result.content)
        lines.append("")
    lines.append("</evidence>")
    lines.append("")
    lines.append(_EVIDENCE_INSTRUCTION)
    return "\n".join(lines)


def _check_cancelled(token: CancellationToken | None) -> None:
    if token is not None and token.cancelled:
        raise OperationCancelledError(CANCELLED_MESSAGE)


class SemanticPipeline:
    """Application service running the semantic retrieval flow.

    ``chat_provider`` may be None, in which case the question is used as the
    retrieval query unchanged.
    """

    def __init__(
        self,
        context: RagContext,
        chat_provider: ChatProvider | None,
        chunking_service: ChunkingService,
        *,
        model: str = "",
        settings: Settings | None = None,
    ):
        self._context = context
        self._chat_provider = chat_provider
        self._chunking_service = chunking_service
        self._settings = settings or context.settings
        self._model = model or self._settings.llm_model

    async def rewrite_query(
        self, query: str, cancellation: CancellationToken | None = None
    ) -> str:
        """Ask the LLM for a retrieval-friendly query; falls back to ``query``."""
        if self._chat_provider is None:
            return query

        messages = [
            ChatMessage(role="system", content=_REWRITE_SYSTEM_PROMPT),
            ChatMessage(role="user", content=_REWRITE_USER_PROMPT.format(query=query)),
        ]
        try:
            response = await self._chat_provider.complete(
                messages,
                self._model,
                temperature=_REWRITE_TEMPERATURE,
                max_tokens=_REWRITE_MAX_TOKENS,
                cancellation=cancellation,
            )
        except Exception as e:
            plog.step_warning(PipelineStage.REWRITE, "Query rewrite failed, using original query", error=e)
            return query

        rewritten = response.content.strip()
        return rewritten or query

    async def execute(self, options: SemanticPipelineOptions) -> SemanticPipelineResult:
        """Run the full pipeline for one user message."""
        if not self._settings.enable_semantic_pipeline:
            return SemanticPipelineResult(success=False, error=PIPELINE_DISABLED_MESSAGE)

        candidate_limit = (
            options.candidate_limit
            if options.candidate_limit is not None
            else self._settings.candidate_limit
        )
        top_k = options.top_k if options.top_k is not None else self._settings.top_k
        token = options.cancellation

        plog.separator("Semantic search")
        plog.step_start(
            PipelineStage.PIPELINE,
            f"Semantic search: {options.user_message[:50]!r}",
            candidate_limit=candidate_limit,
            top_k=top_k,
        )

        rewritten_query: str | None = None
        try:
            embedding_service = await self._context.get_embedding_service()
            if embedding_service is None:
                logger.warning("Semantic search skipped: embedding service unavailable")
                return SemanticPipelineResult(success=False, error=EMBEDDING_DISABLED_MESSAGE)

            with plog.timed_step(PipelineStage.REWRITE, "Rewriting query"):
                rewritten_query = await self.rewrite_query(options.user_message, token)
            plog.detail(f"Rewritten query: {rewritten_query!r}")
            _check_cancelled(token)

            with plog.timed_step(PipelineStage.RETRIEVE, "Loading session chunks"):
                chunks = await self._chunking_service.get_session_chunks(
                    options.db_path,
                    ChunkingOptions(
                        limit=candidate_limit,
                        time_filter=options.time_filter,
                        filter_invalid=True,
                        max_chunk_chars=self._settings.max_chunk_chars,
                        overlap_chars=self._settings.chunk_overlap_chars,
                    ),
                )

            if not chunks:
                logger.warning("Semantic search found no session chunks in %s", options.db_path)
                return SemanticPipelineResult(
                    success=True,
                    rewritten_query=rewritten_query,
                    results=[],
                    evidence_block="",
                )

            chunk_vectors = await self._resolve_chunk_vectors(chunks, embedding_service, token)
            _check_cancelled(token)

            with plog.timed_step(PipelineStage.EMBED, "Embedding query"):
                query_vector = await embedding_service.embed(rewritten_query)

            with plog.timed_step(PipelineStage.RANK, "Ranking chunks", candidates=len(chunks)):
                results = self._rank(chunks, chunk_vectors, query_vector, top_k)

            evidence_block = format_evidence_block(rewritten_query, results)

        except OperationCancelledError:
            plog.detail("Semantic search cancelled")
            return SemanticPipelineResult(
                success=False,
                rewritten_query=rewritten_query,
                error=CANCELLED_MESSAGE,
                cancelled=True,
            )
        except Exception as e:
            plog.step_error(PipelineStage.ERROR, "Semantic search failed", error=e)
            logger.exception("Semantic pipeline failed for db %s", options.db_path)
            return SemanticPipelineResult(
                success=False,
                rewritten_query=rewritten_query,
                error=str(e),
            )

        top_score = results[0].score if results else 0.0
        plog.step_complete(
            PipelineStage.COMPLETE,
            f"Returned {len(results)} results",
            top_relevance=f"{top_score * 100:.1f}%",
        )
        return SemanticPipelineResult(
            success=True,
            rewritten_query=rewritten_query,
            results=results,
            evidence_block=evidence_block,
        )

    async def _resolve_chunk_vectors(
        self,
        chunks: list[Chunk],
        embedding_service: EmbeddingProvider,
        token: CancellationToken | None,
    ) -> dict[str, list[float]]:
        """Vectors for ``chunks``: cache hits first, then one batch for the misses."""
        store = await self._context.get_vector_store()
        vectors: dict[str, list[float]] = {}
        misses: list[Chunk] = []

        for chunk in chunks:
            cached = await self._lookup(store, chunk.id)
            if cached:
                vectors[chunk.id] = cached
            else:
                misses.append(chunk)

        plog.stats(cached=len(vectors), to_embed=len(misses))
        _check_cancelled(token)

        if not misses:
            return vectors

        with plog.timed_step(PipelineStage.EMBED, "Embedding chunks", count=len(misses)):
            embedded = await embedding_service.embed_batch([c.content for c in misses])

        for chunk, vector in zip(misses, embedded):
            vectors[chunk.id] = vector
            await self._write_back(store, chunk, vector)

        return vectors

    @staticmethod
    async def _lookup(store: VectorStore | None, chunk_id: str) -> list[float] | None:
        if store is None:
            return None
        try:
            return await store.get(chunk_id)
        except Exception as e:
            logger.warning("Vector cache lookup failed for %s: %s", chunk_id, e)
            return None

    @staticmethod
    async def _write_back(store: VectorStore | None, chunk: Chunk, vector: list[float]) -> None:
        if store is None or not vector:
            return
        try:
            await store.add(chunk.id, vector, chunk.metadata.to_dict())
        except Exception as e:
            logger.warning("Vector cache write failed for %s: %s", chunk.id, e)

    @staticmethod
    def _rank(
        chunks: list[Chunk],
        chunk_vectors: dict[str, list[float]],
        query_vector: list[float],
        top_k: int,
    ) -> list[RankedChunk]:
        scored: list[RankedChunk] = []
        for chunk in chunks:
            vector = chunk_vectors.get(chunk.id)
            if not vector:
                continue
            scored.append(
                RankedChunk(
                    score=cosine_similarity(query_vector, vector),
                    chunk_id=chunk.id,
                    content=chunk.content,
                    metadata=chunk.metadata,
                )
            )
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[:top_k]
