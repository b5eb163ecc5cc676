"""Domain entities for the semantic retrieval pipeline."""

from dataclasses import dataclass, field

from .chunk import ChunkMetadata


@dataclass
class TimeFilter:
    """Inclusive time window, in seconds since epoch."""

    start_ts: int
    end_ts: int


class CancellationToken:
    """Cooperative cancellation flag shared by reference.

    Polled between pipeline stages; never interrupts an in-flight request.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass
class SemanticPipelineOptions:
    """Input for one semantic pipeline run.

    ``candidate_limit`` and ``top_k`` fall back to the application settings
    when left as ``None``.
    """

    user_message: str
    db_path: str
    time_filter: TimeFilter | None = None
    candidate_limit: int | None = None
    top_k: int | None = None
    cancellation: CancellationToken | None = None


@dataclass
class RankedChunk:
    """A chunk scored against the query."""

    score: float
    chunk_id: str
    content: str
    metadata: ChunkMetadata | None = None


@dataclass
class SemanticPipelineResult:
    """Outcome of a semantic pipeline run.

    A run that completes but finds nothing has ``success=True`` and an empty
    ``results`` list. Failed and cancelled runs always carry ``results=[]``.
    """

    success: bool
    results: list[RankedChunk] = field(default_factory=list)
    rewritten_query: str | None = None
    evidence_block: str | None = None
    error: str | None = None
    cancelled: bool = False
