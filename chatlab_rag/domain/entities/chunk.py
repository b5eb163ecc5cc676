"""Domain entities for conversation chunks and the raw chat records they come from."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ChunkType(str, Enum):
    """How a chunk was cut from the conversation history."""

    SESSION = "session"
    WINDOW = "window"  # reserved
    TIME = "time"  # reserved


@dataclass
class ChunkMetadata:
    """Provenance of a chunk inside the chat history.

    ``sub_chunk_index`` / ``total_sub_chunks`` are only set when an oversized
    session was split into several parts.
    """

    start_ts: int
    end_ts: int
    message_count: int
    participants: list[str] = field(default_factory=list)
    session_id: int | None = None
    sub_chunk_index: int | None = None
    total_sub_chunks: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable mapping; unset split fields are omitted."""
        data: dict[str, Any] = {
            "session_id": self.session_id,
            "start_ts": self.start_ts,
            "end_ts": self.end_ts,
            "message_count": self.message_count,
            "participants": list(self.participants),
        }
        if self.sub_chunk_index is not None:
            data["sub_chunk_index"] = self.sub_chunk_index
            data["total_sub_chunks"] = self.total_sub_chunks
        return data


@dataclass
class Chunk:
    """A retrievable unit of conversation text, ready for embedding."""

    id: str  # "session_<id>" or "session_<id>_part<N>"
    type: ChunkType
    content: str
    metadata: ChunkMetadata


@dataclass
class SessionInfo:
    """A conversation session as listed by the raw chat store."""

    id: int
    start_ts: int  # seconds since epoch
    end_ts: int
    message_count: int = 0


@dataclass
class SessionMessage:
    """A single message inside a session, as read from the raw chat store."""

    sender_name: str
    content: str | None
    timestamp: int  # seconds since epoch
    type: int | None = None
    id: int | None = None
