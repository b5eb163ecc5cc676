"""Chunking service — turns chat sessions into retrievable text chunks.

Each conversation session (as segmented by the importer) becomes one chunk:
a time-range header followed by ``sender: text`` lines. Non-text messages and
placeholder text are dropped first, and sessions that are too long for an
embedding model are split line-wise with a small overlap.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from chatlab_rag.application.interfaces.chat_log_repository import ChatLogRepository
from chatlab_rag.domain.entities import (
    Chunk,
    ChunkMetadata,
    ChunkType,
    SessionInfo,
    SessionMessage,
    TimeFilter,
)

logger = logging.getLogger(__name__)

# ── Chunking constants ──────────────────────────────────────────────
# Most embedding models cap input at ~8k tokens; 2000 chars stays well
# below that for both CJK (~1.5-2 chars/token) and English (~4 chars/token).
MAX_CHUNK_CHARS = 2000
CHUNK_OVERLAP_CHARS = 200
OVERLAP_LINES = 3
MAX_MESSAGES_PER_SESSION = 500

# system, image, voice, video, file, location, contact card, recall,
# red packet, transfer
INVALID_MESSAGE_TYPES = frozenset({0, 3, 4, 5, 6, 7, 8, 10, 11, 12})

INVALID_TEXT_PATTERNS = (
    "[图片]",
    "[语音]",
    "[视频]",
    "[文件]",
    "[表情]",
    "[动画表情]",
    "[位置]",
    "[名片]",
    "[红包]",
    "[转账]",
    "[撤回消息]",
    "撤回了一条消息",
    "你撤回了一条消息",
    "[image]",
    "[voice]",
    "[video]",
    "[file]",
    "[sticker]",
    "[location]",
    "[contact card]",
    "[red packet]",
    "[transfer]",
    "[recalled]",
    "recalled a message",
)

RepositoryFactory = Callable[[str], ChatLogRepository]


@dataclass
class ChunkingOptions:
    """Options for :meth:`ChunkingService.get_session_chunks`."""

    limit: int = 50
    time_filter: TimeFilter | None = None
    filter_invalid: bool = True
    max_chunk_chars: int = MAX_CHUNK_CHARS
    overlap_chars: int = CHUNK_OVERLAP_CHARS


def filter_valid_messages(messages: list[SessionMessage]) -> list[SessionMessage]:
    """Keep only messages that carry meaningful text."""
    valid: list[SessionMessage] = []
    for message in messages:
        if message.type is not None and message.type in INVALID_MESSAGE_TYPES:
            continue
        if not message.content or not message.content.strip():
            continue
        content = message.content.strip()
        if any(pattern in content for pattern in INVALID_TEXT_PATTERNS):
            continue
        valid.append(message)
    return valid


def _format_ts(ts: int) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M")


def format_time_range(start_ts: int, end_ts: int) -> str:
    """``YYYY-MM-DD HH:MM ~ YYYY-MM-DD HH:MM`` in local time."""
    return f"{_format_ts(start_ts)} ~ {_format_ts(end_ts)}"


def unique_participants(messages: list[SessionMessage]) -> list[str]:
    """Sender names de-duplicated in order of first appearance."""
    return list(dict.fromkeys(m.sender_name for m in messages))


def format_session_chunk(
    session: SessionInfo,
    messages: list[SessionMessage],
    filter_invalid: bool = True,
) -> str:
    """Render a session as chunk text; "" when no message survives filtering.

    Example::

        [2024-01-15 14:30 ~ 2024-01-15 15:20] Participants: Alice, Bob
        Alice: nice weather today
        Bob: perfect for a walk
    """
    valid = filter_valid_messages(messages) if filter_invalid else messages
    if not valid:
        return ""

    header = (
        f"[{format_time_range(session.start_ts, session.end_ts)}] "
        f"Participants: {', '.join(unique_participants(valid))}"
    )
    lines = [f"{m.sender_name}: {m.content}" for m in valid]
    return "\n".join([header, *lines])


def _tail_overlap(chunk: str, overlap_chars: int) -> str:
    tail = "\n".join(chunk.split("\n")[-OVERLAP_LINES:])
    return tail[-overlap_chars:] if overlap_chars > 0 else ""


def split_into_sub_chunks(
    content: str,
    max_chars: int = MAX_CHUNK_CHARS,
    overlap_chars: int = CHUNK_OVERLAP_CHARS,
) -> list[str]:
    """Split oversized chunk text into overlapping parts.

    Lines are accumulated until the next one would overflow ``max_chars``;
    the following part is seeded with the last few lines of the previous one
    (trimmed to ``overlap_chars``). A single line longer than ``max_chars`` is
    cut at character level, each piece carrying the tail of the previous one.
    """
    if len(content) <= max_chars:
        return [content]

    chunks: list[str] = []
    current = ""
    overlap = ""

    for line in content.split("\n"):
        if len(line) > max_chars:
            if current:
                chunks.append(current)
                overlap = _tail_overlap(current, overlap_chars)
                current = ""

            remaining = line
            while remaining:
                take = max_chars - len(overlap)
                if take <= 0:
                    overlap = ""
                    take = max_chars
                part = remaining[:take]
                chunks.append(overlap + part)
                overlap = part[-overlap_chars:] if overlap_chars > 0 else ""
                remaining = remaining[len(part):]
            continue

        new_length = len(current) + (1 if current else 0) + len(line)
        if new_length > max_chars:
            if current:
                chunks.append(current)
                overlap = _tail_overlap(current, overlap_chars)
            current = f"{overlap}\n{line}" if overlap else line
        else:
            current = f"{current}\n{line}" if current else line

    if current:
        chunks.append(current)

    return chunks


class ChunkingService:
    """Application service that reads sessions and produces chunks.

    ``repository_factory`` opens a :class:`ChatLogRepository` for a database
    path; a fresh repository is opened and closed for every call.
    """

    def __init__(self, repository_factory: RepositoryFactory):
        self._repository_factory = repository_factory

    def _build_chunks(
        self,
        session: SessionInfo,
        messages: list[SessionMessage],
        options: ChunkingOptions,
    ) -> list[Chunk]:
        content = format_session_chunk(session, messages, options.filter_invalid)
        if not content:
            return []

        valid = filter_valid_messages(messages) if options.filter_invalid else messages
        participants = unique_participants(valid)
        base_metadata = dict(
            session_id=session.id,
            start_ts=session.start_ts,
            end_ts=session.end_ts,
            message_count=len(valid),
        )

        if len(content) <= options.max_chunk_chars:
            return [
                Chunk(
                    id=f"session_{session.id}",
                    type=ChunkType.SESSION,
                    content=content,
                    metadata=ChunkMetadata(**base_metadata, participants=participants),
                )
            ]

        parts = split_into_sub_chunks(content, options.max_chunk_chars, options.overlap_chars)
        return [
            Chunk(
                id=f"session_{session.id}_part{i + 1}",
                type=ChunkType.SESSION,
                content=part,
                metadata=ChunkMetadata(
                    **base_metadata,
                    participants=list(participants),
                    sub_chunk_index=i,
                    total_sub_chunks=len(parts),
                ),
            )
            for i, part in enumerate(parts)
        ]

    async def get_session_chunks(
        self, db_path: str, options: ChunkingOptions | None = None
    ) -> list[Chunk]:
        """Chunks for the most recent sessions, oldest first.

        Database errors (including a missing file) are logged and yield [].
        """
        options = options or ChunkingOptions()
        try:
            async with self._repository_factory(db_path) as repository:
                sessions = await repository.list_sessions(
                    limit=options.limit, time_filter=options.time_filter
                )
                chunks: list[Chunk] = []
                for session in sessions:
                    messages = await repository.list_session_messages(
                        session.id, limit=MAX_MESSAGES_PER_SESSION
                    )
                    chunks.extend(self._build_chunks(session, messages, options))
        except Exception:
            logger.exception("Failed to build session chunks from %s", db_path)
            return []

        logger.debug(
            "Built %d chunks from %d sessions (%s)", len(chunks), len(sessions), db_path
        )
        return chunks

    async def get_session_chunk(self, db_path: str, session_id: int) -> Chunk | None:
        """The unsplit chunk for one session, or None."""
        try:
            async with self._repository_factory(db_path) as repository:
                session = await repository.get_session(session_id)
                if session is None:
                    return None
                messages = await repository.list_session_messages(
                    session_id, limit=MAX_MESSAGES_PER_SESSION
                )
        except Exception:
            logger.exception("Failed to load session %s from %s", session_id, db_path)
            return None

        content = format_session_chunk(session, messages)
        if not content:
            return None

        valid = filter_valid_messages(messages)
        return Chunk(
            id=f"session_{session.id}",
            type=ChunkType.SESSION,
            content=content,
            metadata=ChunkMetadata(
                session_id=session.id,
                start_ts=session.start_ts,
                end_ts=session.end_ts,
                message_count=len(valid),
                participants=unique_participants(valid),
            ),
        )
