"""SQLAlchemy implementation of ChatLogRepository over an imported chat database.

The schema is owned by the importer; only the columns below are relied upon:
``chat_session(id, start_ts, end_ts, message_count)``,
``message_context(message_id, session_id)``,
``message(id, sender_id, ts, type, content)`` and
``member(id, platform_id, account_name, group_nickname)``.
"""

import logging
from pathlib import Path

from sqlalchemy import text

from chatlab_rag.application.interfaces.chat_log_repository import ChatLogRepository
from chatlab_rag.domain.entities import SessionInfo, SessionMessage, TimeFilter
from chatlab_rag.infrastructure.database.base import create_sqlite_engine

logger = logging.getLogger(__name__)

_SESSION_COLUMNS = "id, start_ts, end_ts, message_count"

_SESSION_MESSAGES_SQL = text(
    """
    SELECT
        m.id AS id,
        COALESCE(mb.group_nickname, mb.account_name, mb.platform_id) AS sender_name,
        m.content AS content,
        m.ts AS ts,
        m.type AS type
    FROM message_context mc
    JOIN message m ON m.id = mc.message_id
    JOIN member mb ON mb.id = m.sender_id
    WHERE mc.session_id = :session_id
    ORDER BY m.ts ASC
    LIMIT :limit
    """
)


class SQLAlchemyChatLogRepository(ChatLogRepository):
    """Read-only chat-log access through an aiosqlite engine."""

    def __init__(self, db_path: str | Path):
        self._db_path = Path(db_path)
        # SQLite would silently create an empty database for a missing path
        if not self._db_path.is_file():
            raise FileNotFoundError(f"Chat database not found: {self._db_path}")
        self._engine = create_sqlite_engine(self._db_path)

    async def list_sessions(
        self, *, limit: int = 50, time_filter: TimeFilter | None = None
    ) -> list[SessionInfo]:
        sql = f"SELECT {_SESSION_COLUMNS} FROM chat_session"
        params: dict[str, int] = {"limit": limit}
        if time_filter is not None:
            sql += " WHERE start_ts >= :start_ts AND end_ts <= :end_ts"
            params["start_ts"] = time_filter.start_ts
            params["end_ts"] = time_filter.end_ts
        sql += " ORDER BY start_ts DESC LIMIT :limit"

        async with self._engine.connect() as conn:
            result = await conn.execute(text(sql), params)
            rows = result.mappings().all()

        # Newest sessions were selected; hand them back oldest first
        sessions = [self._to_session(row) for row in rows]
        sessions.reverse()
        return sessions

    async def get_session(self, session_id: int) -> SessionInfo | None:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                text(f"SELECT {_SESSION_COLUMNS} FROM chat_session WHERE id = :id"),
                {"id": session_id},
            )
            row = result.mappings().first()
        return self._to_session(row) if row is not None else None

    async def list_session_messages(
        self, session_id: int, *, limit: int = 500
    ) -> list[SessionMessage]:
        async with self._engine.connect() as conn:
            result = await conn.execute(
                _SESSION_MESSAGES_SQL, {"session_id": session_id, "limit": limit}
            )
            rows = result.mappings().all()

        return [
            SessionMessage(
                id=row["id"],
                sender_name=row["sender_name"] or "",
                content=row["content"],
                timestamp=row["ts"],
                type=row["type"],
            )
            for row in rows
        ]

    async def close(self) -> None:
        await self._engine.dispose()

    @staticmethod
    def _to_session(row) -> SessionInfo:
        return SessionInfo(
            id=row["id"],
            start_ts=row["start_ts"],
            end_ts=row["end_ts"],
            message_count=row["message_count"] or 0,
        )
