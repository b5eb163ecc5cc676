"""Abstract repository interface (port) for reading the raw chat-log database."""

from abc import ABC, abstractmethod
from types import TracebackType

from chatlab_rag.domain.entities import SessionInfo, SessionMessage, TimeFilter


class ChatLogRepository(ABC):
    """Read-only access to sessions and messages of one imported chat.

    Used as an async context manager so connections are released after each
    chunking request.
    """

    async def __aenter__(self) -> "ChatLogRepository":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @abstractmethod
    async def list_sessions(
        self, *, limit: int = 50, time_filter: TimeFilter | None = None
    ) -> list[SessionInfo]:
        """Return the most recent ``limit`` sessions, oldest first."""
        ...

    @abstractmethod
    async def get_session(self, session_id: int) -> SessionInfo | None:
        ...

    @abstractmethod
    async def list_session_messages(
        self, session_id: int, *, limit: int = 500
    ) -> list[SessionMessage]:
        """Return up to ``limit`` messages of a session in chronological order."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
