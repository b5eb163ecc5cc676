from .chat_log_repository import SQLAlchemyChatLogRepository

__all__ = ["SQLAlchemyChatLogRepository"]
