from .base import Base, create_sqlite_engine, sqlite_async_url
from .models import VectorModel

__all__ = [
    "Base",
    "create_sqlite_engine",
    "sqlite_async_url",
    "VectorModel",
]
