"""Logging setup with per-category levels.

Hosts call :func:`setup_logging` once at startup. Each category level in
:class:`Settings` applies to a fixed group of logger names, so SQL echo or
outbound HTTP chatter can be silenced while pipeline output stays visible.
"""

import logging
import sys

from chatlab_rag.config import Settings, get_settings

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Settings field -> logger names it controls
_CATEGORIES: dict[str, tuple[str, ...]] = {
    "log_level_sql": ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite"),
    "log_level_http": ("httpx", "httpcore"),
    "log_level_pipeline": (
        "SemanticPipeline",
        "chatlab_rag.application.services.semantic_pipeline",
        "chatlab_rag.application.services.chunking_service",
        "chatlab_rag.application.services.rag_context",
    ),
    "log_level_embedding": (
        "chatlab_rag.infrastructure.embedding",
        "chatlab_rag.infrastructure.llm",
        "chatlab_rag.application.services.embedding_config_service",
    ),
    "log_level_store": (
        "chatlab_rag.infrastructure.vector_store",
        "chatlab_rag.infrastructure.database",
    ),
}


def _level(name: str) -> int:
    """Level constant for ``name``; unknown names fall back to INFO."""
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()

    root = logging.getLogger()
    root.setLevel(_level(settings.log_level))
    # Leave handlers installed by the host alone
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)

    for field_name, logger_names in _CATEGORIES.items():
        level = _level(getattr(settings, field_name))
        for logger_name in logger_names:
            logging.getLogger(logger_name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s sql=%s http=%s pipeline=%s embedding=%s store=%s",
        settings.log_level,
        settings.log_level_sql,
        settings.log_level_http,
        settings.log_level_pipeline,
        settings.log_level_embedding,
        settings.log_level_store,
    )
