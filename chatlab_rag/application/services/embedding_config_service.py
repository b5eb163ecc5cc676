"""Application service for embedding configuration management.

Reads/writes the embedding configurations to a JSON file so they persist
across restarts without a database.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any

from chatlab_rag.domain.entities import (
    ApiSource,
    EmbeddingConfigStore,
    EmbeddingServiceConfig,
)
from chatlab_rag.domain.exceptions import ConfigLimitError, ConfigNotFoundError

logger = logging.getLogger(__name__)

MAX_EMBEDDING_CONFIG_COUNT = 10

_CONFIG_TYPE = "Embedding config"
# Fields a caller may change through update_config()
_UPDATABLE_FIELDS = ("name", "api_source", "model", "base_url", "api_key")


class EmbeddingConfigService:
    """CRUD over the embedding configuration store.

    At most :data:`MAX_EMBEDDING_CONFIG_COUNT` configurations are kept and
    exactly one of them is active whenever any exist.
    """

    def __init__(self, config_file: str | Path):
        self._config_file = Path(config_file)

    @property
    def config_file(self) -> Path:
        return self._config_file

    # ── Persistence ─────────────────────────────────────────────────

    def _load(self) -> EmbeddingConfigStore:
        """Read the store, returning defaults if missing or corrupt."""
        if not self._config_file.exists():
            return EmbeddingConfigStore()
        try:
            return EmbeddingConfigStore.from_dict(
                json.loads(self._config_file.read_text("utf-8"))
            )
        except Exception:
            logger.warning("Could not read %s — using defaults", self._config_file)
            return EmbeddingConfigStore()

    def _save(self, store: EmbeddingConfigStore) -> None:
        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        self._config_file.write_text(
            json.dumps(store.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )

    @staticmethod
    def _find(store: EmbeddingConfigStore, config_id: str) -> EmbeddingServiceConfig:
        for config in store.configs:
            if config.id == config_id:
                return config
        raise ConfigNotFoundError(_CONFIG_TYPE, config_id)

    # ── Queries ─────────────────────────────────────────────────────

    def get_store(self) -> EmbeddingConfigStore:
        return self._load()

    def list_configs(self) -> list[EmbeddingServiceConfig]:
        return self._load().configs

    def get_config(self, config_id: str) -> EmbeddingServiceConfig | None:
        return next((c for c in self._load().configs if c.id == config_id), None)

    def get_active_config_id(self) -> str | None:
        return self._load().active_config_id

    def get_active_config(self) -> EmbeddingServiceConfig | None:
        store = self._load()
        if store.active_config_id is None:
            return None
        return next((c for c in store.configs if c.id == store.active_config_id), None)

    def is_enabled(self) -> bool:
        """Semantic search is on and an active configuration exists."""
        store = self._load()
        if not store.enabled or store.active_config_id is None:
            return False
        return any(c.id == store.active_config_id for c in store.configs)

    # ── Mutations ───────────────────────────────────────────────────

    def set_enabled(self, enabled: bool) -> None:
        store = self._load()
        store.enabled = enabled
        self._save(store)
        logger.info("Semantic search %s", "enabled" if enabled else "disabled")

    def add_config(
        self,
        name: str,
        model: str,
        *,
        api_source: ApiSource | str = ApiSource.REUSE_LLM,
        base_url: str | None = None,
        api_key: str | None = None,
    ) -> EmbeddingServiceConfig:
        """Add a configuration; the first one added becomes active.

        Raises:
            ConfigLimitError: The store already holds the maximum number.
        """
        store = self._load()
        if len(store.configs) >= MAX_EMBEDDING_CONFIG_COUNT:
            raise ConfigLimitError(_CONFIG_TYPE, MAX_EMBEDDING_CONFIG_COUNT)

        config = EmbeddingServiceConfig(
            name=name,
            model=model,
            api_source=ApiSource(api_source),
            base_url=base_url,
            api_key=api_key,
        )
        store.configs.append(config)
        if store.active_config_id is None:
            store.active_config_id = config.id
        self._save(store)

        logger.info("Added embedding config %s (%s)", config.id, config.name)
        return config

    def update_config(self, config_id: str, updates: dict[str, Any]) -> EmbeddingServiceConfig:
        """Apply ``updates`` to a configuration; unknown keys are ignored.

        Raises:
            ConfigNotFoundError: No configuration with ``config_id``.
        """
        store = self._load()
        config = self._find(store, config_id)

        for key in _UPDATABLE_FIELDS:
            if key in updates:
                value = updates[key]
                if key == "api_source":
                    value = ApiSource(value)
                setattr(config, key, value)
        config.updated_at = int(time.time() * 1000)
        self._save(store)

        logger.info("Updated embedding config %s", config_id)
        return config

    def delete_config(self, config_id: str) -> None:
        """Remove a configuration; the active one falls back to the first remaining.

        Raises:
            ConfigNotFoundError: No configuration with ``config_id``.
        """
        store = self._load()
        config = self._find(store, config_id)
        store.configs.remove(config)

        if store.active_config_id == config_id:
            store.active_config_id = store.configs[0].id if store.configs else None
        self._save(store)

        logger.info(
            "Deleted embedding config %s (active now %s)", config_id, store.active_config_id
        )

    def set_active_config(self, config_id: str) -> None:
        """Raises ConfigNotFoundError for an unknown id."""
        store = self._load()
        self._find(store, config_id)
        store.active_config_id = config_id
        self._save(store)
        logger.info("Active embedding config set to %s", config_id)
