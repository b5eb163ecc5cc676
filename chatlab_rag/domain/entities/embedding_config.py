"""Domain entities for embedding service configuration."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def _now_ms() -> int:
    return int(time.time() * 1000)


class ApiSource(str, Enum):
    """Where an embedding configuration takes its endpoint and key from."""

    REUSE_LLM = "reuse_llm"
    CUSTOM = "custom"


@dataclass
class EmbeddingServiceConfig:
    """A named embedding configuration.

    ``base_url`` and ``api_key`` are only consulted for ``ApiSource.CUSTOM``;
    ``REUSE_LLM`` configs borrow them from the active LLM connection.
    """

    name: str
    model: str
    api_source: ApiSource = ApiSource.REUSE_LLM
    base_url: str | None = None
    api_key: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: int = field(default_factory=_now_ms)
    updated_at: int = field(default_factory=_now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "api_source": self.api_source.value,
            "model": self.model,
            "base_url": self.base_url,
            "api_key": self.api_key,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmbeddingServiceConfig":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            api_source=ApiSource(data.get("api_source", ApiSource.REUSE_LLM.value)),
            model=data.get("model", ""),
            base_url=data.get("base_url"),
            api_key=data.get("api_key"),
            created_at=data.get("created_at", 0),
            updated_at=data.get("updated_at", 0),
        )


@dataclass
class EmbeddingConfigStore:
    """All embedding configurations plus the active selection."""

    configs: list[EmbeddingServiceConfig] = field(default_factory=list)
    active_config_id: str | None = None
    enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "configs": [c.to_dict() for c in self.configs],
            "active_config_id": self.active_config_id,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EmbeddingConfigStore":
        return cls(
            configs=[EmbeddingServiceConfig.from_dict(c) for c in data.get("configs", [])],
            active_config_id=data.get("active_config_id"),
            enabled=bool(data.get("enabled", False)),
        )


@dataclass
class LLMConnection:
    """The active LLM connection, as far as embedding resolution cares."""

    provider: str
    base_url: str = ""
    api_key: str = ""
    model: str = ""


@dataclass
class ResolvedEmbeddingEndpoint:
    """Concrete HTTP target for an embedding provider."""

    base_url: str
    model: str
    api_key: str | None = None


@dataclass
class ValidationResult:
    """Outcome of probing an embedding configuration."""

    success: bool
    error: str | None = None
