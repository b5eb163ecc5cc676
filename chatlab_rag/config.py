from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

_ROOT_DIR = Path(__file__).resolve().parents[1]
_ENV_FILES = (
    _ROOT_DIR / ".env",
    ".env",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage locations (relative paths resolve against the working directory)
    data_dir: str = "data"
    embedding_config_file: str = ""  # default: {data_dir}/ai/embedding_configs.json
    vector_db_path: str = ""  # default: {data_dir}/ai/vectors/embeddings.db

    # Vector store
    vector_store_enabled: bool = True
    vector_store_type: str = "sqlite"  # "memory" | "sqlite" | "lancedb" (reserved)
    memory_cache_size: int = 10000

    # Semantic pipeline defaults
    enable_semantic_pipeline: bool = True
    candidate_limit: int = 50
    top_k: int = 10
    max_chunk_chars: int = 2000
    chunk_overlap_chars: int = 200

    # Active LLM connection (reused by "reuse_llm" embedding configs)
    llm_provider: str = ""
    llm_base_url: str = ""
    llm_api_key: str = ""
    llm_model: str = ""

    # Outbound HTTP timeouts (seconds)
    embedding_timeout_seconds: float = 60.0
    chat_timeout_seconds: float = 120.0

    # Logging: per-category log levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = "INFO"                  # Root / app-wide
    log_level_sql: str = "WARNING"           # sqlalchemy.engine / aiosqlite
    log_level_http: str = "WARNING"          # httpx / httpcore (outbound HTTP)
    log_level_pipeline: str = "INFO"         # SemanticPipeline stages
    log_level_embedding: str = "INFO"        # Embedding + chat adapters
    log_level_store: str = "INFO"            # Vector store backends

    model_config = {
        "env_file": _ENV_FILES,
        "env_file_encoding": "utf-8",
    }

    @property
    def ai_data_dir(self) -> Path:
        return Path(self.data_dir) / "ai"

    def resolved_embedding_config_file(self) -> Path:
        if self.embedding_config_file:
            return Path(self.embedding_config_file)
        return self.ai_data_dir / "embedding_configs.json"

    def resolved_vector_db_path(self) -> Path:
        if self.vector_db_path:
            return Path(self.vector_db_path)
        return self.ai_data_dir / "vectors" / "embeddings.db"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance — reads .env once."""
    return Settings()
