"""Unit tests for application settings configuration."""

from pathlib import Path

from chatlab_rag.config import Settings


def test_settings_uses_project_env_file_independent_of_cwd():
    """Settings should always include the project root .env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_project_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_project_env in normalized
    assert str(Path(".env")) in normalized


def test_default_paths_live_under_data_dir():
    settings = Settings(_env_file=None, data_dir="/tmp/chatlab")

    assert settings.resolved_embedding_config_file() == Path(
        "/tmp/chatlab/ai/embedding_configs.json"
    )
    assert settings.resolved_vector_db_path() == Path("/tmp/chatlab/ai/vectors/embeddings.db")


def test_explicit_paths_override_defaults():
    settings = Settings(
        _env_file=None,
        embedding_config_file="/etc/chatlab/embeddings.json",
        vector_db_path="/var/lib/chatlab/vectors.db",
    )

    assert settings.resolved_embedding_config_file() == Path("/etc/chatlab/embeddings.json")
    assert settings.resolved_vector_db_path() == Path("/var/lib/chatlab/vectors.db")


def test_pipeline_defaults():
    settings = Settings(_env_file=None)

    assert settings.enable_semantic_pipeline is True
    assert settings.candidate_limit == 50
    assert settings.top_k == 10
    assert settings.vector_store_type == "sqlite"
    assert settings.memory_cache_size == 10000


def test_settings_carry_no_web_app_metadata():
    assert {"app_title", "app_version", "app_env"}.isdisjoint(Settings.model_fields)
