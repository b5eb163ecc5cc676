"""Colored pipeline logger — ANSI-colored console output for semantic search.

Each stage of the retrieval pipeline gets its own color and icon so that a
single search can be followed in the terminal at a glance:

    ✏️  REWRITE   magenta
    📚 RETRIEVE  yellow
    🧮 EMBED     blue
    📊 RANK      cyan
    ❌ ERROR     red

Messages go through the standard ``logging`` module under the component
name, so their level is controlled by ``log_level_pipeline``.
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, NamedTuple


# ── ANSI Color Codes ─────────────────────────────────────────────────

class _Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


# ── Pipeline Stage Definitions ───────────────────────────────────────

class Stage(NamedTuple):
    label: str
    color: str
    icon: str


class PipelineStage:
    """Stages of the semantic pipeline."""

    REWRITE = Stage("REWRITE", _Colors.MAGENTA, "✏️")
    RETRIEVE = Stage("RETRIEVE", _Colors.YELLOW, "📚")
    EMBED = Stage("EMBED", _Colors.BLUE, "🧮")
    RANK = Stage("RANK", _Colors.CYAN, "📊")
    EVIDENCE = Stage("EVIDENCE", _Colors.CYAN, "📝")
    PIPELINE = Stage("PIPELINE", _Colors.WHITE, "⚙️")
    ERROR = Stage("ERROR", _Colors.RED, "❌")
    COMPLETE = Stage("COMPLETE", _Colors.GREEN, "✅")


def _key_values(values: dict[str, Any], color: str = _Colors.GRAY) -> str:
    if not values:
        return ""
    joined = " | ".join(f"{k}={v}" for k, v in values.items())
    return f" {color}({joined}){_Colors.RESET}"


def _error_suffix(error: Exception | None) -> str:
    if error is None:
        return ""
    return f" {_Colors.DIM}→ {type(error).__name__}: {error}{_Colors.RESET}"


# ── PipelineLogger ───────────────────────────────────────────────────

class PipelineLogger:
    """Stage-aware logger for the semantic retrieval pipeline.

    Usage:
        plog = PipelineLogger("SemanticPipeline")
        with plog.timed_step(PipelineStage.RETRIEVE, "Loading session chunks"):
            chunks = await chunking_service.get_session_chunks(db_path)
        plog.stats(cached=12, to_embed=3)
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _emit(self, level: int, text: str) -> None:
        if self._logger.isEnabledFor(level):
            self._logger.log(level, text)

    def step_start(self, stage: Stage, message: str, **kwargs: Any) -> None:
        self._emit(
            logging.INFO,
            f"{stage.color}{_Colors.BOLD}{stage.icon} [{stage.label}]{_Colors.RESET} "
            f"{stage.color}{message}{_Colors.RESET}{_key_values(kwargs)}",
        )

    def step_complete(self, stage: Stage, message: str, **kwargs: Any) -> None:
        self._emit(
            logging.INFO,
            f"{stage.color}{stage.icon} [{stage.label}]{_Colors.RESET} "
            f"{_Colors.GREEN}✓ {message}{_Colors.RESET}{_key_values(kwargs)}",
        )

    def step_warning(self, stage: Stage, message: str, error: Exception | None = None) -> None:
        """A degraded step: a fallback was taken and the pipeline continues."""
        self._emit(
            logging.WARNING,
            f"{_Colors.YELLOW}{_Colors.BOLD}⚠️ [{stage.label}]{_Colors.RESET} "
            f"{_Colors.YELLOW}{message}{_Colors.RESET}{_error_suffix(error)}",
        )

    def step_error(self, stage: Stage, message: str, error: Exception | None = None) -> None:
        self._emit(
            logging.ERROR,
            f"{_Colors.RED}{_Colors.BOLD}❌ [{stage.label}]{_Colors.RESET} "
            f"{_Colors.RED}{message}{_Colors.RESET}{_error_suffix(error)}",
        )

    def detail(self, message: str, **kwargs: Any) -> None:
        self._emit(
            logging.INFO,
            f"   {_Colors.GRAY}├─ {message}{_Colors.RESET}{_key_values(kwargs, _Colors.DIM)}",
        )

    def stats(self, **kwargs: Any) -> None:
        parts = " | ".join(f"{k}: {v}" for k, v in kwargs.items())
        self._emit(logging.INFO, f"   {_Colors.GRAY}📈 {parts}{_Colors.RESET}")

    def separator(self, title: str = "") -> None:
        line = f"{'─' * 10} {title} {'─' * max(50 - len(title), 0)}" if title else "─" * 60
        self._emit(logging.INFO, f"{_Colors.GRAY}{line}{_Colors.RESET}")

    @contextmanager
    def timed_step(self, stage: Stage, message: str, **kwargs: Any) -> Iterator[None]:
        """Log start and end of a block with its elapsed time.

        An exception escaping the block is logged as a step error and
        re-raised unchanged.
        """
        self.step_start(stage, message, **kwargs)
        started = time.perf_counter()
        try:
            yield
        except Exception as e:
            self.step_error(stage, f"{message} failed after {time.perf_counter() - started:.2f}s", error=e)
            raise
        self.step_complete(stage, f"{message} in {time.perf_counter() - started:.2f}s", **kwargs)
