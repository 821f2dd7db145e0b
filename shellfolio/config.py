"""Environment-driven settings for shellfolio.

Each section is a dataclass whose fields read a ``SHELLFOLIO_*`` variable at
construction time and fall back to a built-in default when it is unset or
unparsable. A ``.env`` file in the working directory is honoured.

Example:
    export SHELLFOLIO_SSH_PORT=2222
    export SHELLFOLIO_USER=guest
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, TypeVar

try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass

T = TypeVar("T")

_TRUTHY = frozenset(("true", "1", "yes", "on"))
_FALSY = frozenset(("false", "0", "no", "off"))


def _get_env(key: str, default: str) -> str:
    return os.environ.get(key, default)


def _parse_env(key: str, default: T, parse: Callable[[str], T]) -> T:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return parse(raw)
    except ValueError:
        return default


def _get_env_int(key: str, default: int) -> int:
    return _parse_env(key, default, int)


def _get_env_float(key: str, default: float) -> float:
    return _parse_env(key, default, float)


def _get_env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key, "").strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def _get_env_path(key: str, default: Path) -> Path:
    return Path(_get_env(key, str(default)))


PROJECT_ROOT = Path(__file__).resolve().parents[1]
DATA_DIR = PROJECT_ROOT / "data"


@dataclass
class SSHConfig:
    """SSH front end configuration."""

    host: str = field(default_factory=lambda: _get_env("SHELLFOLIO_SSH_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _get_env_int("SHELLFOLIO_SSH_PORT", 2222))
    host_key_path: Path = field(
        default_factory=lambda: _get_env_path(
            "SHELLFOLIO_HOST_KEY", DATA_DIR / "host.key"
        )
    )
    max_sessions: int = field(
        default_factory=lambda: _get_env_int("SHELLFOLIO_MAX_SESSIONS", 50)
    )
    max_session_duration: int = field(
        default_factory=lambda: _get_env_int("SHELLFOLIO_MAX_SESSION_DURATION", 3600)
    )


@dataclass
class TerminalConfig:
    """Terminal surface defaults, used when the client sends no PTY request."""

    columns: int = field(default_factory=lambda: _get_env_int("SHELLFOLIO_COLUMNS", 80))
    rows: int = field(default_factory=lambda: _get_env_int("SHELLFOLIO_ROWS", 24))
    scrollback: int = field(
        default_factory=lambda: _get_env_int("SHELLFOLIO_SCROLLBACK", 1000)
    )
    mouse_links: bool = field(
        default_factory=lambda: _get_env_bool("SHELLFOLIO_MOUSE_LINKS", True)
    )


@dataclass
class ShellConfig:
    """Identity shown in the prompt and the content catalog location."""

    user: str = field(default_factory=lambda: _get_env("SHELLFOLIO_USER", "portfolio"))
    hostname: str = field(
        default_factory=lambda: _get_env("SHELLFOLIO_HOSTNAME", "shellfolio")
    )
    content_path: Path = field(
        default_factory=lambda: _get_env_path(
            "SHELLFOLIO_CONTENT_PATH", DATA_DIR / "prompts.json"
        )
    )


@dataclass
class StorageConfig:
    """Durable records: created files and the arcade high score."""

    files_path: Path = field(
        default_factory=lambda: _get_env_path(
            "SHELLFOLIO_FILES_PATH", DATA_DIR / "created_files.json"
        )
    )
    high_score_path: Path = field(
        default_factory=lambda: _get_env_path(
            "SHELLFOLIO_HIGH_SCORE_PATH", DATA_DIR / "high_score.json"
        )
    )


@dataclass
class IntroConfig:
    """Typing animation played when a session starts."""

    enabled: bool = field(
        default_factory=lambda: _get_env_bool("SHELLFOLIO_INTRO_ENABLED", True)
    )
    char_delay: float = field(
        default_factory=lambda: _get_env_float("SHELLFOLIO_INTRO_CHAR_DELAY", 0.02)
    )
    line_delay: float = field(
        default_factory=lambda: _get_env_float("SHELLFOLIO_INTRO_LINE_DELAY", 0.15)
    )


@dataclass
class GameConfig:
    """Arcade sub-mode tuning."""

    tick_interval: float = field(
        default_factory=lambda: _get_env_float("SHELLFOLIO_GAME_TICK", 0.05)
    )
    rows: int = field(default_factory=lambda: _get_env_int("SHELLFOLIO_GAME_ROWS", 3))
    cols: int = field(default_factory=lambda: _get_env_int("SHELLFOLIO_GAME_COLS", 6))
    move_threshold: int = field(
        default_factory=lambda: _get_env_int("SHELLFOLIO_GAME_MOVE_THRESHOLD", 10)
    )
    threshold_step: int = field(
        default_factory=lambda: _get_env_int("SHELLFOLIO_GAME_THRESHOLD_STEP", 2)
    )
    min_threshold: int = field(
        default_factory=lambda: _get_env_int("SHELLFOLIO_GAME_MIN_THRESHOLD", 2)
    )


@dataclass
class LoggingConfig:
    """Log level, record format and optional log file."""

    level: str = field(default_factory=lambda: _get_env("SHELLFOLIO_LOG_LEVEL", "INFO"))
    format: str = field(
        default_factory=lambda: _get_env(
            "SHELLFOLIO_LOG_FORMAT",
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    )
    file: Optional[Path] = field(
        default_factory=lambda: (
            Path(_get_env("SHELLFOLIO_LOG_FILE", ""))
            if _get_env("SHELLFOLIO_LOG_FILE", "")
            else None
        )
    )


@dataclass
class MetricsConfig:
    """Prometheus endpoint configuration."""

    enabled: bool = field(
        default_factory=lambda: _get_env_bool("SHELLFOLIO_METRICS_ENABLED", False)
    )
    host: str = field(
        default_factory=lambda: _get_env("SHELLFOLIO_METRICS_HOST", "0.0.0.0")
    )
    port: int = field(
        default_factory=lambda: _get_env_int("SHELLFOLIO_METRICS_PORT", 9090)
    )


@dataclass
class Config:
    """All settings sections plus the resolved project paths."""

    ssh: SSHConfig = field(default_factory=SSHConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    shell: ShellConfig = field(default_factory=ShellConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    intro: IntroConfig = field(default_factory=IntroConfig)
    game: GameConfig = field(default_factory=GameConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    project_root: Path = PROJECT_ROOT
    data_dir: Path = DATA_DIR


_config: Optional[Config] = None


def get_config() -> Config:
    """Process-wide settings, read from the environment on first use."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Re-read the environment and replace the process-wide settings."""
    global _config
    _config = Config()
    return _config
