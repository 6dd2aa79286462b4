"""Environment-driven configuration models."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from snapsolve.prompting import DEFAULT_SYSTEM_PROMPT

BACKENDS: tuple[str, ...] = ("mock", "openai")


def _get_env(name: str, default: str | None = None) -> str | None:
    """Return an environment variable or the provided default value."""
    value: str | None = os.getenv(name)
    if value is None:
        return default
    stripped: str = value.strip()
    return stripped if stripped else default


def _require_env(name: str) -> str:
    """Return a required environment variable or raise a ValueError."""
    value: str | None = _get_env(name)
    if value is None:
        raise ValueError(f"Missing required environment variable: {name}")
    return value


def _get_env_float(name: str, default: float) -> float:
    """Return an environment variable parsed as float."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return float(value)


def _get_env_int(name: str, default: int) -> int:
    """Return an environment variable parsed as int."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return int(value)


def _get_env_bool(name: str, default: bool) -> bool:
    """Return an environment variable parsed as bool."""
    value: str | None = _get_env(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "y", "on"}


@dataclass(slots=True, frozen=True)
class OpenAIConfig:
    """OpenAI analysis settings."""

    api_key: str
    model: str
    max_output_tokens: int
    timeout_seconds: float

    @classmethod
    def from_env(cls) -> "OpenAIConfig":
        """Load OpenAI settings from environment variables."""
        return cls(
            api_key=_require_env("OPENAI_API_KEY"),
            model=_get_env("OPENAI_MODEL", "gpt-4.1-mini") or "gpt-4.1-mini",
            max_output_tokens=_get_env_int("OPENAI_MAX_OUTPUT_TOKENS", 1000),
            timeout_seconds=_get_env_float("OPENAI_TIMEOUT_SECONDS", 60.0),
        )


@dataclass(slots=True, frozen=True)
class HotkeyConfig:
    """Global key combinations, written like ``ctrl+shift+s``."""

    capture: str = "ctrl+shift+s"
    analyze: str = "ctrl+enter"
    copy_result: str = "ctrl+shift+c"
    enabled: bool = True

    @classmethod
    def from_env(cls) -> "HotkeyConfig":
        """Load hotkey settings from environment variables."""
        defaults = cls()
        return cls(
            capture=_get_env("SNAPSOLVE_CAPTURE_HOTKEY", defaults.capture) or defaults.capture,
            analyze=_get_env("SNAPSOLVE_ANALYZE_HOTKEY", defaults.analyze) or defaults.analyze,
            copy_result=_get_env("SNAPSOLVE_COPY_HOTKEY", defaults.copy_result)
            or defaults.copy_result,
            enabled=_get_env_bool("SNAPSOLVE_ENABLE_HOTKEYS", True),
        )


@dataclass(slots=True, frozen=True)
class AppConfig:
    """Runtime settings for the capture and analysis workflow."""

    backend: str
    mock_server_url: str
    request_timeout_seconds: float
    settle_delay_seconds: float
    capture_timeout_seconds: float
    analysis_timeout_seconds: float
    monitor_index: int
    captures_dir: Path
    restore_on_failure: bool
    hotkeys: HotkeyConfig
    system_prompt: str
    log_level: str
    openai: OpenAIConfig | None = None

    def __post_init__(self) -> None:
        if self.backend not in BACKENDS:
            raise ValueError(
                f"Unknown analysis backend '{self.backend}'. Available: {', '.join(BACKENDS)}"
            )
        if self.settle_delay_seconds < 0:
            raise ValueError("Settle delay must not be negative.")
        for name in ("request_timeout_seconds", "capture_timeout_seconds", "analysis_timeout_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive.")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load runtime settings from environment variables."""
        backend: str = (_get_env("SNAPSOLVE_BACKEND", "mock") or "mock").lower()
        return cls(
            backend=backend,
            mock_server_url=_get_env("SNAPSOLVE_MOCK_SERVER_URL", "http://localhost:3000")
            or "http://localhost:3000",
            request_timeout_seconds=_get_env_float("SNAPSOLVE_REQUEST_TIMEOUT_SECONDS", 30.0),
            settle_delay_seconds=_get_env_float("SNAPSOLVE_SETTLE_DELAY_SECONDS", 0.3),
            capture_timeout_seconds=_get_env_float("SNAPSOLVE_CAPTURE_TIMEOUT_SECONDS", 15.0),
            analysis_timeout_seconds=_get_env_float("SNAPSOLVE_ANALYSIS_TIMEOUT_SECONDS", 90.0),
            monitor_index=_get_env_int("SNAPSOLVE_MONITOR_INDEX", 1),
            captures_dir=Path(_get_env("SNAPSOLVE_CAPTURES_DIR", "./captures") or "./captures"),
            restore_on_failure=_get_env_bool("SNAPSOLVE_RESTORE_ON_FAILURE", False),
            hotkeys=HotkeyConfig.from_env(),
            system_prompt=_get_env("SNAPSOLVE_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT)
            or DEFAULT_SYSTEM_PROMPT,
            log_level=_get_env("SNAPSOLVE_LOG_LEVEL", "INFO") or "INFO",
            openai=OpenAIConfig.from_env() if backend == "openai" else None,
        )
