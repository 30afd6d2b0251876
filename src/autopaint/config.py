from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from .errors import ConfigError


@dataclass(frozen=True)
class AutopaintConfig:
    """
    Runtime settings for one dialog / CLI run.

    Values come from AUTOPAINT_* variables (process env first, then the env file).
    """
    env_file: Path = Path(".env")
    connect_timeout_seconds: float = 10.0
    request_timeout_seconds: float = 60.0
    poll_interval_ms: int = 100
    teardown_wait_ms: int = 500
    capture_path: Path = field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "autopaint_capture.png"
    )
    preview_chars: int = 100
    max_palette_entries: int = 16
    model_overrides: Dict[str, str] = field(default_factory=dict)


_FLOAT_KEYS = {
    "AUTOPAINT_CONNECT_TIMEOUT": "connect_timeout_seconds",
    "AUTOPAINT_REQUEST_TIMEOUT": "request_timeout_seconds",
}
_INT_KEYS = {
    "AUTOPAINT_POLL_INTERVAL_MS": "poll_interval_ms",
    "AUTOPAINT_TEARDOWN_WAIT_MS": "teardown_wait_ms",
    "AUTOPAINT_PREVIEW_CHARS": "preview_chars",
}
_MODEL_KEYS = {
    "AUTOPAINT_GEMINI_MODEL": "gemini",
    "AUTOPAINT_GROQ_MODEL": "groq",
    "AUTOPAINT_OPENROUTER_MODEL": "openrouter",
}


def _lookup(name: str, environ: Mapping[str, str], file_values: Mapping[str, Optional[str]]) -> Optional[str]:
    value = environ.get(name)
    if value:
        return value
    value = file_values.get(name)
    return value or None


def load_config(
    env_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AutopaintConfig:
    """
    Build an AutopaintConfig from the environment and an optional .env file.

    Raises:
        ConfigError: if a numeric setting cannot be parsed or is not positive
    """
    environ = os.environ if environ is None else environ
    path = Path(env_file or environ.get("AUTOPAINT_ENV_FILE") or ".env")
    file_values = dotenv_values(path) if path.is_file() else {}

    kwargs: Dict[str, object] = {"env_file": path}

    for key, attr in _FLOAT_KEYS.items():
        raw = _lookup(key, environ, file_values)
        if raw is None:
            continue
        try:
            value = float(raw)
        except ValueError:
            raise ConfigError(f"{key} must be a number, got {raw!r}") from None
        if value <= 0:
            raise ConfigError(f"{key} must be positive, got {raw!r}")
        kwargs[attr] = value

    for key, attr in _INT_KEYS.items():
        raw = _lookup(key, environ, file_values)
        if raw is None:
            continue
        try:
            value = int(raw)
        except ValueError:
            raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
        if value <= 0:
            raise ConfigError(f"{key} must be positive, got {raw!r}")
        kwargs[attr] = value

    capture = _lookup("AUTOPAINT_CAPTURE_PATH", environ, file_values)
    if capture:
        kwargs["capture_path"] = Path(capture)

    models = {}
    for key, provider in _MODEL_KEYS.items():
        raw = _lookup(key, environ, file_values)
        if raw:
            models[provider] = raw
    kwargs["model_overrides"] = models

    return AutopaintConfig(**kwargs)
