from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

GEMINI_API_KEY = "GEMINI_API_KEY"
GROQ_API_KEY = "GROQ_API_KEY"
OPENROUTER_API_KEY = "OPENROUTER_API_KEY"

KNOWN_CREDENTIALS = (GEMINI_API_KEY, GROQ_API_KEY, OPENROUTER_API_KEY)


class CredentialStore:
    """
    In-memory API keys entered during this session (e.g. from a config dialog).

    One store belongs to one dialog / resolver; nothing here is persisted.
    """

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = {}
        for name, value in (initial or {}).items():
            self.set(name, value)

    def set(self, name: str, value: str) -> None:
        value = (value or "").strip()
        if value:
            self._values[name] = value
        else:
            self._values.pop(name, None)

    def clear(self, name: str) -> None:
        self._values.pop(name, None)

    def get(self, name: str) -> str:
        return self._values.get(name, "")

    def names(self) -> List[str]:
        return sorted(self._values)


def _read_env_file_value(path: Path, name: str) -> str:
    """
    Return the value of the first `NAME=value` line in a .env style file.

    Only the first matching line counts; later duplicates are ignored.
    """
    if not path.is_file():
        return ""
    prefix = f"{name}="
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.startswith(prefix):
                continue
            # let python-dotenv handle quoting and inline comments for this one line
            parsed = dotenv_values(stream=io.StringIO(line))
            return parsed.get(name) or ""
    return ""


class CredentialResolver:
    """
    Resolve API keys with a three-tier precedence:
      1. values set in the CredentialStore during this session
      2. process environment variable with the same name
      3. first matching line in the local .env file

    An empty string means "not configured"; callers skip the provider.
    """

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        env_file: Optional[str] = ".env",
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.store = store if store is not None else CredentialStore()
        self.env_file = Path(env_file) if env_file else None
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def resolve(self, name: str) -> str:
        value = self.store.get(name)
        if value:
            return value

        value = self.environ.get(name, "")
        if value:
            return value

        if self.env_file is not None:
            value = _read_env_file_value(self.env_file, name)
            if value:
                return value

        logger.debug("No credential found for %s", name)
        return ""

    def source_of(self, name: str) -> Optional[str]:
        """Name the tier a credential resolves from: 'session', 'env', 'file' or None."""
        if self.store.get(name):
            return "session"
        if self.environ.get(name, ""):
            return "env"
        if self.env_file is not None and _read_env_file_value(self.env_file, name):
            return "file"
        return None


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}...{value[-4:]}"
