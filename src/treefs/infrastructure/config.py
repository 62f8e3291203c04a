"""Configuration constants, .env parsing, and copy settings."""

from __future__ import annotations

import os
from pathlib import Path


def read_env_file(keys: list[str]) -> dict[str, str]:
    """Parse .env file and return values for requested keys.

    Does NOT load into os.environ; callers decide what to do with values.
    """
    env_file = Path.cwd() / ".env"
    try:
        content = env_file.read_text()
    except OSError:
        return {}

    result: dict[str, str] = {}
    wanted = set(keys)

    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        eq_idx = trimmed.find("=")
        if eq_idx == -1:
            continue
        key = trimmed[:eq_idx].strip()
        if key not in wanted:
            continue
        value = trimmed[eq_idx + 1 :].strip()
        if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
            value = value[1:-1]
        if value:
            result[key] = value

    return result


# Read config values from .env (falls back to os.environ).
_env_config = read_env_file(["TREEFS_COPY_CHUNK_SIZE", "TREEFS_CLONE", "TREEFS_DIR_MODE", "TREEFS_FILE_MODE"])


def _setting(key: str, default: str) -> str:
    return os.environ.get(key) or _env_config.get(key, default)


def parse_mode(value: str | int) -> int:
    """Parse a permission mode given as an int or an octal string ("755", "0o755")."""
    if isinstance(value, int):
        return value
    text = value.strip().lower()
    if text.startswith("0o"):
        text = text[2:]
    return int(text, 8)


COPY_CHUNK_SIZE: int = max(4096, int(_setting("TREEFS_COPY_CHUNK_SIZE", "65536")))
CLONE_ENABLED: bool = _setting("TREEFS_CLONE", "true").lower() != "false"
DEFAULT_DIR_MODE: int = parse_mode(_setting("TREEFS_DIR_MODE", "777"))
DEFAULT_FILE_MODE: int = parse_mode(_setting("TREEFS_FILE_MODE", "666"))


class CopyConfig:
    """Per-call file content copy settings."""

    def __init__(self, chunk_size: int = COPY_CHUNK_SIZE, clone: bool = CLONE_ENABLED) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self.clone = clone

    def without_clone(self) -> CopyConfig:
        """Return a copy of this config with clone attempts disabled."""
        return CopyConfig(self.chunk_size, clone=False)
