"""Runtime configuration loaded from MINDMIRROR_* environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from mindmirror.core.identity import sha256_bytes

DEFAULT_DATA_DIR = Path("data")
ENTRIES_DB_NAME = "mindmirror.db"
BLOB_DB_STEM = "mindmirror-videos"
USER_DIGEST_CHARS = 8

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    """Application settings.

    Attributes:
        data_dir: Directory holding the entry and blob databases.
        user_id: Signed-in user; partitions the local blob store.
        api_url: Base URL of a remote entry API. None selects the SQL repository.
        chunk_interval: Seconds between buffered recording chunks.
        http_timeout: Timeout in seconds for remote entry calls.
        log_level: Logging level name for scripts.
    """

    data_dir: Path = DEFAULT_DATA_DIR
    user_id: str | None = None
    api_url: str | None = None
    chunk_interval: float = 1.0
    http_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ.

        Returns:
            Settings instance.

        Raises:
            ValueError: If a numeric variable cannot be parsed.
        """
        if env is None:
            env = os.environ

        return cls(
            data_dir=Path(env.get("MINDMIRROR_DATA_DIR") or DEFAULT_DATA_DIR),
            user_id=env.get("MINDMIRROR_USER_ID") or None,
            api_url=env.get("MINDMIRROR_API_URL") or None,
            chunk_interval=_env_float(env, "MINDMIRROR_CHUNK_INTERVAL", 1.0),
            http_timeout=_env_float(env, "MINDMIRROR_HTTP_TIMEOUT", 10.0),
            log_level=(env.get("MINDMIRROR_LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def entries_db_path(self) -> Path:
        """Path of the entry database."""
        return self.data_dir / ENTRIES_DB_NAME

    @property
    def blob_db_path(self) -> Path:
        """Path of the local blob database, one file per user."""
        return blob_db_path(self.data_dir, self.user_id)


def blob_db_path(data_dir: Path, user_id: str | None = None) -> Path:
    """Local blob database path for a user.

    Args:
        data_dir: Base data directory.
        user_id: User identifier, or None for the shared store.

    Returns:
        Path to the SQLite file. The name carries a readable form of the
        user id plus a short digest of the raw id, so ids that sanitize
        alike still get separate files.
    """
    if not user_id:
        return Path(data_dir) / f"{BLOB_DB_STEM}.db"
    safe = _UNSAFE_PATH_CHARS.sub("_", user_id)
    digest = sha256_bytes(user_id.encode("utf-8"))[:USER_DIGEST_CHARS]
    return Path(data_dir) / f"{BLOB_DB_STEM}-{safe}-{digest}.db"
