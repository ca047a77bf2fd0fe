"""Cookie store: JSON file persistence of browser cookie records."""

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger("lobbytap")


class CookieStore:
    """Persists the live session's cookies to a single JSON file.

    Records are stored verbatim in the shape the browser returns them
    (``context.cookies()``), pretty-printed.  Every save replaces the
    whole file; nothing is merged with what was there before.
    """

    def __init__(self, path: str | os.PathLike = "cookies.json"):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[dict]:
        """Return the stored cookies, or ``[]`` if absent or unreadable."""
        if not self._path.exists():
            logger.info("No cookies found, starting fresh")
            return []
        try:
            with open(self._path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(
                "Failed to load cookies from %s: %s", self._path, e
            )
            return []
        if not isinstance(data, list):
            logger.warning(
                "Corrupt cookie file %s, ignoring", self._path
            )
            return []
        logger.info(
            "Loaded %d cookies from %s", len(data), self._path
        )
        return data

    def save(self, cookies: list[dict]) -> None:
        """Overwrite the cookie file with *cookies*."""
        self._write_atomic(list(cookies))
        logger.info(
            "Saved %d cookies to %s", len(cookies), self._path
        )

    def _write_atomic(self, entries: list[dict]) -> None:
        """Atomic write: temp file + rename (same filesystem = atomic on POSIX)."""
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(entries, f, indent=2)
            os.replace(tmp_path, self._path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
