"""
Content-addressed disk cache for fetched pages.

Each source URL maps to one file named after the MD5 fingerprint of the
URL. The file's modification time is the entry's write timestamp; entries
older than the freshness window are treated as absent on lookup and are
only removed by clear() or overwritten by the next store().
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
import shutil
import time
from typing import Callable

from .errors import StorageError

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW_SECONDS = 24 * 60 * 60


def cache_key(url: str) -> str:
    """Return the 32-character hex fingerprint used to name files for a URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def cache_path(cache_dir: Path, url: str, suffix: str) -> Path:
    """Build the path of the file holding a URL's entry in a namespace."""
    return cache_dir / f"{cache_key(url)}.{suffix}"


class ContentCache:
    """Maps source URLs to previously fetched raw content.

    Attributes:
        cache_dir: Directory holding one file per cached source
        clock: Returns the current time as a Unix timestamp
    """

    suffix = "html"

    def __init__(self, cache_dir: Path, clock: Callable[[], float] = time.time):
        self.cache_dir = cache_dir
        self.clock = clock

    def path_for(self, url: str) -> Path:
        return cache_path(self.cache_dir, url, self.suffix)

    def lookup(self, url: str) -> tuple[str | None, bool]:
        """Return cached content for a URL if it is still fresh.

        Missing, unreadable and expired entries are all reported as a miss.

        Returns:
            (content, True) on a hit, (None, False) otherwise

        Raises:
            StorageError: If the cache directory cannot be created
        """
        self._ensure_dir()
        path = self.path_for(url)
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None, False
        except OSError as exc:
            logger.debug("Cache entry %s unreadable: %s", path, exc)
            return None, False

        if self.clock() - mtime > FRESHNESS_WINDOW_SECONDS:
            return None, False

        try:
            return path.read_text(encoding="utf-8"), True
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("Cache entry %s unreadable: %s", path, exc)
            return None, False

    def store(self, url: str, content: str) -> Path:
        """Write or overwrite the entry for a URL, resetting its age.

        Raises:
            StorageError: If the entry cannot be written
        """
        self._ensure_dir()
        path = self.path_for(url)
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"failed to write cache entry {path}: {exc}") from exc
        return path

    def clear(self) -> None:
        """Remove every entry and leave an empty cache directory behind."""
        if self.cache_dir.exists():
            try:
                shutil.rmtree(self.cache_dir)
            except OSError as exc:
                raise StorageError(f"failed to clear cache {self.cache_dir}: {exc}") from exc
        self._ensure_dir()

    def _ensure_dir(self) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create cache directory {self.cache_dir}: {exc}") from exc
