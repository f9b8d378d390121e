"""
Persistence for summaries and focused excerpts.

Each source gets one Markdown summary document and at most one focus
document, named with the same URL fingerprint as the content cache but
kept in separate directories. A fixed-name combined focus document holds
the cross-source aggregation. Every write replaces the previous document.
"""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import shutil
from typing import Callable

from .cache import cache_path
from .errors import StorageError

logger = logging.getLogger(__name__)

COMBINED_FOCUS_NAME = "combined.md"


def _now() -> datetime:
    return datetime.now().astimezone()


class SummaryStore:
    """Reads and writes summary and focus documents.

    Attributes:
        summaries_dir: Directory of per-source summary documents
        focus_dir: Directory of per-source focus documents and the combined one
        now: Returns the timestamp written into generated documents
    """

    def __init__(
        self,
        summaries_dir: Path,
        focus_dir: Path,
        now: Callable[[], datetime] = _now,
    ):
        self.summaries_dir = summaries_dir
        self.focus_dir = focus_dir
        self.now = now

    def summary_path(self, url: str) -> Path:
        return cache_path(self.summaries_dir, url, "md")

    def focus_path(self, url: str) -> Path:
        return cache_path(self.focus_dir, url, "md")

    @property
    def combined_focus_path(self) -> Path:
        return self.focus_dir / COMBINED_FOCUS_NAME

    def put_summary(self, url: str, text: str) -> Path:
        content = (
            f"# Summary for: {url}\n\n"
            f"Generated: {self._timestamp()}\n\n"
            f"---\n\n"
            f"{text}\n"
        )
        return self._write(self.summary_path(url), content)

    def put_focus(self, url: str, text: str) -> Path:
        return self._write(self.focus_path(url), text)

    def put_combined_focus(self, text: str) -> Path:
        content = (
            "# Combined Focus Summary\n\n"
            f"Generated: {self._timestamp()}\n\n"
            "---\n\n"
            f"{text}\n"
        )
        return self._write(self.combined_focus_path, content)

    def get_focus(self, url: str) -> str:
        """Return the focus document for a URL, or "" if none exists yet."""
        path = self.focus_path(url)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as exc:
            raise StorageError(f"failed to read {path}: {exc}") from exc

    def list_summaries(self) -> list[Path]:
        return _list_markdown(self.summaries_dir)

    def list_focus(self) -> list[Path]:
        return _list_markdown(self.focus_dir)

    def _timestamp(self) -> str:
        return self.now().isoformat(timespec="seconds")

    def _write(self, path: Path, content: str) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"failed to write {path}: {exc}") from exc
        logger.debug("Wrote %s", path)
        return path


def _list_markdown(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix == ".md" and p.is_file())


def clear_all_data(data_dir: Path) -> bool:
    """Remove the whole data directory.

    Returns:
        True if something was removed, False if the directory did not exist
    """
    if not data_dir.exists():
        return False
    try:
        shutil.rmtree(data_dir)
    except OSError as exc:
        raise StorageError(f"failed to remove data directory {data_dir}: {exc}") from exc
    return True
