"""Tests for the content cache."""

from __future__ import annotations

import os
import time
from pathlib import Path

from nub.cache import FRESHNESS_WINDOW_SECONDS, ContentCache, cache_key


def test_cache_key_is_stable_and_fixed_length():
    url = "https://news.example.com/?page=1&sort=new#top"

    assert cache_key(url) == cache_key(url)
    assert len(cache_key(url)) == 32
    assert cache_key(url) != cache_key("https://news.example.com/")
    assert "/" not in cache_key(url)


def test_lookup_miss_when_entry_absent(tmp_path: Path):
    cache = ContentCache(tmp_path / "cache")

    assert cache.lookup("https://a.example") == (None, False)


def test_store_then_lookup_returns_content(tmp_path: Path):
    cache = ContentCache(tmp_path / "cache")
    cache.store("https://a.example", "<html>hello</html>")

    assert cache.lookup("https://a.example") == ("<html>hello</html>", True)
    assert cache.path_for("https://a.example").name == f"{cache_key('https://a.example')}.html"


def test_second_store_replaces_content(tmp_path: Path):
    cache = ContentCache(tmp_path / "cache")
    cache.store("https://a.example", "first")
    cache.store("https://a.example", "second")

    assert cache.lookup("https://a.example") == ("second", True)
    assert len(list((tmp_path / "cache").iterdir())) == 1


def test_expired_entry_is_a_miss_but_file_remains(tmp_path: Path):
    writer = ContentCache(tmp_path / "cache")
    path = writer.store("https://a.example", "old content")

    later = ContentCache(
        tmp_path / "cache",
        clock=lambda: time.time() + FRESHNESS_WINDOW_SECONDS + 60,
    )

    assert later.lookup("https://a.example") == (None, False)
    assert path.exists()


def test_entry_just_inside_window_is_a_hit(tmp_path: Path):
    cache = ContentCache(tmp_path / "cache")
    path = cache.store("https://a.example", "content")
    mtime = path.stat().st_mtime

    inside = ContentCache(tmp_path / "cache", clock=lambda: mtime + FRESHNESS_WINDOW_SECONDS - 1)

    assert inside.lookup("https://a.example") == ("content", True)


def test_store_resets_freshness_of_expired_entry(tmp_path: Path):
    cache = ContentCache(tmp_path / "cache")
    path = cache.store("https://a.example", "old")
    stale = time.time() - FRESHNESS_WINDOW_SECONDS - 3600
    os.utime(path, (stale, stale))
    assert cache.lookup("https://a.example") == (None, False)

    cache.store("https://a.example", "new")

    assert cache.lookup("https://a.example") == ("new", True)


def test_unreadable_entry_is_a_miss(tmp_path: Path):
    cache = ContentCache(tmp_path / "cache")
    path = cache.path_for("https://a.example")
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\xff\xfe\xfa not utf-8")

    assert cache.lookup("https://a.example") == (None, False)


def test_clear_removes_entries_and_recreates_directory(tmp_path: Path):
    cache = ContentCache(tmp_path / "cache")
    cache.store("https://a.example", "a")
    cache.store("https://b.example", "b")

    cache.clear()

    assert (tmp_path / "cache").is_dir()
    assert list((tmp_path / "cache").iterdir()) == []
    assert cache.lookup("https://a.example") == (None, False)
    cache.store("https://a.example", "again")
    assert cache.lookup("https://a.example") == ("again", True)


def test_clear_without_entries_is_a_noop(tmp_path: Path):
    cache = ContentCache(tmp_path / "missing" / "cache")

    cache.clear()
    cache.clear()

    assert (tmp_path / "missing" / "cache").is_dir()
