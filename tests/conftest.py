"""Shared fixtures for nub tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from fakes import FakeFetcher, FakeProvider
from nub.cache import ContentCache
from nub.config import AppPaths, ExtractConfig, SummaryConfig
from nub.runner import SourcePipeline
from nub.store import SummaryStore
from nub.summarizer import Summarizer


@pytest.fixture
def paths(tmp_path: Path) -> AppPaths:
    return AppPaths(config_path=tmp_path / "config" / "config.yaml", data_dir=tmp_path / "data")


@pytest.fixture
def fixed_now():
    return lambda: datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def make_pipeline(paths: AppPaths, fixed_now):
    """Build a SourcePipeline over fakes; returns (pipeline, provider, fetcher)."""

    def _make(
        provider: FakeProvider | None = None,
        fetcher: FakeFetcher | None = None,
        focus_topics: str = "",
    ):
        provider = provider or FakeProvider()
        fetcher = fetcher or FakeFetcher()
        pipeline = SourcePipeline(
            cache=ContentCache(paths.cache_dir),
            store=SummaryStore(paths.summaries_dir, paths.focus_dir, now=fixed_now),
            summarizer=Summarizer(provider, SummaryConfig(), ExtractConfig()),
            fetch=fetcher,
            focus_topics=focus_topics,
        )
        return pipeline, provider, fetcher

    return _make
