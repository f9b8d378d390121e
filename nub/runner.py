"""
Run orchestration for nub.

A run walks the configured sources in order. For each source it:
1. Looks up the content cache, fetching and caching the page on a miss
2. Summarizes the page via the LLM provider
3. Stores the summary document
4. Optionally extracts a topic-focused excerpt (best effort)

A failure in steps 1-3 aborts that source only; the run continues with
the next one. Once every source has been attempted, the summaries of the
run can be combined and focus-extracted once more.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Callable, Iterable

from rich.console import Console

from .cache import ContentCache
from .config import AppConfig, AppPaths, validate_config
from .errors import FetchError, NubError
from .fetcher import FetchResult, fetch_url
from .logging_utils import log_event, setup_llm_logger
from .providers.factory import create_provider
from .store import SummaryStore
from .summarizer import Summarizer, has_focus_content

SUMMARY_SEPARATOR = "\n\n---\n\n"

Fetch = Callable[[str], FetchResult]


@dataclass
class SourceResult:
    """Outcome of processing one source.

    Either summary will be populated (success) or error will be populated
    (failure), but never both.

    Attributes:
        source: The source URL
        summary: Summary text produced in this run
        error: Error message if the source failed
        cache_hit: Whether the page came from the content cache
        focus_written: Whether a focus document was stored for the source
    """

    source: str
    summary: str | None = None
    error: str | None = None
    cache_hit: bool = False
    focus_written: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.summary is not None


@dataclass
class RunReport:
    """Results of one run, in source order."""

    results: list[SourceResult] = field(default_factory=list)
    combined_focus: Path | None = None

    @property
    def summaries(self) -> list[str]:
        return [r.summary for r in self.results if r.ok and r.summary]

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def cache_hits(self) -> int:
        return sum(1 for r in self.results if r.cache_hit)

    @property
    def focus_documents(self) -> int:
        return sum(1 for r in self.results if r.focus_written)


class SourcePipeline:
    """Processes sources sequentially with per-source failure isolation.

    Attributes:
        cache: Content cache consulted before fetching
        store: Destination for summary and focus documents
        summarizer: LLM-backed summarizer
        fetch: Callable returning a FetchResult for a URL
        focus_topics: Topic filter; empty disables focus extraction
        prompt: Summary instruction, or None for the summarizer default
        logger: Logger receiving progress and error events
    """

    def __init__(
        self,
        cache: ContentCache,
        store: SummaryStore,
        summarizer: Summarizer,
        fetch: Fetch,
        focus_topics: str = "",
        prompt: str | None = None,
        logger: logging.Logger | None = None,
    ):
        self.cache = cache
        self.store = store
        self.summarizer = summarizer
        self.fetch = fetch
        self.focus_topics = focus_topics.strip()
        self.prompt = prompt
        self.logger = logger or logging.getLogger("nub")

    def run(self, sources: Iterable[str]) -> RunReport:
        """Process every source, then aggregate focused content."""
        report = RunReport()
        for source in sources:
            report.results.append(self.process_source(source))
        report.combined_focus = self.aggregate_focus(report.summaries)
        return report

    def process_source(self, source: str) -> SourceResult:
        """Run the per-source steps, turning failures into a result."""
        self.logger.info("Processing: %s", source)
        result = SourceResult(source=source)
        try:
            content, result.cache_hit = self._load_content(source)

            self.logger.info("  Summarizing %s", source)
            summary = self.summarizer.summarize(content, source, self.prompt)
            self.store.put_summary(source, summary)
        except NubError as exc:
            result.error = str(exc)
            log_event(
                self.logger,
                f"Error processing {source}: {exc}",
                level=logging.ERROR,
                event="source_failed",
                source=source,
                error_type=type(exc).__name__,
            )
            return result
        except Exception as exc:  # noqa: BLE001
            result.error = f"{type(exc).__name__}: {exc}"
            self.logger.exception("Error processing %s", source)
            return result

        result.summary = summary
        result.focus_written = self._store_focus(source, summary)
        self.logger.info("  ✓ Completed %s", source)
        return result

    def aggregate_focus(self, summaries: list[str]) -> Path | None:
        """Focus-extract the combined summaries of a run.

        Runs only when focus topics are set and at least one summary exists.
        Failures are logged and swallowed.
        """
        if not self.focus_topics or not summaries:
            return None
        self.logger.info("Extracting focused content from all summaries...")
        combined = SUMMARY_SEPARATOR.join(summaries)
        try:
            focused = self.summarizer.extract_focused(self.focus_topics, combined)
            if not has_focus_content(focused):
                return None
            return self.store.put_combined_focus(focused)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Warning: failed to extract focused content: %s", exc)
            return None

    def _load_content(self, source: str) -> tuple[str, bool]:
        content, found = self.cache.lookup(source)
        if found and content is not None:
            log_event(self.logger, f"  Using cached content for {source}", event="cache_hit", source=source)
            return content, True

        self.logger.info("  Crawling %s", source)
        result = self.fetch(source)
        if not result.ok:
            raise FetchError(f"fetch failed for {source}: {result.error}")
        self.cache.store(source, result.text or "")
        return result.text or "", False

    def _store_focus(self, source: str, summary: str) -> bool:
        if not self.focus_topics:
            return False
        try:
            focused = self.summarizer.extract_focused(self.focus_topics, summary, source=source)
            if not has_focus_content(focused):
                return False
            self.store.put_focus(source, focused)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("  Warning: failed to extract focused content for %s: %s", source, exc)
            return False
        return True


def build_pipeline(cfg: AppConfig, paths: AppPaths, logger: logging.Logger | None = None) -> SourcePipeline:
    """Wire a SourcePipeline from configuration.

    Raises:
        ConfigError: If the provider cannot be built
    """
    llm_logger = setup_llm_logger(cfg.logging, paths.llm_log_path)
    provider = create_provider(cfg.provider, cfg.logging, llm_logger)
    summarizer = Summarizer(provider, cfg.summary, cfg.extract)

    def _fetch(url: str) -> FetchResult:
        return fetch_url(
            url,
            timeout=cfg.fetch.timeout_seconds,
            retries=cfg.fetch.retries,
            user_agent=cfg.fetch.user_agent,
            trust_env=cfg.fetch.trust_env,
        )

    return SourcePipeline(
        cache=ContentCache(paths.cache_dir),
        store=SummaryStore(paths.summaries_dir, paths.focus_dir),
        summarizer=summarizer,
        fetch=_fetch,
        focus_topics=cfg.focus_topics,
        prompt=cfg.summary.prompt,
        logger=logger,
    )


def run_once(cfg: AppConfig, paths: AppPaths, logger: logging.Logger | None = None) -> RunReport:
    """Validate config and run the pipeline over the configured sources once.

    Raises:
        ConfigError: If a required setting is missing
    """
    validate_config(cfg)
    logger = logger or logging.getLogger("nub")
    pipeline = build_pipeline(cfg, paths, logger)

    log_event(logger, "Starting crawl and summarization...", event="run_start", sources=len(cfg.sources))
    report = pipeline.run(cfg.sources)
    log_event(
        logger,
        "Done!",
        event="run_complete",
        succeeded=report.succeeded,
        failed=report.failed,
        cache_hits=report.cache_hits,
        focus_documents=report.focus_documents,
        combined_focus=str(report.combined_focus) if report.combined_focus else None,
    )
    return report


def render_run_summary(report: RunReport, console: Console) -> None:
    """Display run statistics to the console."""
    console.print(
        "[bold]Run summary[/bold]: "
        f"total={len(report.results)}, success={report.succeeded}, failed={report.failed}, "
        f"cache_hits={report.cache_hits}, focus={report.focus_documents}"
    )
