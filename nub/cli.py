"""
Command-line interface for nub.

Uses Typer to expose the run, daemon, viewing, source management and
configuration commands. Supports loading .env files for API key
configuration.
"""

from __future__ import annotations

from collections import deque
from contextlib import contextmanager
import os
from pathlib import Path
import shutil
import subprocess
from typing import Iterator, NoReturn

from dotenv import load_dotenv
import typer
from rich.console import Console
import yaml

from .cache import ContentCache
from .config import (
    AppConfig,
    AppPaths,
    add_source,
    effective_schedule_minutes,
    load_config,
    remove_source,
    resolve_paths,
    save_config,
)
from .daemon import ProcessSupervisor, daemon_child_argv, daemon_main
from .errors import NubError
from .logging_utils import setup_logging
from .providers.factory import available_providers
from .renderer import render_html, render_text
from .runner import render_run_summary, run_once
from .store import SummaryStore, clear_all_data

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="nub - A website crawler and summarizer.",
)
console = Console()
err_console = Console(stderr=True)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Config file (default: $NUB_CONFIG or ~/.config/nub/config.yaml)."
    ),
    data_dir: Path | None = typer.Option(
        None, "--data-dir", help="Data directory (default: $NUB_DATA_DIR or ~/.local/nub)."
    ),
):
    """nub - A website crawler and summarizer."""
    load_dotenv()
    ctx.obj = resolve_paths(config, data_dir)


def _fail(message: str) -> NoReturn:
    err_console.print(f"Error {message}", style="red", markup=False, highlight=False)
    raise typer.Exit(code=1)


@contextmanager
def _reporting(action: str) -> Iterator[None]:
    """Turn expected failures into a diagnostic and exit status 1."""
    try:
        yield
    except (NubError, OSError, yaml.YAMLError) as exc:
        _fail(f"{action}: {exc}")


def _load(paths: AppPaths) -> AppConfig:
    with _reporting("loading config"):
        return load_config(paths.config_path)


def _save(cfg: AppConfig, paths: AppPaths) -> None:
    with _reporting("saving config"):
        save_config(cfg, paths.config_path)
    console.print(f"Config saved to: {paths.config_path}")


@app.command()
def run(ctx: typer.Context):
    """Run crawl and summarization once."""
    paths: AppPaths = ctx.obj
    cfg = _load(paths)
    logger = setup_logging(cfg.logging, paths.log_path if cfg.logging.file else None)
    with _reporting("running"):
        report = run_once(cfg, paths, logger)
    render_run_summary(report, console)


@app.command()
def start(ctx: typer.Context):
    """Start the background daemon."""
    paths: AppPaths = ctx.obj
    cfg = _load(paths)
    supervisor = ProcessSupervisor(paths.pid_path, paths.log_path)
    with _reporting("starting daemon"):
        pid = supervisor.start(daemon_child_argv(paths))
    console.print(f"Daemon started successfully (PID: {pid})")
    console.print(f"Logs: {paths.log_path}")
    console.print(f"Schedule: every {effective_schedule_minutes(cfg)} minutes")


@app.command()
def stop(ctx: typer.Context):
    """Stop the background daemon."""
    paths: AppPaths = ctx.obj
    supervisor = ProcessSupervisor(paths.pid_path, paths.log_path)
    with _reporting("stopping daemon"):
        pid = supervisor.stop()
    console.print(f"Daemon stopped (PID: {pid})")


@app.command()
def status(ctx: typer.Context):
    """Show whether the background daemon is running."""
    paths: AppPaths = ctx.obj
    running, pid = ProcessSupervisor(paths.pid_path, paths.log_path).status()
    if running:
        console.print(f"Daemon running (PID: {pid})")
        console.print(f"Logs: {paths.log_path}")
    else:
        console.print("Daemon not running")


@app.command("daemon-child", hidden=True)
def daemon_child(ctx: typer.Context):
    """Internal: body of the detached daemon process."""
    daemon_main(ctx.obj)


@app.command()
def show(
    ctx: typer.Context,
    html: bool = typer.Option(False, "--html", help="Open an HTML page in the browser."),
    pager: bool = typer.Option(True, "--pager/--no-pager", help="Page plain-text output."),
):
    """Show stored summarizations."""
    paths: AppPaths = ctx.obj
    store = SummaryStore(paths.summaries_dir, paths.focus_dir)
    summary_paths = store.list_summaries()
    if not summary_paths:
        console.print("No summarizations found")
        return

    focus_topics = ""
    try:
        focus_topics = load_config(paths.config_path).focus_topics
    except (NubError, OSError, yaml.YAMLError):
        pass
    focus_paths = store.list_focus() if focus_topics else []

    if html:
        with _reporting("showing summarizations"):
            page = render_html(summary_paths, focus_paths, focus_topics)
            paths.view_html_path.write_text(page, encoding="utf-8")
        console.print("Opening summaries in browser...")
        console.print(f"File: {paths.view_html_path}")
        if typer.launch(str(paths.view_html_path)) != 0:
            _fail(f"opening browser, please open manually: {paths.view_html_path}")
        return

    with _reporting("showing summarizations"):
        text = render_text(summary_paths, focus_paths, focus_topics)
        paths.view_text_path.write_text(text, encoding="utf-8")
    if pager:
        with console.pager(styles=False):
            console.print(text, markup=False, highlight=False)
    else:
        console.print(text, markup=False, highlight=False)


@app.command("list")
def list_sources(ctx: typer.Context):
    """List all sources."""
    cfg = _load(ctx.obj)
    if not cfg.sources:
        console.print("No sources configured")
        return
    console.print("Sources:")
    for idx, source in enumerate(cfg.sources, start=1):
        console.print(f"  [{idx}] {source}", markup=False, highlight=False)


@app.command("add-source")
def add_source_cmd(ctx: typer.Context, url: str = typer.Argument(..., help="Source URL.")):
    """Add a source URL."""
    cfg = _load(ctx.obj)
    with _reporting("adding source"):
        add_source(cfg, url)
    _save(cfg, ctx.obj)
    console.print(f"Source added: {url}", markup=False)


@app.command("rem-source")
def rem_source_cmd(ctx: typer.Context, id_or_url: str = typer.Argument(..., help="Source index or URL.")):
    """Remove a source by ID or URL."""
    cfg = _load(ctx.obj)
    with _reporting("removing source"):
        removed = remove_source(cfg, id_or_url)
    _save(cfg, ctx.obj)
    console.print(f"Source removed: {removed}", markup=False)


@app.command("set-api-key")
def set_api_key(ctx: typer.Context, key: str = typer.Argument(...)):
    """Set the LLM API key."""
    cfg = _load(ctx.obj)
    cfg.provider.api_key = key
    _save(cfg, ctx.obj)
    console.print("LLM API key set successfully")


@app.command("set-api-url")
def set_api_url(ctx: typer.Context, url: str = typer.Argument(...)):
    """Set the LLM API URL."""
    cfg = _load(ctx.obj)
    cfg.provider.api_url = url
    _save(cfg, ctx.obj)
    console.print("LLM API URL set successfully")


@app.command("set-model")
def set_model(ctx: typer.Context, model: str = typer.Argument(...)):
    """Set the LLM model."""
    cfg = _load(ctx.obj)
    cfg.provider.model = model
    _save(cfg, ctx.obj)
    console.print("LLM API model set successfully")


@app.command("set-provider")
def set_provider(ctx: typer.Context, name: str = typer.Argument(...)):
    """Set the LLM provider backend."""
    if name.lower().strip() not in available_providers():
        _fail(f"setting provider: unsupported provider {name}. Supported: {', '.join(available_providers())}")
    cfg = _load(ctx.obj)
    cfg.provider.name = name
    _save(cfg, ctx.obj)
    console.print(f"Provider set to: {name}")


@app.command("set-schedule")
def set_schedule(ctx: typer.Context, minutes: int = typer.Argument(..., help="Interval in minutes.")):
    """Set the daemon schedule in minutes."""
    if minutes < 1:
        _fail("setting schedule: minutes must be at least 1")
    cfg = _load(ctx.obj)
    cfg.schedule_minutes = minutes
    _save(cfg, ctx.obj)
    console.print(f"Schedule time set to {minutes} minutes")


@app.command("set-prompt")
def set_prompt(ctx: typer.Context, prompt: str = typer.Argument(...)):
    """Set a custom summarization prompt."""
    cfg = _load(ctx.obj)
    cfg.summary.prompt = prompt
    _save(cfg, ctx.obj)
    console.print("Summary prompt set successfully")


@app.command("set-focus")
def set_focus(ctx: typer.Context, topics: str = typer.Argument(..., help="Comma-separated topics, \"\" to clear.")):
    """Set focus topics."""
    cfg = _load(ctx.obj)
    cfg.focus_topics = topics.strip()
    _save(cfg, ctx.obj)
    if cfg.focus_topics:
        console.print(f"Focus topics set to: {cfg.focus_topics}", markup=False)
    else:
        console.print("Focus topics cleared")


@app.command()
def logs(
    ctx: typer.Context,
    lines: int | None = typer.Option(None, "--lines", "-n", help="Print the last N lines instead of paging."),
):
    """View the daemon log."""
    paths: AppPaths = ctx.obj
    if not paths.log_path.exists():
        console.print("No logs found")
        return

    if lines is not None:
        with _reporting("reading logs"):
            with open(paths.log_path, "r", encoding="utf-8", errors="replace") as handle:
                tail = deque(handle, maxlen=max(lines, 0))
        for line in tail:
            console.print(line.rstrip("\n"), markup=False, highlight=False)
        return

    pager_cmd = os.getenv("PAGER") or "less"
    if shutil.which(pager_cmd) is None:
        with _reporting("reading logs"):
            content = paths.log_path.read_text(encoding="utf-8", errors="replace")
        with console.pager(styles=False):
            console.print(content, markup=False, highlight=False)
        return

    args = [pager_cmd, "+G", str(paths.log_path)] if Path(pager_cmd).name == "less" else [pager_cmd, str(paths.log_path)]
    with _reporting("showing logs"):
        result = subprocess.run(args, check=False)
    if result.returncode != 0:
        _fail(f"showing logs: pager exited with status {result.returncode}")


@app.command("clear-cache")
def clear_cache(ctx: typer.Context):
    """Clear cached websites."""
    paths: AppPaths = ctx.obj
    with _reporting("clearing cache"):
        ContentCache(paths.cache_dir).clear()
    console.print("Cache cleared successfully")


@app.command("clear-data")
def clear_data(ctx: typer.Context):
    """Clear all stored data."""
    paths: AppPaths = ctx.obj
    with _reporting("clearing data"):
        removed = clear_all_data(paths.data_dir)
    if removed:
        console.print(f"Removed: {paths.data_dir}")
    console.print("All data cleared successfully")


if __name__ == "__main__":
    app()
