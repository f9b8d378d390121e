"""
Configuration management using YAML files and dataclasses.

This module defines the configuration dataclasses, loading and saving of
the YAML config file, source list management, and the single place where
filesystem locations are resolved. Configuration sections:
- ProviderConfig: LLM endpoint settings
- SummaryConfig: Summarization prompt and request size
- FetchConfig: HTTP fetching settings
- ExtractConfig: HTML-to-text extraction settings
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError


DEFAULT_PROMPT = (
    "Summarize the key news topics and main stories from this website. "
    "Focus on the most important headlines and provide a concise overview "
    "in markdown format."
)
DEFAULT_SCHEDULE_MINUTES = 15


@dataclass
class ProviderConfig:
    """Configuration for the LLM provider.

    Attributes:
        name: Provider name ("openai", "openai_compatible", "mistral" or "gemini")
        api_url: Chat-completion endpoint URL (base URL for gemini)
        model: Model identifier (e.g., "mistral-small-latest")
        api_key: Optional inline API key (overrides env var)
        api_key_env: Environment variable name containing the API key
        timeout_seconds: Request timeout; None leaves it to the transport default
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "openai_compatible"
    api_url: str = ""
    model: str = ""
    api_key: str | None = None
    api_key_env: str = "NUB_LLM_API_KEY"
    timeout_seconds: float | None = None
    trust_env: bool = True


@dataclass
class SummaryConfig:
    """Configuration for LLM summarization.

    Attributes:
        prompt: Instruction placed at the top of every summary request
        max_chars: Maximum characters of page text sent to the LLM
    """

    prompt: str = DEFAULT_PROMPT
    max_chars: int = 8000


@dataclass
class FetchConfig:
    """Configuration for HTTP content fetching.

    Attributes:
        timeout_seconds: Overall timeout for one fetch attempt
        retries: Number of retry attempts for failed requests
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 30.0
    retries: int = 0
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )


@dataclass
class ExtractConfig:
    """Configuration for HTML content extraction.

    Attributes:
        primary: Primary extraction method ("bs4", "trafilatura" or "readability")
        fallback: List of fallback methods to try if primary fails
    """

    primary: str = "bs4"
    fallback: list[str] = field(default_factory=lambda: ["trafilatura", "readability"])


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console in foreground commands
        file: Whether foreground runs also append to the log file
        format: Log file format ("plain" or "jsonl")
        llm_log_enabled: Whether to write the LLM interaction log
        llm_log_detail: LLM log detail level ("summary_only", "response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls")
    """

    level: str = "INFO"
    console: bool = True
    file: bool = True
    format: str = "plain"
    llm_log_enabled: bool = True
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "none"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    sources: list[str] = field(default_factory=list)
    schedule_minutes: int = DEFAULT_SCHEDULE_MINUTES
    focus_topics: str = ""
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


@dataclass(frozen=True)
class AppPaths:
    """Filesystem locations used by every component.

    Built once by resolve_paths() and handed to components at construction,
    so nothing below the CLI reads the home directory or environment.
    """

    config_path: Path
    data_dir: Path

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def summaries_dir(self) -> Path:
        return self.data_dir / "summaries"

    @property
    def focus_dir(self) -> Path:
        return self.data_dir / "focus"

    @property
    def pid_path(self) -> Path:
        return self.data_dir / "nub.pid"

    @property
    def log_path(self) -> Path:
        return self.data_dir / "nub.log"

    @property
    def llm_log_path(self) -> Path:
        return self.data_dir / "llm.jsonl"

    @property
    def view_text_path(self) -> Path:
        return self.data_dir / "view.md"

    @property
    def view_html_path(self) -> Path:
        return self.data_dir / "view.html"


def resolve_paths(config_path: Path | None = None, data_dir: Path | None = None) -> AppPaths:
    """Resolve config and data locations.

    Explicit arguments win, then the NUB_CONFIG / NUB_DATA_DIR environment
    variables, then ~/.config/nub/config.yaml and ~/.local/nub.
    """
    if config_path is None:
        env_config = os.getenv("NUB_CONFIG")
        config_path = (
            Path(env_config) if env_config else Path.home() / ".config" / "nub" / "config.yaml"
        )
    if data_dir is None:
        env_data = os.getenv("NUB_DATA_DIR")
        data_dir = Path(env_data) if env_data else Path.home() / ".local" / "nub"
    return AppPaths(config_path=config_path.expanduser(), data_dir=data_dir.expanduser())


def load_config(path: Path) -> AppConfig:
    """Load configuration from a YAML file with defaults.

    A missing file is created with default values, so a fresh install has
    a config file to edit.
    """
    if not path.exists():
        cfg = AppConfig()
        save_config(cfg, path)
        return cfg

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    try:
        cfg = _merge_config(AppConfig(), raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid config {path}: {exc}") from exc
    if not cfg.summary.prompt:
        cfg.summary.prompt = DEFAULT_PROMPT
    return cfg


def save_config(cfg: AppConfig, path: Path) -> None:
    """Write configuration as YAML, readable only by the owner."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(_asdict(cfg), f, sort_keys=False, allow_unicode=True)
    os.chmod(path, 0o600)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update({k: v for k, v in value.items() if k in data[key]})
        elif value is not None:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "sources": list(cfg.sources),
        "schedule_minutes": cfg.schedule_minutes,
        "focus_topics": cfg.focus_topics,
        "provider": {
            "name": cfg.provider.name,
            "api_url": cfg.provider.api_url,
            "model": cfg.provider.model,
            "api_key": cfg.provider.api_key,
            "api_key_env": cfg.provider.api_key_env,
            "timeout_seconds": cfg.provider.timeout_seconds,
            "trust_env": cfg.provider.trust_env,
        },
        "summary": {
            "prompt": cfg.summary.prompt,
            "max_chars": cfg.summary.max_chars,
        },
        "fetch": {
            "timeout_seconds": cfg.fetch.timeout_seconds,
            "retries": cfg.fetch.retries,
            "trust_env": cfg.fetch.trust_env,
            "user_agent": cfg.fetch.user_agent,
        },
        "extract": {
            "primary": cfg.extract.primary,
            "fallback": list(cfg.extract.fallback),
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "llm_log_enabled": cfg.logging.llm_log_enabled,
            "llm_log_detail": cfg.logging.llm_log_detail,
            "llm_log_redaction": cfg.logging.llm_log_redaction,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary.

    Raises:
        TypeError, ValueError: If a section or value has the wrong shape
    """
    sources = data["sources"] or []
    if not isinstance(sources, list):
        raise TypeError(f"sources must be a list, got {type(sources).__name__}")
    for key in ("provider", "summary", "fetch", "extract", "logging"):
        if not isinstance(data[key], dict):
            raise TypeError(f"{key} must be a mapping, got {type(data[key]).__name__}")

    provider = ProviderConfig(**data["provider"])
    if provider.timeout_seconds is not None:
        provider.timeout_seconds = float(provider.timeout_seconds)
    summary = SummaryConfig(**data["summary"])
    summary.max_chars = int(summary.max_chars)
    fetch = FetchConfig(**data["fetch"])
    fetch.timeout_seconds = float(fetch.timeout_seconds)
    fetch.retries = int(fetch.retries)
    return AppConfig(
        sources=[str(s) for s in sources],
        schedule_minutes=int(data["schedule_minutes"]),
        focus_topics=str(data["focus_topics"] or ""),
        provider=provider,
        summary=summary,
        fetch=fetch,
        extract=ExtractConfig(**data["extract"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    return os.getenv(cfg.api_key_env)


def effective_schedule_minutes(cfg: AppConfig) -> int:
    """Return the daemon interval, defaulting unset or invalid values to 15."""
    if cfg.schedule_minutes < 1:
        return DEFAULT_SCHEDULE_MINUTES
    return cfg.schedule_minutes


def validate_config(cfg: AppConfig) -> None:
    """Check the settings a run cannot do without.

    Raises:
        ConfigError: If sources, API key, API URL or model are missing
    """
    if not cfg.sources:
        raise ConfigError("no sources configured, use `nub add-source <url>`")
    if not get_api_key(cfg.provider):
        raise ConfigError(
            f"LLM API key not set, use `nub set-api-key` or export {cfg.provider.api_key_env}"
        )
    if not cfg.provider.api_url:
        raise ConfigError("LLM API URL not set, use `nub set-api-url`")
    if not cfg.provider.model:
        raise ConfigError("LLM API model not set, use `nub set-model`")


def add_source(cfg: AppConfig, url: str) -> None:
    """Append a source, rejecting duplicates."""
    url = url.strip()
    if not url:
        raise ConfigError("source URL must not be empty")
    if url in cfg.sources:
        raise ConfigError(f"source already exists: {url}")
    cfg.sources.append(url)


def remove_source(cfg: AppConfig, id_or_url: str) -> str:
    """Remove a source by 1-based index or exact URL and return it."""
    idx = -1
    if id_or_url.isdigit():
        num = int(id_or_url)
        if 1 <= num <= len(cfg.sources):
            idx = num - 1
    if idx == -1 and id_or_url in cfg.sources:
        idx = cfg.sources.index(id_or_url)
    if idx == -1:
        raise ConfigError(f"source not found: {id_or_url}")
    return cfg.sources.pop(idx)
