"""
Logging setup for nub.

Three sinks are used:
- the Rich console, for foreground commands
- nub.log, appended to by foreground runs and by the daemon
- llm.jsonl, one JSON record per LLM round trip

Structured fields travel as `extra` attributes on the log record via
log_event(); the JSONL formatter writes them out as top-level keys.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig

LOGGER_NAME = "nub"
LLM_LOGGER_NAME = "nub.llm"
PLAIN_FORMAT = "%(asctime)s %(levelname)s %(message)s"
MAX_LOGGED_CHARS = 20000

_URL_RE = re.compile(r"https?://\S+")
_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


def setup_logging(
    cfg: LoggingConfig,
    log_path: Path | None,
    console: bool | None = None,
) -> logging.Logger:
    """Configure the "nub" logger, replacing handlers from earlier calls.

    console overrides cfg.console; the daemon passes False because its
    stdout is already the log file.
    """
    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = _fresh_logger(LOGGER_NAME, level)
    if cfg.console if console is None else console:
        rich_handler = RichHandler(rich_tracebacks=True, show_time=False, show_level=True)
        _attach(logger, rich_handler, level, logging.Formatter("%(message)s"))
    if log_path is not None:
        formatter = JsonlFormatter() if cfg.format == "jsonl" else logging.Formatter(PLAIN_FORMAT)
        _attach(logger, _append_handler(log_path), level, formatter)
    return logger


def setup_llm_logger(cfg: LoggingConfig, llm_log_path: Path | None) -> logging.Logger | None:
    """Return the JSONL logger for LLM round trips, or None when disabled."""
    if not cfg.llm_log_enabled or llm_log_path is None:
        return None
    logger = _fresh_logger(LLM_LOGGER_NAME, logging.INFO)
    _attach(logger, _append_handler(llm_log_path), logging.INFO, JsonlFormatter())
    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    if logger is None:
        return
    logger.log(level, message, extra=fields)


def llm_record(
    cfg: LoggingConfig,
    *,
    source: str | None,
    prompt: str,
    response: str,
    **fields: Any,
) -> dict[str, Any]:
    """Build the fields of one LLM log record.

    cfg.llm_log_detail picks what text is kept:
    "summary_only" keeps none, "response_only" the response and
    "prompt_response" both. cfg.llm_log_redaction then applies:
    "redact_content" blanks text and drops the source, "redact_urls" masks
    every URL. Kept text is clipped to MAX_LOGGED_CHARS.
    """
    mode = cfg.llm_log_redaction
    record = dict(fields)
    if mode == "redact_content":
        source = None
    elif mode == "redact_urls" and source is not None:
        source = "[REDACTED]"
    record["source"] = source

    texts = {"raw_response": response}
    if cfg.llm_log_detail == "prompt_response":
        texts = {"raw_prompt": prompt, "raw_response": response}
    elif cfg.llm_log_detail == "summary_only":
        texts = {"raw_response": ""}
    for key, text in texts.items():
        record[key] = _clip(_mask(text, mode))
    return record


class JsonlFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update((k, v) for k, v in record.__dict__.items() if k not in _RESERVED)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def _mask(text: str, mode: str) -> str:
    if mode == "redact_content":
        return ""
    if mode == "redact_urls":
        return _URL_RE.sub("[REDACTED_URL]", text)
    return text


def _clip(text: str) -> str:
    if len(text) > MAX_LOGGED_CHARS:
        return text[:MAX_LOGGED_CHARS] + "...(truncated)"
    return text


def _fresh_logger(name: str, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False
    return logger


def _append_handler(path: Path) -> logging.FileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a", encoding="utf-8")


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
