"""
Abstract base class for LLM providers.

New providers should inherit from Provider and implement complete().
Providers are plain request/response transports: prompt construction
lives in the summarizer, so every backend sees the same prompts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging

from ..config import LoggingConfig, ProviderConfig
from ..errors import ConfigError
from ..logging_utils import llm_record, log_event


class Provider(ABC):
    """Abstract base class for LLM providers.

    Attributes:
        cfg: Provider configuration (endpoint, model, timeout)
        api_key: Resolved API key
        log_cfg: Logging configuration controlling the LLM log
        llm_logger: Optional JSONL logger receiving one record per call
    """

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None = None,
    ):
        if not api_key:
            raise ConfigError("Missing LLM API key")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger

    @abstractmethod
    def complete(self, prompt: str, label: str = "completion", source: str | None = None) -> str:
        """Send a single user prompt and return the response text.

        Args:
            prompt: The full prompt text
            label: Short name of the call site, used in the LLM log
            source: Source URL the call is about, if any

        Returns:
            Response text with surrounding whitespace stripped

        Raises:
            LLMError: On transport failure, non-success status or empty response
        """
        raise NotImplementedError

    def _log_llm_response(
        self,
        label: str,
        source: str | None,
        status: str,
        content: str,
        prompt: str,
    ) -> None:
        if self.llm_logger is None:
            return
        record = llm_record(
            self.log_cfg,
            source=source,
            prompt=prompt,
            response=content,
            event="llm_response",
            label=label,
            status=status,
            provider=self.cfg.name,
            model=self.cfg.model,
        )
        log_event(self.llm_logger, "LLM response", **record)
