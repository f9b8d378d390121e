"""
Page summarization and topic-focused extraction.

The Summarizer turns fetched HTML into a Markdown summary by extracting
the page text, truncating it to a fixed request size and sending it to the
configured LLM provider. It also re-derives a focused excerpt from any
body of text given a comma-separated topic filter.
"""

from __future__ import annotations

import logging

from .config import ExtractConfig, SummaryConfig
from .extractor import extract_text
from .prompts import NO_RELEVANT_CONTENT, build_focus_prompt, build_summary_prompt
from .providers.base import Provider

logger = logging.getLogger(__name__)


class Summarizer:
    """Builds prompts and delegates the round trips to an LLM provider.

    Attributes:
        provider: LLM backend used for every request
        summary_cfg: Default prompt and maximum text size
        extract_cfg: HTML-to-text extraction chain
    """

    def __init__(self, provider: Provider, summary_cfg: SummaryConfig, extract_cfg: ExtractConfig):
        self.provider = provider
        self.summary_cfg = summary_cfg
        self.extract_cfg = extract_cfg

    def prepare_text(self, content: str) -> str:
        """Extract plain text from HTML and cut it at max_chars.

        The cut is a hard character offset, not sentence-aware.
        """
        text = extract_text(content, self.extract_cfg.primary, self.extract_cfg.fallback) or ""
        return text[: self.summary_cfg.max_chars]

    def summarize(self, content: str, url: str, prompt: str | None = None) -> str:
        """Summarize raw page content.

        Args:
            content: Raw HTML as fetched or cached
            url: Source URL, included in the prompt
            prompt: Instruction text; defaults to the configured prompt

        Returns:
            Markdown summary text

        Raises:
            LLMError: If the provider round trip fails
        """
        text = self.prepare_text(content)
        if not text:
            logger.warning("No text extracted from %s", url)
        request = build_summary_prompt(prompt or self.summary_cfg.prompt, url, text)
        return self.provider.complete(request, label="summary", source=url)

    def extract_focused(self, topics: str, body: str, source: str | None = None) -> str:
        """Extract the parts of body related to topics.

        An empty topic filter short-circuits to "" without a network call.
        """
        if not topics.strip():
            return ""
        request = build_focus_prompt(topics, body)
        return self.provider.complete(request, label="focus", source=source)


def has_focus_content(text: str) -> bool:
    """Whether a focus extraction result is worth storing."""
    return bool(text) and text != NO_RELEVANT_CONTENT
