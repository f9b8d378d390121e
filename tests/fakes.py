"""Test doubles for the network-facing collaborators."""

from __future__ import annotations

from nub.config import LoggingConfig, ProviderConfig
from nub.errors import LLMError
from nub.fetcher import FetchResult
from nub.providers.base import Provider


class FakeProvider(Provider):
    """Provider stub answering summary and focus prompts from canned values."""

    def __init__(self, focus_reply: str = "- focused item", fail_focus: bool = False):
        super().__init__(ProviderConfig(model="fake-model"), "test-key", LoggingConfig())
        self.focus_reply = focus_reply
        self.fail_focus = fail_focus
        self.calls: list[tuple[str, str | None, str]] = []

    def complete(self, prompt: str, label: str = "completion", source: str | None = None) -> str:
        self.calls.append((label, source, prompt))
        if label == "focus":
            if self.fail_focus:
                raise LLMError("focus backend down")
            return self.focus_reply
        return f"Summary of {source}"

    def labels(self) -> list[str]:
        return [label for label, _source, _prompt in self.calls]


class FakeFetcher:
    """Fetch stub returning a small page per URL, failing for selected URLs."""

    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()
        self.calls: list[str] = []

    def __call__(self, url: str) -> FetchResult:
        self.calls.append(url)
        if url in self.failing:
            return FetchResult(url=url, status_code=500, text=None, error="HTTP 500: Internal Server Error")
        html = f"<html><body><h1>Headlines from {url}</h1><p>Story one about things.</p></body></html>"
        return FetchResult(url=url, status_code=200, text=html, error=None)
