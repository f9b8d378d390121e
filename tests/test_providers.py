"""Tests for provider request handling and response parsing."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from nub.config import LoggingConfig, ProviderConfig
from nub.errors import LLMError
from nub.logging_utils import setup_llm_logger
from nub.providers.gemini import GeminiProvider, _extract_text as gemini_text
from nub.providers.openai_compatible import OpenAICompatibleProvider, _extract_text as openai_text

API_URL = "https://llm.example/v1/chat/completions"


def _openai(llm_logger=None, log_cfg: LoggingConfig | None = None) -> OpenAICompatibleProvider:
    cfg = ProviderConfig(name="openai_compatible", api_url=API_URL, model="small", api_key="k")
    return OpenAICompatibleProvider(cfg, "k", log_cfg or LoggingConfig(), llm_logger)


def _status_error(status: int, body: str) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", API_URL)
    response = httpx.Response(status, text=body, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


def test_openai_request_shape_and_response(monkeypatch):
    provider = _openai()
    sent = []

    def fake_post(payload):
        sent.append(payload)
        return {"choices": [{"message": {"role": "assistant", "content": "  ## Summary\n"}}]}

    monkeypatch.setattr(provider, "_post", fake_post)

    assert provider.complete("Summarize this") == "## Summary"
    assert sent == [
        {
            "model": "small",
            "messages": [{"role": "user", "content": "Summarize this"}],
            "stream": False,
        }
    ]


def test_openai_empty_choices_is_an_error(monkeypatch):
    provider = _openai()
    monkeypatch.setattr(provider, "_post", lambda payload: {"choices": []})

    with pytest.raises(LLMError, match="no response from LLM"):
        provider.complete("hi")


def test_openai_status_error_includes_code_and_body(monkeypatch):
    provider = _openai()

    def fake_post(payload):
        raise _status_error(429, "rate limited")

    monkeypatch.setattr(provider, "_post", fake_post)

    with pytest.raises(LLMError, match="API error 429: rate limited"):
        provider.complete("hi")


def test_openai_transport_error(monkeypatch):
    provider = _openai()

    def fake_post(payload):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(provider, "_post", fake_post)

    with pytest.raises(LLMError, match="ConnectError"):
        provider.complete("hi")


def test_openai_extract_text_handles_malformed_payloads():
    assert openai_text([]) is None
    assert openai_text({}) is None
    assert openai_text({"choices": [{"message": {}}]}) is None
    assert openai_text({"choices": [{"message": {"content": ""}}]}) == ""


def test_llm_log_records_each_call(monkeypatch, tmp_path: Path):
    log_path = tmp_path / "llm.jsonl"
    llm_logger = setup_llm_logger(LoggingConfig(), log_path)
    provider = _openai(llm_logger)
    monkeypatch.setattr(
        provider, "_post", lambda payload: {"choices": [{"message": {"content": "done"}}]}
    )

    provider.complete("prompt text", label="summary", source="https://a.example")
    for handler in llm_logger.handlers:
        handler.flush()

    [line] = log_path.read_text(encoding="utf-8").splitlines()
    record = json.loads(line)
    assert record["event"] == "llm_response"
    assert record["label"] == "summary"
    assert record["status"] == "ok"
    assert record["source"] == "https://a.example"
    assert record["raw_response"] == "done"
    assert "raw_prompt" not in record


def test_llm_log_redacts_urls(monkeypatch, tmp_path: Path):
    log_cfg = LoggingConfig(llm_log_detail="prompt_response", llm_log_redaction="redact_urls")
    log_path = tmp_path / "llm.jsonl"
    llm_logger = setup_llm_logger(log_cfg, log_path)
    provider = _openai(llm_logger, log_cfg)
    monkeypatch.setattr(
        provider, "_post", lambda payload: {"choices": [{"message": {"content": "see https://b.example"}}]}
    )

    provider.complete("read https://a.example", source="https://a.example")
    for handler in llm_logger.handlers:
        handler.flush()

    record = json.loads(log_path.read_text(encoding="utf-8").splitlines()[-1])
    assert record["source"] == "[REDACTED]"
    assert record["raw_prompt"] == "read [REDACTED_URL]"
    assert record["raw_response"] == "see [REDACTED_URL]"


def test_gemini_extract_text_joins_non_thought_parts():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "internal reasoning"},
                        {"text": "## Headlines\n"},
                        {"text": "- one"},
                    ]
                }
            }
        ]
    }

    assert gemini_text(data) == "## Headlines\n- one"


def test_gemini_extract_text_falls_back_to_all_text_when_only_thought():
    data = {
        "candidates": [
            {
                "content": {
                    "parts": [
                        {"thought": True, "text": "first"},
                        {"thought": True, "text": " second"},
                    ]
                }
            }
        ]
    }

    assert gemini_text(data) == "first second"


def test_gemini_missing_candidates_is_an_error(monkeypatch):
    provider = GeminiProvider(ProviderConfig(name="gemini", model="g"), "k", LoggingConfig())
    monkeypatch.setattr(provider, "_post", lambda payload: {"candidates": []})

    with pytest.raises(LLMError):
        provider.complete("hi")
