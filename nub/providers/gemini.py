from __future__ import annotations

from typing import Any

import httpx

from ..errors import LLMError
from .base import Provider

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"


class GeminiProvider(Provider):
    """Google Gemini generateContent client.

    api_url is the API base URL; when empty the public endpoint is used.
    """

    def complete(self, prompt: str, label: str = "completion", source: str | None = None) -> str:
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                }
            ],
            "generationConfig": {
                "temperature": 0.2,
            },
        }
        try:
            data = self._post(payload)
        except httpx.HTTPStatusError as exc:
            body = exc.response.text
            self._log_llm_response(label, source, "provider_error", body, prompt)
            raise LLMError(f"API error {exc.response.status_code}: {body[:500]}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            self._log_llm_response(label, source, "provider_error", str(exc), prompt)
            raise LLMError(f"{type(exc).__name__}: {exc}") from exc

        content = _extract_text(data)
        if not content:
            self._log_llm_response(label, source, "empty_response", "", prompt)
            raise LLMError("no response from LLM")

        self._log_llm_response(label, source, "ok", content, prompt)
        return content.strip()

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        base_url = (self.cfg.api_url or DEFAULT_BASE_URL).rstrip("/")
        url = f"{base_url}/v1beta/models/{self.cfg.model}:generateContent"
        params = {"key": self.api_key}
        with httpx.Client(timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env) as client:
            resp = client.post(url, params=params, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    """Join the answer parts of the first candidate.

    Thinking models return reasoning parts flagged with "thought"; those are
    skipped unless nothing else is present.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    texts = [p.get("text", "") for p in parts if isinstance(p, dict)]
    answer = [p.get("text", "") for p in parts if isinstance(p, dict) and not p.get("thought")]
    return "".join(answer) or "".join(texts)
