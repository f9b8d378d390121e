from __future__ import annotations

from typing import Any

import httpx

from ..errors import LLMError
from .base import Provider


class OpenAICompatibleProvider(Provider):
    """Chat-completion client for OpenAI-style endpoints (OpenAI, Mistral, ...).

    The configured api_url is the full chat-completions endpoint, e.g.
    https://api.mistral.ai/v1/chat/completions. Requests are never retried.
    """

    def complete(self, prompt: str, label: str = "completion", source: str | None = None) -> str:
        payload = {
            "model": self.cfg.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": False,
        }
        content = ""
        try:
            data = self._post(payload)
            content = _extract_text(data)
        except httpx.HTTPStatusError as exc:
            body = exc.response.text
            self._log_llm_response(label, source, "provider_error", body, prompt)
            raise LLMError(f"API error {exc.response.status_code}: {body[:500]}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            self._log_llm_response(label, source, "provider_error", str(exc), prompt)
            raise LLMError(f"{type(exc).__name__}: {exc}") from exc

        if content is None:
            self._log_llm_response(label, source, "empty_response", "", prompt)
            raise LLMError("no response from LLM")

        self._log_llm_response(label, source, "ok", content, prompt)
        return content.strip()

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        # timeout=None disables httpx's 5 s default; completions can be slow.
        with httpx.Client(timeout=self.cfg.timeout_seconds, trust_env=self.cfg.trust_env) as client:
            resp = client.post(self.cfg.api_url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    choices = data.get("choices") or []
    if not choices:
        return None
    message = choices[0].get("message") or {}
    content = message.get("content")
    if content is None:
        return None
    return str(content)
