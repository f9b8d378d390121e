"""
HTTP content fetching.

Pages are retrieved with a synchronous httpx client that follows
redirects, enforces an overall timeout per attempt and decodes the body
using the charset from the Content-Type header or, failing that, the one
declared inside the document (BOM or <meta charset>).
"""

from __future__ import annotations

from dataclasses import dataclass
import time

from bs4 import UnicodeDammit
import httpx


@dataclass
class FetchResult:
    """Result of an HTTP fetch operation.

    Either text will be populated (success) or error will be populated (failure),
    but never both. status_code may be None for network-level failures.

    Attributes:
        url: The URL that was fetched
        status_code: HTTP status code, or None if request failed before getting response
        text: The decoded response body, or None on error
        error: Error message if fetch failed, None on success
    """
    url: str
    status_code: int | None
    text: str | None
    error: str | None

    @property
    def ok(self) -> bool:
        return self.error is None and self.text is not None


def fetch_url(
    url: str,
    timeout: float,
    retries: int,
    user_agent: str,
    trust_env: bool,
) -> FetchResult:
    """Fetch a URL using httpx.

    A non-2xx status is reported as a failure. Transport errors are retried
    `retries` times with a linear backoff; status failures are not.

    Args:
        url: The URL to fetch
        timeout: Overall request timeout in seconds
        retries: Number of retry attempts after initial failure
        user_agent: User-Agent header string
        trust_env: Whether to respect system proxy settings from environment

    Returns:
        FetchResult with text on success or error message on failure
    """
    headers = {"User-Agent": user_agent}
    last_error: str | None = None

    for attempt in range(retries + 1):
        try:
            with httpx.Client(
                timeout=timeout,
                headers=headers,
                follow_redirects=True,
                trust_env=trust_env,
            ) as client:
                resp = client.get(url)
        except httpx.HTTPError as exc:
            last_error = f"{type(exc).__name__}: {exc}"
            if attempt < retries:
                time.sleep(0.5 * (attempt + 1))
            continue

        if not resp.is_success:
            return FetchResult(
                url=url,
                status_code=resp.status_code,
                text=None,
                error=f"HTTP {resp.status_code}: {resp.reason_phrase}",
            )
        return FetchResult(url=url, status_code=resp.status_code, text=_decode(resp), error=None)

    return FetchResult(url=url, status_code=None, text=None, error=last_error)


def _decode(resp: httpx.Response) -> str:
    """Decode a body, preferring the header charset over in-document hints."""
    if resp.charset_encoding:
        return resp.text
    dammit = UnicodeDammit(resp.content, is_html=True)
    if dammit.unicode_markup is None:
        return resp.content.decode("utf-8", errors="replace")
    return dammit.unicode_markup
