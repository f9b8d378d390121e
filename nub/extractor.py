"""
HTML-to-text extraction for summarization.

Pages are reduced to plain text before they are sent to the LLM. Three
extractors are available by name:
- "bs4": every visible text line of the page; keeps headline lists intact
- "trafilatura": main-content extraction tuned for articles
- "readability": Mozilla's readability algorithm, then the bs4 pass

extract_text() tries the configured primary and then each fallback until
one produces text.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from bs4 import BeautifulSoup
from readability import Document
import trafilatura

logger = logging.getLogger(__name__)

# Lines this short are navigation crumbs, separators or icons.
MIN_LINE_CHARS = 4
_INVISIBLE_TAGS = ["script", "style", "noscript", "template"]


def page_lines(html: str) -> str | None:
    """Visible text of a page, one stripped line per text block."""
    soup = BeautifulSoup(html, "html.parser")
    for node in soup.find_all(_INVISIBLE_TAGS):
        node.decompose()
    kept = [
        line
        for line in (raw.strip() for raw in soup.get_text("\n").splitlines())
        if len(line) >= MIN_LINE_CHARS
    ]
    return "\n".join(kept) or None


def main_content(html: str) -> str | None:
    return trafilatura.extract(html)


def readable_content(html: str) -> str | None:
    return page_lines(Document(html).summary())


EXTRACTORS: dict[str, Callable[[str], str | None]] = {
    "bs4": page_lines,
    "trafilatura": main_content,
    "readability": readable_content,
}


def extract_text(html: str, primary: str, fallback: Iterable[str]) -> str | None:
    """Run the extractor chain and return the first non-empty result.

    Unknown extractor names are skipped. Returns None when every extractor
    comes up empty.
    """
    tried: set[str] = set()
    for name in [primary, *fallback]:
        if name in tried:
            continue
        tried.add(name)
        extractor = EXTRACTORS.get(name)
        if extractor is None:
            logger.debug("Unknown extractor %r skipped", name)
            continue
        text = extractor(html)
        if text and text.strip():
            return text.strip()
    return None
