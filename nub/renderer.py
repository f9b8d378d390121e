"""
Rendering of stored summaries for viewing.

Summary and focus documents are Markdown. They are shown either as
wrapped plain text in a pager or as an HTML page built from a Jinja2
template and opened in the browser.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
import textwrap

from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader, select_autoescape
import markdown as md

WRAP_WIDTH = 78
HEAVY_RULE = "═" * 67
LIGHT_RULE = "─" * 67
_UNWRAPPED_PREFIXES = ("Summary for:", "Generated:")


def markdown_to_html(text: str) -> str:
    return md.markdown(text, extensions=["fenced_code", "tables", "sane_lists"])


def markdown_to_plain_text(text: str) -> str:
    """Strip Markdown formatting and wrap paragraphs to WRAP_WIDTH columns.

    Header lines such as "Summary for:" and "Generated:" are kept intact.
    """
    soup = BeautifulSoup(markdown_to_html(text), "html.parser")
    for item in soup.find_all("li"):
        item.insert(0, "- ")
    for block in soup.find_all(["p", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "pre", "blockquote"]):
        block.append("\n")
    stripped = soup.get_text()

    formatted: list[str] = []
    for line in stripped.splitlines():
        line = line.strip()
        if not line:
            if formatted and formatted[-1] != "":
                formatted.append("")
            continue
        if line.startswith(_UNWRAPPED_PREFIXES):
            formatted.append(line)
        else:
            formatted.extend(textwrap.wrap(line, WRAP_WIDTH) or [""])
    return "\n".join(formatted).strip()


def _read_documents(paths: list[Path]) -> list[str]:
    documents = []
    for path in paths:
        try:
            documents.append(path.read_text(encoding="utf-8"))
        except OSError:
            continue
    return documents


def render_text(summary_paths: list[Path], focus_paths: list[Path], focus_topics: str) -> str:
    """Render summaries (and focus documents when topics are set) as plain text."""
    parts: list[str] = []
    if focus_topics:
        parts.append(f"{HEAVY_RULE}\n  FOCUS: {focus_topics}\n{HEAVY_RULE}\n\n")
        for document in _read_documents(focus_paths):
            parts.append(markdown_to_plain_text(document) + "\n\n")
        parts.append(f"{LIGHT_RULE}\n\n")

    for document in _read_documents(summary_paths):
        parts.append(markdown_to_plain_text(document) + "\n\n")
        parts.append(f"{LIGHT_RULE}\n\n")
    return "".join(parts)


def render_html(
    summary_paths: list[Path],
    focus_paths: list[Path],
    focus_topics: str,
    title: str = "nub",
) -> str:
    """Render summaries (and focus documents when topics are set) as an HTML page."""
    env = Environment(
        loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
        autoescape=select_autoescape(["html"]),
    )
    template = env.get_template("summaries.html")
    focus_html = []
    if focus_topics:
        focus_html = [markdown_to_html(doc) for doc in _read_documents(focus_paths)]
    return template.render(
        title=title,
        generated_at=datetime.now().strftime("%Y-%m-%d %H:%M"),
        focus_topics=focus_topics,
        focus_items=focus_html,
        summaries=[markdown_to_html(doc) for doc in _read_documents(summary_paths)],
    )
