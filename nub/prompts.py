"""Prompt loading and rendering helpers for LLM requests."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path


_PROMPT_DIR = Path(__file__).resolve().parent / "templates" / "prompts"

# Canonical "nothing found" answer the focus prompt asks the model to give.
NO_RELEVANT_CONTENT = "No relevant content found."


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_summary_prompt(prompt: str, url: str, content: str) -> str:
    return _render_template("summary", prompt=prompt, url=url, content=content)


def build_focus_prompt(topics: str, summary: str) -> str:
    return _render_template(
        "focus",
        topics=topics,
        summary=summary,
        sentinel=NO_RELEVANT_CONTENT,
    )
