"""
LLM provider backends.

All providers expose a single complete() round trip; the summarizer
builds the prompts.
"""

from .base import Provider
from .factory import available_providers, create_provider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider

__all__ = [
    "Provider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
    "available_providers",
    "create_provider",
]
