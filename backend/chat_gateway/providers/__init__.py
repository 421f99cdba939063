from .base import Provider
from .mock import MockProvider
from .openai_compat import OpenAICompatProvider, build_provider

__all__ = ["Provider", "MockProvider", "OpenAICompatProvider", "build_provider"]
