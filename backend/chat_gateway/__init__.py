"""Streaming chat gateway in front of an OpenAI-compatible completion API."""

__version__ = "0.1.0"
