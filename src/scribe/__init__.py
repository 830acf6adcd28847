"""Scribe: rewrite the active note into a meeting template with a local LLM."""

__version__ = "0.1.0"

__all__ = ["__version__"]
