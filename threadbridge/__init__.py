"""Telegram <-> OpenAI Assistant relay with per-conversation threads."""

__version__ = "0.1.0"
