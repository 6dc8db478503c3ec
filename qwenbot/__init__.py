"""QwenBot: a Discord chat bot for Qwen models with personas and conversation memory."""

__version__ = "1.0.0"
