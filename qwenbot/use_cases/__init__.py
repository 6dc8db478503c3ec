"""Use cases for QwenBot.

Use cases orchestrate the services on behalf of the Discord cogs so the
bot layer stays a thin adapter.
"""
