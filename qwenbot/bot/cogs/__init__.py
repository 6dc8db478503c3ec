"""Discord cogs for QwenBot."""
