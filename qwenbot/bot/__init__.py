"""Discord bot layer for QwenBot."""
