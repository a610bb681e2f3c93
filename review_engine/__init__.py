"""Spaced-repetition scheduling and review progression engine."""
