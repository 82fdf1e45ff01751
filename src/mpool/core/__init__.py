"""Core pool engine."""
