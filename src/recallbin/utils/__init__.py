"""File and URL helpers."""
