"""External service helpers."""
