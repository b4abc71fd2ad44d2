"""External service wrappers."""
