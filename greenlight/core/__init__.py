"""Core engine, configuration and logging for greenlight."""
