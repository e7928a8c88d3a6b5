"""Database layer for greenlight."""
