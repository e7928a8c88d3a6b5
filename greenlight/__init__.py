"""Greenlight: multi-stakeholder project approval engine."""

__version__ = "0.1.0"
