"""Structural SEO testing of rendered pages."""

__version__ = "1.0.0"
