"""Utility modules for the Inkwell API."""

from src.utils.dates import as_utc, utcnow
from src.utils.sanitize import generate_slug, sanitize_text


__all__ = ["as_utc", "generate_slug", "sanitize_text", "utcnow"]
