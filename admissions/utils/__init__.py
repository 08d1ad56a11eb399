"""Utility modules for the admissions pipeline."""

from admissions.utils.logging import setup_logging
from admissions.utils.text import capitalize_token, to_snake_case

__all__ = [
    # Logging
    "setup_logging",
    # Text utilities
    "capitalize_token",
    "to_snake_case",
]
