"""Text processing utility functions for the admissions pipeline."""

import re


def to_snake_case(header: str) -> str:
    """Convert a column header such as ``"Date of Admission"`` to ``date_of_admission``.

    Args:
        header: Raw header text

    Returns:
        Lower-cased header with runs of non-alphanumerics collapsed to ``_``
    """
    if not header:
        return ""
    header = header.strip().lstrip("\ufeff")
    return re.sub(r"[^0-9a-zA-Z]+", "_", header).strip("_").lower()


def capitalize_token(token: str) -> str:
    """Upper-case the first character and lower-case the rest."""
    return token[:1].upper() + token[1:].lower()
