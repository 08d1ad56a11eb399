"""
Patient name casing.
"""

from admissions.utils.text import capitalize_token


def proper_case_name(name: str) -> str:
    """
    Render a ``first last`` name in Proper Case.

    Only the first two space-separated tokens are capitalized: everything
    after the first space is lower-cased apart from its leading character,
    so ``"mary ANN smith"`` becomes ``"Mary Ann smith"``. The separator is
    kept exactly as written, and the character capitalized is the one right
    after the first space even when that is another space, so
    ``"mary  ANN"`` becomes ``"Mary  ann"``.
    """
    if not name:
        return name or ""

    head, sep, tail = name.partition(" ")
    return capitalize_token(head) + sep + capitalize_token(tail)
