"""
Deduplication pipeline components.

These modules remove duplicate admission rows: first full-attribute
duplicates, then encounters recorded more than once with differing ages.
"""

from admissions.deduplication.age_variance import AgeVariation, find_age_variations, resolve_age_variants
from admissions.deduplication.exact import duplicate_group_count, find_exact_duplicates, remove_exact_duplicates

__all__ = [
    "AgeVariation",
    "duplicate_group_count",
    "find_age_variations",
    "find_exact_duplicates",
    "remove_exact_duplicates",
    "resolve_age_variants",
]
