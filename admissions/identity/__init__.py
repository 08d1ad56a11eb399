"""
Identifier assignment: patient identity grouping and visit numbering.
"""

from admissions.identity.patients import (
    DEFAULT_TOLERANCE,
    anchor_rows,
    assign_patient_ids,
    count_anchor_divergence,
    distinct_triples,
    patient_ids,
    window_components,
)
from admissions.identity.visits import assign_visit_ids, visit_key

__all__ = [
    "DEFAULT_TOLERANCE",
    "anchor_rows",
    "assign_patient_ids",
    "assign_visit_ids",
    "count_anchor_divergence",
    "distinct_triples",
    "patient_ids",
    "visit_key",
    "window_components",
]
