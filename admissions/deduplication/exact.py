"""Removal of full-attribute duplicate admissions."""

from collections.abc import Sequence

from loguru import logger

from admissions.deduplication.keys import exact_key, keep_first, partition
from admissions.models import AdmissionRecord


def remove_exact_duplicates(records: Sequence[AdmissionRecord]) -> list[AdmissionRecord]:
    """Keep one record per distinct full-attribute tuple.

    Within a duplicate group the earliest admission wins, then the earliest
    input row. Running this on its own output removes nothing.
    """
    survivors, removed = keep_first(records, exact_key, order=lambda r: (r.date_of_admission,))
    logger.info(f"Exact deduplication: removed {len(removed)} of {len(records)} records")
    return survivors


def find_exact_duplicates(
    records: Sequence[AdmissionRecord],
    name: str | None = None,
) -> list[AdmissionRecord]:
    """Records that ``remove_exact_duplicates`` would discard.

    Args:
        records: Records to inspect
        name: Only look at records with this exact name
    """
    if name is not None:
        records = [r for r in records if r.name == name]
    _, removed = keep_first(records, exact_key, order=lambda r: (r.date_of_admission,))
    return removed


def duplicate_group_count(records: Sequence[AdmissionRecord]) -> int:
    """Number of full-attribute tuples that occur more than once."""
    return sum(1 for positions in partition(records, exact_key).values() if len(positions) > 1)
