"""
Partition keys and hash-keyed grouping shared by the deduplication stages.
"""

from collections import defaultdict
from collections.abc import Callable, Hashable, Sequence

from admissions.models import AdmissionRecord


def exact_key(record: AdmissionRecord) -> tuple:
    """Every data column: two records with equal keys are full duplicates."""
    return record.values()


def encounter_key(record: AdmissionRecord) -> tuple:
    """Every data column except age: one clinical encounter."""
    return record.values(exclude=("age",))


def partition(
    records: Sequence[AdmissionRecord],
    key: Callable[[AdmissionRecord], Hashable],
) -> dict[Hashable, list[int]]:
    """
    Group row positions by ``key``.

    Returns a dict mapping each key to the positions (into ``records``) of
    its members, in input order.
    """
    groups: dict[Hashable, list[int]] = defaultdict(list)
    for position, record in enumerate(records):
        groups[key(record)].append(position)
    return groups


def keep_first(
    records: Sequence[AdmissionRecord],
    key: Callable[[AdmissionRecord], Hashable],
    order: Callable[[AdmissionRecord], tuple],
) -> tuple[list[AdmissionRecord], list[AdmissionRecord]]:
    """
    Keep one survivor per ``key`` group: the member that sorts first by ``order``.

    Ties in ``order`` fall back to ``source_index``. Survivors keep their
    input order.

    Returns:
        (survivors, removed)
    """
    keep: set[int] = set()
    for positions in partition(records, key).values():
        best = min(positions, key=lambda p: (*order(records[p]), records[p].source_index, p))
        keep.add(best)

    survivors = [r for p, r in enumerate(records) if p in keep]
    removed = [r for p, r in enumerate(records) if p not in keep]
    return survivors, removed
