"""
Patient identity grouping.

Records are identified as one patient by (name, blood type, age), where ages
within a tolerance window of each other are taken to be the same person
recorded in different years. Ids are built in two passes:

1. Sort the distinct (name, blood_type, age) triples and number them.
2. Each triple's anchor is the lowest number among triples with the same
   name and blood type whose age lies within the window of its own age.

The patient id is the dense rank of the anchor. This links each triple to
the youngest triple in its window, one hop only, so it is not a transitive
closure: with a tolerance of 6, ages 20, 26 and 30 give {20, 26} and {30}
although 26 and 30 are within the window. ``count_anchor_divergence``
measures how often that happens without changing any id.
"""

from bisect import bisect_left
from collections import defaultdict
from collections.abc import Iterable, Sequence

from loguru import logger

from admissions.models import AdmissionRecord

DEFAULT_TOLERANCE = 6

PatientKey = tuple[str, str, int]


def patient_key(record: AdmissionRecord) -> PatientKey:
    return (record.name, record.blood_type, record.age)


def distinct_triples(records: Iterable[AdmissionRecord]) -> list[PatientKey]:
    """Distinct (name, blood_type, age) triples sorted by all three."""
    return sorted({patient_key(r) for r in records})


def _by_person(triples: Sequence[PatientKey]) -> dict[tuple[str, str], list[tuple[int, int]]]:
    # (name, blood_type) -> [(age, row), ...] ordered by age
    people: dict[tuple[str, str], list[tuple[int, int]]] = defaultdict(list)
    for row, (name, blood_type, age) in enumerate(triples):
        people[(name, blood_type)].append((age, row))
    return people


def anchor_rows(triples: Sequence[PatientKey], tolerance: int = DEFAULT_TOLERANCE) -> dict[PatientKey, int]:
    """
    Map every triple to its anchor row.

    ``triples`` must be sorted, as returned by ``distinct_triples``. Rows
    increase with age inside a (name, blood_type) block, so the minimum row
    in the window is the first triple whose age is >= age - tolerance.
    """
    anchors: dict[PatientKey, int] = {}
    for (name, blood_type), members in _by_person(triples).items():
        ages = [age for age, _ in members]
        for age, _ in members:
            first = bisect_left(ages, age - tolerance)
            anchors[(name, blood_type, age)] = members[first][1]
    return anchors


def patient_ids(triples: Sequence[PatientKey], tolerance: int = DEFAULT_TOLERANCE) -> dict[PatientKey, int]:
    """Dense rank of each triple's anchor, starting at 1."""
    anchors = anchor_rows(triples, tolerance)
    rank = {anchor: i for i, anchor in enumerate(sorted(set(anchors.values())), start=1)}
    return {triple: rank[anchor] for triple, anchor in anchors.items()}


def assign_patient_ids(
    records: Sequence[AdmissionRecord],
    tolerance: int = DEFAULT_TOLERANCE,
) -> dict[PatientKey, int]:
    """
    Set ``patient_id`` on every record.

    Returns:
        The triple -> patient_id mapping that was applied.
    """
    ids = patient_ids(distinct_triples(records), tolerance)
    for record in records:
        record.assign_patient_id(ids[patient_key(record)])

    logger.info(f"Identity grouping: {len(ids)} triples -> {len(set(ids.values()))} patients")
    return ids


def window_components(triples: Sequence[PatientKey], tolerance: int = DEFAULT_TOLERANCE) -> dict[PatientKey, int]:
    """
    Transitive closure of the window relation.

    Within one (name, blood_type) block ages are one-dimensional, so two
    triples are connected exactly when no gap between consecutive ages
    exceeds the tolerance. Component numbers are arbitrary but stable.
    """
    components: dict[PatientKey, int] = {}
    component = 0
    for (name, blood_type), members in sorted(_by_person(triples).items()):
        previous = None
        for age, _ in members:
            if previous is None or age - previous > tolerance:
                component += 1
            components[(name, blood_type, age)] = component
            previous = age
    return components


def count_anchor_divergence(triples: Sequence[PatientKey], tolerance: int = DEFAULT_TOLERANCE) -> int:
    """
    Number of triples whose transitive component is split across patient ids.

    Zero means the anchor construction agrees with full transitive grouping.
    """
    ids = patient_ids(triples, tolerance)
    ids_per_component: dict[int, set[int]] = defaultdict(set)
    members: dict[int, int] = defaultdict(int)
    for triple, component in window_components(triples, tolerance).items():
        ids_per_component[component].add(ids[triple])
        members[component] += 1

    return sum(members[c] for c, pids in ids_per_component.items() if len(pids) > 1)
