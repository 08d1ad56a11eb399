"""Sequential visit numbering."""

from collections.abc import Sequence
from datetime import date

from loguru import logger

from admissions.models import AdmissionRecord

VisitKey = tuple[str, int, str, date]


def visit_key(record: AdmissionRecord) -> VisitKey:
    """One visit: the same person (name, age, blood type) admitted on the same day."""
    return (record.name, record.age, record.blood_type, record.date_of_admission)


def assign_visit_ids(records: Sequence[AdmissionRecord]) -> dict[VisitKey, int]:
    """
    Number visits 1..K in admission-date order and set ``visit_id`` on every record.

    Visits admitted on the same day are ordered by the first input row that
    belongs to them. Records sharing a visit key share its number, so the
    numbering has no gaps.
    """
    first_seen: dict[VisitKey, tuple[date, int]] = {}
    for record in records:
        key = visit_key(record)
        order = (record.date_of_admission, record.source_index)
        if key not in first_seen or order < first_seen[key]:
            first_seen[key] = order

    ordered = sorted(first_seen, key=first_seen.__getitem__)
    ids = {key: visit_id for visit_id, key in enumerate(ordered, start=1)}

    for record in records:
        record.assign_visit_id(ids[visit_key(record)])

    shared = len(records) - len(ids)
    if shared:
        logger.warning(f"Visit sequencing: {shared} records share a visit key with another record")
    logger.info(f"Visit sequencing: assigned {len(ids)} visit ids to {len(records)} records")
    return ids
