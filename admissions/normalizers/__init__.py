"""
Data normalization utilities.

Per-record transforms: names to Proper Case and billing amounts to a fixed
precision. No record is added or removed here.
"""

from loguru import logger

from admissions.models import AdmissionRecord
from admissions.normalizers.billing import DEFAULT_PLACES, parse_amount, round_billing
from admissions.normalizers.dates import month_start, parse_date
from admissions.normalizers.names import proper_case_name


def normalize_record(record: AdmissionRecord, places: int = DEFAULT_PLACES) -> AdmissionRecord:
    """Normalize ``name`` and ``billing_amount`` in place."""
    record.name = proper_case_name(record.name)
    record.billing_amount = round_billing(record.billing_amount, places)
    return record


def normalize_records(records: list[AdmissionRecord], places: int = DEFAULT_PLACES) -> list[AdmissionRecord]:
    """Normalize every record in place and return the same list."""
    for record in records:
        normalize_record(record, places)
    logger.debug(f"Normalized {len(records)} records")
    return records


__all__ = [
    'normalize_record',
    'normalize_records',
    'proper_case_name',
    'parse_amount',
    'round_billing',
    'parse_date',
    'month_start',
]
