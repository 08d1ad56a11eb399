"""
Resolution of encounters recorded with conflicting ages.

Two rows that agree on every column except age describe the same encounter
with a data-entry error in the age. The smaller age is kept.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from admissions.deduplication.keys import encounter_key, keep_first, partition
from admissions.models import RECORD_COLUMNS, AdmissionRecord

ENCOUNTER_COLUMNS = tuple(col for col in RECORD_COLUMNS if col != "age")


@dataclass
class AgeVariation:
    """An encounter recorded with more than one distinct age."""
    key: dict
    ages: list[int]

    @property
    def age_variations(self) -> int:
        return len(self.ages)


def resolve_age_variants(records: Sequence[AdmissionRecord]) -> list[AdmissionRecord]:
    """Keep the youngest record of each encounter group (ties: earliest input row)."""
    survivors, removed = keep_first(records, encounter_key, order=lambda r: (r.age,))
    logger.info(f"Age-variance resolution: removed {len(removed)} of {len(records)} records")
    for record in removed:
        logger.debug(f"Dropped age variant: {record.name!r} age {record.age} (row {record.source_index})")
    return survivors


def find_age_variations(records: Sequence[AdmissionRecord]) -> list[AgeVariation]:
    """Encounter groups whose members disagree on age."""
    variations = []
    for key, positions in partition(records, encounter_key).items():
        ages = sorted({records[p].age for p in positions})
        if len(ages) > 1:
            variations.append(AgeVariation(key=dict(zip(ENCOUNTER_COLUMNS, key)), ages=ages))
    return variations
