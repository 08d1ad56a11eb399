"""
Analytical reports over the cleaned admissions table.

Every report is a read-only group-by over a fully sequenced record set and
returns a list of dict rows keyed like a SQL result set. Ordering of tied
rows is by key so the output is deterministic.

Usage:
    report = AdmissionsReport(result.records)
    report.hospitals_by_visits(limit=1)
    report.readmissions(window_days=30)
"""

from collections import Counter, defaultdict
from collections.abc import Callable, Hashable, Iterable, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from loguru import logger

from admissions.config import settings
from admissions.errors import IncompleteDatasetError
from admissions.models import AdmissionRecord
from admissions.normalizers import month_start

CENTS = Decimal("0.01")

Row = dict[str, Any]


def _average(values: Sequence[Decimal]) -> Decimal:
    return (sum(values, Decimal(0)) / len(values)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _ranked(counts: dict, key_name: str, value_name: str, limit: int | None = None) -> list[Row]:
    """Rows sorted by value descending, ties by key ascending."""
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    if limit is not None:
        ordered = ordered[:limit]
    return [{key_name: k, value_name: v} for k, v in ordered]


def _by_key(counts: dict, key_name: str, value_name: str) -> list[Row]:
    return [{key_name: k, value_name: counts[k]} for k in sorted(counts)]


class AdmissionsReport:
    """
    Read-only aggregate queries.

    Args:
        records: Output of the cleaning pipeline. Every record must carry
            both a patient_id and a visit_id.

    Raises:
        IncompleteDatasetError: if any record has not been identified and sequenced
    """

    def __init__(self, records: Iterable[AdmissionRecord]):
        self.records: tuple[AdmissionRecord, ...] = tuple(records)
        unsequenced = sum(1 for r in self.records if r.patient_id is None or r.visit_id is None)
        if unsequenced:
            raise IncompleteDatasetError(
                f"{unsequenced} of {len(self.records)} records have no patient_id/visit_id"
            )

    def __len__(self) -> int:
        return len(self.records)

    # -------------------------------------------------------------------------
    # Grouping helpers
    # -------------------------------------------------------------------------

    def _where(self, predicate: Callable[[AdmissionRecord], bool]) -> list[AdmissionRecord]:
        return [r for r in self.records if predicate(r)]

    def _count_by(self, key: Callable[[AdmissionRecord], Hashable], records=None) -> Counter:
        return Counter(key(r) for r in (self.records if records is None else records))

    def _group(self, key: Callable[[AdmissionRecord], Hashable]) -> dict[Hashable, list[AdmissionRecord]]:
        groups: dict[Hashable, list[AdmissionRecord]] = defaultdict(list)
        for record in self.records:
            groups[key(record)].append(record)
        return groups

    def _patient_rows(self, value_name: str, values: dict[tuple[int, str], Any], descending: bool) -> list[Row]:
        sign = -1 if descending else 1
        ordered = sorted(values.items(), key=lambda kv: (sign * kv[1], kv[0]))
        return [{"patient_id": pid, "name": name, value_name: v} for (pid, name), v in ordered]

    # -------------------------------------------------------------------------
    # Utilization
    # -------------------------------------------------------------------------

    def hospitals_by_visits(self, limit: int | None = 1) -> list[Row]:
        """Hospitals with the most visits."""
        return _ranked(self._count_by(lambda r: r.hospital), "hospital", "number_of_visits", limit)

    def patients_by_visits(self) -> list[Row]:
        """Hospital visits per patient, most first."""
        counts = self._count_by(lambda r: (r.patient_id, r.name))
        return self._patient_rows("hospital_visits", counts, descending=True)

    def name_count(self, name: str) -> list[Row]:
        """How many admissions carry exactly this name."""
        count = sum(1 for r in self.records if r.name == name)
        return [{"name": name, "name_count": count}] if count else []

    def top_doctors_by_visits(self, limit: int = 10) -> list[Row]:
        return _ranked(self._count_by(lambda r: r.doctor), "doctor", "number_of_patient_visits", limit)

    def doctors_at_multiple_hospitals(self) -> int:
        """Number of doctors seen at more than one hospital."""
        hospitals = defaultdict(set)
        for record in self.records:
            hospitals[record.doctor].add(record.hospital)
        return sum(1 for h in hospitals.values() if len(h) > 1)

    def yearly_visits(self, start: int | None = 2019, end: int | None = 2024) -> list[Row]:
        """Visits per admission year, optionally bounded (inclusive)."""
        counts = self._count_by(
            lambda r: r.date_of_admission.year,
            self._where(lambda r: (start is None or r.date_of_admission.year >= start)
                        and (end is None or r.date_of_admission.year <= end)),
        )
        return _by_key(counts, "year", "visit_count")

    def monthly_visits(self) -> list[Row]:
        """Visits per admission month (first day of month as the bucket)."""
        counts = self._count_by(lambda r: month_start(r.date_of_admission))
        return _by_key(counts, "admission_month", "visit_count")

    def gender_distribution(self) -> list[Row]:
        return _by_key(self._count_by(lambda r: r.gender), "gender", "patient_count")

    def admission_type_distribution(self, admission_type: str | None = None) -> list[Row]:
        """Admissions per type, or for a single type such as ``"Emergency"``."""
        records = self._where(lambda r: admission_type is None or r.admission_type == admission_type)
        return _by_key(self._count_by(lambda r: r.admission_type, records), "admission_type", "patient_count")

    def blood_type_distribution(self) -> list[Row]:
        return _by_key(self._count_by(lambda r: r.blood_type), "blood_type", "blood_type_count")

    def insurance_provider_usage(self) -> list[Row]:
        return _ranked(self._count_by(lambda r: r.insurance_provider), "insurance_provider", "provider_count")

    # -------------------------------------------------------------------------
    # Billing
    # -------------------------------------------------------------------------

    def max_bill_per_patient(self) -> list[Row]:
        """Highest single bill per patient, largest first."""
        bills = {k: max(r.billing_amount for r in group)
                 for k, group in self._group(lambda r: (r.patient_id, r.name)).items()}
        return self._patient_rows("max_bill_amount", bills, descending=True)

    def min_positive_bill_per_patient(self) -> list[Row]:
        """Smallest bill per patient, for patients whose smallest bill is positive."""
        bills = {k: min(r.billing_amount for r in group)
                 for k, group in self._group(lambda r: (r.patient_id, r.name)).items()}
        positive = {k: v for k, v in bills.items() if v > 0}
        return self._patient_rows("min_bill_amount", positive, descending=False)

    def average_bill(self) -> Decimal | None:
        """Mean billing amount over all admissions, to the cent."""
        if not self.records:
            return None
        return _average([r.billing_amount for r in self.records])

    def average_bill_by_condition(self) -> list[Row]:
        groups = self._group(lambda r: r.medical_condition)
        return [{"medical_condition": c, "average_bill": _average([r.billing_amount for r in groups[c]])}
                for c in sorted(groups)]

    def top_hospitals_by_billing(self, limit: int = 10) -> list[Row]:
        totals: dict[str, Decimal] = defaultdict(Decimal)
        for record in self.records:
            totals[record.hospital] += record.billing_amount
        return _ranked(totals, "hospital", "bill_sum", limit)

    def total_billing_per_patient(self) -> list[Row]:
        totals: dict[tuple[int, str], Decimal] = defaultdict(Decimal)
        for record in self.records:
            totals[(record.patient_id, record.name)] += record.billing_amount
        return self._patient_rows("total_billing_amount", totals, descending=True)

    def average_bill_by_age(self) -> list[Row]:
        groups = self._group(lambda r: r.age)
        return [{"age": age, "average_bill": _average([r.billing_amount for r in groups[age]])}
                for age in sorted(groups)]

    # -------------------------------------------------------------------------
    # Conditions and treatment
    # -------------------------------------------------------------------------

    def medical_conditions(self) -> list[str]:
        return sorted({r.medical_condition for r in self.records})

    def condition_frequency(self) -> list[Row]:
        return _by_key(self._count_by(lambda r: r.medical_condition), "medical_condition", "number_of_instances")

    def top_medication(self, condition: str = "Asthma") -> list[Row]:
        """Most prescribed medication for one condition."""
        counts = self._count_by(lambda r: r.medication, self._where(lambda r: r.medical_condition == condition))
        return [{"medical_condition": condition, **row}
                for row in _ranked(counts, "medication", "prescription_count", limit=1)]

    def average_length_of_stay(self) -> list[Row]:
        """Whole days between admission and discharge, averaged per condition (truncated)."""
        groups = self._group(lambda r: r.medical_condition)
        rows = []
        for condition in sorted(groups):
            stays = [r.length_of_stay for r in groups[condition]]
            rows.append({
                "medical_condition": condition,
                "average_length_of_stay_in_days": int(sum(stays) / len(stays)),
            })
        return rows

    def doctors_by_condition_diversity(self, limit: int = 10) -> list[Row]:
        conditions = defaultdict(set)
        for record in self.records:
            conditions[record.doctor].add(record.medical_condition)
        counts = {doctor: len(c) for doctor, c in conditions.items()}
        return _ranked(counts, "doctor", "unique_conditions_treated", limit)

    def _conditions_per_name(self) -> dict[str, set[str]]:
        conditions = defaultdict(set)
        for record in self.records:
            conditions[record.name].add(record.medical_condition)
        return conditions

    def patients_with_multiple_conditions(self) -> list[Row]:
        counts = {name: len(c) for name, c in self._conditions_per_name().items() if len(c) > 1}
        return _ranked(counts, "name", "unique_conditions_treated")

    def conditions_for_patients_with(self, n: int) -> list[Row]:
        """Condition frequency among names treated for exactly ``n`` distinct conditions."""
        names = {name for name, c in self._conditions_per_name().items() if len(c) == n}
        counts = self._count_by(lambda r: r.medical_condition, self._where(lambda r: r.name in names))
        return _ranked(counts, "medical_condition", "condition_count")

    def patients_named_as_doctor(self) -> list[AdmissionRecord]:
        """Admissions where the patient's name equals the doctor's."""
        return self._where(lambda r: r.name == r.doctor)

    # -------------------------------------------------------------------------
    # Readmission
    # -------------------------------------------------------------------------

    def readmissions(self, window_days: int | None = None) -> list[Row]:
        """
        Readmissions per name.

        Each name's admissions are sorted by date; an admission counts as
        followed by a readmission when the next one is at most
        ``window_days`` later.
        """
        window_days = settings.pipeline.readmission_window_days if window_days is None else window_days
        admissions: dict[str, list[date]] = defaultdict(list)
        for record in self.records:
            admissions[record.name].append(record.date_of_admission)

        counts = {}
        for name, dates in admissions.items():
            dates.sort()
            count = sum(1 for current, following in zip(dates, dates[1:])
                        if (following - current).days <= window_days)
            if count:
                counts[name] = count
        return _ranked(counts, "name", "readmission_count")

    # -------------------------------------------------------------------------
    # Everything at once
    # -------------------------------------------------------------------------

    def summary(self) -> dict[str, Any]:
        """All reports keyed by name, for export."""
        logger.info(f"Building report summary over {len(self.records)} records")
        return {
            "record_count": len(self.records),
            "hospitals_by_visits": self.hospitals_by_visits(limit=1),
            "patients_by_visits": self.patients_by_visits(),
            "medical_conditions": self.medical_conditions(),
            "max_bill_per_patient": self.max_bill_per_patient(),
            "min_positive_bill_per_patient": self.min_positive_bill_per_patient(),
            "average_bill": self.average_bill(),
            "patients_named_as_doctor": [r.to_dict() for r in self.patients_named_as_doctor()],
            "doctors_at_multiple_hospitals": self.doctors_at_multiple_hospitals(),
            "top_doctors_by_visits": self.top_doctors_by_visits(),
            "condition_frequency": self.condition_frequency(),
            "yearly_visits": self.yearly_visits(),
            "top_medication_asthma": self.top_medication("Asthma"),
            "gender_distribution": self.gender_distribution(),
            "admission_type_distribution": self.admission_type_distribution(),
            "blood_type_distribution": self.blood_type_distribution(),
            "insurance_provider_usage": self.insurance_provider_usage(),
            "average_bill_by_condition": self.average_bill_by_condition(),
            "top_hospitals_by_billing": self.top_hospitals_by_billing(),
            "average_length_of_stay": self.average_length_of_stay(),
            "monthly_visits": self.monthly_visits(),
            "total_billing_per_patient": self.total_billing_per_patient(),
            "doctors_by_condition_diversity": self.doctors_by_condition_diversity(),
            "patients_with_multiple_conditions": self.patients_with_multiple_conditions(),
            "conditions_for_patients_with_6": self.conditions_for_patients_with(6),
            "conditions_for_patients_with_5": self.conditions_for_patients_with(5),
            "readmissions": self.readmissions(),
            "average_bill_by_age": self.average_bill_by_age(),
        }
