"""
Record and result types shared by every pipeline stage.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal

from admissions.errors import IdentifierAlreadyAssignedError, MalformedRecordError

# Columns of the raw dataset, in file order
RECORD_COLUMNS = (
    "name",
    "age",
    "gender",
    "blood_type",
    "medical_condition",
    "date_of_admission",
    "doctor",
    "hospital",
    "insurance_provider",
    "billing_amount",
    "room_number",
    "admission_type",
    "discharge_date",
    "medication",
    "test_results",
)

IDENTIFIER_COLUMNS = ("patient_id", "visit_id")


@dataclass
class AdmissionRecord:
    """
    One hospital encounter as originally recorded.

    ``source_index`` is the row's position in the raw input and is only used
    to break ties deterministically. ``patient_id`` and ``visit_id`` stay
    ``None`` until their assigning stage runs and are write-once afterwards.
    """
    name: str
    age: int
    gender: str
    blood_type: str
    medical_condition: str
    date_of_admission: date
    doctor: str
    hospital: str
    insurance_provider: str
    billing_amount: Decimal
    room_number: str
    admission_type: str
    discharge_date: date
    medication: str
    test_results: str

    source_index: int = 0
    patient_id: int | None = None
    visit_id: int | None = None

    def values(self, exclude: tuple[str, ...] = ()) -> tuple:
        """Data column values in file order, minus ``exclude``."""
        return tuple(getattr(self, col) for col in RECORD_COLUMNS if col not in exclude)

    def assign_patient_id(self, patient_id: int) -> None:
        if self.patient_id is not None:
            raise IdentifierAlreadyAssignedError("patient_id", self.source_index)
        self.patient_id = patient_id

    def assign_visit_id(self, visit_id: int) -> None:
        if self.visit_id is not None:
            raise IdentifierAlreadyAssignedError("visit_id", self.source_index)
        self.visit_id = visit_id

    def to_dict(self) -> dict:
        """Plain dict with data columns followed by the identifier columns."""
        row = {col: getattr(self, col) for col in RECORD_COLUMNS}
        row["patient_id"] = self.patient_id
        row["visit_id"] = self.visit_id
        return row

    @property
    def length_of_stay(self) -> int:
        """Days between admission and discharge."""
        return (self.discharge_date - self.date_of_admission).days


@dataclass
class StageResult:
    """Statistics for a single stage run."""
    stage: str
    records_in: int = 0
    records_out: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def records_removed(self) -> int:
        return self.records_in - self.records_out

    @property
    def duration_seconds(self) -> float | None:
        """Calculate duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class IngestResult:
    """Result of reading raw rows."""
    records: list[AdmissionRecord] = field(default_factory=list)
    rejected: list[MalformedRecordError] = field(default_factory=list)

    @property
    def rows_read(self) -> int:
        return len(self.records) + len(self.rejected)


@dataclass
class PipelineResult:
    """Cleaned records plus everything the run learned along the way."""
    records: list[AdmissionRecord] = field(default_factory=list)
    stages: list[StageResult] = field(default_factory=list)
    rejected: list[MalformedRecordError] = field(default_factory=list)
    anchor_divergence: int = 0

    @property
    def patient_count(self) -> int:
        return len({r.patient_id for r in self.records})

    @property
    def visit_count(self) -> int:
        return len({r.visit_id for r in self.records})

    def stage(self, name: str) -> StageResult:
        for result in self.stages:
            if result.stage == name:
                return result
        raise KeyError(name)
