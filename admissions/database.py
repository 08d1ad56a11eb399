"""
Database models for the admissions pipeline.

Uses SQLAlchemy 2.0. The cleaned dataset lives in a single flat table,
``healthcare_dataset``, with the two identifier columns added.
"""

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Optional

from loguru import logger
from sqlalchemy import Date, Index, Integer, Numeric, String, create_engine, delete, func, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from admissions.config import settings
from admissions.models import RECORD_COLUMNS, AdmissionRecord


# =============================================================================
# Database Engine and Session
# =============================================================================

engine = create_engine(
    settings.database.url,
    echo=settings.pipeline.log_level == "DEBUG",
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session():
    """Context manager for database sessions."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Admission(Base):
    """
    One cleaned admission row.

    ``row_id`` is a surrogate key; ``patient_id`` and ``visit_id`` are the
    pipeline's identifiers and stay NULL for rows that were loaded raw.
    """
    __tablename__ = "healthcare_dataset"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    age: Mapped[int] = mapped_column(Integer, nullable=False)
    gender: Mapped[str] = mapped_column(String(20), nullable=False)
    blood_type: Mapped[str] = mapped_column(String(5), nullable=False)
    medical_condition: Mapped[str] = mapped_column(String(100), nullable=False)
    date_of_admission: Mapped[date] = mapped_column(Date, nullable=False)
    doctor: Mapped[str] = mapped_column(String(200), nullable=False)
    hospital: Mapped[str] = mapped_column(String(200), nullable=False)
    insurance_provider: Mapped[str] = mapped_column(String(100), nullable=False)
    billing_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2, asdecimal=True), nullable=False)
    room_number: Mapped[str] = mapped_column(String(20), nullable=False)
    admission_type: Mapped[str] = mapped_column(String(50), nullable=False)
    discharge_date: Mapped[date] = mapped_column(Date, nullable=False)
    medication: Mapped[str] = mapped_column(String(100), nullable=False)
    test_results: Mapped[str] = mapped_column(String(50), nullable=False)

    # Source row position, for stable ordering on reload
    source_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    patient_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    visit_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("idx_healthcare_patient", "patient_id"),
        Index("idx_healthcare_visit", "visit_id"),
        Index("idx_healthcare_admission_date", "date_of_admission"),
    )

    def __repr__(self) -> str:
        return f"<Admission {self.name} {self.date_of_admission} (visit {self.visit_id})>"

    @classmethod
    def from_record(cls, record: AdmissionRecord) -> "Admission":
        return cls(
            **{col: getattr(record, col) for col in RECORD_COLUMNS},
            source_index=record.source_index,
            patient_id=record.patient_id,
            visit_id=record.visit_id,
        )

    def to_record(self) -> AdmissionRecord:
        return AdmissionRecord(
            **{col: getattr(self, col) for col in RECORD_COLUMNS},
            source_index=self.source_index,
            patient_id=self.patient_id,
            visit_id=self.visit_id,
        )


# =============================================================================
# Helper Functions
# =============================================================================

def create_all_tables(bind=None):
    """Create all database tables."""
    Base.metadata.create_all(bind=bind or engine)


def drop_all_tables(bind=None):
    """Drop all database tables. USE WITH CAUTION!"""
    Base.metadata.drop_all(bind=bind or engine)


def load_admissions(session: Session) -> list[AdmissionRecord]:
    """Every stored row as an AdmissionRecord, in source order."""
    rows = session.scalars(select(Admission).order_by(Admission.source_index, Admission.row_id)).all()
    return [row.to_record() for row in rows]


def replace_admissions(session: Session, records: list[AdmissionRecord]) -> int:
    """
    Replace the table contents with ``records``.

    Runs in the caller's transaction: use inside ``get_session()`` so the
    delete and the insert are committed together or not at all.
    """
    deleted = session.execute(delete(Admission)).rowcount
    session.add_all(Admission.from_record(r) for r in records)
    session.flush()
    logger.info(f"Replaced {deleted} stored rows with {len(records)} cleaned rows")
    return len(records)


def table_counts(session: Session) -> dict[str, int]:
    """Row, patient and visit counts for the status command."""
    rows, patients, visits = session.execute(
        select(
            func.count(Admission.row_id),
            func.count(func.distinct(Admission.patient_id)),
            func.count(func.distinct(Admission.visit_id)),
        )
    ).one()
    return {"rows": rows, "patients": patients, "visits": visits}
