# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for admissions pipeline tests."""

import os
from datetime import date
from decimal import Decimal
from typing import Callable, Generator

import pytest

# Set test environment variables before importing the package
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("DISABLE_LOGGING", "1")

from admissions.models import AdmissionRecord  # noqa: E402


@pytest.fixture
def sample_admission_data() -> dict:
    """One admission as it appears in the raw dataset."""
    return {
        "name": "Bobby Jackson",
        "age": 30,
        "gender": "Male",
        "blood_type": "B-",
        "medical_condition": "Cancer",
        "date_of_admission": date(2024, 1, 31),
        "doctor": "Matthew Smith",
        "hospital": "Sons and Miller",
        "insurance_provider": "Blue Cross",
        "billing_amount": Decimal("18856.28"),
        "room_number": "328",
        "admission_type": "Urgent",
        "discharge_date": date(2024, 2, 2),
        "medication": "Paracetamol",
        "test_results": "Normal",
    }


@pytest.fixture
def make_record(sample_admission_data: dict) -> Callable[..., AdmissionRecord]:
    """Factory building AdmissionRecords from the sample with overrides.

    ``source_index`` increases with every call unless given explicitly.
    """
    counter = {"next": 0}

    def _make(**overrides) -> AdmissionRecord:
        data = {**sample_admission_data, **overrides}
        if "source_index" not in data:
            data["source_index"] = counter["next"]
        counter["next"] = max(counter["next"], data["source_index"]) + 1
        return AdmissionRecord(**data)

    return _make


@pytest.fixture
def raw_csv_row() -> dict:
    """A row exactly as csv.DictReader yields it for the public dataset."""
    return {
        "Name": "bobby jacksOn",
        "Age": "30",
        "Gender": "Male",
        "Blood Type": "B-",
        "Medical Condition": "Cancer",
        "Date of Admission": "2024-01-31",
        "Doctor": "Matthew Smith",
        "Hospital": "Sons and Miller",
        "Insurance Provider": "Blue Cross",
        "Billing Amount": "18856.281308016585",
        "Room Number": "328",
        "Admission Type": "Urgent",
        "Discharge Date": "2024-02-02",
        "Medication": "Paracetamol",
        "Test Results": "Normal",
    }


@pytest.fixture
def write_csv(tmp_path) -> Callable[[list[dict]], "os.PathLike"]:
    """Write dict rows to a CSV file under tmp_path and return its path."""
    import csv

    def _write(rows: list[dict], filename: str = "healthcare_dataset.csv"):
        path = tmp_path / filename
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
            writer.writeheader()
            writer.writerows(rows)
        return path

    return _write


@pytest.fixture
def db_session() -> Generator:
    """A session on a fresh in-memory SQLite database."""
    from sqlalchemy import create_engine
    from sqlalchemy.orm import Session

    from admissions.database import create_all_tables

    engine = create_engine("sqlite://")
    create_all_tables(bind=engine)
    with Session(engine) as session:
        yield session
    engine.dispose()
