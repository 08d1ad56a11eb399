"""
Reading raw admission rows.

Turns delimited files (or any iterable of dict rows) into AdmissionRecord
objects, numbering them in input order. Rows that cannot be parsed are
either rejected or abort the read, depending on the malformed-row policy.
"""

import csv
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

from loguru import logger

from admissions.config import settings
from admissions.errors import MalformedRecordError
from admissions.models import IDENTIFIER_COLUMNS, RECORD_COLUMNS, AdmissionRecord, IngestResult
from admissions.normalizers import parse_amount, parse_date
from admissions.utils.text import to_snake_case

MALFORMED_POLICIES = ("reject", "fail")


def _text(row: dict, column: str) -> str:
    value = row[column]
    return "" if value is None else str(value)


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValueError(f"not an integer: {value!r}")


def parse_row(row: dict[str, Any], index: int) -> AdmissionRecord:
    """
    Build an AdmissionRecord from a row keyed by column name.

    Keys are matched after snake-casing, so ``"Blood Type"`` and
    ``"blood_type"`` both work.

    Raises:
        MalformedRecordError: missing column, empty name, non-integer age,
            non-numeric billing amount or unparseable date
    """
    row = {to_snake_case(k): v for k, v in row.items() if k is not None}

    missing = [col for col in RECORD_COLUMNS if col not in row]
    if missing:
        raise MalformedRecordError(index, f"missing columns: {', '.join(missing)}")

    name = _text(row, "name")
    if not name.strip():
        raise MalformedRecordError(index, "empty name")

    try:
        age = _parse_int(row["age"])
        billing_amount = parse_amount(row["billing_amount"])
        date_of_admission = parse_date(row["date_of_admission"])
        discharge_date = parse_date(row["discharge_date"])
    except ValueError as e:
        raise MalformedRecordError(index, str(e)) from e

    # Previously cleaned exports carry their identifiers
    try:
        identifiers = {
            col: _parse_int(row[col]) if row.get(col) not in (None, "") else None
            for col in IDENTIFIER_COLUMNS
        }
    except ValueError as e:
        raise MalformedRecordError(index, f"non-numeric identifier: {e}") from e

    return AdmissionRecord(
        name=name,
        age=age,
        gender=_text(row, "gender"),
        blood_type=_text(row, "blood_type"),
        medical_condition=_text(row, "medical_condition"),
        date_of_admission=date_of_admission,
        doctor=_text(row, "doctor"),
        hospital=_text(row, "hospital"),
        insurance_provider=_text(row, "insurance_provider"),
        billing_amount=billing_amount,
        room_number=_text(row, "room_number"),
        admission_type=_text(row, "admission_type"),
        discharge_date=discharge_date,
        medication=_text(row, "medication"),
        test_results=_text(row, "test_results"),
        source_index=index,
        **identifiers,
    )


def records_from_rows(rows: Iterable[dict[str, Any]], on_malformed: str | None = None) -> IngestResult:
    """
    Parse every row.

    Args:
        rows: Dict rows in input order
        on_malformed: ``"reject"`` drops bad rows and keeps going, ``"fail"``
            raises the first MalformedRecordError. Defaults to the configured policy.
    """
    on_malformed = on_malformed or settings.pipeline.on_malformed
    if on_malformed not in MALFORMED_POLICIES:
        raise ValueError(f"on_malformed must be one of {MALFORMED_POLICIES}, got {on_malformed!r}")

    result = IngestResult()
    for index, row in enumerate(rows):
        try:
            result.records.append(parse_row(row, index))
        except MalformedRecordError as e:
            if on_malformed == "fail":
                raise
            logger.warning(str(e))
            result.rejected.append(e)

    logger.info(f"Read {result.rows_read} rows: {len(result.records)} parsed, {len(result.rejected)} rejected")
    return result


def iter_csv_rows(path: Path, delimiter: str = ",") -> Iterator[dict[str, str]]:
    """Yield rows of a delimited file as dicts keyed by header."""
    with open(path, encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f, delimiter=delimiter)
        yield from reader


def read_admissions_csv(path: Path, on_malformed: str | None = None, delimiter: str = ",") -> IngestResult:
    """Read an admissions file such as the public ``healthcare_dataset.csv``."""
    path = Path(path)
    logger.info(f"Reading admissions from {path}")
    return records_from_rows(iter_csv_rows(path, delimiter), on_malformed)
