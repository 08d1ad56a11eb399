"""
Export of cleaned admissions and reports.

Writes the cleaned table as CSV and the report summary as JSON (optionally
with a gzipped copy). Files are written to a temp path first and renamed
into place, so a failed export never leaves a half-written file behind.
"""

import csv
import gzip
import json
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from loguru import logger

from admissions.models import IDENTIFIER_COLUMNS, RECORD_COLUMNS, AdmissionRecord

CSV_COLUMNS = RECORD_COLUMNS + IDENTIFIER_COLUMNS


def _replace(temp_path: Path, dest_path: Path) -> None:
    if dest_path.exists():
        dest_path.unlink()
    temp_path.rename(dest_path)


def atomic_write_json(dest_path: Path, data: Any, indent: int | None = None) -> Path:
    """
    Write JSON data atomically - only replaces target file on success.

    1. Writes to temp file in same directory
    2. Validates JSON is readable
    3. Renames temp to final

    Returns:
        Path to written file
    """
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = dest_path.with_suffix(dest_path.suffix + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, default=str, ensure_ascii=False, indent=indent)

        with open(temp_path, encoding="utf-8") as f:
            json.load(f)

        _replace(temp_path, dest_path)
        return dest_path

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def write_records_csv(dest_path: Path, records: Iterable[AdmissionRecord]) -> Path:
    """Write records with their identifier columns, atomically."""
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = dest_path.with_suffix(dest_path.suffix + ".tmp")

    count = 0
    try:
        with open(temp_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
            writer.writeheader()
            for record in records:
                writer.writerow(record.to_dict())
                count += 1
        _replace(temp_path, dest_path)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise

    logger.info(f"Wrote {count} records to {dest_path}")
    return dest_path


def save_report(path: Path, report: dict[str, Any], compress: bool = False) -> Path:
    """Save a report summary as JSON, optionally with a ``.gz`` copy alongside."""
    path = atomic_write_json(path, report, indent=2)
    logger.info(f"  Saved {path.name}: {path.stat().st_size / 1024:.1f} KB")

    if compress:
        gz_path = path.with_suffix(path.suffix + ".gz")
        with open(path, "rb") as f_in:
            with gzip.open(gz_path, "wb", compresslevel=9) as f_out:
                shutil.copyfileobj(f_in, f_out)
        logger.info(f"  Saved {gz_path.name}: {gz_path.stat().st_size / 1024:.1f} KB (gzip)")

    return path
