# SPDX-License-Identifier: MIT
"""Tests for the command line driver."""

import json

import pytest
from click.testing import CliRunner
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from admissions import database
from admissions.config import settings
from admissions.ingest import read_admissions_csv
from admissions.main import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def dataset(raw_csv_row, write_csv):
    return write_csv([
        raw_csv_row,
        {**raw_csv_row, "Name": "BOBBY JACKSON"},
        {**raw_csv_row, "Age": "33"},
        {**raw_csv_row, "Name": "ann lee", "Date of Admission": "2024-02-10", "Discharge Date": "2024-02-12"},
        {**raw_csv_row, "Age": "unknown"},
    ])


class TestCleanCommand:
    """Test the clean command."""

    def test_writes_cleaned_csv(self, runner, dataset, tmp_path):
        output = tmp_path / "cleaned.csv"
        result = runner.invoke(cli, ["clean", str(dataset), "--output", str(output)])
        assert result.exit_code == 0, result.output
        assert "Cleaning Summary" in result.output

        records = read_admissions_csv(output, on_malformed="fail").records
        assert [(r.name, r.age, r.patient_id, r.visit_id) for r in records] == [
            ("Bobby Jackson", 30, 2, 1),
            ("Ann Lee", 30, 1, 2),
        ]

    def test_fail_policy_exits_non_zero(self, runner, dataset):
        result = runner.invoke(cli, ["clean", str(dataset), "--on-malformed", "fail"])
        assert result.exit_code == 1
        assert "record 4" in result.output

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["clean", str(tmp_path / "nope.csv")])
        assert result.exit_code != 0


class TestReportCommand:
    """Test the report command."""

    def test_report_from_cleaned_csv(self, runner, dataset, tmp_path):
        cleaned = tmp_path / "cleaned.csv"
        report = tmp_path / "report.json"
        assert runner.invoke(cli, ["clean", str(dataset), "--output", str(cleaned)]).exit_code == 0

        result = runner.invoke(cli, ["report", "--input", str(cleaned), "--output", str(report), "--compress"])
        assert result.exit_code == 0, result.output

        summary = json.loads(report.read_text(encoding="utf-8"))
        assert summary["record_count"] == 2
        assert summary["average_bill"] == "18856.28"
        assert report.with_suffix(".json.gz").exists()

    def test_report_refuses_raw_data(self, runner, dataset):
        result = runner.invoke(cli, ["report", "--input", str(dataset)])
        assert result.exit_code == 1
        assert "Cannot build report" in result.output


class TestAuditCommand:
    """Test the audit command."""

    def test_lists_duplicates_and_age_conflicts(self, runner, dataset):
        result = runner.invoke(cli, ["audit", str(dataset)])
        assert result.exit_code == 0, result.output
        assert "Exact duplicates: 1" in result.output
        assert "Encounters with conflicting ages: 1" in result.output


@pytest.fixture
def fresh_db(tmp_path, monkeypatch):
    """Point the CLI at a new, empty SQLite file with no tables."""
    engine = create_engine(f"sqlite:///{tmp_path / 'admissions.db'}")
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))
    yield engine
    engine.dispose()


@pytest.fixture
def data_dirs(tmp_path, monkeypatch):
    raw_dir = tmp_path
    processed_dir = tmp_path / "processed"
    monkeypatch.setattr(settings.pipeline, "data_raw_dir", raw_dir)
    monkeypatch.setattr(settings.pipeline, "data_processed_dir", processed_dir)
    return raw_dir, processed_dir


class TestDatabaseCommands:
    """Test commands that read or write the healthcare_dataset table."""

    def test_report_before_any_save(self, runner, fresh_db):
        result = runner.invoke(cli, ["report"])
        assert result.exit_code == 0, result.output
        assert "0 records" in result.output

    def test_report_database_error_exits_non_zero(self, runner, fresh_db, mocker):
        mocker.patch("admissions.main.load_admissions", side_effect=SQLAlchemyError("disk I/O error"))
        result = runner.invoke(cli, ["report"])
        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_save_then_report_from_database(self, runner, dataset, fresh_db, tmp_path):
        cleaned = tmp_path / "cleaned.csv"
        report = tmp_path / "report.json"
        result = runner.invoke(cli, ["clean", str(dataset), "--output", str(cleaned), "--save-db"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli, ["report", "--output", str(report)])
        assert result.exit_code == 0, result.output
        assert json.loads(report.read_text(encoding="utf-8"))["record_count"] == 2

    def test_status_on_empty_database(self, runner, fresh_db):
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0, result.output
        assert "No data loaded" in result.output

    def test_status_after_save(self, runner, dataset, fresh_db, tmp_path):
        runner.invoke(cli, ["clean", str(dataset), "--output", str(tmp_path / "cleaned.csv"), "--save-db"])
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0, result.output
        assert "No data loaded" not in result.output

        with database.get_session() as session:
            assert database.table_counts(session) == {"rows": 2, "patients": 2, "visits": 2}


class TestDataDirectories:
    """Test input lookup and default output under the configured data directories."""

    def test_bare_file_name_found_in_raw_dir(self, runner, dataset, data_dirs):
        _, processed_dir = data_dirs
        result = runner.invoke(cli, ["clean", dataset.name])
        assert result.exit_code == 0, result.output

        output = processed_dir / "healthcare_dataset_cleaned.csv"
        assert [r.name for r in read_admissions_csv(output, on_malformed="fail").records] == [
            "Bobby Jackson",
            "Ann Lee",
        ]

    def test_audit_looks_in_raw_dir(self, runner, dataset, data_dirs):
        result = runner.invoke(cli, ["audit", dataset.name])
        assert result.exit_code == 0, result.output
        assert "Exact duplicates: 1" in result.output

    def test_unknown_file_is_usage_error(self, runner, data_dirs):
        result = runner.invoke(cli, ["clean", "nope.csv"])
        assert result.exit_code == 2
        assert "not found" in result.output


def test_log_file_option(runner, dataset, tmp_path):
    log_file = tmp_path / "logs" / "run.log"
    try:
        result = runner.invoke(cli, ["--log-file", str(log_file), "audit", str(dataset)])
        assert result.exit_code == 0, result.output
    finally:
        logger.remove()

    assert "Reading admissions from" in log_file.read_text(encoding="utf-8")
