"""
Cleaning pipeline orchestration.

Runs the stages strictly in order, each on the complete output of the
previous one:

    normalize -> exact_dedup -> age_variance -> identify -> sequence

Any exception aborts the run and is re-raised as a PipelineStageError
naming the stage and, where known, the record index. Nothing is written
anywhere by the pipeline itself; callers persist ``PipelineResult.records``
only after ``run`` has returned.
"""

from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from loguru import logger

from admissions.config import settings
from admissions.deduplication import remove_exact_duplicates, resolve_age_variants
from admissions.errors import AdmissionsError, PipelineStageError
from admissions.identity import assign_patient_ids, assign_visit_ids, count_anchor_divergence, distinct_triples
from admissions.ingest import read_admissions_csv
from admissions.models import AdmissionRecord, PipelineResult, StageResult
from admissions.normalizers import normalize_record

STAGES = ("normalize", "exact_dedup", "age_variance", "identify", "sequence")


class CleaningPipeline:
    """
    Batch cleaning of admission records.

    Args:
        age_tolerance: Window in years for patient identity (default from settings)
        billing_places: Fractional digits kept on billing amounts (default from settings)
    """

    def __init__(self, age_tolerance: int | None = None, billing_places: int | None = None):
        self.age_tolerance = settings.pipeline.age_tolerance if age_tolerance is None else age_tolerance
        self.billing_places = settings.pipeline.billing_places if billing_places is None else billing_places

    def run(self, records: Sequence[AdmissionRecord]) -> PipelineResult:
        """
        Clean ``records`` and assign patient and visit ids.

        The input records are copied, never modified.
        """
        result = PipelineResult()
        working = [replace(r) for r in records]
        logger.info(f"Cleaning {len(working)} admission records")

        working = self._run_stage(result, "normalize", self._normalize, working)
        working = self._run_stage(result, "exact_dedup", remove_exact_duplicates, working)
        working = self._run_stage(result, "age_variance", resolve_age_variants, working)
        working = self._run_stage(result, "identify", self._identify, working)
        working = self._run_stage(result, "sequence", self._sequence, working)

        result.records = working
        result.anchor_divergence = count_anchor_divergence(distinct_triples(working), self.age_tolerance)
        if result.anchor_divergence:
            logger.warning(
                f"{result.anchor_divergence} patient triples would be grouped differently "
                f"under transitive window matching"
            )

        logger.info(
            f"Cleaning complete: {len(working)} records, "
            f"{result.patient_count} patients, {result.visit_count} visits"
        )
        return result

    def run_csv(self, path: Path, on_malformed: str | None = None) -> PipelineResult:
        """Read a delimited file and clean it. Rejected rows are kept on the result."""
        ingested = read_admissions_csv(path, on_malformed=on_malformed)
        result = self.run(ingested.records)
        result.rejected = ingested.rejected
        return result

    def _run_stage(
        self,
        result: PipelineResult,
        name: str,
        stage: Callable[[list[AdmissionRecord]], list[AdmissionRecord]],
        records: list[AdmissionRecord],
    ) -> list[AdmissionRecord]:
        stage_result = StageResult(stage=name, records_in=len(records), started_at=datetime.utcnow())
        try:
            output = stage(records)
        except PipelineStageError as e:
            logger.error(str(e))
            raise
        except Exception as e:
            record_index = getattr(e, "record_index", None)
            logger.error(f"Stage '{name}' failed: {e}")
            raise PipelineStageError(name, record_index, e) from e

        stage_result.records_out = len(output)
        stage_result.completed_at = datetime.utcnow()
        result.stages.append(stage_result)
        logger.info(f"Stage '{name}': {stage_result.records_in} -> {stage_result.records_out}")
        return output

    def _normalize(self, records: list[AdmissionRecord]) -> list[AdmissionRecord]:
        for record in records:
            try:
                normalize_record(record, self.billing_places)
            except (AdmissionsError, ValueError, ArithmeticError) as e:
                raise PipelineStageError("normalize", record.source_index, e) from e
        return records

    def _identify(self, records: list[AdmissionRecord]) -> list[AdmissionRecord]:
        assign_patient_ids(records, self.age_tolerance)
        return records

    def _sequence(self, records: list[AdmissionRecord]) -> list[AdmissionRecord]:
        assign_visit_ids(records)
        return records


def clean(records: Sequence[AdmissionRecord], **kwargs) -> PipelineResult:
    """Run the default pipeline over ``records``."""
    return CleaningPipeline(**kwargs).run(records)
