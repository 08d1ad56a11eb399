"""Exception hierarchy for the admissions pipeline."""


class AdmissionsError(Exception):
    """Base class for all pipeline errors."""


class MalformedRecordError(AdmissionsError):
    """A raw row could not be turned into an AdmissionRecord."""

    def __init__(self, record_index: int, reason: str):
        self.record_index = record_index
        self.reason = reason
        super().__init__(f"Malformed record at index {record_index}: {reason}")


class PipelineStageError(AdmissionsError):
    """A stage failed; the whole run is aborted."""

    def __init__(self, stage: str, record_index: int | None, cause: BaseException):
        self.stage = stage
        self.record_index = record_index
        self.cause = cause
        where = f" on record {record_index}" if record_index is not None else ""
        super().__init__(f"Stage '{stage}' failed{where}: {cause}")


class IdentifierAlreadyAssignedError(AdmissionsError):
    """patient_id / visit_id are write-once."""

    def __init__(self, field_name: str, record_index: int):
        self.field_name = field_name
        self.record_index = record_index
        super().__init__(f"{field_name} already assigned on record {record_index}")


class IncompleteDatasetError(AdmissionsError):
    """Reports were requested over records that have not been fully sequenced."""
