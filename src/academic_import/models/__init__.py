"""Domain models for the spreadsheet bulk-import pipeline.

This package contains the immutable value objects passed between the pipeline
stages: schema configuration, raw and normalised rows, validation results and
submission outcomes.
"""

from .column_mapping import ColumnMapping
from .error_record import ErrorKind, ErrorRecord
from .normalized_row import NormalizedRow
from .raw_table import RawTable
from .session_state import SessionState
from .submission import (
    BatchCreateRequest,
    BatchCreateResponse,
    FailureByIndex,
    FailureByKey,
    ItemError,
    SubmissionOutcome,
    SubmissionStatus,
    UnidentifiedFailure,
)
from .target_schema import AtLeastOneOf, DerivedField, FieldSpec, TargetSchema
from .validation_result import BatchValidationResult

__all__ = [
    # Configuration models
    "AtLeastOneOf",
    "DerivedField",
    "FieldSpec",
    "TargetSchema",
    # Validation models
    "BatchValidationResult",
    "ColumnMapping",
    "NormalizedRow",
    "RawTable",
    # Submission models
    "BatchCreateRequest",
    "BatchCreateResponse",
    "FailureByIndex",
    "FailureByKey",
    "ItemError",
    "SubmissionOutcome",
    "SubmissionStatus",
    "UnidentifiedFailure",
    # Lifecycle / errors
    "ErrorKind",
    "ErrorRecord",
    "SessionState",
]
