"""
Bulk import module for the Sales Dashboard.

Parses uploaded CSV files, validates each row against the entity's field
specs, creates the records and reports per-row results.
"""

from .executor import CommitExecutor, PendingRecord, RecordStore
from .importer import (
    DataImporter,
    ImportConfig,
    ImportJob,
    JobState,
)
from .mapper import RecordMapper, RowValidationError
from .parser import ParseError, RawRow, parse_csv
from .report import (
    ImportResult,
    PersistenceFailure,
    ProgressTracker,
    RowOutcome,
    Skipped,
    Success,
    ValidationFailure,
)
from .schemas import SCHEMAS, EntitySchema, FieldKind, FieldSpec, get_schema
from .templates import generate_template, template_filename, write_template

__all__ = [
    "CommitExecutor",
    "DataImporter",
    "EntitySchema",
    "FieldKind",
    "FieldSpec",
    "ImportConfig",
    "ImportJob",
    "ImportResult",
    "JobState",
    "ParseError",
    "PendingRecord",
    "PersistenceFailure",
    "ProgressTracker",
    "RawRow",
    "RecordMapper",
    "RecordStore",
    "RowOutcome",
    "RowValidationError",
    "SCHEMAS",
    "Skipped",
    "Success",
    "ValidationFailure",
    "generate_template",
    "get_schema",
    "parse_csv",
    "template_filename",
    "write_template",
]
