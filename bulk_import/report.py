"""
Row outcomes, import summaries and progress reporting.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

ProgressCallback = Callable[[float], None]

PARSE_PROGRESS = 10.0
ROWS_PROGRESS_SPAN = 80.0
COMPLETE_PROGRESS = 100.0


@dataclass(frozen=True)
class RowOutcome:
    """Terminal classification of one row."""
    row_number: int

    @property
    def is_success(self) -> bool:
        return False

    @property
    def error_message(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class Success(RowOutcome):
    record_id: str = ""

    @property
    def is_success(self) -> bool:
        return True


@dataclass(frozen=True)
class _Failure(RowOutcome):
    message: str = ""

    @property
    def error_message(self) -> str:
        return f"Row {self.row_number}: {self.message}"


@dataclass(frozen=True)
class ValidationFailure(_Failure):
    """Row rejected locally before reaching the data service."""


@dataclass(frozen=True)
class PersistenceFailure(_Failure):
    """Row rejected by, or lost on the way to, the data service."""


@dataclass(frozen=True)
class Skipped(_Failure):
    """Row never submitted because the job was cancelled."""


@dataclass
class ImportResult:
    """Summary returned to the caller once a job finishes."""
    success: int = 0
    errors: List[str] = field(default_factory=list)
    total: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[RowOutcome]) -> "ImportResult":
        result = cls()
        for outcome in outcomes:
            result.total += 1
            if outcome.is_success:
                result.success += 1
            else:
                result.errors.append(outcome.error_message)
        return result

    @classmethod
    def parse_failure(cls, message: str) -> "ImportResult":
        return cls(success=0, errors=[message], total=0)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def failed(self) -> bool:
        """True when the file itself could not be read."""
        return self.total == 0 and bool(self.errors)

    def summary(self) -> str:
        if self.failed:
            return f"Import failed: {self.errors[0]}"
        return (
            f"Import complete: {self.success} imported, "
            f"{self.error_count} errors, "
            f"{self.total} total rows"
        )

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "errors": list(self.errors),
            "total": self.total,
        }


class ProgressTracker:
    """
    Maps row completion onto a 0-100 scale.

    10 is reserved for parsing, 80 is spread evenly across rows and the
    final 10 is reported on completion. Reported values never decrease.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.total_rows = 0
        self.value = 0.0

    def _report(self, value: float) -> None:
        value = round(max(self.value, value), 1)
        self.value = value
        if self.callback:
            self.callback(value)

    def parsed(self, total_rows: int) -> None:
        self.total_rows = total_rows
        self._report(PARSE_PROGRESS)

    def row_done(self, rows_done: int) -> None:
        if not self.total_rows:
            return
        self._report(PARSE_PROGRESS + ROWS_PROGRESS_SPAN * rows_done / self.total_rows)

    def completed(self) -> None:
        self._report(COMPLETE_PROGRESS)
