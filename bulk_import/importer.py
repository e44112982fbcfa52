"""
Bulk Importer - CSV import of leads, customers and contracts.

Runs one import job end to end:

    parse file -> map/validate each row -> create each record -> summarize

Every data row ends with exactly one outcome. A row that fails validation
or is rejected by the data service is reported and the job moves on; only
an unreadable file fails the whole job.

Usage:
    from bulk_import import DataImporter

    importer = DataImporter.from_supabase()
    job = importer.import_file("leads.csv", "leads")

    print(job.result.summary())
    for error in job.result.errors:
        print(error)
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

from crm import EntityType
from database import SupabaseClient, SupabaseRecordStore, get_client

from .executor import CommitExecutor, PendingRecord, RecordStore, WorkItem
from .mapper import RecordMapper, RowValidationError
from .parser import (
    DEFAULT_DELIMITER,
    DEFAULT_ENCODING,
    ParseError,
    RawRow,
    SourceDecodeError,
    decode_source,
    parse_csv,
)
from .report import (
    ImportResult,
    ProgressCallback,
    ProgressTracker,
    RowOutcome,
    Success,
    ValidationFailure,
)

logger = logging.getLogger(__name__)

Source = Union[bytes, str]


# =========================================
# Configuration
# =========================================


@dataclass
class ImportConfig:
    """
    Import settings.

    Can be initialized from environment variables:
        config = ImportConfig.from_env()
    """

    delimiter: str = DEFAULT_DELIMITER
    encoding: str = DEFAULT_ENCODING
    concurrency: int = 1

    def __post_init__(self):
        if len(self.delimiter) != 1:
            raise ValueError(f"delimiter must be a single character, got {self.delimiter!r}")
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")

    @classmethod
    def from_env(cls) -> "ImportConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            IMPORT_DELIMITER: Optional column delimiter (default: ",")
            IMPORT_ENCODING: Optional file encoding (default: utf-8-sig)
            IMPORT_CONCURRENCY: Optional max in-flight creates (default: 1)
        """
        raw_concurrency = os.environ.get("IMPORT_CONCURRENCY", "1")
        try:
            concurrency = int(raw_concurrency)
        except ValueError as e:
            raise ValueError(f"IMPORT_CONCURRENCY must be an integer, got {raw_concurrency!r}") from e

        return cls(
            delimiter=os.environ.get("IMPORT_DELIMITER", DEFAULT_DELIMITER),
            encoding=os.environ.get("IMPORT_ENCODING", DEFAULT_ENCODING),
            concurrency=concurrency,
        )


# =========================================
# Job
# =========================================


class JobState(Enum):
    IDLE = "idle"
    PARSING = "parsing"
    ROW_PROCESSING = "row_processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ImportJob:
    """One run of the pipeline over one file. Lives only in memory."""

    entity_type: EntityType
    source_text: str = ""
    rows: List[RawRow] = field(default_factory=list)
    outcomes: List[RowOutcome] = field(default_factory=list)
    progress: float = 0.0
    state: JobState = JobState.IDLE
    result: Optional[ImportResult] = None

    def transition(self, state: JobState) -> None:
        logger.debug("%s import: %s -> %s", self.entity_type.value, self.state.value, state.value)
        self.state = state

    def fail(self, message: str) -> None:
        self.result = ImportResult.parse_failure(message)
        self.transition(JobState.FAILED)

    def complete(self) -> None:
        self.result = ImportResult.from_outcomes(self.outcomes)
        self.transition(JobState.COMPLETED)


# =========================================
# Importer
# =========================================


class DataImporter:
    """
    Imports CSV files into the CRM tables.

    Each entity type is committed through its own RecordStore, so the
    importer can run against Supabase or any in-memory stand-in.
    """

    def __init__(
        self,
        stores: Dict[EntityType, RecordStore],
        config: Optional[ImportConfig] = None,
    ):
        """
        Args:
            stores: Persistence collaborator per entity type
            config: Import settings (defaults if omitted)
        """
        self.stores = stores
        self.config = config or ImportConfig()

    @classmethod
    def from_supabase(
        cls,
        client: Optional[SupabaseClient] = None,
        config: Optional[ImportConfig] = None,
    ) -> "DataImporter":
        """Wire every entity type to its Supabase table."""
        client = client or get_client()
        stores = {entity_type: SupabaseRecordStore(client, entity_type) for entity_type in EntityType}
        return cls(stores, config=config)

    def _store_for(self, entity_type: EntityType) -> RecordStore:
        try:
            return self.stores[entity_type]
        except KeyError:
            raise ValueError(f"No record store configured for {entity_type.value}")

    def run(
        self,
        entity_type: Union[str, EntityType],
        source: Source,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportJob:
        """
        Run a complete import job.

        Args:
            entity_type: Target entity type (name or enum member)
            source: File contents, raw bytes or decoded text
            on_progress: Called with 0-100 as the job advances
            cancel_event: When set, rows not yet submitted are skipped

        Returns:
            The finished job; job.result holds the summary
        """
        entity_type = EntityType.parse(entity_type)
        store = self._store_for(entity_type)
        job = ImportJob(entity_type=entity_type)

        def report_progress(value: float) -> None:
            job.progress = value
            if on_progress:
                on_progress(value)

        tracker = ProgressTracker(report_progress)

        logger.info("Starting %s import", entity_type.value)

        if not self._parse(job, source):
            return job

        tracker.parsed(len(job.rows))
        job.transition(JobState.ROW_PROCESSING)

        executor = CommitExecutor(
            store,
            concurrency=self.config.concurrency,
            cancel_event=cancel_event,
        )
        mapper = RecordMapper.for_entity(entity_type)

        for outcome in executor.execute(self._work_items(job.rows, mapper)):
            job.outcomes.append(outcome)
            tracker.row_done(len(job.outcomes))

        tracker.completed()
        job.complete()

        logger.info("%s import: %s", entity_type.value, job.result.summary())
        return job

    def import_file(
        self,
        filepath: Union[str, Path],
        entity_type: Union[str, EntityType],
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ImportJob:
        """
        Import a CSV file from disk.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"CSV file not found: {filepath}")

        return self.run(
            entity_type,
            filepath.read_bytes(),
            on_progress=on_progress,
            cancel_event=cancel_event,
        )

    def validate(self, entity_type: Union[str, EntityType], source: Source) -> ImportResult:
        """
        Dry run: parse and map every row without creating anything.

        success counts the rows that would be submitted for creation.
        """
        entity_type = EntityType.parse(entity_type)
        job = ImportJob(entity_type=entity_type)

        if not self._parse(job, source):
            return job.result

        mapper = RecordMapper.for_entity(entity_type)
        for item in self._work_items(job.rows, mapper):
            if isinstance(item, PendingRecord):
                item = Success(item.row_number)
            job.outcomes.append(item)

        return ImportResult.from_outcomes(job.outcomes)

    def _parse(self, job: ImportJob, source: Source) -> bool:
        """Decode and parse the source into job.rows. Returns False if the job failed."""
        job.transition(JobState.PARSING)

        try:
            job.source_text = decode_source(source, self.config.encoding)
            job.rows = parse_csv(job.source_text, self.config.delimiter)
        except SourceDecodeError as e:
            logger.error("%s import: upload error: %s", job.entity_type.value, e)
            job.fail(f"Upload error: {e}")
            return False
        except ParseError as e:
            logger.error("%s import: parse error: %s", job.entity_type.value, e)
            job.fail(f"File parsing error: {e}")
            return False

        logger.info("%s import: %d rows parsed", job.entity_type.value, len(job.rows))
        return True

    @staticmethod
    def _work_items(rows: Iterable[RawRow], mapper: RecordMapper) -> Iterator[WorkItem]:
        for row in rows:
            try:
                record = mapper.map_row(row)
            except RowValidationError as e:
                logger.warning("%s", e)
                yield ValidationFailure(e.row_number, e.reason)
                continue

            yield PendingRecord(row.row_number, record)


# =========================================
# CLI
# =========================================


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point."""
    import argparse

    from .templates import write_template

    entity_choices = [e.value for e in EntityType]

    parser = argparse.ArgumentParser(description="Bulk import CRM records from CSV")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import a CSV file")
    import_parser.add_argument("filepath", help="Path to CSV file")
    import_parser.add_argument("--type", dest="entity_type", choices=entity_choices, required=True)
    import_parser.add_argument("--concurrency", type=int, help="Max in-flight creates")
    import_parser.add_argument("--dry-run", action="store_true", help="Only validate, don't import")

    template_parser = subparsers.add_parser("template", help="Write an example CSV")
    template_parser.add_argument("--type", dest="entity_type", choices=entity_choices, required=True)
    template_parser.add_argument("--output", default=".", help="Directory to write into")

    args = parser.parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    if args.command == "template":
        path = write_template(args.entity_type, args.output)
        print(f"Template written to {path}")
        return 0

    try:
        config = ImportConfig.from_env()
        if args.concurrency is not None:
            config = ImportConfig(
                delimiter=config.delimiter,
                encoding=config.encoding,
                concurrency=args.concurrency,
            )

        if args.dry_run:
            importer = DataImporter({}, config=config)
            result = importer.validate(args.entity_type, Path(args.filepath).read_bytes())
        else:
            importer = DataImporter.from_supabase(config=config)
            result = importer.import_file(args.filepath, args.entity_type).result
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    print(result.summary())

    if result.errors:
        print("\nFirst 5 errors:")
        for error in result.errors[:5]:
            print(f"  {error}")

    return 1 if result.errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
