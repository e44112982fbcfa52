"""
Commit executor - pushes mapped records to the data service.

Each record gets exactly one outcome, in row order, whatever happened to
the records before it. There is no rollback: rows created before a later
failure stay created.
"""

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Deque, Iterable, Iterator, Optional, Protocol, Union

from database import DatabaseError

from .report import PersistenceFailure, RowOutcome, Skipped, Success

logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Persistence collaborator for one entity type."""

    def create(self, record: Any) -> str:
        """Persist a record and return its id. Raises DatabaseError on failure."""
        ...


@dataclass(frozen=True)
class PendingRecord:
    """A mapped record waiting to be committed."""
    row_number: int
    record: Any


WorkItem = Union[PendingRecord, RowOutcome]


class CommitExecutor:
    """
    Commits records through a RecordStore.

    Work items are either PendingRecords or outcomes already decided
    upstream (validation failures); the latter pass straight through so
    the caller sees one ordered stream of outcomes.

    With concurrency > 1 up to that many creates are in flight at once.
    Completions are buffered and released in row order, so the output is
    identical to the sequential mode.

    Usage:
        executor = CommitExecutor(store, concurrency=4)
        for outcome in executor.execute(items):
            ...
    """

    def __init__(
        self,
        store: RecordStore,
        concurrency: int = 1,
        cancel_event: Optional[threading.Event] = None,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        self.store = store
        self.concurrency = concurrency
        self.cancel_event = cancel_event

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def execute(self, items: Iterable[WorkItem]) -> Iterator[RowOutcome]:
        """Yield one outcome per work item, in input order."""
        if self.concurrency == 1:
            yield from self._execute_sequential(items)
        else:
            yield from self._execute_windowed(items)

    def commit(self, pending: PendingRecord) -> RowOutcome:
        """Create a single record and classify the result."""
        try:
            record_id = self.store.create(pending.record)
        except DatabaseError as e:
            logger.warning("Row %d: create failed: %s", pending.row_number, e)
            return PersistenceFailure(pending.row_number, str(e))
        except Exception as e:
            logger.exception("Row %d: unexpected error during create", pending.row_number)
            return PersistenceFailure(pending.row_number, f"Unexpected error: {e}")

        logger.debug("Row %d: created %s", pending.row_number, record_id)
        return Success(pending.row_number, str(record_id))

    def _skip(self, pending: PendingRecord) -> RowOutcome:
        return Skipped(pending.row_number, "Skipped, import cancelled")

    def _execute_sequential(self, items: Iterable[WorkItem]) -> Iterator[RowOutcome]:
        for item in items:
            if not isinstance(item, PendingRecord):
                yield item
            elif self.cancelled:
                yield self._skip(item)
            else:
                yield self.commit(item)

    def _execute_windowed(self, items: Iterable[WorkItem]) -> Iterator[RowOutcome]:
        window: Deque[Union[RowOutcome, Future]] = deque()
        in_flight = 0

        with ThreadPoolExecutor(
            max_workers=self.concurrency, thread_name_prefix="bulk-import"
        ) as pool:
            for item in items:
                if not isinstance(item, PendingRecord):
                    window.append(item)
                elif self.cancelled:
                    window.append(self._skip(item))
                else:
                    window.append(pool.submit(self.commit, item))
                    in_flight += 1

                # Release from the head until a submission slot frees up
                while in_flight >= self.concurrency:
                    head = window.popleft()
                    if isinstance(head, Future):
                        in_flight -= 1
                        head = head.result()
                    yield head

            while window:
                head = window.popleft()
                if isinstance(head, Future):
                    head = head.result()
                yield head
