"""
Shared fixtures for the bulk import tests.

The data service is replaced by InMemoryStore, a RecordStore that keeps
created records in a list and can be told to fail or slow down specific
records. No test touches the network.
"""

import threading
import time
import uuid

import pytest

from bulk_import import DataImporter
from crm import EntityType
from database import NetworkError


class InMemoryStore:
    """
    RecordStore fake.

    Args:
        fail_when: Predicate on the record; matching records raise `error`
        error: Exception instance raised for failing records
        delay: Optional function record -> seconds to sleep before answering
    """

    def __init__(self, fail_when=None, error=None, delay=None):
        self.fail_when = fail_when
        self.error = error or NetworkError("Service unavailable")
        self.delay = delay
        self.created = []
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def create(self, record):
        with self._lock:
            self.calls += 1
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            if self.delay:
                time.sleep(self.delay(record))

            if self.fail_when and self.fail_when(record):
                raise self.error

            record_id = uuid.uuid4().hex
            with self._lock:
                self.created.append(record)
            return record_id
        finally:
            with self._lock:
                self.in_flight -= 1


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def stores(store):
    """The same store behind every entity type."""
    return {entity_type: store for entity_type in EntityType}


@pytest.fixture
def importer(stores):
    return DataImporter(stores)
