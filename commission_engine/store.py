"""
Commission persistence.

The engine talks to storage through ``CommissionStore``. A transition is
written with ``commit``, which must apply the record update and append its
approval event as one atomic unit, and only if the stored record still has
the version the caller read.
"""

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import replace

from .exceptions import CommissionNotFoundError, ConcurrentModificationError
from .models import COMMISSION_STATUSES, ApprovalEvent, CommissionRecord


class CommissionStore(ABC):
    """Storage interface consumed by the approval state machine."""

    @abstractmethod
    def get(self, commission_id: str) -> CommissionRecord | None:
        """Return a detached copy of the record, or None."""

    @abstractmethod
    def add(self, record: CommissionRecord, event: ApprovalEvent) -> CommissionRecord:
        """Insert a new record together with its first event."""

    @abstractmethod
    def commit(self, record: CommissionRecord, event: ApprovalEvent, expected_version: int) -> CommissionRecord:
        """Compare-and-set on version; returns the stored record (version + 1)."""

    @abstractmethod
    def history(self, commission_id: str) -> list[ApprovalEvent]:
        """Events for a commission ordered by performed_at."""

    @abstractmethod
    def find(self, commission_ids, company_id: str | None = None, statuses=None) -> list[CommissionRecord]:
        """Records among ``commission_ids`` matching scope and status filters."""


def _check_status(record: CommissionRecord) -> None:
    if record.status not in COMMISSION_STATUSES:
        raise ValueError(f"Unknown commission status: {record.status}")


class InMemoryCommissionStore(CommissionStore):
    """Thread-safe reference store for tests and local development."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[str, CommissionRecord] = {}
        self._events: dict[str, list[ApprovalEvent]] = {}

    def get(self, commission_id: str) -> CommissionRecord | None:
        with self._lock:
            record = self._records.get(commission_id)
            return copy.deepcopy(record) if record is not None else None

    def add(self, record: CommissionRecord, event: ApprovalEvent) -> CommissionRecord:
        _check_status(record)
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"Commission already exists: {record.id}")
            self._records[record.id] = copy.deepcopy(record)
            self._events[record.id] = [event]
            return copy.deepcopy(record)

    def commit(self, record: CommissionRecord, event: ApprovalEvent, expected_version: int) -> CommissionRecord:
        _check_status(record)
        with self._lock:
            current = self._records.get(record.id)
            if current is None:
                raise CommissionNotFoundError(record.id)
            if current.version != expected_version:
                raise ConcurrentModificationError(record.id, expected_version, current.version)

            stored = replace(copy.deepcopy(record), version=expected_version + 1)
            self._records[record.id] = stored
            self._events[record.id].append(event)
            return copy.deepcopy(stored)

    def history(self, commission_id: str) -> list[ApprovalEvent]:
        with self._lock:
            events = list(self._events.get(commission_id, []))
        return sorted(events, key=lambda e: e.performed_at)

    def find(self, commission_ids, company_id: str | None = None, statuses=None) -> list[CommissionRecord]:
        wanted = set(commission_ids)
        with self._lock:
            matches = [
                copy.deepcopy(record)
                for record_id, record in self._records.items()
                if record_id in wanted
                and (company_id is None or record.company_id == company_id)
                and (statuses is None or record.status in statuses)
            ]
        return matches
