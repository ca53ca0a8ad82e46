"""
store.py — In-memory collection of client engagement records.

The store never touches storage itself. It is built from a record set
supplied by a loader and hands the full record set to an injected
`persist` callback on every mutation. The callback runs before memory
changes; if it raises, the store keeps its previous state.
"""

import logging
from collections import deque
from dataclasses import replace
from typing import Callable, Optional

from engine.errors import NotFoundError, DuplicateClientError
from engine.progress import compute_progress
from engine.records import ClientEngagement, RecordSet

log = logging.getLogger(__name__)


def _with_derived_progress(record: ClientEngagement) -> ClientEngagement:
    """Progress of a record with a timeline always follows the timeline."""
    result = compute_progress(record.timeline)
    if result.is_empty or result.progress == record.progress:
        return record
    log.warning(
        "Client %s stored progress %d, timeline gives %d; using the timeline.",
        record.id, record.progress, result.progress,
    )
    return replace(record, progress=result.progress)


class ClientRecordStore:

    def __init__(self, clients=(), admin_feed=(), persist: Optional[Callable] = None):
        # Insertion order is display order: newest client first.
        self._records = {}
        for record in clients:
            self._records[record.id] = _with_derived_progress(record)
        self.admin_feed = deque(admin_feed)
        self._persist = persist

    @classmethod
    def load(cls, loader: Callable[[], RecordSet], persist: Optional[Callable] = None):
        record_set = loader()
        log.info(
            "Loaded %d client record(s), %d admin notification(s).",
            len(record_set.clients), len(record_set.admin_feed),
        )
        return cls(record_set.clients, record_set.admin_feed, persist=persist)

    # ─── Reads ────────────────────────────────────────────────────────────────

    def get(self, client_id: str) -> ClientEngagement:
        record = self._records.get(client_id)
        if record is None:
            raise NotFoundError(client_id)
        return record

    def find(self, client_id: str) -> Optional[ClientEngagement]:
        return self._records.get(client_id)

    def find_by_email(self, email: str) -> Optional[ClientEngagement]:
        wanted = (email or "").strip().lower()
        if not wanted:
            return None
        for record in self._records.values():
            if record.email.lower() == wanted:
                return record
        return None

    def all(self) -> list:
        return list(self._records.values())

    def __len__(self):
        return len(self._records)

    def __contains__(self, client_id):
        return client_id in self._records

    # ─── Writes ───────────────────────────────────────────────────────────────

    def add(self, record: ClientEngagement) -> ClientEngagement:
        """Onboard a new client at the head of the collection."""
        if record.id in self._records:
            raise DuplicateClientError("id", record.id)
        if self.find_by_email(record.email) is not None:
            raise DuplicateClientError("email", record.email)

        self._swap({record.id: record, **self._records}, self.admin_feed)
        log.info("Client %s (%s) onboarded.", record.id, record.company_name)
        return record

    def put(self, record: ClientEngagement) -> ClientEngagement:
        """Replace an existing record, keeping its position."""
        if record.id not in self._records:
            raise NotFoundError(record.id)
        records = dict(self._records)
        records[record.id] = record
        self._swap(records, self.admin_feed)
        return record

    def replace_admin_feed(self, feed) -> deque:
        self._swap(self._records, deque(feed))
        return self.admin_feed

    def snapshot(self) -> RecordSet:
        return RecordSet(clients=self.all(), admin_feed=list(self.admin_feed))

    def commit(self):
        """Hand the current record set to the persistence callback."""
        self._swap(self._records, self.admin_feed)

    def _swap(self, records: dict, admin_feed: deque):
        # Persist first: a failing callback leaves memory untouched.
        if self._persist is not None:
            self._persist(RecordSet(clients=list(records.values()), admin_feed=list(admin_feed)))
        self._records = records
        self.admin_feed = admin_feed
