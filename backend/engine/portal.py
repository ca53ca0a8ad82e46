"""
portal.py — Facade wiring the store, update engine, router and ledger.

The Flask app holds one EngagementPortal; tests build their own around an
in-memory persist callback.
"""

import logging
from decimal import Decimal
from typing import Callable, Optional

from engine.ledger import PaymentLedger, payment_status_for
from engine.progress import compute_progress
from engine.records import (
    ClientEngagement, ClientUpdate, RecordSet, SessionIdentity,
    TimelineStatus, TimelineStep, new_id, utcnow,
)
from engine.router import NotificationRouter
from engine.store import ClientRecordStore
from engine.updates import UpdateEngine, UpdateResult

log = logging.getLogger(__name__)

ONBOARDING_STEP = "Onboarding"
DEFAULT_SERVICE = "Consulting"


class EngagementPortal:

    def __init__(self, store: ClientRecordStore, clock: Callable = utcnow, default_currency: str = "MAD"):
        self.store = store
        self.clock = clock
        self.default_currency = default_currency
        self.updates = UpdateEngine(store, clock)
        self.router = NotificationRouter(store, clock)
        self.ledger = PaymentLedger(self.updates)

    @classmethod
    def load(cls, loader: Callable[[], RecordSet], persist: Optional[Callable] = None, **kwargs):
        return cls(ClientRecordStore.load(loader, persist=persist), **kwargs)

    # ─── Engine operations ────────────────────────────────────────────────────

    def apply_update(self, client_id: str, update, identity: Optional[SessionIdentity] = None) -> UpdateResult:
        return self.updates.apply_update(client_id, update, identity=identity)

    def record_payment(self, client_id: str, amount) -> UpdateResult:
        return self.ledger.record_payment(client_id, amount)

    def notify(self, actor, recipient_id: str, text: str, title: str = None):
        return self.router.notify(actor, recipient_id, text, title=title)

    def mark_read(self, inbox: str, notification_id: str) -> bool:
        return self.router.mark_read(inbox, notification_id)

    def mark_all_read(self, inbox: str) -> int:
        return self.router.mark_all_read(inbox)

    def unread_count(self, inbox: str) -> int:
        return self.router.unread_count(inbox)

    @staticmethod
    def compute_progress(timeline):
        return compute_progress(timeline)

    # ─── Onboarding ───────────────────────────────────────────────────────────

    def onboard(self, data: dict) -> ClientEngagement:
        """
        Create a fully formed record from an admin's "new client" form.

        Notifications always start empty. Progress, status message and
        payment status are derived rather than taken from the form.
        """
        data = {k: v for k, v in (data or {}).items() if k not in ("notifications", "id")}
        record = ClientEngagement.from_dict(data)
        given = set(ClientUpdate.from_dict(data).present())

        if not record.service_type:
            record.service_type = DEFAULT_SERVICE
        if "currency" not in given:
            record.currency = self.default_currency
        if not record.timeline:
            record.timeline = [TimelineStep(id=new_id("t"), label=ONBOARDING_STEP, status=TimelineStatus.in_progress)]
        if not ({"mission_start_date", "missionStartDate"} & set(data)):
            record.mission_start_date = self.clock().isoformat()

        result = compute_progress(record.timeline)
        record.progress = result.progress
        record.status_message = result.status_message
        record.amount_paid = max(record.amount_paid, Decimal("0"))
        record.contract_value = max(record.contract_value, Decimal("0"))
        record.payment_status = payment_status_for(record.amount_paid, record.contract_value)

        return self.store.add(record)

    def touch_login(self, client_id: str) -> ClientEngagement:
        """Stamp last_login without generating any notification."""
        return self.updates.apply_update(
            client_id, ClientUpdate(last_login=self.clock().isoformat())
        ).record
