"""
updates.py — Applies partial updates to a client record and derives the
notifications those changes imply.

Order of evaluation, always against the record as it was before the call:
  1. status message changed      → "Status Update"       (info)
  2. else progress changed       → "Progress Update"     (info)
  3. per document, by id:
       → approved                → "Document Approved"   (success)
       → rejected                → "Document Rejected"   (alert)
  4. amount paid increased       → "Payment Received"    (success)

Rules 1 and 2 never both fire for one call. New notifications are
prepended newest-first and share one timestamp. Payment status always
follows the amounts, except an "overdue" flag while a balance remains.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from engine.errors import DuplicateClientError, MissingReasonError
from engine.progress import compute_progress
from engine.records import (
    ClientDocument, ClientEngagement, ClientUpdate, DocumentStatus,
    IdentityPatch, Notification, NotificationType, PaymentStatus,
    SessionIdentity, new_id, payment_status_for, utcnow,
)
from engine.store import ClientRecordStore

log = logging.getLogger(__name__)


@dataclass
class UpdateResult:
    record: ClientEngagement
    notifications: list = field(default_factory=list)   # newest first
    identity_patch: Optional[IdentityPatch] = None

    def to_dict(self) -> dict:
        return {
            "client":         self.record.to_dict(),
            "notifications":  [n.to_dict() for n in self.notifications],
            "identity_patch": self.identity_patch.to_dict() if self.identity_patch else None,
        }


def format_amount(amount: Decimal) -> str:
    """1500 → "1,500", 1500.50 → "1,500.5"."""
    if amount == amount.to_integral_value():
        return f"{int(amount):,}"
    return f"{amount.normalize():,}"


class UpdateEngine:

    def __init__(self, store: ClientRecordStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    # ─── Generic update ───────────────────────────────────────────────────────

    def apply_update(self, client_id: str, update, identity: Optional[SessionIdentity] = None) -> UpdateResult:
        """
        Merge `update` into the client's record and persist it.

        `update` may be a ClientUpdate or a plain dict (unknown keys are
        ignored). Payment status is re-derived whenever an amount changes.

        Raises NotFoundError for an unknown client id, DuplicateClientError
        when the new e-mail belongs to another client, MissingReasonError
        when a document becomes rejected without a reason. Nothing is
        stored when any of these is raised.
        """
        if not isinstance(update, ClientUpdate):
            update = ClientUpdate.from_dict(update)

        old = self.store.get(client_id)
        now = self.clock().isoformat()

        update = self._derive(old, update)
        created = self._diff(old, update, now)
        record = self._merge(old, update, created)
        self.store.put(record)

        if created:
            log.info(
                "Client %s updated (%s); %d notification(s): %s",
                client_id, ", ".join(sorted(update.present())) or "no fields",
                len(created), ", ".join(n.title for n in created),
            )
        else:
            log.debug("Client %s updated (%s).", client_id, ", ".join(sorted(update.present())))

        return UpdateResult(record, created, self._identity_patch(record, update, identity))

    # ─── Document operations ──────────────────────────────────────────────────

    def approve_document(self, client_id: str, document_id: str) -> UpdateResult:
        record = self.store.get(client_id)
        documents = [
            replace(d, status=DocumentStatus.approved, rejection_reason=None) if d.id == document_id else d
            for d in record.documents
        ]
        return self.apply_update(client_id, ClientUpdate(documents=documents))

    def reject_document(self, client_id: str, document_id: str, reason: str) -> UpdateResult:
        reason = (reason or "").strip()
        if not reason:
            raise MissingReasonError(document_id)
        record = self.store.get(client_id)
        documents = [
            replace(d, status=DocumentStatus.rejected, rejection_reason=reason) if d.id == document_id else d
            for d in record.documents
        ]
        return self.apply_update(client_id, ClientUpdate(documents=documents))

    def add_document(self, client_id: str, name: str, doc_type: str = "Upload") -> UpdateResult:
        """Record a client upload. New documents never notify by themselves."""
        record = self.store.get(client_id)
        document = ClientDocument(
            id=new_id("d"),
            name=name,
            type=doc_type,
            status=DocumentStatus.uploaded,
            upload_date=self.clock().isoformat(),
        )
        return self.apply_update(client_id, ClientUpdate(documents=record.documents + [document]))

    # ─── Internals ────────────────────────────────────────────────────────────

    def _derive(self, old: ClientEngagement, update: ClientUpdate) -> ClientUpdate:
        """Fill in recomputed fields and drop values the record may not take."""
        if update.is_set("amount_paid") and update.amount_paid < old.amount_paid:
            log.warning(
                "Ignoring amount_paid decrease for client %s (%s → %s).",
                old.id, old.amount_paid, update.amount_paid,
            )
            update = update.without("amount_paid")

        if update.is_set("email") and update.email:
            holder = self.store.find_by_email(update.email)
            if holder is not None and holder.id != old.id:
                raise DuplicateClientError("email", update.email)

        if update.is_set("documents"):
            previous = {d.id: d.status for d in old.documents}
            for doc in update.documents:
                newly_rejected = (
                    doc.status is DocumentStatus.rejected
                    and previous.get(doc.id) is not DocumentStatus.rejected
                )
                if newly_rejected and not (doc.rejection_reason or "").strip():
                    raise MissingReasonError(doc.id)
            update = update.with_changes(documents=[d.normalised() for d in update.documents])

        if any(update.is_set(f) for f in ("amount_paid", "contract_value", "payment_status")):
            paid = update.amount_paid if update.is_set("amount_paid") else old.amount_paid
            contract = update.contract_value if update.is_set("contract_value") else old.contract_value
            status = payment_status_for(paid, contract)
            # Overdue is an admin flag; it only holds while a balance remains.
            requested = update.payment_status if update.is_set("payment_status") else old.payment_status
            if requested is PaymentStatus.overdue and paid < contract:
                status = PaymentStatus.overdue
            update = update.with_changes(payment_status=status)

        timeline = update.timeline if update.is_set("timeline") else old.timeline
        result = compute_progress(timeline)

        if not result.is_empty:
            # Timeline present: progress always follows it; the message
            # follows it unless the caller supplied one.
            changes = {"progress": result.progress}
            if update.is_set("timeline") and not update.is_set("status_message"):
                changes["status_message"] = result.status_message
            update = update.with_changes(**changes)
        elif update.is_set("progress"):
            update = update.with_changes(progress=max(0, min(100, int(update.progress))))

        return update

    def _diff(self, old: ClientEngagement, update: ClientUpdate, now: str) -> list:
        created = []

        def emit(title, message, kind, suffix):
            # Prepend so the last one emitted ends up first.
            created.insert(0, Notification.create(title, message, kind, now, suffix))

        if update.status_message and update.status_message != old.status_message:
            emit("Status Update", f"New status: {update.status_message}", NotificationType.info, "status")
        elif update.is_set("progress") and update.progress != old.progress:
            emit(
                "Progress Update",
                f"Your service progress is now at {update.progress}%.",
                NotificationType.info, "progress",
            )

        if update.is_set("documents"):
            previous = {d.id: d for d in old.documents}
            for doc in update.documents:
                before = previous.get(doc.id)
                if before is None:
                    continue
                if before.status is not DocumentStatus.approved and doc.status is DocumentStatus.approved:
                    emit(
                        "Document Approved",
                        f'Your document "{doc.name}" has been reviewed and approved.',
                        NotificationType.success, doc.id,
                    )
                if before.status is not DocumentStatus.rejected and doc.status is DocumentStatus.rejected:
                    reason = f" Reason: {doc.rejection_reason}" if doc.rejection_reason else ""
                    emit(
                        "Document Rejected",
                        f'Issue with "{doc.name}".{reason} Please check and re-upload.',
                        NotificationType.alert, f"{doc.id}-rej",
                    )

        if update.is_set("amount_paid") and update.amount_paid > old.amount_paid:
            diff = update.amount_paid - old.amount_paid
            emit(
                "Payment Received",
                f"A payment of {format_amount(diff)} {old.currency} has been recorded.",
                NotificationType.success, "payment",
            )

        return created

    def _merge(self, old: ClientEngagement, update: ClientUpdate, created: list) -> ClientEngagement:
        notifications = old.notifications.copy()
        notifications.extendleft(reversed(created))
        return replace(old, **update.present(), notifications=notifications)

    def _identity_patch(self, record, update: ClientUpdate, identity) -> Optional[IdentityPatch]:
        if identity is None or not identity.is_client(record):
            return None
        name = update.name if update.is_set("name") else None
        avatar = update.avatar_url if update.is_set("avatar_url") else None
        if not name and not avatar:
            return None
        return IdentityPatch(name=name or None, avatar_url=avatar or None)
