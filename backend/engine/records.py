"""
records.py — Engagement record types.

ClientEngagement is the mutable per-client record held by the store.
ClientUpdate is the sparse partial update consumed by the update engine:
every field defaults to UNSET and only explicitly given fields are applied.

Serialised form uses snake_case keys; camelCase keys (as sent by the
browser portal) are accepted on input.
"""

import enum
import re
import uuid
from collections import deque
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class TimelineStatus(enum.Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


class DocumentStatus(enum.Enum):
    pending = "pending"
    uploaded = "uploaded"
    approved = "approved"
    rejected = "rejected"


class NotificationType(enum.Enum):
    info = "info"
    success = "success"
    alert = "alert"


class PaymentStatus(enum.Enum):
    paid = "paid"
    partial = "partial"
    pending = "pending"
    overdue = "overdue"


class Actor(enum.Enum):
    admin = "admin"
    client = "client"


# ─────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────

def utcnow():
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def to_money(value) -> Decimal:
    """Coerce a JSON number or numeric string into a Decimal amount."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a monetary amount: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a monetary amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount


def money_out(amount: Decimal):
    """JSON-friendly amount: int when whole, float otherwise."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def payment_status_for(amount_paid: Decimal, contract_value: Decimal) -> PaymentStatus:
    # Nothing paid yet reads as pending even on a zero-value contract.
    if amount_paid <= 0:
        return PaymentStatus.pending
    if amount_paid >= contract_value:
        return PaymentStatus.paid
    return PaymentStatus.partial


def _snake(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _normalise_keys(data: dict) -> dict:
    return {_snake(k): v for k, v in (data or {}).items()}


# ─────────────────────────────────────────────
# Timeline / documents / notifications
# ─────────────────────────────────────────────

@dataclass
class TimelineStep:
    id: str
    label: str
    status: TimelineStatus = TimelineStatus.pending
    date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "TimelineStep":
        data = _normalise_keys(data)
        return cls(
            id=str(data["id"]),
            label=data.get("label") or "",
            status=TimelineStatus(data.get("status") or "pending"),
            date=data.get("date"),
        )

    def to_dict(self) -> dict:
        return {
            "id":     self.id,
            "label":  self.label,
            "status": self.status.value,
            "date":   self.date,
        }


@dataclass
class ClientDocument:
    id: str
    name: str
    type: str = "Upload"
    status: DocumentStatus = DocumentStatus.pending
    upload_date: Optional[str] = None
    rejection_reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ClientDocument":
        data = _normalise_keys(data)
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            type=data.get("type") or "Upload",
            status=DocumentStatus(data.get("status") or "pending"),
            upload_date=data.get("upload_date"),
            rejection_reason=data.get("rejection_reason"),
        )

    def normalised(self) -> "ClientDocument":
        """A rejection reason only survives on a rejected document."""
        if self.status is DocumentStatus.rejected:
            return self
        if self.rejection_reason is None:
            return self
        return replace(self, rejection_reason=None)

    def to_dict(self) -> dict:
        return {
            "id":               self.id,
            "name":             self.name,
            "type":             self.type,
            "status":           self.status.value,
            "upload_date":      self.upload_date,
            "rejection_reason": self.rejection_reason,
        }


@dataclass
class Notification:
    id: str
    title: str
    message: str
    date: str
    read: bool = False
    type: NotificationType = NotificationType.info

    @classmethod
    def create(cls, title: str, message: str, type: NotificationType, date: str, suffix: str = ""):
        nid = new_id("n")
        if suffix:
            nid = f"{nid}-{suffix}"
        return cls(id=nid, title=title, message=message, date=date, read=False, type=type)

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        data = _normalise_keys(data)
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            message=data.get("message") or "",
            date=data.get("date") or utcnow().isoformat(),
            read=bool(data.get("read", False)),
            type=NotificationType(data.get("type") or "info"),
        )

    def to_dict(self) -> dict:
        return {
            "id":      self.id,
            "title":   self.title,
            "message": self.message,
            "date":    self.date,
            "read":    self.read,
            "type":    self.type.value,
        }


# ─────────────────────────────────────────────
# Client engagement
# ─────────────────────────────────────────────

@dataclass
class ClientEngagement:
    id: str
    email: str
    name: str
    company_name: str
    service_type: str
    mission_start_date: str
    company_category: Optional[str] = None
    progress: int = 0
    status_message: str = ""
    timeline: list = field(default_factory=list)
    documents: list = field(default_factory=list)
    notifications: deque = field(default_factory=deque)
    contract_value: Decimal = Decimal("0")
    amount_paid: Decimal = Decimal("0")
    currency: str = "MAD"
    payment_status: PaymentStatus = PaymentStatus.pending
    last_payment_date: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nationality: Optional[str] = None
    cin: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    avatar_url: Optional[str] = None
    last_login: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ClientEngagement":
        data = _normalise_keys(data)
        values = _parse_fields(data, UPDATABLE_FIELDS + ("mission_start_date",))
        values["id"] = str(data.get("id") or new_id("c"))
        values["notifications"] = deque(
            Notification.from_dict(n) for n in data.get("notifications") or []
        )
        values.setdefault("mission_start_date", utcnow().date().isoformat())
        for required in ("email", "name", "company_name", "service_type"):
            values.setdefault(required, "")
        return cls(**values)

    def unread_count(self) -> int:
        return sum(1 for n in self.notifications if not n.read)

    def to_dict(self) -> dict:
        return {
            "id":                 self.id,
            "email":              self.email,
            "name":               self.name,
            "first_name":         self.first_name,
            "last_name":          self.last_name,
            "nationality":        self.nationality,
            "cin":                self.cin,
            "company_name":       self.company_name,
            "company_category":   self.company_category,
            "phone":              self.phone,
            "whatsapp":           self.whatsapp,
            "avatar_url":         self.avatar_url,
            "service_type":       self.service_type,
            "progress":           self.progress,
            "status_message":     self.status_message,
            "timeline":           [s.to_dict() for s in self.timeline],
            "documents":          [d.to_dict() for d in self.documents],
            "notifications":      [n.to_dict() for n in self.notifications],
            "contract_value":     money_out(self.contract_value),
            "amount_paid":        money_out(self.amount_paid),
            "currency":           self.currency,
            "payment_status":     self.payment_status.value,
            "last_payment_date":  self.last_payment_date,
            "mission_start_date": self.mission_start_date,
            "last_login":         self.last_login,
        }


# ─────────────────────────────────────────────
# Partial update
# ─────────────────────────────────────────────

class _Unset:
    """Marker for a field that is absent from a partial update."""

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()


# Field name → parser for values arriving as JSON.
_PARSERS = {
    "progress":       int,
    "timeline":       lambda v: [TimelineStep.from_dict(s) for s in v or []],
    "documents":      lambda v: [ClientDocument.from_dict(d) for d in v or []],
    "contract_value": to_money,
    "amount_paid":    to_money,
    "payment_status": PaymentStatus,
}

# A null for any of these is treated as "field absent".
_NON_NULLABLE = {
    "email", "name", "company_name", "service_type", "mission_start_date",
    "progress", "status_message", "timeline", "documents",
    "contract_value", "amount_paid", "currency", "payment_status",
}


def _parse_fields(data: dict, names) -> dict:
    """Parse each of `names` present in `data`; any other key is dropped."""
    out = {}
    for name in names:
        if name not in data:
            continue
        parser = _PARSERS.get(name)
        value = data[name]
        if value is None and name in _NON_NULLABLE:
            continue
        out[name] = parser(value) if parser and value is not None else value
    return out


@dataclass
class ClientUpdate:
    """Sparse update: every field left as UNSET is untouched by the merge."""

    email: Optional[str] = UNSET
    name: Optional[str] = UNSET
    first_name: Optional[str] = UNSET
    last_name: Optional[str] = UNSET
    nationality: Optional[str] = UNSET
    cin: Optional[str] = UNSET
    company_name: Optional[str] = UNSET
    company_category: Optional[str] = UNSET
    phone: Optional[str] = UNSET
    whatsapp: Optional[str] = UNSET
    avatar_url: Optional[str] = UNSET
    service_type: Optional[str] = UNSET
    progress: Optional[int] = UNSET
    status_message: Optional[str] = UNSET
    timeline: Optional[list] = UNSET
    documents: Optional[list] = UNSET
    contract_value: Optional[Decimal] = UNSET
    amount_paid: Optional[Decimal] = UNSET
    currency: Optional[str] = UNSET
    payment_status: Optional[PaymentStatus] = UNSET
    last_payment_date: Optional[str] = UNSET
    last_login: Optional[str] = UNSET

    @classmethod
    def from_dict(cls, data: dict) -> "ClientUpdate":
        """Build an update from a JSON body. Unrecognised keys are ignored."""
        return cls(**_parse_fields(_normalise_keys(data), UPDATABLE_FIELDS))

    def is_set(self, name: str) -> bool:
        return getattr(self, name, UNSET) is not UNSET

    def present(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def with_changes(self, **changes) -> "ClientUpdate":
        return replace(self, **changes)

    def without(self, *names) -> "ClientUpdate":
        return replace(self, **{n: UNSET for n in names})


UPDATABLE_FIELDS = tuple(f.name for f in fields(ClientUpdate))

PROFILE_FIELDS = (
    "name", "first_name", "last_name", "nationality", "cin",
    "company_name", "company_category", "phone", "whatsapp", "avatar_url",
)


# ─────────────────────────────────────────────
# Session identity
# ─────────────────────────────────────────────

@dataclass
class IdentityPatch:
    """Display fields a client changed on their own record."""

    name: Optional[str] = None
    avatar_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {"name": self.name, "avatar_url": self.avatar_url}


@dataclass
class SessionIdentity:
    id: str
    name: str
    email: str
    role: Actor
    avatar_url: Optional[str] = None

    def is_client(self, record: ClientEngagement) -> bool:
        return (
            self.role is Actor.client
            and (self.id == record.id or self.email.lower() == record.email.lower())
        )

    def patched(self, patch: Optional[IdentityPatch]) -> "SessionIdentity":
        if patch is None:
            return self
        return replace(
            self,
            name=patch.name or self.name,
            avatar_url=patch.avatar_url or self.avatar_url,
        )


# ─────────────────────────────────────────────
# Record set (what the persistence layer loads / stores)
# ─────────────────────────────────────────────

@dataclass
class RecordSet:
    clients: list = field(default_factory=list)
    admin_feed: list = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "RecordSet":
        data = _normalise_keys(data)
        return cls(
            clients=[ClientEngagement.from_dict(c) for c in data.get("clients") or []],
            admin_feed=[Notification.from_dict(n) for n in data.get("admin_feed") or []],
        )

    def to_dict(self) -> dict:
        return {
            "clients":    [c.to_dict() for c in self.clients],
            "admin_feed": [n.to_dict() for n in self.admin_feed],
        }
