"""
models.py — Database tables for the Practice Portal.

Client engagement records are not mapped to tables: the engine keeps them
in memory and the whole record set is persisted as a JSON snapshot in
PortalSnapshot, the server-side stand-in for browser local storage.
"""

from datetime import datetime, timezone
from database import db
from sqlalchemy import (
    Column, String, Text, Boolean, DateTime, ForeignKey, JSON,
    Enum as PgEnum, Index,
)
from sqlalchemy.orm import relationship
import uuid
import enum


# ─────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────

class PortalRole(enum.Enum):
    admin = "admin"
    client = "client"


class StaffStatus(enum.Enum):
    active = "active"
    on_leave = "on-leave"
    inactive = "inactive"


# ─────────────────────────────────────────────
# Helper
# ─────────────────────────────────────────────

def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ─────────────────────────────────────────────
# 1. Portal accounts (login credentials)
# ─────────────────────────────────────────────

class PortalAccount(db.Model):
    __tablename__ = "portal_accounts"

    account_id = Column(String(36), primary_key=True, default=new_uuid)
    email = Column(String(255), nullable=False, unique=True)          # stored lower-case
    password_hash = Column(String(255), nullable=False)
    role = Column(PgEnum(PortalRole, name="portal_role_enum"), nullable=False, default=PortalRole.client)
    name = Column(String(255), nullable=True)                         # admin display name
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    audit_logs = relationship("AuditLog", back_populates="performed_by_account")

    __table_args__ = (
        Index("ix_portal_accounts_email", "email"),
    )

    def __repr__(self):
        return f"<PortalAccount {self.email} ({self.role.value})>"


# ─────────────────────────────────────────────
# 2. Snapshots (key/value persistence)
# ─────────────────────────────────────────────

class PortalSnapshot(db.Model):
    __tablename__ = "portal_snapshots"

    key = Column(String(100), primary_key=True)
    payload = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<PortalSnapshot {self.key}>"


# ─────────────────────────────────────────────
# 3. Staff roster
# ─────────────────────────────────────────────

class StaffMember(db.Model):
    __tablename__ = "staff_members"

    staff_id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    role = Column(String(255), nullable=False)                        # job title, e.g. "Head of Sales"
    department = Column(String(100), nullable=False, default="General")
    email = Column(String(255), nullable=False, unique=True)          # stored lower-case
    phone = Column(String(50), nullable=True)
    status = Column(
        PgEnum(StaffStatus, name="staff_status_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False, default=StaffStatus.active,
    )
    avatar_url = Column(Text, nullable=True)
    join_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_staff_members_department", "department"),
    )

    def to_dict(self):
        return {
            "id":         self.staff_id,
            "name":       self.name,
            "role":       self.role,
            "department": self.department,
            "email":      self.email,
            "phone":      self.phone,
            "status":     self.status.value,
            "avatar_url": self.avatar_url,
            "join_date":  self.join_date.isoformat() if self.join_date else None,
        }

    def __repr__(self):
        return f"<StaffMember {self.name} ({self.department})>"


# ─────────────────────────────────────────────
# 4. Audit log
# ─────────────────────────────────────────────

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    log_id = Column(String(36), primary_key=True, default=new_uuid)
    action = Column(Text, nullable=False)
    performed_by = Column(String(36), ForeignKey("portal_accounts.account_id", ondelete="SET NULL"), nullable=True)
    record_type = Column(String(100), nullable=True)            # e.g. "client", "payment"
    record_id = Column(String(64), nullable=True)
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    details = Column(JSON, nullable=True)

    performed_by_account = relationship("PortalAccount", back_populates="audit_logs")

    __table_args__ = (
        Index("ix_audit_logs_timestamp", "timestamp"),
        Index("ix_audit_logs_record_id", "record_id"),
    )

    def __repr__(self):
        return f"<AuditLog {self.action} at {self.timestamp}>"
