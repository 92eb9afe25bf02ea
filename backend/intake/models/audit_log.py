"""Prescription audit log model.

Rows are append-only: the application inserts them and never updates or
deletes them.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from intake.infrastructure.database import Base, JSONType


class AuditLog(Base):
    """One compliance event on a prescription or refill request."""

    __tablename__ = "prescription_audit_logs"
    __table_args__ = (
        Index("ix_prescription_audit_logs_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prescription_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("prescriptions.id"),
        nullable=True,
        index=True,
    )
    refill_request_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("refill_requests.id"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )  # 'created' | 'modified' | 'approved' | 'denied' | 'sent' | 'cancelled' | ...
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    digital_signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    compliance_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        target = (
            f"prescription={self.prescription_id}"
            if self.prescription_id is not None
            else f"refill={self.refill_request_id}"
        )
        return f"<AuditLog {self.id} {self.action} {target} user={self.user_id}>"
