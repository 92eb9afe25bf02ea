"""Prescription audit trail service.

Records append-only compliance events for prescription and refill activity
and answers the read queries compliance reviews need.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from intake.exceptions import AuditWriteError
from intake.models.audit_log import AuditLog
from intake.schemas.audit import AuditLogCreate

if TYPE_CHECKING:
    from intake.services.notifications import NotificationHub

logger = logging.getLogger("audit")


def _as_naive_utc(value: datetime | None) -> datetime | None:
    """Match the column's naive-UTC storage; naive inputs are taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class PrescriptionAuditService:
    """Write and query prescription audit entries.

    ``log_audit`` is best effort and never raises; ``record`` raises
    ``AuditWriteError`` so callers that must not lose an entry can react.
    Reads return ``[]`` when the store fails.
    """

    def __init__(self, db: AsyncSession, notifications: NotificationHub | None = None):
        self.db = db
        self.notifications = notifications

    async def record(self, entry: AuditLogCreate) -> AuditLog:
        """Insert one entry in its own commit.

        Raises:
            AuditWriteError: The row could not be stored; nothing was written
        """
        if not entry.has_target:
            logger.warning(
                "Audit entry has neither prescription nor refill request",
                extra={
                    "service": "audit",
                    "action": entry.action,
                    "user_id": entry.user_id,
                },
            )

        row = AuditLog(
            prescription_id=entry.prescription_id,
            refill_request_id=entry.refill_request_id,
            user_id=entry.user_id,
            action=entry.action,
            details=entry.details.model_dump(mode="json") if entry.details is not None else None,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            digital_signature=entry.digital_signature,
            compliance_data=(
                entry.compliance_data.model_dump(mode="json")
                if entry.compliance_data is not None
                else None
            ),
        )

        try:
            self.db.add(row)
            await self.db.commit()
        except Exception as exc:
            await self._rollback("record")
            raise AuditWriteError(
                action=entry.action,
                user_id=entry.user_id,
                reason=str(exc),
            ) from exc

        # The row is committed from here on; a failed reload is not a failed write
        try:
            await self.db.refresh(row)
        except Exception as exc:
            logger.warning(
                "Audit entry stored but could not be reloaded",
                extra={"service": "audit", "action": entry.action, "error": str(exc)},
            )

        logger.info(
            f"Prescription audit logged: {entry.action} by user {entry.user_id}",
            extra={
                "service": "audit",
                "action": entry.action,
                "user_id": entry.user_id,
                "prescription_id": entry.prescription_id,
                "refill_request_id": entry.refill_request_id,
            },
        )
        return row

    async def log_audit(self, entry: AuditLogCreate) -> AuditLog | None:
        """Best-effort insert. Returns None if the entry could not be stored."""
        try:
            return await self.record(entry)
        except AuditWriteError as exc:
            logger.error(
                "Failed to log prescription audit",
                extra={
                    "service": "audit",
                    "error_code": exc.code,
                    "error": exc.reason,
                    "action": entry.action,
                    "user_id": entry.user_id,
                    "prescription_id": entry.prescription_id,
                    "refill_request_id": entry.refill_request_id,
                },
                exc_info=True,
            )
            if self.notifications is not None:
                await self.notifications.publish(
                    "Audit log failure",
                    f"Could not record '{entry.action}' for user {entry.user_id}. "
                    "Compliance follow-up is required.",
                    variant="destructive",
                )
            return None

    async def get_logs_by_prescription(self, prescription_id: int) -> list[AuditLog]:
        """Entries for one prescription, newest first."""
        stmt = select(AuditLog).where(AuditLog.prescription_id == prescription_id)
        return await self._fetch(stmt, "get_logs_by_prescription")

    async def get_logs_by_refill(self, refill_request_id: int) -> list[AuditLog]:
        """Entries for one refill request, newest first."""
        stmt = select(AuditLog).where(AuditLog.refill_request_id == refill_request_id)
        return await self._fetch(stmt, "get_logs_by_refill")

    async def generate_compliance_report(
        self,
        user_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[AuditLog]:
        """Entries matching every given filter, newest first.

        ``start`` and ``end`` are inclusive bounds on ``created_at``.
        """
        stmt = select(AuditLog)
        if user_id is not None:
            stmt = stmt.where(AuditLog.user_id == user_id)
        if start is not None:
            stmt = stmt.where(AuditLog.created_at >= _as_naive_utc(start))
        if end is not None:
            stmt = stmt.where(AuditLog.created_at <= _as_naive_utc(end))
        return await self._fetch(stmt, "generate_compliance_report")

    async def _rollback(self, operation: str) -> None:
        """Roll back after a failed statement; a failing rollback is only logged."""
        try:
            await self.db.rollback()
        except Exception as exc:
            logger.error(
                "Audit session rollback failed",
                extra={"service": "audit", "operation": operation, "error": str(exc)},
            )

    async def _fetch(self, stmt: Select[tuple[AuditLog]], operation: str) -> list[AuditLog]:
        stmt = stmt.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        try:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        except Exception as exc:
            await self._rollback(operation)
            logger.error(
                "Failed to retrieve audit logs",
                extra={
                    "service": "audit",
                    "operation": operation,
                    "error": str(exc),
                },
                exc_info=True,
            )
            return []
