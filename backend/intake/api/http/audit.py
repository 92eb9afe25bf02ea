"""HTTP endpoints for the prescription audit trail."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from intake.core.di import get_container
from intake.domains.audit.service import PrescriptionAuditService
from intake.infrastructure.database import get_session
from intake.schemas.audit import AuditLogCreate, AuditLogRead, ComplianceReport

router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


def get_audit_service(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> PrescriptionAuditService:
    return get_container().create_audit_service(
        session,
        notifications=getattr(request.app.state, "notifications", None),
    )


@router.post("/logs", response_model=AuditLogRead, status_code=status.HTTP_201_CREATED)
async def create_audit_log(
    payload: AuditLogCreate,
    request: Request,
    service: PrescriptionAuditService = Depends(get_audit_service),
) -> AuditLogRead:
    """Record one audit entry.

    Client address and user agent are taken from the request when the body
    omits them. A storage failure answers 503 (``AUDIT_WRITE_FAILED``).
    """

    updates: dict[str, str] = {}
    if payload.ip_address is None and request.client is not None:
        updates["ip_address"] = request.client.host
    if payload.user_agent is None and request.headers.get("user-agent"):
        updates["user_agent"] = request.headers["user-agent"]
    if updates:
        payload = payload.model_copy(update=updates)

    row = await service.record(payload)
    return AuditLogRead.model_validate(row)


@router.get("/prescriptions/{prescription_id}/logs", response_model=list[AuditLogRead])
async def list_prescription_logs(
    prescription_id: int,
    service: PrescriptionAuditService = Depends(get_audit_service),
) -> list[AuditLogRead]:
    """Audit entries for one prescription, newest first."""

    rows = await service.get_logs_by_prescription(prescription_id)
    return [AuditLogRead.model_validate(r) for r in rows]


@router.get("/refills/{refill_request_id}/logs", response_model=list[AuditLogRead])
async def list_refill_logs(
    refill_request_id: int,
    service: PrescriptionAuditService = Depends(get_audit_service),
) -> list[AuditLogRead]:
    """Audit entries for one refill request, newest first."""

    rows = await service.get_logs_by_refill(refill_request_id)
    return [AuditLogRead.model_validate(r) for r in rows]


@router.get("/compliance-report", response_model=ComplianceReport)
async def compliance_report(
    user_id: int | None = Query(default=None, alias="userId"),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    service: PrescriptionAuditService = Depends(get_audit_service),
) -> ComplianceReport:
    """Audit entries filtered by user and an inclusive date range."""

    rows = await service.generate_compliance_report(user_id=user_id, start=start, end=end)
    entries = [AuditLogRead.model_validate(r) for r in rows]
    return ComplianceReport(
        user_id=user_id,
        start=start,
        end=end,
        count=len(entries),
        entries=entries,
    )
