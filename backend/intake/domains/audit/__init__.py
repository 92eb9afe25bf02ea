"""Audit domain - append-only prescription compliance trail."""

from intake.domains.audit.service import PrescriptionAuditService

__all__ = ["PrescriptionAuditService"]
