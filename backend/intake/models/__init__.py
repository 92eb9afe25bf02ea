"""SQLAlchemy models."""

from intake.models.audit_log import AuditLog
from intake.models.prescription import Prescription, RefillRequest
from intake.models.user import User

__all__ = [
    "AuditLog",
    "Prescription",
    "RefillRequest",
    "User",
]
