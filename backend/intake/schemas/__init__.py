"""Pydantic schemas for API request/response validation."""

from intake.schemas.audit import (
    AuditAction,
    AuditDetails,
    AuditLogCreate,
    AuditLogRead,
    ComplianceData,
    ComplianceReport,
    NoteDetails,
    PrescriptionCancelledDetails,
    PrescriptionCreatedDetails,
    PrescriptionModifiedDetails,
    PrescriptionTransmittedDetails,
    RefillDecisionDetails,
    parse_audit_details,
)
from intake.schemas.voice import (
    AudioChunkPayload,
    VoiceAudioPayload,
    VoiceContext,
    VoiceMessage,
    VoiceMessageType,
)

__all__ = [
    "AudioChunkPayload",
    "AuditAction",
    "AuditDetails",
    "AuditLogCreate",
    "AuditLogRead",
    "ComplianceData",
    "ComplianceReport",
    "NoteDetails",
    "PrescriptionCancelledDetails",
    "PrescriptionCreatedDetails",
    "PrescriptionModifiedDetails",
    "PrescriptionTransmittedDetails",
    "RefillDecisionDetails",
    "VoiceAudioPayload",
    "VoiceContext",
    "VoiceMessage",
    "VoiceMessageType",
    "parse_audit_details",
]
