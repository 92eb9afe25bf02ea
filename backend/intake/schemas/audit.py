"""Pydantic schemas for the prescription audit trail."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class AuditAction(str, Enum):
    """Well-known audit actions. Other action strings are stored as given."""

    CREATED = "created"
    MODIFIED = "modified"
    APPROVED = "approved"
    DENIED = "denied"
    SENT = "sent"
    CANCELLED = "cancelled"


# =============================================================================
# Typed details (tagged on ``kind``)
# =============================================================================


class PrescriptionCreatedDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["prescription_created"] = "prescription_created"
    medication_name: str
    dosage: str
    quantity: int | None = None
    instructions: str | None = None
    refills: int | None = None


class PrescriptionModifiedDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["prescription_modified"] = "prescription_modified"
    changes: dict[str, Any] = Field(
        ...,
        description="Changed fields mapped to their new values",
    )
    previous: dict[str, Any] | None = Field(
        default=None,
        description="Previous values of the changed fields",
    )
    reason: str | None = None


class RefillDecisionDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["refill_decision"] = "refill_decision"
    decision: Literal["approved", "denied"]
    reason: str | None = None
    dosage_changes: str | None = None


class PrescriptionTransmittedDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["prescription_transmitted"] = "prescription_transmitted"
    pharmacy_id: int | None = None
    method: Literal["fax", "electronic"] = "electronic"
    confirmation: str | None = None


class PrescriptionCancelledDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["prescription_cancelled"] = "prescription_cancelled"
    reason: str


class NoteDetails(BaseModel):
    """Free-form details for events that have no dedicated shape."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["note"] = "note"
    data: dict[str, Any] = Field(default_factory=dict)


AuditDetails = Annotated[
    PrescriptionCreatedDetails
    | PrescriptionModifiedDetails
    | RefillDecisionDetails
    | PrescriptionTransmittedDetails
    | PrescriptionCancelledDetails
    | NoteDetails,
    Field(discriminator="kind"),
]

_details_adapter = TypeAdapter(AuditDetails)


def parse_audit_details(raw: dict[str, Any]) -> AuditDetails:
    """Validate a raw details dict into its typed variant.

    Raises:
        pydantic.ValidationError: unknown ``kind`` or a shape that does not fit it
    """
    return _details_adapter.validate_python(raw)


# =============================================================================
# Entries
# =============================================================================


class ComplianceData(BaseModel):
    """HIPAA / EPCS compliance markers recorded alongside an event."""

    hipaa_compliant: bool
    encryption_status: str
    audit_trail: str
    digital_signature: str


class AuditLogCreate(BaseModel):
    """Payload for one audit entry."""

    prescription_id: int | None = None
    refill_request_id: int | None = None
    user_id: int
    action: str = Field(..., min_length=1, description="e.g. created, approved, sent")
    details: AuditDetails | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    digital_signature: str | None = None
    compliance_data: ComplianceData | None = None

    @property
    def has_target(self) -> bool:
        """True when the entry names a prescription or a refill request."""
        return self.prescription_id is not None or self.refill_request_id is not None


class AuditLogRead(BaseModel):
    """Serialized audit row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    prescription_id: int | None
    refill_request_id: int | None
    user_id: int
    action: str
    details: dict[str, Any] | None
    ip_address: str | None
    user_agent: str | None
    digital_signature: str | None
    compliance_data: dict[str, Any] | None
    created_at: datetime


class ComplianceReport(BaseModel):
    """Audit rows matching a compliance query."""

    user_id: int | None = None
    start: datetime | None = None
    end: datetime | None = None
    count: int
    entries: list[AuditLogRead]
