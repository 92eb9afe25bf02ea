"""Unit tests for PrescriptionAuditService."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from intake.domains.audit.service import PrescriptionAuditService
from intake.exceptions import AuditWriteError
from intake.models.audit_log import AuditLog
from intake.schemas.audit import (
    AuditLogCreate,
    ComplianceData,
    PrescriptionCreatedDetails,
    RefillDecisionDetails,
)
from intake.services.notifications import NotificationHub


@pytest.fixture
def mock_db() -> AsyncSession:
    """Create a mocked AsyncSession so tests do not touch a real database."""

    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.rollback = AsyncMock()
    db.add = MagicMock()
    return db


def _entry(**overrides) -> AuditLogCreate:
    data = {
        "prescription_id": 101,
        "user_id": 7,
        "action": "created",
        "details": PrescriptionCreatedDetails(medication_name="Lisinopril", dosage="10mg"),
    }
    data.update(overrides)
    return AuditLogCreate(**data)


class TestRecord:
    """record() is the strict write path."""

    @pytest.mark.asyncio
    async def test_adds_commits_and_refreshes(self, mock_db):
        service = PrescriptionAuditService(mock_db)

        row = await service.record(_entry())

        assert isinstance(row, AuditLog)
        assert row.prescription_id == 101
        assert row.user_id == 7
        assert row.action == "created"
        assert row.details == {
            "kind": "prescription_created",
            "medication_name": "Lisinopril",
            "dosage": "10mg",
            "quantity": None,
            "instructions": None,
            "refills": None,
        }
        mock_db.add.assert_called_once_with(row)
        mock_db.commit.assert_awaited_once()
        mock_db.refresh.assert_awaited_with(row)

    @pytest.mark.asyncio
    async def test_commit_failure_raises_and_rolls_back(self, mock_db):
        mock_db.commit.side_effect = OperationalError("INSERT", {}, Exception("db gone"))
        service = PrescriptionAuditService(mock_db)

        with pytest.raises(AuditWriteError) as exc_info:
            await service.record(_entry())

        mock_db.rollback.assert_awaited_once()
        assert exc_info.value.retryable is True
        assert exc_info.value.details["action"] == "created"
        assert exc_info.value.details["user_id"] == 7

    @pytest.mark.asyncio
    async def test_failed_rollback_still_raises_write_error(self, mock_db):
        mock_db.commit.side_effect = OperationalError("INSERT", {}, Exception("db gone"))
        mock_db.rollback.side_effect = InterfaceError("ROLLBACK", {}, Exception("conn closed"))
        service = PrescriptionAuditService(mock_db)

        with pytest.raises(AuditWriteError):
            await service.record(_entry())

    @pytest.mark.asyncio
    async def test_reload_failure_after_commit_returns_row(self, mock_db):
        mock_db.refresh.side_effect = OperationalError("SELECT", {}, Exception("db gone"))
        service = PrescriptionAuditService(mock_db)

        row = await service.record(_entry())

        assert row.action == "created"
        mock_db.commit.assert_awaited_once()
        mock_db.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_entry_without_target_is_still_written(self, mock_db):
        service = PrescriptionAuditService(mock_db)

        row = await service.record(_entry(prescription_id=None, details=None))

        assert row.prescription_id is None
        assert row.refill_request_id is None
        mock_db.commit.assert_awaited_once()


class TestLogAudit:
    """log_audit() is best effort and never raises."""

    @pytest.mark.asyncio
    async def test_failure_returns_none_and_publishes_notice(self, mock_db):
        mock_db.commit.side_effect = OperationalError("INSERT", {}, Exception("db gone"))
        hub = NotificationHub(ttl=None)
        received = []
        hub.subscribe(lambda event, notice: received.append((event, notice)))
        service = PrescriptionAuditService(mock_db, notifications=hub)

        assert await service.log_audit(_entry(action="sent")) is None

        assert len(received) == 1
        event, notice = received[0]
        assert event == "published"
        assert notice.variant == "destructive"
        assert notice.title == "Audit log failure"
        assert "sent" in notice.description

    @pytest.mark.asyncio
    async def test_failure_without_hub_is_silent(self, mock_db):
        mock_db.commit.side_effect = OperationalError("INSERT", {}, Exception("db gone"))

        assert await PrescriptionAuditService(mock_db).log_audit(_entry()) is None

    @pytest.mark.asyncio
    async def test_failed_rollback_returns_none(self, mock_db):
        mock_db.commit.side_effect = OperationalError("INSERT", {}, Exception("db gone"))
        mock_db.rollback.side_effect = InterfaceError("ROLLBACK", {}, Exception("conn closed"))

        assert await PrescriptionAuditService(mock_db).log_audit(_entry()) is None

    @pytest.mark.asyncio
    async def test_rejected_insert_leaves_store_unchanged(self, db_session):
        service = PrescriptionAuditService(db_session)
        await service.record(_entry())
        # Bypasses validation so the NOT NULL user_id column rejects the insert
        invalid = AuditLogCreate.model_construct(
            prescription_id=101,
            refill_request_id=None,
            user_id=None,
            action="sent",
            details=None,
            ip_address=None,
            user_agent=None,
            digital_signature=None,
            compliance_data=None,
        )

        assert await service.log_audit(invalid) is None

        count = await db_session.scalar(select(func.count()).select_from(AuditLog))
        assert count == 1

    @pytest.mark.asyncio
    async def test_success_returns_row(self, mock_db):
        row = await PrescriptionAuditService(mock_db).log_audit(_entry())
        assert isinstance(row, AuditLog)


class TestQueries:
    """Read paths against a real SQLite database."""

    @pytest.mark.asyncio
    async def test_logs_by_prescription_newest_first(self, db_session):
        service = PrescriptionAuditService(db_session)
        first = await service.record(_entry(action="created"))
        second = await service.record(_entry(action="sent"))
        await service.record(_entry(prescription_id=202, action="created"))

        rows = await service.get_logs_by_prescription(101)

        assert [r.id for r in rows] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_logs_by_refill(self, db_session):
        service = PrescriptionAuditService(db_session)
        decision = RefillDecisionDetails(decision="denied", reason="Needs follow-up visit")
        await service.record(
            _entry(prescription_id=None, refill_request_id=55, action="denied", details=decision)
        )
        await service.record(
            _entry(prescription_id=None, refill_request_id=56, action="approved", details=None)
        )

        rows = await service.get_logs_by_refill(55)

        assert len(rows) == 1
        assert rows[0].details["decision"] == "denied"
        assert rows[0].details["kind"] == "refill_decision"

    @pytest.mark.asyncio
    async def test_compliance_report_filters(self, db_session):
        service = PrescriptionAuditService(db_session)
        await service.record(_entry(user_id=0, action="created"))
        await service.record(_entry(user_id=1, action="created"))

        assert {r.user_id for r in await service.generate_compliance_report()} == {0, 1}
        assert [r.user_id for r in await service.generate_compliance_report(user_id=0)] == [0]

        now = datetime.now(UTC)
        window = await service.generate_compliance_report(
            start=now - timedelta(minutes=5),
            end=now + timedelta(minutes=5),
        )
        assert len(window) == 2
        assert await service.generate_compliance_report(start=now + timedelta(hours=1)) == []
        assert await service.generate_compliance_report(end=now - timedelta(hours=1)) == []

    @pytest.mark.asyncio
    async def test_date_bounds_are_inclusive(self, db_session):
        service = PrescriptionAuditService(db_session)
        row = await service.record(_entry())

        rows = await service.generate_compliance_report(start=row.created_at, end=row.created_at)

        assert [r.id for r in rows] == [row.id]

    @pytest.mark.asyncio
    async def test_compliance_data_round_trips(self, db_session):
        service = PrescriptionAuditService(db_session)
        compliance = ComplianceData(
            hipaa_compliant=True,
            encryption_status="AES-256",
            audit_trail="complete",
            digital_signature="sig-1",
        )
        await service.record(_entry(compliance_data=compliance, digital_signature="sig-1"))

        (row,) = await service.generate_compliance_report(user_id=7)
        assert row.compliance_data["encryption_status"] == "AES-256"
        assert row.digital_signature == "sig-1"

    @pytest.mark.asyncio
    async def test_read_failure_returns_empty_list(self, mock_db):
        mock_db.execute.side_effect = OperationalError("SELECT", {}, Exception("db gone"))
        service = PrescriptionAuditService(mock_db)

        assert await service.get_logs_by_prescription(1) == []
        assert await service.get_logs_by_refill(1) == []
        assert await service.generate_compliance_report(user_id=1) == []
        assert mock_db.rollback.await_count == 3

    @pytest.mark.asyncio
    async def test_read_failure_with_failed_rollback_returns_empty_list(self, mock_db):
        mock_db.execute.side_effect = OperationalError("SELECT", {}, Exception("db gone"))
        mock_db.rollback.side_effect = InterfaceError("ROLLBACK", {}, Exception("conn closed"))
        service = PrescriptionAuditService(mock_db)

        assert await service.get_logs_by_prescription(42) == []
        assert await service.get_logs_by_refill(42) == []
        assert await service.generate_compliance_report(start=datetime.now(UTC)) == []
