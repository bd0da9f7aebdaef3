"""Tests for the compliance locker: documents, versions, obligations and reminders."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from conftest import (
    ADMIN_USER,
    OTHER_USER_ID,
    SAMPLE_USER,
    SAMPLE_USER_ID,
    SAMPLE_WORKSPACE_ID,
    added_objects,
    make_mock_db,
    make_result,
)

from gigvora.core import cache
from gigvora.core.errors import AuthorizationError, NotFoundError, ValidationError
from gigvora.models.compliance import (
    ComplianceDocument,
    ComplianceDocumentVersion,
    ComplianceObligation,
    ComplianceReminder,
)
from gigvora.modules.compliance_locker import service
from gigvora.modules.compliance_locker.schemas import (
    ComplianceDocumentCreate,
    DocumentVersionCreate,
)

pytestmark = pytest.mark.anyio

DOCUMENT_ID = uuid.UUID("00000000-0000-0000-0000-000000000301")
REMINDER_ID = uuid.UUID("00000000-0000-0000-0000-000000000302")

NOW = datetime(2026, 7, 1, 8, tzinfo=timezone.utc)


def _document(**overrides) -> ComplianceDocument:
    fields = dict(
        id=DOCUMENT_ID,
        owner_id=SAMPLE_USER_ID,
        title="Master services agreement",
        document_type="contract",
        status="active",
        storage_provider="r2",
        storage_path="lockers/ada/msa.pdf",
        jurisdiction="UK",
        is_deleted=False,
    )
    fields.update(overrides)
    return ComplianceDocument(**fields)


def _obligation(document: ComplianceDocument, status: str, **overrides) -> ComplianceObligation:
    fields = dict(
        id=uuid.uuid4(),
        document_id=document.id,
        description=f"{status} obligation",
        status=status,
        is_deleted=False,
    )
    fields.update(overrides)
    return ComplianceObligation(**fields)


def _reminder(document: ComplianceDocument, **overrides) -> ComplianceReminder:
    fields = dict(
        id=REMINDER_ID,
        document_id=document.id,
        reminder_type="renewal",
        status="scheduled",
        due_at=NOW + timedelta(days=3),
        is_deleted=False,
    )
    fields.update(overrides)
    return ComplianceReminder(**fields)


@pytest.fixture
def invalidate_prefix():
    with patch.object(cache, "invalidate_prefix", new_callable=AsyncMock) as mock:
        yield mock


# ── Summaries ─────────────────────────────────────────────────────────────────


class TestDocumentSummary:
    def test_totals_and_renewal_windows(self):
        documents = [
            _document(expiry_date=NOW + timedelta(days=30)),
            _document(
                id=uuid.uuid4(), status="awaiting_signature", document_type="nda",
                jurisdiction="US", expiry_date=NOW + timedelta(days=200),
            ),
            _document(id=uuid.uuid4(), status="expired", expiry_date=NOW - timedelta(days=3)),
            _document(id=uuid.uuid4(), status="archived", jurisdiction=None),
        ]

        summary = service.build_document_summary(documents, NOW)

        assert summary["totals"] == {
            "total_documents": 4,
            "active_documents": 1,
            "awaiting_signature": 1,
            "expired": 1,
            "archived": 1,
            "jurisdictions_covered": 2,
        }
        assert summary["type_counts"] == {"contract": 3, "nda": 1}
        assert [r["days_until"] for r in summary["renewals"]] == [-3, 30, 200]
        assert [r["days_until"] for r in summary["expiring_soon"]] == [30]
        assert [r["days_until"] for r in summary["overdue_renewals"]] == [-3]

    def test_obligation_buckets(self):
        document = _document()
        obligations = [
            _obligation(document, status)
            for status in ("open", "in_progress", "overdue", "satisfied", "waived")
        ]
        summary = service.build_obligation_summary(obligations)
        assert summary["total"] == 5
        assert summary["open_count"] == 3
        assert summary["overdue_count"] == 1
        assert summary["completed_count"] == 2

    def test_reminder_summary(self):
        document = _document()
        reminders = [
            _reminder(document, id=uuid.uuid4(), due_at=NOW - timedelta(days=1)),
            _reminder(document, id=uuid.uuid4(), due_at=NOW - timedelta(days=2), status="acknowledged"),
            _reminder(document, id=uuid.uuid4(), due_at=NOW + timedelta(days=5)),
            _reminder(document, id=uuid.uuid4(), due_at=NOW + timedelta(days=1)),
        ]
        summary = service.build_reminder_summary(reminders, NOW)
        assert summary["total"] == 4
        assert len(summary["overdue"]) == 1
        assert [r["due_at"] for r in summary["upcoming"]] == [
            (NOW + timedelta(days=1)).isoformat(),
            (NOW + timedelta(days=5)).isoformat(),
        ]


# ── Overview ──────────────────────────────────────────────────────────────────


class TestOverview:
    async def test_overview_nests_reminders_under_obligations(self):
        document = _document(metadata_={"_sync_cursor": 9, "source": "upload"})
        obligation = _obligation(document, "open", clause_reference="4.2")
        document.obligations.append(obligation)
        document.reminders.append(_reminder(document, obligation_id=obligation.id))
        document.reminders.append(_reminder(document, id=uuid.uuid4(), reminder_type="signature"))
        for number in range(1, 8):
            document.versions.append(ComplianceDocumentVersion(
                id=uuid.uuid4(), document_id=DOCUMENT_ID, version_number=number,
                file_key=f"k{number}", file_name=f"v{number}.pdf", is_deleted=False,
            ))
        db = make_mock_db(make_result(items=[document]))

        data = await service.get_compliance_locker_overview(db, SAMPLE_USER_ID, SAMPLE_USER)

        doc = data["documents"][0]
        assert doc["metadata"] == {"source": "upload"}
        assert [v["version_number"] for v in doc["versions"]] == [7, 6, 5, 4, 3]
        assert doc["obligations"][0]["reminders"][0]["id"] == str(REMINDER_ID)
        assert [r["reminder_type"] for r in doc["reminders"]] == ["signature"]
        assert data["summary"]["obligations"]["open_count"] == 1
        assert data["summary"]["reminders"]["total"] == 2
        assert len(data["audit_log"]) == 9

    def test_audit_log_merges_versions_and_reminders_newest_first(self):
        document = _document()
        version = ComplianceDocumentVersion(
            id=uuid.uuid4(), document_id=DOCUMENT_ID, version_number=2, file_key="k2",
            file_name="v2.pdf", uploaded_by_id=SAMPLE_USER_ID, created_at=NOW - timedelta(hours=1),
            metadata_={"_etag": "x", "pages": 4},
        )
        reminder = _reminder(
            document, status="sent", created_at=NOW - timedelta(days=2), updated_at=NOW,
        )
        stale = _reminder(document, id=uuid.uuid4(), created_at=NOW - timedelta(days=9))

        log = service.build_audit_log([version], [stale, reminder])

        assert [e["id"] for e in log] == [
            f"reminder-{REMINDER_ID}", f"version-{version.id}", f"reminder-{stale.id}",
        ]
        assert log[0]["label"] == "Renewal reminder"
        assert log[0]["summary"] == "Reminder sent"
        assert log[0]["occurred_at"] == NOW.isoformat()
        assert log[1]["summary"] == "Document version uploaded"
        assert log[1]["actor_id"] == str(SAMPLE_USER_ID)
        assert log[1]["metadata"] == {"pages": 4}

    def test_audit_log_keeps_the_latest_fifty_entries(self):
        document = _document()
        reminders = [
            _reminder(document, id=uuid.uuid4(), created_at=NOW - timedelta(minutes=i))
            for i in range(60)
        ]

        log = service.build_audit_log([], reminders)

        assert len(log) == 50
        assert log[0]["occurred_at"] == NOW.isoformat()
        assert log[-1]["occurred_at"] == (NOW - timedelta(minutes=49)).isoformat()

    async def test_overview_is_cached_per_owner(self, monkeypatch):
        remember = AsyncMock(return_value={"documents": []})
        monkeypatch.setattr(cache, "remember", remember)

        await service.get_compliance_locker_overview(
            make_mock_db(), SAMPLE_USER_ID, SAMPLE_USER, use_cache=False
        )

        key, ttl = remember.await_args.args[:2]
        assert key == f"compliance:locker:{SAMPLE_USER_ID}:overview"
        assert ttl == 45
        assert remember.await_args.kwargs["bypass"] is True

    async def test_other_users_cannot_read_locker(self):
        with pytest.raises(AuthorizationError):
            await service.get_compliance_locker_overview(make_mock_db(), OTHER_USER_ID, SAMPLE_USER)


# ── Document creation ─────────────────────────────────────────────────────────


class TestCreateDocument:
    async def test_create_with_version_obligations_and_reminders(self, invalidate_prefix):
        db = make_mock_db()
        body = ComplianceDocumentCreate(
            title="  Contractor agreement ",
            storage_path="lockers/ada/contractor.pdf",
            counterparty_email="Legal@Acme.COM",
            tags=["ip", "  ", "payments"],
            version={"file_key": "k/1", "file_name": "contractor.pdf", "sha256": "ABCDEF"},
            obligations=[
                {"description": "Deliver monthly timesheets", "clause_reference": "7.1"},
                {"description": "Maintain insurance", "status": "in_progress"},
            ],
            reminders=[
                {"reminder_type": "Obligation", "clause_reference": "7.1", "due_at": NOW},
                {"reminder_type": "renewal"},
            ],
        )

        data = await service.create_compliance_document(db, SAMPLE_USER_ID, body, SAMPLE_USER)

        document = added_objects(db, ComplianceDocument)[0]
        version = added_objects(db, ComplianceDocumentVersion)[0]
        obligations = added_objects(db, ComplianceObligation)
        reminders = added_objects(db, ComplianceReminder)
        assert document.title == "Contractor agreement"
        assert document.status == "awaiting_signature"
        assert document.workspace_id == SAMPLE_WORKSPACE_ID
        assert document.counterparty_email == "legal@acme.com"
        assert document.latest_version_id == version.id
        assert version.version_number == 1
        assert version.sha256 == "abcdef"
        assert version.uploaded_by_id == SAMPLE_USER_ID
        assert obligations[0].status == "open"
        assert reminders[0].obligation_id == obligations[0].id
        assert reminders[0].reminder_type == "obligation"
        assert reminders[1].obligation_id is None
        assert reminders[1].due_at is not None
        assert data["tags"] == ["ip", "payments"]
        assert data["obligations"][0]["reminders"][0]["reminder_type"] == "obligation"
        assert [r["reminder_type"] for r in data["reminders"]] == ["renewal"]
        db.flush.assert_awaited_once()
        db.commit.assert_awaited_once()
        invalidate_prefix.assert_awaited_once_with(f"compliance:locker:{SAMPLE_USER_ID}")

    async def test_expiry_before_effective(self, invalidate_prefix):
        db = make_mock_db()
        body = ComplianceDocumentCreate(
            title="NDA",
            storage_path="x.pdf",
            effective_date=NOW,
            expiry_date=NOW - timedelta(days=1),
        )
        with pytest.raises(ValidationError, match="expiry_date cannot be before effective_date"):
            await service.create_compliance_document(db, SAMPLE_USER_ID, body, SAMPLE_USER)
        db.add.assert_not_called()

    async def test_admin_can_create_for_owner(self, invalidate_prefix):
        db = make_mock_db()
        body = ComplianceDocumentCreate(title="NDA", storage_path="x.pdf")
        await service.create_compliance_document(db, SAMPLE_USER_ID, body, ADMIN_USER)
        assert added_objects(db, ComplianceDocument)[0].owner_id == SAMPLE_USER_ID

    async def test_non_owner_is_forbidden(self):
        db = make_mock_db()
        body = ComplianceDocumentCreate(title="NDA", storage_path="x.pdf")
        with pytest.raises(AuthorizationError):
            await service.create_compliance_document(db, OTHER_USER_ID, body, SAMPLE_USER)


# ── Versions ──────────────────────────────────────────────────────────────────


class TestAddVersion:
    async def test_next_version_number_and_document_updates(self, invalidate_prefix):
        document = _document(status="awaiting_signature", metadata_={"source": "upload"})
        db = make_mock_db(make_result(one=document), make_result(scalar=3))
        body = DocumentVersionCreate(
            file_key="k/4",
            file_name="signed.pdf",
            status="active",
            document_metadata={"signed_via": "docusign"},
        )

        data = await service.add_document_version(db, DOCUMENT_ID, body, SAMPLE_USER)

        version = added_objects(db, ComplianceDocumentVersion)[0]
        assert version.version_number == 4
        assert document.latest_version_id == version.id
        assert document.status == "active"
        assert document.metadata_ == {"source": "upload", "signed_via": "docusign"}
        assert data["version"]["version_number"] == 4
        invalidate_prefix.assert_awaited_once_with(f"compliance:locker:{SAMPLE_USER_ID}")

    async def test_first_version_when_none_exist(self, invalidate_prefix):
        db = make_mock_db(make_result(one=_document()), make_result(scalar=None))
        await service.add_document_version(
            db, DOCUMENT_ID, DocumentVersionCreate(file_key="k", file_name="a.pdf"), SAMPLE_USER
        )
        assert added_objects(db, ComplianceDocumentVersion)[0].version_number == 1

    async def test_missing_document(self):
        db = make_mock_db(make_result(one=None))
        with pytest.raises(NotFoundError):
            await service.add_document_version(
                db, DOCUMENT_ID, DocumentVersionCreate(file_key="k", file_name="a.pdf"), SAMPLE_USER
            )


# ── Reminders ─────────────────────────────────────────────────────────────────


class TestReminders:
    async def test_acknowledge_defaults(self, invalidate_prefix):
        document = _document()
        reminder = _reminder(document, metadata_={"channel_ref": "abc"})
        reminder.document = document
        db = make_mock_db(make_result(one=reminder))

        data = await service.acknowledge_reminder(db, REMINDER_ID, None, SAMPLE_USER)

        assert reminder.status == "acknowledged"
        assert reminder.acknowledged_at is not None
        assert reminder.metadata_ == {
            "channel_ref": "abc",
            "last_actor_id": str(SAMPLE_USER_ID),
            "last_actor_status": "acknowledged",
        }
        assert data["status"] == "acknowledged"

    async def test_sent_stamps_sent_at_once(self, invalidate_prefix):
        document = _document()
        first_sent = NOW - timedelta(days=1)
        reminder = _reminder(document, sent_at=first_sent)
        reminder.document = document
        db = make_mock_db(make_result(one=reminder))

        await service.acknowledge_reminder(db, REMINDER_ID, "sent", SAMPLE_USER)

        assert reminder.status == "sent"
        assert reminder.sent_at == first_sent
        assert reminder.acknowledged_at is None

    async def test_other_owner_is_forbidden(self):
        document = _document(owner_id=OTHER_USER_ID)
        reminder = _reminder(document)
        reminder.document = document
        db = make_mock_db(make_result(one=reminder))
        with pytest.raises(AuthorizationError):
            await service.acknowledge_reminder(db, REMINDER_ID, "dismissed", SAMPLE_USER)

    async def test_unknown_reminder(self):
        db = make_mock_db(make_result(one=None))
        with pytest.raises(NotFoundError, match="Reminder not found"):
            await service.acknowledge_reminder(db, REMINDER_ID, None, SAMPLE_USER)
