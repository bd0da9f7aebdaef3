"""Tests for agency project management and auto-match candidates."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
from conftest import SAMPLE_USER_ID, SAMPLE_WORKSPACE_ID, added_objects, make_mock_db, make_result

from gigvora.core.errors import ConflictError, NotFoundError, ValidationError
from gigvora.models.agency_projects import AgencyProject, AutoMatchCandidate
from gigvora.modules.agency_projects import service
from gigvora.modules.agency_projects.schemas import (
    AgencyProjectCreate,
    AgencyProjectUpdate,
    AutoMatchCreate,
    AutoMatchUpdate,
)

pytestmark = pytest.mark.anyio

PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-000000000101")
MATCH_ID = uuid.UUID("00000000-0000-0000-0000-000000000102")


def _project(**overrides) -> AgencyProject:
    fields = dict(
        id=PROJECT_ID,
        workspace_id=SAMPLE_WORKSPACE_ID,
        title="Website relaunch",
        status="active",
        budget_amount=Decimal("12000.00"),
        budget_spent=Decimal("4500.00"),
        currency_code="USD",
        is_deleted=False,
    )
    fields.update(overrides)
    return AgencyProject(**fields)


def _match(project: AgencyProject, **overrides) -> AutoMatchCandidate:
    fields = dict(
        id=MATCH_ID,
        project_id=project.id,
        freelancer_name="Grace Hopper",
        score=Decimal("88.5"),
        status="pending",
        is_deleted=False,
    )
    fields.update(overrides)
    match = AutoMatchCandidate(**fields)
    project.matches.append(match)
    return match


class TestProjectSummary:
    def test_summary_counts_statuses_budgets_and_matches(self):
        active = _project()
        _match(active)
        _match(active, id=uuid.uuid4(), freelancer_name="Alan Turing", status="accepted")
        _match(active, id=uuid.uuid4(), freelancer_name="Gone", status="rejected", is_deleted=True)
        planning = _project(
            id=uuid.uuid4(), status="planning", budget_amount=None, budget_spent=Decimal("0")
        )

        summary = service.build_project_summary([active, planning])

        assert summary["project_count"] == 2
        assert summary["by_status"]["active"] == 1
        assert summary["by_status"]["planning"] == 1
        assert summary["by_status"]["cancelled"] == 0
        assert summary["total_budget"] == 12000.0
        assert summary["total_spent"] == 4500.0
        assert summary["matches"] == {"accepted": 1, "pending": 1, "rejected": 0}


class TestListProjects:
    async def test_list_serializes_projects_with_matches(self):
        project = _project(metadata_={"brief": "v2", "_internal": True})
        _match(project)
        db = make_mock_db(make_result(items=[project]))

        data = await service.list_agency_projects(db, SAMPLE_WORKSPACE_ID)

        assert data["projects"][0]["metadata"] == {"brief": "v2"}
        assert data["projects"][0]["matches"][0]["freelancer_name"] == "Grace Hopper"
        assert data["summary"]["project_count"] == 1

    async def test_unknown_status_filter(self):
        db = make_mock_db()
        with pytest.raises(ValidationError):
            await service.list_agency_projects(db, SAMPLE_WORKSPACE_ID, status="someday")
        db.execute.assert_not_called()

    async def test_get_missing_project(self):
        db = make_mock_db(make_result(one=None))
        with pytest.raises(NotFoundError, match="Agency project not found"):
            await service.get_agency_project(db, SAMPLE_WORKSPACE_ID, PROJECT_ID)


class TestCreateProject:
    async def test_create_applies_defaults_and_audit_fields(self):
        reload = make_result()
        db = make_mock_db(reload)
        reload.scalar_one_or_none.side_effect = lambda: added_objects(db, AgencyProject)[0]
        body = AgencyProjectCreate(
            title="  Mobile app MVP  ",
            currency_code="gbp",
            budget_amount=Decimal("8000"),
            skills=["React Native", " react native ", "Figma", ""],
        )

        data = await service.create_agency_project(db, SAMPLE_WORKSPACE_ID, body, SAMPLE_USER_ID)

        project = added_objects(db, AgencyProject)[0]
        assert project.title == "Mobile app MVP"
        assert project.status == "planning"
        assert project.currency_code == "GBP"
        assert project.budget_spent == Decimal("0")
        assert project.auto_match_enabled is True
        assert project.skills == ["React Native", "react native", "Figma"]
        assert project.created_by == SAMPLE_USER_ID
        assert project.updated_by == SAMPLE_USER_ID
        assert data["title"] == "Mobile app MVP"
        assert data["matches"] == []
        db.commit.assert_awaited_once()

    async def test_due_date_before_start(self):
        db = make_mock_db()
        body = AgencyProjectCreate(
            title="Audit", start_date=date(2026, 5, 1), due_date=date(2026, 4, 1)
        )
        with pytest.raises(ValidationError, match="due_date cannot be before start_date"):
            await service.create_agency_project(db, SAMPLE_WORKSPACE_ID, body, SAMPLE_USER_ID)

    async def test_negative_budget(self):
        db = make_mock_db()
        body = AgencyProjectCreate(title="Audit", budget_amount=Decimal("-5"))
        with pytest.raises(ValidationError, match="budget_amount"):
            await service.create_agency_project(db, SAMPLE_WORKSPACE_ID, body, SAMPLE_USER_ID)

    async def test_blank_title(self):
        db = make_mock_db()
        with pytest.raises(ValidationError, match="title is required"):
            await service.create_agency_project(
                db, SAMPLE_WORKSPACE_ID, AgencyProjectCreate(title="   "), SAMPLE_USER_ID
            )


class TestUpdateProject:
    async def test_partial_update_keeps_other_fields(self):
        project = _project(start_date=date(2026, 1, 10), client_name="Acme")
        db = make_mock_db(make_result(one=project), make_result(one=project))
        other_actor = uuid.uuid4()

        data = await service.update_agency_project(
            db,
            SAMPLE_WORKSPACE_ID,
            PROJECT_ID,
            AgencyProjectUpdate(status="AT_RISK", budget_spent=Decimal("6000")),
            other_actor,
        )

        assert project.status == "at_risk"
        assert project.budget_spent == Decimal("6000")
        assert project.client_name == "Acme"
        assert project.updated_by == other_actor
        assert data["status"] == "at_risk"

    async def test_update_checks_dates_against_stored_start(self):
        project = _project(start_date=date(2026, 3, 1))
        db = make_mock_db(make_result(one=project))
        with pytest.raises(ValidationError, match="due_date"):
            await service.update_agency_project(
                db,
                SAMPLE_WORKSPACE_ID,
                PROJECT_ID,
                AgencyProjectUpdate(due_date=date(2026, 2, 1)),
                SAMPLE_USER_ID,
            )
        db.commit.assert_not_called()


class TestAutoMatches:
    async def test_add_match(self):
        project = _project()
        db = make_mock_db(make_result(one=project))

        data = await service.add_auto_match(
            db,
            SAMPLE_WORKSPACE_ID,
            PROJECT_ID,
            AutoMatchCreate(freelancer_name="Ada Lovelace", freelancer_email=" ADA@Example.com ", score=Decimal("91")),
        )

        match = added_objects(db, AutoMatchCandidate)[0]
        assert match.project_id == PROJECT_ID
        assert match.status == "pending"
        assert match.responded_at is None
        assert match.freelancer_email == "ada@example.com"
        assert data["score"] == 91.0

    async def test_duplicate_name_conflicts(self):
        project = _project()
        _match(project)
        db = make_mock_db(make_result(one=project))
        with pytest.raises(ConflictError):
            await service.add_auto_match(
                db, SAMPLE_WORKSPACE_ID, PROJECT_ID, AutoMatchCreate(freelancer_name="grace hopper")
            )

    async def test_score_above_hundred(self):
        db = make_mock_db(make_result(one=_project()))
        with pytest.raises(ValidationError, match="between 0 and 100"):
            await service.add_auto_match(
                db,
                SAMPLE_WORKSPACE_ID,
                PROJECT_ID,
                AutoMatchCreate(freelancer_name="Ada", score=Decimal("120")),
            )

    async def test_accepting_stamps_responded_at(self):
        project = _project()
        match = _match(project)
        db = make_mock_db(make_result(one=project))

        data = await service.update_auto_match(
            db, SAMPLE_WORKSPACE_ID, PROJECT_ID, MATCH_ID, AutoMatchUpdate(status="accepted")
        )

        assert match.status == "accepted"
        assert match.responded_at is not None
        assert data["status"] == "accepted"

    async def test_back_to_pending_clears_responded_at(self):
        project = _project()
        match = _match(project, status="rejected")
        db = make_mock_db(make_result(one=project))
        await service.update_auto_match(
            db, SAMPLE_WORKSPACE_ID, PROJECT_ID, MATCH_ID, AutoMatchUpdate(status="pending")
        )
        assert match.responded_at is None

    async def test_unknown_match(self):
        db = make_mock_db(make_result(one=_project()))
        with pytest.raises(NotFoundError, match="Auto-match candidate not found"):
            await service.update_auto_match(
                db, SAMPLE_WORKSPACE_ID, PROJECT_ID, uuid.uuid4(), AutoMatchUpdate(status="accepted")
            )
