"""Tests for the workspace template catalogue."""

from __future__ import annotations

import json
import uuid
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from conftest import make_mock_db, make_result

from gigvora.core import cache
from gigvora.core.errors import NotFoundError, ValidationError
from gigvora.models.workspace_templates import WorkspaceTemplate, WorkspaceTemplateCategory
from gigvora.modules.workspace_templates import seed, service

pytestmark = pytest.mark.anyio

CATEGORY_ID = uuid.UUID("00000000-0000-0000-0000-000000000401")


def _category() -> WorkspaceTemplateCategory:
    return WorkspaceTemplateCategory(
        id=CATEGORY_ID, slug="client-delivery", name="Client delivery", sort_order=1, is_deleted=False
    )


def _template(**overrides) -> WorkspaceTemplate:
    fields = dict(
        id=uuid.uuid4(),
        slug="agency-retainer-delivery",
        name="Agency retainer delivery",
        workspace_type="agency",
        automation_level=72,
        quality_score=Decimal("91.50"),
        status="active",
        visibility="public",
        deliverables=["Monthly report"],
        is_deleted=False,
    )
    fields.update(overrides)
    return WorkspaceTemplate(**fields)


class TestFilters:
    def test_defaults(self):
        assert service.normalize_filters(None) == {
            "category": None,
            "workspace_type": None,
            "industry": None,
            "search": None,
            "status": "active",
            "visibility": "public",
            "page": 1,
            "page_size": 12,
        }

    def test_normalizes_case_and_whitespace(self):
        filters = service.normalize_filters({
            "category": " Client-Delivery ",
            "workspace_type": "Agency",
            "industry": "Marketing",
            "search": "  retainer ",
            "page": "2",
            "page_size": 24,
        })
        assert filters["category"] == "client-delivery"
        assert filters["workspace_type"] == "agency"
        assert filters["industry"] == "marketing"
        assert filters["search"] == "retainer"
        assert filters["page"] == 2
        assert filters["page_size"] == 24

    def test_rejects_unknown_workspace_type(self):
        with pytest.raises(ValidationError):
            service.normalize_filters({"workspace_type": "guild"})

    def test_rejects_oversized_page(self):
        with pytest.raises(ValidationError, match="page_size"):
            service.normalize_filters({"page_size": 500})

    def test_search_wildcards_match_literally(self):
        filters = service.normalize_filters({"search": "100%_off"})

        compiled = service._filtered_statement(filters).compile()

        assert "ESCAPE" in str(compiled)
        assert "%100\\%\\_off%" in compiled.params.values()


class TestSerialization:
    def test_list_fields_default_to_empty(self):
        template = _template(metadata_={"_seed": True, "owner": "ops"})
        template.category = _category()

        data = service.serialize_template(template)

        assert data["requirement_checklist"] == []
        assert data["onboarding_sequence"] == []
        assert data["deliverables"] == ["Monthly report"]
        assert data["metrics"] == []
        assert data["metadata"] == {"owner": "ops"}
        assert data["category"]["slug"] == "client-delivery"

    def test_stats(self):
        stats = service.build_stats([
            _template(automation_level=70, quality_score=Decimal("90")),
            _template(automation_level=75, quality_score=None),
            _template(automation_level=80, quality_score=Decimal("85.25")),
        ])
        assert stats == {
            "average_automation_level": 75.0,
            "average_quality_score": 87.6,
            "template_count": 3,
        }

    def test_stats_empty(self):
        assert service.build_stats([]) == {
            "average_automation_level": None,
            "average_quality_score": None,
            "template_count": 0,
        }


class TestCatalogue:
    async def test_list_paginates(self):
        template = _template()
        template.category = _category()
        db = make_mock_db(
            make_result(scalar=25),
            make_result(items=[template]),
            make_result(items=[_category()]),
        )

        data = await service.list_workspace_templates(db, {"page": 3, "page_size": 12})

        assert data["pagination"] == {"page": 3, "page_size": 12, "total": 25, "total_pages": 3}
        assert data["items"][0]["slug"] == "agency-retainer-delivery"
        assert data["categories"][0]["name"] == "Client delivery"
        assert data["stats"]["template_count"] == 1
        page_stmt = db.execute.await_args_list[1].args[0]
        assert page_stmt._offset_clause.value == 24

    async def test_empty_catalogue(self):
        db = make_mock_db(make_result(scalar=0), make_result(items=[]), make_result(items=[]))
        data = await service.list_workspace_templates(db)
        assert data["pagination"]["total_pages"] == 0
        assert data["items"] == []

    async def test_cache_key_is_built_from_normalized_filters(self, monkeypatch):
        remember = AsyncMock(return_value={"items": []})
        monkeypatch.setattr(cache, "remember", remember)

        await service.list_workspace_templates(make_mock_db(), {"workspace_type": "AGENCY"})

        key, ttl = remember.await_args.args[:2]
        expected = service.normalize_filters({"workspace_type": "agency"})
        assert key == f"workspace:templates:list:{json.dumps(expected, sort_keys=True)}"
        assert ttl == 90

    async def test_get_by_slug(self):
        template = _template()
        db = make_mock_db(make_result(one=template))
        data = await service.get_workspace_template(db, " Agency-Retainer-Delivery ")
        assert data["name"] == "Agency retainer delivery"
        assert data["category"] is None

    async def test_get_unknown_slug(self):
        db = make_mock_db(make_result(one=None))
        with pytest.raises(NotFoundError, match="Workspace template not found"):
            await service.get_workspace_template(db, "nope")


class TestSeedData:
    def test_templates_reference_known_categories(self):
        category_slugs = {c["slug"] for c in seed.DEMO_CATEGORIES}
        assert all(t["category"] in category_slugs for t in seed.DEMO_TEMPLATES)

    def test_template_slugs_are_unique(self):
        slugs = [t["slug"] for t in seed.DEMO_TEMPLATES]
        assert len(slugs) == len(set(slugs))

    def test_workspace_types_are_filterable(self):
        assert {t["workspace_type"] for t in seed.DEMO_TEMPLATES} <= service.WORKSPACE_TYPES
