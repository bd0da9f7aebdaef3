"""Seed demo workspace template categories and templates.

Usage:
    python -m gigvora.modules.workspace_templates.seed
"""

from decimal import Decimal

import structlog
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session as SyncSession

from gigvora.core.config import settings
from gigvora.models.workspace_templates import WorkspaceTemplate, WorkspaceTemplateCategory

logger = structlog.get_logger()

DEMO_CATEGORIES = [
    {
        "slug": "client-delivery",
        "name": "Client delivery",
        "description": "Agency playbooks for scoping, delivering and reporting on client work.",
        "icon": "briefcase",
        "sort_order": 1,
    },
    {
        "slug": "talent-operations",
        "name": "Talent operations",
        "description": "Hiring, onboarding and bench management for companies and headhunters.",
        "icon": "users",
        "sort_order": 2,
    },
    {
        "slug": "freelance-studio",
        "name": "Freelance studio",
        "description": "Solo workspaces for proposals, retainers and invoicing.",
        "icon": "sparkles",
        "sort_order": 3,
    },
]

DEMO_TEMPLATES = [
    {
        "category": "client-delivery",
        "slug": "agency-retainer-delivery",
        "name": "Agency retainer delivery",
        "tagline": "Monthly retainers with sprint reviews and client sign-off.",
        "industry": "marketing",
        "workflow_type": "retainer",
        "workspace_type": "agency",
        "recommended_team_size": 5,
        "estimated_duration_days": 90,
        "automation_level": 72,
        "quality_score": Decimal("91.50"),
        "requirement_checklist": ["Signed MSA", "Brand guidelines", "Access to analytics"],
        "onboarding_sequence": ["Kickoff call", "Channel setup", "First sprint plan"],
        "deliverables": ["Monthly performance report", "Campaign assets"],
        "metrics": ["On-time delivery rate", "Client satisfaction"],
    },
    {
        "category": "client-delivery",
        "slug": "product-launch-squad",
        "name": "Product launch squad",
        "tagline": "Cross-functional squad for a fixed-scope launch.",
        "industry": "technology",
        "workflow_type": "project",
        "workspace_type": "agency",
        "recommended_team_size": 7,
        "estimated_duration_days": 60,
        "automation_level": 58,
        "quality_score": Decimal("88.00"),
        "requirement_checklist": ["Launch brief", "Budget approval"],
        "onboarding_sequence": ["Discovery workshop", "Milestone plan"],
        "deliverables": ["Launch plan", "Go-to-market assets"],
        "metrics": ["Milestones hit", "Budget variance"],
    },
    {
        "category": "talent-operations",
        "slug": "contract-hiring-pipeline",
        "name": "Contract hiring pipeline",
        "tagline": "Source, screen and onboard contractors with escrowed milestones.",
        "industry": "recruiting",
        "workflow_type": "pipeline",
        "workspace_type": "company",
        "recommended_team_size": 3,
        "estimated_duration_days": 30,
        "automation_level": 80,
        "quality_score": Decimal("93.25"),
        "requirement_checklist": ["Role description", "Rate card", "Compliance pack"],
        "onboarding_sequence": ["Intake form", "Shortlist review", "Offer"],
        "deliverables": ["Shortlist", "Signed contract"],
        "metrics": ["Time to hire", "Offer acceptance rate"],
    },
    {
        "category": "freelance-studio",
        "slug": "solo-consulting-studio",
        "name": "Solo consulting studio",
        "tagline": "Proposals, retainers and invoices for independent consultants.",
        "industry": "consulting",
        "workflow_type": "retainer",
        "workspace_type": "freelancer",
        "recommended_team_size": 1,
        "estimated_duration_days": 30,
        "automation_level": 65,
        "quality_score": Decimal("86.75"),
        "requirement_checklist": ["Service catalogue", "Payout account"],
        "onboarding_sequence": ["Profile setup", "First proposal"],
        "deliverables": ["Proposal", "Invoice"],
        "metrics": ["Win rate", "Average project value"],
    },
]


def seed_workspace_templates() -> int:
    """Insert demo categories and templates idempotently. Returns count of new templates."""
    engine = create_engine(settings.DATABASE_URL_SYNC)
    created = 0

    with SyncSession(engine) as session:
        categories: dict[str, WorkspaceTemplateCategory] = {}
        for cat_data in DEMO_CATEGORIES:
            category = session.execute(
                select(WorkspaceTemplateCategory).where(
                    WorkspaceTemplateCategory.slug == cat_data["slug"]
                )
            ).scalar_one_or_none()
            if category is None:
                category = WorkspaceTemplateCategory(**cat_data)
                session.add(category)
                session.flush()
                logger.info("template_category_created", slug=cat_data["slug"])
            categories[cat_data["slug"]] = category

        for tmpl_data in DEMO_TEMPLATES:
            exists = session.execute(
                select(WorkspaceTemplate).where(WorkspaceTemplate.slug == tmpl_data["slug"])
            ).scalar_one_or_none()
            if exists:
                logger.info("template_exists", slug=tmpl_data["slug"])
                continue

            fields = {k: v for k, v in tmpl_data.items() if k != "category"}
            session.add(
                WorkspaceTemplate(category_id=categories[tmpl_data["category"]].id, **fields)
            )
            created += 1
            logger.info("template_created", slug=tmpl_data["slug"])

        session.commit()

    logger.info("seed_complete", created=created, total=len(DEMO_TEMPLATES))
    return created


if __name__ == "__main__":
    seed_workspace_templates()
