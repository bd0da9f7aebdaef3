"""Initial schema: workspaces, users, wallet, disputes, agency projects, presence,
workspace templates and compliance locker.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-01 00:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

UUID = postgresql.UUID(as_uuid=True)
JSONB = postgresql.JSONB()
MONEY = sa.Numeric(18, 2)

user_type = postgresql.ENUM(
    "USER", "FREELANCER", "AGENCY", "COMPANY", "HEADHUNTER", "MENTOR", "ADMIN",
    name="usertype",
    create_type=False,
)
workspace_type = postgresql.ENUM("AGENCY", "COMPANY", "FREELANCER", name="workspacetype", create_type=False)


def _pk() -> sa.Column:
    return sa.Column("id", UUID, nullable=False, server_default=sa.text("gen_random_uuid()"), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()"))


def _crud_columns() -> list[sa.Column]:
    return [
        _pk(),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default="false"),
    ]


def _fk(column: str, target: str, ondelete: str, nullable: bool = True) -> sa.Column:
    return sa.Column(column, UUID, sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _ts(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _metadata() -> sa.Column:
    return sa.Column("metadata", JSONB, nullable=True)


def upgrade() -> None:
    bind = op.get_bind()
    user_type.create(bind, checkfirst=True)
    workspace_type.create(bind, checkfirst=True)

    # ── Core ────────────────────────────────────────────────────────────────
    op.create_table(
        "workspaces",
        *_crud_columns(),
        sa.Column("name", sa.String(180), nullable=False),
        sa.Column("slug", sa.String(180), nullable=False),
        sa.Column("workspace_type", workspace_type, nullable=False),
        sa.Column("owner_id", UUID, nullable=True),
        sa.Column("settings", JSONB, nullable=False, server_default="{}"),
    )
    op.create_index("ix_workspaces_slug", "workspaces", ["slug"], unique=True)

    op.create_table(
        "users",
        *_crud_columns(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("first_name", sa.String(120), nullable=False),
        sa.Column("last_name", sa.String(120), nullable=False),
        sa.Column("user_type", user_type, nullable=False),
        _fk("workspace_id", "workspaces.id", "SET NULL"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _ts("last_seen_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_workspace_id", "users", ["workspace_id"])

    # ── Wallet ──────────────────────────────────────────────────────────────
    op.create_table(
        "wallet_accounts",
        *_crud_columns(),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        _fk("workspace_id", "workspaces.id", "SET NULL"),
        sa.Column("account_type", sa.String(40), nullable=False, server_default="user"),
        sa.Column("currency_code", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("current_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("available_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("pending_hold_balance", MONEY, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        _ts("last_reconciled_at"),
        _metadata(),
    )
    op.create_index("ix_wallet_accounts_user_id", "wallet_accounts", ["user_id"])
    op.create_index("ix_wallet_accounts_user_type", "wallet_accounts", ["user_id", "account_type"])

    op.create_table(
        "wallet_ledger_entries",
        _pk(),
        _created_at(),
        _fk("wallet_account_id", "wallet_accounts.id", "CASCADE", nullable=False),
        sa.Column("entry_type", sa.String(20), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency_code", sa.String(3), nullable=False),
        sa.Column("reference", sa.String(120), nullable=True),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("balance_after", MONEY, nullable=True),
        _ts("occurred_at", nullable=False),
        _metadata(),
    )
    op.create_index(
        "ix_wallet_ledger_account_occurred", "wallet_ledger_entries", ["wallet_account_id", "occurred_at"]
    )

    op.create_table(
        "wallet_funding_sources",
        *_crud_columns(),
        _fk("wallet_account_id", "wallet_accounts.id", "CASCADE", nullable=False),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        sa.Column("type", sa.String(40), nullable=False, server_default="bank_account"),
        sa.Column("label", sa.String(160), nullable=False),
        sa.Column("institution_name", sa.String(160), nullable=True),
        sa.Column("last_four", sa.String(8), nullable=True),
        sa.Column("currency_code", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("provider", sa.String(80), nullable=True),
        sa.Column("external_reference", sa.String(160), nullable=True),
        _ts("connected_at"),
        _ts("last_verified_at"),
        _ts("disabled_at"),
        _metadata(),
    )
    op.create_index("ix_wallet_funding_sources_account", "wallet_funding_sources", ["wallet_account_id"])

    op.create_table(
        "wallet_transfer_rules",
        *_crud_columns(),
        _fk("wallet_account_id", "wallet_accounts.id", "CASCADE", nullable=False),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        _fk("funding_source_id", "wallet_funding_sources.id", "SET NULL"),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("transfer_type", sa.String(20), nullable=False, server_default="payout"),
        sa.Column("cadence", sa.String(20), nullable=False, server_default="monthly"),
        sa.Column("threshold_amount", MONEY, nullable=True),
        sa.Column("threshold_currency", sa.String(3), nullable=True),
        sa.Column("execution_day", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        _ts("last_executed_at"),
        _ts("next_run_at"),
        sa.Column("notes", sa.Text(), nullable=True),
        _metadata(),
        sa.CheckConstraint("threshold_amount >= 0", name="ck_wallet_transfer_rules_threshold"),
        sa.CheckConstraint(
            "execution_day IS NULL OR (execution_day BETWEEN 1 AND 31)",
            name="ck_wallet_transfer_rules_execution_day",
        ),
    )
    op.create_index(
        "ix_wallet_transfer_rules_account_status", "wallet_transfer_rules", ["wallet_account_id", "status"]
    )

    op.create_table(
        "wallet_transfer_requests",
        *_crud_columns(),
        _fk("wallet_account_id", "wallet_accounts.id", "CASCADE", nullable=False),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        _fk("funding_source_id", "wallet_funding_sources.id", "SET NULL"),
        _fk("transfer_rule_id", "wallet_transfer_rules.id", "SET NULL"),
        sa.Column("transfer_type", sa.String(20), nullable=False, server_default="payout"),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("currency_code", sa.String(3), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("requested_by_id", UUID, nullable=True),
        _ts("scheduled_at"),
        _ts("processed_at"),
        sa.Column("failure_reason", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _metadata(),
        sa.CheckConstraint("amount > 0", name="ck_wallet_transfer_requests_amount"),
    )
    op.create_index(
        "ix_wallet_transfer_requests_account_status", "wallet_transfer_requests", ["wallet_account_id", "status"]
    )

    # ── Disputes ────────────────────────────────────────────────────────────
    op.create_table(
        "escrow_transactions",
        *_crud_columns(),
        sa.Column("reference", sa.String(64), nullable=False, unique=True),
        _fk("initiated_by_id", "users.id", "CASCADE", nullable=False),
        _fk("counterparty_id", "users.id", "SET NULL"),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("net_amount", MONEY, nullable=True),
        sa.Column("currency_code", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("reference_type", sa.String(40), nullable=True),
        sa.Column("reference_id", sa.String(64), nullable=True),
        sa.Column("milestone_label", sa.String(160), nullable=True),
        _ts("scheduled_release_at"),
        _metadata(),
    )
    op.create_index("ix_escrow_transactions_initiator", "escrow_transactions", ["initiated_by_id"])
    op.create_index("ix_escrow_transactions_counterparty", "escrow_transactions", ["counterparty_id"])
    op.create_index("ix_escrow_transactions_status", "escrow_transactions", ["status"])

    op.create_table(
        "dispute_cases",
        *_crud_columns(),
        _fk("escrow_transaction_id", "escrow_transactions.id", "CASCADE", nullable=False),
        _fk("opened_by_id", "users.id", "CASCADE", nullable=False),
        _fk("assigned_to_id", "users.id", "SET NULL"),
        sa.Column("stage", sa.String(20), nullable=False, server_default="intake"),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("priority", sa.String(10), nullable=False, server_default="medium"),
        sa.Column("reason_code", sa.String(80), nullable=False),
        sa.Column("summary", sa.String(500), nullable=False),
        _ts("customer_deadline_at"),
        _ts("provider_deadline_at"),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        _ts("opened_at", nullable=False),
        _ts("resolved_at"),
        _metadata(),
    )
    op.create_index("ix_dispute_cases_transaction", "dispute_cases", ["escrow_transaction_id"])
    op.create_index("ix_dispute_cases_opened_by", "dispute_cases", ["opened_by_id"])
    op.create_index("ix_dispute_cases_stage_status", "dispute_cases", ["stage", "status"])

    op.create_table(
        "dispute_events",
        _pk(),
        _created_at(),
        _fk("dispute_case_id", "dispute_cases.id", "CASCADE", nullable=False),
        _fk("actor_id", "users.id", "SET NULL"),
        sa.Column("actor_type", sa.String(20), nullable=False),
        sa.Column("action_type", sa.String(30), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("evidence_key", sa.String(512), nullable=True),
        sa.Column("evidence_url", sa.String(1024), nullable=True),
        sa.Column("evidence_file_name", sa.String(255), nullable=True),
        sa.Column("evidence_content_type", sa.String(120), nullable=True),
        _ts("event_at", nullable=False),
        _metadata(),
    )
    op.create_index("ix_dispute_events_case_event_at", "dispute_events", ["dispute_case_id", "event_at"])

    op.create_table(
        "dispute_workflow_settings",
        *_crud_columns(),
        _fk("workspace_id", "workspaces.id", "CASCADE"),
        sa.Column("response_sla_hours", sa.Integer(), nullable=False, server_default="24"),
        sa.Column("resolution_sla_hours", sa.Integer(), nullable=False, server_default="120"),
        sa.Column("auto_escalate_hours", sa.Integer(), nullable=True),
        sa.Column("default_assignee_id", UUID, nullable=True),
        sa.Column("reason_codes", JSONB, nullable=True),
    )

    # ── Agency projects ─────────────────────────────────────────────────────
    op.create_table(
        "agency_projects",
        *_crud_columns(),
        sa.Column("created_by", UUID, nullable=True),
        sa.Column("updated_by", UUID, nullable=True),
        _fk("workspace_id", "workspaces.id", "CASCADE", nullable=False),
        sa.Column("title", sa.String(180), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("client_name", sa.String(180), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="planning"),
        sa.Column("budget_amount", MONEY, nullable=True),
        sa.Column("budget_spent", MONEY, nullable=False, server_default="0"),
        sa.Column("currency_code", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("auto_match_enabled", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("skills", JSONB, nullable=True),
        _metadata(),
    )
    op.create_index("ix_agency_projects_workspace_status", "agency_projects", ["workspace_id", "status"])

    op.create_table(
        "agency_project_matches",
        *_crud_columns(),
        _fk("project_id", "agency_projects.id", "CASCADE", nullable=False),
        _fk("freelancer_id", "users.id", "SET NULL"),
        sa.Column("freelancer_name", sa.String(180), nullable=False),
        sa.Column("freelancer_email", sa.String(320), nullable=True),
        sa.Column("score", MONEY, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        _ts("responded_at"),
        _metadata(),
        sa.UniqueConstraint("project_id", "freelancer_name", name="uq_agency_project_matches_freelancer"),
    )
    op.create_index(
        "ix_agency_project_matches_project_status", "agency_project_matches", ["project_id", "status"]
    )

    # ── Presence ────────────────────────────────────────────────────────────
    op.create_table(
        "presence_statuses",
        *_crud_columns(),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        sa.Column("availability", sa.String(20), nullable=False, server_default="available"),
        sa.Column("message", sa.String(280), nullable=True),
        sa.Column("online", sa.Boolean(), nullable=False, server_default="true"),
        _ts("expires_at"),
        _ts("last_calendar_sync_at"),
        _metadata(),
        sa.UniqueConstraint("user_id", name="uq_presence_statuses_user_id"),
    )

    op.create_table(
        "focus_sessions",
        *_crud_columns(),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        sa.Column("label", sa.String(160), nullable=True),
        sa.Column("planned_minutes", sa.Integer(), nullable=False),
        _ts("started_at", nullable=False),
        _ts("ends_at", nullable=False),
        _ts("ended_at"),
    )
    op.create_index("ix_focus_sessions_user_started", "focus_sessions", ["user_id", "started_at"])

    op.create_table(
        "presence_events",
        _pk(),
        _created_at(),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        sa.Column("event_type", sa.String(30), nullable=False),
        sa.Column("availability", sa.String(20), nullable=True),
        sa.Column("summary", sa.String(280), nullable=True),
        _metadata(),
    )
    op.create_index("ix_presence_events_user_created", "presence_events", ["user_id", "created_at"])

    # ── Workspace templates ─────────────────────────────────────────────────
    op.create_table(
        "workspace_template_categories",
        *_crud_columns(),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(80), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "workspace_templates",
        *_crud_columns(),
        _fk("category_id", "workspace_template_categories.id", "SET NULL"),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("name", sa.String(160), nullable=False),
        sa.Column("tagline", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("industry", sa.String(80), nullable=True),
        sa.Column("workflow_type", sa.String(80), nullable=True),
        sa.Column("workspace_type", sa.String(20), nullable=True),
        sa.Column("recommended_team_size", sa.Integer(), nullable=True),
        sa.Column("estimated_duration_days", sa.Integer(), nullable=True),
        sa.Column("automation_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quality_score", sa.Numeric(5, 2), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("visibility", sa.String(20), nullable=False, server_default="public"),
        sa.Column("requirement_checklist", JSONB, nullable=True),
        sa.Column("onboarding_sequence", JSONB, nullable=True),
        sa.Column("deliverables", JSONB, nullable=True),
        sa.Column("metrics", JSONB, nullable=True),
        _metadata(),
    )
    op.create_index(
        "ix_workspace_templates_status_visibility", "workspace_templates", ["status", "visibility"]
    )
    op.create_index("ix_workspace_templates_category", "workspace_templates", ["category_id"])

    # ── Compliance locker ───────────────────────────────────────────────────
    op.create_table(
        "compliance_documents",
        *_crud_columns(),
        _fk("owner_id", "users.id", "CASCADE", nullable=False),
        _fk("workspace_id", "workspaces.id", "SET NULL"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("document_type", sa.String(40), nullable=False, server_default="contract"),
        sa.Column("status", sa.String(30), nullable=False, server_default="awaiting_signature"),
        sa.Column("storage_provider", sa.String(20), nullable=False, server_default="r2"),
        sa.Column("storage_path", sa.String(512), nullable=False),
        sa.Column("storage_region", sa.String(40), nullable=True),
        sa.Column("counterparty_name", sa.String(180), nullable=True),
        sa.Column("counterparty_email", sa.String(320), nullable=True),
        sa.Column("counterparty_company", sa.String(180), nullable=True),
        sa.Column("jurisdiction", sa.String(80), nullable=True),
        sa.Column("governing_law", sa.String(120), nullable=True),
        _ts("effective_date"),
        _ts("expiry_date"),
        sa.Column("renewal_terms", sa.String(255), nullable=True),
        sa.Column("tags", JSONB, nullable=True),
        sa.Column("latest_version_id", UUID, nullable=True),
        _metadata(),
    )
    op.create_index("ix_compliance_documents_owner_status", "compliance_documents", ["owner_id", "status"])

    op.create_table(
        "compliance_document_versions",
        *_crud_columns(),
        _fk("document_id", "compliance_documents.id", "CASCADE", nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("file_key", sa.String(512), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("mime_type", sa.String(120), nullable=True),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("sha256", sa.String(64), nullable=True),
        sa.Column("uploaded_by_id", UUID, nullable=True),
        sa.Column("change_summary", sa.Text(), nullable=True),
        _ts("signed_at"),
        _metadata(),
        sa.UniqueConstraint("document_id", "version_number", name="uq_compliance_document_versions_number"),
    )

    op.create_table(
        "compliance_obligations",
        *_crud_columns(),
        _fk("document_id", "compliance_documents.id", "CASCADE", nullable=False),
        sa.Column("clause_reference", sa.String(80), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        _ts("due_at"),
        sa.Column("recurring_interval", sa.String(20), nullable=True),
        sa.Column("assignee_id", UUID, nullable=True),
        sa.Column("priority", sa.String(10), nullable=True),
        _metadata(),
    )
    op.create_index(
        "ix_compliance_obligations_document_status", "compliance_obligations", ["document_id", "status"]
    )

    op.create_table(
        "compliance_reminders",
        *_crud_columns(),
        _fk("document_id", "compliance_documents.id", "CASCADE", nullable=False),
        _fk("obligation_id", "compliance_obligations.id", "SET NULL"),
        sa.Column("reminder_type", sa.String(40), nullable=False),
        _ts("due_at"),
        sa.Column("status", sa.String(20), nullable=False, server_default="scheduled"),
        sa.Column("channel", sa.String(20), nullable=True),
        sa.Column("created_by_id", UUID, nullable=True),
        _ts("sent_at"),
        _ts("acknowledged_at"),
        _metadata(),
    )
    op.create_index("ix_compliance_reminders_document_due", "compliance_reminders", ["document_id", "due_at"])


def downgrade() -> None:
    for table in (
        "compliance_reminders",
        "compliance_obligations",
        "compliance_document_versions",
        "compliance_documents",
        "workspace_templates",
        "workspace_template_categories",
        "presence_events",
        "focus_sessions",
        "presence_statuses",
        "agency_project_matches",
        "agency_projects",
        "dispute_workflow_settings",
        "dispute_events",
        "dispute_cases",
        "escrow_transactions",
        "wallet_transfer_requests",
        "wallet_transfer_rules",
        "wallet_funding_sources",
        "wallet_ledger_entries",
        "wallet_accounts",
        "users",
        "workspaces",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    workspace_type.drop(bind, checkfirst=True)
    user_type.drop(bind, checkfirst=True)
