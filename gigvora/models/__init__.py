"""SQLAlchemy models package: import all models so Base.metadata is populated."""

from gigvora.models.base import AuditMixin, BaseModel, ModelMixin, TimestampedModel
from gigvora.models.agency_projects import AgencyProject, AutoMatchCandidate
from gigvora.models.compliance import (
    ComplianceDocument,
    ComplianceDocumentVersion,
    ComplianceObligation,
    ComplianceReminder,
)
from gigvora.models.core import User, Workspace
from gigvora.models.disputes import (
    DisputeCase,
    DisputeEvent,
    DisputeWorkflowSetting,
    EscrowTransaction,
)
from gigvora.models.presence import FocusSession, PresenceEvent, PresenceStatus
from gigvora.models.wallet import (
    WalletAccount,
    WalletFundingSource,
    WalletLedgerEntry,
    WalletTransferRequest,
    WalletTransferRule,
)
from gigvora.models.workspace_templates import WorkspaceTemplate, WorkspaceTemplateCategory

__all__ = [
    "AgencyProject",
    "AuditMixin",
    "AutoMatchCandidate",
    "BaseModel",
    "ComplianceDocument",
    "ComplianceDocumentVersion",
    "ComplianceObligation",
    "ComplianceReminder",
    "DisputeCase",
    "DisputeEvent",
    "DisputeWorkflowSetting",
    "EscrowTransaction",
    "FocusSession",
    "ModelMixin",
    "PresenceEvent",
    "PresenceStatus",
    "TimestampedModel",
    "User",
    "WalletAccount",
    "WalletFundingSource",
    "WalletLedgerEntry",
    "WalletTransferRequest",
    "WalletTransferRule",
    "Workspace",
    "WorkspaceTemplate",
    "WorkspaceTemplateCategory",
]
