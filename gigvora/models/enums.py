"""Enumerations shared by models, services and schemas.

``UserType`` and ``WorkspaceType`` are PostgreSQL native enums. The workflow
vocabularies below are stored as plain strings and validated in the services.
"""

import enum


# ── Core ─────────────────────────────────────────────────────────────────────


class UserType(str, enum.Enum):
    USER = "user"
    FREELANCER = "freelancer"
    AGENCY = "agency"
    COMPANY = "company"
    HEADHUNTER = "headhunter"
    MENTOR = "mentor"
    ADMIN = "admin"


class WorkspaceType(str, enum.Enum):
    AGENCY = "agency"
    COMPANY = "company"
    FREELANCER = "freelancer"


# ── Wallet ───────────────────────────────────────────────────────────────────


class TransferRequestStatus(str, enum.Enum):
    PENDING = "pending"
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FundingSourceStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    VERIFIED = "verified"
    DISABLED = "disabled"


# ── Disputes ─────────────────────────────────────────────────────────────────


class DisputeStage(str, enum.Enum):
    INTAKE = "intake"
    MEDIATION = "mediation"
    ARBITRATION = "arbitration"
    RESOLVED = "resolved"


class DisputeStatus(str, enum.Enum):
    OPEN = "open"
    AWAITING_CUSTOMER = "awaiting_customer"
    UNDER_REVIEW = "under_review"
    SETTLED = "settled"
    CLOSED = "closed"


class DisputePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DisputeActorType(str, enum.Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    MEDIATOR = "mediator"
    ADMIN = "admin"
    SYSTEM = "system"


class DisputeActionType(str, enum.Enum):
    COMMENT = "comment"
    EVIDENCE_UPLOAD = "evidence_upload"
    DEADLINE_ADJUSTED = "deadline_adjusted"
    STAGE_ADVANCED = "stage_advanced"
    STATUS_CHANGE = "status_change"
    SYSTEM_NOTICE = "system_notice"


class EscrowTransactionStatus(str, enum.Enum):
    PENDING = "pending"
    FUNDED = "funded"
    IN_ESCROW = "in_escrow"
    DISPUTED = "disputed"
    RELEASED = "released"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


# ── Agency projects ──────────────────────────────────────────────────────────


class AgencyProjectStatus(str, enum.Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    AT_RISK = "at_risk"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AutoMatchStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# ── Presence ─────────────────────────────────────────────────────────────────


class Availability(str, enum.Enum):
    AVAILABLE = "available"
    AWAY = "away"
    BUSY = "busy"
    FOCUS = "focus"
    IN_MEETING = "in_meeting"
    OFFLINE = "offline"


class PresenceEventType(str, enum.Enum):
    STATUS_CHANGED = "status_changed"
    FOCUS_STARTED = "focus_started"
    FOCUS_ENDED = "focus_ended"
    CALENDAR_SYNCED = "calendar_synced"


# ── Compliance locker ────────────────────────────────────────────────────────


class ComplianceDocumentStatus(str, enum.Enum):
    DRAFT = "draft"
    AWAITING_SIGNATURE = "awaiting_signature"
    ACTIVE = "active"
    EXPIRED = "expired"
    ARCHIVED = "archived"


class ComplianceReminderStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"
    DISMISSED = "dismissed"
    CANCELLED = "cancelled"
