"""
Enumerations for role, status and type columns.

Columns store the ``.value`` strings; these classes are the single source of
the allowed values.
"""

import enum


class ProfileRole(str, enum.Enum):
    """Role stored on profiles.role"""
    MEMBER = "member"
    AGENT = "agent"
    SUPER_ADMIN = "super_admin"  # deprecated, kept for existing rows
    MASTER_ADMIN = "master_admin"
    MANAGER_ADMIN = "manager_admin"
    WORKER_ADMIN = "worker_admin"
    BANNED = "banned"
    SUSPENDED = "suspended"


class AgentStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    REJECTED = "REJECTED"


class RoleCategory(str, enum.Enum):
    """Employee role category stored on employees.role_category"""
    CHAIRMAN = "chairman"
    MANAGING_DIRECTOR = "managing_director"
    GENERAL_MANAGER = "general_manager"
    DEPARTMENT_HEAD = "department_head"
    STAFF = "staff"


class MembershipStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    FAILED = "failed"
    REFUNDED = "refunded"


class AnnouncementStatus(str, enum.Enum):
    """Prize draw lifecycle"""
    COMING_SOON = "COMING_SOON"
    ANNOUNCED = "ANNOUNCED"
    COMPLETED = "COMPLETED"


class PoolType(str, enum.Enum):
    RANDOM = "random"
    COMMUNITY = "community"


class AwardType(str, enum.Enum):
    RANDOM_DRAW = "RANDOM_DRAW"
    COMMUNITY_SUPPORT = "COMMUNITY_SUPPORT"


class PrizeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ClaimStatus(str, enum.Enum):
    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    EXPIRED = "EXPIRED"


class PayoutStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class SenderRole(str, enum.Enum):
    SYSTEM = "SYSTEM"
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    MEMBER = "MEMBER"


class MessageType(str, enum.Enum):
    DIRECT = "DIRECT"
    BROADCAST = "BROADCAST"
    SYSTEM = "SYSTEM"
    SUPPORT = "SUPPORT"


class MessageFolder(str, enum.Enum):
    INBOX = "INBOX"
    SENT = "SENT"
    TRASH = "TRASH"


class BroadcastTarget(str, enum.Enum):
    ALL_MEMBERS = "ALL_MEMBERS"
    ALL_AGENTS = "ALL_AGENTS"
    COUNTRY_MEMBERS = "COUNTRY_MEMBERS"
    COUNTRY_AGENTS = "COUNTRY_AGENTS"
    SELECTED_USERS = "SELECTED_USERS"


class NotificationType(str, enum.Enum):
    TIER_BONUS_APPROVAL = "tier_bonus_approval"
    AGENT_VERIFICATION = "agent_verification"
    SCAM_REPORT_REVIEW = "scam_report_review"
    IDENTITY_VERIFICATION = "identity_verification"
    SYSTEM_ALERT = "system_alert"


class NotificationPriority(str, enum.Enum):
    NORMAL = "normal"
    HIGH = "high"
    CRITICAL = "critical"
    OVERDUE = "overdue"


class AgentRequestStatus(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    ASSIGNED = "ASSIGNED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class AttendanceStatus(str, enum.Enum):
    ON_TIME = "on_time"
    LATE = "late"
    ABSENT = "absent"
    EXCUSED = "excused"
    AWOL = "awol"


class PeriodStatus(str, enum.Enum):
    """Financial close period status"""
    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"


class ReportType(str, enum.Enum):
    PROFIT_LOSS = "profit_loss"
    PRIZE_POOL_RECONCILIATION = "prize_pool_reconciliation"
    REFERRAL_PAYOUTS = "referral_payouts"
    TIER_PAYOUTS = "tier_payouts"


class WithdrawalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReferralStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
