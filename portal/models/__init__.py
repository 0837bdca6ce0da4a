# Models Package
from .profile import Profile, Employee, AdminHierarchy
from .membership import Membership, Payment, Referral, CountrySettings
from .wallet import Wallet, WithdrawalRequest
from .prize_draw import PrizeDraw, Prize, PrizeDrawEntry, PrizeDrawWinner
from .ledger import LedgerEntry, PrizePoolSplitConfig
from .message import Message, MessageRecipient
from .audit_log import AuditLog, AdminNotification
from .operations import AgentRequest, AttendanceRecord, FinancialClosePeriod, MonthlyFinancialReport

__all__ = [
    "Profile",
    "Employee",
    "AdminHierarchy",
    "Membership",
    "Payment",
    "Referral",
    "CountrySettings",
    "Wallet",
    "WithdrawalRequest",
    "PrizeDraw",
    "Prize",
    "PrizeDrawEntry",
    "PrizeDrawWinner",
    "LedgerEntry",
    "PrizePoolSplitConfig",
    "Message",
    "MessageRecipient",
    "AuditLog",
    "AdminNotification",
    "AgentRequest",
    "AttendanceRecord",
    "FinancialClosePeriod",
    "MonthlyFinancialReport",
]
