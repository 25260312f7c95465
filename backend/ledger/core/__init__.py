"""Core business logic services for the shared-expense ledger."""

from .split_service import SplitService
from .membership_service import MembershipService
from .notification_service import NotificationService
from .expense_service import ExpenseService

__all__ = [
    "SplitService",
    "MembershipService",
    "NotificationService",
    "ExpenseService",
]
