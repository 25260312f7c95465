"""
Notification Service - Tell a group when an expense lands in it.

Responsibilities:
- Queue a topic notification for the group (polled by push clients)
- Optionally mail members whose user record has an email

Dispatch is fire-and-forget: any failure is logged and swallowed so it never
undoes or fails the expense write that triggered it.
"""
from datetime import datetime, timezone
from typing import Optional

import structlog
from flask_mail import Message

from ledger.core.split_service import format_amount
from ledger.expenses.models import Expense
from ledger.groups.models import Group
from ledger.storage.interface import UserStore
from ledger.users.model import User

log = structlog.get_logger(__name__)


class NotificationType:
    """Notification type constants."""
    EXPENSE_CREATED = "expense_created"


class NotificationService:

    def __init__(
        self,
        queue,
        mail=None,
        users: Optional[UserStore] = None,
        mail_enabled: bool = False,
        sender: Optional[str] = None
    ):
        """
        Args:
            queue: Collection-like object with ``insert_one``
            mail: Flask-Mail transport, built once by the app factory
            users: Used to look up member emails by name
            mail_enabled: Send mail in addition to queueing
            sender: Default From address
        """
        self.queue = queue
        self.mail = mail
        self.users = users
        self.mail_enabled = bool(mail_enabled and mail is not None and users is not None)
        self.sender = sender

    @staticmethod
    def topic_for(group: Group) -> str:
        return f"group_{group.id}"

    def expense_added(self, group: Group, actor: User, expense: Expense) -> bool:
        """
        Notify a group that ``actor`` added ``expense``.

        Returns:
            True if the notification went out, False if dispatch failed
        """
        title = "New Expense Added"
        body = (
            f"{actor.name} added an expense of Rs {format_amount(expense.amount)} "
            f"to {group.name}"
        )
        notification = {
            "topic": self.topic_for(group),
            "type": NotificationType.EXPENSE_CREATED,
            "notification": {"title": title, "body": body},
            "data": {
                "groupId": group.id,
                "groupName": group.name,
                "expenseId": expense.id,
            },
            "delivered": False,
            "created_at": datetime.now(timezone.utc),
        }

        try:
            self.queue.insert_one(notification)
            if self.mail_enabled:
                self._mail_members(group, actor, title, body)
        except Exception as exc:
            log.warning(
                "notification_failed",
                group_id=group.id,
                expense_id=expense.id,
                error=str(exc),
            )
            return False

        log.info("notification_queued", topic=notification["topic"], expense_id=expense.id)
        return True

    def _mail_members(self, group: Group, actor: User, title: str, body: str) -> None:
        recipients = [
            user.email
            for user in self.users.find_by_names(group.members)
            if user.email and user.id != actor.id
        ]
        if not recipients:
            return
        self.mail.send(Message(subject=title, recipients=recipients, body=body, sender=self.sender))
