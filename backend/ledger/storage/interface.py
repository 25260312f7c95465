"""
Abstract storage interfaces.

The expense core talks to these instead of a driver so the MongoDB adapters
can be swapped for in-memory ones under test. Every store raises the errors
from ``ledger.utils.errors``: ``NotFoundError`` when an identifier does not
resolve, ``InvalidIdentifierError`` when it is malformed, ``StorageError`` for
anything else.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ledger.expenses.models import Expense
from ledger.groups.models import Group
from ledger.users.model import User


class ExpenseStore(ABC):

    @abstractmethod
    def create(self, expense: Expense) -> Expense:
        """
        Persist a new expense.

        Returns:
            The stored expense with ``id`` and ``created_at`` assigned
        """

    @abstractmethod
    def find_by_id(self, expense_id: str) -> Expense:
        """Return the expense or raise NotFoundError."""

    @abstractmethod
    def find_by_group(self, group_id: str) -> List[Expense]:
        """Expenses of one group, newest first."""

    @abstractmethod
    def find_by_groups(self, group_ids: Iterable[str]) -> List[Expense]:
        """Expenses of any of the given groups, newest first."""

    @abstractmethod
    def find_personal(self, user_id: str) -> List[Expense]:
        """Personal expenses created by ``user_id``, newest first."""

    @abstractmethod
    def update(self, expense_id: str, fields: Dict[str, Any]) -> Expense:
        """
        Overwrite only the given fields.

        Args:
            expense_id: Expense to change
            fields: Mapping of Expense attribute name to new value

        Returns:
            The expense as stored after the update

        Raises:
            NotFoundError: If the expense does not exist
        """

    @abstractmethod
    def delete(self, expense_id: str) -> None:
        """Remove the expense; raise NotFoundError if nothing was removed."""


class GroupStore(ABC):

    @abstractmethod
    def find_by_id(self, group_id: str) -> Group:
        """Return the group or raise NotFoundError."""

    @abstractmethod
    def find_by_member(self, name: str) -> List[Group]:
        """Groups with ``name`` among their members, compared after trimming."""


class UserStore(ABC):

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Raw user record including the password hash, for login."""

    @abstractmethod
    def find_by_names(self, names: Iterable[str]) -> List[User]:
        pass

    @abstractmethod
    def create(self, name: str, email: str, password_hash: bytes) -> User:
        pass
