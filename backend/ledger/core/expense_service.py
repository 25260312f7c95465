"""
Expense Service - Create, read, update and delete expenses.

Responsibilities:
- Classify a creation request (personal / equal split / advanced)
- Authorize the caller against the group, or as creator for personal expenses
- Reconcile payers and splits before anything is written
- Map between stored expenses and the stores

Each call runs its steps in order: fetch group, validate, fetch or write the
expense. Concurrent updates to one expense are last-write-wins.
"""
import dataclasses
from typing import Any, Dict, List, Optional

import structlog

from ledger.expenses.models import EqualSplit, Expense, ExplicitSplit, Payer
from ledger.expenses.requests import (
    classify, parse_group_advanced, parse_group_equal, parse_personal, parse_update,
)
from ledger.groups.models import Group
from ledger.storage.interface import ExpenseStore, GroupStore
from ledger.users.model import User
from ledger.utils.enums import ExpenseKind, ExpenseShape, MULTIPLE_PAYERS, SplitType
from ledger.utils.errors import AuthorizationError, ValidationError
from ledger.utils.permissions import is_creator

from .membership_service import MembershipService
from .notification_service import NotificationService
from .split_service import SplitService

log = structlog.get_logger(__name__)


class ExpenseService:

    def __init__(
        self,
        expenses: ExpenseStore,
        groups: GroupStore,
        notifier: Optional[NotificationService] = None
    ):
        self.expenses = expenses
        self.groups = groups
        self.notifier = notifier

    # ==================== CREATE ====================

    def classify(self, body) -> ExpenseShape:
        return classify(body)

    def create(self, user: User, body) -> Expense:
        """Create whichever kind of expense ``body`` describes."""
        shape = self.classify(body)
        if shape == ExpenseShape.PERSONAL:
            return self.create_personal(user, body)
        if shape == ExpenseShape.GROUP_ADVANCED:
            return self.create_group_advanced(user, body)
        return self.create_group_equal(user, body)

    def create_personal(self, user: User, body) -> Expense:
        request = parse_personal(body)
        expense = Expense(
            description=request.description,
            amount=request.amount,
            date=request.date,
            kind=ExpenseKind.PERSONAL,
            created_by=user.id,
            allocation=EqualSplit(request.participants),
            split_type=SplitType.EQUAL,
            paid_by=request.paid_by,
            payment_method=request.payment_method,
            category=request.category,
        )
        return self._store(expense)

    def create_group_equal(self, user: User, body) -> Expense:
        """Equal split: only the participant names are stored, not their shares."""
        request = parse_group_equal(body)
        group = self._authorized_group(user, request.group_id)
        MembershipService.check_names(group, [request.paid_by] + request.participants)

        expense = Expense(
            description=request.description,
            amount=request.amount,
            date=request.date,
            kind=ExpenseKind.GROUP,
            created_by=user.id,
            group_id=group.id,
            allocation=EqualSplit(request.participants),
            split_type=SplitType.EQUAL,
            paid_by=request.paid_by,
        )
        return self._store(expense, group, user)

    def create_group_advanced(self, user: User, body) -> Expense:
        """Multi-payer and/or explicit split: per-person amounts are always stored."""
        request = parse_group_advanced(body)
        group = self._authorized_group(user, request.group_id)

        if request.payers:
            names = [p.name for p in request.payers]
        else:
            names = [request.paid_by] if request.paid_by else []
        names += [s.participant for s in request.splits or []]

        paid_by, payers, allocation = SplitService.reconcile(
            request.amount, request.payers, request.paid_by, request.splits,
            errors=[MembershipService.name_error(group, names)],
        )
        expense = Expense(
            description=request.description,
            amount=request.amount,
            date=request.date,
            kind=ExpenseKind.GROUP,
            created_by=user.id,
            group_id=group.id,
            allocation=allocation,
            split_type=request.split_type,
            paid_by=paid_by,
            payers=payers,
        )
        return self._store(expense, group, user)

    def _store(self, expense: Expense, group: Optional[Group] = None, user: Optional[User] = None) -> Expense:
        stored = self.expenses.create(expense)
        log.info(
            "expense_created",
            expense_id=stored.id,
            kind=stored.kind.value,
            group_id=stored.group_id,
            split_type=stored.split_type.value,
        )
        if group is not None and self.notifier is not None:
            self.notifier.expense_added(group, user, stored)
        return stored

    # ==================== READ ====================

    def list_personal(self, user: User) -> List[Expense]:
        return self.expenses.find_personal(user.id)

    def list_by_group(self, user: User, group_id: str) -> List[Expense]:
        self._authorized_group(user, group_id)
        return self.expenses.find_by_group(group_id)

    def list_all(self, user: User) -> List[Expense]:
        """Group expenses from every group the user is in, plus personal ones."""
        group_ids = [g.id for g in self.groups.find_by_member(user.name)]
        combined = self.expenses.find_by_groups(group_ids) + self.expenses.find_personal(user.id)
        return sorted(combined, key=lambda e: e.created_at, reverse=True)

    def get_by_id(self, user: User, expense_id: str) -> Expense:
        expense = self.expenses.find_by_id(expense_id)
        self._authorize(user, expense)
        return expense

    def shares(self, user: User, expense_id: str) -> List[Dict[str, Any]]:
        return SplitService.shares(self.get_by_id(user, expense_id))

    # ==================== UPDATE / DELETE ====================

    def update(self, user: User, expense_id: str, body, kind: Optional[ExpenseKind] = None) -> Expense:
        """
        Change only the fields present in ``body``.

        Authorization is checked against the current group membership, and
        the merged record must still reconcile.
        """
        expense = self.expenses.find_by_id(expense_id)
        self._expect_kind(expense, kind)
        group = self._authorize(user, expense)

        changes = parse_update(body, personal=expense.is_personal)
        if not changes:
            return expense

        fields, names = self._merge(expense, changes)
        errors = [MembershipService.name_error(group, names)] if group is not None else []
        SplitService.verify(dataclasses.replace(expense, **fields), errors)

        updated = self.expenses.update(expense_id, fields)
        log.info("expense_updated", expense_id=expense_id, fields=sorted(fields))
        return updated

    def delete(self, user: User, expense_id: str, kind: ExpenseKind) -> None:
        expense = self.expenses.find_by_id(expense_id)
        self._expect_kind(expense, kind)
        self._authorize(user, expense)
        self.expenses.delete(expense_id)
        log.info("expense_deleted", expense_id=expense_id, kind=kind.value)

    def _merge(self, expense: Expense, changes: Dict[str, Any]):
        """
        Turn parsed changes into Expense attribute updates.

        Returns:
            Tuple of (fields to write, newly supplied names to check)
        """
        fields = {
            key: changes[key]
            for key in ("description", "amount", "date", "split_type", "payment_method", "category")
            if key in changes
        }
        names = []
        amount = changes.get("amount", expense.amount)

        if "splits" in changes:
            fields["allocation"] = ExplicitSplit(changes["splits"])
            if "split_type" not in changes and not isinstance(expense.allocation, ExplicitSplit):
                fields["split_type"] = SplitType.UNEQUAL
            names += [s.participant for s in changes["splits"]]
        if "participants" in changes:
            if "splits" in changes or isinstance(expense.allocation, ExplicitSplit):
                raise ValidationError("participants are derived from splits; update splits instead")
            fields["allocation"] = EqualSplit(changes["participants"])
            names += changes["participants"]

        if "payers" in changes:
            payers = changes["payers"]
            if not payers:
                raise ValidationError("at least one payer is required")
            fields["payers"] = payers
            fields["paid_by"] = payers[0].name if len(payers) == 1 else MULTIPLE_PAYERS
            names += [p.name for p in payers]
        elif "paid_by" in changes:
            if len(expense.payers) > 1:
                raise ValidationError("expense has multiple payers; update payers instead")
            fields["paid_by"] = changes["paid_by"]
            if expense.payers:
                fields["payers"] = [Payer(changes["paid_by"], amount)]
            if not expense.is_personal:
                names.append(changes["paid_by"])
        elif "amount" in changes and len(expense.payers) == 1:
            # a lone payer always covers the whole amount
            fields["payers"] = [Payer(expense.payers[0].name, amount)]

        return fields, names

    # ==================== AUTHORIZATION ====================

    def _authorized_group(self, user: User, group_id: str) -> Group:
        group = self.groups.find_by_id(group_id)
        MembershipService.require_member(group, user)
        return group

    def _authorize(self, user: User, expense: Expense) -> Optional[Group]:
        """Creator for personal expenses, current member for group ones."""
        if expense.is_personal:
            if not is_creator(user, expense):
                raise AuthorizationError("Not authorized to access this personal expense")
            return None
        return self._authorized_group(user, expense.group_id)

    @staticmethod
    def _expect_kind(expense: Expense, kind: Optional[ExpenseKind]) -> None:
        if kind is not None and expense.kind != kind:
            raise ValidationError(f"not a {kind.value} expense")
