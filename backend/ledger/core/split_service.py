"""
Split Service - Payer and split reconciliation.

Responsibilities:
- Resolve who paid (one payer or several) and check contributions sum to the total
- Check explicit per-participant splits sum to the total
- Re-check both sums when an expense is edited
- Divide equal-split expenses evenly at read time
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ledger.expenses.models import Expense, ExplicitSplit, Payer, SplitEntry
from ledger.utils.enums import MULTIPLE_PAYERS
from ledger.utils.errors import ValidationError

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    return Decimal(str(value))


def format_amount(value) -> str:
    """Render 99.0 as '99' and 33.5 as '33.5'."""
    return f"{to_decimal(value).quantize(CENT).normalize():f}"


class SplitService:
    """Reconciles payers and splits against an expense total."""

    # absolute, not relative
    TOLERANCE = Decimal("0.01")

    @classmethod
    def sum_amounts(cls, values: Iterable[float]) -> Decimal:
        return sum((to_decimal(v) for v in values), Decimal("0"))

    @classmethod
    def check_total(cls, label: str, declared: Decimal, amount: float) -> Optional[str]:
        """Return an error message if ``declared`` is off ``amount`` by more than a cent."""
        if abs(declared - to_decimal(amount)) > cls.TOLERANCE:
            return (
                f"Total {label} amount ({format_amount(declared)}) must equal "
                f"expense amount ({format_amount(amount)})"
            )
        return None

    @classmethod
    def resolve_payers(
        cls,
        amount: float,
        payers: Optional[List[Payer]],
        paid_by: Optional[str]
    ) -> Tuple[str, List[Payer], Optional[str]]:
        """
        Work out the canonical payer and the payer list.

        With a payer list, contributions must add up to ``amount`` and
        ``paidBy`` becomes the single payer's name or ``"Multiple"``. Without
        one, ``paid_by`` is required and becomes an implicit payer of the
        whole amount.

        Returns:
            Tuple of (paid_by, payers, error message if invalid)
        """
        if payers:
            error = cls.check_total(
                "paid", cls.sum_amounts(p.amount_paid for p in payers), amount
            )
            paid_by = payers[0].name if len(payers) == 1 else MULTIPLE_PAYERS
            return paid_by, list(payers), error

        if not paid_by:
            return "", [], "Payer is required"
        return paid_by, [Payer(paid_by, amount)], None

    @classmethod
    def resolve_splits(
        cls,
        amount: float,
        splits: Optional[List[SplitEntry]]
    ) -> Tuple[Optional[ExplicitSplit], Optional[str]]:
        """
        Validate explicit splits and wrap them as the expense allocation.

        Percentages are carried through untouched.

        Returns:
            Tuple of (allocation, error message if invalid)
        """
        if not splits:
            return None, "splits required for advanced expenses"
        error = cls.check_total(
            "split", cls.sum_amounts(s.amount for s in splits), amount
        )
        return ExplicitSplit(list(splits)), error

    @classmethod
    def reconcile(
        cls,
        amount: float,
        payers: Optional[List[Payer]],
        paid_by: Optional[str],
        splits: Optional[List[SplitEntry]],
        errors: Iterable[Optional[str]] = ()
    ) -> Tuple[str, List[Payer], ExplicitSplit]:
        """
        Resolve payers and splits together; report every problem at once.

        ``errors`` are problems the caller already found (such as names
        outside the group); they lead the combined message.
        """
        paid_by, payers, payer_error = cls.resolve_payers(amount, payers, paid_by)
        allocation, split_error = cls.resolve_splits(amount, splits)

        errors = [e for e in (*errors, payer_error, split_error) if e]
        if errors:
            raise ValidationError("; ".join(errors))
        return paid_by, payers, allocation

    @classmethod
    def verify(cls, expense: Expense, errors: Iterable[Optional[str]] = ()) -> None:
        """Re-check the sums of an edited expense, after any earlier ``errors``."""
        errors = list(errors)
        if expense.payers:
            errors.append(cls.check_total(
                "paid", cls.sum_amounts(p.amount_paid for p in expense.payers), expense.amount
            ))
        if isinstance(expense.allocation, ExplicitSplit):
            if not expense.allocation.entries:
                errors.append("at least one split is required")
            else:
                errors.append(cls.check_total(
                    "split", cls.sum_amounts(s.amount for s in expense.splits), expense.amount
                ))
        errors = [e for e in errors if e]
        if errors:
            raise ValidationError("; ".join(errors))

    @classmethod
    def equal_shares(
        cls,
        total_amount: float,
        participants: List[str]
    ) -> List[Dict[str, Any]]:
        """
        Calculate equal split among participants.

        Handles remainder cents by giving them to the last participant.
        A name listed twice gets two shares.

        Returns:
            List of {participant, amount} dicts
        """
        if not participants:
            return []

        n = len(participants)
        total = to_decimal(total_amount)
        base_split = (total / n).quantize(CENT, rounding=ROUND_HALF_UP)

        shares = []
        running_total = Decimal('0')

        for i, name in enumerate(participants):
            if i == n - 1:
                # Last person gets remainder to ensure exact total
                amount = total - running_total
            else:
                amount = base_split
                running_total += amount
            shares.append({"participant": name, "amount": float(amount)})

        return shares

    @classmethod
    def shares(cls, expense: Expense) -> List[Dict[str, Any]]:
        """What each participant owes for one expense."""
        if isinstance(expense.allocation, ExplicitSplit):
            return [
                {"participant": s.participant, "amount": s.amount}
                for s in expense.allocation.entries
            ]
        return cls.equal_shares(expense.amount, expense.participants)
