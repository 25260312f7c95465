"""Expense models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ledger.utils.enums import ExpenseKind, SplitType


@dataclass
class Payer:
    name: str
    amount_paid: float

    def to_view(self) -> Dict[str, Any]:
        return {"name": self.name, "amountPaid": self.amount_paid}


@dataclass
class SplitEntry:
    participant: str
    amount: float
    # stored as given, never reconciled against amount
    percentage: Optional[float] = None

    def to_view(self) -> Dict[str, Any]:
        view = {"participant": self.participant, "amount": self.amount}
        if self.percentage is not None:
            view["percentage"] = self.percentage
        return view


@dataclass
class EqualSplit:
    """Participants share the amount evenly; nothing is stored per person."""
    participants: List[str] = field(default_factory=list)


@dataclass
class ExplicitSplit:
    """Per-participant amounts, materialized at creation."""
    entries: List[SplitEntry] = field(default_factory=list)

    @property
    def participants(self) -> List[str]:
        return [entry.participant for entry in self.entries]


Allocation = Union[EqualSplit, ExplicitSplit]


@dataclass
class Expense:
    description: str
    amount: float
    date: str
    kind: ExpenseKind
    created_by: str
    allocation: Allocation
    split_type: SplitType = SplitType.EQUAL
    paid_by: str = ""
    payers: List[Payer] = field(default_factory=list)
    group_id: Optional[str] = None
    payment_method: Optional[str] = None
    category: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def participants(self) -> List[str]:
        return list(self.allocation.participants)

    @property
    def splits(self) -> List[SplitEntry]:
        if isinstance(self.allocation, ExplicitSplit):
            return list(self.allocation.entries)
        return []

    @property
    def is_personal(self) -> bool:
        return self.kind == ExpenseKind.PERSONAL

    def to_view(self) -> Dict[str, Any]:
        """Shape returned to clients."""
        view = {
            "id": self.id,
            "groupId": self.group_id,
            "type": self.kind.value,
            "description": self.description,
            "amount": self.amount,
            "paidBy": self.paid_by,
            "participants": self.participants,
            "splitType": self.split_type.value,
            "date": self.date,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if self.splits:
            view["splits"] = [entry.to_view() for entry in self.splits]
        if self.payers:
            view["payers"] = [payer.to_view() for payer in self.payers]
        if self.is_personal:
            view["paymentMethod"] = self.payment_method
            view["category"] = self.category
        return view
