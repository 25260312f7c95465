"""
Expense request parsing.

Classifies a creation body into one of the three shapes and turns it into a
typed, trimmed request object. Nothing past this module sees raw JSON.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ledger.expenses.models import Payer, SplitEntry
from ledger.utils.enums import (
    DEFAULT_CATEGORY, DEFAULT_PAYMENT_METHOD, ExpenseKind, ExpenseShape, SplitType,
)
from ledger.utils.errors import ValidationError
from ledger.utils.validators import (
    clean_date, clean_description, clean_name, clean_name_list, parse_amount,
    parse_number, require_keys,
)

# fields fixed at creation; an update naming any of them is rejected
IMMUTABLE_FIELDS = ("id", "_id", "groupId", "type", "kind", "createdBy", "createdAt")


@dataclass
class PersonalRequest:
    description: str
    amount: float
    date: str
    paid_by: str = ""
    participants: List[str] = field(default_factory=list)
    payment_method: str = DEFAULT_PAYMENT_METHOD
    category: str = DEFAULT_CATEGORY


@dataclass
class GroupEqualRequest:
    group_id: str
    description: str
    amount: float
    date: str
    paid_by: str
    participants: List[str]


@dataclass
class GroupAdvancedRequest:
    group_id: str
    description: str
    amount: float
    date: str
    split_type: SplitType
    paid_by: Optional[str] = None
    payers: Optional[List[Payer]] = None
    splits: Optional[List[SplitEntry]] = None


def _require_object(body) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object")
    return body


def _present(body, key) -> bool:
    value = body.get(key)
    return value is not None and not (isinstance(value, str) and not value.strip())


def classify(body) -> ExpenseShape:
    """Decide the expense shape from which optional fields are present."""
    body = _require_object(body)
    require_keys(body, "description", "amount", "date")
    parse_amount(body["amount"])

    if not _present(body, "groupId"):
        return ExpenseShape.PERSONAL
    if body.get("payers") is not None or body.get("splits") is not None:
        return ExpenseShape.GROUP_ADVANCED
    return ExpenseShape.GROUP_EQUAL


def parse_split_type(value, default: SplitType) -> SplitType:
    if value is None:
        return default
    try:
        return SplitType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in SplitType)
        raise ValidationError(f"splitType must be one of: {allowed}")


def _group_id(body) -> str:
    group_id = body.get("groupId")
    if not isinstance(group_id, str):
        raise ValidationError("groupId must be a string")
    return group_id.strip()


def _common(body):
    body = _require_object(body)
    require_keys(body, "description", "amount", "date")
    return (
        clean_description(body["description"]),
        parse_amount(body["amount"]),
        clean_date(body["date"]),
    )


def _label(value, field: str, default: str) -> str:
    """Optional free-text tag; blank falls back to ``default``."""
    if value is None or value == "":
        return default
    return clean_name(value, field) or default


def parse_personal(body) -> PersonalRequest:
    description, amount, date = _common(body)
    if _present(body, "groupId"):
        raise ValidationError("personal expenses cannot belong to a group")

    paid_by = body.get("paidBy")
    participants = body.get("participants")
    return PersonalRequest(
        description=description,
        amount=amount,
        date=date,
        paid_by=clean_name(paid_by, "paidBy") if paid_by is not None else "",
        participants=clean_name_list(participants, "participants") if participants is not None else [],
        payment_method=_label(body.get("paymentMethod"), "paymentMethod", DEFAULT_PAYMENT_METHOD),
        category=_label(body.get("category"), "category", DEFAULT_CATEGORY),
    )


def _participants(value) -> List[str]:
    if not isinstance(value, list) or not value:
        raise ValidationError("At least one participant is required")
    return clean_name_list(value, "participants")


def _paid_by(value) -> str:
    if value is None:
        raise ValidationError("Payer is required")
    paid_by = clean_name(value, "paidBy")
    if not paid_by:
        raise ValidationError("Payer is required")
    return paid_by


def parse_group_equal(body) -> GroupEqualRequest:
    description, amount, date = _common(body)
    require_keys(body, "groupId")
    return GroupEqualRequest(
        group_id=_group_id(body),
        description=description,
        amount=amount,
        date=date,
        paid_by=_paid_by(body.get("paidBy")),
        participants=_participants(body.get("participants")),
    )


def _fail_for(message, names):
    return f"{message}: {', '.join(str(n) for n in names)}"


def parse_payers(raw) -> List[Payer]:
    """
    Parse the payer list.

    Every bad entry is collected; the error names each offending payer.
    """
    if not isinstance(raw, list):
        raise ValidationError("payers must be an array")

    payers, unnamed, not_numeric, negative = [], 0, [], []
    for item in raw:
        name = item.get("name") if isinstance(item, dict) else None
        if not isinstance(name, str) or not name.strip():
            unnamed += 1
            continue
        name = name.strip()
        amount_paid = parse_number(item.get("amountPaid"))
        if amount_paid is None:
            not_numeric.append(name)
        elif amount_paid < 0:
            negative.append(name)
        else:
            payers.append(Payer(name, amount_paid))

    errors = []
    if unnamed:
        errors.append(f"{unnamed} payer(s) missing a name")
    if not_numeric:
        errors.append(_fail_for("Payer amountPaid must be a valid number for", not_numeric))
    if negative:
        errors.append(_fail_for("Payer amountPaid cannot be negative for", negative))
    if errors:
        raise ValidationError("; ".join(errors))
    return payers


def parse_splits(raw) -> List[SplitEntry]:
    """Parse the split list; same error collection as ``parse_payers``."""
    if not isinstance(raw, list):
        raise ValidationError("splits must be an array")

    splits, unnamed, not_numeric, negative, bad_percentage = [], 0, [], [], []
    for item in raw:
        participant = item.get("participant") if isinstance(item, dict) else None
        if not isinstance(participant, str) or not participant.strip():
            unnamed += 1
            continue
        participant = participant.strip()
        amount = parse_number(item.get("amount"))
        percentage = item.get("percentage")
        if percentage is not None:
            percentage = parse_number(percentage)
            if percentage is None or not 0 <= percentage <= 100:
                bad_percentage.append(participant)
        if amount is None:
            not_numeric.append(participant)
        elif amount < 0:
            negative.append(participant)
        else:
            splits.append(SplitEntry(participant, amount, percentage))

    errors = []
    if unnamed:
        errors.append(f"{unnamed} split(s) missing a participant")
    if not_numeric:
        errors.append(_fail_for("Split amount must be a valid number for", not_numeric))
    if negative:
        errors.append(_fail_for("Split amount cannot be negative for", negative))
    if bad_percentage:
        errors.append(_fail_for("Split percentage must be between 0 and 100 for", bad_percentage))
    if errors:
        raise ValidationError("; ".join(errors))
    return splits


def parse_group_advanced(body) -> GroupAdvancedRequest:
    description, amount, date = _common(body)
    require_keys(body, "groupId")

    kind = body.get("kind", body.get("type"))
    if kind is not None and kind != ExpenseKind.GROUP.value:
        raise ValidationError("group expenses must have kind 'group'")

    paid_by = body.get("paidBy")
    payers = body.get("payers")
    splits = body.get("splits")
    return GroupAdvancedRequest(
        group_id=_group_id(body),
        description=description,
        amount=amount,
        date=date,
        split_type=parse_split_type(body.get("splitType"), SplitType.UNEQUAL),
        paid_by=clean_name(paid_by, "paidBy") if paid_by is not None else None,
        payers=parse_payers(payers) if payers is not None else None,
        splits=parse_splits(splits) if splits is not None else None,
    )


def parse_update(body, personal: bool) -> Dict[str, Any]:
    """
    Normalize a partial update into Expense attribute names.

    Only keys present in ``body`` appear in the result.
    """
    body = _require_object(body)
    immutable = [k for k in IMMUTABLE_FIELDS if k in body]
    if immutable:
        raise ValidationError(_fail_for("Fields cannot be changed", immutable))

    changes: Dict[str, Any] = {}
    if "description" in body:
        changes["description"] = clean_description(body["description"])
    if "amount" in body:
        changes["amount"] = parse_amount(body["amount"])
    if "date" in body:
        changes["date"] = clean_date(body["date"])
    if "splitType" in body:
        changes["split_type"] = parse_split_type(body["splitType"], SplitType.EQUAL)

    if personal:
        if "splits" in body or "payers" in body:
            raise ValidationError("personal expenses do not carry splits or payers")
        if "paidBy" in body:
            changes["paid_by"] = clean_name(body["paidBy"], "paidBy")
        if "participants" in body:
            changes["participants"] = clean_name_list(body["participants"], "participants")
        if "paymentMethod" in body:
            changes["payment_method"] = _label(body["paymentMethod"], "paymentMethod", DEFAULT_PAYMENT_METHOD)
        if "category" in body:
            changes["category"] = _label(body["category"], "category", DEFAULT_CATEGORY)
        return changes

    if "paymentMethod" in body or "category" in body:
        raise ValidationError("group expenses do not carry a payment method or category")
    if "paidBy" in body:
        changes["paid_by"] = _paid_by(body["paidBy"])
    if "participants" in body:
        changes["participants"] = _participants(body["participants"])
    if "splits" in body:
        changes["splits"] = parse_splits(body["splits"])
    if "payers" in body:
        changes["payers"] = parse_payers(body["payers"])
    return changes
