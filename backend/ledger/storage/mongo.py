"""MongoDB adapters for the store interfaces."""
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from ledger.expenses.models import (
    EqualSplit, Expense, ExplicitSplit, Payer, SplitEntry,
)
from ledger.groups.models import Group
from ledger.users.model import User
from ledger.utils.enums import ExpenseKind, SplitType
from ledger.utils.errors import InvalidIdentifierError, NotFoundError, StorageError

from .interface import ExpenseStore, GroupStore, UserStore

NEWEST_FIRST = [("created_at", DESCENDING)]


def to_object_id(value, what="id") -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise InvalidIdentifierError(f"Invalid {what}")


@contextmanager
def driver_errors():
    try:
        yield
    except PyMongoError as exc:
        raise StorageError(f"database error: {exc}") from exc


def _now():
    return datetime.now(timezone.utc)


def _allocation_fields(allocation) -> Dict[str, Any]:
    if isinstance(allocation, ExplicitSplit):
        splits = [
            {"participant": e.participant, "amount": e.amount, "percentage": e.percentage}
            for e in allocation.entries
        ]
    else:
        splits = []
    return {"participants": list(allocation.participants), "splits": splits}


def _payer_docs(payers: List[Payer]) -> List[Dict[str, Any]]:
    return [{"name": p.name, "amount_paid": p.amount_paid} for p in payers]


def expense_to_document(expense: Expense) -> Dict[str, Any]:
    doc = {
        "description": expense.description,
        "amount": expense.amount,
        "date": expense.date,
        "type": expense.kind.value,
        "created_by": to_object_id(expense.created_by, "user ID"),
        "group_id": to_object_id(expense.group_id, "group ID") if expense.group_id else None,
        "paid_by": expense.paid_by,
        "payers": _payer_docs(expense.payers),
        "split_type": expense.split_type.value,
        "payment_method": expense.payment_method,
        "category": expense.category,
        "created_at": expense.created_at,
        "updated_at": expense.updated_at,
    }
    doc.update(_allocation_fields(expense.allocation))
    return doc


def expense_from_document(doc: Dict[str, Any]) -> Expense:
    splits = doc.get("splits") or []
    # advanced expenses always carry at least one split entry
    if splits:
        allocation = ExplicitSplit([
            SplitEntry(s["participant"], s["amount"], s.get("percentage"))
            for s in splits
        ])
    else:
        allocation = EqualSplit(list(doc.get("participants") or []))

    return Expense(
        id=str(doc["_id"]),
        description=doc["description"],
        amount=doc["amount"],
        date=doc["date"],
        kind=ExpenseKind(doc.get("type", ExpenseKind.GROUP.value)),
        created_by=str(doc["created_by"]),
        group_id=str(doc["group_id"]) if doc.get("group_id") else None,
        allocation=allocation,
        split_type=SplitType(doc.get("split_type", SplitType.EQUAL.value)),
        paid_by=doc.get("paid_by") or "",
        payers=[Payer(p["name"], p["amount_paid"]) for p in doc.get("payers") or []],
        payment_method=doc.get("payment_method"),
        category=doc.get("category"),
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


class MongoExpenseStore(ExpenseStore):

    def __init__(self, db):
        self.collection = db.expenses

    def create(self, expense: Expense) -> Expense:
        expense.created_at = expense.updated_at = _now()
        doc = expense_to_document(expense)
        with driver_errors():
            result = self.collection.insert_one(doc)
        expense.id = str(result.inserted_id)
        return expense

    def find_by_id(self, expense_id: str) -> Expense:
        oid = to_object_id(expense_id, "expense ID")
        with driver_errors():
            doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise NotFoundError("Expense not found")
        return expense_from_document(doc)

    def _find(self, query) -> List[Expense]:
        with driver_errors():
            docs = list(self.collection.find(query).sort(NEWEST_FIRST))
        return [expense_from_document(d) for d in docs]

    def find_by_group(self, group_id: str) -> List[Expense]:
        return self._find({"group_id": to_object_id(group_id, "group ID")})

    def find_by_groups(self, group_ids: Iterable[str]) -> List[Expense]:
        oids = [to_object_id(g, "group ID") for g in group_ids]
        if not oids:
            return []
        return self._find({"group_id": {"$in": oids}})

    def find_personal(self, user_id: str) -> List[Expense]:
        return self._find({
            "created_by": to_object_id(user_id, "user ID"),
            "type": ExpenseKind.PERSONAL.value,
        })

    def update(self, expense_id: str, fields: Dict[str, Any]) -> Expense:
        oid = to_object_id(expense_id, "expense ID")
        changes = {}
        for name, value in fields.items():
            if name == "allocation":
                changes.update(_allocation_fields(value))
            elif name == "payers":
                changes["payers"] = _payer_docs(value)
            elif name == "split_type":
                changes["split_type"] = SplitType(value).value
            else:
                changes[name] = value
        changes["updated_at"] = _now()

        with driver_errors():
            doc = self.collection.find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        if not doc:
            raise NotFoundError("Expense not found")
        return expense_from_document(doc)

    def delete(self, expense_id: str) -> None:
        oid = to_object_id(expense_id, "expense ID")
        with driver_errors():
            result = self.collection.delete_one({"_id": oid})
        if result.deleted_count == 0:
            raise NotFoundError("Expense not found")


def _group_from_document(doc) -> Group:
    return Group(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        members=list(doc.get("members") or []),
    )


class MongoGroupStore(GroupStore):

    def __init__(self, db):
        self.collection = db.groups

    def find_by_id(self, group_id: str) -> Group:
        oid = to_object_id(group_id, "group ID")
        with driver_errors():
            doc = self.collection.find_one({"_id": oid})
        if not doc:
            raise NotFoundError("Group not found")
        return _group_from_document(doc)

    def find_by_member(self, name: str) -> List[Group]:
        # stored names may carry padding; members compare after trimming
        pattern = r"^\s*" + re.escape(name.strip()) + r"\s*$"
        with driver_errors():
            docs = list(self.collection.find({"members": {"$regex": pattern}}))
        return [_group_from_document(d) for d in docs]


class MongoUserStore(UserStore):

    def __init__(self, db):
        self.collection = db.users

    def find_by_id(self, user_id: str) -> Optional[User]:
        try:
            oid = to_object_id(user_id, "user ID")
        except InvalidIdentifierError:
            return None
        with driver_errors():
            doc = self.collection.find_one({"_id": oid}, {"password_hash": 0})
        return User.from_document(doc) if doc else None

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with driver_errors():
            return self.collection.find_one({"email": email})

    def find_by_names(self, names: Iterable[str]) -> List[User]:
        with driver_errors():
            docs = list(self.collection.find(
                {"name": {"$in": list(names)}}, {"password_hash": 0}
            ))
        return [User.from_document(d) for d in docs]

    def create(self, name: str, email: str, password_hash: bytes) -> User:
        doc = {
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "created_at": _now(),
        }
        with driver_errors():
            result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return User.from_document(doc)
