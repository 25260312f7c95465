"""
Shared fixtures.

The stores here implement the storage interfaces in memory so the services
and routes run without a MongoDB server.
"""
import copy
import dataclasses
import itertools
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from flask_jwt_extended import create_access_token

from ledger import create_app
from ledger.config import TestConfig
from ledger.core import ExpenseService, NotificationService
from ledger.groups.models import Group
from ledger.storage.interface import ExpenseStore, GroupStore, UserStore
from ledger.users.model import User
from ledger.utils.errors import NotFoundError

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryExpenseStore(ExpenseStore):

    def __init__(self):
        self.records = {}
        self._ticks = itertools.count()

    def create(self, expense):
        expense.id = uuid4().hex
        expense.created_at = expense.updated_at = EPOCH + timedelta(seconds=next(self._ticks))
        self.records[expense.id] = copy.deepcopy(expense)
        return copy.deepcopy(expense)

    def find_by_id(self, expense_id):
        if expense_id not in self.records:
            raise NotFoundError("Expense not found")
        return copy.deepcopy(self.records[expense_id])

    def _newest_first(self, predicate):
        found = [copy.deepcopy(e) for e in self.records.values() if predicate(e)]
        return sorted(found, key=lambda e: e.created_at, reverse=True)

    def find_by_group(self, group_id):
        return self._newest_first(lambda e: e.group_id == group_id)

    def find_by_groups(self, group_ids):
        group_ids = set(group_ids)
        return self._newest_first(lambda e: e.group_id in group_ids)

    def find_personal(self, user_id):
        return self._newest_first(lambda e: e.is_personal and e.created_by == user_id)

    def update(self, expense_id, fields):
        current = self.find_by_id(expense_id)
        updated = dataclasses.replace(current, **fields)
        self.records[expense_id] = copy.deepcopy(updated)
        return updated

    def delete(self, expense_id):
        if self.records.pop(expense_id, None) is None:
            raise NotFoundError("Expense not found")


class InMemoryGroupStore(GroupStore):

    def __init__(self, *groups):
        self.groups = {g.id: g for g in groups}

    def find_by_id(self, group_id):
        if group_id not in self.groups:
            raise NotFoundError("Group not found")
        return copy.deepcopy(self.groups[group_id])

    def find_by_member(self, name):
        return [copy.deepcopy(g) for g in self.groups.values() if g.has_member(name)]


class InMemoryUserStore(UserStore):

    def __init__(self):
        self.records = {}

    def add(self, user_id, name, email=None, password_hash=b""):
        self.records[user_id] = {
            "_id": user_id, "name": name, "email": email, "password_hash": password_hash,
        }
        return User(user_id, name, email)

    def find_by_id(self, user_id):
        record = self.records.get(user_id)
        return User.from_document(record) if record else None

    def find_by_email(self, email):
        for record in self.records.values():
            if record["email"] == email:
                return record
        return None

    def find_by_names(self, names):
        names = set(names)
        return [User.from_document(r) for r in self.records.values() if r["name"] in names]

    def create(self, name, email, password_hash):
        return self.add(uuid4().hex, name, email, password_hash)


class RecordingQueue:
    """Collection stand-in that remembers what was inserted."""

    def __init__(self, fail=False):
        self.items = []
        self.fail = fail

    def insert_one(self, document):
        if self.fail:
            raise RuntimeError("queue unavailable")
        self.items.append(document)


@pytest.fixture
def trip_group():
    return Group(id="g-trip", name="Goa Trip", members=["Alice", "Bob", "Carol"])


@pytest.fixture
def flat_group():
    return Group(id="g-flat", name="Flat", members=["Alice", "Bob"])


@pytest.fixture
def users():
    store = InMemoryUserStore()
    store.add("u-alice", "Alice", "alice@example.com")
    store.add("u-bob", "Bob", "bob@example.com")
    store.add("u-dave", "Dave", "dave@example.com")
    return store


@pytest.fixture
def alice(users):
    return users.find_by_id("u-alice")


@pytest.fixture
def bob(users):
    return users.find_by_id("u-bob")


@pytest.fixture
def dave(users):
    return users.find_by_id("u-dave")


@pytest.fixture
def expense_store():
    return InMemoryExpenseStore()


@pytest.fixture
def group_store(trip_group, flat_group):
    return InMemoryGroupStore(trip_group, flat_group)


@pytest.fixture
def queue():
    return RecordingQueue()


@pytest.fixture
def failing_queue():
    return RecordingQueue(fail=True)


@pytest.fixture
def service(expense_store, group_store, queue):
    return ExpenseService(expense_store, group_store, NotificationService(queue))


@pytest.fixture
def app(expense_store, group_store, users, queue):
    return create_app(
        TestConfig,
        expense_store=expense_store,
        group_store=group_store,
        user_store=users,
        notification_queue=queue,
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def headers_for(user_id):
        with app.app_context():
            token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}
    return headers_for
