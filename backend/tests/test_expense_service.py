"""
Tests for the expense service.

Covers the creation paths end to end against in-memory stores, plus the
update/delete lifecycle and its authorization.
"""

import pytest

from ledger.core import ExpenseService, NotificationService
from ledger.expenses.models import EqualSplit, ExplicitSplit, Payer
from ledger.utils.enums import ExpenseKind, SplitType
from ledger.utils.errors import AuthorizationError, NotFoundError, ValidationError


def advanced_body(**extra):
    body = {
        "groupId": "g-trip",
        "description": "Dinner",
        "amount": 100,
        "date": "2024-02-10",
        "splits": [
            {"participant": "Alice", "amount": 50},
            {"participant": "Bob", "amount": 50},
        ],
    }
    body.update(extra)
    return body


def equal_body(**extra):
    body = {
        "groupId": "g-trip",
        "description": "Taxi",
        "amount": 30,
        "date": "2024-02-11",
        "paidBy": "Alice",
        "participants": ["Alice", "Bob"],
    }
    body.update(extra)
    return body


class TestCreatePersonal:

    def test_coffee(self, service, alice):
        """A personal expense needs no group and records its creator."""
        expense = service.create(alice, {"description": "Coffee", "amount": 4.5, "date": "2024-01-01"})
        assert expense.kind == ExpenseKind.PERSONAL
        assert expense.created_by == "u-alice"
        assert expense.group_id is None
        assert expense.payment_method == "Cash"
        assert expense.category == "Other"
        assert expense.id is not None
        assert expense.created_at is not None

    def test_personal_is_not_notified(self, service, alice, queue):
        service.create_personal(alice, {"description": "Coffee", "amount": 4.5, "date": "2024-01-01"})
        assert queue.items == []


class TestCreateGroupEqual:

    def test_equal_split(self, service, alice):
        expense = service.create(alice, equal_body())
        assert expense.split_type == SplitType.EQUAL
        assert isinstance(expense.allocation, EqualSplit)
        assert expense.participants == ["Alice", "Bob"]
        assert expense.splits == []
        assert expense.payers == []
        assert expense.paid_by == "Alice"

    def test_actor_must_be_member(self, service, dave, expense_store):
        with pytest.raises(AuthorizationError):
            service.create(dave, equal_body())
        assert expense_store.records == {}

    def test_unknown_group(self, service, alice):
        with pytest.raises(NotFoundError):
            service.create(alice, equal_body(groupId="g-missing"))

    def test_all_non_members_reported(self, service, alice, expense_store):
        with pytest.raises(ValidationError) as info:
            service.create(alice, equal_body(paidBy="Zed", participants=["Alice", "Yan"]))
        assert "Zed" in info.value.message
        assert "Yan" in info.value.message
        assert expense_store.records == {}

    def test_group_is_notified(self, service, alice, queue):
        expense = service.create(alice, equal_body())
        assert len(queue.items) == 1
        message = queue.items[0]
        assert message["topic"] == "group_g-trip"
        assert message["notification"]["body"] == "Alice added an expense of Rs 30 to Goa Trip"
        assert message["data"]["expenseId"] == expense.id


class TestCreateGroupAdvanced:

    def test_multi_payer_explicit_split(self, service, alice):
        expense = service.create(alice, advanced_body(payers=[
            {"name": "Alice", "amountPaid": 70},
            {"name": " Carol ", "amountPaid": 30},
        ]))
        assert expense.paid_by == "Multiple"
        assert expense.payers == [Payer("Alice", 70), Payer("Carol", 30)]
        assert isinstance(expense.allocation, ExplicitSplit)
        assert expense.participants == ["Alice", "Bob"]
        assert expense.split_type == SplitType.UNEQUAL

    def test_short_payment_fails(self, service, alice, expense_store):
        with pytest.raises(ValidationError, match=r"Total paid amount \(99\)"):
            service.create(alice, advanced_body(payers=[
                {"name": "Alice", "amountPaid": 60},
                {"name": "Bob", "amountPaid": 39},
            ]))
        assert expense_store.records == {}

    def test_split_to_non_member_fails(self, service, alice, expense_store):
        with pytest.raises(ValidationError, match="Dave"):
            service.create(alice, advanced_body(groupId="g-flat", paidBy="Alice", splits=[
                {"participant": "Alice", "amount": 50},
                {"participant": "Dave", "amount": 50},
            ]))
        assert expense_store.records == {}

    def test_non_member_and_bad_totals_reported_together(self, service, alice, expense_store):
        with pytest.raises(ValidationError) as info:
            service.create(alice, advanced_body(
                payers=[{"name": "Alice", "amountPaid": 60}, {"name": "Bob", "amountPaid": 39}],
                splits=[{"participant": "Alice", "amount": 50}, {"participant": "Zed", "amount": 50}],
            ))
        assert info.value.message == (
            "Names are not group members: Zed; "
            "Total paid amount (99) must equal expense amount (100)"
        )
        assert expense_store.records == {}

    def test_non_member_paid_by_fails_before_persisting(self, service, alice, expense_store, queue):
        with pytest.raises(ValidationError, match="Eve"):
            service.create_group_advanced(alice, advanced_body(paidBy="Eve"))
        assert expense_store.records == {}
        assert queue.items == []

    def test_implicit_payer_is_stored(self, service, alice):
        expense = service.create_group_advanced(alice, advanced_body(paidBy="Bob", splitType="percentage"))
        assert expense.paid_by == "Bob"
        assert expense.payers == [Payer("Bob", 100)]
        assert expense.split_type == SplitType.PERCENTAGE

    def test_payers_without_splits(self, service, alice):
        body = advanced_body(payers=[{"name": "Alice", "amountPaid": 100}])
        del body["splits"]
        with pytest.raises(ValidationError, match="splits required"):
            service.create(alice, body)

    def test_notification_failure_does_not_fail_creation(self, expense_store, group_store, failing_queue, alice):
        service = ExpenseService(expense_store, group_store, NotificationService(failing_queue))
        expense = service.create(alice, advanced_body(paidBy="Alice"))
        assert expense.id in expense_store.records


class TestRead:

    def test_get_returns_normalized_input(self, service, alice):
        created = service.create(alice, equal_body(description="  Taxi  ", amount="30", paidBy=" Alice"))
        fetched = service.get_by_id(alice, created.id)
        assert fetched == created
        assert fetched.description == "Taxi"
        assert fetched.amount == 30.0
        assert fetched.paid_by == "Alice"

    def test_get_personal_of_someone_else(self, service, alice, bob):
        created = service.create(alice, {"description": "Gift", "amount": 20, "date": "2024-01-01"})
        with pytest.raises(AuthorizationError):
            service.get_by_id(bob, created.id)

    def test_list_all_merges_newest_first(self, service, alice, bob):
        first = service.create(alice, equal_body())
        second = service.create(alice, {"description": "Coffee", "amount": 4.5, "date": "2024-01-01"})
        third = service.create(bob, equal_body(groupId="g-flat", paidBy="Bob"))
        service.create(bob, {"description": "Bob only", "amount": 9, "date": "2024-01-01"})

        ids = [e.id for e in service.list_all(alice)]
        assert ids == [third.id, second.id, first.id]

    def test_list_all_finds_groups_with_padded_member_names(self, service, alice, group_store):
        created = service.create(alice, equal_body())
        group_store.groups["g-trip"].members = [" Alice ", "Bob", "Carol"]
        assert [e.id for e in service.list_all(alice)] == [created.id]

    def test_list_by_group_requires_membership(self, service, alice, dave):
        service.create(alice, equal_body())
        assert len(service.list_by_group(alice, "g-trip")) == 1
        with pytest.raises(AuthorizationError):
            service.list_by_group(dave, "g-trip")

    def test_shares_for_equal_split(self, service, alice):
        created = service.create(alice, equal_body(amount=10, participants=["Alice", "Bob", "Carol"]))
        assert [s["amount"] for s in service.shares(alice, created.id)] == [3.33, 3.33, 3.34]


class TestUpdate:

    def test_amount_only(self, service, alice):
        created = service.create(alice, equal_body())
        updated = service.update(alice, created.id, {"amount": 45})
        assert updated.amount == 45
        assert updated.description == created.description
        assert updated.participants == created.participants
        assert updated.paid_by == created.paid_by
        assert updated.date == created.date

    def test_single_payer_follows_amount(self, service, alice):
        created = service.create(alice, advanced_body(paidBy="Alice"))
        updated = service.update(alice, created.id, {
            "amount": 120,
            "splits": [{"participant": "Alice", "amount": 60}, {"participant": "Bob", "amount": 60}],
        })
        assert updated.payers == [Payer("Alice", 120)]

    def test_amount_that_breaks_splits_is_rejected(self, service, alice, expense_store):
        created = service.create(alice, advanced_body(paidBy="Alice"))
        with pytest.raises(ValidationError, match="Total split amount"):
            service.update(alice, created.id, {"amount": 120})
        assert expense_store.records[created.id].amount == 100

    def test_multi_payer_amount_change_is_rejected(self, service, alice):
        created = service.create(alice, advanced_body(payers=[
            {"name": "Alice", "amountPaid": 50}, {"name": "Bob", "amountPaid": 50},
        ]))
        with pytest.raises(ValidationError, match="Total paid amount"):
            service.update(alice, created.id, {
                "amount": 80,
                "splits": [{"participant": "Alice", "amount": 80}],
            })

    def test_new_names_must_be_members(self, service, alice):
        created = service.create(alice, equal_body())
        with pytest.raises(ValidationError, match="Dave"):
            service.update(alice, created.id, {"participants": ["Alice", "Dave"]})

    def test_update_reports_non_members_with_totals(self, service, alice):
        created = service.create(alice, advanced_body(paidBy="Alice"))
        with pytest.raises(ValidationError) as info:
            service.update(alice, created.id, {
                "splits": [{"participant": "Dave", "amount": 20}, {"participant": "Bob", "amount": 20}],
            })
        assert "Names are not group members: Dave" in info.value.message
        assert "Total split amount (40) must equal expense amount (100)" in info.value.message

    def test_explicit_splits_on_equal_expense_become_unequal(self, service, alice):
        created = service.create(alice, equal_body(amount=100))
        updated = service.update(alice, created.id, {
            "splits": [{"participant": "Alice", "amount": 70}, {"participant": "Bob", "amount": 30}],
        })
        assert isinstance(updated.allocation, ExplicitSplit)
        assert updated.split_type == SplitType.UNEQUAL

    def test_explicit_splits_keep_a_supplied_split_type(self, service, alice):
        created = service.create(alice, equal_body(amount=100))
        updated = service.update(alice, created.id, {
            "splitType": "percentage",
            "splits": [{"participant": "Alice", "amount": 70, "percentage": 70},
                       {"participant": "Bob", "amount": 30, "percentage": 30}],
        })
        assert updated.split_type == SplitType.PERCENTAGE

    def test_participants_of_explicit_split_are_derived(self, service, alice):
        created = service.create(alice, advanced_body(paidBy="Alice"))
        with pytest.raises(ValidationError, match="derived from splits"):
            service.update(alice, created.id, {"participants": ["Alice"]})

    def test_membership_is_rechecked(self, service, alice, group_store):
        created = service.create(alice, equal_body())
        group_store.groups["g-trip"].members.remove("Alice")
        with pytest.raises(AuthorizationError):
            service.update(alice, created.id, {"amount": 10})

    def test_only_creator_updates_personal(self, service, alice, bob):
        created = service.create(alice, {"description": "Gift", "amount": 20, "date": "2024-01-01"})
        with pytest.raises(AuthorizationError):
            service.update(bob, created.id, {"amount": 25}, ExpenseKind.PERSONAL)
        updated = service.update(alice, created.id, {"category": "Gifts"}, ExpenseKind.PERSONAL)
        assert updated.category == "Gifts"

    def test_kind_mismatch(self, service, alice):
        created = service.create(alice, equal_body())
        with pytest.raises(ValidationError, match="not a personal expense"):
            service.update(alice, created.id, {"amount": 25}, ExpenseKind.PERSONAL)


class TestDelete:

    def test_delete_is_terminal(self, service, alice):
        created = service.create(alice, equal_body())
        service.delete(alice, created.id, ExpenseKind.GROUP)
        with pytest.raises(NotFoundError):
            service.get_by_id(alice, created.id)
        with pytest.raises(NotFoundError):
            service.delete(alice, created.id, ExpenseKind.GROUP)
        with pytest.raises(NotFoundError):
            service.update(alice, created.id, {"amount": 5})

    def test_non_member_cannot_delete(self, service, alice, dave, expense_store):
        created = service.create(alice, equal_body())
        with pytest.raises(AuthorizationError):
            service.delete(dave, created.id, ExpenseKind.GROUP)
        assert created.id in expense_store.records

    def test_delete_personal(self, service, alice, bob):
        created = service.create(alice, {"description": "Gift", "amount": 20, "date": "2024-01-01"})
        with pytest.raises(AuthorizationError):
            service.delete(bob, created.id, ExpenseKind.PERSONAL)
        service.delete(alice, created.id, ExpenseKind.PERSONAL)
        assert service.list_personal(alice) == []
