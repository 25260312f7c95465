# ledger/expenses/routes.py

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from ledger.utils.enums import ExpenseKind
from ledger.utils.permissions import current_user

expenses_bp = Blueprint("expenses", __name__)


def _service():
    return current_app.extensions["expense_service"]


def _body():
    return request.get_json(silent=True)


def _one(expense, status=200):
    return jsonify({"success": True, "data": expense.to_view()}), status


def _many(expenses):
    return jsonify({"success": True, "data": [e.to_view() for e in expenses]})


# ------------------ CREATE ------------------

@expenses_bp.route("/", methods=["POST"])
@expenses_bp.route("/add", methods=["POST"])
@jwt_required()
def create_expense():
    """
    Add an expense; the shape is picked from the body.

    No groupId -> personal, groupId with payers/splits -> advanced,
    groupId with paidBy + participants -> equal split.
    """
    return _one(_service().create(current_user(), _body()), 201)


@expenses_bp.route("/personal", methods=["POST"])
@jwt_required()
def create_personal_expense():
    return _one(_service().create_personal(current_user(), _body()), 201)


@expenses_bp.route("/unequal", methods=["POST"])
@jwt_required()
def create_unequal_expense():
    """
    Add a group expense with explicit splits and optional multiple payers.

    Request body:
    {
        "groupId": "...",
        "description": "Dinner",
        "amount": 100.00,
        "date": "2024-01-01",
        "payers": [{"name": "Alice", "amountPaid": 60}, ...],  // or "paidBy"
        "splits": [{"participant": "Bob", "amount": 50, "percentage": 50}, ...],
        "splitType": "unequal|percentage|shares|equal"  // default: unequal
    }
    """
    return _one(_service().create_group_advanced(current_user(), _body()), 201)


# ------------------ READ ------------------

@expenses_bp.route("/", methods=["GET"])
@jwt_required()
def get_all_expenses():
    return _many(_service().list_all(current_user()))


@expenses_bp.route("/personal", methods=["GET"])
@jwt_required()
def get_personal_expenses():
    return _many(_service().list_personal(current_user()))


@expenses_bp.route("/group/<group_id>", methods=["GET"])
@jwt_required()
def get_group_expenses(group_id):
    return _many(_service().list_by_group(current_user(), group_id))


@expenses_bp.route("/<expense_id>", methods=["GET"])
@jwt_required()
def get_expense(expense_id):
    return _one(_service().get_by_id(current_user(), expense_id))


@expenses_bp.route("/<expense_id>/shares", methods=["GET"])
@jwt_required()
def get_expense_shares(expense_id):
    """What each participant owes; equal splits are divided here, not stored."""
    shares = _service().shares(current_user(), expense_id)
    return jsonify({"success": True, "data": shares})


# ------------------ UPDATE ------------------

@expenses_bp.route("/<expense_id>", methods=["PUT"])
@jwt_required()
def update_expense(expense_id):
    expense = _service().update(current_user(), expense_id, _body(), ExpenseKind.GROUP)
    return _one(expense)


@expenses_bp.route("/personal/<expense_id>", methods=["PUT"])
@jwt_required()
def update_personal_expense(expense_id):
    expense = _service().update(current_user(), expense_id, _body(), ExpenseKind.PERSONAL)
    return _one(expense)


# ------------------ DELETE ------------------

@expenses_bp.route("/<expense_id>", methods=["DELETE"])
@jwt_required()
def delete_expense(expense_id):
    _service().delete(current_user(), expense_id, ExpenseKind.GROUP)
    return jsonify({"success": True, "message": "Expense deleted successfully"})


@expenses_bp.route("/personal/<expense_id>", methods=["DELETE"])
@jwt_required()
def delete_personal_expense(expense_id):
    _service().delete(current_user(), expense_id, ExpenseKind.PERSONAL)
    return jsonify({"success": True, "message": "Personal expense deleted successfully"})
