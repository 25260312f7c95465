from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, jwt_required
from bcrypt import hashpw, gensalt, checkpw

from ledger.utils.permissions import current_user
from ledger.utils.validators import require_keys

auth_bp = Blueprint("auth", __name__)


def _users():
    return current_app.extensions["user_store"]


def _user_payload(user):
    return {"id": user.id, "name": user.name, "email": user.email}


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    require_keys(data, "name", "email", "password")

    if _users().find_by_email(data["email"]):
        return jsonify({"success": False, "message": "User already exists"}), 409

    password_hash = hashpw(data["password"].encode(), gensalt())
    user = _users().create(data["name"].strip(), data["email"], password_hash)
    access_token = create_access_token(identity=user.id)

    return jsonify({
        "success": True,
        "data": {"access_token": access_token, "user": _user_payload(user)}
    }), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    require_keys(data, "email", "password")
    record = _users().find_by_email(data["email"])

    if not record or not checkpw(data["password"].encode(), record["password_hash"]):
        return jsonify({"success": False, "message": "Invalid credentials"}), 401

    user = _users().find_by_id(str(record["_id"]))
    token = create_access_token(identity=user.id)

    return jsonify({
        "success": True,
        "data": {"access_token": token, "user": _user_payload(user)}
    })


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    return jsonify({"success": True, "data": _user_payload(current_user())})
