import structlog
from flask import jsonify
from flask_jwt_extended import JWTManager
from flask_mail import Mail
from pymongo import MongoClient

log = structlog.get_logger(__name__)

jwt = JWTManager()


def init_mongo(app):
    """Connect to MongoDB and keep the client and database on the app."""
    client = MongoClient(app.config["MONGO_URI"], tz_aware=True)

    # get_default_database() extracts the DB name from the URI;
    # fall back to the configured name when the URI has none
    db = client.get_default_database(default=app.config["MONGO_DB_NAME"])

    app.extensions["mongo_client"] = client
    app.extensions["mongo_db"] = db
    log.info("mongo_connected", database=db.name)
    return db


def init_mail(app):
    """Build the mail transport once; whoever sends mail gets this handle."""
    mail = Mail()
    mail.init_app(app)
    return mail


def _unauthorized(reason):
    return jsonify({"success": False, "message": f"Unauthorized: {reason}"}), 401


@jwt.unauthorized_loader
def missing_token(reason):
    return _unauthorized(reason)


@jwt.invalid_token_loader
def invalid_token(reason):
    return _unauthorized(reason)


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return _unauthorized("token has expired")
