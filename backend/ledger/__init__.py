from flask import Flask
from flask_cors import CORS

from ledger.config import Config
from ledger.extensions import init_mail, init_mongo, jwt
from ledger.utils.errors import register_error_handlers
from ledger.utils.log_config import configure_logging


def create_app(
    config_class=Config,
    expense_store=None,
    group_store=None,
    user_store=None,
    notification_queue=None
):
    """
    Build the app.

    The stores and the notification queue default to MongoDB; pass them in
    to run against something else. MongoDB is only connected when at least
    one of them is missing.
    """
    from ledger.core import ExpenseService, NotificationService
    from ledger.storage.mongo import MongoExpenseStore, MongoGroupStore, MongoUserStore

    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_logging(app.config["LOG_LEVEL"], app.config["LOG_JSON"])

    # Disable strict slashes to prevent 308 redirects that break CORS preflight
    app.url_map.strict_slashes = False

    CORS(
        app,
        supports_credentials=True,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}}
    )
    jwt.init_app(app)
    mail = init_mail(app)
    register_error_handlers(app)

    if None in (expense_store, group_store, user_store, notification_queue):
        db = init_mongo(app)
        expense_store = expense_store or MongoExpenseStore(db)
        group_store = group_store or MongoGroupStore(db)
        user_store = user_store or MongoUserStore(db)
        if notification_queue is None:
            notification_queue = db.notification_queue

    notifier = NotificationService(
        notification_queue,
        mail=mail,
        users=user_store,
        mail_enabled=app.config["NOTIFY_BY_MAIL"],
        sender=app.config["MAIL_DEFAULT_SENDER"],
    )
    app.extensions["user_store"] = user_store
    app.extensions["expense_service"] = ExpenseService(expense_store, group_store, notifier)

    # Register blueprints
    from ledger.auth.routes import auth_bp
    from ledger.expenses.routes import expenses_bp

    app.register_blueprint(auth_bp, url_prefix='/api/v1/auth')
    app.register_blueprint(expenses_bp, url_prefix='/api/v1/expenses')

    return app
