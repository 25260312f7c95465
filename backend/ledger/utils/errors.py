"""Error taxonomy and the Flask handlers that turn it into response envelopes."""
import structlog
from flask import jsonify
from werkzeug.exceptions import HTTPException

log = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base class for every error the expense core reports to a caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed, missing or inconsistent input."""
    status_code = 400


class AuthorizationError(LedgerError):
    """Caller (or a referenced name) is not allowed to act on the record."""
    status_code = 403


class NotFoundError(LedgerError):
    """A group or expense identifier does not resolve."""
    status_code = 404


class StorageError(LedgerError):
    """Underlying persistence failure."""
    status_code = 500


class InvalidIdentifierError(StorageError):
    """Identifier does not fit the storage layer's addressing scheme."""
    status_code = 400


def _envelope(message, status):
    return jsonify({"success": False, "message": message}), status


def register_error_handlers(app):
    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        if error.status_code >= 500:
            log.error("storage_failure", error=error.message, exc_info=error)
            return _envelope("Server error", error.status_code)
        log.debug("request_rejected", status=error.status_code, reason=error.message)
        return _envelope(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return _envelope(error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        log.exception("unhandled_error")
        return _envelope("Server error", 500)
