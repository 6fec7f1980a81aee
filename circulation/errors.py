# circulation/errors.py
from flask import jsonify

USER_NOT_FOUND = "USER_NOT_FOUND"
USER_NOT_ACTIVE = "USER_NOT_ACTIVE"
BORROW_LIMIT_REACHED = "BORROW_LIMIT_REACHED"
BOOK_NOT_FOUND = "BOOK_NOT_FOUND"
BOOK_NOT_AVAILABLE = "BOOK_NOT_AVAILABLE"
ALREADY_BORROWED = "ALREADY_BORROWED"
BORROW_NOT_FOUND = "BORROW_NOT_FOUND"
ALREADY_RETURNED = "ALREADY_RETURNED"
BOOK_RETURNED = "BOOK_RETURNED"
INVALID_DUE_DATE = "INVALID_DUE_DATE"
RENEWAL_LIMIT = "RENEWAL_LIMIT"
NOT_ACTIVE = "NOT_ACTIVE"
TRANSACTION_FAILED = "TRANSACTION_FAILED"
VALIDATION_ERROR = "VALIDATION_ERROR"

_NOT_FOUND_CODES = {USER_NOT_FOUND, BOOK_NOT_FOUND, BORROW_NOT_FOUND}


class CirculationError(Exception):
    code = None
    status_code = 400

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self):
        return {"success": False, "message": self.message, "code": self.code}


class BorrowError(CirculationError):
    """Domain kural ihlali (limit, stok, durum geçişi...)."""

    def __init__(self, code: str, message: str):
        super().__init__(message, code)
        self.status_code = 404 if code in _NOT_FOUND_CODES else 400


class TransactionError(CirculationError):
    """Storage tarafında transaction commit/rollback hatası; kısmi yazım kalmaz."""

    code = TRANSACTION_FAILED
    status_code = 500


class ValidationError(CirculationError):
    code = VALIDATION_ERROR


def register_error_handlers(app):
    @app.errorhandler(CirculationError)
    def _circulation_error(e: CirculationError):
        if e.status_code >= 500:
            app.logger.error(f"[errors] {e.code}: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def _not_found(_e):
        return jsonify({"success": False, "message": "Not found", "code": "NOT_FOUND"}), 404
