# payroll_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException
from .http import fail


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ValidationError(APIError):
    """Missing or malformed input. Never retried."""
    def __init__(self, message, payload=None):
        super().__init__("VALIDATION_ERROR", message, 400, payload)


class NotFoundError(APIError):
    def __init__(self, message, payload=None):
        super().__init__("NOT_FOUND", message, 404, payload)


class ConflictError(APIError):
    """Duplicate-key race on create, or re-finalizing a paid cycle."""
    def __init__(self, message, payload=None):
        super().__init__("CONFLICT", message, 409, payload)


class FatalInvariantError(APIError):
    """
    Internal consistency check failed. Reported to the caller as a 400, but
    it points at a logic defect rather than bad input, so the handler logs it
    at ERROR level.
    """
    def __init__(self, code, message, payload=None):
        super().__init__(code, message, 400, payload)


class CycleMismatchError(FatalInvariantError):
    def __init__(self, message, payload=None):
        super().__init__("CYCLE_MISMATCH", message, payload)


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        if isinstance(e, FatalInvariantError):
            app.logger.error("invariant violated [%s]: %s (%r)", e.code, e.message, e.payload)
        return fail(e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR")

    @app.errorhandler(404)
    def _404(_): return fail("Not found", status=404)

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
