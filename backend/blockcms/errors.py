from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException

from blockcms.domain.invariants.exceptions import (
    Conflict,
    DuplicateType,
    InvalidFilterCondition,
    InvalidMove,
    InvalidTransition,
    InvariantViolation,
    NotFound,
    ResourceLocked,
    SystemElementProtected,
    ValidationError,
    VersionNotFound,
)

STATUS_BY_VIOLATION = {
    ValidationError: 422,
    InvalidMove: 400,
    InvalidFilterCondition: 400,
    InvalidTransition: 409,
    DuplicateType: 409,
    Conflict: 409,
    SystemElementProtected: 403,
    ResourceLocked: 423,
    VersionNotFound: 404,
    NotFound: 404,
}

LOGGED_VIOLATIONS = (VersionNotFound, InvalidMove)


def _status_for(error):
    for violation_type in type(error).__mro__:
        if violation_type in STATUS_BY_VIOLATION:
            return STATUS_BY_VIOLATION[violation_type]
    return 400


def register_error_handlers(app):
    @app.errorhandler(InvariantViolation)
    def handle_invariant_violation(error):
        if isinstance(error, LOGGED_VIOLATIONS):
            current_app.logger.error("%s: %s", error.kind, error)

        body = {
            "error": error.kind,
            "message": str(error),
        }
        if isinstance(error, ValidationError):
            body["errors"] = error.errors
        if isinstance(error, ResourceLocked):
            body["lock_info"] = error.lock_info

        response = jsonify(body)
        response.status_code = _status_for(error)
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        response = jsonify({
            "error": error.name.replace(" ", ""),
            "message": error.description,
        })
        response.status_code = error.code
        return response
