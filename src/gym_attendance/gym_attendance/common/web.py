from __future__ import annotations

from functools import wraps

from flask import jsonify, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    GymMismatch,
    GymNotFound,
    MemberInactive,
    MemberNotFound,
    PersistenceFailure,
    ValidationError,
)

_HTTP_STATUS = {
    ValidationError: 400,
    AuthenticationError: 401,
    AuthorizationError: 403,
    MemberInactive: 403,
    GymMismatch: 403,
    MemberNotFound: 404,
    GymNotFound: 404,
    PersistenceFailure: 503,
}


def error_response(exc: DomainError):
    body = {"success": False, "code": exc.code, "message": str(exc)}
    if isinstance(exc, MemberInactive):
        body["status"] = exc.status
    if isinstance(exc, PersistenceFailure):
        body["retryable"] = True
    return jsonify(body), _HTTP_STATUS.get(type(exc), 400)


def role_required(role: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "role" not in session:
                return jsonify({"success": False, "code": "login_required", "message": "Please log in"}), 401
            if session.get("role") != role.value:
                return jsonify({"success": False, "code": "forbidden", "message": "Not allowed"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator
