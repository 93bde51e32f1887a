"""Flask boundary helpers shared by the controllers.

Identity and role come from the session issued by the auth collaborator
(``user_id`` and ``role``). Role checks happen here, once, as capability checks.
"""
from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, session

from ..core.capabilities import Capability, has_capability
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Role | None:
    try:
        return Role(session.get("role"))
    except ValueError:
        return None


def capability_required(capability: Capability):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Login required"}), 401
            if not has_capability(session.get("role"), capability):
                return jsonify({"success": False, "message": "Forbidden"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


def error_response(e: DomainError):
    if isinstance(e, ValidationError):
        status = 400
    elif isinstance(e, NotFoundError):
        status = 404
    elif isinstance(e, AuthorizationError):
        status = 403
    elif e.retryable:
        status = 503
    else:
        status = 400

    body = {"success": False, "message": str(e)}
    if e.retryable:
        body["retryable"] = True
    return jsonify(body), status


def system_error_response(message: str):
    logger.exception(message)
    return jsonify({"success": False, "message": message}), 500


def require_course_access(roster, course_id: int) -> None:
    """Admins see every course; lecturers only the courses they teach."""
    if current_role() == Role.ADMIN:
        return
    if not roster.is_course_lecturer(int(course_id), current_user_id()):
        raise AuthorizationError("You do not teach this course")
