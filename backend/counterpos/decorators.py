# Overview: Request decorators and shared error translation for API routes.

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import CounterPosError, StateConflictError
from .validation import MAX_ID


def require_operator(f):
    """
    Require the operator identity forwarded by the upstream auth layer.

    Sets g.operator_id from the X-Operator-Id header.

    Returns 401 if the header is missing or not a positive integer id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get("X-Operator-Id") or "").strip()
        if not raw:
            return jsonify({"error": "Operator identity required"}), 401
        if (
            not (raw.isascii() and raw.isdigit())
            or len(raw) > len(str(MAX_ID))
            or not 1 <= int(raw) <= MAX_ID
        ):
            return jsonify({"error": "Invalid operator identity"}), 401

        g.operator_id = int(raw)
        return f(*args, **kwargs)

    return decorated_function


def error_response(e: CounterPosError):
    """
    JSON body and status for a domain error.

    State conflicts are expected business outcomes (out of stock, underpaid,
    already settled), so they are logged at INFO rather than as failures.
    """
    if isinstance(e, StateConflictError):
        current_app.logger.info("%s %s rejected: %s (%s)", request.method, request.path, e, e.code)
    return jsonify(e.to_dict()), e.status_code
