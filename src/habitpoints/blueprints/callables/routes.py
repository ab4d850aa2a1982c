"""HTTP envelope around the callables."""

from __future__ import annotations

from flask import jsonify, request

from ...callables import CALLABLES, INTERNAL, INVALID_ARGUMENT, UNAUTHENTICATED, CallableError
from ...extensions import get_context
from . import bp

AUTH_HEADER = "X-Authenticated-User"

HTTP_STATUS = {
    UNAUTHENTICATED: 401,
    INVALID_ARGUMENT: 400,
    INTERNAL: 500,
}


def _error(status: str, message: str, http_status: int):
    return jsonify(error={"status": status, "message": message}), http_status


@bp.post("/<name>")
def invoke(name: str):
    """Run the named callable with ``{"data": ...}`` from the request body."""

    func = CALLABLES.get(name)
    if func is None:
        return _error("not-found", f"Unknown callable: {name}", 404)

    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return _error(INVALID_ARGUMENT, "Request body must be a JSON object", 400)

    auth_uid = request.headers.get(AUTH_HEADER, "").strip() or None
    try:
        result = func(get_context(), auth_uid, body.get("data"))
    except CallableError as exc:
        return _error(exc.status, exc.message, HTTP_STATUS.get(exc.status, 500))
    return jsonify(result=result)
