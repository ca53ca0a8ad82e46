"""
response.py — JSON envelope shared by every route.

    { "success": true,  "message": str, "data": {...} }
    { "success": false, "error": str, "details": ... }
"""

from flask import jsonify


def success(data=None, message="OK", status_code=200):
    payload = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    return jsonify(payload), status_code


def created(data=None, message="Created"):
    return success(data=data, message=message, status_code=201)


def error(message="An error occurred", status_code=400, details=None):
    payload = {"success": False, "error": message}
    if details:
        payload["details"] = details
    return jsonify(payload), status_code


def engine_error(exc):
    """Translate an EngineError into its JSON error response."""
    return error(exc.message, status_code=exc.status_code)


def update_result(result, message="Client updated."):
    """
    Wrap an UpdateResult: the merged record plus the notifications the call
    created, so the caller can show them as toasts.
    """
    return success(data=result.to_dict(), message=message)


def not_found(resource="Resource"):
    return error(f"{resource} not found.", status_code=404)


def unauthorized(message="Authentication required."):
    return error(message, status_code=401)


def forbidden(message="Access denied."):
    return error(message, status_code=403)
