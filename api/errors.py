"""
api/errors.py -- The error envelope shared by every failure response.

Every error leaves the API as:

    {"error": "<TaxonomyName>", "message": "<human text>", "statusCode": <int>}

Route handlers raise api_error(...) (an HTTPException whose detail is the
envelope); domain AuthErrors and framework errors are converted by the
handlers registered in api/main.py.
"""

from __future__ import annotations

from fastapi import HTTPException

ERROR_NAMES: dict[int, str] = {
    400: "BadRequest",
    401: "Unauthorized",
    403: "Forbidden",
    404: "NotFound",
    405: "MethodNotAllowed",
    409: "Conflict",
    410: "Gone",
    429: "TooManyRequests",
    500: "InternalServerError",
}


def error_body(status_code: int, message: str, error: str | None = None) -> dict:
    return {
        "error": error or ERROR_NAMES.get(status_code, "Error"),
        "message": message,
        "statusCode": status_code,
    }


def api_error(status_code: int, message: str, error: str | None = None) -> HTTPException:
    """Build (not raise) an HTTPException carrying the error envelope.

    Usage:
        raise api_error(404, "Story not found")
    """
    return HTTPException(status_code=status_code, detail=error_body(status_code, message, error))
