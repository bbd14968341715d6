# errors.py
from __future__ import annotations

from flask import jsonify

__all__ = ["ApiError", "error_response", "internal_error"]


class ApiError(Exception):
    """
    Expected failure raised by services and guards.
    Handlers pass status/code/message through to the client verbatim.
    """

    def __init__(self, status: int, code: str, message: str):
        super().__init__(message)
        self.status = int(status)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"ApiError({self.status}, {self.code!r}, {self.message!r})"


def error_response(err: ApiError):
    return jsonify(success=False, code=err.code, message=err.message), err.status


def internal_error(message: str = "An unexpected error occurred."):
    return jsonify(success=False, code="INTERNAL_ERROR", message=message), 500
