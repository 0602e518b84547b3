"""Middleware utilities for the likemint Flask application."""

from .auth import (
    LOGIN_MESSAGE,
    current_user,
    end_session,
    issue_login_code,
    require_session_address,
    start_session,
)
from .errors import add_cors_headers, cors_preflight, json_error, json_result, register_error_handlers

__all__ = [
    "LOGIN_MESSAGE",
    "current_user",
    "end_session",
    "issue_login_code",
    "require_session_address",
    "start_session",
    "add_cors_headers",
    "cors_preflight",
    "json_error",
    "json_result",
    "register_error_handlers",
]
