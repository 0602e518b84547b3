"""Error and response helpers.

Every view answers with the same envelope: ``{"result": ...}`` on success and
``{"error": "<message>"}`` with a non-2xx status on failure.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from flask import Flask, Response, jsonify, make_response, request
from werkzeug.exceptions import HTTPException

from likemint.minting.errors import MintError

LOGGER = logging.getLogger("likemint.api")


def json_result(result: Any, status: int = 200):
    """Return a success envelope suitable as a Flask view return value."""
    return jsonify({"result": result}), int(status)


def json_error(message: str, status: int = 500):
    """Return a JSON error tuple suitable as a Flask view return value."""
    return jsonify({"error": str(message)}), int(status)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(MintError)
    def _mint_error(exc: MintError):
        LOGGER.info("%s %s -> %s: %s", request.method, request.path, exc.__class__.__name__, exc.message)
        return json_error(exc.message, exc.status_code)

    @app.errorhandler(404)
    def _not_found(_exc):
        return json_error("Not found", 404)

    @app.errorhandler(405)
    def _method_not_allowed(_exc):
        return json_error("Method not allowed", 405)

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return json_error(exc.description or exc.name, exc.code or 500)
        LOGGER.exception("Unhandled error on %s %s", request.method, request.path)
        return json_error("Internal error", 500)


def add_cors_headers(response: Response, allowed_origins: Iterable[str]) -> Response:
    """Echo the Origin back when it is one of the configured front-ends."""
    origin = request.headers.get("Origin")
    if origin and origin in set(allowed_origins):
        response.headers["Access-Control-Allow-Origin"] = origin
        vary = response.headers.get("Vary")
        response.headers["Vary"] = f"{vary}, Origin" if vary else "Origin"
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers.setdefault("Access-Control-Allow-Headers", "Content-Type, Authorization")
        response.headers.setdefault("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
    return response


def cors_preflight() -> Response:
    """Empty reply for OPTIONS pre-flight; headers are added in ``after_request``."""
    return make_response("", 200)
