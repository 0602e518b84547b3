"""Service layer helpers for likemint."""

from .http import HttpSettings, configure_http, get_http_session, http_request
from .logging import configure_logging, get_rotating_log_handler
from .scheduler import SchedulerService

__all__ = [
    "configure_http",
    "get_http_session",
    "http_request",
    "HttpSettings",
    "configure_logging",
    "get_rotating_log_handler",
    "SchedulerService",
]
