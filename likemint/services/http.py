"""Shared outbound HTTP session for the feed, identity and signer calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

_LOGGER = logging.getLogger("likemint.http")

# Signer POSTs are retried only on rate limiting and gateway errors.
# A 500 from the signer itself is its verdict on the request and is final.
_GATEWAY_STATUSES = frozenset({429, 502, 503, 504})
_READ_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(frozen=True)
class HttpSettings:
    timeout: float = 30.0
    connect_timeout: float = 5.0
    retries: int = 2
    backoff_factor: float = 0.5


class SignerAwareRetry(Retry):
    """Retries reads on any transient status, POSTs only on gateway errors.

    Connection failures are retried for both: a signer that never saw the
    request has not signed anything.
    """

    def is_retry(self, method: str, status_code: int, has_retry_after: bool = False) -> bool:
        if method.upper() == "POST" and status_code not in _GATEWAY_STATUSES:
            return False
        return super().is_retry(method, status_code, has_retry_after)


def build_retry(settings: HttpSettings) -> Retry:
    attempts = max(0, settings.retries)
    return SignerAwareRetry(
        total=attempts,
        connect=attempts,
        read=attempts,
        status=attempts,
        backoff_factor=max(0.0, settings.backoff_factor),
        status_forcelist=_READ_STATUSES,
        allowed_methods=frozenset({"GET", "POST"}),
        respect_retry_after_header=True,
        raise_on_status=False,
    )


def _new_session(settings: HttpSettings) -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=build_retry(settings))
    for prefix in ("http://", "https://"):
        session.mount(prefix, adapter)
    return session


_settings = HttpSettings()
_session: Session | None = None


def configure_http(settings: HttpSettings) -> None:
    """Install new defaults; the shared session is rebuilt on next use."""
    global _settings, _session
    _settings = settings
    _session = _new_session(settings)
    _LOGGER.info(
        "HTTP client configured: timeout=%ss connect=%ss retries=%s backoff=%s",
        settings.timeout,
        settings.connect_timeout,
        settings.retries,
        settings.backoff_factor,
    )


def get_http_session() -> Session:
    global _session
    if _session is None:
        _session = _new_session(_settings)
    return _session


def get_http_settings() -> HttpSettings:
    return _settings


def http_request(
    method: str,
    url: str,
    *,
    timeout: Any | None = None,
    session: Session | None = None,
    logger: Optional[logging.Logger] = None,
    **kwargs: Any,
) -> Response:
    """Send one request through the shared retrying session.

    ``timeout`` defaults to ``(connect_timeout, timeout)`` from the current
    settings. Transport errors are logged and re-raised; HTTP error statuses
    are returned for the caller to interpret.
    """
    sess = session or get_http_session()
    if timeout is None:
        connect = max(0.1, _settings.connect_timeout)
        timeout = (connect, max(connect + 1.0, _settings.timeout))
    verb = method.upper()
    try:
        return sess.request(verb, url, timeout=timeout, **kwargs)
    except requests.RequestException as exc:
        (logger or _LOGGER).warning("HTTP %s %s failed: %s", verb, url, exc)
        raise
