"""Exception taxonomy for the scan, window and attestation pipeline."""

from __future__ import annotations


class MintError(Exception):
    """Base class for failures that surface at the request boundary."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ConfigurationError(MintError):
    """Raised when settings are inconsistent (e.g. signer URLs vs tokens)."""


class NotFound(MintError):
    """Identity or account lookup missed."""

    status_code = 404


class Unverified(MintError):
    """Address is not cryptographically linked to the identity."""

    status_code = 403


class InvalidSession(MintError):
    """No active identity context for the request."""

    status_code = 401


class FetchError(MintError):
    """Upstream feed or chain endpoint unreachable or returned garbage."""

    status_code = 502


class NothingToMint(MintError):
    """Post-filter aggregate is empty or every count is zero."""

    status_code = 409


class NoAttributableActivity(MintError):
    """A single reactor has no reactions after its range boundary."""

    status_code = 409


class SignerUnreachable(MintError):
    """A signer endpoint could not be contacted."""

    status_code = 502

    def __init__(self, signer_url: str, message: str = "") -> None:
        super().__init__(message or f"Signer {signer_url} unreachable")
        self.signer_url = signer_url


class SignerRejected(MintError):
    """A signer answered with an error or an unusable payload."""

    status_code = 502

    def __init__(self, reason: str, signer_url: str | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.signer_url = signer_url


class SignerMismatch(SignerRejected):
    """Signers echoed different arguments for the same request."""
