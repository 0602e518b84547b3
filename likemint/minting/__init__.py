"""Scan, window filter, argument building and attestation."""

from .aggregator import DEFAULT_DEPTH_LIMIT, ReactionAggregator
from .arguments import MintArguments, build
from .attestation import AttestationClient, CombinedAttestation, SignedAttestation
from .errors import (
    FetchError,
    InvalidSession,
    MintError,
    NoAttributableActivity,
    NotFound,
    NothingToMint,
    SignerMismatch,
    SignerRejected,
    SignerUnreachable,
    Unverified,
)
from .models import Identity, ReactionEvent, ReactionPage, ReactorEntry, ReactorTally, ScanResult
from .pipeline import MintPipeline, MintRun, MintState
from .window import apply_window, entry_for, is_attributable

__all__ = [
    "DEFAULT_DEPTH_LIMIT",
    "ReactionAggregator",
    "MintArguments",
    "build",
    "AttestationClient",
    "CombinedAttestation",
    "SignedAttestation",
    "FetchError",
    "InvalidSession",
    "MintError",
    "NoAttributableActivity",
    "NotFound",
    "NothingToMint",
    "SignerMismatch",
    "SignerRejected",
    "SignerUnreachable",
    "Unverified",
    "Identity",
    "ReactionEvent",
    "ReactionPage",
    "ReactorEntry",
    "ReactorTally",
    "ScanResult",
    "MintPipeline",
    "MintRun",
    "MintState",
    "apply_window",
    "entry_for",
    "is_attributable",
]
