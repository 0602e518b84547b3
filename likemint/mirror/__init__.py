"""On-chain event mirror."""

from .job import CLAIM, MINT, EventMirror
from .storage import Base, ClaimRecord, LogScan, MintRecord, MirrorRepository

__all__ = ["CLAIM", "MINT", "EventMirror", "Base", "ClaimRecord", "LogScan", "MintRecord", "MirrorRepository"]
