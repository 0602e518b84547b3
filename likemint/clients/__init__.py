"""Adapters for the external services the pipeline reads from."""

from .chain import MINTER_ABI, ChainBoundaryReader
from .neynar import NeynarClient

__all__ = ["MINTER_ABI", "ChainBoundaryReader", "NeynarClient"]
