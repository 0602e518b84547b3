"""Read-only access to the minter contract: range closes and event logs."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Sequence

from web3 import Web3

from likemint.minting.errors import FetchError

LOGGER = logging.getLogger("likemint.chain")

MINTER_ABI: List[Dict[str, Any]] = [
    {
        "type": "function",
        "name": "getRangeClose",
        "stateMutability": "view",
        "inputs": [
            {"name": "likedFID", "type": "uint256"},
            {"name": "likerFID", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "getRangeCloseBatch",
        "stateMutability": "view",
        "inputs": [
            {"name": "likedFIDs", "type": "uint256[]"},
            {"name": "likerFIDs", "type": "uint256[]"},
        ],
        "outputs": [{"name": "", "type": "uint256[]"}],
    },
    {
        "type": "event",
        "name": "Mint",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "likerFID", "type": "uint256"},
            {"indexed": True, "name": "likedFID", "type": "uint256"},
            {"indexed": False, "name": "liker", "type": "address"},
            {"indexed": False, "name": "liked", "type": "address"},
            {"indexed": False, "name": "quantity", "type": "uint256"},
            {"indexed": False, "name": "firstLikeTime", "type": "uint256"},
            {"indexed": False, "name": "lastLikeTime", "type": "uint256"},
            {"indexed": False, "name": "timestamp", "type": "uint256"},
        ],
    },
    {
        "type": "event",
        "name": "Claim",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "likerFID", "type": "uint256"},
            {"indexed": False, "name": "liker", "type": "address"},
            {"indexed": False, "name": "nonce", "type": "uint256"},
            {"indexed": False, "name": "tokens", "type": "uint256"},
            {"indexed": False, "name": "timestamp", "type": "uint256"},
        ],
    },
]


class ChainBoundaryReader:
    """Wraps the minter contract for boundary reads and log tailing."""

    def __init__(self, w3: Web3, contract) -> None:
        self.w3 = w3
        self.contract = contract

    @classmethod
    def from_rpc(cls, rpc_url: str, minter_address: str, *, request_timeout: float = 10.0) -> "ChainBoundaryReader":
        w3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))
        contract = w3.eth.contract(address=Web3.to_checksum_address(minter_address), abi=MINTER_ABI)
        return cls(w3, contract)

    def wait_until_ready(self, timeout: float, poll_interval: float = 0.25) -> None:
        """Block until the RPC answers, or raise ``FetchError`` after *timeout* seconds."""
        deadline = time.monotonic() + max(0.0, timeout)
        while True:
            try:
                if self.w3.is_connected():
                    return
            except Exception as exc:  # noqa: BLE001 - provider errors vary by transport
                LOGGER.debug("RPC readiness probe failed: %s", exc)
            if time.monotonic() >= deadline:
                raise FetchError(f"Chain RPC not ready within {timeout}s")
            time.sleep(poll_interval)

    def get_range_close(self, target_id: int, reactor_id: int) -> int:
        try:
            return int(self.contract.functions.getRangeClose(int(target_id), int(reactor_id)).call())
        except Exception as exc:
            raise FetchError(f"getRangeClose({target_id}, {reactor_id}) failed: {exc}") from exc

    def get_range_close_batch(self, target_ids: Sequence[int], reactor_ids: Sequence[int]) -> List[int]:
        if len(target_ids) != len(reactor_ids):
            raise ValueError("target_ids and reactor_ids must have the same length")
        if not target_ids:
            return []
        try:
            values = self.contract.functions.getRangeCloseBatch(
                [int(t) for t in target_ids], [int(r) for r in reactor_ids]
            ).call()
        except Exception as exc:
            raise FetchError(f"getRangeCloseBatch failed: {exc}") from exc
        if len(values) != len(target_ids):
            raise FetchError("getRangeCloseBatch returned a misaligned result")
        return [int(v) for v in values]

    def latest_block(self) -> int:
        return int(self.w3.eth.block_number)

    def fetch_events(self, event_name: str, from_block: int, to_block: int) -> List[Dict[str, Any]]:
        """Return decoded logs as plain dicts (``args``, ``blockNumber``, ``transactionHash``)."""
        event = getattr(self.contract.events, event_name)
        logs = event.get_logs(from_block=from_block, to_block=to_block)
        return [
            {
                "args": dict(log["args"]),
                "blockNumber": int(log["blockNumber"]),
                "transactionHash": Web3.to_hex(log["transactionHash"]),
            }
            for log in logs
        ]
