"""Periodic tailing of minter events into the relational mirror."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol

from web3 import Web3

from .storage import MirrorRepository

LOGGER = logging.getLogger("likemint.mirror")

MINT = "mint"
CLAIM = "claim"
_EVENT_NAMES = {MINT: "Mint", CLAIM: "Claim"}


class EventSource(Protocol):
    def latest_block(self) -> int: ...

    def fetch_events(self, event_name: str, from_block: int, to_block: int) -> List[Dict[str, Any]]: ...


def mint_row(log: Dict[str, Any]) -> Dict[str, Any]:
    args = log["args"]
    return {
        "liker_fid": int(args["likerFID"]),
        "liked_fid": int(args["likedFID"]),
        "liker_address": str(args["liker"]),
        "liked_address": str(args["liked"]),
        "quantity_likes": int(args["quantity"]),
        "first_like_time": int(args["firstLikeTime"]),
        "last_like_time": int(args["lastLikeTime"]),
        "block_timestamp": int(args["timestamp"]),
        "block_number": int(log["blockNumber"]),
        "transaction_hash": str(log["transactionHash"]),
    }


def claim_row(log: Dict[str, Any]) -> Dict[str, Any]:
    args = log["args"]
    return {
        "liker_fid": int(args["likerFID"]),
        "liker_address": str(args["liker"]),
        "nonce": int(args["nonce"]),
        "quantity_tokens": Web3.from_wei(int(args["tokens"]), "ether"),
        "block_timestamp": int(args["timestamp"]),
        "block_number": int(log["blockNumber"]),
        "transaction_hash": str(log["transactionHash"]),
    }


class EventMirror:
    """Copies Mint and Claim logs block range by block range.

    Each run reads at most ``block_span`` blocks past the stored cursor and
    stays ``confirmations`` blocks behind the head. Rows and the new cursor
    are committed together; on any error nothing is committed and the same
    range is read again on the next run.
    """

    def __init__(
        self,
        source: EventSource,
        repository: MirrorRepository,
        *,
        start_block: int,
        block_span: int = 1000,
        confirmations: int = 2,
    ) -> None:
        self.source = source
        self.repository = repository
        self.start_block = start_block
        self.block_span = block_span
        self.confirmations = confirmations

    def run_once(self, log_type: str) -> int | None:
        """Mirror one block range; returns the rows inserted, or None when skipped or failed."""
        try:
            return self._mirror(log_type)
        except Exception as exc:  # noqa: BLE001 - retried on the next tick
            LOGGER.exception("Mirror cycle for %s failed: %s", log_type, exc)
            return None

    def _mirror(self, log_type: str) -> int | None:
        if log_type not in _EVENT_NAMES:
            raise ValueError(f"Unknown log type: {log_type}")
        cursor = self.repository.get_cursor(log_type)
        from_block = cursor if cursor is not None else self.start_block
        latest = self.source.latest_block()
        to_block = min(from_block + self.block_span, latest - self.confirmations)
        if to_block < from_block:
            LOGGER.debug("Mirror %s is caught up at block %s", log_type, from_block)
            return None

        logs = self.source.fetch_events(_EVENT_NAMES[log_type], from_block, to_block)
        if log_type == MINT:
            inserted = self.repository.store_mints([mint_row(log) for log in logs], cursor=to_block)
        else:
            inserted = self.repository.store_claims([claim_row(log) for log in logs], cursor=to_block)
        LOGGER.info(
            "Mirrored %s %s logs (%s new) for blocks %s-%s",
            len(logs),
            log_type,
            inserted,
            from_block,
            to_block,
        )
        return inserted

    def run_all(self) -> None:
        for log_type in (MINT, CLAIM):
            self.run_once(log_type)
