"""Request-level orchestration: identity, scan, window, build, attest."""

from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from .aggregator import DEFAULT_DEPTH_LIMIT, ReactionAggregator
from .arguments import build
from .attestation import AttestationClient
from .errors import NothingToMint
from .models import Identity
from .window import apply_window

LOGGER = logging.getLogger("likemint.pipeline")


class IdentityResolver(Protocol):
    def resolve_by_address(self, address: str) -> Identity: ...


class BoundaryReader(Protocol):
    def wait_until_ready(self, timeout: float) -> None: ...

    def get_range_close(self, target_id: int, reactor_id: int) -> int: ...

    def get_range_close_batch(self, target_ids: Sequence[int], reactor_ids: Sequence[int]) -> List[int]: ...


class MintState(str, enum.Enum):
    IDLE = "idle"
    IDENTITY_RESOLVED = "identity_resolved"
    SCANNED = "scanned"
    WINDOW_FILTERED = "window_filtered"
    ARGUMENTS_BUILT = "arguments_built"
    ATTESTED = "attested"
    COMPLETE = "complete"
    FAILED = "failed"


_NEXT = {
    MintState.IDLE: MintState.IDENTITY_RESOLVED,
    MintState.IDENTITY_RESOLVED: MintState.SCANNED,
    MintState.SCANNED: MintState.WINDOW_FILTERED,
    MintState.WINDOW_FILTERED: MintState.ARGUMENTS_BUILT,
    MintState.ARGUMENTS_BUILT: MintState.ATTESTED,
    MintState.ATTESTED: MintState.COMPLETE,
}


@dataclass
class MintRun:
    """Lifecycle of one scan or mint request. Never persisted."""

    kind: str
    state: MintState = MintState.IDLE
    reason: Optional[str] = None
    history: List[MintState] = field(default_factory=lambda: [MintState.IDLE])

    def advance(self, state: MintState) -> None:
        if self.state in (MintState.COMPLETE, MintState.FAILED):
            raise RuntimeError(f"{self.kind} run already finished in {self.state.value}")
        allowed = {_NEXT.get(self.state)}
        # Scans stop after the window stage.
        if self.state is MintState.WINDOW_FILTERED:
            allowed.add(MintState.COMPLETE)
        if state not in allowed:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, reason: str) -> None:
        self.state = MintState.FAILED
        self.reason = reason
        self.history.append(MintState.FAILED)


class MintPipeline:
    def __init__(
        self,
        identity: IdentityResolver,
        aggregator: ReactionAggregator,
        boundaries: BoundaryReader,
        attestation: AttestationClient,
        *,
        max_results: int = 100,
        depth_limit: int = DEFAULT_DEPTH_LIMIT,
        ready_timeout: float = 5.0,
    ) -> None:
        self.identity = identity
        self.aggregator = aggregator
        self.boundaries = boundaries
        self.attestation = attestation
        self.max_results = max_results
        self.depth_limit = depth_limit
        self.ready_timeout = ready_timeout

    @contextmanager
    def _track(self, run: MintRun) -> Iterator[MintRun]:
        try:
            yield run
        except Exception as exc:
            run.fail(str(exc) or exc.__class__.__name__)
            LOGGER.warning(
                "%s run failed after %s: %s", run.kind, run.history[-2].value, run.reason
            )
            raise

    def scan_address(self, address: str, run: Optional[MintRun] = None) -> Dict[str, Any]:
        """Serve ``GET /scan``: raw tallies plus each reactor's last mint boundary."""
        run = run or MintRun(kind="scan")
        with self._track(run):
            target = self.identity.resolve_by_address(address)
            run.advance(MintState.IDENTITY_RESOLVED)

            scan = self.aggregator.scan(target.id, self.max_results, depth_limit=self.depth_limit)
            run.advance(MintState.SCANNED)

            if scan.reactor_ids:
                self.boundaries.wait_until_ready(self.ready_timeout)
                closes = self.boundaries.get_range_close_batch(
                    [target.id] * len(scan.reactor_ids), scan.reactor_ids
                )
                scan.last_mint_boundary = dict(zip(scan.reactor_ids, closes))
            entries = apply_window(scan)
            run.advance(MintState.WINDOW_FILTERED)

            payload = scan.to_dict()
            payload["attributable"] = {entry.reactor_id: entry.count for entry in entries}
            run.advance(MintState.COMPLETE)
            return payload

    def mint_for(self, address: str, reactor_id: int, run: Optional[MintRun] = None) -> Dict[str, Any]:
        """Serve ``POST /mint``: attested arguments for one reactor's unminted likes."""
        run = run or MintRun(kind="mint")
        with self._track(run):
            target = self.identity.resolve_by_address(address)
            run.advance(MintState.IDENTITY_RESOLVED)

            self.boundaries.wait_until_ready(self.ready_timeout)
            boundary = self.boundaries.get_range_close(target.id, reactor_id)
            scan = self.aggregator.scan(
                target.id,
                self.max_results,
                depth_limit=self.depth_limit,
                boundaries={reactor_id: boundary},
                reactors={reactor_id},
            )
            run.advance(MintState.SCANNED)

            entries = apply_window(scan)
            if not entries:
                raise NothingToMint(f"No likes from {reactor_id} after {boundary} to mint")
            run.advance(MintState.WINDOW_FILTERED)

            args = build(address, target.id, entries)
            run.advance(MintState.ARGUMENTS_BUILT)

            combined = self.attestation.attest(args)
            run.advance(MintState.ATTESTED)

            LOGGER.info(
                "Mint for target %s reactor %s: %s likes in [%s, %s]",
                target.id,
                reactor_id,
                args.counts[0],
                args.start_times[0],
                args.end_times[0],
            )
            run.advance(MintState.COMPLETE)
            return {"mintArguments": combined.to_list()}
