"""Canonical mint argument tuple.

Field order is the wire contract shared with the signer services and the
minter contract:

    (targetAddress, targetId, [reactorIds], [counts], [startTimes], [endTimes])

Combined with signatures the tuple gains a trailing ``[signatures]`` list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from .errors import NothingToMint, SignerRejected
from .models import ReactorEntry


@dataclass(frozen=True, slots=True)
class MintArguments:
    target_address: str
    target_id: int
    reactor_ids: Tuple[int, ...]
    counts: Tuple[int, ...]
    start_times: Tuple[int, ...]
    end_times: Tuple[int, ...]

    def to_list(self) -> List[Any]:
        return [
            self.target_address,
            self.target_id,
            list(self.reactor_ids),
            list(self.counts),
            list(self.start_times),
            list(self.end_times),
        ]

    def with_signatures(self, signatures: Sequence[str]) -> List[Any]:
        return self.to_list() + [list(signatures)]

    @classmethod
    def from_list(cls, raw: Any) -> "MintArguments":
        """Parse the positional form echoed back by a signer."""
        if not isinstance(raw, (list, tuple)) or len(raw) != 6:
            raise SignerRejected("Malformed mint arguments from signer")
        address, target_id, ids, counts, starts, ends = raw
        try:
            columns = [tuple(int(v) for v in col) for col in (ids, counts, starts, ends)]
            target = int(target_id)
        except (TypeError, ValueError) as exc:
            raise SignerRejected(f"Malformed mint arguments from signer: {exc}") from exc
        if len({len(col) for col in columns}) != 1:
            raise SignerRejected("Signer returned misaligned mint arguments")
        return cls(str(address), target, *columns)


def build(target_address: str, target_id: int, reactor_entries: Sequence[ReactorEntry]) -> MintArguments:
    """Lay out window survivors as four position-aligned arrays."""
    if not reactor_entries or all(entry.count <= 0 for entry in reactor_entries):
        raise NothingToMint("No attributable likes to mint")
    return MintArguments(
        target_address=target_address,
        target_id=int(target_id),
        reactor_ids=tuple(entry.reactor_id for entry in reactor_entries),
        counts=tuple(entry.count for entry in reactor_entries),
        start_times=tuple(entry.window_start for entry in reactor_entries),
        end_times=tuple(entry.window_end for entry in reactor_entries),
    )
