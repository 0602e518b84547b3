"""Value objects passed between the scan, window and attestation stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

LIKE = "like"


@dataclass(frozen=True, slots=True)
class ReactionEvent:
    """One reactor's reaction to the target, as delivered by the feed."""

    reactor_id: int
    reactor_name: str
    kind: str
    timestamp: int


@dataclass(slots=True)
class ReactionPage:
    events: List[ReactionEvent]
    next_cursor: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Identity:
    id: int
    display_name: str
    verified_addresses: Tuple[str, ...] = ()


@dataclass(slots=True)
class ReactorTally:
    """Running tally for one distinct reactor within a scan.

    ``reaction_times`` keeps every sighting so the window filter can be
    applied after aggregation without another feed pass.
    """

    id: int
    display_name: str
    like_count: int = 0
    last_reaction_time: int = 0
    reaction_times: List[int] = field(default_factory=list)

    def record(self, timestamp: int) -> None:
        self.like_count += 1
        self.reaction_times.append(timestamp)
        if timestamp > self.last_reaction_time:
            self.last_reaction_time = timestamp


@dataclass(slots=True)
class ScanResult:
    reactor_ids: List[int]
    count: int
    tallies: Dict[int, ReactorTally]
    last_mint_boundary: Dict[int, int] = field(default_factory=dict)
    pages_fetched: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reactorIds": list(self.reactor_ids),
            "count": self.count,
            "counts": {rid: self.tallies[rid].like_count for rid in self.reactor_ids},
            "names": {rid: self.tallies[rid].display_name for rid in self.reactor_ids},
            "lastReactionTime": {
                rid: self.tallies[rid].last_reaction_time for rid in self.reactor_ids
            },
            "lastMintBoundary": {
                rid: self.last_mint_boundary.get(rid, 0) for rid in self.reactor_ids
            },
        }


@dataclass(frozen=True, slots=True)
class ReactorEntry:
    """A window-filter survivor: ``(reactorId, count, windowStart, windowEnd)``."""

    reactor_id: int
    count: int
    window_start: int
    window_end: int
