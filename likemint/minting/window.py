"""Range-close window filtering.

A reaction belongs to the next mint only if it happened strictly after the
pair's on-chain range close, so nothing is attributed twice.
"""

from __future__ import annotations

import logging
from typing import List, Mapping

from .errors import NoAttributableActivity
from .models import ReactorEntry, ReactorTally, ScanResult

LOGGER = logging.getLogger("likemint.window")


def is_attributable(reaction_time: int, range_boundary: int) -> bool:
    return reaction_time > range_boundary


def entry_for(tally: ReactorTally, range_boundary: int) -> ReactorEntry:
    """Reduce one tally to its attributable part.

    Raises ``NoAttributableActivity`` when every reaction sits at or before
    the boundary.
    """
    times = [t for t in tally.reaction_times if is_attributable(t, range_boundary)]
    if not times:
        raise NoAttributableActivity(
            f"No likes from {tally.id} after {range_boundary}"
        )
    return ReactorEntry(
        reactor_id=tally.id,
        count=len(times),
        window_start=min(times),
        window_end=max(times),
    )


def apply_window(scan: ScanResult, boundaries: Mapping[int, int] | None = None) -> List[ReactorEntry]:
    """Post-filter an aggregated scan against per-reactor boundaries.

    Entries keep the scan's recency order. Reactors left with zero
    attributable reactions are omitted.
    """
    boundaries = scan.last_mint_boundary if boundaries is None else boundaries
    entries: List[ReactorEntry] = []
    for reactor_id in scan.reactor_ids:
        boundary = boundaries.get(reactor_id, 0)
        try:
            entries.append(entry_for(scan.tallies[reactor_id], boundary))
        except NoAttributableActivity:
            LOGGER.debug("Reactor %s has nothing after boundary %s", reactor_id, boundary)
    return entries
