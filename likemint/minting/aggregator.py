"""Reaction feed traversal and per-reactor tallying."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Collection, Dict, Mapping, Optional, Protocol

from .errors import FetchError, MintError
from .models import LIKE, ReactionPage, ReactorTally, ScanResult
from .window import is_attributable

LOGGER = logging.getLogger("likemint.aggregator")

DEFAULT_DEPTH_LIMIT = 4


class ReactionFeed(Protocol):
    def fetch_reactions_page(
        self, target_id: int, cursor: Optional[str], page_size: int
    ) -> ReactionPage: ...


@dataclass
class _ScanState:
    tallies: Dict[int, ReactorTally] = field(default_factory=dict)
    count: int = 0
    depth: int = 0
    cursor: Optional[str] = None


class ReactionAggregator:
    """Walks the likes on a target's casts page by page.

    Pages are fetched strictly in order since each cursor comes from the
    previous response. The walk stops when the feed has no further cursor,
    when ``max_results`` distinct reactors have been seen (the current page
    is still finished) or after ``depth_limit`` page fetches.
    """

    def __init__(self, feed: ReactionFeed, *, page_size: int = 25) -> None:
        self.feed = feed
        self.page_size = page_size

    def scan(
        self,
        target_id: int,
        max_results: int,
        page_cursor: Optional[str] = None,
        depth_limit: int = DEFAULT_DEPTH_LIMIT,
        boundaries: Optional[Mapping[int, int]] = None,
        reactors: Optional[Collection[int]] = None,
    ) -> ScanResult:
        """Aggregate likes for ``target_id``.

        When ``boundaries`` is given, reactions at or before a reactor's
        boundary are skipped while scanning, and a reactor with nothing
        after its boundary never gets a tally. ``reactors`` restricts
        tallying to the given reactor ids.
        """
        if not target_id:
            raise ValueError("target_id must be non-empty")
        if max_results <= 0:
            raise ValueError("max_results must be positive")
        if depth_limit <= 0:
            raise ValueError("depth_limit must be positive")

        state = _ScanState(cursor=page_cursor)
        while True:
            try:
                page = self.feed.fetch_reactions_page(target_id, state.cursor, self.page_size)
            except MintError:
                raise
            except Exception as exc:
                raise FetchError(f"Reaction feed failed: {exc}") from exc
            state.depth += 1
            self._consume(page, state, max_results, boundaries, reactors)
            state.cursor = page.next_cursor
            if not state.cursor or state.count >= max_results or state.depth >= depth_limit:
                break

        ordered = sorted(
            state.tallies.values(),
            key=lambda tally: (-tally.last_reaction_time, tally.id),
        )
        LOGGER.info(
            "Scan of %s finished: %s reactors over %s pages", target_id, state.count, state.depth
        )
        return ScanResult(
            reactor_ids=[tally.id for tally in ordered],
            count=state.count,
            tallies=state.tallies,
            last_mint_boundary=dict(boundaries or {}),
            pages_fetched=state.depth,
        )

    @staticmethod
    def _consume(
        page: ReactionPage,
        state: _ScanState,
        max_results: int,
        boundaries: Optional[Mapping[int, int]],
        reactors: Optional[Collection[int]],
    ) -> None:
        for event in page.events:
            if event.kind != LIKE:
                continue
            if reactors is not None and event.reactor_id not in reactors:
                continue
            if boundaries is not None and not is_attributable(
                event.timestamp, boundaries.get(event.reactor_id, 0)
            ):
                continue
            tally = state.tallies.get(event.reactor_id)
            if tally is None:
                if state.count >= max_results:
                    continue
                tally = ReactorTally(id=event.reactor_id, display_name=event.reactor_name)
                state.tallies[event.reactor_id] = tally
                state.count += 1
            tally.record(event.timestamp)
