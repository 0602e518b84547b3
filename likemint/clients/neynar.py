"""Neynar REST adapter: identity lookups and the per-cast like feed."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import requests
from requests import Session

from likemint.caching.timed_cache import TimedCache
from likemint.minting.errors import FetchError, NotFound, Unverified
from likemint.minting.models import LIKE, Identity, ReactionEvent, ReactionPage
from likemint.services.http import http_request

LOGGER = logging.getLogger("likemint.neynar")

_REACTION_KINDS = {"like": LIKE, "likes": LIKE, "recast": "recast", "recasts": "recast"}
_BULK_CHUNK = 100
_REACTIONS_LIMIT = 100


def parse_timestamp(value: Any) -> int:
    """Neynar timestamps are ISO-8601 strings; the minter works in unix seconds."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        try:
            return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
        except ValueError:
            pass
    raise FetchError(f"Unparseable timestamp in feed: {value!r}")


def _verified_addresses(user: Dict[str, Any]) -> tuple[str, ...]:
    verified = user.get("verified_addresses") or {}
    addresses = verified.get("eth_addresses") or user.get("verifications") or []
    return tuple(str(a).lower() for a in addresses)


def identity_from_user(user: Dict[str, Any]) -> Identity:
    return Identity(
        id=int(user["fid"]),
        display_name=str(user.get("username") or user.get("display_name") or ""),
        verified_addresses=_verified_addresses(user),
    )


class NeynarClient:
    """Identity resolver and reaction feed backed by the Neynar v2 API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.neynar.com",
        session: Optional[Session] = None,
        name_cache: Optional[TimedCache] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.name_cache = name_cache or TimedCache()

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = http_request(
                "GET",
                url,
                params=params,
                headers={"accept": "application/json", "x-api-key": self.api_key},
                session=self.session,
                logger=LOGGER,
            )
        except requests.RequestException as exc:
            raise FetchError(f"Neynar unreachable: {exc}") from exc
        if response.status_code == 404:
            raise NotFound(f"Not found: {path}")
        if response.status_code >= 400:
            body = response.text.strip()[:400]
            raise FetchError(f"HTTP {response.status_code} calling {path}: {body}")
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Invalid JSON from {path}") from exc
        if not isinstance(payload, dict):
            raise FetchError(f"Unexpected response type from {path}: {type(payload).__name__}")
        return payload

    # Identity -------------------------------------------------------------

    def resolve_by_address(self, address: str) -> Identity:
        """Map a wallet address to the Farcaster account that verified it."""
        if not address:
            raise NotFound("Address is required")
        key = address.lower()
        try:
            payload = self._get("/v2/farcaster/user/bulk-by-address", {"addresses": key})
        except NotFound:
            payload = {}
        users = payload.get(key) or []
        if not users:
            raise NotFound("Connected wallet not linked to a Farcaster account")
        identity = identity_from_user(users[0])
        if key not in identity.verified_addresses:
            raise Unverified("Connected wallet is not a verified address of the account")
        self.name_cache.set(identity.id, identity.display_name)
        return identity

    def lookup_user_by_fid(self, fid: int) -> Dict[str, Any]:
        users = self._get("/v2/farcaster/user/bulk", {"fids": str(int(fid))}).get("users") or []
        if not users:
            raise NotFound(f"No user with fid {fid}")
        return users[0]

    def lookup_user_by_username(self, username: str) -> Dict[str, Any]:
        user = self._get("/v2/farcaster/user/by_username", {"username": username}).get("user")
        if not user:
            raise NotFound(f"No user named {username}")
        return user

    def lookup_user_by_address(self, address: str) -> Dict[str, Any]:
        key = (address or "").lower()
        users = self._get("/v2/farcaster/user/bulk-by-address", {"addresses": key}).get(key) or []
        if not users:
            raise NotFound("Address not linked to a Farcaster account")
        return users[0]

    def search_users(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        payload = self._get("/v2/farcaster/user/search", {"q": query, "limit": limit})
        return list((payload.get("result") or {}).get("users") or [])

    def fetch_usernames(self, fids: Iterable[int]) -> Dict[int, str]:
        """Return ``{fid: username}``, served from the name cache where possible."""
        names, missing = self.name_cache.split(int(f) for f in fids)
        for start in range(0, len(missing), _BULK_CHUNK):
            chunk = missing[start:start + _BULK_CHUNK]
            payload = self._get("/v2/farcaster/user/bulk", {"fids": ",".join(str(f) for f in chunk)})
            for user in payload.get("users") or []:
                fid = int(user["fid"])
                names[fid] = user.get("username") or ""
                self.name_cache.set(fid, names[fid])
        return names

    # Reaction feed ----------------------------------------------------------

    def fetch_reactions_page(self, target_id: int, cursor: Optional[str], page_size: int) -> ReactionPage:
        """Return one page of the target's casts, flattened into their likes.

        Every event carries the like's own ``reaction_timestamp``, so a like
        keeps the same time no matter how many reactions arrive after it.
        """
        params: Dict[str, Any] = {"fid": int(target_id), "limit": page_size, "include_replies": "false"}
        if cursor:
            params["cursor"] = cursor
        payload = self._get("/v2/farcaster/feed/user/casts", params)
        events: List[ReactionEvent] = []
        for cast in payload.get("casts") or []:
            if isinstance(cast, dict) and cast.get("hash"):
                events.extend(self._cast_reactions(str(cast["hash"])))
        next_cursor = (payload.get("next") or {}).get("cursor") or None
        if next_cursor == cursor:
            LOGGER.warning("Feed for %s repeated cursor; stopping pagination", target_id)
            next_cursor = None
        return ReactionPage(events=events, next_cursor=next_cursor)

    def _cast_reactions(self, cast_hash: str) -> List[ReactionEvent]:
        """Every like on one cast, following the reaction listing to its end."""
        events: List[ReactionEvent] = []
        cursor: Optional[str] = None
        while True:
            params: Dict[str, Any] = {"hash": cast_hash, "types": "likes", "limit": _REACTIONS_LIMIT}
            if cursor:
                params["cursor"] = cursor
            payload = self._get("/v2/farcaster/reactions/cast", params)
            for reaction in payload.get("reactions") or []:
                event = _reaction_event(reaction)
                if event is not None:
                    events.append(event)
            next_cursor = (payload.get("next") or {}).get("cursor") or None
            if not next_cursor or next_cursor == cursor:
                return events
            cursor = next_cursor


def _reaction_event(reaction: Any) -> Optional[ReactionEvent]:
    if not isinstance(reaction, dict):
        return None
    user = reaction.get("user") or {}
    if "fid" not in user:
        return None
    raw_kind = str(reaction.get("reaction_type") or "")
    return ReactionEvent(
        reactor_id=int(user["fid"]),
        reactor_name=str(user.get("username") or ""),
        kind=_REACTION_KINDS.get(raw_kind, raw_kind),
        timestamp=parse_timestamp(reaction.get("reaction_timestamp")),
    )
