"""Neynar and chain adapters against canned upstream responses."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests

from conftest import FakeResponse, FakeSession
from likemint.clients.chain import ChainBoundaryReader
from likemint.clients.neynar import NeynarClient, parse_timestamp
from likemint.minting.errors import FetchError, NotFound, Unverified
from likemint.minting.models import LIKE
from likemint.minting.window import is_attributable

BASE = "https://neynar.test"
ADDRESS = "0x00000000000000000000000000000000000000AA"


def _client(routes):
    session = FakeSession({f"{BASE}{path}": handler for path, handler in routes.items()})
    return NeynarClient("key", base_url=BASE, session=session), session


def _reply(payload, status=200):
    return lambda **_kwargs: FakeResponse(status, payload)


def _user(fid, username, addresses=()):
    return {"fid": fid, "username": username, "verified_addresses": {"eth_addresses": list(addresses)}}


class TestTimestamps:
    def test_iso_strings(self):
        assert parse_timestamp("2024-01-01T00:00:00.000Z") == 1704067200

    def test_numbers_pass_through(self):
        assert parse_timestamp(1704067200.9) == 1704067200

    def test_garbage_raises(self):
        with pytest.raises(FetchError):
            parse_timestamp("yesterday")


class TestIdentity:
    def test_resolves_verified_address(self):
        key = ADDRESS.lower()
        client, session = _client(
            {"/v2/farcaster/user/bulk-by-address": _reply({key: [_user(42, "alice", [key])]})}
        )

        identity = client.resolve_by_address(ADDRESS)

        assert identity.id == 42
        assert identity.display_name == "alice"
        assert session.requests[0]["params"] == {"addresses": key}
        assert session.requests[0]["headers"]["x-api-key"] == "key"
        assert client.name_cache.get(42) == "alice"

    def test_unlinked_address(self):
        client, _ = _client({"/v2/farcaster/user/bulk-by-address": _reply({}, status=404)})

        with pytest.raises(NotFound):
            client.resolve_by_address(ADDRESS)

    def test_custody_only_address_is_unverified(self):
        key = ADDRESS.lower()
        client, _ = _client(
            {"/v2/farcaster/user/bulk-by-address": _reply({key: [_user(42, "alice", ["0xother"])]})}
        )

        with pytest.raises(Unverified):
            client.resolve_by_address(ADDRESS)

    def test_upstream_failure(self):
        def boom(**_kwargs):
            raise requests.ConnectionError("refused")

        client, _ = _client({"/v2/farcaster/user/bulk-by-address": boom})

        with pytest.raises(FetchError):
            client.resolve_by_address(ADDRESS)

    def test_fetch_usernames_uses_cache(self):
        client, session = _client(
            {"/v2/farcaster/user/bulk": _reply({"users": [_user(2, "bob"), _user(3, "carol")]})}
        )
        client.name_cache.set(1, "alice")

        names = client.fetch_usernames([1, 2, 3])

        assert names == {1: "alice", 2: "bob", 3: "carol"}
        assert session.requests[0]["params"] == {"fids": "2,3"}

    def test_search_users(self):
        client, _ = _client(
            {"/v2/farcaster/user/search": _reply({"result": {"users": [_user(2, "bob")]}})}
        )

        assert client.search_users("bo")[0]["username"] == "bob"


def _like(fid, username, when):
    return {"reaction_type": "like", "reaction_timestamp": when, "user": {"fid": fid, "username": username}}


def _reactions_by_hash(listings):
    """Reaction-listing handler serving ``listings[hash]`` as ``[page, ...]``."""

    def handler(params=None, **_kwargs):
        pages = listings[params["hash"]]
        index = int(params.get("cursor", "r0")[1:])
        next_cursor = f"r{index + 1}" if index + 1 < len(pages) else None
        return FakeResponse(200, {"reactions": pages[index], "next": {"cursor": next_cursor}})

    return handler


class TestReactionFeed:
    def test_flattens_likes_across_casts(self):
        client, session = _client(
            {
                "/v2/farcaster/feed/user/casts": _reply(
                    {"casts": [{"hash": "0xc1"}, {"hash": "0xc2"}], "next": {"cursor": "abc"}}
                ),
                "/v2/farcaster/reactions/cast": _reactions_by_hash(
                    {
                        "0xc1": [
                            [_like(7, "alice", "2024-01-01T00:00:00Z")],
                            [_like(8, "bob", "2024-01-01T00:00:30Z")],
                        ],
                        "0xc2": [[_like(7, "alice", "2024-01-01T00:01:00Z")]],
                    }
                ),
            }
        )

        page = client.fetch_reactions_page(42, None, 25)

        assert [(e.reactor_id, e.kind, e.timestamp) for e in page.events] == [
            (7, LIKE, 1704067200),
            (8, LIKE, 1704067230),
            (7, LIKE, 1704067260),
        ]
        assert page.next_cursor == "abc"
        assert session.requests[0]["params"] == {"fid": 42, "limit": 25, "include_replies": "false"}
        assert session.requests[1]["params"] == {"hash": "0xc1", "types": "likes", "limit": 100}

    def test_later_likes_do_not_move_earlier_ones(self):
        listings = {"0xc1": [[_like(7, "alice", "2024-01-01T00:00:00Z")]]}
        client, _ = _client(
            {
                "/v2/farcaster/feed/user/casts": _reply({"casts": [{"hash": "0xc1"}]}),
                "/v2/farcaster/reactions/cast": _reactions_by_hash(listings),
            }
        )
        before = client.fetch_reactions_page(42, None, 25).events
        boundary = max(event.timestamp for event in before)

        listings["0xc1"][0].append(_like(9, "zed", "2024-01-01T01:00:00Z"))
        after = client.fetch_reactions_page(42, None, 25).events

        alice = [e for e in after if e.reactor_id == 7]
        assert [e.timestamp for e in alice] == [1704067200]
        assert not any(is_attributable(e.timestamp, boundary) for e in alice)
        assert [e.reactor_id for e in after if is_attributable(e.timestamp, boundary)] == [9]

    def test_repeated_cursor_ends_pagination(self):
        client, _ = _client(
            {"/v2/farcaster/feed/user/casts": _reply({"casts": [], "next": {"cursor": "abc"}})}
        )

        assert client.fetch_reactions_page(42, "abc", 25).next_cursor is None

    def test_server_error(self):
        client, _ = _client({"/v2/farcaster/feed/user/casts": _reply({"message": "x"}, status=500)})

        with pytest.raises(FetchError):
            client.fetch_reactions_page(42, None, 25)


class _Call:
    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    def call(self):
        if self.error:
            raise self.error
        return self.value


def _reader(functions, connected=True):
    w3 = SimpleNamespace(is_connected=lambda: connected, eth=SimpleNamespace(block_number=123))
    contract = SimpleNamespace(functions=SimpleNamespace(**functions))
    return ChainBoundaryReader(w3, contract)


class TestChainReader:
    def test_range_close(self):
        reader = _reader({"getRangeClose": lambda liked, liker: _Call(1700)})

        assert reader.get_range_close(42, 7) == 1700

    def test_batch_is_aligned(self):
        reader = _reader({"getRangeCloseBatch": lambda liked, liker: _Call([5, 6])})

        assert reader.get_range_close_batch([42, 42], [7, 8]) == [5, 6]

    def test_batch_length_mismatch(self):
        reader = _reader({"getRangeCloseBatch": lambda liked, liker: _Call([5])})

        with pytest.raises(ValueError):
            reader.get_range_close_batch([42], [7, 8])
        with pytest.raises(FetchError):
            reader.get_range_close_batch([42, 42], [7, 8])

    def test_call_failure(self):
        reader = _reader({"getRangeClose": lambda liked, liker: _Call(error=RuntimeError("revert"))})

        with pytest.raises(FetchError):
            reader.get_range_close(42, 7)

    def test_not_ready_within_deadline(self):
        reader = _reader({}, connected=False)

        with pytest.raises(FetchError):
            reader.wait_until_ready(0.05, poll_interval=0.01)

    def test_latest_block(self):
        assert _reader({}).latest_block() == 123
