"""Shared pytest fixtures for likemint tests.

Provides in-process fakes for the feed, identity, chain and signer
collaborators, a throwaway SQLite mirror and a Flask test client, so
test modules can focus on behaviour rather than boilerplate.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

# ---------------------------------------------------------------------------
# Environment overrides (must be set BEFORE the config is loaded)
# ---------------------------------------------------------------------------

os.environ.setdefault("FLASK_SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("NEYNAR_API_KEY", "test-neynar-key")
os.environ.setdefault("SIGNER_URLS", "http://signer-a http://signer-b")
os.environ.setdefault("SIGNER_TOKENS", "token-a token-b")
os.environ.setdefault("MIRROR_ENABLED", "0")

from likemint.config import SignerEndpoint  # noqa: E402
from likemint.minting.errors import NotFound  # noqa: E402
from likemint.minting.models import LIKE, Identity, ReactionEvent, ReactionPage  # noqa: E402

TARGET_ADDRESS = "0x00000000000000000000000000000000000000aa"
TARGET = Identity(id=42, display_name="target", verified_addresses=(TARGET_ADDRESS,))


def like(reactor_id: int, timestamp: int, name: str | None = None, kind: str = LIKE) -> ReactionEvent:
    return ReactionEvent(
        reactor_id=reactor_id,
        reactor_name=name or f"user{reactor_id}",
        kind=kind,
        timestamp=timestamp,
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeFeed:
    """Serves a fixed list of pages; page ``i`` links to ``p{i+1}``."""

    def __init__(self, pages: Sequence[Sequence[ReactionEvent]], *, fail_on_page: int | None = None):
        self.pages = [list(page) for page in pages]
        self.fail_on_page = fail_on_page
        self.calls: List[Optional[str]] = []

    def fetch_reactions_page(self, target_id: int, cursor: Optional[str], page_size: int) -> ReactionPage:
        self.calls.append(cursor)
        index = int(cursor[1:]) if cursor else 0
        if self.fail_on_page is not None and index == self.fail_on_page:
            raise ConnectionError("feed went away")
        next_cursor = f"p{index + 1}" if index + 1 < len(self.pages) else None
        return ReactionPage(events=self.pages[index], next_cursor=next_cursor)


class FakeIdentity:
    def __init__(self, identities: Dict[str, Identity] | None = None):
        self.identities = {k.lower(): v for k, v in (identities or {TARGET_ADDRESS: TARGET}).items()}

    def resolve_by_address(self, address: str) -> Identity:
        try:
            return self.identities[address.lower()]
        except KeyError:
            raise NotFound("Connected wallet not linked to a Farcaster account") from None


class FakeNeynar(FakeIdentity):
    """Identity resolver, reaction feed and user directory in one object."""

    def __init__(self, feed: FakeFeed, users: Dict[int, Dict[str, Any]] | None = None):
        super().__init__()
        self.feed = feed
        self.users = users or {}

    def fetch_reactions_page(self, target_id: int, cursor: Optional[str], page_size: int) -> ReactionPage:
        return self.feed.fetch_reactions_page(target_id, cursor, page_size)

    def fetch_usernames(self, fids) -> Dict[int, str]:
        return {fid: self.users[fid]["username"] for fid in fids if fid in self.users}

    def lookup_user_by_fid(self, fid: int) -> Dict[str, Any]:
        if fid not in self.users:
            raise NotFound(f"No user with fid {fid}")
        return self.users[fid]

    def lookup_user_by_username(self, username: str) -> Dict[str, Any]:
        for user in self.users.values():
            if user["username"] == username:
                return user
        raise NotFound(f"No user named {username}")

    def lookup_user_by_address(self, address: str) -> Dict[str, Any]:
        identity = self.resolve_by_address(address)
        return self.lookup_user_by_fid(identity.id)

    def search_users(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        return [u for u in self.users.values() if query in u["username"]][:limit]


class FakeChain:
    def __init__(self, boundaries: Dict[tuple, int] | None = None):
        self.boundaries = boundaries or {}
        self.ready_calls: List[float] = []
        self.batch_calls: List[tuple] = []

    def wait_until_ready(self, timeout: float) -> None:
        self.ready_calls.append(timeout)

    def get_range_close(self, target_id: int, reactor_id: int) -> int:
        return self.boundaries.get((target_id, reactor_id), 0)

    def get_range_close_batch(self, target_ids, reactor_ids) -> List[int]:
        self.batch_calls.append((list(target_ids), list(reactor_ids)))
        return [self.boundaries.get((t, r), 0) for t, r in zip(target_ids, reactor_ids)]


class FakeResponse:
    """Minimal mock that quacks like a ``requests.Response``."""

    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload

    @property
    def text(self) -> str:
        return json.dumps(self._payload)


class FakeSession:
    """Stands in for ``requests.Session``; routes by URL prefix."""

    def __init__(self, routes: Dict[str, Callable[..., FakeResponse]]):
        self.routes = routes
        self.requests: List[Dict[str, Any]] = []

    def request(self, method: str, url: str, timeout=None, **kwargs) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        for prefix, handler in self.routes.items():
            if url.startswith(prefix):
                return handler(method=method, url=url, **kwargs)
        raise AssertionError(f"Unexpected request to {url}")


def signer_ok(signature: str) -> Callable[..., FakeResponse]:
    """Signer handler that echoes the posted arguments with ``signature``."""

    def handler(method: str, url: str, json=None, headers=None, **_kwargs) -> FakeResponse:
        return FakeResponse(200, {"result": {"arguments": json["arguments"], "signature": signature}})

    return handler


SIGNERS = (
    SignerEndpoint(url="http://signer-a", token="token-a"),
    SignerEndpoint(url="http://signer-b", token="token-b"),
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mirror(tmp_path: Path):
    """Mirror repository on a throwaway SQLite file with the schema created."""
    from likemint.mirror.storage import MirrorRepository

    repo = MirrorRepository(f"sqlite:///{tmp_path / 'mirror.db'}")
    repo.create_all()
    yield repo
    repo.engine.dispose()


@pytest.fixture()
def app_config(tmp_path: Path):
    from likemint.config import load_app_config

    return load_app_config(tmp_path)


@pytest.fixture()
def make_context(app_config, mirror):
    """Factory building a ``BootstrapContext`` out of fakes."""
    from likemint.bootstrap import BootstrapContext, build_pipeline
    from likemint.minting.attestation import AttestationClient
    from likemint.services.scheduler import SchedulerService

    def _make(
        *,
        feed: FakeFeed | None = None,
        chain: FakeChain | None = None,
        users: Dict[int, Dict[str, Any]] | None = None,
        signer_routes: Dict[str, Callable[..., FakeResponse]] | None = None,
    ) -> BootstrapContext:
        chain = chain or FakeChain()
        neynar = FakeNeynar(feed or FakeFeed([[]]), users)
        session = FakeSession(
            signer_routes
            or {"http://signer-a": signer_ok("0xsig-a"), "http://signer-b": signer_ok("0xsig-b")}
        )
        pipeline = build_pipeline(
            app_config, neynar, chain, AttestationClient(SIGNERS, session=session)
        )
        return BootstrapContext(
            config=app_config,
            neynar=neynar,
            chain=chain,
            mirror=mirror,
            pipeline=pipeline,
            scheduler=SchedulerService(),
        )

    return _make


@pytest.fixture()
def make_client(make_context):
    """Factory returning a Flask test client wired to fakes."""
    from likemint.app_factory import create_app

    def _make(**kwargs):
        app = create_app(context=make_context(**kwargs))
        app.config.update(TESTING=True)
        return app.test_client()

    return _make
