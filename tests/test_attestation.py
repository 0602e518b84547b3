"""Signer fan-out: ordering, all-or-nothing and argument agreement."""

from __future__ import annotations

import threading
import time

import pytest
import requests

from conftest import SIGNERS, FakeResponse, FakeSession, signer_ok
from likemint.config import SignerEndpoint
from likemint.minting.arguments import MintArguments
from likemint.minting.attestation import AttestationClient, signer_payload
from likemint.minting.errors import SignerMismatch, SignerRejected, SignerUnreachable

ARGS = MintArguments("0xabc", 42, (10,), (2,), (100,), (120,))


def _client(routes, signers=SIGNERS):
    session = FakeSession(routes)
    return AttestationClient(signers, session=session), session


def test_payload_carries_single_reactor_id():
    payload = signer_payload(ARGS)

    assert payload["reactorId"] == 10
    assert payload["targetId"] == 42
    assert payload["arguments"] == ARGS.to_list()


def test_signatures_follow_configuration_order():
    release = threading.Event()

    def slow_first(**kwargs):
        release.wait(timeout=2)
        return signer_ok("0xsig-a")(**kwargs)

    def fast_second(**kwargs):
        response = signer_ok("0xsig-b")(**kwargs)
        release.set()
        return response

    client, _ = _client({"http://signer-a": slow_first, "http://signer-b": fast_second})

    combined = client.attest(ARGS)

    assert combined.signatures == ("0xsig-a", "0xsig-b")
    assert combined.to_list() == ARGS.to_list() + [["0xsig-a", "0xsig-b"]]


def test_posts_bearer_token_to_mint_endpoint():
    client, session = _client(
        {"http://signer-a": signer_ok("0x1"), "http://signer-b": signer_ok("0x2")}
    )

    client.attest(ARGS)

    sent = {req["url"]: req["headers"]["Authorization"] for req in session.requests}
    assert sent == {
        "http://signer-a/api/mint": "Bearer token-a",
        "http://signer-b/api/mint": "Bearer token-b",
    }


def test_rejection_fails_whole_attestation():
    def reject(**_kwargs):
        return FakeResponse(400, {"error": "Nothing to mint"})

    client, _ = _client({"http://signer-a": signer_ok("0x1"), "http://signer-b": reject})

    with pytest.raises(SignerRejected) as excinfo:
        client.attest(ARGS)

    assert excinfo.value.reason == "Nothing to mint"
    assert excinfo.value.signer_url == "http://signer-b"


def test_unreachable_signer():
    def down(**_kwargs):
        raise requests.ConnectionError("refused")

    client, _ = _client({"http://signer-a": down, "http://signer-b": signer_ok("0x2")})

    with pytest.raises(SignerUnreachable) as excinfo:
        client.attest(ARGS)

    assert excinfo.value.signer_url == "http://signer-a"


def test_first_failure_does_not_wait_for_slow_signer():
    release = threading.Event()

    def down(**_kwargs):
        raise requests.ConnectionError("refused")

    def slow(**kwargs):
        release.wait(timeout=3)
        return signer_ok("0x2")(**kwargs)

    client, _ = _client({"http://signer-a": down, "http://signer-b": slow})

    started = time.monotonic()
    try:
        with pytest.raises(SignerUnreachable):
            client.attest(ARGS)
        elapsed = time.monotonic() - started
    finally:
        release.set()

    assert elapsed < 1.0


def test_missing_signature_is_rejected():
    def unsigned(json=None, **_kwargs):
        return FakeResponse(200, {"result": {"arguments": json["arguments"]}})

    client, _ = _client({"http://signer-a": unsigned, "http://signer-b": signer_ok("0x2")})

    with pytest.raises(SignerRejected):
        client.attest(ARGS)


def test_disagreeing_signers_raise_mismatch():
    def tampered(json=None, **_kwargs):
        arguments = list(json["arguments"])
        arguments[3] = [99]
        return FakeResponse(200, {"result": {"arguments": arguments, "signature": "0x2"}})

    client, _ = _client({"http://signer-a": signer_ok("0x1"), "http://signer-b": tampered})

    with pytest.raises(SignerMismatch):
        client.attest(ARGS)


def test_signer_echo_wins_over_local_arguments():
    def adjusted(json=None, **_kwargs):
        arguments = list(json["arguments"])
        arguments[3] = [1]
        return FakeResponse(200, {"result": {"arguments": arguments, "signature": "0xs"}})

    client, _ = _client({"http://signer-a": adjusted}, signers=SIGNERS[:1])

    combined = client.attest(ARGS)

    assert combined.arguments.counts == (1,)


def test_no_signers_configured():
    with pytest.raises(SignerRejected):
        AttestationClient(()).attest(ARGS)


def test_trailing_slash_urls_are_normalised():
    from likemint.config import pair_signers

    assert pair_signers(["http://s/"], ["t"]) == (SignerEndpoint(url="http://s", token="t"),)
