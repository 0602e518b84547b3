"""Fan-out of mint arguments to the configured signer services."""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import requests
from requests import Session

from likemint.services.http import http_request

from .arguments import MintArguments
from .errors import SignerMismatch, SignerRejected, SignerUnreachable

if TYPE_CHECKING:
    from likemint.config import SignerEndpoint

LOGGER = logging.getLogger("likemint.attestation")


@dataclass(frozen=True, slots=True)
class SignedAttestation:
    signer_url: str
    arguments: MintArguments
    signature: str


@dataclass(frozen=True, slots=True)
class CombinedAttestation:
    arguments: MintArguments
    signatures: Tuple[str, ...]

    def to_list(self) -> List[Any]:
        return self.arguments.with_signatures(self.signatures)


def signer_payload(args: MintArguments) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "targetId": args.target_id,
        "targetAddress": args.target_address,
        "reactorIds": list(args.reactor_ids),
        "arguments": args.to_list(),
    }
    if len(args.reactor_ids) == 1:
        payload["reactorId"] = args.reactor_ids[0]
    return payload


class AttestationClient:
    """Collects one signature per signer, all or nothing.

    Calls go out concurrently and are joined. The first failure aborts the
    attestation at once: calls still in flight are left to finish on their
    own and nothing waits for them. Signatures are returned in signer
    configuration order regardless of arrival order.
    """

    def __init__(
        self,
        signers: Sequence["SignerEndpoint"],
        *,
        session: Optional[Session] = None,
        timeout: Any | None = None,
    ) -> None:
        self.signers = tuple(signers)
        self.session = session
        self.timeout = timeout

    def attest(self, args: MintArguments) -> CombinedAttestation:
        if not self.signers:
            raise SignerRejected("No signers configured")
        payload = signer_payload(args)
        LOGGER.info(
            "Requesting %s signatures for target %s (%s reactors)",
            len(self.signers),
            args.target_id,
            len(args.reactor_ids),
        )
        results: List[Optional[SignedAttestation]] = [None] * len(self.signers)
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=len(self.signers), thread_name_prefix="likemint-signer"
        )
        try:
            future_map = {
                executor.submit(self._request_signature, signer, payload): idx
                for idx, signer in enumerate(self.signers)
            }
            done, _pending = concurrent.futures.wait(
                future_map, return_when=concurrent.futures.FIRST_EXCEPTION
            )
            for future in done:
                exc = future.exception()
                if exc is not None:
                    # In-flight siblings are abandoned; their results are never read.
                    raise exc
                results[future_map[future]] = future.result()
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        attestations = [item for item in results if item is not None]
        return self._combine(args, attestations)

    def _request_signature(self, signer: "SignerEndpoint", payload: Dict[str, Any]) -> SignedAttestation:
        url = f"{signer.url}/api/mint"
        try:
            response = http_request(
                "POST",
                url,
                json=payload,
                headers={"Authorization": f"Bearer {signer.token}"},
                session=self.session,
                timeout=self.timeout,
                logger=LOGGER,
            )
        except requests.RequestException as exc:
            raise SignerUnreachable(signer.url) from exc

        body = _json_body(response)
        if response.status_code >= 400:
            reason = (body or {}).get("error") or f"HTTP {response.status_code}"
            raise SignerRejected(str(reason), signer_url=signer.url)
        result = (body or {}).get("result") or {}
        signature = result.get("signature")
        if not signature:
            raise SignerRejected("Signer returned no signature", signer_url=signer.url)
        arguments = MintArguments.from_list(result.get("arguments"))
        return SignedAttestation(signer_url=signer.url, arguments=arguments, signature=str(signature))

    @staticmethod
    def _combine(local: MintArguments, attestations: List[SignedAttestation]) -> CombinedAttestation:
        echoed = attestations[0].arguments
        for item in attestations[1:]:
            if item.arguments != echoed:
                raise SignerMismatch(
                    "Signers returned different mint arguments", signer_url=item.signer_url
                )
        if echoed != local:
            LOGGER.warning(
                "Signer arguments differ from locally built ones for target %s: %s vs %s",
                local.target_id,
                echoed.to_list(),
                local.to_list(),
            )
        return CombinedAttestation(
            arguments=echoed,
            signatures=tuple(item.signature for item in attestations),
        )


def _json_body(response) -> Optional[Dict[str, Any]]:
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
