"""Bootstrap helpers that assemble all runtime components once per process."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from likemint.caching.timed_cache import TimedCache
from likemint.clients.chain import ChainBoundaryReader
from likemint.clients.neynar import NeynarClient
from likemint.config import AppConfig
from likemint.minting.aggregator import ReactionAggregator
from likemint.minting.attestation import AttestationClient
from likemint.minting.pipeline import MintPipeline
from likemint.mirror.job import EventMirror
from likemint.mirror.storage import MirrorRepository
from likemint.services.http import HttpSettings, configure_http
from likemint.services.scheduler import SchedulerService

LOGGER = logging.getLogger("likemint.bootstrap")


@dataclass
class BootstrapContext:
    config: AppConfig
    neynar: NeynarClient
    chain: ChainBoundaryReader
    mirror: MirrorRepository
    pipeline: MintPipeline
    scheduler: SchedulerService


def build_pipeline(config: AppConfig, neynar, chain, attestation: AttestationClient | None = None) -> MintPipeline:
    return MintPipeline(
        identity=neynar,
        aggregator=ReactionAggregator(neynar, page_size=config.scan_page_size),
        boundaries=chain,
        attestation=attestation or AttestationClient(config.signers),
        max_results=config.scan_max_results,
        depth_limit=config.scan_depth_limit,
        ready_timeout=config.ready_timeout_seconds,
    )


def bootstrap(config: AppConfig, *, start_scheduler: bool = True) -> BootstrapContext:
    configure_http(
        HttpSettings(
            timeout=config.http_timeout,
            connect_timeout=config.http_connect_timeout,
            retries=config.http_retries,
            backoff_factor=config.http_backoff_factor,
        )
    )
    neynar = NeynarClient(
        config.neynar_api_key,
        base_url=config.neynar_api_base,
        name_cache=TimedCache(ttl=config.name_cache_ttl),
    )
    chain = ChainBoundaryReader.from_rpc(
        config.chain_rpc_url,
        config.minter_address,
        request_timeout=config.http_timeout,
    )
    mirror = MirrorRepository(config.database_url)
    mirror.create_all()

    scheduler = SchedulerService()
    if config.mirror_enabled:
        event_mirror = EventMirror(
            chain,
            mirror,
            start_block=config.mirror_start_block,
            block_span=config.mirror_block_span,
            confirmations=config.mirror_confirmations,
        )
        scheduler.add_task("mirror_mint", config.mirror_interval_seconds, lambda: event_mirror.run_once("mint"))
        scheduler.add_task("mirror_claim", config.mirror_interval_seconds, lambda: event_mirror.run_once("claim"))
        if start_scheduler:
            scheduler.start()

    LOGGER.info(
        "Bootstrapped with %s signers, minter %s, mirror %s",
        len(config.signers),
        config.minter_address,
        "on" if config.mirror_enabled else "off",
    )
    return BootstrapContext(
        config=config,
        neynar=neynar,
        chain=chain,
        mirror=mirror,
        pipeline=build_pipeline(config, neynar, chain),
        scheduler=scheduler,
    )
