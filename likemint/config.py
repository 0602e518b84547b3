"""Application configuration helpers.

This module encapsulates environment-driven configuration for likemint so
settings can be loaded via a structured `AppConfig` dataclass and injected into
Flask during application factory bootstrap.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from likemint.minting.errors import ConfigurationError


def _getenv_bool(name: str, default: bool = False) -> bool:
    """Return a boolean flag from environment variables."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _getenv_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


def _getenv_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


def _getenv_list(name: str) -> List[str]:
    return [item for item in (os.getenv(name) or "").split() if item]


def _load_dotenv(base_dir: Path) -> None:
    env_path = base_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)


@dataclass(frozen=True)
class SignerEndpoint:
    """One attestation signer: base URL plus its bearer credential."""

    url: str
    token: str


def pair_signers(urls: List[str], tokens: List[str]) -> Tuple[SignerEndpoint, ...]:
    """Zip signer URLs with their tokens, keeping configuration order."""
    if len(urls) != len(tokens):
        raise ConfigurationError(
            f"SIGNER_URLS has {len(urls)} entries but SIGNER_TOKENS has {len(tokens)}"
        )
    return tuple(
        SignerEndpoint(url=url.rstrip("/"), token=token)
        for url, token in zip(urls, tokens)
    )


@dataclass(frozen=True)
class AppConfig:
    """Strongly typed application configuration container."""

    base_dir: Path
    neynar_api_key: str
    neynar_api_base: str
    signers: Tuple[SignerEndpoint, ...]
    chain_rpc_url: str
    minter_address: str
    database_url: str
    mirror_enabled: bool
    mirror_start_block: int
    mirror_block_span: int
    mirror_confirmations: int
    mirror_interval_seconds: float
    scan_max_results: int
    scan_depth_limit: int
    scan_page_size: int
    ready_timeout_seconds: float
    name_cache_ttl: float
    flask_secret_key: str
    cors_origins: Tuple[str, ...]
    http_timeout: float
    http_connect_timeout: float
    http_retries: int
    http_backoff_factor: float
    log_level: str
    sentry_dsn: str
    sentry_environment: str
    logs_dir: Path = field(init=False)
    log_file_path: Path = field(init=False)

    def __post_init__(self) -> None:
        logs_dir = self.base_dir / "logs"
        object.__setattr__(self, "logs_dir", logs_dir)
        object.__setattr__(self, "log_file_path", logs_dir / "likemint.log")

    @classmethod
    def load(cls, base_dir: Optional[Path] = None) -> "AppConfig":
        base_dir = base_dir or Path(__file__).resolve().parent.parent
        _load_dotenv(base_dir)

        signers = pair_signers(_getenv_list("SIGNER_URLS"), _getenv_list("SIGNER_TOKENS"))
        database_url = os.getenv("DATABASE_URL") or f"sqlite:///{base_dir / 'likemint.db'}"
        origins = _getenv_list("CORS_ORIGINS") or ["http://localhost:3030", "https://farcoin.xyz"]

        return cls(
            base_dir=base_dir,
            neynar_api_key=(os.getenv("NEYNAR_API_KEY") or "").strip(),
            neynar_api_base=(os.getenv("NEYNAR_API_BASE") or "https://api.neynar.com").rstrip("/"),
            signers=signers,
            chain_rpc_url=os.getenv("CHAIN_RPC_URL", "https://base-rpc.publicnode.com"),
            minter_address=os.getenv(
                "MINTER_ADDRESS", "0x9d5CE03b73a2291f5E62597E6f27A91CA9129d97"
            ),
            database_url=database_url,
            mirror_enabled=_getenv_bool("MIRROR_ENABLED", True),
            mirror_start_block=_getenv_int("MIRROR_START_BLOCK", 12919419),
            mirror_block_span=_getenv_int("MIRROR_BLOCK_SPAN", 1000),
            mirror_confirmations=_getenv_int("MIRROR_CONFIRMATIONS", 2),
            mirror_interval_seconds=_getenv_float("MIRROR_INTERVAL_SECONDS", 30.0),
            scan_max_results=_getenv_int("SCAN_MAX_RESULTS", 100),
            scan_depth_limit=_getenv_int("SCAN_DEPTH_LIMIT", 4),
            scan_page_size=_getenv_int("SCAN_PAGE_SIZE", 25),
            ready_timeout_seconds=_getenv_float("READY_TIMEOUT_SECONDS", 5.0),
            name_cache_ttl=_getenv_float("NAME_CACHE_TTL", 300.0),
            flask_secret_key=os.getenv("FLASK_SECRET_KEY", "change-me"),
            cors_origins=tuple(origins),
            http_timeout=_getenv_float("HTTP_TIMEOUT", 30.0),
            http_connect_timeout=_getenv_float("HTTP_CONNECT_TIMEOUT", 5.0),
            http_retries=_getenv_int("HTTP_RETRIES", 2),
            http_backoff_factor=_getenv_float("HTTP_BACKOFF", 0.5),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            sentry_dsn=os.getenv("SENTRY_DSN", ""),
            sentry_environment=os.getenv("SENTRY_ENVIRONMENT", ""),
        )


def load_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """Convenience wrapper used by the application factory."""
    return AppConfig.load(base_dir)
