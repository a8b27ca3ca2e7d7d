"""
parley.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for community identity and lifecycle tuning (topic
age thresholds, token lifetime, sweep interval).  Secrets such as the
database URL, the JWT signing secret and SMTP credentials stay in the
environment (``.env``).

Usage::

    from parley.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.delete_after_days)     # 97
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ParleyConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str
    frontend_url: str  # Base URL used in archive links

    # Lifecycle thresholds (days since topic creation)
    delete_after_days: int = 97
    archive_notify_after_days: int = 90
    archive_token_ttl_days: int = 7

    # Worker
    sweep_interval_hours: int = 24

    # API
    api_port: int = 8000


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> ParleyConfig:
    """Read *path* and return a :class:`ParleyConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return ParleyConfig(
        community_name=raw["community_name"],
        frontend_url=str(raw["frontend_url"]).rstrip("/"),
        delete_after_days=int(raw.get("delete_after_days", 97)),
        archive_notify_after_days=int(raw.get("archive_notify_after_days", 90)),
        archive_token_ttl_days=int(raw.get("archive_token_ttl_days", 7)),
        sweep_interval_hours=int(raw.get("sweep_interval_hours", 24)),
        api_port=int(raw.get("api_port", 8000)),
    )


# ---------------------------------------------------------------------------
# Secrets
# ---------------------------------------------------------------------------
_WEAK_SECRETS = frozenset({
    "parley-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32


def load_jwt_secret() -> str:
    """Load and validate ``JWT_SECRET`` from the environment.

    Raises RuntimeError if the secret is missing, blank, too short
    (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret
