"""Configuration via environment variables with cloud-native secret support.

The API token may be given literally or as a secret reference:
  - aws-secret://name#key  (AWS Secrets Manager)
  - gcp-secret://name      (GCP Secret Manager)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from okta_tables.secrets import resolve_secret


@dataclass(frozen=True)
class OktaConfig:
    domain: str
    token: str = field(repr=False)
    request_timeout: float = 30.0


@dataclass(frozen=True)
class EngineConfig:
    max_concurrency: int = 8
    max_page_size: int = 200


@dataclass(frozen=True)
class ConnectorConfig:
    okta: OktaConfig
    engine: EngineConfig = field(default_factory=EngineConfig)
    log_level: str = "INFO"


def load_config() -> ConnectorConfig:
    """Load configuration from environment variables (and a .env file locally)."""
    load_dotenv()

    domain = os.environ.get("OKTA_DOMAIN", "")
    if not domain:
        raise ValueError("OKTA_DOMAIN environment variable is required")

    token_raw = os.environ.get("OKTA_CLIENT_TOKEN", "")
    if not token_raw:
        raise ValueError("OKTA_CLIENT_TOKEN environment variable is required")

    okta = OktaConfig(
        domain=domain.removeprefix("https://").rstrip("/"),
        token=resolve_secret(token_raw),
        request_timeout=float(os.environ.get("OKTA_REQUEST_TIMEOUT", "30")),
    )

    engine = EngineConfig(
        max_concurrency=int(os.environ.get("OKTA_HYDRATE_CONCURRENCY", "8")),
        max_page_size=int(os.environ.get("OKTA_MAX_PAGE_SIZE", "200")),
    )

    return ConnectorConfig(
        okta=okta,
        engine=engine,
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
