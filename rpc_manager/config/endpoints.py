"""Endpoint seed models, YAML loader, and pool construction.

The pool is seeded, in priority order, from:

1. keyed provider endpoints (Alchemy, Helius) when their API keys are set
2. the optional YAML seed file (``endpoints_path``)
3. ``endpoints`` URLs from the environment
4. the built-in public endpoint, which is always present

Duplicate URLs keep their first (highest-priority) occurrence.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from rpc_manager.config.settings import RpcManagerSettings
from rpc_manager.registry.types import Endpoint, EndpointType
from rpc_manager.transport.client import redact_url
from rpc_manager.validators.url_validator import is_valid_endpoint_url

logger = logging.getLogger(__name__)

ALCHEMY_URL_TEMPLATE = "https://solana-mainnet.g.alchemy.com/v2/{key}"
HELIUS_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"


class EndpointSeed(BaseModel):
    """One configured endpoint before it enters the registry."""

    url: str = Field(min_length=1)
    name: str = ""
    type: EndpointType = EndpointType.FALLBACK
    priority: int = 0  # Orders entries within the YAML file only


def load_endpoint_seeds(yaml_path: str) -> list[EndpointSeed]:
    """Parse an endpoints YAML file into typed seeds.

    Expected shape::

        endpoints:
          - name: Triton
            url: https://example.rpcpool.com
            type: primary
            priority: 1

    Entries are ordered by ``priority`` (lower first), then by file order.
    Returns an empty list if the file is missing or unparsable. Invalid entries
    are logged and skipped.
    """
    path = Path(yaml_path)

    if not path.exists():
        logger.warning("Endpoints file not found at %s, using environment only", yaml_path)
        return []

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        logger.error("Failed to parse endpoints YAML at %s: %s", yaml_path, exc)
        return []

    if not isinstance(raw, dict) or not isinstance(raw.get("endpoints"), list):
        logger.warning("Endpoints YAML missing 'endpoints' list, ignoring %s", yaml_path)
        return []

    seeds: list[EndpointSeed] = []
    for position, entry in enumerate(raw["endpoints"]):
        try:
            seed = EndpointSeed.model_validate(entry)
        except PydanticValidationError as exc:
            logger.error("Invalid endpoint entry #%d: %s, skipping", position, exc)
            continue
        if not is_valid_endpoint_url(seed.url):
            logger.error("Invalid endpoint URL in entry #%d, skipping", position)
            continue
        seeds.append(seed)
    seeds.sort(key=lambda s: s.priority)
    return seeds


def build_endpoint_seeds(settings: RpcManagerSettings) -> list[EndpointSeed]:
    """Collect seeds from every configured source in priority order."""
    seeds: list[EndpointSeed] = []

    if settings.alchemy_api_key:
        seeds.append(
            EndpointSeed(
                url=ALCHEMY_URL_TEMPLATE.format(key=settings.alchemy_api_key),
                name="Alchemy",
                type=EndpointType.PRIMARY,
            )
        )
    if settings.helius_api_key:
        seeds.append(
            EndpointSeed(
                url=HELIUS_URL_TEMPLATE.format(key=settings.helius_api_key),
                name="Helius",
                type=EndpointType.PRIMARY,
            )
        )

    if settings.endpoints_path:
        seeds.extend(load_endpoint_seeds(settings.endpoints_path))

    for url in settings.endpoints:
        if is_valid_endpoint_url(url):
            seeds.append(EndpointSeed(url=url.strip()))
        else:
            logger.error("Ignoring invalid endpoint URL from environment: %s", redact_url(url))

    seeds.append(EndpointSeed(url=settings.default_endpoint_url, name="Public RPC"))
    return seeds


def build_endpoint_pool(seeds: list[EndpointSeed]) -> list[Endpoint]:
    """Turn seeds into registry endpoints, de-duplicated, priorities 0..n-1."""
    pool: list[Endpoint] = []
    seen: set[str] = set()
    for seed in seeds:
        if seed.url in seen:
            continue
        seen.add(seed.url)
        pool.append(
            Endpoint(
                url=seed.url,
                priority=len(pool),
                name=seed.name or redact_url(seed.url),
                endpoint_type=seed.type,
            )
        )
    return pool
