"""Evolution API gateway configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import float_env_var, optional_env_var, require_env_vars
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_INSTANCE_NAME = "sa-personal"
GATEWAY_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class GatewayConfig:
    """Holds the Evolution API connection settings."""

    base_url: str
    api_key: str
    resilience: ResilienceConfig


def get_default_instance_name() -> str:
    return optional_env_var("EVOLUTION_INSTANCE_NAME") or DEFAULT_INSTANCE_NAME


def get_gateway_config(*, resilience: ResilienceConfig | None = None) -> GatewayConfig:
    values = require_env_vars(("EVOLUTION_API_URL", "EVOLUTION_API_KEY"))
    base_url = values["EVOLUTION_API_URL"].rstrip("/") + "/"
    api_key = values["EVOLUTION_API_KEY"]

    cache_ttl = float_env_var("EVOLUTION_CACHE_TTL_SECONDS", 0.0)
    cache = CacheConfig(backend="memory", default_ttl_seconds=cache_ttl) if cache_ttl else None

    return GatewayConfig(
        base_url=base_url,
        api_key=api_key,
        resilience=resilience
        or ResilienceConfig(
            name="evolution",
            base_url=base_url,
            timeout_seconds=float_env_var("EVOLUTION_TIMEOUT_SECONDS", GATEWAY_TIMEOUT_SECONDS),
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
            cache=cache,
            default_headers={"apikey": api_key},
        ),
    )
