"""EVE Swagger Interface (ESI) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

ESI_BASE_URL = "https://esi.evetech.net/latest/"
ESI_DATASOURCE = "tranquility"
ESI_TIMEOUT_SECONDS = 15.0
DEFAULT_USER_AGENT = "incursion-tracker"


@dataclass(frozen=True, slots=True)
class EsiConfig:
    resilience: ResilienceConfig
    datasource: str = ESI_DATASOURCE


def get_esi_config(*, resilience: ResilienceConfig | None = None) -> EsiConfig:
    if resilience is not None:
        return EsiConfig(resilience=resilience)

    user_agent = optional_env_var("ESI_USER_AGENT") or DEFAULT_USER_AGENT

    return EsiConfig(
        resilience=ResilienceConfig(
            name="esi",
            base_url=ESI_BASE_URL,
            timeout_seconds=ESI_TIMEOUT_SECONDS,
            ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
            retry=RetryPolicy(total=3),
            # reference lookups must not outlive a poll cycle, so nothing is cached on disk
            cache=CacheConfig(),
            default_headers={"User-Agent": user_agent, "Accept": "application/json"},
        )
    )
