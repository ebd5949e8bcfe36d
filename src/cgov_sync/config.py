from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: str = "dev"
    log_level: str = "INFO"
    service_name: str = "cgov-sync"

    koios_base_url: str = "https://api.koios.rest/api/v1"
    koios_api_key: str = ""

    # per endpoint class, seconds
    metadata_timeout_seconds: float = 20.0
    default_timeout_seconds: float = 30.0
    bulk_timeout_seconds: float = 60.0

    retry_max_retries: int = 5
    retry_base_delay_seconds: float = 0.75
    retry_max_delay_seconds: float = 10.0
    retry_jitter_seconds: float = 0.2

    tx_batch_size: int = 50
    block_page_size: int = 100
    # Koios serves at most 1000 rows per response
    koios_page_size: int = 1000
    default_max_blocks: int = 500

    sync_cooldown_ms: int = 5 * 60 * 1000
    max_new_proposals: int = 5
    max_actions: int = 2
    max_votes_per_action: int = 25
    max_vp_lookups: int = 25

    vp_lookup_delay_seconds: float = 0.04
    action_delay_seconds: float = 0.15
    proposal_delay_seconds: float = 0.1
    batch_delay_seconds: float = 0.075

    # Cardano mainnet: 2017-09-23T21:44:51Z, 5-day epochs
    genesis_unix: int = 1_506_203_091
    epoch_length_seconds: int = 432_000

    sync_poll_interval_seconds: float = 60.0
    # overall bound for one HTTP-triggered run; unset means unbounded
    request_deadline_seconds: float | None = None


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()
