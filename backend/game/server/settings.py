"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from game.reprieve.payments import PaymentProvider
from game.reprieve.share import DEFAULT_SHARE_KEYWORDS, ShareProvider
from shared.kv import StoreBackend
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "GAME_"}

    store_backend: StoreBackend = StoreBackend.MEMORY
    redis_url: str | None = None
    catalog_path: str = Field(default="backend/config/catalog.yaml", min_length=1)
    log_dir: str = Field(default="backend/logs/game", min_length=1)
    cors_origins: list[str] = ["http://localhost:3000"]

    run_ttl_seconds: int = Field(default=3600, ge=60)
    share_token_ttl_seconds: int = Field(default=600, ge=60)
    rolling_board_ttl_seconds: int = Field(default=14 * 24 * 3600, ge=3600)

    min_guess_interval_ms: int = Field(default=300, ge=0)
    # Allowed |claimed - recorded| streak difference before a submission is logged as drift.
    streak_drift_tolerance: int = Field(default=1, ge=0)

    reprieve_min_streak: int = Field(default=5, ge=0)
    reprieve_price_usd: float = Field(default=1.0, ge=0)
    # Grants paid reprieves without payment (launch promo / test mode); each grant is logged.
    free_paid_reprieves: bool = False

    payment_provider: PaymentProvider = PaymentProvider.MOCK
    payment_verify_url: str | None = None
    share_provider: ShareProvider = ShareProvider.MOCK
    neynar_api_key: str | None = None
    share_keywords: list[str] = list(DEFAULT_SHARE_KEYWORDS)

    submit_overtake_cap: int = Field(default=5, ge=0, le=50)
    live_overtake_cap: int = Field(default=3, ge=0, le=3)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @field_validator("share_keywords", mode="before")
    @classmethod
    def validate_share_keywords(cls, v: str | list[str]) -> list[str]:
        return [keyword.lower() for keyword in parse_string_list(v)]

    @model_validator(mode="after")
    def _check_provider_config(self) -> Self:
        if self.store_backend == StoreBackend.REDIS and not self.redis_url:
            raise ValueError("redis_url is required when store_backend is redis")
        if self.payment_provider == PaymentProvider.HTTP and not self.payment_verify_url:
            raise ValueError("payment_verify_url is required when payment_provider is http")
        if self.share_provider == ShareProvider.NEYNAR and not self.neynar_api_key:
            raise ValueError("neynar_api_key is required when share_provider is neynar")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
