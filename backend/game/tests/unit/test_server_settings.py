import pytest
from pydantic import ValidationError

from game.reprieve.payments import PaymentProvider
from game.reprieve.share import ShareProvider
from game.server.settings import GameServerSettings
from shared.kv import StoreBackend


class TestGameServerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GAME_STORE_BACKEND", raising=False)
        settings = GameServerSettings()
        assert settings.store_backend == StoreBackend.MEMORY
        assert settings.min_guess_interval_ms == 300
        assert settings.reprieve_min_streak == 5
        assert settings.free_paid_reprieves is False

    def test_cors_origins_json_array(self, monkeypatch):
        monkeypatch.setenv("GAME_CORS_ORIGINS", '["http://a.com","http://b.com"]')
        settings = GameServerSettings()
        assert settings.cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_csv(self, monkeypatch):
        monkeypatch.setenv("GAME_CORS_ORIGINS", "http://a.com,http://b.com")
        settings = GameServerSettings()
        assert settings.cors_origins == ["http://a.com", "http://b.com"]

    def test_cors_origins_invalid_raises(self, monkeypatch):
        monkeypatch.setenv("GAME_CORS_ORIGINS", "")
        with pytest.raises(ValidationError, match="cors_origins"):
            GameServerSettings()

    def test_share_keywords_lowercased(self, monkeypatch):
        monkeypatch.setenv("GAME_SHARE_KEYWORDS", "StreakArena,#HigherLower")
        settings = GameServerSettings()
        assert settings.share_keywords == ["streakarena", "#higherlower"]

    def test_free_paid_reprieves_from_env(self, monkeypatch):
        monkeypatch.setenv("GAME_FREE_PAID_REPRIEVES", "true")
        assert GameServerSettings().free_paid_reprieves is True

    def test_run_ttl_too_short_rejected(self):
        with pytest.raises(ValidationError, match="run_ttl_seconds"):
            GameServerSettings(run_ttl_seconds=10)

    def test_negative_interval_rejected(self):
        with pytest.raises(ValidationError, match="min_guess_interval_ms"):
            GameServerSettings(min_guess_interval_ms=-1)

    def test_live_overtake_cap_at_most_three(self):
        assert GameServerSettings(live_overtake_cap=3).live_overtake_cap == 3
        with pytest.raises(ValidationError, match="live_overtake_cap"):
            GameServerSettings(live_overtake_cap=4)

    def test_log_dir_empty_rejected(self):
        with pytest.raises(ValidationError, match="log_dir"):
            GameServerSettings(log_dir="")


class TestProviderRequirements:
    def test_redis_requires_url(self):
        with pytest.raises(ValidationError, match="redis_url is required"):
            GameServerSettings(store_backend=StoreBackend.REDIS, redis_url=None)

    def test_redis_with_url(self):
        settings = GameServerSettings(store_backend=StoreBackend.REDIS, redis_url="redis://localhost:6379/0")
        assert settings.redis_url == "redis://localhost:6379/0"

    def test_http_payments_require_url(self):
        with pytest.raises(ValidationError, match="payment_verify_url is required"):
            GameServerSettings(payment_provider=PaymentProvider.HTTP)

    def test_neynar_requires_api_key(self):
        with pytest.raises(ValidationError, match="neynar_api_key is required"):
            GameServerSettings(share_provider=ShareProvider.NEYNAR)
