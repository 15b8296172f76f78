"""Dependency wiring tests"""

import os

import pytest

from adwiser_feed import deps
from adwiser_feed.config import get_settings, save_feed_config
from adwiser_feed.core.feed import FeedConfig, InMemoryCatalog, MemoryCacheBackend
from adwiser_feed.core.feed.cache import CacheEntry
from adwiser_feed.core.feed.woo_catalog import WooCatalog


@pytest.fixture
def settings(monkeypatch, tmp_path):
    settings = get_settings()
    monkeypatch.setattr(settings, "redis_url", None)
    monkeypatch.setattr(settings, "store_url", None)
    monkeypatch.setattr(settings, "consumer_key", None)
    monkeypatch.setattr(settings, "consumer_secret", None)
    monkeypatch.setattr(settings, "feed_options_path", str(tmp_path / "feed_options.json"))
    monkeypatch.setattr(deps, "_redis_client", None)
    monkeypatch.setattr(deps, "_feed_service", None)
    monkeypatch.setattr(deps, "_feed_options_stamp", None)
    return settings


def _touch_later(path: str) -> None:
    stat = os.stat(path)
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))


def test_memory_cache_without_redis(settings):
    assert deps.get_redis() is None
    assert isinstance(deps.build_feed_cache().backend, MemoryCacheBackend)


def test_empty_catalog_without_credentials(settings):
    assert isinstance(deps.build_catalog(), InMemoryCatalog)


def test_woo_catalog_with_credentials(settings, monkeypatch):
    monkeypatch.setattr(settings, "store_url", "https://shop.test")
    monkeypatch.setattr(settings, "consumer_key", "ck_test")
    monkeypatch.setattr(settings, "consumer_secret", "cs_test")

    catalog = deps.build_catalog()

    assert isinstance(catalog, WooCatalog)
    assert catalog.client.store_url == "https://shop.test"
    catalog.client.close()


def test_feed_service_is_a_singleton(settings):
    assert deps.get_feed_service() is deps.get_feed_service()


class TestOptionsReload:
    """Options written by another worker reach this process"""

    def test_options_file_written_elsewhere_is_picked_up(self, settings):
        service = deps.get_feed_service()
        assert service.config.enabled is True

        save_feed_config(FeedConfig(enabled=False, ip_whitelist={"1.2.3.4"}))

        assert deps.get_feed_service() is service
        assert service.config.enabled is False
        assert service.config.ip_whitelist == {"1.2.3.4"}

    def test_rewritten_file_is_reloaded_and_cache_dropped(self, settings):
        save_feed_config(FeedConfig())
        service = deps.get_feed_service()
        service.cache.backend.store(CacheEntry(xml="<products/>", stored_at=0.0, ttl=1e12))

        save_feed_config(FeedConfig(limit_results=True, results_limit=5))
        _touch_later(settings.feed_options_path)
        deps.get_feed_service()

        assert service.config.limit_results is True
        assert service.config.results_limit == 5
        assert service.cache.backend.load() is None

    def test_unchanged_file_keeps_cache(self, settings):
        save_feed_config(FeedConfig())
        service = deps.get_feed_service()
        service.cache.backend.store(CacheEntry(xml="<products/>", stored_at=0.0, ttl=1e12))

        deps.get_feed_service()

        assert service.cache.backend.load() is not None

    def test_own_write_is_not_reloaded(self, settings):
        service = deps.get_feed_service()
        save_feed_config(FeedConfig(enabled=False))
        deps.remember_feed_options()
        service.update_config(FeedConfig(enabled=False))
        service.cache.backend.store(CacheEntry(xml="<products/>", stored_at=0.0, ttl=1e12))

        deps.get_feed_service()

        assert service.cache.backend.load() is not None
