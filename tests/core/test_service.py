"""Feed service tests: access control and cached serving"""

import pytest

from adwiser_feed.core.feed import AccessDenied, FeedCache, FeedConfig, FeedService, InMemoryCatalog


class CountingCatalog(InMemoryCatalog):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.listings = 0

    def list_published_visible_products(self, order_by_created_desc=True, limit=None):
        self.listings += 1
        return super().list_published_visible_products(order_by_created_desc, limit)


@pytest.fixture
def catalog(make_product):
    return CountingCatalog(products=[make_product(1), make_product(2)])


class TestAccess:

    def test_disabled_feed_denied(self, catalog):
        service = FeedService(catalog, FeedConfig(enabled=False))

        with pytest.raises(AccessDenied) as exc_info:
            service.check_access("1.2.3.4")
        assert exc_info.value.reason == "Feed is disabled"

    def test_empty_whitelist_allows_all(self, catalog):
        FeedService(catalog, FeedConfig()).check_access("5.6.7.8")

    def test_whitelisted_address_allowed(self, catalog):
        FeedService(catalog, FeedConfig(ip_whitelist={"1.2.3.4"})).check_access("1.2.3.4")

    def test_address_not_whitelisted(self, catalog):
        service = FeedService(catalog, FeedConfig(ip_whitelist={"1.2.3.4"}))

        with pytest.raises(AccessDenied) as exc_info:
            service.check_access("5.6.7.8")
        assert "5.6.7.8" in exc_info.value.reason
        assert catalog.listings == 0

    def test_unknown_address_denied_with_whitelist(self, catalog):
        service = FeedService(catalog, FeedConfig(ip_whitelist={"1.2.3.4"}))

        with pytest.raises(AccessDenied):
            service.check_access(None)


class TestCachedServing:

    def test_cached_within_ttl(self, catalog):
        service = FeedService(catalog, FeedConfig(cache_time_minutes=15))

        first = service.get_cached()
        second = service.get_cached()

        assert first == second
        assert catalog.listings == 1

    def test_caching_disabled(self, catalog):
        service = FeedService(catalog, FeedConfig(enable_caching=False))

        service.get_cached()
        service.get_cached()

        assert catalog.listings == 2

    def test_ttl_from_config(self, catalog):
        now = [0.0]
        service = FeedService(catalog, FeedConfig(cache_time_minutes=1), cache=FeedCache(clock=lambda: now[0]))

        service.get_cached()
        now[0] = 59.0
        service.get_cached()
        assert catalog.listings == 1

        now[0] = 60.0
        service.get_cached()
        assert catalog.listings == 2

    def test_update_config_invalidates(self, catalog):
        service = FeedService(catalog, FeedConfig())
        service.get_cached()

        service.update_config(FeedConfig(limit_results=True, results_limit=1))
        xml = service.get_cached()

        assert catalog.listings == 2
        assert xml.count("<product>") == 1

    def test_generate_bypasses_cache(self, catalog):
        service = FeedService(catalog, FeedConfig())
        service.get_cached()
        service.generate()

        assert catalog.listings == 2
