# ==============================================================================
# Tests for ValkeyCache and ValkeyLiveFlowCache
# ==============================================================================
"""
Tests for the optimistic cache update and the per-customer live flow cache,
run against fakeredis.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from fakes import (
    ACME_ID,
    BANNER,
    BUY,
    GLOBEX_ID,
    HOME,
    LANDING,
    MENU,
    PRODUCT,
    SIGNUP,
    at,
    make_event,
)
from journey.core.errors import CacheContentionError
from journey.infrastructure.cache import ValkeyCache
from journey.infrastructure.cache.valkey import DEFAULT_CAS_ATTEMPTS
from journey.infrastructure.flow_cache import FLOW_CACHE_PREFIX, ValkeyLiveFlowCache

ACME_KEY = f"{FLOW_CACHE_PREFIX}{ACME_ID}"
VALKEY_MODULE = "journey.infrastructure.cache.valkey"


# ==============================================================================
# ValkeyCache
# ==============================================================================


class TestValkeyCache:
    """Tests for the JSON cache primitives."""

    def test_get_missing_key(self, fake_cache):
        assert fake_cache.get("nope") is None

    def test_set_with_ttl(self, fake_cache, fake_redis):
        fake_cache.set("k", {"a": 1}, ttl_seconds=60)

        assert fake_cache.get("k") == {"a": 1}
        assert 0 < fake_redis.ttl("k") <= 60

    def test_non_json_value_reads_as_miss(self, fake_cache, fake_redis):
        fake_redis.set("k", "not json")

        assert fake_cache.get("k") is None

    def test_delete(self, fake_cache):
        fake_cache.set("k", {"a": 1})

        assert fake_cache.delete("k") is True
        assert fake_cache.delete("k") is False


class TestValkeyCacheUpdate:
    """Tests for WATCH/MULTI/EXEC read-modify-write."""

    def test_update_on_miss(self, fake_cache):
        stored = fake_cache.update("k", lambda current: {"seen": current}, ttl_seconds=30)

        assert stored == {"seen": None}
        assert fake_cache.get("k") == {"seen": None}

    def test_update_reads_current_value(self, fake_cache):
        fake_cache.set("k", {"n": 1})

        fake_cache.update("k", lambda current: {"n": current["n"] + 1})

        assert fake_cache.get("k") == {"n": 2}

    def test_concurrent_write_is_not_lost(self, fake_cache, fake_redis):
        """A write landing between read and commit forces a retry on fresh data."""
        fake_cache.set("k", {"n": 1})
        calls = []

        def mutate(current):
            calls.append(current["n"])
            if len(calls) == 1:
                # Another writer slips in after our read
                fake_redis.set("k", json.dumps({"n": 10}))
            return {"n": current["n"] + 1}

        fake_cache.update("k", mutate)

        assert calls == [1, 10]
        assert fake_cache.get("k") == {"n": 11}

    def test_gives_up_after_bounded_attempts(self, fake_cache, fake_redis):
        calls = []

        def mutate(current):
            calls.append(current)
            fake_redis.set("k", json.dumps({"writer": len(calls)}))
            return {"mine": True}

        with pytest.raises(CacheContentionError):
            fake_cache.update("k", mutate)

        assert len(calls) == 5
        assert fake_cache.get("k") == {"writer": 5}


class TestValkeyCacheSettings:
    """Tests for how the constructor resolves its configuration."""

    @pytest.fixture()
    def settings(self):
        settings = MagicMock()
        settings.valkey.url = "redis://settings-host:6379/0"
        settings.valkey.flow_cache_cas_attempts = 7
        with patch(f"{VALKEY_MODULE}.get_settings", return_value=settings):
            yield settings

    def test_explicit_attempts_win_over_settings(self, settings):
        with patch(f"{VALKEY_MODULE}.redis.from_url") as from_url:
            cache = ValkeyCache(cas_attempts=2)

        assert cache._cas_attempts == 2
        assert from_url.call_args.args[0] == "redis://settings-host:6379/0"

    def test_attempts_from_settings_without_url(self, settings):
        with patch(f"{VALKEY_MODULE}.redis.from_url"):
            cache = ValkeyCache()

        assert cache._cas_attempts == 7

    def test_explicit_url_uses_default_attempts(self, settings):
        with patch(f"{VALKEY_MODULE}.redis.from_url") as from_url:
            cache = ValkeyCache(url="redis://other:6379/1")

        assert cache._cas_attempts == DEFAULT_CAS_ATTEMPTS
        assert from_url.call_args.args[0] == "redis://other:6379/1"


# ==============================================================================
# ValkeyLiveFlowCache
# ==============================================================================


class TestLiveFlowCache:
    """Tests for recording events and reading recent flows."""

    def test_miss_returns_empty(self, live_cache):
        assert live_cache.recent(ACME_ID, 10) == []

    def test_record_builds_entry(self, live_cache):
        live_cache.record(make_event("s1", BANNER, HOME, 0))
        live_cache.record(make_event("s1", MENU, HOME, 10))
        entries = live_cache.record(make_event("s1", BUY, PRODUCT, 20))

        assert len(entries) == 1
        assert entries[0].blocks == [BANNER, MENU, BUY]
        assert entries[0].pages == [HOME, PRODUCT]
        assert live_cache.recent(ACME_ID, 10) == entries

    def test_out_of_order_events_keep_min_and_max(self, live_cache):
        live_cache.record(make_event("s1", BUY, PRODUCT, 20))
        live_cache.record(make_event("s1", BANNER, HOME, 0))
        live_cache.record(make_event("s1", MENU, HOME, 10))

        entry = live_cache.recent(ACME_ID, 1)[0]

        assert entry.start_at == at(0)
        assert entry.end_at == at(20)

    def test_customers_are_isolated(self, live_cache):
        live_cache.record(make_event("s1", BANNER, HOME, 0))
        live_cache.record(make_event("s1", SIGNUP, LANDING, 0, customer_id=GLOBEX_ID))

        assert live_cache.recent(ACME_ID, 10)[0].pages == [HOME]
        assert live_cache.recent(GLOBEX_ID, 10)[0].pages == [LANDING]

    def test_limit(self, live_cache):
        for i in range(4):
            live_cache.record(make_event(f"s{i}", BANNER, HOME, i))

        assert [e.session_id for e in live_cache.recent(ACME_ID, 2)] == ["s0", "s1"]
        assert live_cache.recent(ACME_ID, 0) == []

    def test_every_write_resets_ttl(self, live_cache, fake_redis):
        live_cache.record(make_event("s1", BANNER, HOME, 0))
        fake_redis.expire(ACME_KEY, 5)

        live_cache.record(make_event("s1", MENU, HOME, 1))

        assert fake_redis.ttl(ACME_KEY) > 5

    def test_expired_key_reads_as_miss(self, live_cache, fake_redis):
        live_cache.record(make_event("s1", BANNER, HOME, 0))
        fake_redis.delete(ACME_KEY)

        assert live_cache.recent(ACME_ID, 10) == []

    def test_malformed_document_is_discarded(self, live_cache, fake_redis):
        fake_redis.set(ACME_KEY, json.dumps({"entries": [{"session_id": "s1"}]}))

        assert live_cache.recent(ACME_ID, 10) == []
        entries = live_cache.record(make_event("s2", BANNER, HOME, 0))
        assert [e.session_id for e in entries] == ["s2"]

    def test_clear(self, live_cache):
        live_cache.record(make_event("s1", BANNER, HOME, 0))

        assert live_cache.clear(ACME_ID) is True
        assert live_cache.recent(ACME_ID, 10) == []
        assert live_cache.clear(ACME_ID) is False

    def test_ttl_defaults_to_settings(self, fake_cache):
        assert ValkeyLiveFlowCache(cache=fake_cache).ttl_seconds == 300
