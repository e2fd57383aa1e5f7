# ==============================================================================
# Shared Test Fixtures
# ==============================================================================
"""
Pytest fixtures shared across all test modules.

Provides:
- fakeredis-backed ValkeyCache and ValkeyLiveFlowCache instances
- Clean Redis state per test (automatic flush)
- A small two-customer directory with in-memory repositories
"""

import fakeredis
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
    InMemoryDirectory,
    InMemoryEventRepository,
    InMemoryFlowRepository,
    InMemorySessionizerStore,
)
from journey.core.models import Block, Customer, Page, Principal
from journey.infrastructure.cache import ValkeyCache
from journey.infrastructure.flow_cache import ValkeyLiveFlowCache

# ==============================================================================
# Sample Directory
# ==============================================================================


@pytest.fixture()
def directory():
    """Two customers; acme has two pages, globex one."""
    return InMemoryDirectory(
        customers=[
            Customer(id=ACME_ID, public_key="acme-key", name="Acme", approved=True),
            Customer(id=GLOBEX_ID, public_key="globex-key", name="Globex"),
        ],
        pages=[
            Page(id=HOME, customer_id=ACME_ID, name="Home", display_order=0),
            Page(id=PRODUCT, customer_id=ACME_ID, name="Product", display_order=1),
            Page(id=LANDING, customer_id=GLOBEX_ID, name="Landing"),
        ],
        blocks=[
            Block(id=BANNER, customer_id=ACME_ID, page_id=HOME, name="banner"),
            Block(id=MENU, customer_id=ACME_ID, page_id=HOME, name="menu"),
            Block(id=BUY, customer_id=ACME_ID, page_id=PRODUCT, name="buy"),
            Block(id=SIGNUP, customer_id=GLOBEX_ID, page_id=LANDING, name="signup"),
        ],
    )


@pytest.fixture()
def acme():
    return Principal(customer_id=ACME_ID, approved=True)


@pytest.fixture()
def globex():
    return Principal(customer_id=GLOBEX_ID)


@pytest.fixture()
def event_repo():
    return InMemoryEventRepository()


@pytest.fixture()
def flow_repo():
    return InMemoryFlowRepository()


@pytest.fixture()
def sessionizer_store(event_repo, flow_repo):
    return InMemorySessionizerStore(event_repo, flow_repo)


# ==============================================================================
# Cache Fixtures
# ==============================================================================


@pytest.fixture()
def fake_redis():
    """A clean fakeredis instance for each test.

    Uses decode_responses=True to match the real ValkeyCache behavior.
    """
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.flushall()
    client.close()


@pytest.fixture()
def fake_cache(fake_redis):
    """A ValkeyCache with its internal client replaced by fakeredis.

    This avoids needing a real Valkey/Redis server for unit tests while
    exercising the full ValkeyCache API surface.
    """
    cache = ValkeyCache.__new__(ValkeyCache)
    cache._client = fake_redis
    cache._url = "redis://fake:6379"
    cache._cas_attempts = 5
    return cache


@pytest.fixture()
def live_cache(fake_cache):
    """A ValkeyLiveFlowCache backed by fakeredis with a 300s TTL."""
    return ValkeyLiveFlowCache(cache=fake_cache, ttl_seconds=300)
