# ==============================================================================
# Tests for EventIngest - ingest.py
# ==============================================================================
"""
Tests for resolving, persisting and caching incoming events.
"""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from fakes import ACME_ID, BANNER, BUY, HOME, PRODUCT, at
from journey.core.errors import CacheContentionError, NotFoundError
from journey.core.models import EventIn
from journey.services.ingest import EventIngest

# ==============================================================================
# Helpers
# ==============================================================================


def _event_in(block_name="banner", key="acme-key", session_id="s1", seconds=0) -> EventIn:
    return EventIn(
        session_id=session_id,
        occurred_at=at(seconds),
        block_name=block_name,
        customer_key=key,
    )


# ==============================================================================
# collect
# ==============================================================================


class TestCollect:
    """Tests for single-event ingestion."""

    def test_resolves_page_from_block(self, directory, event_repo):
        event = EventIngest(directory, event_repo).collect(_event_in("buy"))

        assert event.id == 1
        assert event.customer_id == ACME_ID
        assert event.block_id == BUY
        assert event.page_id == PRODUCT
        assert event.handled is False
        assert event_repo.events == [event]

    def test_unknown_customer(self, directory, event_repo):
        with pytest.raises(NotFoundError, match="Customer not found"):
            EventIngest(directory, event_repo).collect(_event_in(key="nobody"))
        assert event_repo.events == []

    def test_unknown_block(self, directory, event_repo):
        with pytest.raises(NotFoundError, match="Block not found"):
            EventIngest(directory, event_repo).collect(_event_in("nope"))

    def test_block_of_another_customer_is_unknown(self, directory, event_repo):
        with pytest.raises(NotFoundError, match="Block not found"):
            EventIngest(directory, event_repo).collect(_event_in("signup"))

    def test_updates_live_cache(self, directory, event_repo, live_cache):
        EventIngest(directory, event_repo, live_cache).collect(_event_in("banner"))
        EventIngest(directory, event_repo, live_cache).collect(_event_in("buy", seconds=5))

        entry = live_cache.recent(ACME_ID, 10)[0]
        assert entry.blocks == [BANNER, BUY]
        assert entry.pages == [HOME, PRODUCT]

    def test_cache_failure_does_not_fail_ingest(self, directory, event_repo, caplog):
        live_cache = MagicMock()
        live_cache.record.side_effect = CacheContentionError("busy")

        with caplog.at_level(logging.WARNING):
            event = EventIngest(directory, event_repo, live_cache).collect(_event_in())

        assert event_repo.events == [event]
        assert "Live flow cache update failed" in caplog.text

    def test_cache_not_touched_on_rejection(self, directory, event_repo):
        live_cache = MagicMock()

        with pytest.raises(NotFoundError):
            EventIngest(directory, event_repo, live_cache).collect(_event_in("nope"))

        live_cache.record.assert_not_called()

    def test_mixed_naive_and_aware_timestamps_share_a_cached_flow(
        self, directory, event_repo, live_cache
    ):
        ingest = EventIngest(directory, event_repo, live_cache)
        for occurred_at, block_name in (
            ("2024-01-01T12:00:00", "banner"),
            ("2024-01-01T12:00:10Z", "buy"),
        ):
            ingest.collect(
                EventIn.model_validate(
                    {
                        "sessionId": "s1",
                        "occurredAt": occurred_at,
                        "blockName": block_name,
                        "customerKey": "acme-key",
                    }
                )
            )

        entry = live_cache.recent(ACME_ID, 10)[0]
        assert entry.blocks == [BANNER, BUY]
        assert entry.start_at == at(0)
        assert entry.end_at == at(10)


class TestEventIn:
    """Tests for the raw event payload."""

    def test_accepts_camel_case(self):
        event_in = EventIn.model_validate(
            {
                "sessionId": "s1",
                "occurredAt": "2024-01-01T12:00:00Z",
                "blockName": "banner",
                "customerKey": "acme-key",
            }
        )

        assert event_in.occurred_at == at(0)
        assert event_in.block_name == "banner"

    def test_naive_timestamp_is_read_as_utc(self):
        naive = EventIn(
            session_id="s1",
            occurred_at=datetime(2024, 1, 1, 12, 0),
            block_name="banner",
            customer_key="acme-key",
        )

        assert naive.occurred_at == at(0)
        assert naive.occurred_at.tzinfo == timezone.utc

    def test_offset_timestamp_is_converted_to_utc(self):
        event_in = EventIn.model_validate(
            {
                "sessionId": "s1",
                "occurredAt": "2024-01-01T14:00:00+02:00",
                "blockName": "banner",
                "customerKey": "acme-key",
            }
        )

        assert event_in.occurred_at == at(0)
        assert event_in.occurred_at.utcoffset() == timedelta(0)


# ==============================================================================
# collect_many
# ==============================================================================


class TestCollectMany:
    """Tests for multi-event ingestion."""

    def test_rejections_do_not_stop_the_batch(self, directory, event_repo):
        report = EventIngest(directory, event_repo).collect_many(
            [_event_in("banner"), _event_in("nope"), _event_in(key="nobody"), _event_in("buy")]
        )

        assert report.accepted == 2
        assert report.rejected == [(1, "Block not found"), (2, "Customer not found")]
        assert len(event_repo.events) == 2
