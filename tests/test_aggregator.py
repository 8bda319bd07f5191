"""Tests for commitment aggregation across local and external sources."""

import asyncio
from datetime import date, datetime, timedelta

import pytest

from src.schemas.commitment_schema import CommitmentSource
from src.scheduling.aggregator import (
    CommitmentAggregator,
    external_commitment,
    local_commitment,
    merge_commitments,
)
from src.scheduling.errors import SourceUnavailableError
from tests.conftest import LISBON, TENANT, TODAY, TOMORROW, FailingStore, make_commitment


class SlowFeed:
    async def list_events(self, tenant_id, time_min, time_max):
        await asyncio.sleep(5)
        return []


def _aggregator(store, feed=None, timeout=1.0):
    return CommitmentAggregator(store, feed, LISBON, timeout)


class TestRowMapping:
    def test_local_row(self):
        commitment = local_commitment(
            {"date": "2025-03-18", "start_time": "10:00:00", "duration_minutes": 45, "label": "Ana"}
        )
        assert commitment.date == date(2025, 3, 18)
        assert commitment.start_minutes == 600
        assert commitment.duration_minutes == 45
        assert commitment.source == CommitmentSource.LOCAL

    def test_local_row_defaults(self):
        commitment = local_commitment({"date": "2025-03-18", "start_time": "10:00"})
        assert commitment.duration_minutes == 60
        assert commitment.label == "Ocupado"

    def test_external_event_in_tenant_zone(self):
        # 10:00 UTC is 10:00 in Lisbon in March (WET)
        commitment = external_commitment(
            {"start": "2025-03-18T10:00:00Z", "end": "2025-03-18T11:30:00Z", "title": "Reunião"},
            LISBON,
        )
        assert commitment.start_minutes == 600
        assert commitment.duration_minutes == 90
        assert commitment.source == CommitmentSource.EXTERNAL
        assert commitment.label == "Reunião"

    def test_external_summer_time_offset(self):
        commitment = external_commitment({"start": "2025-07-01T09:00:00Z"}, LISBON)
        assert commitment.start_time == "10:00"
        assert commitment.duration_minutes == 60

    def test_all_day_event_ignored(self):
        assert external_commitment({"start": "2025-03-18", "all_day": True}, LISBON) is None

    def test_unparseable_start_ignored(self):
        assert external_commitment({"start": "soon"}, LISBON) is None

    def test_non_positive_end_uses_default(self):
        commitment = external_commitment(
            {"start": "2025-03-18T10:00:00+00:00", "end": "2025-03-18T10:00:00+00:00"}, LISBON
        )
        assert commitment.duration_minutes == 60


class TestMerge:
    def test_external_duplicate_of_local_dropped(self):
        local = [make_commitment(TOMORROW, "10:00", label="Ana")]
        external = [
            make_commitment(TOMORROW, "10:00", label="Ana (Google)", source=CommitmentSource.EXTERNAL),
            make_commitment(TOMORROW, "11:00", source=CommitmentSource.EXTERNAL),
        ]
        merged = merge_commitments(local, external)
        assert [(c.start_time, c.source) for c in merged] == [
            ("10:00", CommitmentSource.LOCAL),
            ("11:00", CommitmentSource.EXTERNAL),
        ]

    def test_sorted_by_date_and_start(self):
        merged = merge_commitments(
            [make_commitment(TOMORROW, "09:00"), make_commitment(TODAY, "15:00")], []
        )
        assert [c.date for c in merged] == [TODAY, TOMORROW]


class TestCommitmentAggregator:
    @pytest.mark.asyncio
    async def test_merges_both_sources(self, appointment_store, calendar_feed):
        await appointment_store.insert_commitment(TENANT, TOMORROW, "10:00", 30, "Ana")
        calendar_feed.add_event(TENANT, {"start": "2025-03-18T14:00:00Z", "end": "2025-03-18T15:00:00Z",
                                         "summary": "Dentista"})
        result = await _aggregator(appointment_store, calendar_feed).load(TENANT, TODAY, 7)
        assert [c.label for c in result.commitments] == ["Ana", "Dentista"]
        assert not result.external_degraded

    @pytest.mark.asyncio
    async def test_local_failure_raises(self, calendar_feed):
        with pytest.raises(SourceUnavailableError) as exc_info:
            await _aggregator(FailingStore(), calendar_feed).load(TENANT, TODAY, 7)
        assert exc_info.value.source == "local"

    @pytest.mark.asyncio
    async def test_external_failure_degrades(self, appointment_store, calendar_feed):
        await appointment_store.insert_commitment(TENANT, TOMORROW, "10:00", 30, "Ana")
        calendar_feed.fail = True
        result = await _aggregator(appointment_store, calendar_feed).load(TENANT, TODAY, 7)
        assert len(result.commitments) == 1
        assert result.external_degraded

    @pytest.mark.asyncio
    async def test_external_timeout_degrades(self, appointment_store):
        result = await _aggregator(appointment_store, SlowFeed(), timeout=0.01).load(TENANT, TODAY, 7)
        assert result.commitments == ()
        assert result.external_degraded

    @pytest.mark.asyncio
    async def test_no_external_feed(self, appointment_store):
        result = await _aggregator(appointment_store).load(TENANT, TODAY, 7)
        assert result.commitments == ()
        assert not result.external_degraded

    @pytest.mark.asyncio
    async def test_skips_malformed_rows(self):
        class Store:
            async def list_commitments(self, tenant_id, date_from, date_to):
                return [
                    {"date": "2025-03-18", "start_time": "10:00", "duration_minutes": 30},
                    {"date": "2025-03-18", "start_time": "late"},
                    {"start_time": "11:00"},
                ]

        result = await _aggregator(Store()).load(TENANT, TODAY, 7)
        assert len(result.commitments) == 1

    @pytest.mark.asyncio
    async def test_filters_to_window(self, calendar_feed):
        class Store:
            async def list_commitments(self, tenant_id, date_from, date_to):
                return [
                    {"date": (TODAY - timedelta(days=1)).isoformat(), "start_time": "10:00"},
                    {"date": (TODAY + timedelta(days=8)).isoformat(), "start_time": "10:00"},
                    {"date": (TODAY + timedelta(days=7)).isoformat(), "start_time": "10:00"},
                ]

        calendar_feed.add_event(TENANT, {"start": "2025-04-30T10:00:00Z"})
        result = await _aggregator(Store(), calendar_feed).load(TENANT, TODAY, 7)
        assert [c.date for c in result.commitments] == [TODAY + timedelta(days=7)]

    @pytest.mark.asyncio
    async def test_feed_receives_zoned_window(self, appointment_store):
        seen = {}

        class Feed:
            async def list_events(self, tenant_id, time_min, time_max):
                seen["min"], seen["max"] = time_min, time_max
                return []

        await _aggregator(appointment_store, Feed()).load(TENANT, TODAY, 7)
        assert seen["min"] == datetime(2025, 3, 17, tzinfo=LISBON)
        assert seen["max"].date() == TODAY + timedelta(days=7)
