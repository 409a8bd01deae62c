"""Tests for the fan-out coordinator."""

import asyncio

import pytest

from conftest import SOURCE_NAMES, StubSource, raw
from exceptions import SourceError
from tour_sourcing.coordinator import FanOutCoordinator
from tour_sourcing.session import (
    EMPTY_DESTINATION_MESSAGE,
    FETCH_FAILED_MESSAGE,
    NO_PACKAGES_MESSAGE,
    SearchSession,
)


class TestSearch:
    """FanOutCoordinator.search end-to-end against stub sources."""

    @pytest.mark.asyncio
    async def test_goa_five_succeed_one_fails(self, coordinator):
        session = SearchSession()
        await coordinator.search(session, "Goa")

        assert len(session.packages) == 5
        statuses = [s.status for s in session.source_status.values()]
        assert statuses.count("success") == 5
        assert statuses.count("error") == 1
        assert session.source_status[SOURCE_NAMES[5]].error_type == "unknown"
        assert session.error is None
        assert session.loading is False
        assert session.view_mode == "results"
        assert session.destination == "Goa"

    @pytest.mark.asyncio
    async def test_every_package_tagged_with_configured_source(self, coordinator):
        session = SearchSession()
        await coordinator.search(session, "Goa")
        assert {p.source for p in session.packages} <= set(coordinator.source_ids)

    @pytest.mark.asyncio
    async def test_all_sources_fail(self):
        sources = [
            StubSource(name, error=SourceError("down", source=name, error_type="http", http_status=503))
            for name in SOURCE_NAMES
        ]
        session = SearchSession()
        await FanOutCoordinator(sources).search(session, "Goa")

        assert session.packages == ()
        assert session.error == NO_PACKAGES_MESSAGE
        assert all(s.status == "error" for s in session.source_status.values())
        assert all(s.error_type == "http" for s in session.source_status.values())
        assert session.loading is False

    @pytest.mark.asyncio
    async def test_all_succeed_but_empty(self):
        sources = [StubSource(name, packages=[]) for name in SOURCE_NAMES]
        session = SearchSession()
        await FanOutCoordinator(sources).search(session, "Nowhere")

        assert session.packages == ()
        assert session.error == NO_PACKAGES_MESSAGE
        assert all(s.status == "success" for s in session.source_status.values())

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_other_results(self):
        sources = [
            StubSource("A", packages=[raw("Alpha", 1000)]),
            StubSource("B", error=SourceError("nope", source="B", error_type="transport")),
            StubSource("C", packages=[raw("Gamma", 3000)]),
        ]
        session = SearchSession()
        await FanOutCoordinator(sources).search(session, "Goa")

        assert sorted(p.title for p in session.packages) == ["Alpha", "Gamma"]
        assert session.source_status["B"].status == "error"
        assert session.source_status["B"].error_type == "transport"
        assert session.error is None

    @pytest.mark.asyncio
    async def test_malformed_source_result_keeps_other_results(self):
        class NoneSource(StubSource):
            async def fetch(self, destination):
                return None

        sources = [StubSource("A", packages=[raw("Alpha", 1000)]), NoneSource("B")]
        session = SearchSession()
        await FanOutCoordinator(sources).search(session, "Goa")

        assert [p.title for p in session.packages] == ["Alpha"]
        assert session.error is None
        assert session.loading is False
        assert session.source_status["B"].status == "error"
        assert session.source_status["B"].error_type == "parse"

    @pytest.mark.asyncio
    async def test_size_bounded_by_sum_of_source_results(self):
        sources = [
            StubSource("A", packages=[raw("Same Trip", 10999), raw("Other", 5000)]),
            StubSource("B", packages=[raw("same trip", 11499)]),
        ]
        session = SearchSession()
        await FanOutCoordinator(sources).search(session, "Goa")
        assert len(session.packages) == 2

    @pytest.mark.asyncio
    async def test_merge_follows_source_order_not_completion_order(self):
        sources = [
            StubSource("Slow", packages=[raw("Shared", 10000)], delay=0.05),
            StubSource("Fast", packages=[raw("Shared", 10200)]),
        ]
        session = SearchSession()
        await FanOutCoordinator(sources).search(session, "Goa")

        assert len(session.packages) == 1
        assert session.packages[0].source == "Slow"

    @pytest.mark.asyncio
    async def test_slow_source_times_out(self):
        sources = [
            StubSource("Fast", packages=[raw("Quick Trip", 5000)]),
            StubSource("Stuck", packages=[raw("Never", 1)], delay=5),
        ]
        session = SearchSession()
        await FanOutCoordinator(sources, timeout_seconds=0.05).search(session, "Goa")

        assert [p.title for p in session.packages] == ["Quick Trip"]
        assert session.source_status["Stuck"].status == "error"
        assert session.source_status["Stuck"].error_type == "timeout"

    @pytest.mark.asyncio
    async def test_destination_is_trimmed_before_dispatch(self, coordinator, goa_sources):
        session = SearchSession()
        await coordinator.search(session, "  Goa  ")
        assert session.destination == "Goa"
        assert all(s.calls == ["Goa"] for s in goa_sources)

    @pytest.mark.asyncio
    async def test_blank_destination_does_not_dispatch(self, coordinator, goa_sources):
        session = SearchSession()
        await coordinator.search(session, "   ")

        assert session.error == EMPTY_DESTINATION_MESSAGE
        assert session.view_mode == "search"
        assert session.generation == 0
        assert all(s.calls == [] for s in goa_sources)

    @pytest.mark.asyncio
    async def test_new_search_clears_previous_error(self, coordinator):
        session = SearchSession()
        await coordinator.search(session, "")
        assert session.error == EMPTY_DESTINATION_MESSAGE
        await coordinator.search(session, "Goa")
        assert session.error is None


class TestRefresh:

    @pytest.mark.asyncio
    async def test_refresh_without_destination_is_noop(self, coordinator, goa_sources):
        session = SearchSession()
        await coordinator.refresh(session)
        assert session.generation == 0
        assert all(s.calls == [] for s in goa_sources)

    @pytest.mark.asyncio
    async def test_refresh_reruns_last_search(self, coordinator, goa_sources):
        session = SearchSession()
        await coordinator.search(session, "Goa")
        await coordinator.refresh(session)
        assert session.generation == 2
        assert all(s.calls == ["Goa", "Goa"] for s in goa_sources)
        assert len(session.packages) == 5


class DestinationEchoSource(StubSource):
    """Returns one package named after the destination; per-destination delays."""

    def __init__(self, source_id, delays):
        super().__init__(source_id)
        self.delays = delays

    async def fetch(self, destination):
        self.calls.append(destination)
        await asyncio.sleep(self.delays.get(destination, 0))
        return [raw(f"{destination} Result", 1000)]


class TestStaleResults:

    @pytest.mark.asyncio
    async def test_superseded_search_is_discarded(self):
        source = DestinationEchoSource("A", delays={"Goa": 0.2, "Manali": 0})
        coordinator = FanOutCoordinator([source], timeout_seconds=2)
        session = SearchSession()

        first = asyncio.create_task(coordinator.search(session, "Goa"))
        await asyncio.sleep(0.05)
        await coordinator.search(session, "Manali")
        await first

        assert source.calls == ["Goa", "Manali"]
        assert session.destination == "Manali"
        assert [p.title for p in session.packages] == ["Manali Result"]
        assert session.generation == 2
        assert session.loading is False
        assert session.source_status["A"].status == "success"

    @pytest.mark.asyncio
    async def test_superseded_stream_stops_reporting_sources(self):
        source = DestinationEchoSource("A", delays={"Goa": 0.2, "Manali": 0})
        coordinator = FanOutCoordinator([source], timeout_seconds=2)
        session = SearchSession()

        async def collect():
            return [e async for e in coordinator.search_events(session, "Goa")]

        first = asyncio.create_task(collect())
        await asyncio.sleep(0.05)
        await coordinator.search(session, "Manali")
        stale_events = await first

        assert [e.event for e in stale_events] == ["complete"]
        assert session.source_status["A"].status == "success"


class TestSearchEvents:

    @pytest.mark.asyncio
    async def test_one_event_per_source_then_complete(self, coordinator):
        session = SearchSession()
        events = [e async for e in coordinator.search_events(session, "Goa")]

        source_events = [e for e in events if e.event == "source"]
        assert len(source_events) == 6
        assert {e.source for e in source_events} == set(SOURCE_NAMES)
        assert source_events[-1].sources_remaining == 0
        assert source_events[-1].more_incoming is False
        assert all(e.more_incoming for e in source_events[:-1])

        final = events[-1]
        assert final.event == "complete"
        assert final.session.total_packages == 5
        assert final.session.loading is False

    @pytest.mark.asyncio
    async def test_abandoned_stream_leaves_session_retryable(self):
        sources = [StubSource("Fast", packages=[raw("A", 1)]), StubSource("Slow", packages=[raw("B", 2)], delay=1)]
        coordinator = FanOutCoordinator(sources, timeout_seconds=5)
        session = SearchSession()

        stream = coordinator.search_events(session, "Goa")
        first = await stream.__anext__()
        assert first.event == "source"
        await stream.aclose()

        assert session.loading is False
        assert session.error == FETCH_FAILED_MESSAGE

    @pytest.mark.asyncio
    async def test_blank_destination_yields_only_complete(self, coordinator):
        session = SearchSession()
        events = [e async for e in coordinator.search_events(session, "")]
        assert [e.event for e in events] == ["complete"]
        assert events[0].session.error == EMPTY_DESTINATION_MESSAGE


def test_duplicate_source_ids_rejected():
    with pytest.raises(ValueError):
        FanOutCoordinator([StubSource("A"), StubSource("A")])
