"""
Unit tests for options/loader.py

Tests request de-duplication, stale results, failures and load states.
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, Mock

from xselect.core.types import LoadState, SelectOption
from xselect.errors.aggregator import ErrorAggregator
from xselect.errors.taxonomy import ErrorCategory
from xselect.kernel.event_dispatcher import EventDispatcher
from xselect.kernel.events import StoreEventType
from xselect.options.loader import AsyncOptionLoader, request_key


HCM_DISTRICTS = [SelectOption("District 1", "D1"), SelectOption("District 7", "D7")]


class LoaderHarness:
    """Stands in for the owning store."""

    def __init__(self):
        self.parent_values = {"city": "HCM"}
        self.active = True
        self.updates = []
        self.errors = ErrorAggregator()
        self.dispatcher = EventDispatcher(store_id="test")
        self.loader = AsyncOptionLoader(
            parent_value_of=lambda name: self.parent_values.get(name),
            on_update=self.updates.append,
            is_active=lambda: self.active,
            errors=self.errors,
            dispatcher=self.dispatcher,
        )


@pytest.fixture
def harness():
    return LoaderHarness()


class TestRequestKey:
    """Tests for request_key."""

    def test_scalar(self):
        assert request_key("province", "VN") == 'province:"VN"'

    def test_none(self):
        assert request_key("country", None) == "country:null"

    def test_mapping_sorted(self):
        assert request_key("comments", {"b": 1, "a": [2]}) == 'comments:{"a": [2], "b": 1}'


class TestRequests:
    """Tests for AsyncOptionLoader.request."""

    @pytest.mark.asyncio
    async def test_success(self, harness):
        fetch = AsyncMock(return_value=HCM_DISTRICTS)

        task = harness.loader.request("city", fetch, "HCM")
        assert harness.loader.is_loading("city")
        assert harness.loader.get_state("city") is LoadState.LOADING

        await task

        fetch.assert_awaited_once_with("HCM")
        assert harness.loader.get_cached("city") == HCM_DISTRICTS
        assert not harness.loader.is_loading("city")
        assert harness.loader.get_state("city") is LoadState.SUCCESS
        assert harness.updates == ["city", "city"]

    @pytest.mark.asyncio
    async def test_duplicate_request_reuses_task(self, harness):
        fetch = AsyncMock(return_value=HCM_DISTRICTS)

        first = harness.loader.request("city", fetch, "HCM")
        second = harness.loader.request("city", fetch, "HCM")
        assert harness.loader.pending_keys == ['city:"HCM"']
        await harness.loader.wait_for_pending()

        assert first is second
        assert fetch.await_count == 1
        assert harness.loader.pending_keys == []

    @pytest.mark.asyncio
    async def test_sync_loader(self, harness):
        fetch = Mock(return_value=[{"label": "District 1", "value": "D1"}])

        await harness.loader.request("city", fetch, "HCM")

        assert [o.value for o in harness.loader.get_cached("city")] == ["D1"]

    @pytest.mark.asyncio
    async def test_failure_leaves_empty_options(self, harness, caplog):
        fetch = AsyncMock(side_effect=RuntimeError("network down"))

        with caplog.at_level(logging.ERROR):
            await harness.loader.request("city", fetch, "HCM")

        assert harness.loader.get_cached("city") == []
        assert harness.loader.get_state("city") is LoadState.ERROR
        assert harness.loader.get_error("city") == "network down"
        assert "network down" in caplog.text

        recorded = harness.errors.get_by_category(ErrorCategory.LOAD_FAILURE)
        assert len(recorded) == 1
        assert recorded[0].field_name == "city"

    @pytest.mark.asyncio
    async def test_stale_result_dropped(self, harness):
        gate = asyncio.Event()

        async def fetch(parent_value):
            await gate.wait()
            return HCM_DISTRICTS

        task = harness.loader.request("city", fetch, "HCM")
        harness.parent_values["city"] = "HN"
        gate.set()
        await task

        assert harness.loader.get_cached("city") is None
        assert harness.loader.get_state("city") is LoadState.IDLE
        assert len(harness.errors.get_by_category(ErrorCategory.STALE_LOAD)) == 1

    @pytest.mark.asyncio
    async def test_loading_until_last_key_settles(self, harness):
        gates = {"HCM": asyncio.Event(), "HN": asyncio.Event()}

        async def fetch(parent_value):
            await gates[parent_value].wait()
            return [SelectOption(parent_value, parent_value)]

        first = harness.loader.request("city", fetch, "HCM")
        harness.parent_values["city"] = "HN"
        second = harness.loader.request("city", fetch, "HN")

        gates["HCM"].set()
        await first
        assert harness.loader.is_loading("city")

        gates["HN"].set()
        await second
        assert not harness.loader.is_loading("city")
        assert [o.value for o in harness.loader.get_cached("city")] == ["HN"]

    @pytest.mark.asyncio
    async def test_inactive_owner_ignores_result(self, harness):
        fetch = AsyncMock(return_value=HCM_DISTRICTS)

        task = harness.loader.request("city", fetch, "HCM")
        harness.active = False
        await task

        assert harness.loader.get_cached("city") is None
        assert harness.updates == ["city"]

    @pytest.mark.asyncio
    async def test_inactive_owner_does_not_start(self, harness):
        harness.active = False
        assert harness.loader.request("city", AsyncMock(), "HCM") is None

    def test_no_running_loop(self, harness, caplog):
        fetch = Mock()

        with caplog.at_level(logging.WARNING):
            task = harness.loader.request("city", fetch, "HCM")

        assert task is None
        fetch.assert_not_called()
        assert not harness.loader.is_loading("city")
        assert "No running event loop" in caplog.text


class TestEventsAndState:
    """Tests for loading events and helpers."""

    @pytest.mark.asyncio
    async def test_events_emitted(self, harness):
        await harness.loader.request("city", AsyncMock(return_value=HCM_DISTRICTS), "HCM")

        history = harness.dispatcher.get_history()
        assert [e.event_type for e in history] == [
            StoreEventType.LOADING_STARTED,
            StoreEventType.LOADING_FINISHED,
        ]
        assert history[1].outcome == "success"
        assert history[1].option_count == 2

    def test_set_empty(self, harness):
        harness.loader.set_empty("city")
        assert harness.loader.get_cached("city") == []
        assert harness.loader.get_state("city") is LoadState.IDLE

    @pytest.mark.asyncio
    async def test_clear(self, harness):
        await harness.loader.request("city", AsyncMock(return_value=HCM_DISTRICTS), "HCM")
        harness.loader.clear()
        assert harness.loader.get_cached("city") is None
        assert harness.loader.get_state("city") is LoadState.IDLE
