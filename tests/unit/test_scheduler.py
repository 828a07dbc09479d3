"""
Unit tests for kernel/scheduler.py

Tests batching, child fan-out and listener isolation.
"""

import asyncio
import logging

import pytest
from unittest.mock import Mock

from xselect.kernel.scheduler import NotificationScheduler, call_soon_deferral


CHILDREN = {"country": ["province"], "province": ["city"], "city": []}


@pytest.fixture
def scheduler(manual_defer):
    return NotificationScheduler(children_of=lambda name: CHILDREN.get(name, []), defer=manual_defer)


class TestScheduling:
    """Tests for schedule and flush."""

    def test_direct_children_added(self, scheduler):
        scheduler.schedule(["country"])
        assert scheduler.pending == ["country", "province"]

    def test_one_deferral_per_batch(self, scheduler, manual_defer):
        scheduler.schedule(["country"])
        scheduler.schedule(["city"])

        assert len(manual_defer.callbacks) == 1
        assert scheduler.is_scheduled

    def test_flush_delivers_once(self, scheduler, manual_defer):
        listener = Mock()
        scheduler.subscribe("province", listener)

        scheduler.schedule(["country"])
        scheduler.schedule(["province"])
        manual_defer.run()

        listener.assert_called_once_with()
        assert scheduler.pending == []
        assert not scheduler.is_scheduled

    def test_unrelated_listener_not_called(self, scheduler, manual_defer):
        listener = Mock()
        scheduler.subscribe("city", listener)

        scheduler.schedule(["country"])
        manual_defer.run()

        listener.assert_not_called()

    def test_listener_on_several_fields_called_once(self, scheduler, manual_defer):
        listener = Mock()
        scheduler.subscribe_many(["country", "province"], listener)

        scheduler.schedule(["country"])
        manual_defer.run()

        listener.assert_called_once()

    def test_reentrant_changes_form_new_batch(self, scheduler, manual_defer):
        calls = []

        def on_country():
            calls.append("country")
            scheduler.schedule(["city"])

        scheduler.subscribe("country", on_country)
        scheduler.schedule(["country"])
        manual_defer.run()

        assert calls == ["country"]
        assert scheduler.pending == ["city"]
        assert len(manual_defer.callbacks) == 1

    def test_failing_listener_does_not_stop_delivery(self, scheduler, manual_defer, caplog):
        failing = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        scheduler.subscribe("country", failing)
        scheduler.subscribe("country", healthy)

        with caplog.at_level(logging.ERROR):
            scheduler.schedule(["country"])
            manual_defer.run()

        healthy.assert_called_once()
        assert "boom" in caplog.text

    def test_on_error_receives_failures(self, manual_defer):
        on_error = Mock()
        error = RuntimeError("boom")
        scheduler = NotificationScheduler(defer=manual_defer, on_error=on_error)
        scheduler.subscribe("country", Mock(side_effect=error))

        scheduler.schedule(["country"])
        manual_defer.run()

        on_error.assert_called_once_with("country", error)


class TestSubscriptions:
    """Tests for subscribe / unsubscribe."""

    def test_unsubscribe(self, scheduler, manual_defer):
        listener = Mock()
        unsubscribe = scheduler.subscribe("country", listener)
        unsubscribe()

        scheduler.schedule(["country"])
        manual_defer.run()

        listener.assert_not_called()
        assert scheduler.listener_count("country") == 0

    def test_unsubscribe_twice_is_safe(self, scheduler):
        unsubscribe = scheduler.subscribe("country", Mock())
        unsubscribe()
        unsubscribe()

    def test_unsubscribe_many(self, scheduler):
        unsubscribe = scheduler.subscribe_many(["country", "city"], Mock())
        assert scheduler.listener_count() == 2
        unsubscribe()
        assert scheduler.listener_count() == 0

    def test_close(self, scheduler, manual_defer):
        listener = Mock()
        scheduler.subscribe("country", listener)
        scheduler.schedule(["country"])

        scheduler.close()
        manual_defer.run()
        scheduler.schedule(["country"])

        listener.assert_not_called()
        assert scheduler.pending == []


class TestDefaultDeferral:
    """Tests for the event-loop deferral."""

    def test_no_running_loop_waits_for_flush(self):
        scheduler = NotificationScheduler()
        listener = Mock()
        scheduler.subscribe("a", listener)

        scheduler.schedule(["a"])

        assert not scheduler.is_scheduled
        listener.assert_not_called()
        scheduler.flush()
        listener.assert_called_once()

    def test_call_soon_deferral_without_loop(self):
        assert call_soon_deferral(Mock()) is False

    @pytest.mark.asyncio
    async def test_delivered_on_next_loop_turn(self):
        scheduler = NotificationScheduler()
        listener = Mock()
        scheduler.subscribe("a", listener)

        scheduler.schedule(["a"])
        listener.assert_not_called()

        await asyncio.sleep(0)
        listener.assert_called_once()
