"""
Tests for polling subscriptions.

Intervals are kept tiny so the poll loop turns over quickly.
"""

import asyncio

import pytest

from docbridge.compat import (
    SubscriptionState,
    collection_ref,
    doc_ref,
    on_snapshot,
    query,
    replace_document,
    subscribe,
    where,
)
from docbridge.compat.subscriptions import Subscription

INTERVAL = 0.01


async def _wait_for(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(INTERVAL / 2)


class TestSubscribe:

    @pytest.mark.asyncio
    async def test_first_snapshot_then_silence_after_cancel(self, fake_supabase):
        cities = collection_ref(None, "tenants", "acme", "cities")
        for name in ("mumbai", "pune", "delhi"):
            await replace_document(fake_supabase, doc_ref(cities, name), {"enabled": True})
        received = []

        subscription = subscribe(
            fake_supabase,
            query(cities, where("enabled", "==", True)),
            received.append,
            interval=INTERVAL,
        )
        await _wait_for(lambda: len(received) >= 1)
        subscription.cancel()
        await subscription.wait_closed()
        delivered = len(received)
        await asyncio.sleep(INTERVAL * 5)

        assert received[0].size == 3
        assert len(received) == delivered
        assert subscription.state is SubscriptionState.CANCELLED

    @pytest.mark.asyncio
    async def test_every_poll_delivers_full_state(self, fake_supabase):
        ref = doc_ref(None, "activities", "a1")
        await replace_document(fake_supabase, ref, {"n": 1})
        received = []

        subscription = subscribe(fake_supabase, ref, received.append, interval=INTERVAL)
        await _wait_for(lambda: len(received) >= 1)
        await replace_document(fake_supabase, ref, {"n": 2})
        await _wait_for(lambda: received[-1].get("n") == 2)
        subscription.cancel()
        await subscription.wait_closed()

        assert received[0].get("n") == 1
        assert all(snapshot.exists for snapshot in received)

    @pytest.mark.asyncio
    async def test_errors_go_to_on_error_and_polling_continues(self, fake_supabase):
        ref = doc_ref(None, "activities", "a1")
        fake_supabase.fail("select")
        received, errors = [], []

        subscription = subscribe(
            fake_supabase, ref, received.append, on_error=errors.append, interval=INTERVAL
        )
        await _wait_for(lambda: len(received) >= 1)
        subscription.cancel()
        await subscription.wait_closed()

        assert len(errors) == 1
        assert not received[0].exists

    @pytest.mark.asyncio
    async def test_async_callback_and_failing_callback(self, fake_supabase):
        ref = doc_ref(None, "activities", "a1")
        calls = []

        async def on_next(snapshot):
            calls.append(snapshot)
            raise RuntimeError("consumer bug")

        subscription = subscribe(fake_supabase, ref, on_next, interval=INTERVAL)
        await _wait_for(lambda: len(calls) >= 2)
        subscription.cancel()
        await subscription.wait_closed()

    @pytest.mark.asyncio
    async def test_result_after_cancel_is_dropped(self, fake_supabase):
        received = []
        subscription = Subscription(
            fake_supabase, doc_ref(None, "activities", "a1"), received.append, interval=INTERVAL
        )
        subscription.cancel()
        await subscription.poll_once()
        assert received == []

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self, fake_supabase):
        subscription = subscribe(
            fake_supabase, doc_ref(None, "activities", "a1"), lambda _: None, interval=INTERVAL
        )
        subscription.cancel()
        subscription()
        await subscription.wait_closed()
        assert not subscription.active

    @pytest.mark.asyncio
    async def test_interval_must_be_positive(self, fake_supabase):
        with pytest.raises(ValueError):
            subscribe(fake_supabase, doc_ref(None, "activities", "a1"), print, interval=0)

    @pytest.mark.asyncio
    async def test_independent_subscriptions_fetch_independently(self, fake_supabase):
        ref = doc_ref(None, "activities", "a1")
        first, second = [], []

        a = subscribe(fake_supabase, ref, first.append, interval=INTERVAL)
        b = subscribe(fake_supabase, ref, second.append, interval=INTERVAL)
        await _wait_for(lambda: first and second)
        a.cancel()
        b.cancel()
        await asyncio.gather(a.wait_closed(), b.wait_closed())

        assert len(fake_supabase.selects()) >= 2


class TestOnSnapshot:

    @pytest.mark.asyncio
    async def test_callable_observer_returns_unsubscribe(self, fake_supabase, monkeypatch):
        from docbridge.config import settings
        monkeypatch.setattr(settings, "POLL_INTERVAL_SECONDS", INTERVAL)
        received = []

        unsubscribe = on_snapshot(fake_supabase, collection_ref(None, "activities"), received.append)
        await _wait_for(lambda: len(received) >= 1)
        unsubscribe()

        assert received[0].empty

    @pytest.mark.asyncio
    async def test_mapping_observer(self, fake_supabase, monkeypatch):
        from docbridge.config import settings
        monkeypatch.setattr(settings, "POLL_INTERVAL_SECONDS", INTERVAL)
        fake_supabase.fail("select")
        errors = []

        unsubscribe = on_snapshot(
            fake_supabase,
            doc_ref(None, "activities", "a1"),
            {"next": lambda _: None, "error": errors.append},
        )
        await _wait_for(lambda: len(errors) >= 1)
        unsubscribe()

        assert errors
