"""Tests for the debounced push scheduler."""

from __future__ import annotations

import asyncio

import pytest

from neutab.application.sync.guards import InFlightGuard, SuppressionWindow
from neutab.application.sync.push_scheduler import PushScheduler
from neutab.application.sync.status_recorder import SyncStatusRecorder
from neutab.domain.exceptions.domain_exceptions import CloudSyncError, StateStoreError
from neutab.domain.models.sync import SyncAction, SyncStatus

DEBOUNCE_MS = 80


@pytest.fixture
def guard() -> InFlightGuard:
    return InFlightGuard()


@pytest.fixture
def suppression(clock) -> SuppressionWindow:
    return SuppressionWindow(clock)


@pytest.fixture
def recorder(store) -> SyncStatusRecorder:
    return SyncStatusRecorder(store)


@pytest.fixture
def push(preferences, gateway, guard, suppression, recorder) -> PushScheduler:
    return PushScheduler(
        preferences=preferences,
        gateway=gateway,
        guard=guard,
        suppression=suppression,
        recorder=recorder,
        debounce_ms=DEBOUNCE_MS,
    )


async def _settle(push: PushScheduler) -> None:
    await asyncio.sleep(DEBOUNCE_MS / 1000 * 2)
    await push.wait_idle()


class TestSchedulePush:
    @pytest.mark.asyncio
    async def test_burst_coalesces_into_one_push(self, push, gateway):
        for _ in range(5):
            assert push.schedule_push() is True
            await asyncio.sleep(DEBOUNCE_MS / 1000 / 5)

        await _settle(push)

        assert gateway.push.await_count == 1
        assert push.state.pending is False
        assert push.timer_armed is False

    @pytest.mark.asyncio
    async def test_timer_restarts_on_each_call(self, push, gateway):
        push.schedule_push()
        await asyncio.sleep(DEBOUNCE_MS / 1000 * 0.6)
        push.schedule_push()
        await asyncio.sleep(DEBOUNCE_MS / 1000 * 0.6)

        # First timer would have fired by now had it not been re-armed
        assert gateway.push.await_count == 0

        await _settle(push)
        assert gateway.push.await_count == 1

    @pytest.mark.asyncio
    async def test_incomplete_preferences_drop_the_request(
        self, push, preferences, gateway, incomplete_prefs
    ):
        preferences.prefs = incomplete_prefs

        assert push.schedule_push() is False
        assert push.state.pending is False
        assert push.timer_armed is False
        await _settle(push)
        gateway.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_suppressed_request_is_dropped(self, push, suppression, gateway):
        suppression.engage(5000)

        assert push.schedule_push() is False
        assert push.state.pending is False
        await _settle(push)
        gateway.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_suppression_expires(self, push, suppression, clock, gateway):
        suppression.engage(5000)
        assert push.schedule_push() is False

        clock.advance(5001)
        assert push.schedule_push() is True
        await _settle(push)
        gateway.push.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancel_disarms_timer(self, push, gateway):
        push.schedule_push()
        push.cancel()

        await _settle(push)
        gateway.push.assert_not_awaited()
        # Still pending; a later schedule sends it
        assert push.state.pending is True


class TestRunPush:
    @pytest.mark.asyncio
    async def test_passes_credentials_and_icon_flag(self, push, gateway, complete_prefs):
        push.state.pending = True

        assert await push.run_push() is True

        gateway.push.assert_awaited_once_with(
            complete_prefs.server_url, complete_prefs.auth_code, "en", upload_icons=True
        )
        assert push.state.upload_icons_on_next_push is False

    @pytest.mark.asyncio
    async def test_icon_flag_is_consumed_once(self, push, gateway):
        push.state.pending = True
        await push.run_push()
        push.state.pending = True
        await push.run_push()

        flags = [call.kwargs["upload_icons"] for call in gateway.push.await_args_list]
        assert flags == [True, False]

    @pytest.mark.asyncio
    async def test_nothing_pending_is_a_no_op(self, push, gateway):
        assert await push.run_push() is False
        gateway.push.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_held_guard_drops_push_but_keeps_it_pending(self, push, guard, gateway):
        push.state.pending = True
        guard.try_acquire("pull")

        assert await push.run_push() is False
        gateway.push.assert_not_awaited()
        assert push.state.pending is True

    @pytest.mark.asyncio
    async def test_guard_is_held_during_push(self, push, guard, gateway):
        seen: list[str | None] = []

        async def fake_push(*args, **kwargs):
            seen.append(guard.holder)

        gateway.push.side_effect = fake_push
        push.state.pending = True
        await push.run_push()

        assert seen == ["push"]
        assert guard.held is False

    @pytest.mark.asyncio
    async def test_success_is_recorded(self, push, recorder):
        push.state.pending = True
        await push.run_push()

        record = recorder.read_status()
        assert record is not None
        assert record.action is SyncAction.PUSH
        assert record.status is SyncStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_swallowed(self, push, gateway, guard, recorder):
        gateway.push.side_effect = CloudSyncError("Push failed: HTTP 500", status_code=500)
        push.state.pending = True

        assert await push.run_push() is True

        record = recorder.read_status()
        assert record is not None
        assert record.status is SyncStatus.FAILED
        assert guard.held is False

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, push, gateway, guard):
        gateway.push.side_effect = asyncio.CancelledError()
        push.state.pending = True

        with pytest.raises(asyncio.CancelledError):
            await push.run_push()
        assert guard.held is False

    @pytest.mark.asyncio
    async def test_language_read_failure_releases_guard(
        self, push, preferences, gateway, guard, recorder
    ):
        preferences.language_error = StateStoreError("state store read failed")
        push.state.pending = True

        assert await push.run_push() is True

        gateway.push.assert_not_awaited()
        assert guard.held is False
        record = recorder.read_status()
        assert record is not None
        assert record.status is SyncStatus.FAILED

        preferences.language_error = None
        push.state.pending = True
        assert await push.run_push() is True
        gateway.push.assert_awaited_once()
        assert recorder.read_status().status is SyncStatus.SUCCESS
