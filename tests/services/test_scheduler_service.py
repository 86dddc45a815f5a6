"""Tests for the APScheduler-backed preference poll."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from neutab.config import load_config
from neutab.services.scheduler import PREFS_POLL_JOB_ID, SchedulerService


@pytest.fixture
def cfg():
    return load_config(cloud_sync={"prefs_poll_interval_sec": 0.1})


class TestSchedulerService:
    @pytest.mark.asyncio
    async def test_poll_feeds_edge_detector(self, cfg):
        agent = MagicMock()
        service = SchedulerService(cfg, agent)

        await service.start()
        try:
            assert service.running is True
            assert service._scheduler.get_job(PREFS_POLL_JOB_ID) is not None
            await asyncio.sleep(0.35)
        finally:
            await service.stop()

        assert agent.check_preferences.call_count >= 2
        assert service.running is False

    @pytest.mark.asyncio
    async def test_poll_errors_do_not_stop_the_job(self, cfg):
        agent = MagicMock()
        agent.check_preferences.side_effect = RuntimeError("store unavailable")
        service = SchedulerService(cfg, agent)

        await service.start()
        try:
            await asyncio.sleep(0.35)
        finally:
            await service.stop()

        assert agent.check_preferences.call_count >= 2

    @pytest.mark.asyncio
    async def test_double_start_is_ignored(self, cfg):
        service = SchedulerService(cfg, MagicMock())
        await service.start()
        scheduler = service._scheduler
        await service.start()

        assert service._scheduler is scheduler
        await service.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, cfg):
        service = SchedulerService(cfg, MagicMock())
        await service.stop()
        assert service.running is False
