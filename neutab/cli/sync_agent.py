"""Run the cloud sync agent, or probe a single internal URL, from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from dataclasses import replace
from pathlib import Path

from neutab.adapters.cloud_sync.client import CloudSyncClient
from neutab.adapters.reachability.probe import probe_http_reachable
from neutab.application.sync.agent import CloudSyncAgent
from neutab.config import AppConfig, load_config
from neutab.core.logging_utils import setup_json_logging
from neutab.core.url_utils import is_http_url, origin_key
from neutab.infrastructure.messaging.event_bus import EventBus
from neutab.infrastructure.persistence.kv_store import SqliteKeyValueStore
from neutab.infrastructure.persistence.preferences import KeyValuePreferencesReader
from neutab.infrastructure.persistence.settings_payload import KeyValueSyncPayloadStore
from neutab.services.scheduler import SchedulerService

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="NeuTab cloud sync agent and reachability probe",
        allow_abbrev=False,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override the configured log level for this session.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run the sync agent until interrupted.")
    run.add_argument(
        "--db-path",
        type=Path,
        help="Override the configured state database path for this run.",
    )

    probe = sub.add_parser("probe", help="Probe an internal URL and print the verdict as JSON.")
    probe.add_argument("url", help="Internal URL to probe, e.g. http://nas.local:5000/")
    probe.add_argument(
        "--timeout-ms",
        type=int,
        help="Probe timeout in milliseconds (defaults to REACHABILITY_PROBE_TIMEOUT_MS).",
    )
    return parser.parse_args(argv)


def _prepare_config(args: argparse.Namespace) -> AppConfig:
    """Load configuration, applying CLI overrides."""
    try:
        cfg = load_config()
    except RuntimeError as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc

    runtime = cfg.runtime
    if args.log_level:
        runtime = runtime.model_copy(update={"log_level": args.log_level})
    if getattr(args, "db_path", None):
        runtime = runtime.model_copy(update={"state_db_path": str(args.db_path)})
    if runtime is not cfg.runtime:
        cfg = replace(cfg, runtime=runtime)
    return cfg


async def run_agent(cfg: AppConfig, stop_event: asyncio.Event | None = None) -> None:
    """Wire the agent to the SQLite state store and run until ``stop_event`` is set."""
    stop = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # Unsupported off the main thread and on Windows
            pass

    store = SqliteKeyValueStore(cfg.runtime.state_db_path)
    bus = EventBus()
    preferences = KeyValuePreferencesReader(store, default_language=cfg.runtime.default_language)
    payloads = KeyValueSyncPayloadStore(store, bus)
    client = CloudSyncClient(
        payloads,
        payloads,
        timeout=cfg.cloud_sync.request_timeout_sec,
        pull_icon_concurrency=cfg.cloud_sync.pull_icon_concurrency,
        push_icon_concurrency=cfg.cloud_sync.push_icon_concurrency,
    )
    agent = CloudSyncAgent(
        preferences=preferences,
        gateway=client,
        store=store,
        bus=bus,
        config=cfg.cloud_sync,
    )
    scheduler = SchedulerService(cfg, agent)

    logger.info("cli_sync_agent_start", extra={"state_db_path": cfg.runtime.state_db_path})
    try:
        await agent.start()
        await scheduler.start()
        await stop.wait()
    finally:
        await scheduler.stop()
        await agent.close(wait=True)
        await client.aclose()
        store.close()
        logger.info("cli_sync_agent_stopped")


async def run_probe(cfg: AppConfig, url: str, timeout_ms: int | None) -> dict[str, object]:
    timeout = timeout_ms if timeout_ms is not None else cfg.reachability.probe_timeout_ms
    reachable = await probe_http_reachable(
        url, timeout, optimistic_on_error=cfg.reachability.optimistic_on_error
    )
    return {
        "url": url,
        "origin": origin_key(url) if is_http_url(url) else None,
        "reachable": reachable,
        "timeout_ms": timeout,
    }


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``python -m neutab.cli.sync_agent``."""
    args = parse_args(argv)
    cfg = _prepare_config(args)
    setup_json_logging(
        cfg.runtime.log_level,
        use_loguru=cfg.runtime.use_loguru,
        log_file=cfg.runtime.log_file,
    )

    try:
        if args.command == "probe":
            verdict = asyncio.run(run_probe(cfg, args.url, args.timeout_ms))
            sys.stdout.write(json.dumps(verdict) + "\n")
            return 0 if verdict["reachable"] else 2
        asyncio.run(run_agent(cfg))
    except KeyboardInterrupt:  # pragma: no cover - user cancelled
        return 1
    except Exception as exc:
        logger.exception("cli_sync_agent_failed", exc_info=exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
