#!/usr/bin/env python3
"""Alerting entrypoint — run detection passes, send test alerts, inspect state.

Usage::

    # Single pass (cron / scheduled trigger)
    python scripts/run.py --once

    # Loop mode: a pass every schedule.run_interval_secs until SIGINT/SIGTERM
    python scripts/run.py --config config/settings.yaml

    # Push a synthetic alert through ntfy, ignoring cooldown
    python scripts/run.py --force-alert --ignore-cooldown

    # Inspect / reset cooldown state
    python scripts/run.py --show-state
    python scripts/run.py --clear-state
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from alerting.core.config import load_settings
from alerting.core.logging import setup_logging
from alerting.core.types import AnomalyType
from alerting.factory import create_pipeline
from alerting.pipeline import AlertPipeline

logger = structlog.get_logger(__name__)


async def _show_state(pipeline: AlertPipeline) -> None:
    dedup = pipeline.deduplicator
    for alert_type in AnomalyType:
        state = await dedup.get_state(alert_type)
        phase = await dedup.phase(alert_type)
        if state is None:
            print(f"{alert_type.value:<16} {phase.value}")
        else:
            print(
                f"{alert_type.value:<16} {phase.value:<14}"
                f" last={state.last_alert_time:.0f} count={state.alert_count}"
            )


async def _run_loop(pipeline: AlertPipeline, interval_secs: float) -> None:
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    logger.info("alerting_loop_started", interval_secs=interval_secs)
    try:
        await pipeline.run_forever(interval_secs, stop_event)
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")
    logger.info("alerting_loop_stopped")


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level, config=settings.logging)

    pipeline = create_pipeline(settings)
    async with pipeline:
        if args.show_state:
            await _show_state(pipeline)
            return 0

        if args.clear_state:
            await pipeline.deduplicator.clear_all_state()
            print("Alert state cleared.")
            return 0

        if args.force_alert:
            sent = await pipeline.send_forced_alert(
                ignore_cooldown=args.ignore_cooldown,
                mock_error_rate=args.mock_error_rate,
                mock_llm_error_rate=args.mock_llm_error_rate,
            )
            print(f"Forced alert sent for {len(sent)} anomaly type(s).")
            return 0

        if args.once:
            result = await pipeline.run_pass()
            logger.info(
                "pass_complete",
                detected=len(result.detected),
                notified=len(result.notified),
                failed_sources=result.failed_sources,
                error=result.error,
            )
            return 0

        await _run_loop(pipeline, settings.schedule.run_interval_secs)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Poll metric sources and push deduplicated anomaly alerts.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override: DEBUG, INFO, WARNING, ERROR",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single pass and exit")
    mode.add_argument("--force-alert", action="store_true", help="Send a synthetic test alert")
    mode.add_argument("--show-state", action="store_true", help="Print cooldown state per type")
    mode.add_argument("--clear-state", action="store_true", help="Delete all cooldown state")
    parser.add_argument(
        "--ignore-cooldown",
        action="store_true",
        help="With --force-alert: send even if the types are in cooldown",
    )
    parser.add_argument("--mock-error-rate", type=float, default=25.0)
    parser.add_argument("--mock-llm-error-rate", type=float, default=35.0)
    args = parser.parse_args()

    code = asyncio.run(run(args))
    sys.exit(code)


if __name__ == "__main__":
    main()
