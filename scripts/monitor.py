"""Standalone monitor runner.

`--once` runs a single cycle (load → acquire → diff → alert → notify →
persist) and exits, non-zero if the cycle failed; suitable for cron or CI.
Without it the cycle scheduler runs until interrupted.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from stockpulse.config import load_config
from stockpulse.jobs.scheduler import CycleScheduler
from stockpulse.pipeline.monitor_cycle import build_monitor

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("monitor")


async def run(once: bool, config_path=None) -> int:
    config = load_config(config_path)
    monitor = build_monitor(config)
    if monitor.history is not None:
        await monitor.history.init()

    try:
        if once:
            report = await monitor.run_once()
            logger.info("Cycle finished: %s", report.model_dump_json(include={"status", "succeeded", "failed"}))
            return 1 if report.status == "failed" else 0

        scheduler = CycleScheduler(
            monitor.run_once,
            config.poll_interval_seconds,
            discipline=config.schedule_discipline,
            on_error=monitor.notify_error,
        )
        try:
            await scheduler.run()
        finally:
            await scheduler.stop()
        return 0
    except Exception as e:
        logger.error("Monitor crashed: %s", e, exc_info=True)
        await monitor.notify_error(e)
        return 1


def main():
    parser = argparse.ArgumentParser(description="Run the StockPulse monitor")
    parser.add_argument("--once", action="store_true", help="run a single cycle and exit")
    parser.add_argument("--config", help="path to the monitor JSON config")
    args = parser.parse_args()

    logger.info("Starting monitor (%s)", "one-shot" if args.once else "continuous")
    try:
        code = asyncio.run(run(args.once, args.config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
