"""StockPulse: inventory change monitor with Telegram alerts.

FastAPI application entry point. Runs the cycle scheduler in the background
and serves the keep-alive/status API.
"""

import logging
import os
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from stockpulse.api.routes import router
from stockpulse.config import load_config
from stockpulse.jobs.scheduler import CycleScheduler
from stockpulse.pipeline.monitor_cycle import build_monitor

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = load_config()
    monitor = build_monitor(config)
    if monitor.history is not None:
        await monitor.history.init()
        logging.getLogger(__name__).info("Cycle history initialized")

    scheduler = CycleScheduler(
        monitor.run_once,
        config.poll_interval_seconds,
        discipline=config.schedule_discipline,
        on_error=monitor.notify_error,
    )
    app.state.monitor = monitor
    app.state.scheduler = scheduler
    scheduler.start()
    yield
    await scheduler.stop()


app = FastAPI(
    title="StockPulse",
    description="Inventory change monitor with threshold alerts and Telegram delivery",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)
