"""Monitor configuration.

The monitor is driven by a JSON config file (categories, thresholds, pacing)
validated into a `MonitorConfig` model. Secrets come from the environment,
which the entry points populate from `.env` via python-dotenv.
"""

import json
import os
import logging
from typing import Optional, List, Dict, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator, model_validator

from stockpulse.api.schemas import CategoryDescriptor

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "..", "configs", "monitor.json")


class EnrichmentConfig(BaseModel):
    """Pincode deliverability lookup for the items of one category."""
    category_key: str
    pincode: str
    endpoint: str = "https://www.sheinindia.in/api/edd/checkDeliveryDetails"
    max_checks: int = Field(default=50, ge=0)
    delay_seconds: float = Field(default=0.3, ge=0)
    timeout_seconds: float = Field(default=15.0, gt=0)


class MonitorConfig(BaseModel):
    categories: List[CategoryDescriptor]
    recipient: Optional[str] = None
    bot_token: Optional[str] = None

    poll_interval_seconds: float = Field(default=300.0, gt=0)
    max_retries: int = Field(default=2, ge=0)
    retry_delay_seconds: float = Field(default=5.0, ge=0)

    alert_thresholds: Dict[str, int] = {}
    notify_floors: Dict[str, int] = {}
    alert_on_cold_start: bool = False

    max_items_per_section: int = Field(default=10, ge=0)
    chunk_limit: int = Field(default=3800, gt=0)
    chunk_pacing_seconds: float = Field(default=1.0, ge=0)

    snapshot_file: str = "stock.json"
    history_db: Optional[str] = "stockpulse.db"
    parallel_acquisition: bool = True
    isolate_failures: bool = True
    schedule_discipline: Literal["skip", "sequential"] = "skip"
    timezone: str = "UTC"
    title: str = "STOCK UPDATE"
    enrichment: Optional[EnrichmentConfig] = None

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{value}'") from e
        return value

    @model_validator(mode="after")
    def _check_keys(self):
        keys = [c.key for c in self.categories]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate category keys in {keys}")
        known = set(keys)
        for name, mapping in (("alert_thresholds", self.alert_thresholds),
                              ("notify_floors", self.notify_floors)):
            unknown = set(mapping) - known
            if unknown:
                raise ValueError(f"{name} references unknown categories: {sorted(unknown)}")
        if self.enrichment and self.enrichment.category_key not in known:
            raise ValueError(f"enrichment references unknown category '{self.enrichment.category_key}'")
        return self

    def category(self, key: str) -> CategoryDescriptor:
        for c in self.categories:
            if c.key == key:
                return c
        raise KeyError(key)


def load_config(path: Optional[str] = None) -> MonitorConfig:
    """Load and validate the monitor config.

    The path defaults to $STOCKPULSE_CONFIG, then configs/monitor.json.
    TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID override the file values.
    """
    config_path = path or os.environ.get("STOCKPULSE_CONFIG", DEFAULT_CONFIG_PATH)

    if not os.path.exists(config_path):
        raise ValueError(f"No monitor config found at {config_path}")

    with open(config_path) as f:
        data = json.load(f)

    token = os.environ.get("TELEGRAM_BOT_TOKEN")
    chat_id = os.environ.get("TELEGRAM_CHAT_ID")
    if token:
        data["bot_token"] = token
    if chat_id:
        data["recipient"] = chat_id

    config = MonitorConfig.model_validate(data)
    logger.info(
        "Loaded config from %s: %d categories, interval %.0fs",
        config_path, len(config.categories), config.poll_interval_seconds,
    )
    return config
