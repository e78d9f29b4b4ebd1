"""Alert policy: rising-edge threshold alerts and routine-report gating.

Two independent mechanisms:

- Threshold alerts fire when a category's count moves from below its
  threshold to at/above it. The previous count comes from the persisted
  state of the last successful cycle, so crossings are detected across
  restarts. Staying above, or falling below, never fires. With no persisted
  previous count (cold start) nothing fires unless `alert_on_cold_start`.
- Floor gating suppresses the routine summary unless at least one floored
  category is at or above its floor this cycle. It is an absolute gate and
  does not affect threshold alerts.
"""

import logging
from enum import Enum
from typing import Dict, Mapping, Optional

from stockpulse.api.schemas import (AlertDecision, CategorySnapshot, CategoryState,
                                    ThresholdCrossing)

logger = logging.getLogger(__name__)


class ThresholdState(str, Enum):
    BELOW_THRESHOLD = "below"
    AT_OR_ABOVE_THRESHOLD = "at_or_above"


def threshold_state(count: int, threshold: int) -> ThresholdState:
    if count >= threshold:
        return ThresholdState.AT_OR_ABOVE_THRESHOLD
    return ThresholdState.BELOW_THRESHOLD


def is_rising_edge(previous: Optional[int], current: int, threshold: int, alert_on_cold_start: bool = False) -> bool:
    """True when `previous -> current` crosses `threshold` upwards."""
    now = threshold_state(current, threshold)
    if previous is None:
        return alert_on_cold_start and now is ThresholdState.AT_OR_ABOVE_THRESHOLD
    before = threshold_state(previous, threshold)
    return before is ThresholdState.BELOW_THRESHOLD and now is ThresholdState.AT_OR_ABOVE_THRESHOLD


class AlertPolicy:
    def __init__(
        self,
        thresholds: Optional[Dict[str, int]] = None,
        floors: Optional[Dict[str, int]] = None,
        labels: Optional[Dict[str, str]] = None,
        alert_on_cold_start: bool = False,
    ):
        self.thresholds = dict(thresholds or {})
        self.floors = dict(floors or {})
        self.labels = dict(labels or {})
        self.alert_on_cold_start = alert_on_cold_start

    def evaluate(
        self,
        prior: Mapping[str, CategoryState],
        current: Mapping[str, CategorySnapshot],
    ) -> AlertDecision:
        """Decide alerts and routine reporting for the categories that succeeded."""
        crossings = []
        for key, snapshot in current.items():
            threshold = self.thresholds.get(key)
            if threshold is None:
                continue
            previous = prior[key].total_count if key in prior else None
            if is_rising_edge(previous, snapshot.total_count, threshold, self.alert_on_cold_start):
                logger.info("%s crossed threshold %d (%s -> %d)", key, threshold, previous, snapshot.total_count)
                crossings.append(ThresholdCrossing(
                    key=key,
                    label=self.labels.get(key, key),
                    previous_count=previous,
                    current_count=snapshot.total_count,
                    threshold=threshold,
                ))

        return AlertDecision(crossings=crossings, send_routine=self.routine_allowed(current))

    def routine_allowed(self, current: Mapping[str, CategorySnapshot]) -> bool:
        if not self.floors:
            return True
        for key, floor in self.floors.items():
            if key in current and current[key].total_count >= floor:
                return True
        logger.info("Routine summary gated: no category at its notify floor")
        return False
