"""Durable category state between monitor cycles.

The whole key -> CategoryState mapping is stored as one JSON file and
replaced atomically on every save (temp file + os.replace), so a crash
mid-write leaves the previous file intact. A missing or unreadable file is a
normal cold start and loads as an empty mapping.
"""

import json
import logging
import os
import tempfile
from typing import Dict

from pydantic import TypeAdapter, ValidationError

from stockpulse.api.schemas import CategoryState

logger = logging.getLogger(__name__)

_STATE_ADAPTER = TypeAdapter(Dict[str, CategoryState])


class PersistenceError(Exception):
    """Raised when the snapshot file cannot be written."""


class SnapshotStore:
    def __init__(self, path: str):
        self.path = path

    def load(self) -> Dict[str, CategoryState]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                return _STATE_ADAPTER.validate_python(json.load(f))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable snapshot %s: %s", self.path, e)
            return {}

    def save(self, state: Dict[str, CategoryState]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        payload = _STATE_ADAPTER.dump_python(state, mode="json")

        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".snapshot-", suffix=".tmp")
        except OSError as e:
            raise PersistenceError(f"Cannot create temp file in {directory}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(f"Failed to write snapshot {self.path}: {e}") from e

        logger.debug("Saved snapshot with %d categories to %s", len(state), self.path)
