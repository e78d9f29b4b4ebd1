"""Abstract base for category source adapters.

Each origin gets its own concrete adapter implementing acquire(). The
monitor never looks at how the snapshot is obtained; it only relies on the
contract: a CategorySnapshot, or AcquisitionError when the inventory
cannot be determined.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
from stockpulse.api.schemas import CategoryDescriptor, CategorySnapshot


class AcquisitionError(Exception):
    """Raised when a category snapshot cannot be obtained."""


class BaseSourceAdapter(ABC):
    """Abstract base class for all category source adapters."""

    def __init__(self, config: Optional[dict] = None):
        self.config = config or {}

    @abstractmethod
    async def acquire(self, descriptor: CategoryDescriptor) -> CategorySnapshot:
        """Return a fresh snapshot of the category described by `descriptor`."""
        ...

    def get_param(self, descriptor: CategoryDescriptor, name: str, default: Any = None) -> Any:
        """Read a source param, falling back to adapter-wide config."""
        return descriptor.params.get(name, self.config.get(name, default))

    def get_timeout(self, descriptor: CategoryDescriptor) -> float:
        return float(self.get_param(descriptor, "timeout_seconds", 60.0))

    def build_snapshot(self, descriptor: CategoryDescriptor, total: int, items: List[str]) -> CategorySnapshot:
        """Validate raw results into a snapshot.

        A zero count is only trusted when the category allows empty
        results; otherwise it usually means the page or API did not load,
        even if some item ids came through.
        """
        if total < 0:
            raise AcquisitionError(f"{descriptor.key}: negative count {total}")
        if total == 0 and not self.get_param(descriptor, "allow_empty", False):
            raise AcquisitionError(f"{descriptor.key}: no products detected")
        return CategorySnapshot(total_count=total, items=items)
