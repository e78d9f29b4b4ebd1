"""Change detection between monitor cycles.

Compares the current snapshot of a category against the state persisted by
the previous successful cycle: count deltas plus the identifiers that were
not listed before.
"""

from typing import Optional, Union

from stockpulse.api.schemas import CategorySnapshot, CategoryState, DiffResult


def diff(
    prior: Optional[Union[CategoryState, CategorySnapshot]],
    current: Union[CategoryState, CategorySnapshot],
) -> DiffResult:
    """Diff a category against its prior state.

    Args:
        prior: Last persisted state, or None on first observation (treated
            as a zero-count baseline with no items).
        current: Freshly acquired snapshot.

    Returns:
        DiffResult with non-negative 'added'/'removed' count deltas and
        'new_items' in the order they appear in `current.items`.
    """
    prior_count = prior.total_count if prior else 0
    prior_ids = set(prior.items) if prior else set()

    new_items = []
    seen = set()
    for item in current.items:
        if item in prior_ids or item in seen:
            continue
        seen.add(item)
        new_items.append(item)

    return DiffResult(
        added=max(0, current.total_count - prior_count),
        removed=max(0, prior_count - current.total_count),
        new_items=new_items,
    )
