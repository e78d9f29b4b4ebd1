"""Plain-text message building for Telegram."""

from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from stockpulse.api.schemas import (CategoryDescriptor, CategorySnapshot, DiffResult,
                                    ThresholdCrossing)


def _bullets(items: List[str], limit: int) -> List[str]:
    lines = [f"• {item}" for item in items[:limit]]
    if len(items) > limit:
        lines.append(f"…and {len(items) - limit} more")
    return lines


def format_section(
    index: int,
    descriptor: CategoryDescriptor,
    snapshot: CategorySnapshot,
    result: DiffResult,
    max_items: int,
) -> str:
    lines = [
        f"{index}. {descriptor.label}",
        f"Total: {snapshot.total_count}",
        f"Added: +{result.added}",
        f"Removed: -{result.removed}",
    ]
    if result.new_items and max_items:
        lines.append("")
        lines.append(f"🆕 New items ({len(result.new_items)}):")
        lines.extend(_bullets(result.new_items, max_items))
    if descriptor.list_top_items and max_items:
        lines.append("")
        lines.append(f"🔗 Top {max_items} Links:")
        lines.extend(_bullets(snapshot.items[:max_items], max_items) or ["No links found"])
    return "\n".join(lines)


def format_unavailable(index: int, descriptor: CategoryDescriptor, reason: str) -> str:
    return f"{index}. {descriptor.label}\n⚠️ Unavailable this cycle ({reason})"


def format_deliverable(pincode: str, links: List[str], max_items: int) -> str:
    body = "\n".join(_bullets(links, max_items)) if links else "❌ No deliverable products found"
    return f"📍 PINCODE DELIVERABLE PRODUCTS (Pincode: {pincode})\n\n{body}"


def format_timestamp(moment: datetime, timezone: str) -> str:
    return moment.astimezone(ZoneInfo(timezone)).strftime("%d/%m/%Y, %H:%M:%S")


def format_summary(title: str, sections: List[str], moment: datetime, timezone: str) -> str:
    parts = [f"📦 {title}"] + sections + [f"Updated: {format_timestamp(moment, timezone)}"]
    return "\n\n".join(parts)


def format_alert(crossings: List[ThresholdCrossing]) -> str:
    lines = ["🚨 STOCK ALERT"]
    for c in crossings:
        previous = "n/a" if c.previous_count is None else str(c.previous_count)
        lines.append(f"{c.label}: {previous} → {c.current_count} (threshold {c.threshold})")
    return "\n".join(lines)


def format_error(title: str, detail: str, moment: Optional[datetime] = None, timezone: str = "UTC") -> str:
    lines = [f"❗ {title}: MONITOR ERROR", detail]
    if moment is not None:
        lines.append(f"At: {format_timestamp(moment, timezone)}")
    return "\n".join(lines)
