"""Snapshot analytics and CSV export."""

import csv
import io
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime

from cabinwatch.snapshot.models import Device

_CSV_HEADERS = [
    "Name",
    "Category",
    "Room",
    "Status",
    "Accuracy",
    "Signal Strength",
    "Battery Level (%)",
    "Last Seen",
    "Device Type",
    "Family Priority",
]

_MOST_ACTIVE_LIMIT = 5


@dataclass
class DeviceAnalytics:
    total_devices: int = 0
    online_devices: int = 0
    offline_devices: int = 0
    category_breakdown: dict[str, int] = field(default_factory=dict)
    accuracy_breakdown: dict[str, int] = field(default_factory=dict)
    average_signal_strength: float = 0.0
    average_battery_level: float = 0.0
    most_active_devices: list[Device] = field(default_factory=list)


def _average(values: Sequence[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def device_analytics(devices: Sequence[Device]) -> DeviceAnalytics:
    """Summarise one snapshot. Devices with unknown last_seen rank last."""
    online = sum(1 for d in devices if d.is_online)
    oldest = datetime.min.replace(tzinfo=UTC)
    most_active = sorted(devices, key=lambda d: d.last_seen or oldest, reverse=True)
    return DeviceAnalytics(
        total_devices=len(devices),
        online_devices=online,
        offline_devices=len(devices) - online,
        category_breakdown=dict(Counter(d.category.value for d in devices)),
        accuracy_breakdown=dict(Counter(d.accuracy for d in devices if d.accuracy is not None)),
        average_signal_strength=_average(
            [d.signal_strength for d in devices if d.signal_strength is not None]
        ),
        average_battery_level=_average(
            [d.battery_level for d in devices if d.battery_level is not None]
        ),
        most_active_devices=most_active[:_MOST_ACTIVE_LIMIT],
    )


def _percent(part: int, whole: int) -> str:
    return f"{(part / whole * 100) if whole else 0:.1f}%"


def analytics_report(analytics: DeviceAnalytics, generated_at: datetime | None = None) -> str:
    """Render analytics as a plain-text report."""
    generated_at = generated_at or datetime.now(UTC)
    total = analytics.total_devices
    lines = [
        "Device Analytics Report",
        f"Generated: {generated_at.isoformat(timespec='seconds')}",
        "",
        "Summary:",
        f"- Total Devices: {total}",
        f"- Online Devices: {analytics.online_devices} "
        f"({_percent(analytics.online_devices, total)})",
        f"- Offline Devices: {analytics.offline_devices} "
        f"({_percent(analytics.offline_devices, total)})",
        "",
        "Category Breakdown:",
    ]
    lines += [f"- {cat}: {n} devices" for cat, n in analytics.category_breakdown.items()]
    lines += ["", "Accuracy Breakdown:"]
    lines += [f"- {acc}: {n} devices" for acc, n in analytics.accuracy_breakdown.items()]
    lines += [
        "",
        "Performance Metrics:",
        f"- Average Signal Strength: {analytics.average_signal_strength:.1f}",
        f"- Average Battery Level: {analytics.average_battery_level:.1f}%",
        "",
        "Most Active Devices:",
    ]
    for i, device in enumerate(analytics.most_active_devices, start=1):
        seen = device.last_seen.isoformat(timespec="seconds") if device.last_seen else "unknown"
        lines.append(f"{i}. {device.name} - Last seen: {seen}")
    return "\n".join(lines)


def devices_to_csv(devices: Sequence[Device]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(_CSV_HEADERS)
    for d in devices:
        writer.writerow(
            [
                d.name,
                d.category.value,
                d.room or "",
                "Online" if d.is_online else "Offline",
                d.accuracy or "",
                "" if d.signal_strength is None else d.signal_strength,
                "" if d.battery_level is None else d.battery_level,
                d.last_seen.isoformat() if d.last_seen else "",
                d.device_type or "Unknown",
                "" if d.family_priority is None else d.family_priority,
            ]
        )
    return buf.getvalue()
