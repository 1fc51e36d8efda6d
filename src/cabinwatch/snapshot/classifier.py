"""Turn raw tracking records into Device snapshots.

Everything here is pure: no I/O, and malformed fields are replaced by
defaults instead of raising, so one bad record never blanks the view.
"""

import logging
import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from cabinwatch.snapshot.models import Device, DeviceCategory, Snapshot

logger = logging.getLogger(__name__)

_GUEST_NUMBER_RE = re.compile(r"G(\d+)", re.IGNORECASE)


def extract_guest_number(name: str | None) -> str | None:
    """Return the digits following the first "G" in a device name.

    >>> extract_guest_number("G3 Smith")
    '3'
    """
    if not name:
        return None
    match = _GUEST_NUMBER_RE.search(name)
    return match.group(1) if match else None


def parse_category(value: object) -> DeviceCategory:
    if isinstance(value, str):
        try:
            return DeviceCategory(value.strip().lower())
        except ValueError:
            pass
    return DeviceCategory.other


def parse_timestamp(value: object) -> datetime | None:
    """Coerce an ISO string, epoch number or datetime to an aware UTC datetime.

    Returns None when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        # JavaScript clients send epoch milliseconds
        seconds = value / 1000 if value > 1e11 else value
        try:
            ts = datetime.fromtimestamp(seconds, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            ts = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    return ts.replace(tzinfo=UTC) if ts.tzinfo is None else ts


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def classify(raw: Mapping[str, Any]) -> Device:
    """Build a Device from one raw tracking record."""
    name = str(raw.get("name") or "")
    device_id = _optional_str(raw.get("id")) or name
    return Device(
        id=device_id,
        name=name,
        category=parse_category(raw.get("category")),
        is_online=raw.get("isOnline") is True,
        last_seen=parse_timestamp(raw.get("lastSeen")),
        battery_level=_optional_int(raw.get("batteryLevel")),
        signal_strength=_optional_int(raw.get("signalStrength")),
        room=_optional_str(raw.get("room")),
        location=_optional_str(raw.get("location")),
        family_priority=_optional_int(raw.get("familyPriority")),
        wristband_id=_optional_str(raw.get("wristbandId")),
        assigned_guest=_optional_str(raw.get("assignedGuest")),
        assigned_cabin=_optional_str(raw.get("assignedCabin")),
        device_type=_optional_str(raw.get("deviceType")),
        accuracy=_optional_str(raw.get("accuracy")),
        guest_number=extract_guest_number(name),
    )


def classify_snapshot(payload: Mapping[str, Any]) -> Snapshot:
    """Classify every device of a raw snapshot payload.

    Non-mapping entries are skipped with a debug log.
    """
    devices: list[Device] = []
    for raw in payload.get("devices") or []:
        if not isinstance(raw, Mapping):
            logger.debug("Skipping malformed device record: %r", raw)
            continue
        devices.append(classify(raw))

    last_update = parse_timestamp(payload.get("lastUpdate")) or datetime.now(UTC)
    return Snapshot(devices=devices, last_update=last_update)
