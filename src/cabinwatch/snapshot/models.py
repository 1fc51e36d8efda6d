"""Point-in-time device and snapshot models."""

import enum
from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class DeviceCategory(enum.StrEnum):
    family = "family"
    crew = "crew"
    guest = "guest"
    wristband = "wristband"
    other = "other"


class Device(SQLModel):
    """A tracked badge or wristband as observed in one snapshot."""

    id: str
    name: str = ""
    category: DeviceCategory = DeviceCategory.other
    is_online: bool = False
    last_seen: datetime | None = None  # None = unknown, sorts as oldest
    battery_level: int | None = None  # 0-100
    signal_strength: int | None = None  # 0-100
    room: str | None = None
    location: str | None = None
    family_priority: int | None = None
    wristband_id: str | None = None
    assigned_guest: str | None = None
    assigned_cabin: str | None = None
    device_type: str | None = None
    accuracy: str | None = None

    # Derived by the classifier from the name ("G3 Smith" -> "3")
    guest_number: str | None = None


class Snapshot(SQLModel):
    """A single fetch result from the tracking source."""

    devices: list[Device] = Field(default_factory=list)
    last_update: datetime = Field(default_factory=lambda: datetime.now(UTC))
