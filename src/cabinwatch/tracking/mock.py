"""Mock tracking source for development and testing.

Produces raw snapshots for a small yacht roster: the owner's family,
crew, guest wristbands and a couple of untagged beacons. Battery and
signal drift between snapshots and devices occasionally drop offline.
"""

import logging
import random
from datetime import UTC, datetime, timedelta
from typing import Any

from cabinwatch.tracking.base import SnapshotSource

logger = logging.getLogger(__name__)

# (id, name, category, room, family priority)
_ROSTER: list[tuple[str, str, str, str, int | None]] = [
    ("wb-p1", "P1 Mr", "family", "602", 1),
    ("wb-p2", "P2 Mrs", "family", "602", 2),
    ("wb-p3", "P3 Allison", "family", "503-DUBAI", 3),
    ("wb-p4", "P4 Jonathan", "family", "503-NEWYORK", 4),
    ("wb-c1", "C1 Sophia", "family", "504", 5),
    ("wb-c2", "C2 Max", "family", "504", 6),
    ("crew-01", "Captain Reyes", "crew", "Bridge", None),
    ("crew-02", "Chief Stew Dana", "crew", "Galley", None),
    ("crew-03", "Deckhand Leo", "crew", "Swim Platform", None),
    ("wb-g1a", "G1 Anna", "guest", "407", None),
    ("wb-g1b", "G1 Tom", "guest", "407", None),
    ("wb-g2a", "G2 Lucas", "guest", "408", None),
    ("wb-g2b", "G2 Emma", "guest", "408", None),
    ("bcn-01", "Tender Beacon", "other", "Garage", None),
    ("bcn-02", "Spare Wristband", "wristband", "Crew Mess", None),
]

_OFFLINE_CHANCE = 0.1


class MockTrackingSource(SnapshotSource):
    """Generates fake tracking snapshots for development."""

    name = "mock"

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._battery = {device_id: self._rng.randint(40, 100) for device_id, *_ in _ROSTER}
        self._last_seen: dict[str, datetime] = {}

    async def fetch(self) -> dict[str, Any]:
        now = datetime.now(UTC)
        return {"devices": self._generate_devices(now), "lastUpdate": now.isoformat()}

    def _generate_devices(self, now: datetime) -> list[dict[str, Any]]:
        devices: list[dict[str, Any]] = []
        for device_id, name, category, room, priority in _ROSTER:
            online = self._rng.random() >= _OFFLINE_CHANCE
            if online:
                self._last_seen[device_id] = now
                drain = self._rng.randint(0, 1)
                self._battery[device_id] = max(0, self._battery[device_id] - drain)
            last_seen = self._last_seen.get(device_id, now - timedelta(minutes=30))

            record: dict[str, Any] = {
                "id": device_id,
                "name": name,
                "category": category,
                "isOnline": online,
                "lastSeen": last_seen.isoformat(),
                "batteryLevel": self._battery[device_id],
                "signalStrength": self._rng.randint(35, 95) if online else 0,
                "room": room,
                "deviceType": "wristband" if device_id.startswith("wb-") else "beacon",
            }
            if priority is not None:
                record["familyPriority"] = priority
            devices.append(record)
        return devices
