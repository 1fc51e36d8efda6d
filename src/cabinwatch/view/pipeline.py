"""Device view pipeline: search, partition, group, guest filter, sort.

The pipeline is a pure function of its inputs. Calling ``build_view`` twice
with the same devices and query returns identical buckets in identical order.
"""

import enum
import functools
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from cabinwatch.snapshot.models import Device, DeviceCategory

GUEST_FILTER_ALL = "all"

# Family devices without a priority sort after every prioritised one
_MISSING_FAMILY_PRIORITY = 999

_OLDEST = datetime.min.replace(tzinfo=UTC)


class Bucket(enum.StrEnum):
    family = "family"
    crew = "crew"
    guest = "guest"
    other = "other"
    offline = "offline"


BUCKET_ORDER: tuple[Bucket, ...] = (
    Bucket.family,
    Bucket.crew,
    Bucket.guest,
    Bucket.other,
    Bucket.offline,
)


class SortKey(enum.StrEnum):
    name = "name"
    status = "status"
    last_seen = "lastSeen"
    category = "category"


class SortOrder(enum.StrEnum):
    asc = "asc"
    desc = "desc"


@dataclass(frozen=True)
class ViewQuery:
    search: str = ""
    sort_by: SortKey = SortKey.name
    sort_order: SortOrder = SortOrder.asc
    guest_filter: str = GUEST_FILTER_ALL


@dataclass(frozen=True)
class BucketView:
    bucket: Bucket
    devices: tuple[Device, ...]

    @property
    def total(self) -> int:
        return len(self.devices)

    @property
    def online_count(self) -> int:
        return sum(1 for d in self.devices if d.is_online)


@dataclass(frozen=True)
class DeviceView:
    """Bucketed, sorted devices ready for presentation."""

    query: ViewQuery
    buckets: dict[Bucket, BucketView] = field(default_factory=dict)

    @property
    def match_count(self) -> int:
        """Devices that survived search and guest filtering, across all buckets."""
        return sum(b.total for b in self.buckets.values())

    def bucket(self, bucket: Bucket) -> tuple[Device, ...]:
        return self.buckets[bucket].devices

    def visible_buckets(self) -> list[BucketView]:
        """Non-empty buckets in presentation order."""
        return [self.buckets[b] for b in BUCKET_ORDER if self.buckets[b].total > 0]


def matches_search(device: Device, search: str) -> bool:
    """Case-insensitive substring match on name, room and category."""
    needle = search.strip().lower()
    if not needle:
        return True
    return (
        needle in device.name.lower()
        or (device.room is not None and needle in device.room.lower())
        or needle in device.category.value
    )


def semantic_bucket(device: Device) -> Bucket:
    """Map an online device's category to its bucket. Wristbands group as other."""
    match device.category:
        case DeviceCategory.family:
            return Bucket.family
        case DeviceCategory.crew:
            return Bucket.crew
        case DeviceCategory.guest:
            return Bucket.guest
        case _:
            return Bucket.other


def bucket_for(device: Device) -> Bucket:
    if not device.is_online:
        return Bucket.offline
    return semantic_bucket(device)


def _cmp(a: object, b: object) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


def _family_priority(device: Device) -> int:
    if device.family_priority is None:
        return _MISSING_FAMILY_PRIORITY
    return device.family_priority


def compare_devices(a: Device, b: Device, sort_by: SortKey) -> int:
    """Three-way comparison of two devices under the active sort key."""
    if sort_by == SortKey.name:
        if a.category == DeviceCategory.family and b.category == DeviceCategory.family:
            return _cmp(_family_priority(a), _family_priority(b))
        return _cmp(a.name.lower(), b.name.lower())
    if sort_by == SortKey.status:
        return _cmp(int(a.is_online), int(b.is_online))
    if sort_by == SortKey.last_seen:
        return _cmp(a.last_seen or _OLDEST, b.last_seen or _OLDEST)
    return _cmp(a.category.value or "other", b.category.value or "other")


def sort_devices(
    devices: Iterable[Device],
    sort_by: SortKey = SortKey.name,
    sort_order: SortOrder = SortOrder.asc,
) -> list[Device]:
    """Sort devices; descending reverses the key comparison, ids break ties."""
    sign = -1 if sort_order == SortOrder.desc else 1

    def ordering(a: Device, b: Device) -> int:
        result = sign * compare_devices(a, b, sort_by)
        return result or _cmp(a.id, b.id)

    return sorted(devices, key=functools.cmp_to_key(ordering))


def build_view(devices: Iterable[Device], query: ViewQuery | None = None) -> DeviceView:
    """Run the pipeline stages in order and return every bucket, empty or not."""
    query = query or ViewQuery()
    guest_filter = (query.guest_filter or GUEST_FILTER_ALL).strip()

    grouped: dict[Bucket, list[Device]] = {b: [] for b in BUCKET_ORDER}
    for device in devices:
        if not matches_search(device, query.search):
            continue
        bucket = bucket_for(device)
        if (
            bucket == Bucket.guest
            and guest_filter != GUEST_FILTER_ALL
            and device.guest_number != guest_filter
        ):
            continue
        grouped[bucket].append(device)

    return DeviceView(
        query=query,
        buckets={
            b: BucketView(b, tuple(sort_devices(grouped[b], query.sort_by, query.sort_order)))
            for b in BUCKET_ORDER
        },
    )


def available_guest_numbers(devices: Iterable[Device]) -> list[str]:
    """Distinct guest numbers among guest-category devices, numerically sorted."""
    numbers = {
        d.guest_number
        for d in devices
        if d.category == DeviceCategory.guest and d.guest_number is not None
    }
    return sorted(numbers, key=int)
