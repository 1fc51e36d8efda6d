"""Presentation metadata for view buckets."""

from cabinwatch.view.pipeline import GUEST_FILTER_ALL, Bucket


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def bucket_title(bucket: Bucket) -> str:
    match bucket:
        case Bucket.family:
            return "Family"
        case Bucket.crew:
            return "Crew"
        case Bucket.guest:
            return "Guests"
        case Bucket.other:
            return "Other Devices"
        case Bucket.offline:
            return "Offline Devices"


def bucket_description(bucket: Bucket, count: int, guest_filter: str = GUEST_FILTER_ALL) -> str:
    match bucket:
        case Bucket.family:
            return _plural(count, "family member") + " (P1-P4, C1-C2)"
        case Bucket.crew:
            return _plural(count, "crew member")
        case Bucket.guest:
            suffix = f" (G{guest_filter} only)" if guest_filter != GUEST_FILTER_ALL else ""
            return _plural(count, "guest") + suffix
        case Bucket.other:
            return _plural(count, "device")
        case Bucket.offline:
            return _plural(count, "offline device")


def bucket_collapsed_by_default(bucket: Bucket) -> bool:
    return bucket == Bucket.offline


def bucket_accent(bucket: Bucket) -> str:
    """Accent colour for the bucket header and device icons."""
    match bucket:
        case Bucket.family:
            return "purple"
        case Bucket.crew:
            return "blue"
        case Bucket.guest:
            return "green"
        case Bucket.other:
            return "gray"
        case Bucket.offline:
            return "red"
