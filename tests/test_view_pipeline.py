"""Tests for the device view pipeline."""

from datetime import UTC, datetime, timedelta

import pytest

from cabinwatch.snapshot.classifier import classify
from cabinwatch.snapshot.models import Device, DeviceCategory
from cabinwatch.view.labels import bucket_accent, bucket_description, bucket_title
from cabinwatch.view.pipeline import (
    BUCKET_ORDER,
    Bucket,
    SortKey,
    SortOrder,
    ViewQuery,
    available_guest_numbers,
    build_view,
    matches_search,
    sort_devices,
)

NOW = datetime(2026, 10, 19, 12, tzinfo=UTC)


def _device(device_id: str, name: str, category: str = "other", online: bool = True, **kw):
    return classify({"id": device_id, "name": name, "category": category, "isOnline": online, **kw})


def _ids(devices) -> list[str]:
    return [d.id for d in devices]


@pytest.fixture
def fleet() -> list[Device]:
    return [
        _device("f2", "Amy", "family", familyPriority=2),
        _device("f1", "Zed", "family", familyPriority=1),
        _device("c1", "Captain Reyes", "crew", room="Bridge"),
        _device("g1", "G1 Tom", "guest", room="407"),
        _device("g2", "G2 Emma", "guest", room="408"),
        _device("g3", "Guest Without Number", "guest"),
        _device("w1", "G1 Anna", "wristband"),
        _device("o1", "Tender Beacon"),
        _device("x1", "G2 Lucas", "guest", online=False),
        _device("x2", "Deckhand Leo", "crew", online=False),
    ]


class TestEndToEnd:
    def test_default_query_scenario(self):
        devices = [
            classify({"id": "d1", "name": "G1 Tom", "category": "guest", "isOnline": True}),
            classify(
                {
                    "id": "d2",
                    "name": "P1 Mr",
                    "category": "family",
                    "isOnline": False,
                    "familyPriority": 1,
                }
            ),
        ]
        view = build_view(devices, ViewQuery())

        assert _ids(view.bucket(Bucket.guest)) == ["d1"]
        assert _ids(view.bucket(Bucket.offline)) == ["d2"]
        assert view.bucket(Bucket.family) == ()
        assert view.bucket(Bucket.crew) == ()
        assert view.bucket(Bucket.other) == ()
        assert [b.bucket for b in view.visible_buckets()] == [Bucket.guest, Bucket.offline]


class TestPartition:
    def test_every_device_in_exactly_one_bucket(self, fleet):
        view = build_view(fleet)
        seen = [d.id for b in BUCKET_ORDER for d in view.bucket(b)]
        assert sorted(seen) == sorted(d.id for d in fleet)

    def test_offline_routed_regardless_of_category(self, fleet):
        view = build_view(fleet)
        assert set(_ids(view.bucket(Bucket.offline))) == {"x1", "x2"}
        assert "x1" not in _ids(view.bucket(Bucket.guest))
        assert "x2" not in _ids(view.bucket(Bucket.crew))

    def test_wristband_and_other_group_as_other(self, fleet):
        view = build_view(fleet)
        assert set(_ids(view.bucket(Bucket.other))) == {"w1", "o1"}

    def test_all_buckets_computed_even_when_empty(self):
        view = build_view([])
        assert list(view.buckets) == list(BUCKET_ORDER)
        assert view.visible_buckets() == []
        assert view.match_count == 0


class TestSearch:
    def test_blank_search_is_noop(self, fleet):
        assert build_view(fleet, ViewQuery(search="   ")).match_count == len(fleet)

    def test_matches_name_case_insensitively(self, fleet):
        view = build_view(fleet, ViewQuery(search="captain"))
        assert view.match_count == 1
        assert _ids(view.bucket(Bucket.crew)) == ["c1"]

    def test_matches_room(self, fleet):
        view = build_view(fleet, ViewQuery(search="408"))
        assert _ids(view.bucket(Bucket.guest)) == ["g2"]

    def test_matches_category(self):
        device = _device("c9", "Someone", "crew")
        assert matches_search(device, "CREW")

    def test_search_excludes_from_offline_too(self, fleet):
        view = build_view(fleet, ViewQuery(search="lucas"))
        assert _ids(view.bucket(Bucket.offline)) == ["x1"]
        assert view.match_count == 1


class TestGuestFilter:
    def test_filter_keeps_matching_guest_number(self, fleet):
        view = build_view(fleet, ViewQuery(guest_filter="1"))
        assert _ids(view.bucket(Bucket.guest)) == ["g1"]

    def test_filter_drops_guests_without_number(self, fleet):
        view = build_view(fleet, ViewQuery(guest_filter="2"))
        assert _ids(view.bucket(Bucket.guest)) == ["g2"]

    def test_filter_only_touches_guest_bucket(self, fleet):
        view = build_view(fleet, ViewQuery(guest_filter="1"))
        # G2 Lucas is offline, G1 Anna is a wristband: neither is filtered
        assert "x1" in _ids(view.bucket(Bucket.offline))
        assert "w1" in _ids(view.bucket(Bucket.other))

    def test_all_sentinel_keeps_numberless_guests(self, fleet):
        view = build_view(fleet, ViewQuery(guest_filter="all"))
        assert set(_ids(view.bucket(Bucket.guest))) == {"g1", "g2", "g3"}

    def test_available_guest_numbers_sorted_numerically(self):
        devices = [
            _device("a", "G10 X", "guest"),
            _device("b", "G2 Y", "guest"),
            _device("c", "G2 Z", "guest"),
            _device("d", "G5 W", "crew"),
        ]
        assert available_guest_numbers(devices) == ["2", "10"]


class TestSort:
    def test_family_sorted_by_priority_not_name(self, fleet):
        view = build_view(fleet, ViewQuery(sort_by=SortKey.name))
        assert _ids(view.bucket(Bucket.family)) == ["f1", "f2"]

    def test_family_without_priority_sorts_last(self):
        devices = [
            _device("a", "Aaron", "family"),
            _device("b", "Bea", "family", familyPriority=4),
        ]
        assert _ids(sort_devices(devices, SortKey.name)) == ["b", "a"]

    def test_name_sort_is_case_insensitive(self):
        devices = [_device("a", "bravo"), _device("b", "Alpha")]
        assert _ids(sort_devices(devices, SortKey.name)) == ["b", "a"]

    def test_descending_reverses(self, fleet):
        view = build_view(fleet, ViewQuery(sort_order=SortOrder.desc))
        assert _ids(view.bucket(Bucket.family)) == ["f2", "f1"]
        assert _ids(view.bucket(Bucket.guest)) == ["g3", "g2", "g1"]

    def test_last_seen_unknown_sorts_oldest(self):
        devices = [
            _device("new", "N", lastSeen=NOW.isoformat()),
            _device("unknown", "U", lastSeen="garbage"),
            _device("old", "O", lastSeen=(NOW - timedelta(hours=1)).isoformat()),
        ]
        assert _ids(sort_devices(devices, SortKey.last_seen)) == ["unknown", "old", "new"]
        assert _ids(sort_devices(devices, SortKey.last_seen, SortOrder.desc)) == [
            "new",
            "old",
            "unknown",
        ]

    def test_status_sort(self):
        devices = [_device("on", "A"), _device("off", "B", online=False)]
        assert _ids(sort_devices(devices, SortKey.status)) == ["off", "on"]

    def test_category_sort(self):
        devices = [
            _device("o", "A", "other"),
            _device("c", "B", "crew"),
            _device("g", "C", "guest"),
        ]
        assert _ids(sort_devices(devices, SortKey.category)) == ["c", "g", "o"]

    def test_ties_broken_by_id(self):
        devices = [_device("b", "Same"), _device("a", "same")]
        assert _ids(sort_devices(devices, SortKey.name)) == ["a", "b"]


class TestDeterminism:
    def test_repeated_calls_identical(self, fleet):
        query = ViewQuery(search="g", sort_by=SortKey.last_seen, sort_order=SortOrder.desc)
        first = build_view(fleet, query)
        second = build_view(fleet, query)
        for bucket in BUCKET_ORDER:
            assert _ids(first.bucket(bucket)) == _ids(second.bucket(bucket))

    def test_input_order_does_not_matter(self, fleet):
        forward = build_view(fleet)
        backward = build_view(list(reversed(fleet)))
        for bucket in BUCKET_ORDER:
            assert _ids(forward.bucket(bucket)) == _ids(backward.bucket(bucket))


class TestSummaries:
    def test_bucket_counts(self, fleet):
        view = build_view(fleet)
        offline = view.buckets[Bucket.offline]
        assert offline.total == 2
        assert offline.online_count == 0
        assert view.buckets[Bucket.guest].online_count == 3

    def test_labels(self):
        assert bucket_title(Bucket.offline) == "Offline Devices"
        assert bucket_description(Bucket.guest, 1, "3") == "1 guest (G3 only)"
        assert bucket_description(Bucket.crew, 2) == "2 crew members"

    def test_every_bucket_has_an_accent(self):
        accents = {bucket_accent(b) for b in BUCKET_ORDER}
        assert len(accents) == len(BUCKET_ORDER)
        assert bucket_accent(Bucket.offline) == "red"

    def test_device_category_on_model(self, fleet):
        assert fleet[0].category == DeviceCategory.family
