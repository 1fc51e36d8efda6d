"""Static cabin inventory and cabin layout assembly."""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from sqlmodel import SQLModel

from cabinwatch.assignment.models import Guest
from cabinwatch.snapshot.models import Device, DeviceCategory

OWNERS_DECK = "Owners Deck"
SPA_DECK = "Spa Deck"
UPPER_DECK = "Upper Deck"
UNKNOWN_DECK = "Unknown Deck"

DECK_ORDER = (OWNERS_DECK, SPA_DECK, UPPER_DECK)

PORT_SIDE = "Port Side"
STARBOARD_SIDE = "Starboard Side"
CENTER = "Center"

_VIP_SUITE = "VIP Suite, Twin Beds, Shared Bathroom"
_STAFF_CABIN = "Staff Cabin, Twin Beds, Shared Bathroom"

# Wristbands carry a family/guest/child prefix: "G1 Anna", "P2 Mrs", "C1"
_WRISTBAND_NAME_RE = re.compile(r"^(G[12]|P[12]|C[12])(\s+[A-Za-z0-9]+|$)")


@dataclass(frozen=True)
class CabinSpec:
    name: str
    deck: str
    area: str
    features: str
    capacity: int


CABIN_INVENTORY: dict[str, CabinSpec] = {
    "602": CabinSpec(
        "Master Suite", OWNERS_DECK, CENTER, "Master Suite, King Bed, Private Bathroom", 2
    ),
    "503-DUBAI": CabinSpec("DUBAI", SPA_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "503-NEWYORK": CabinSpec("NEW YORK", SPA_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "504": CabinSpec("MIAMI", SPA_DECK, STARBOARD_SIDE, _VIP_SUITE, 2),
    "502": CabinSpec("SYDNEY", SPA_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "507": CabinSpec("ROME", SPA_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "506": CabinSpec("PARIS", SPA_DECK, STARBOARD_SIDE, _VIP_SUITE, 2),
    "510": CabinSpec("TOKYO", SPA_DECK, STARBOARD_SIDE, _STAFF_CABIN, 2),
    "403": CabinSpec("BEIJING", UPPER_DECK, PORT_SIDE, _STAFF_CABIN, 2),
    "404": CabinSpec("ISTANBUL", UPPER_DECK, STARBOARD_SIDE, _STAFF_CABIN, 2),
    "407": CabinSpec("MADRID", UPPER_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "408": CabinSpec("CAIRO", UPPER_DECK, STARBOARD_SIDE, _VIP_SUITE, 2),
    "409": CabinSpec("MONACO", UPPER_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "410": CabinSpec("HOLLYWOOD", UPPER_DECK, STARBOARD_SIDE, _VIP_SUITE, 2),
    "411": CabinSpec("RIO", UPPER_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "412": CabinSpec("LONDON", UPPER_DECK, STARBOARD_SIDE, _VIP_SUITE, 2),
    "413": CabinSpec("VENICE", UPPER_DECK, PORT_SIDE, _VIP_SUITE, 2),
    "414": CabinSpec("MYKONOS", UPPER_DECK, STARBOARD_SIDE, _VIP_SUITE, 2),
    "418": CabinSpec("CAPRI", UPPER_DECK, STARBOARD_SIDE, _STAFF_CABIN, 2),
}


def deck_for_cabin(cabin_number: str) -> str:
    """Derive the deck from a cabin number's leading digit."""
    if cabin_number == "602":
        return OWNERS_DECK
    if cabin_number.startswith("5"):
        return SPA_DECK
    if cabin_number.startswith("4"):
        return UPPER_DECK
    return UNKNOWN_DECK


def get_cabin_spec(cabin_number: str) -> CabinSpec | None:
    return CABIN_INVENTORY.get(cabin_number)


class CabinGuest(SQLModel):
    id: int
    name: str
    wristband_id: str | None = None
    allergies: str | None = None
    special_requests: str | None = None
    photo_url_1: str | None = None
    photo_url_2: str | None = None


class Cabin(SQLModel):
    number: str
    name: str
    deck: str
    area: str
    side: str
    kind: str
    color: str
    features: str
    estimated_capacity: int
    guests: list[CabinGuest] = []

    @property
    def is_full(self) -> bool:
        return len(self.guests) >= self.estimated_capacity


def _side(area: str) -> str:
    if area == PORT_SIDE:
        return "port"
    if area == STARBOARD_SIDE:
        return "starboard"
    return "center"


def _color(area: str) -> str:
    if area == PORT_SIDE:
        return "Red"
    if area == STARBOARD_SIDE:
        return "Green"
    return "Yellow"


def _kind(spec: CabinSpec) -> str:
    if spec.deck == OWNERS_DECK:
        return "Master"
    if spec.features.startswith("Staff"):
        return "Staff"
    return "VIP"


def _cabin_guest(guest: Guest) -> CabinGuest:
    return CabinGuest(
        id=guest.id or 0,
        name=guest.name,
        wristband_id=guest.wristband_id,
        allergies=guest.allergies,
        special_requests=guest.special_requests,
        photo_url_1=guest.photo_url_1,
        photo_url_2=guest.photo_url_2,
    )


def build_cabins(assignments: Iterable[Guest]) -> list[Cabin]:
    """Merge persisted assignments into the static inventory.

    Assignments for cabins outside the inventory are ignored, and a cabin
    never lists more guests than its estimated capacity.
    """
    by_cabin: dict[str, list[Guest]] = {}
    for guest in assignments:
        by_cabin.setdefault(guest.cabin_number, []).append(guest)

    cabins = []
    for number, spec in CABIN_INVENTORY.items():
        guests = by_cabin.get(number, [])[: spec.capacity]
        cabins.append(
            Cabin(
                number=number,
                name=spec.name,
                deck=spec.deck,
                area=spec.area,
                side=_side(spec.area),
                kind=_kind(spec),
                color=_color(spec.area),
                features=spec.features,
                estimated_capacity=spec.capacity,
                guests=[_cabin_guest(g) for g in guests],
            )
        )
    return cabins


def cabins_by_deck(cabins: Iterable[Cabin]) -> dict[str, list[Cabin]]:
    """Group cabins by deck in layout order, dropping empty decks."""
    grouped: dict[str, list[Cabin]] = {deck: [] for deck in DECK_ORDER}
    for cabin in cabins:
        grouped.setdefault(cabin.deck, []).append(cabin)
    return {deck: group for deck, group in grouped.items() if group}


def cabin_status(assignments: Iterable[Guest]) -> dict[str, Guest | None]:
    """Every inventory cabin mapped to its active assignment, or None if free."""
    status: dict[str, Guest | None] = {number: None for number in CABIN_INVENTORY}
    for guest in assignments:
        if guest.cabin_number in status:
            status[guest.cabin_number] = guest
    return status


def is_wristband_name(name: str) -> bool:
    return bool(_WRISTBAND_NAME_RE.match(name))


def available_wristbands(devices: Iterable[Device], assigned_ids: set[str]) -> list[Device]:
    """Wristband-named devices that no active assignment holds yet.

    Returned copies are tagged as wristbands and located by their room.
    """
    return [
        d.model_copy(
            update={
                "category": DeviceCategory.wristband,
                "location": d.room,
                "wristband_id": d.wristband_id or d.id,
            }
        )
        for d in devices
        if is_wristband_name(d.name) and d.id not in assigned_ids
    ]
