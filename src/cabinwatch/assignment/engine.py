"""Assignment engine: bind a guest and a wristband to a cabin, or release it.

The store is the only source of truth. ``assign`` checks for a device or
cabin conflict, then writes the guest row and its device link. The unique
constraints on the guest table catch a concurrent writer that slips past
the checks. Neither operation retries, and neither raises to the caller:
every outcome is an AssignmentResult.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from cabinwatch.assignment import store
from cabinwatch.assignment.models import Guest
from cabinwatch.cabins.inventory import deck_for_cabin, get_cabin_spec

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    success: bool
    error: str | None = None
    warning: str | None = None
    conflict: bool = False  # device or cabin already taken


class AssignmentConflict(ValueError):
    """The device or cabin is already held by an active assignment."""


class LinkFailure(RuntimeError):
    """The guest row exists but its device link could not be written."""


def _check_available(
    session: Session, cabin_number: str, device_id: str | None, device_name: str
) -> None:
    """Raise AssignmentConflict if the device or the cabin is already taken."""
    if device_id:
        holder = store.find_by_device(session, device_id)
        if holder is not None:
            raise AssignmentConflict(
                f"Device {device_name or device_id} is already assigned to "
                f"{holder.name} in cabin {holder.cabin_number}"
            )

    occupant = store.find_by_cabin(session, cabin_number)
    if occupant is not None:
        raise AssignmentConflict(f"Cabin {cabin_number} is already occupied by {occupant.name}")


def _link_device(session: Session, device_id: str, guest_id: int) -> None:
    try:
        store.insert_link(session, device_id, guest_id)
    except SQLAlchemyError as e:
        raise LinkFailure(f"could not link device {device_id} to guest {guest_id}: {e}") from e


def assign(
    session: Session,
    cabin_number: str,
    guest_name: str,
    device_id: str | None,
    device_name: str = "",
    allergies: str | None = None,
    special_requests: str | None = None,
    require_link: bool = False,
) -> AssignmentResult:
    """Assign a guest wearing ``device_id`` to ``cabin_number``.

    With ``require_link`` the guest row and the device link are committed
    together, so a link failure fails the whole assignment. Without it the
    link is written after the guest row is committed; if that fails the
    assignment stands and the result carries a warning.
    """
    cabin_number = (cabin_number or "").strip()
    guest_name = (guest_name or "").strip()
    device_id = (device_id or "").strip() or None
    if not cabin_number:
        return AssignmentResult(success=False, error="Cabin number is required")
    if not guest_name:
        return AssignmentResult(success=False, error="Guest name is required")

    spec = get_cabin_spec(cabin_number)
    guest = Guest(
        name=guest_name,
        cabin_number=cabin_number,
        cabin_name=spec.name if spec else cabin_number,
        deck=deck_for_cabin(cabin_number),
        wristband_id=device_id,
        allergies=allergies or None,
        special_requests=special_requests or None,
    )

    try:
        _check_available(session, cabin_number, device_id, device_name)
        store.insert_guest(session, guest)
        guest_id = guest.id
        if require_link and device_id and guest_id is not None:
            _link_device(session, device_id, guest_id)
        session.commit()
    except AssignmentConflict as e:
        logger.warning("Assignment rejected: %s", e)
        return AssignmentResult(success=False, error=str(e), conflict=True)
    except LinkFailure as e:
        session.rollback()
        logger.error("Assignment to cabin %s rolled back: %s", cabin_number, e)
        return AssignmentResult(
            success=False, error=f"Failed to assign guest to cabin {cabin_number}: {e}"
        )
    except IntegrityError as e:
        session.rollback()
        logger.warning(
            "Concurrent assignment for cabin %s / device %s: %s", cabin_number, device_id, e
        )
        return AssignmentResult(
            success=False,
            error=f"Cabin {cabin_number} or device {device_name or device_id} "
            f"was assigned by another request",
            conflict=True,
        )
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Store error assigning guest to cabin %s: %s", cabin_number, e)
        return AssignmentResult(
            success=False, error=f"Failed to assign guest to cabin {cabin_number}: {e}"
        )

    logger.info("Assigned %s to cabin %s (device=%s)", guest_name, cabin_number, device_id)
    if require_link or not device_id or guest_id is None:
        return AssignmentResult(success=True)

    try:
        _link_device(session, device_id, guest_id)
        session.commit()
    except LinkFailure as e:
        session.rollback()
        warning = (
            f"Guest {guest_name} is assigned to cabin {cabin_number} "
            f"but has no device link: {e}"
        )
        logger.warning(warning)
        return AssignmentResult(success=True, warning=warning)
    return AssignmentResult(success=True)


def unassign(session: Session, cabin_number: str) -> AssignmentResult:
    """Remove the cabin's active assignment. A free cabin succeeds trivially."""
    cabin_number = (cabin_number or "").strip()
    if not cabin_number:
        return AssignmentResult(success=False, error="Cabin number is required")

    try:
        guest = store.find_by_cabin(session, cabin_number)
    except SQLAlchemyError as e:
        logger.error("Store error looking up cabin %s: %s", cabin_number, e)
        return AssignmentResult(
            success=False, error=f"Failed to unassign guest from cabin {cabin_number}: {e}"
        )
    if guest is None or guest.id is None:
        return AssignmentResult(success=True)

    guest_id, guest_name = guest.id, guest.name

    # Links go first so no link outlives its guest
    try:
        removed = store.delete_links(session, guest_id)
        session.commit()
        logger.debug("Removed %d device link(s) for guest %s", removed, guest_id)
    except SQLAlchemyError as e:
        session.rollback()
        logger.warning("Could not remove device links for guest %s: %s", guest_id, e)

    try:
        store.delete_guest(session, guest_id)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Store error removing guest %s: %s", guest_id, e)
        return AssignmentResult(
            success=False, error=f"Failed to unassign guest from cabin {cabin_number}: {e}"
        )

    logger.info("Unassigned %s from cabin %s", guest_name, cabin_number)
    return AssignmentResult(success=True)
