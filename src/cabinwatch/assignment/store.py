"""Assignment store queries.

Thin wrappers over the guest and link tables. Callers own commit/rollback.
"""

from sqlmodel import Session, select

from cabinwatch.assignment.models import Guest, GuestDeviceLink


def find_by_device(session: Session, device_id: str) -> Guest | None:
    """Active assignment currently holding this wristband, if any."""
    return session.exec(select(Guest).where(Guest.wristband_id == device_id)).first()


def find_by_cabin(session: Session, cabin_number: str) -> Guest | None:
    """Active assignment occupying this cabin, if any."""
    return session.exec(select(Guest).where(Guest.cabin_number == cabin_number)).first()


def list_assignments(session: Session) -> list[Guest]:
    stmt = select(Guest).order_by(Guest.cabin_number)
    return list(session.exec(stmt).all())


def assigned_device_ids(session: Session) -> set[str]:
    stmt = select(Guest.wristband_id).where(Guest.wristband_id != None)  # noqa: E711
    return {device_id for device_id in session.exec(stmt).all() if device_id}


def insert_guest(session: Session, guest: Guest) -> Guest:
    session.add(guest)
    session.flush()
    return guest


def insert_link(session: Session, device_id: str, guest_id: int) -> GuestDeviceLink:
    link = GuestDeviceLink(device_id=device_id, guest_id=guest_id)
    session.add(link)
    session.flush()
    return link


def get_links(session: Session, guest_id: int) -> list[GuestDeviceLink]:
    stmt = select(GuestDeviceLink).where(GuestDeviceLink.guest_id == guest_id)
    return list(session.exec(stmt).all())


def delete_links(session: Session, guest_id: int) -> int:
    """Delete every link pointing at a guest. Returns the number removed."""
    links = get_links(session, guest_id)
    for link in links:
        session.delete(link)
    session.flush()
    return len(links)


def delete_guest(session: Session, guest_id: int) -> bool:
    guest = session.get(Guest, guest_id)
    if guest is None:
        return False
    session.delete(guest)
    session.flush()
    return True
