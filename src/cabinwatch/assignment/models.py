"""Guest assignment models: the guest row and its device link."""

from datetime import UTC, datetime

from sqlmodel import Field, SQLModel


class Guest(SQLModel, table=True):
    """A guest bound to one cabin and, optionally, one wristband.

    Unique wristband_id and cabin_number let the store reject the losing
    writer when two assignments race past the engine's checks. Ids are
    never reused, so a link left behind by a failed unassign cannot attach
    itself to a later guest.
    """

    __table_args__ = {"sqlite_autoincrement": True}

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    cabin_number: str = Field(index=True, unique=True)
    cabin_name: str | None = None
    deck: str | None = None
    wristband_id: str | None = Field(default=None, index=True, unique=True)
    allergies: str | None = None
    special_requests: str | None = None
    photo_url_1: str | None = None
    photo_url_2: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class GuestDeviceLink(SQLModel, table=True):
    """Link table consumed by tracking: which guest wears which device."""

    id: int | None = Field(default=None, primary_key=True)
    device_id: str = Field(index=True)
    guest_id: int = Field(foreign_key="guest.id", index=True)
