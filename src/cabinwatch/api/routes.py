"""REST API endpoints."""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel
from sqlmodel import Session

from cabinwatch.assignment.engine import assign, unassign
from cabinwatch.assignment.models import Guest
from cabinwatch.assignment.store import assigned_device_ids, list_assignments
from cabinwatch.cabins.inventory import (
    Cabin,
    available_wristbands,
    build_cabins,
    cabin_status,
    cabins_by_deck,
    get_cabin_spec,
)
from cabinwatch.config import settings
from cabinwatch.database import get_session
from cabinwatch.snapshot.models import Device
from cabinwatch.tracking.poller import PollState, SnapshotPoller
from cabinwatch.view.analytics import (
    DeviceAnalytics,
    analytics_report,
    device_analytics,
    devices_to_csv,
)
from cabinwatch.view.labels import (
    bucket_accent,
    bucket_collapsed_by_default,
    bucket_description,
    bucket_title,
)
from cabinwatch.view.pipeline import (
    BUCKET_ORDER,
    GUEST_FILTER_ALL,
    DeviceView,
    SortKey,
    SortOrder,
    ViewQuery,
    available_guest_numbers,
    build_view,
)

router = APIRouter(prefix="/api")


# Request models
class AssignGuestRequest(BaseModel):
    guest_name: str
    device_id: str | None = None
    device_name: str = ""
    allergies: str | None = None
    special_requests: str | None = None


def get_poller(request: Request) -> SnapshotPoller:
    return request.app.state.poller


def _poll_status(poller: SnapshotPoller, state: PollState) -> dict[str, Any]:
    return {
        "running": poller.running,
        "source": poller.source.name,
        "stale": state.is_stale,
        "error": state.error,
        "fetched_at": state.fetched_at,
        "failed_at": state.failed_at,
        "last_update": state.snapshot.last_update if state.snapshot else None,
        "device_count": len(state.devices),
    }


def _view_payload(view: DeviceView) -> dict[str, Any]:
    guest_filter = view.query.guest_filter
    return {
        "match_count": view.match_count,
        "counts": {b.value: view.buckets[b].total for b in BUCKET_ORDER},
        "buckets": [
            {
                "bucket": bv.bucket.value,
                "title": bucket_title(bv.bucket),
                "description": bucket_description(bv.bucket, bv.total, guest_filter),
                "collapsed": bucket_collapsed_by_default(bv.bucket),
                "accent": bucket_accent(bv.bucket),
                "total": bv.total,
                "online_count": bv.online_count,
                "devices": list(bv.devices),
            }
            for bv in view.visible_buckets()
        ],
    }


# --- Devices ---


@router.get("/devices")
def list_devices(
    search: str = "",
    sort_by: SortKey = SortKey.name,
    sort_order: SortOrder = SortOrder.asc,
    guest_filter: str = GUEST_FILTER_ALL,
    poller: SnapshotPoller = Depends(get_poller),
) -> dict[str, Any]:
    state = poller.state
    query = ViewQuery(
        search=search, sort_by=sort_by, sort_order=sort_order, guest_filter=guest_filter
    )
    view = build_view(state.devices, query)
    return {**_view_payload(view), "status": _poll_status(poller, state)}


@router.get("/devices/guest-numbers")
def guest_numbers(poller: SnapshotPoller = Depends(get_poller)) -> list[str]:
    return available_guest_numbers(poller.state.devices)


@router.get("/devices/export.csv")
def export_devices(poller: SnapshotPoller = Depends(get_poller)) -> Response:
    return Response(
        content=devices_to_csv(poller.state.devices),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="device-data.csv"'},
    )


# --- Analytics ---


@router.get("/analytics")
def analytics(poller: SnapshotPoller = Depends(get_poller)) -> DeviceAnalytics:
    return device_analytics(poller.state.devices)


@router.get("/analytics/report")
def analytics_text(poller: SnapshotPoller = Depends(get_poller)) -> PlainTextResponse:
    return PlainTextResponse(analytics_report(device_analytics(poller.state.devices)))


# --- Polling control ---


@router.get("/tracking/status")
def tracking_status(poller: SnapshotPoller = Depends(get_poller)) -> dict[str, Any]:
    return _poll_status(poller, poller.state)


@router.post("/tracking/suspend")
async def suspend_tracking(poller: SnapshotPoller = Depends(get_poller)) -> dict[str, Any]:
    await poller.stop()
    return _poll_status(poller, poller.state)


@router.post("/tracking/resume")
async def resume_tracking(poller: SnapshotPoller = Depends(get_poller)) -> dict[str, Any]:
    await poller.start()
    return _poll_status(poller, poller.state)


@router.post("/tracking/refresh")
async def refresh_tracking(poller: SnapshotPoller = Depends(get_poller)) -> dict[str, Any]:
    state = await poller.refresh()
    return _poll_status(poller, state)


# --- Cabins ---


@router.get("/cabins")
def list_cabins(session: Session = Depends(get_session)) -> dict[str, list[Cabin]]:
    return cabins_by_deck(build_cabins(list_assignments(session)))


@router.get("/cabins/status")
def list_cabin_status(session: Session = Depends(get_session)) -> dict[str, Guest | None]:
    return cabin_status(list_assignments(session))


@router.get("/wristbands/available")
def list_available_wristbands(
    session: Session = Depends(get_session),
    poller: SnapshotPoller = Depends(get_poller),
) -> list[Device]:
    return available_wristbands(poller.state.devices, assigned_device_ids(session))


@router.post("/cabins/{cabin_number}/guests", status_code=201)
def assign_guest(
    cabin_number: str,
    request: AssignGuestRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    poller: SnapshotPoller = Depends(get_poller),
) -> dict[str, str | None]:
    if get_cabin_spec(cabin_number) is None:
        raise HTTPException(status_code=404, detail="Cabin not found")

    result = assign(
        session,
        cabin_number,
        request.guest_name,
        request.device_id,
        request.device_name,
        allergies=request.allergies,
        special_requests=request.special_requests,
        require_link=settings.require_device_link,
    )
    if not result.success:
        raise HTTPException(status_code=409 if result.conflict else 400, detail=result.error)

    background_tasks.add_task(poller.refresh)
    return {"status": "assigned", "warning": result.warning}


@router.delete("/cabins/{cabin_number}/guests")
def unassign_guest(
    cabin_number: str,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    poller: SnapshotPoller = Depends(get_poller),
) -> dict[str, str]:
    if get_cabin_spec(cabin_number) is None:
        raise HTTPException(status_code=404, detail="Cabin not found")

    result = unassign(session, cabin_number)
    if not result.success:
        raise HTTPException(status_code=503, detail=result.error)

    background_tasks.add_task(poller.refresh)
    return {"status": "unassigned"}
