from datetime import date

from fastapi import APIRouter, Depends, Query

from app.deps import get_principal, get_workflow
from app.policy import Principal
from app.records import VENUES
from app.workflow import BookingWorkflow

router = APIRouter()


@router.get("")
def list_venues():
    return [{"venue": code, "label": label} for code, label in VENUES.items()]


@router.get("/{venue}/schedule")
def venue_schedule(
    venue: str,
    day: date = Query(alias="date"),
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Occupied windows of a venue for one day, with caller-aware status:
      - PENDING_MINE / APPROVED_MINE: booked by the caller
      - PENDING_OTHER / APPROVED_OTHER: booked by someone else
    Rejected bookings free their window and are not listed.
    """
    return workflow.venue_schedule(venue, day, viewer_id=principal.id)
