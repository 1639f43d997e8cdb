from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.deps import get_principal, get_workflow
from app.policy import Principal
from app.schemas import BookingOut, CreateBookingBody, DecisionBody
from app.workflow import BookingRequest, BookingWorkflow

router = APIRouter()


@router.post("", status_code=201, response_model=BookingOut)
def create_booking(
    body: CreateBookingBody,
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Submit a booking request. It is admitted as pending when:
      - every required field is present and well formed
      - the date is today or later
      - no pending or approved booking for the venue overlaps the window
    The overlap check reads the store and then writes; it is not atomic.
    """
    booking = workflow.submit(principal, BookingRequest(**body.model_dump()))
    return BookingOut.from_record(booking)


@router.get("/mine", response_model=list[BookingOut])
def my_bookings(
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return [BookingOut.from_record(b) for b in workflow.bookings_for(principal)]


@router.get("", response_model=list[BookingOut])
def list_bookings(
    status: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None),
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """Admin dashboard listing. ``status`` may be ``all``; ``q`` searches venue, requester and purpose."""
    return [BookingOut.from_record(b) for b in workflow.search(principal, status=status, term=q)]


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: str,
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return BookingOut.from_record(workflow.get(principal, booking_id))


@router.post("/{booking_id}/decision", response_model=BookingOut)
def decide_booking(
    booking_id: str,
    body: DecisionBody,
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    """
    Approve or reject a pending booking. Decisions are final; the requester
    receives a notification carrying the optional reason.
    """
    booking = workflow.decide_as(principal, booking_id, body.action, body.reason)
    return BookingOut.from_record(booking)
