"""Booking lifecycle: submission, conflict check and admin decision.

The store has no transaction across check-then-write, so two overlapping
submissions racing each other can both be admitted as ``pending``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Optional, Union

from app.conflicts import Candidate, find_conflicts, has_conflict
from app.errors import (
    BookingNotFound,
    ConflictError,
    InvalidTransition,
    NotAuthorized,
    StoreUnavailable,
    ValidationError,
)
from app.policy import AdminPolicy, Principal
from app.records import VENUES, BookingRecord, BookingStatus, Decision, NotificationRecord, Window, venue_label
from app.repository import BookingRepository

logger = logging.getLogger(__name__)

ACTIONS = {
    "approve": BookingStatus.APPROVED,
    "approved": BookingStatus.APPROVED,
    "reject": BookingStatus.REJECTED,
    "rejected": BookingStatus.REJECTED,
}

DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
TIME_RE = re.compile(r"\d{2}:\d{2}", re.ASCII)

# Fits a 32-bit INTEGER column on every backend
MAX_PARTICIPANTS = 2**31 - 1


@dataclass
class BookingRequest:
    """Raw submission as entered by a member; nothing is trusted yet."""

    venue: Optional[str] = None
    date: Union[str, date, None] = None
    start_time: Union[str, time, None] = None
    end_time: Union[str, time, None] = None
    purpose: Optional[str] = None
    participant_count: Any = None
    special_requirements: Optional[str] = None


def _blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value = value.strip()
    try:
        if not DATE_RE.fullmatch(value):
            raise ValueError(value)
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid booking date") from None


def _parse_time(value, label):
    # Naive HH:MM only; stored windows are naive wall-clock times
    if isinstance(value, time):
        if value.tzinfo is not None:
            raise ValidationError(f"Invalid {label}")
        return value
    value = value.strip()
    try:
        if not TIME_RE.fullmatch(value):
            raise ValueError(value)
        return datetime.strptime(value, "%H:%M").time()
    except ValueError:
        raise ValidationError(f"Invalid {label}") from None


def _parse_count(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = int(value) if value.is_integer() else None
    elif isinstance(value, str):
        try:
            value = int(value.strip()) if value.strip().isdecimal() else None
        except ValueError:
            value = None
    if not isinstance(value, int) or not 0 < value <= MAX_PARTICIPANTS:
        return None
    return value


def parse_action(action: str) -> BookingStatus:
    try:
        return ACTIONS[(action or "").strip().lower()]
    except KeyError:
        raise ValidationError(f"Unknown action: {action}") from None


def compose_message(label, status, reason=None):
    message = f"Your booking for {label} has been {status.value}"
    if reason:
        message += f": {reason}"
    return message


class BookingWorkflow:
    def __init__(
        self,
        repository: BookingRepository,
        admin_policy: Optional[AdminPolicy] = None,
        clock: Callable[[], datetime] = datetime.now,
        revalidate_on_approve: bool = True,
        reason_max_length: int = 500,
    ):
        self.repository = repository
        self.admin_policy = admin_policy
        self.clock = clock
        self.revalidate_on_approve = revalidate_on_approve
        self.reason_max_length = reason_max_length

    def is_admin(self, principal: Principal) -> bool:
        if self.admin_policy is None:
            return False
        return bool(self.admin_policy(principal))

    # -- submission ---------------------------------------------------------

    def validate(self, request: BookingRequest) -> tuple[Candidate, int]:
        """Run the submission checks in order and return the parsed candidate.

        Raises ``ValidationError`` or ``ConflictError`` on the first failing check.
        """
        required = (
            request.venue,
            request.date,
            request.start_time,
            request.end_time,
            request.purpose,
            request.participant_count,
        )
        if any(_blank(v) for v in required):
            raise ValidationError("Please fill in all fields")
        venue = request.venue.strip().lower()
        if venue not in VENUES:
            raise ValidationError(f"Unknown venue: {request.venue}")
        day = _parse_date(request.date)
        start = _parse_time(request.start_time, "start time")
        end = _parse_time(request.end_time, "end time")

        if start >= end:
            raise ValidationError("End time must be after start time")

        if day < self.clock().date():
            raise ValidationError("Cannot book for past dates")

        count = _parse_count(request.participant_count)
        if count is None or count <= 0:
            raise ValidationError("Participant count must be a positive integer")

        candidate = Candidate(venue, Window(datetime.combine(day, start), datetime.combine(day, end)))
        # Always re-read: a cached snapshot weakens the guarantee
        if has_conflict(candidate, self.repository.list_bookings(venue=venue)):
            raise ConflictError(f"{venue_label(venue)} is already booked for this time slot", venue=venue)
        return candidate, count

    def submit(self, principal: Principal, request: BookingRequest) -> BookingRecord:
        try:
            candidate, count = self.validate(request)
        except (ValidationError, ConflictError) as exc:
            logger.info("submission by %s refused: %s", principal.id, exc.message)
            raise

        data = {
            "requester_id": principal.id,
            "requester_display_name": principal.display_name,
            "requester_email": principal.email,
            "venue": candidate.venue,
            "starts_at": candidate.window.start,
            "ends_at": candidate.window.end,
            "purpose": request.purpose.strip(),
            "participant_count": count,
            "special_requirements": (request.special_requirements or "").strip() or None,
            "status": BookingStatus.PENDING.value,
            "created_at": self.clock(),
        }
        booking_id = self.repository.create_booking(data)
        logger.info(
            "booking %s admitted as pending: %s %s-%s",
            booking_id, candidate.venue, candidate.window.start, candidate.window.end,
        )
        return BookingRecord.from_row({"id": booking_id, **data})

    # -- decision -----------------------------------------------------------

    def decide(
        self,
        booking_id: str,
        action: str,
        actor_id: str,
        is_admin: bool,
        reason: Optional[str] = None,
    ) -> BookingRecord:
        """Apply an admin decision to a pending booking and notify the requester.

        The status write only lands if the booking is still pending, and is
        committed before the notification is attempted. A notification
        failure is logged and leaves the decision in place.
        """
        if not is_admin:
            raise NotAuthorized("Only administrators can approve or reject bookings")
        status = parse_action(action)

        booking = self.repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFound(f"Booking {booking_id} not found.")
        if booking.status != BookingStatus.PENDING:
            raise InvalidTransition(f"Booking has already been {booking.status.value}")

        reason = (reason or "").strip() or None
        if reason and len(reason) > self.reason_max_length:
            raise ValidationError(f"Reason must be at most {self.reason_max_length} characters")

        if status == BookingStatus.APPROVED and self.revalidate_on_approve:
            clashes = [
                b for b in find_conflicts(
                    Candidate(booking.venue, booking.window),
                    self.repository.list_bookings(venue=booking.venue),
                    statuses=(BookingStatus.APPROVED,),
                )
                if b.id != booking.id
            ]
            if clashes:
                raise ConflictError(
                    f"{booking.venue_label} is already approved for an overlapping time slot",
                    venue=booking.venue,
                )

        decision = Decision(by=actor_id, at=self.clock(), reason=reason)
        self.repository.update_booking(booking_id, {
            "status": status.value,
            "decision_by": decision.by,
            "decision_at": decision.at,
            "decision_reason": decision.reason,
        }, expect_status=BookingStatus.PENDING.value)
        decided = replace(booking, status=status, decision=decision)
        logger.info("booking %s %s by %s", booking_id, status.value, actor_id)

        self._notify(decided)
        return decided

    def decide_as(self, principal: Principal, booking_id: str, action: str, reason: Optional[str] = None) -> BookingRecord:
        return self.decide(booking_id, action, principal.id, self.is_admin(principal), reason)

    def _notify(self, booking: BookingRecord) -> Optional[str]:
        reason = booking.decision.reason if booking.decision else None
        try:
            return self.repository.append_notification({
                "recipient_id": booking.requester_id,
                "booking_id": booking.id,
                "kind": booking.status.value,
                "venue_label": booking.venue_label,
                "message": compose_message(booking.venue_label, booking.status, reason),
                "created_at": self.clock(),
                "read": False,
            })
        except StoreUnavailable:
            logger.warning(
                "booking %s is %s but the requester was not notified",
                booking.id, booking.status.value, exc_info=True,
            )
            return None

    # -- reads --------------------------------------------------------------

    def get(self, principal: Principal, booking_id: str) -> BookingRecord:
        booking = self.repository.get_booking(booking_id)
        # Hide other members' bookings instead of revealing they exist
        if booking is None or (booking.requester_id != principal.id and not self.is_admin(principal)):
            raise BookingNotFound(f"Booking {booking_id} not found.")
        return booking

    def bookings_for(self, principal: Principal) -> list[BookingRecord]:
        return self.repository.list_bookings(requester_id=principal.id)

    def search(self, principal: Principal, status: Optional[str] = None, term: Optional[str] = None) -> list[BookingRecord]:
        """Admin listing, optionally filtered by status and a free-text term."""
        if not self.is_admin(principal):
            raise NotAuthorized("Only administrators can list all bookings")
        if status and status != "all":
            if status not in {s.value for s in BookingStatus}:
                raise ValidationError(f"Unknown status: {status}")
            bookings = self.repository.list_bookings(status=status)
        else:
            bookings = self.repository.list_bookings()
        term = (term or "").strip().lower()
        if not term:
            return bookings
        return [
            b for b in bookings
            if any(term in (field or "").lower() for field in (
                b.venue, b.venue_label, b.requester_display_name, b.requester_email, b.purpose,
            ))
        ]

    def venue_schedule(self, venue: str, day: date, viewer_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Occupied windows for ``venue`` on ``day``, earliest first."""
        if venue not in VENUES:
            raise BookingNotFound(f"Unknown venue: {venue}")
        whole_day = Window(datetime.combine(day, time.min), datetime.combine(day + timedelta(days=1), time.min))
        occupied = find_conflicts(Candidate(venue, whole_day), self.repository.list_bookings(venue=venue))
        results = []
        for b in sorted(occupied, key=lambda b: b.window.start):
            owner = "MINE" if viewer_id and b.requester_id == viewer_id else "OTHER"
            results.append({
                "booking_id": b.id,
                "venue": b.venue,
                "start_time": b.window.start,
                "end_time": b.window.end,
                "status": f"{b.status.value.upper()}_{owner}",
            })
        return results

    def notifications_for(self, principal: Principal) -> list[NotificationRecord]:
        return self.repository.list_notifications(recipient_id=principal.id)

    def mark_read(self, principal: Principal, notification_id: str) -> bool:
        return self.repository.mark_notification_read(notification_id, principal.id)
