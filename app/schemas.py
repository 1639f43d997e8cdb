from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel

from app.records import BookingRecord, NotificationRecord


class CreateBookingBody(BaseModel):
    # Loosely typed on purpose: the workflow reports the first invalid field
    venue: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    purpose: Optional[str] = None
    participant_count: Union[int, float, str, None] = None
    special_requirements: Optional[str] = None


class DecisionBody(BaseModel):
    action: str
    reason: Optional[str] = None


class DecisionOut(BaseModel):
    by: str
    at: datetime
    reason: Optional[str] = None


class BookingOut(BaseModel):
    id: str
    requester_id: str
    requester_display_name: str
    requester_email: str
    venue: str
    venue_label: str
    start_time: datetime
    end_time: datetime
    purpose: str
    participant_count: int
    special_requirements: Optional[str] = None
    status: str
    decision: Optional[DecisionOut] = None
    created_at: datetime

    @classmethod
    def from_record(cls, b: BookingRecord) -> "BookingOut":
        return cls(
            id=b.id,
            requester_id=b.requester_id,
            requester_display_name=b.requester_display_name,
            requester_email=b.requester_email,
            venue=b.venue,
            venue_label=b.venue_label,
            start_time=b.window.start,
            end_time=b.window.end,
            purpose=b.purpose,
            participant_count=b.participant_count,
            special_requirements=b.special_requirements,
            status=b.status.value,
            decision=DecisionOut(by=b.decision.by, at=b.decision.at, reason=b.decision.reason) if b.decision else None,
            created_at=b.created_at,
        )


class NotificationOut(BaseModel):
    id: str
    recipient_id: str
    booking_id: str
    kind: str
    venue_label: str
    message: str
    created_at: datetime
    read: bool

    @classmethod
    def from_record(cls, n: NotificationRecord) -> "NotificationOut":
        return cls(
            id=n.id,
            recipient_id=n.recipient_id,
            booking_id=n.booking_id,
            kind=n.kind,
            venue_label=n.venue_label,
            message=n.message,
            created_at=n.created_at,
            read=n.read,
        )


class PrincipalOut(BaseModel):
    id: str
    email: str
    display_name: str
    is_admin: bool
