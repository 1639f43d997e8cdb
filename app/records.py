import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

# Closed set of bookable venues: code -> display label
VENUES = {
    "canteen": "Canteen",
    "auditorium": "Auditorium",
}


def venue_label(venue: str) -> str:
    return VENUES.get(venue, venue.title())


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Window:
    """Half-open interval ``[start, end)``."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class Decision:
    by: str
    at: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class BookingRecord:
    id: str
    requester_id: str
    requester_display_name: str
    requester_email: str
    venue: str
    window: Window
    purpose: str
    participant_count: int
    status: BookingStatus
    created_at: datetime
    special_requirements: Optional[str] = None
    decision: Optional[Decision] = None

    @property
    def venue_label(self) -> str:
        return venue_label(self.venue)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "BookingRecord":
        decision = None
        if row.get("decision_by"):
            decision = Decision(by=row["decision_by"], at=row["decision_at"], reason=row.get("decision_reason"))
        return cls(
            id=row["id"],
            requester_id=row["requester_id"],
            requester_display_name=row["requester_display_name"],
            requester_email=row["requester_email"],
            venue=row["venue"],
            window=Window(row["starts_at"], row["ends_at"]),
            purpose=row["purpose"],
            participant_count=row["participant_count"],
            special_requirements=row.get("special_requirements"),
            status=BookingStatus(row["status"]),
            decision=decision,
            created_at=row["created_at"],
        )


@dataclass(frozen=True)
class NotificationRecord:
    id: str
    recipient_id: str
    booking_id: str
    kind: str
    venue_label: str
    message: str
    created_at: datetime
    read: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "NotificationRecord":
        return cls(
            id=row["id"],
            recipient_id=row["recipient_id"],
            booking_id=row["booking_id"],
            kind=row["kind"],
            venue_label=row["venue_label"],
            message=row["message"],
            created_at=row["created_at"],
            read=bool(row.get("read", False)),
        )
