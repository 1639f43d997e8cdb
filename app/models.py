from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text, CheckConstraint, Index
from app.db import Base


class Booking(Base):
    __tablename__ = "bookings"
    id = Column(String, primary_key=True)
    requester_id = Column(String, nullable=False, index=True)
    requester_display_name = Column(String, nullable=False)
    requester_email = Column(String, nullable=False)
    venue = Column(String, nullable=False)
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    purpose = Column(Text, nullable=False)
    participant_count = Column(Integer, nullable=False)
    special_requirements = Column(Text)
    status = Column(String, nullable=False, default="pending")  # pending|approved|rejected
    decision_by = Column(String)
    decision_at = Column(DateTime)
    decision_reason = Column(String(500))
    created_at = Column(DateTime, nullable=False)

    # No uniqueness on the window: overlap is checked by the workflow, not the store
    __table_args__ = (
        CheckConstraint("ends_at > starts_at", name="booking_window_valid"),
        CheckConstraint("participant_count > 0", name="booking_participants_positive"),
        CheckConstraint("status in ('pending','approved','rejected')", name="booking_status_valid"),
        Index("ix_bookings_venue_starts_at", "venue", "starts_at"),
    )


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(String, primary_key=True)
    recipient_id = Column(String, nullable=False, index=True)
    booking_id = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    venue_label = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
