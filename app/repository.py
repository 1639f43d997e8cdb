"""Booking store adapter: SQLAlchemy and in-memory implementations, no business rules."""

import abc
import logging
import uuid
from typing import Any, Callable, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import BookingNotFound, InvalidTransition, StoreUnavailable
from app.events import ChangeFeed, Listener, feed as default_feed
from app.models import Booking, Notification
from app.records import BookingRecord, NotificationRecord

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


class BookingRepository(abc.ABC):
    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.feed = feed or default_feed

    @abc.abstractmethod
    def create_booking(self, data: Mapping[str, Any]) -> str:
        """Persist a new booking and return its store-assigned id."""

    @abc.abstractmethod
    def update_booking(self, booking_id: str, fields: Mapping[str, Any], expect_status: Optional[str] = None) -> None:
        """Merge ``fields`` into the booking; other fields are left untouched.

        With ``expect_status`` the write only applies while the booking still has
        that status, otherwise ``InvalidTransition`` is raised.
        """

    @abc.abstractmethod
    def get_booking(self, booking_id: str) -> Optional[BookingRecord]:
        ...

    @abc.abstractmethod
    def list_bookings(
        self,
        venue: Optional[str] = None,
        status: Optional[str] = None,
        requester_id: Optional[str] = None,
    ) -> list[BookingRecord]:
        """Current bookings, newest first."""

    @abc.abstractmethod
    def append_notification(self, data: Mapping[str, Any]) -> str:
        ...

    @abc.abstractmethod
    def list_notifications(self, recipient_id: Optional[str] = None) -> list[NotificationRecord]:
        ...

    @abc.abstractmethod
    def mark_notification_read(self, notification_id: str, recipient_id: str) -> bool:
        """Return False when the notification does not exist for this recipient."""

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        return self.feed.subscribe(collection, listener)

    def _publish(self, collection: str) -> None:
        if not self.feed.has_listeners(collection):
            return
        try:
            snapshot = self.list_bookings() if collection == "bookings" else self.list_notifications()
        except StoreUnavailable:
            logger.warning("could not read %s snapshot for subscribers", collection, exc_info=True)
            return
        self.feed.publish(collection, snapshot)


def _as_row(obj) -> dict[str, Any]:
    return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}


class SqlBookingRepository(BookingRepository):
    def __init__(self, db: Session, feed: Optional[ChangeFeed] = None):
        super().__init__(feed)
        self.db = db

    def _fail(self, action: str, exc: SQLAlchemyError) -> StoreUnavailable:
        self.db.rollback()
        logger.error("store failure during %s: %s", action, exc)
        return StoreUnavailable(f"Booking store unavailable during {action}. Please try again.")

    def create_booking(self, data):
        booking_id = new_id()
        try:
            self.db.add(Booking(id=booking_id, **data))
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("create", exc) from exc
        self._publish("bookings")
        return booking_id

    def update_booking(self, booking_id, fields, expect_status=None):
        stmt = update(Booking).where(Booking.id == booking_id)
        if expect_status is not None:
            stmt = stmt.where(Booking.status == expect_status)
        stmt = stmt.values(**fields)
        try:
            res = self.db.execute(stmt)
            if res.rowcount != 1:
                self.db.rollback()
                if self.db.get(Booking, booking_id) is None:
                    raise BookingNotFound(f"Booking {booking_id} not found.")
                raise InvalidTransition(f"Booking {booking_id} is no longer {expect_status}")
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update", exc) from exc
        self._publish("bookings")

    def get_booking(self, booking_id):
        try:
            row = self.db.get(Booking, booking_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise self._fail("read", exc) from exc
        return BookingRecord.from_row(_as_row(row)) if row else None

    def list_bookings(self, venue=None, status=None, requester_id=None):
        stmt = select(Booking)
        if venue:
            stmt = stmt.where(Booking.venue == venue)
        if status:
            stmt = stmt.where(Booking.status == status)
        if requester_id:
            stmt = stmt.where(Booking.requester_id == requester_id)
        stmt = stmt.order_by(Booking.created_at.desc())
        try:
            rows = self.db.execute(stmt.execution_options(populate_existing=True)).scalars().all()
        except SQLAlchemyError as exc:
            raise self._fail("read", exc) from exc
        return [BookingRecord.from_row(_as_row(r)) for r in rows]

    def append_notification(self, data):
        notification_id = new_id()
        try:
            self.db.add(Notification(id=notification_id, **data))
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("notification append", exc) from exc
        self._publish("notifications")
        return notification_id

    def list_notifications(self, recipient_id=None):
        stmt = select(Notification)
        if recipient_id:
            stmt = stmt.where(Notification.recipient_id == recipient_id)
        stmt = stmt.order_by(Notification.created_at.desc())
        try:
            rows = self.db.execute(stmt.execution_options(populate_existing=True)).scalars().all()
        except SQLAlchemyError as exc:
            raise self._fail("read", exc) from exc
        return [NotificationRecord.from_row(_as_row(r)) for r in rows]

    def mark_notification_read(self, notification_id, recipient_id):
        stmt = (
            update(Notification)
            .where(Notification.id == notification_id, Notification.recipient_id == recipient_id)
            .values(read=True)
        )
        try:
            res = self.db.execute(stmt)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("update", exc) from exc
        if res.rowcount != 1:
            return False
        self._publish("notifications")
        return True


class InMemoryBookingRepository(BookingRepository):
    """Dict-backed store.

    Operation names listed in ``fail_on`` (``"create"``, ``"update"``,
    ``"read"``, ``"notify"``) raise ``StoreUnavailable``, which lets callers
    exercise partial-failure paths.
    """

    def __init__(self, feed: Optional[ChangeFeed] = None):
        super().__init__(feed or ChangeFeed())
        self.bookings: dict[str, dict[str, Any]] = {}
        self.notifications: dict[str, dict[str, Any]] = {}
        self.fail_on: set[str] = set()

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise StoreUnavailable(f"Booking store unavailable during {op}. Please try again.")

    def create_booking(self, data):
        self._check("create")
        booking_id = new_id()
        self.bookings[booking_id] = {"id": booking_id, **data}
        self._publish("bookings")
        return booking_id

    def update_booking(self, booking_id, fields, expect_status=None):
        self._check("update")
        if booking_id not in self.bookings:
            raise BookingNotFound(f"Booking {booking_id} not found.")
        if expect_status is not None and self.bookings[booking_id]["status"] != expect_status:
            raise InvalidTransition(f"Booking {booking_id} is no longer {expect_status}")
        self.bookings[booking_id].update(fields)
        self._publish("bookings")

    def get_booking(self, booking_id):
        self._check("read")
        row = self.bookings.get(booking_id)
        return BookingRecord.from_row(row) if row else None

    def list_bookings(self, venue=None, status=None, requester_id=None):
        self._check("read")
        rows = [
            r for r in self.bookings.values()
            if (venue is None or r["venue"] == venue)
            and (status is None or r["status"] == status)
            and (requester_id is None or r["requester_id"] == requester_id)
        ]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [BookingRecord.from_row(r) for r in rows]

    def append_notification(self, data):
        self._check("notify")
        notification_id = new_id()
        self.notifications[notification_id] = {"id": notification_id, "read": False, **data}
        self._publish("notifications")
        return notification_id

    def list_notifications(self, recipient_id=None):
        self._check("read")
        rows = [r for r in self.notifications.values() if recipient_id is None or r["recipient_id"] == recipient_id]
        rows.sort(key=lambda r: r["created_at"], reverse=True)
        return [NotificationRecord.from_row(r) for r in rows]

    def mark_notification_read(self, notification_id, recipient_id):
        self._check("update")
        row = self.notifications.get(notification_id)
        if row is None or row["recipient_id"] != recipient_id:
            return False
        row["read"] = True
        self._publish("notifications")
        return True
