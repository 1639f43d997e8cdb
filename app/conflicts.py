"""Overlap checks between a requested window and existing bookings.

Pure functions: no I/O, no clock. Timestamps are compared exactly as they were
written; no timezone normalization happens here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from app.records import BookingRecord, BookingStatus, Window

# Statuses that hold a slot
OCCUPYING = (BookingStatus.PENDING, BookingStatus.APPROVED)


@dataclass(frozen=True)
class Candidate:
    venue: str
    window: Window


def windows_overlap(a: Window, b: Window) -> bool:
    """Strict half-open test: ``[s1,e1)`` and ``[s2,e2)`` overlap iff s1 < e2 and s2 < e1.

    Back-to-back windows (one ends exactly when the other starts) do not overlap.
    """
    return a.start < b.end and b.start < a.end


def find_conflicts(
    candidate: Candidate,
    existing: Iterable[BookingRecord],
    statuses: Sequence[BookingStatus] = OCCUPYING,
) -> list[BookingRecord]:
    return [
        b for b in existing
        if b.venue == candidate.venue
        and b.status in statuses
        and windows_overlap(candidate.window, b.window)
    ]


def has_conflict(candidate: Candidate, existing: Iterable[BookingRecord]) -> bool:
    # Rejected bookings never count; the requester's own bookings are not exempt
    return any(
        b.venue == candidate.venue
        and b.status != BookingStatus.REJECTED
        and windows_overlap(candidate.window, b.window)
        for b in existing
    )
