from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import ScanAction


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one gym visit (check-in, optionally closed by a check-out)."""

    attendance_id: int
    member_id: int
    gym_id: Optional[int]
    attendance_date: date
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    needs_review: bool = False

    @property
    def is_open(self) -> bool:
        return self.check_out_time is None

    @property
    def check_in(self) -> time:
        return self.check_in_time.time()

    @property
    def check_out(self) -> Optional[time]:
        return self.check_out_time.time() if self.check_out_time else None


@dataclass(frozen=True)
class NewAttendance:
    """Insert payload; the store assigns the id."""

    member_id: int
    gym_id: Optional[int]
    attendance_date: date
    check_in_time: datetime


@dataclass(frozen=True)
class ScanOutcome:
    """Result of AttendanceEngine.record_scan.

    ``record`` is the record as it stands after the scan (for ALREADY_COMPLETED,
    the completed one).
    """

    action: ScanAction
    member_id: int
    gym_id: Optional[int]
    record: AttendanceRecord

    @property
    def duration_minutes(self) -> Optional[int]:
        return self.record.duration_minutes
