from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, NewAttendance


class AttendanceRepository(Protocol):
    """Persistence boundary of the attendance engine.

    Implementations raise PersistenceFailure for any storage error, with
    ``conflict=True`` when the one-open-record guard rejects a write.
    """

    def find_open_attendance(self, member_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def find_latest_completed(self, member_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert_attendance(self, record: NewAttendance) -> int:
        raise NotImplementedError

    def update_attendance_checkout(
        self,
        attendance_id: int,
        *,
        check_out_time: datetime,
        duration_minutes: int,
        needs_review: bool = False,
    ) -> None:
        """Close an open record. Fails if the record is no longer open."""

        raise NotImplementedError

    def list_attendance_by_gym_and_date(self, gym_id: Optional[int], attendance_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
