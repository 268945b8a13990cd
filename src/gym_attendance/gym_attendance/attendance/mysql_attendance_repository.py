from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.exceptions import PersistenceFailure
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord, NewAttendance
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, member_id, gym_id, attendance_date, check_in_time, check_out_time,
    duration_minutes, needs_review
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        member_id=int(r["member_id"]),
        gym_id=int(r["gym_id"]) if r.get("gym_id") is not None else None,
        attendance_date=r["attendance_date"],
        check_in_time=r["check_in_time"],
        check_out_time=r.get("check_out_time"),
        duration_minutes=r.get("duration_minutes"),
        needs_review=bool(r.get("needs_review") or 0),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def find_open_attendance(self, member_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE member_id=%s AND attendance_date=%s AND check_out_time IS NULL
                """,
                (member_id, attendance_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def find_latest_completed(self, member_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE member_id=%s AND attendance_date=%s AND check_out_time IS NOT NULL
                ORDER BY check_out_time DESC
                LIMIT 1
                """,
                (member_id, attendance_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def insert_attendance(self, record: NewAttendance) -> int:
        # uq_attendance_one_open turns a racing second check-in into a duplicate-key conflict.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(member_id, gym_id, attendance_date, check_in_time)
                VALUES(%s,%s,%s,%s)
                """,
                (record.member_id, record.gym_id, record.attendance_date, record.check_in_time),
            )
            return int(cur.lastrowid)

    def update_attendance_checkout(
        self,
        attendance_id: int,
        *,
        check_out_time: datetime,
        duration_minutes: int,
        needs_review: bool = False,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance
                SET check_out_time=%s, duration_minutes=%s, needs_review=%s
                WHERE attendance_id=%s AND check_out_time IS NULL
                """,
                (check_out_time, int(duration_minutes), int(needs_review), int(attendance_id)),
            )
            if cur.rowcount == 0:
                raise PersistenceFailure("Attendance record is already closed", conflict=True)

    def list_attendance_by_gym_and_date(self, gym_id: Optional[int], attendance_date: date) -> Sequence[AttendanceRecord]:
        gym_clause = "gym_id IS NULL" if gym_id is None else "gym_id=%s"
        params: tuple = (attendance_date,) if gym_id is None else (attendance_date, int(gym_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE attendance_date=%s AND {gym_clause}
                ORDER BY check_in_time ASC, attendance_id ASC
                """,
                params,
            )
            return [_to_record(r) for r in fetchall(cur)]
