from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..attendance.service import AttendanceEngine
from ..directory.repository import MemberRepository

REPORT_FIELDS = [
    "date",
    "member_id",
    "member_name",
    "check_in",
    "check_out",
    "duration_minutes",
    "needs_review",
]


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: dict


class AttendanceReportService:
    """Daily attendance sheet for one gym (front-desk dashboard and CSV export)."""

    def __init__(self, engine: AttendanceEngine, members: MemberRepository):
        self._engine = engine
        self._members = members

    def build_daily_report(self, *, gym_id: Optional[int], day: date) -> ReportData:
        records = self._engine.list_attendance(gym_id, day)

        names: dict[int, str] = {}
        rows: list[dict] = []
        durations: list[int] = []
        for r in records:
            if r.member_id not in names:
                member = self._members.get_by_id(r.member_id)
                names[r.member_id] = member.name if member else f"#{r.member_id}"

            rows.append(
                {
                    "date": r.attendance_date.strftime("%Y-%m-%d"),
                    "member_id": r.member_id,
                    "member_name": names[r.member_id],
                    "check_in": r.check_in_time.strftime("%H:%M"),
                    "check_out": r.check_out_time.strftime("%H:%M") if r.check_out_time else "-",
                    "duration_minutes": r.duration_minutes if r.duration_minutes is not None else "",
                    "needs_review": "yes" if r.needs_review else "",
                }
            )
            if r.duration_minutes is not None:
                durations.append(r.duration_minutes)

        present = sum(1 for r in records if r.is_open)
        summary = {
            "date": day.strftime("%Y-%m-%d"),
            "total_checkins": len(records),
            "currently_present": present,
            "completed": len(records) - present,
            "average_duration_minutes": round(sum(durations) / len(durations)) if durations else 0,
        }
        return ReportData(rows=rows, summary=summary)

    @staticmethod
    def to_csv(report: ReportData) -> bytes:
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=REPORT_FIELDS)
        writer.writeheader()
        for row in report.rows:
            writer.writerow(row)
        return out.getvalue().encode("utf-8-sig")
