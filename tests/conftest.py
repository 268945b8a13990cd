from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.gym_attendance.gym_attendance.attendance.factory import CyclePolicyFactory
from src.gym_attendance.gym_attendance.attendance.model import AttendanceRecord, NewAttendance
from src.gym_attendance.gym_attendance.attendance.service import AttendanceEngine
from src.gym_attendance.gym_attendance.core.enums import GymStatus, MemberStatus
from src.gym_attendance.gym_attendance.core.exceptions import PersistenceFailure
from src.gym_attendance.gym_attendance.directory.model import Gym, Member, MembershipPlan
from src.gym_attendance.gym_attendance.directory.service import DirectoryService
from src.gym_attendance.gym_attendance.members.service import (
    GymAdminAuthService,
    MemberAuthService,
    MemberRegistrationService,
)
from src.gym_attendance.gym_attendance.notifications.dispatcher import CredentialNotifier, NotificationReport
from src.gym_attendance.gym_attendance.reports.service import AttendanceReportService

DOWNTOWN_CODE = "GYM-D0E1F2A3"
UPTOWN_CODE = "GYM-B4C5D6E7"
CLOSED_CODE = "GYM-00C105ED"


class InMemoryMembers:
    def __init__(self, members=()):
        self.by_id: dict[int, Member] = {m.member_id: m for m in members}
        self._next_id = max(self.by_id, default=0) + 1

    def get_by_id(self, member_id: int) -> Optional[Member]:
        return self.by_id.get(member_id)

    def get_by_barcode(self, barcode: str) -> Optional[Member]:
        return next((m for m in self.by_id.values() if m.barcode == barcode), None)

    def get_by_username(self, username: str) -> Optional[Member]:
        return next((m for m in self.by_id.values() if m.username == username), None)

    def get_by_email(self, email: str) -> Optional[Member]:
        return next((m for m in self.by_id.values() if m.email.lower() == email.lower()), None)

    def create_member(self, **fields) -> int:
        member_id = self._next_id
        self._next_id += 1
        self.by_id[member_id] = Member(member_id=member_id, **fields)
        return member_id


class InMemoryGyms:
    def __init__(self, gyms=()):
        self.by_id: dict[int, Gym] = {g.gym_id: g for g in gyms}

    def get_by_id(self, gym_id: int) -> Optional[Gym]:
        return self.by_id.get(gym_id)

    def get_by_qr_code(self, code: str) -> Optional[Gym]:
        return next((g for g in self.by_id.values() if g.gym_qr_code == code.upper()), None)

    def get_by_username(self, username: str) -> Optional[Gym]:
        return next((g for g in self.by_id.values() if g.username == username), None)


class InMemoryPlans:
    def __init__(self, plans=()):
        self.by_id = {p.plan_id: p for p in plans}

    def get_by_id(self, plan_id: int) -> Optional[MembershipPlan]:
        return self.by_id.get(plan_id)


class InMemoryAttendance:
    """Keeps the one-open-record-per-member-and-day rule like the MySQL unique key."""

    def __init__(self):
        self.records: dict[int, AttendanceRecord] = {}
        self.writes = 0
        self.fail_next_write: Optional[PersistenceFailure] = None
        self._id = 0

    def _maybe_fail(self):
        if self.fail_next_write is not None:
            exc, self.fail_next_write = self.fail_next_write, None
            raise exc

    def find_open_attendance(self, member_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        return next(
            (
                r
                for r in self.records.values()
                if r.member_id == member_id and r.attendance_date == attendance_date and r.is_open
            ),
            None,
        )

    def find_latest_completed(self, member_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        done = [
            r
            for r in self.records.values()
            if r.member_id == member_id and r.attendance_date == attendance_date and not r.is_open
        ]
        return max(done, key=lambda r: (r.check_in_time, r.attendance_id), default=None)

    def insert_attendance(self, new: NewAttendance) -> int:
        self._maybe_fail()
        if self.find_open_attendance(new.member_id, new.attendance_date):
            raise PersistenceFailure("duplicate open attendance", conflict=True)
        self._id += 1
        self.records[self._id] = AttendanceRecord(
            attendance_id=self._id,
            member_id=new.member_id,
            gym_id=new.gym_id,
            attendance_date=new.attendance_date,
            check_in_time=new.check_in_time,
        )
        self.writes += 1
        return self._id

    def update_attendance_checkout(self, attendance_id, *, check_out_time, duration_minutes, needs_review=False):
        self._maybe_fail()
        record = self.records.get(attendance_id)
        if record is None or not record.is_open:
            raise PersistenceFailure("attendance already closed", conflict=True)
        self.records[attendance_id] = replace(
            record,
            check_out_time=check_out_time,
            duration_minutes=duration_minutes,
            needs_review=needs_review,
        )
        self.writes += 1

    def list_attendance_by_gym_and_date(self, gym_id, attendance_date):
        return [r for r in self.records.values() if r.gym_id == gym_id and r.attendance_date == attendance_date]


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier(CredentialNotifier):
    def __init__(self):
        super().__init__()
        self.calls = []

    def notify_credentials(self, contact, payload):
        self.calls.append((contact, payload))
        return NotificationReport(sent=["email"])


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 0, 0)


@pytest.fixture
def clock(fixed_now) -> FakeClock:
    return FakeClock(fixed_now)


@pytest.fixture
def gyms() -> InMemoryGyms:
    return InMemoryGyms(
        [
            Gym(
                gym_id=1,
                name="Downtown Fitness",
                email="downtown@example.com",
                gym_qr_code=DOWNTOWN_CODE,
                status=GymStatus.ACTIVE,
                username="downtown_admin",
                password_hash=generate_password_hash("admin123"),
            ),
            Gym(
                gym_id=2,
                name="Uptown Strength",
                email="uptown@example.com",
                gym_qr_code=UPTOWN_CODE,
                status=GymStatus.ACTIVE,
                timezone="Asia/Tokyo",
                multi_session=True,
            ),
            Gym(
                gym_id=3,
                name="Closed Gym",
                email="closed@example.com",
                gym_qr_code=CLOSED_CODE,
                status=GymStatus.INACTIVE,
            ),
        ]
    )


@pytest.fixture
def members() -> InMemoryMembers:
    pw = generate_password_hash("member123")
    return InMemoryMembers(
        [
            Member(
                member_id=1,
                gym_id=1,
                name="John Carter",
                email="john@example.com",
                phone="+15550001",
                status=MemberStatus.ACTIVE,
                username="john",
                password_hash=pw,
                barcode="100000000001",
            ),
            Member(
                member_id=2,
                gym_id=1,
                name="Jane Doe",
                email="jane@example.com",
                phone="+15550002",
                status=MemberStatus.ACTIVE,
                username="jane",
                password_hash=pw,
                barcode="100000000002",
                membership_end_date=date(2026, 2, 28),
            ),
            Member(
                member_id=3,
                gym_id=1,
                name="Mike Ross",
                email="mike@example.com",
                phone="",
                status=MemberStatus.SUSPENDED,
                username="mike",
                password_hash=pw,
                barcode="100000000003",
            ),
            Member(
                member_id=4,
                gym_id=2,
                name="Lisa Park",
                email="lisa@example.com",
                phone="",
                status=MemberStatus.ACTIVE,
                username="lisa",
                password_hash=pw,
                barcode="200000000004",
            ),
        ]
    )


@pytest.fixture
def plans() -> InMemoryPlans:
    return InMemoryPlans(
        [
            MembershipPlan(1, 1, "Monthly", "monthly", 30, Decimal("49.00")),
            MembershipPlan(2, 1, "Legacy", "monthly", 30, Decimal("39.00"), is_active=False),
            MembershipPlan(3, 2, "Uptown Yearly", "yearly", 365, Decimal("399.00")),
        ]
    )


@pytest.fixture
def attendance() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def directory(members, gyms, plans) -> DirectoryService:
    return DirectoryService(members, gyms, plans)


@pytest.fixture
def engine(attendance, directory, clock) -> AttendanceEngine:
    return AttendanceEngine(attendance, directory, policy_factory=CyclePolicyFactory(), clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def container(members, gyms, directory, engine, notifier, clock):
    return SimpleNamespace(
        directory=directory,
        attendance_engine=engine,
        member_auth_service=MemberAuthService(members),
        gym_admin_auth_service=GymAdminAuthService(gyms),
        registration_service=MemberRegistrationService(members, directory, notifier, clock=clock),
        report_service=AttendanceReportService(engine, members),
        clock=clock,
    )


@pytest.fixture
def app(container):
    from src.gym_attendance.gym_attendance.main import create_app

    return create_app("config.testing", container=container)


@pytest.fixture
def client(app):
    return app.test_client()
