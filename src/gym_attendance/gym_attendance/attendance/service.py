from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, List, Optional

from ..common.datetime_utils import elapsed_minutes, now_local, to_gym_local
from ..common.locks import KeyedLocks
from ..core.enums import IdentifierKind, ScanAction
from ..core.exceptions import GymMismatch, GymNotFound, MemberInactive, PersistenceFailure
from ..directory.model import Gym, Member
from ..directory.service import DirectoryService
from .factory import CyclePolicyFactory
from .model import AttendanceRecord, NewAttendance, ScanOutcome
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceEngine:
    """Check-in/check-out state machine per (member, date).

    A scan is resolved through the directory, validated, then toggles the
    member's attendance for the gym-local day: no open record opens one, an
    open record is closed with its duration. What happens after a completed
    cycle depends on the cycle policy (see CyclePolicyFactory).

    Every rejection raises before any write; every accepted scan performs
    exactly one write, or none for ALREADY_COMPLETED.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        directory: DirectoryService,
        *,
        policy_factory: CyclePolicyFactory | None = None,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._directory = directory
        self._policies = policy_factory or CyclePolicyFactory()
        self._locks = locks or KeyedLocks()
        self._clock = clock

    def record_scan(
        self,
        member_identifier: str,
        gym_qr_code: Optional[str],
        occurred_at: datetime,
        *,
        kind: Optional[IdentifierKind] = None,
        gym_id: Optional[int] = None,
        multi_session: Optional[bool] = None,
    ) -> ScanOutcome:
        """Apply one scan.

        ``gym_qr_code`` is the scanned gym code; when absent, ``gym_id`` (gym
        known from the session) or else the member's own gym is used.
        ``multi_session`` overrides the gym's cycle policy for this call.
        """

        member = self._directory.find_member_by_identifier(member_identifier, kind)
        if not member.is_active:
            logger.info("scan rejected: member %s is %s", member.member_id, member.status.value)
            raise MemberInactive(member.member_id, member.status.value)

        gym = self._resolve_gym(member, gym_qr_code=gym_qr_code, gym_id=gym_id)
        local_moment = to_gym_local(occurred_at, gym.timezone if gym else None)
        day = local_moment.date()

        if member.membership_expired_on(day):
            logger.info("scan rejected: membership of member %s ended %s", member.member_id, member.membership_end_date)
            raise MemberInactive(member.member_id, "expired")

        policy = self._policies.for_scan(gym=gym, multi_session=multi_session)
        record_gym_id = gym.gym_id if gym else member.gym_id

        with self._locks.hold(member.member_id):
            open_record = self._attendance.find_open_attendance(member.member_id, day)
            completed = None if open_record else self._attendance.find_latest_completed(member.member_id, day)
            action = policy.decide(open_record=open_record, completed=completed)

            try:
                if action == ScanAction.CHECKED_OUT:
                    record = self._check_out(open_record, local_moment)
                elif action == ScanAction.CHECKED_IN:
                    record = self._check_in(member.member_id, record_gym_id, day, local_moment)
                else:
                    record = completed
            except PersistenceFailure as exc:
                logger.warning(
                    "scan for member %s failed during %s (conflict=%s): %s",
                    member.member_id,
                    action.value,
                    exc.conflict,
                    exc,
                )
                raise

        logger.info("member %s %s at gym %s on %s", member.member_id, action.value, record_gym_id, day)
        return ScanOutcome(action=action, member_id=member.member_id, gym_id=record_gym_id, record=record)

    def _resolve_gym(self, member: Member, *, gym_qr_code: Optional[str], gym_id: Optional[int]) -> Optional[Gym]:
        if gym_qr_code:
            gym = self._directory.find_gym_by_code(gym_qr_code)
            if gym_id is not None and gym.gym_id != gym_id:
                logger.info("scan rejected: code of gym %s scanned at gym %s", gym.gym_id, gym_id)
                raise GymMismatch(member.member_id, gym_id, gym.gym_id)
            if member.gym_id != gym.gym_id:
                logger.info("scan rejected: member %s belongs to gym %s, scanned %s", member.member_id, member.gym_id, gym.gym_id)
                raise GymMismatch(member.member_id, member.gym_id, gym.gym_id)
            return gym

        if gym_id is not None:
            if member.gym_id != gym_id:
                raise GymMismatch(member.member_id, member.gym_id, gym_id)
            gym = self._directory.get_gym(gym_id)
            if not gym:
                raise GymNotFound(str(gym_id))
            return gym

        if member.gym_id is None:
            # single-tenant legacy member
            return None
        return self._directory.get_gym(member.gym_id)

    def _check_in(self, member_id: int, gym_id: Optional[int], day: date, moment: datetime) -> AttendanceRecord:
        new = NewAttendance(member_id=member_id, gym_id=gym_id, attendance_date=day, check_in_time=moment)
        attendance_id = self._attendance.insert_attendance(new)
        return AttendanceRecord(
            attendance_id=attendance_id,
            member_id=member_id,
            gym_id=gym_id,
            attendance_date=day,
            check_in_time=moment,
        )

    def _check_out(self, record: AttendanceRecord, moment: datetime) -> AttendanceRecord:
        minutes = elapsed_minutes(record.check_in_time, moment)
        needs_review = minutes < 0
        if needs_review:
            logger.warning(
                "attendance %s: checkout %s precedes check-in %s; duration clamped to 0",
                record.attendance_id,
                moment,
                record.check_in_time,
            )
        duration = max(0, minutes)

        self._attendance.update_attendance_checkout(
            record.attendance_id,
            check_out_time=moment,
            duration_minutes=duration,
            needs_review=needs_review,
        )
        return replace(record, check_out_time=moment, duration_minutes=duration, needs_review=needs_review)

    def list_attendance(self, gym_id: Optional[int], day: date) -> List[AttendanceRecord]:
        """All records of a gym for one day, by check-in time."""
        rows = self._attendance.list_attendance_by_gym_and_date(gym_id, day)
        return sorted(rows, key=lambda r: (r.check_in_time, r.attendance_id))

    def currently_present(self, gym_id: Optional[int], *, today: Optional[date] = None) -> List[AttendanceRecord]:
        if today is None:
            today = self.today_for(gym_id)
        return [r for r in self.list_attendance(gym_id, today) if r.is_open]

    def today_for(self, gym_id: Optional[int]) -> date:
        gym = self._directory.get_gym(gym_id) if gym_id is not None else None
        return to_gym_local(self._clock(), gym.timezone if gym else None).date()
