from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone

import pytest

from src.gym_attendance.gym_attendance.core.enums import IdentifierKind, ScanAction
from src.gym_attendance.gym_attendance.core.exceptions import (
    GymMismatch,
    GymNotFound,
    MemberInactive,
    MemberNotFound,
    PersistenceFailure,
    ValidationError,
)

DOWNTOWN = "GYM-D0E1F2A3"
UPTOWN = "GYM-B4C5D6E7"


def test_first_scan_checks_in(engine, attendance):
    outcome = engine.record_scan("100000000001", DOWNTOWN, datetime(2026, 3, 2, 9, 0))

    assert outcome.action == ScanAction.CHECKED_IN
    assert outcome.member_id == 1
    assert outcome.gym_id == 1
    assert outcome.record.is_open
    assert outcome.record.attendance_date == date(2026, 3, 2)
    assert attendance.writes == 1


def test_second_scan_checks_out_with_duration(engine, attendance):
    engine.record_scan("100000000001", DOWNTOWN, datetime(2026, 3, 2, 9, 0))
    outcome = engine.record_scan("100000000001", DOWNTOWN, datetime(2026, 3, 2, 10, 30))

    assert outcome.action == ScanAction.CHECKED_OUT
    assert outcome.duration_minutes == 90
    assert outcome.record.check_out_time == datetime(2026, 3, 2, 10, 30)
    assert not outcome.record.needs_review
    assert len(attendance.records) == 1


def test_duration_is_floored_to_whole_minutes(engine):
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0, 0))
    outcome = engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 45, 59))

    assert outcome.duration_minutes == 45


def test_third_scan_same_day_is_already_completed_without_write(engine, attendance):
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0))
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 10, 0))
    writes = attendance.writes

    outcome = engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 18, 0))

    assert outcome.action == ScanAction.ALREADY_COMPLETED
    assert outcome.duration_minutes == 60
    assert attendance.writes == writes
    assert len(attendance.records) == 1


def test_next_day_starts_a_new_cycle(engine, attendance):
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0))
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 10, 0))

    outcome = engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 3, 9, 0))

    assert outcome.action == ScanAction.CHECKED_IN
    assert outcome.record.attendance_date == date(2026, 3, 3)
    assert len(attendance.records) == 2


def test_multi_session_gym_opens_another_visit(engine, attendance):
    # Uptown is multi-session and keeps Tokyo time; naive inputs are gym-local
    engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 2, 7, 0))
    engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 2, 8, 0))

    outcome = engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 2, 18, 0))

    assert outcome.action == ScanAction.CHECKED_IN
    assert len(attendance.records) == 2
    assert len([r for r in attendance.records.values() if r.is_open]) == 1


def test_caller_can_request_multi_session(engine):
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0))
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 10, 0))

    outcome = engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 17, 0), multi_session=True)

    assert outcome.action == ScanAction.CHECKED_IN


def test_caller_can_force_single_cycle_on_multi_session_gym(engine):
    engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 2, 7, 0))
    engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 2, 8, 0))

    outcome = engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 2, 18, 0), multi_session=False)

    assert outcome.action == ScanAction.ALREADY_COMPLETED


def test_unknown_member_is_rejected_without_write(engine, attendance):
    with pytest.raises(MemberNotFound):
        engine.record_scan("999999999999", DOWNTOWN, datetime(2026, 3, 2, 9, 0))
    assert attendance.writes == 0


def test_blank_identifier_is_validation_error(engine):
    with pytest.raises(ValidationError):
        engine.record_scan("   ", DOWNTOWN, datetime(2026, 3, 2, 9, 0))


def test_suspended_member_is_rejected_with_status(engine, attendance):
    with pytest.raises(MemberInactive) as exc:
        engine.record_scan("mike", DOWNTOWN, datetime(2026, 3, 2, 9, 0))

    assert exc.value.status == "suspended"
    assert exc.value.member_id == 3
    assert attendance.writes == 0


def test_expired_membership_is_rejected(engine, attendance):
    with pytest.raises(MemberInactive) as exc:
        engine.record_scan("jane", DOWNTOWN, datetime(2026, 3, 2, 9, 0))

    assert exc.value.status == "expired"
    assert attendance.writes == 0


def test_membership_is_valid_through_its_end_date(engine):
    outcome = engine.record_scan("jane", DOWNTOWN, datetime(2026, 2, 28, 20, 0))
    assert outcome.action == ScanAction.CHECKED_IN


def test_unknown_gym_code_is_rejected(engine, attendance):
    with pytest.raises(GymNotFound):
        engine.record_scan("john", "GYM-FFFFFFFF", datetime(2026, 3, 2, 9, 0))
    assert attendance.writes == 0


def test_inactive_gym_is_treated_as_not_found(engine):
    with pytest.raises(GymNotFound) as exc:
        engine.record_scan("john", "GYM-00C105ED", datetime(2026, 3, 2, 9, 0))
    assert "inactive" in str(exc.value)


def test_member_scanning_another_gym_is_mismatch(engine, attendance):
    with pytest.raises(GymMismatch) as exc:
        engine.record_scan("john", UPTOWN, datetime(2026, 3, 2, 9, 0))

    assert exc.value.expected_gym_id == 1
    assert exc.value.scanned_gym_id == 2
    assert attendance.writes == 0


def test_gym_code_is_case_insensitive(engine):
    outcome = engine.record_scan("john", DOWNTOWN.lower(), datetime(2026, 3, 2, 9, 0))
    assert outcome.action == ScanAction.CHECKED_IN


def test_front_desk_gym_context_checks_membership(engine):
    with pytest.raises(GymMismatch):
        engine.record_scan("lisa", None, datetime(2026, 3, 2, 9, 0), gym_id=1)

    outcome = engine.record_scan("john", None, datetime(2026, 3, 2, 9, 0), gym_id=1)
    assert outcome.gym_id == 1


def test_scan_without_gym_uses_members_gym(engine):
    outcome = engine.record_scan("john", None, datetime(2026, 3, 2, 9, 0))
    assert outcome.gym_id == 1


@pytest.mark.parametrize(
    "identifier, kind",
    [
        ("100000000001", None),
        ("john", None),
        ("JOHN@example.com", None),
        ("1", IdentifierKind.MEMBER_ID),
        ("john@example.com", IdentifierKind.EMAIL),
    ],
)
def test_identifier_forms_resolve_to_same_member(engine, identifier, kind):
    outcome = engine.record_scan(identifier, DOWNTOWN, datetime(2026, 3, 2, 9, 0), kind=kind)
    assert outcome.member_id == 1


def test_checkout_before_checkin_is_clamped_and_flagged(engine):
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 10, 0))
    outcome = engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 30))

    assert outcome.action == ScanAction.CHECKED_OUT
    assert outcome.duration_minutes == 0
    assert outcome.record.needs_review


def test_aware_timestamp_is_partitioned_by_gym_local_day(engine):
    # 20:00 UTC on 1 March is 05:00 on 2 March in Tokyo
    outcome = engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc))

    assert outcome.record.attendance_date == date(2026, 3, 2)
    assert outcome.record.check_in_time == datetime(2026, 3, 2, 5, 0)


def test_store_conflict_surfaces_as_retryable_failure(engine, attendance):
    attendance.fail_next_write = PersistenceFailure("duplicate open attendance", conflict=True)

    with pytest.raises(PersistenceFailure) as exc:
        engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0))

    assert exc.value.conflict
    assert exc.value.retryable
    assert attendance.records == {}

    # retrying the whole scan is safe
    outcome = engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0))
    assert outcome.action == ScanAction.CHECKED_IN


def test_concurrent_scans_never_open_two_records(engine, attendance):
    at = datetime(2026, 3, 2, 9, 0)
    with ThreadPoolExecutor(max_workers=8) as pool:
        outcomes = list(pool.map(lambda _: engine.record_scan("john", DOWNTOWN, at), range(12)))

    actions = [o.action for o in outcomes]
    assert actions.count(ScanAction.CHECKED_IN) == 1
    assert actions.count(ScanAction.CHECKED_OUT) == 1
    assert actions.count(ScanAction.ALREADY_COMPLETED) == 10
    assert len(attendance.records) == 1


def test_list_attendance_is_ordered_by_check_in(engine):
    engine.record_scan("john", DOWNTOWN, datetime(2026, 2, 28, 10, 0))
    engine.record_scan("jane", DOWNTOWN, datetime(2026, 2, 28, 8, 0))
    engine.record_scan("john", DOWNTOWN, datetime(2026, 2, 28, 11, 0))
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0))

    rows = engine.list_attendance(1, date(2026, 2, 28))

    assert [r.member_id for r in rows] == [2, 1]
    assert rows[1].duration_minutes == 60
    assert engine.list_attendance(2, date(2026, 2, 28)) == []


def test_currently_present_only_lists_open_records(engine, clock):
    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 8, 0))
    engine.record_scan("jane", DOWNTOWN, datetime(2026, 2, 28, 8, 0))
    assert [r.member_id for r in engine.currently_present(1)] == [1]

    engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0))
    assert engine.currently_present(1) == []
    assert [r.member_id for r in engine.currently_present(1, today=date(2026, 2, 28))] == [2]


def test_today_for_uses_gym_timezone(engine, clock):
    clock.now = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)

    assert engine.today_for(2) == date(2026, 3, 2)
    assert engine.today_for(1) == date(2026, 3, 1)


def test_front_desk_cannot_record_at_another_gym_by_code(engine, attendance):
    # admin of gym 1 submitting a gym 2 member with gym 2's code
    with pytest.raises(GymMismatch) as exc:
        engine.record_scan("lisa", UPTOWN, datetime(2026, 3, 2, 9, 0), gym_id=1)

    assert exc.value.expected_gym_id == 1
    assert exc.value.scanned_gym_id == 2
    assert attendance.writes == 0


def test_front_desk_code_matching_session_gym_is_accepted(engine):
    outcome = engine.record_scan("john", DOWNTOWN, datetime(2026, 3, 2, 9, 0), gym_id=1)
    assert outcome.gym_id == 1
