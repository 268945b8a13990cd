from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.factory import CyclePolicyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceEngine
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_NOTIFY_TIMEOUT_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .directory.mysql_gym_repository import MySQLGymRepository, MySQLMembershipPlanRepository
from .directory.mysql_member_repository import MySQLMemberRepository
from .directory.service import DirectoryService
from .members.service import GymAdminAuthService, MemberAuthService, MemberRegistrationService
from .notifications.dispatcher import CredentialNotifier, HttpFunctionChannel
from .reports.service import AttendanceReportService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    members_repo: MySQLMemberRepository
    gyms_repo: MySQLGymRepository
    plans_repo: MySQLMembershipPlanRepository
    attendance_repo: MySQLAttendanceRepository

    directory: DirectoryService
    attendance_engine: AttendanceEngine
    member_auth_service: MemberAuthService
    gym_admin_auth_service: GymAdminAuthService
    registration_service: MemberRegistrationService
    report_service: AttendanceReportService

    clock: Callable[[], datetime] = now_local


def build_notifier(
    *,
    email_url: Optional[str] = None,
    sms_url: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: float = DEFAULT_NOTIFY_TIMEOUT_SECONDS,
) -> CredentialNotifier:
    """Channels are only wired for the send-function URLs that are configured."""
    email = (
        HttpFunctionChannel("email", email_url, recipient_field="email", api_key=api_key, timeout=timeout)
        if email_url
        else None
    )
    sms = (
        HttpFunctionChannel("sms", sms_url, recipient_field="phone", api_key=api_key, timeout=timeout)
        if sms_url
        else None
    )
    return CredentialNotifier(email=email, sms=sms)


def build_container(*, db_config: dict, settings: object = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    members_repo = MySQLMemberRepository(conn)
    gyms_repo = MySQLGymRepository(conn)
    plans_repo = MySQLMembershipPlanRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)

    directory = DirectoryService(members_repo, gyms_repo, plans_repo)
    attendance_engine = AttendanceEngine(
        attendance_repo,
        directory,
        policy_factory=CyclePolicyFactory(
            default_multi_session=bool(getattr(settings, "MULTI_SESSION_DEFAULT", False)),
        ),
    )
    notifier = build_notifier(
        email_url=getattr(settings, "NOTIFY_EMAIL_URL", None),
        sms_url=getattr(settings, "NOTIFY_SMS_URL", None),
        api_key=getattr(settings, "NOTIFY_API_KEY", None),
        timeout=float(getattr(settings, "NOTIFY_TIMEOUT", DEFAULT_NOTIFY_TIMEOUT_SECONDS)),
    )

    return Container(
        conn=conn,
        members_repo=members_repo,
        gyms_repo=gyms_repo,
        plans_repo=plans_repo,
        attendance_repo=attendance_repo,
        directory=directory,
        attendance_engine=attendance_engine,
        member_auth_service=MemberAuthService(members_repo),
        gym_admin_auth_service=GymAdminAuthService(gyms_repo),
        registration_service=MemberRegistrationService(members_repo, directory, notifier),
        report_service=AttendanceReportService(attendance_engine, members_repo),
    )
