from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.datetime_utils import now_local, to_gym_local
from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import MemberStatus
from ..core.exceptions import AuthenticationError, ValidationError
from ..directory.model import Member
from ..directory.repository import GymRepository, MemberRepository
from ..directory.service import DirectoryService
from ..notifications.dispatcher import Contact, CredentialNotifier, CredentialPayload, NotificationReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionMember:
    """What we store into the Flask session after a member login."""

    member_id: int
    name: str
    gym_id: Optional[int]


@dataclass(frozen=True)
class SessionAdmin:
    gym_id: int
    gym_name: str


def _password_matches(password_hash: Optional[str], password: str) -> bool:
    if not password_hash:
        return False
    try:
        return check_password_hash(password_hash, password)
    except ValueError:
        # placeholder or corrupted hash values
        return False


class MemberAuthService:
    """Use case: member login."""

    def __init__(self, members: MemberRepository):
        self._members = members

    def authenticate(self, username: str, password: str) -> SessionMember:
        member = self._members.get_by_username((username or "").strip())
        if not member or not _password_matches(member.password_hash, password or ""):
            raise AuthenticationError("Invalid username or password")
        if not member.is_active:
            raise AuthenticationError(f"Member account is {member.status.value}")

        return SessionMember(member_id=member.member_id, name=member.name, gym_id=member.gym_id)


class GymAdminAuthService:
    """Use case: gym administrator login with the credentials kept on the gym."""

    def __init__(self, gyms: GymRepository):
        self._gyms = gyms

    def authenticate(self, username: str, password: str) -> SessionAdmin:
        gym = self._gyms.get_by_username((username or "").strip())
        if not gym or not _password_matches(gym.password_hash, password or ""):
            raise AuthenticationError("Invalid username or password")
        if not gym.is_active:
            raise AuthenticationError(f"Gym is {gym.status.value}")

        return SessionAdmin(gym_id=gym.gym_id, gym_name=gym.name)


@dataclass(frozen=True)
class RegistrationResult:
    member: Member
    notification: NotificationReport


class MemberRegistrationService:
    """Use case: a gym admin registers a member and sends them their login.

    The member row is committed before notifying; a failed notification is
    reported in the result and never undoes the registration.
    """

    def __init__(
        self,
        members: MemberRepository,
        directory: DirectoryService,
        notifier: CredentialNotifier,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._members = members
        self._directory = directory
        self._notifier = notifier
        self._clock = clock

    def register(
        self,
        *,
        gym_id: int,
        name: str,
        email: str,
        phone: str,
        username: str,
        password: str,
        plan_id: Optional[int] = None,
    ) -> RegistrationResult:
        name = require_non_empty(name, "Name")
        email = require_email(email)
        username = require_non_empty(username, "Username")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        phone = (phone or "").strip()

        gym = self._directory.get_gym(gym_id)
        if not gym:
            raise ValidationError("Gym does not exist")

        if self._members.get_by_username(username):
            raise ValidationError("Username already exists")
        if self._members.get_by_email(email):
            raise ValidationError("Email already registered")

        start: Optional[date] = None
        end: Optional[date] = None
        if plan_id is not None:
            plan = self._directory.get_plan(plan_id)
            if not plan or plan.gym_id != gym.gym_id:
                raise ValidationError("Membership plan does not exist")
            if not plan.is_active:
                raise ValidationError("Membership plan is not active")
            start = to_gym_local(self._clock(), gym.timezone).date()
            end = start + timedelta(days=plan.duration_days)

        barcode = self._directory.generate_member_barcode()
        member_id = self._members.create_member(
            gym_id=gym.gym_id,
            name=name,
            email=email,
            phone=phone,
            username=username,
            password_hash=generate_password_hash(password),
            barcode=barcode,
            status=MemberStatus.ACTIVE,
            membership_plan_id=plan_id,
            membership_start_date=start,
            membership_end_date=end,
        )
        member = self._members.get_by_id(member_id)
        if member is None:
            raise ValidationError("Member was not saved")
        logger.info("registered member %s at gym %s", member_id, gym.gym_id)

        report = self._notifier.notify_credentials(
            Contact(email=email, phone=phone or None),
            CredentialPayload(member_name=name, username=username, password=password, gym_name=gym.name),
        )
        if not report.ok:
            logger.warning("member %s registered but credentials not delivered: %s", member_id, report.failed)

        return RegistrationResult(member=member, notification=report)
