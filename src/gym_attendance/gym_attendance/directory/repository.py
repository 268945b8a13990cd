from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ..core.enums import MemberStatus
from .model import Gym, Member, MembershipPlan


class MemberRepository(Protocol):
    """Repository interface for members.

    Note: services depend on this interface, never on a concrete database.
    """

    def get_by_id(self, member_id: int) -> Optional[Member]:
        raise NotImplementedError

    def get_by_barcode(self, barcode: str) -> Optional[Member]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[Member]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Member]:
        raise NotImplementedError

    def create_member(
        self,
        *,
        gym_id: int,
        name: str,
        email: str,
        phone: str,
        username: str,
        password_hash: str,
        barcode: str,
        status: MemberStatus,
        membership_plan_id: Optional[int],
        membership_start_date: Optional[date],
        membership_end_date: Optional[date],
    ) -> int:
        raise NotImplementedError


class GymRepository(Protocol):
    def get_by_id(self, gym_id: int) -> Optional[Gym]:
        raise NotImplementedError

    def get_by_qr_code(self, code: str) -> Optional[Gym]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[Gym]:
        raise NotImplementedError


class MembershipPlanRepository(Protocol):
    def get_by_id(self, plan_id: int) -> Optional[MembershipPlan]:
        raise NotImplementedError
