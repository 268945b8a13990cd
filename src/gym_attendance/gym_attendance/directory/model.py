from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.enums import GymStatus, MemberStatus


@dataclass(frozen=True)
class Gym:
    """Domain entity: a tenant gym.

    ``multi_session`` is None when the gym has no explicit policy and the
    application default applies.
    """

    gym_id: int
    name: str
    email: str
    gym_qr_code: str
    status: GymStatus
    timezone: Optional[str] = None
    multi_session: Optional[bool] = None
    username: Optional[str] = None
    password_hash: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == GymStatus.ACTIVE


@dataclass(frozen=True)
class Member:
    """Domain entity: a gym member (plain data, no DB access)."""

    member_id: int
    gym_id: Optional[int]
    name: str
    email: str
    phone: str
    status: MemberStatus
    username: Optional[str] = None
    password_hash: Optional[str] = None
    barcode: Optional[str] = None
    membership_plan_id: Optional[int] = None
    membership_start_date: Optional[date] = None
    membership_end_date: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE

    def membership_expired_on(self, day: date) -> bool:
        return self.membership_end_date is not None and self.membership_end_date < day


@dataclass(frozen=True)
class MembershipPlan:
    plan_id: int
    gym_id: int
    plan_name: str
    plan_type: str
    duration_days: int
    price: Decimal
    is_active: bool = True
