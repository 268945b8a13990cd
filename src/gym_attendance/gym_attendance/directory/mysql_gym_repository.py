from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from ..core.enums import GymStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Gym, MembershipPlan
from .repository import GymRepository, MembershipPlanRepository


def _to_gym(row: Dict[str, Any]) -> Gym:
    multi = row.get("multi_session")
    return Gym(
        gym_id=int(row["gym_id"]),
        name=row["name"],
        email=row["email"],
        gym_qr_code=row["gym_qr_code"],
        status=GymStatus(row["status"]),
        timezone=row.get("timezone"),
        multi_session=None if multi is None else bool(multi),
        username=row.get("username"),
        password_hash=row.get("password_hash"),
        phone=row.get("phone"),
        address=row.get("address"),
    )


class MySQLGymRepository(GymRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, value: object) -> Optional[Gym]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT gym_id, name, email, phone, address, gym_qr_code, status, timezone,
                       multi_session, username, password_hash
                FROM gyms
                WHERE {where}
                """,
                (value,),
            )
            row = fetchone(cur)
            return _to_gym(row) if row else None

    def get_by_id(self, gym_id: int) -> Optional[Gym]:
        return self._get_one("gym_id=%s", int(gym_id))

    def get_by_qr_code(self, code: str) -> Optional[Gym]:
        return self._get_one("UPPER(gym_qr_code)=UPPER(%s)", code)

    def get_by_username(self, username: str) -> Optional[Gym]:
        return self._get_one("username=%s", username)


class MySQLMembershipPlanRepository(MembershipPlanRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, plan_id: int) -> Optional[MembershipPlan]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT plan_id, gym_id, plan_name, plan_type, duration_days, price, is_active
                FROM membership_plans
                WHERE plan_id=%s
                """,
                (int(plan_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return MembershipPlan(
                plan_id=int(r["plan_id"]),
                gym_id=int(r["gym_id"]),
                plan_name=r["plan_name"],
                plan_type=r["plan_type"],
                duration_days=int(r["duration_days"]),
                price=Decimal(str(r["price"])),
                is_active=bool(r.get("is_active", True)),
            )
