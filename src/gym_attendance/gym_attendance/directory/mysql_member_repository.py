from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from ..core.enums import MemberStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Member
from .repository import MemberRepository

_MEMBER_COLUMNS = """
    member_id, gym_id, name, email, phone, username, password_hash, barcode, status,
    membership_plan_id, membership_start_date, membership_end_date
"""


def _to_member(row: Dict[str, Any]) -> Member:
    return Member(
        member_id=int(row["member_id"]),
        gym_id=int(row["gym_id"]) if row.get("gym_id") is not None else None,
        name=row["name"],
        email=row["email"],
        phone=row.get("phone") or "",
        status=MemberStatus(row["status"]),
        username=row.get("username"),
        password_hash=row.get("password_hash"),
        barcode=row.get("barcode"),
        membership_plan_id=row.get("membership_plan_id"),
        membership_start_date=row.get("membership_start_date"),
        membership_end_date=row.get("membership_end_date"),
    )


class MySQLMemberRepository(MemberRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, value: object) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MEMBER_COLUMNS} FROM members WHERE {where}", (value,))
            row = fetchone(cur)
            return _to_member(row) if row else None

    def get_by_id(self, member_id: int) -> Optional[Member]:
        return self._get_one("member_id=%s", int(member_id))

    def get_by_barcode(self, barcode: str) -> Optional[Member]:
        return self._get_one("barcode=%s", barcode)

    def get_by_username(self, username: str) -> Optional[Member]:
        return self._get_one("username=%s", username)

    def get_by_email(self, email: str) -> Optional[Member]:
        return self._get_one("LOWER(email)=LOWER(%s)", email)

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO members(gym_id, name, email, phone, username, password_hash, barcode, status,
                                    membership_plan_id, membership_start_date, membership_end_date)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(gym_id),
                    name,
                    email,
                    phone,
                    username,
                    password_hash,
                    barcode,
                    status.value,
                    membership_plan_id,
                    membership_start_date,
                    membership_end_date,
                ),
            )
            return int(cur.lastrowid)
