from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Session roles used for access control."""

    GYM_ADMIN = "gym_admin"
    MEMBER = "member"


class MemberStatus(str, Enum):
    """Membership status as stored in the members table."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class GymStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class IdentifierKind(str, Enum):
    """How a scanned or typed member identifier should be interpreted."""

    MEMBER_ID = "member_id"
    BARCODE = "barcode"
    USERNAME = "username"
    EMAIL = "email"


class ScanAction(str, Enum):
    """Outcome kinds of a single attendance scan."""

    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
