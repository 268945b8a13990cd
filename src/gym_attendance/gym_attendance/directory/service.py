from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from ..common.validators import require_non_empty
from ..core.constants import GYM_CODE_HEX_LENGTH, GYM_CODE_PREFIX, MAX_CODE_ATTEMPTS, MEMBER_BARCODE_LENGTH
from ..core.enums import IdentifierKind
from ..core.exceptions import GymNotFound, MemberNotFound, ValidationError
from .model import Gym, Member, MembershipPlan
from .repository import GymRepository, MemberRepository, MembershipPlanRepository

logger = logging.getLogger(__name__)

# Order used when the caller does not say what kind of identifier it scanned.
_FALLBACK_ORDER = (IdentifierKind.BARCODE, IdentifierKind.USERNAME, IdentifierKind.EMAIL)


class DirectoryService:
    """Resolves scanned or typed strings to Member/Gym records.

    Every entry point (front-desk barcode, self-service QR, lookup by email)
    goes through here so they all fail the same way.
    """

    def __init__(
        self,
        members: MemberRepository,
        gyms: GymRepository,
        plans: Optional[MembershipPlanRepository] = None,
        *,
        token_factory: Callable[[int], str] = secrets.token_hex,
    ):
        self._members = members
        self._gyms = gyms
        self._plans = plans
        self._token_factory = token_factory

    def find_member_by_identifier(self, identifier: str, kind: Optional[IdentifierKind] = None) -> Member:
        identifier = require_non_empty(identifier or "", "Member identifier")

        kinds = (kind,) if kind else _FALLBACK_ORDER
        for k in kinds:
            member = self._lookup_member(k, identifier)
            if member:
                return member

        raise MemberNotFound(identifier)

    def _lookup_member(self, kind: IdentifierKind, identifier: str) -> Optional[Member]:
        if kind == IdentifierKind.MEMBER_ID:
            if not identifier.isdigit():
                return None
            return self._members.get_by_id(int(identifier))
        if kind == IdentifierKind.BARCODE:
            return self._members.get_by_barcode(identifier)
        if kind == IdentifierKind.USERNAME:
            return self._members.get_by_username(identifier)
        if kind == IdentifierKind.EMAIL:
            if "@" not in identifier:
                return None
            return self._members.get_by_email(identifier.lower())
        raise ValidationError(f"Unsupported identifier kind: {kind}")

    def find_gym_by_code(self, code: str) -> Gym:
        code = require_non_empty(code or "", "Gym QR code").upper()

        gym = self._gyms.get_by_qr_code(code)
        if not gym:
            raise GymNotFound(code)
        if not gym.is_active:
            raise GymNotFound(code, reason=f"Gym is {gym.status.value} and not accepting check-ins")
        return gym

    def get_gym(self, gym_id: int) -> Optional[Gym]:
        return self._gyms.get_by_id(gym_id)

    def get_plan(self, plan_id: int) -> Optional[MembershipPlan]:
        if not self._plans:
            return None
        return self._plans.get_by_id(plan_id)

    def generate_gym_qr_code(self) -> str:
        """New unused gym code in the ``GYM-XXXXXXXX`` format."""
        for _ in range(MAX_CODE_ATTEMPTS):
            code = GYM_CODE_PREFIX + self._token_factory(GYM_CODE_HEX_LENGTH // 2).upper()
            if not self._gyms.get_by_qr_code(code):
                return code
        raise ValidationError("Could not allocate a unique gym code")

    def generate_member_barcode(self) -> str:
        """New unused numeric member barcode."""
        for _ in range(MAX_CODE_ATTEMPTS):
            digits = str(int(self._token_factory(8), 16))[-MEMBER_BARCODE_LENGTH:]
            barcode = digits.rjust(MEMBER_BARCODE_LENGTH, "0")
            if not self._members.get_by_barcode(barcode):
                return barcode
        logger.error("barcode allocation exhausted after %d attempts", MAX_CODE_ATTEMPTS)
        raise ValidationError("Could not allocate a unique member barcode")
