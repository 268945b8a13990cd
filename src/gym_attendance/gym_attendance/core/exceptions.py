from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""

    code = "authentication_failed"


class AuthorizationError(DomainError):
    """Raised when a session lacks permission for an action."""

    code = "forbidden"


class MemberNotFound(DomainError):
    code = "member_not_found"

    def __init__(self, identifier: str):
        super().__init__(f"No member found for {identifier!r}")
        self.identifier = identifier


class MemberInactive(DomainError):
    """The member exists but may not check in; carries the actual status."""

    code = "member_inactive"

    def __init__(self, member_id: int, status: str):
        super().__init__(f"Member status is {status}")
        self.member_id = member_id
        self.status = status


class GymNotFound(DomainError):
    code = "gym_not_found"

    def __init__(self, code: str, reason: str = "No gym matches this QR code"):
        super().__init__(reason)
        self.gym_code = code


class GymMismatch(DomainError):
    code = "gym_mismatch"

    def __init__(self, member_id: int, expected_gym_id: Optional[int], scanned_gym_id: Optional[int]):
        super().__init__("Member is not registered at this gym")
        self.member_id = member_id
        self.expected_gym_id = expected_gym_id
        self.scanned_gym_id = scanned_gym_id


class PersistenceFailure(DomainError):
    """Storage-layer failure. Retrying the whole scan is always safe."""

    code = "persistence_failure"
    retryable = True

    def __init__(self, message: str, *, conflict: bool = False):
        super().__init__(message)
        self.conflict = conflict


class NotificationError(DomainError):
    """Raised by notification dispatchers; callers must contain it."""

    code = "notification_failed"
