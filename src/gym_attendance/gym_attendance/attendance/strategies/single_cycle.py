from __future__ import annotations

from typing import Optional

from ...core.enums import ScanAction
from ..model import AttendanceRecord
from .base import CyclePolicy


class SingleCyclePolicy(CyclePolicy):
    """One check-in/check-out cycle per member per day."""

    def decide(self, *, open_record: Optional[AttendanceRecord], completed: Optional[AttendanceRecord]) -> ScanAction:
        if open_record:
            return ScanAction.CHECKED_OUT
        if completed:
            return ScanAction.ALREADY_COMPLETED
        return ScanAction.CHECKED_IN
