from __future__ import annotations

from typing import Optional

from ...core.enums import ScanAction
from ..model import AttendanceRecord
from .base import CyclePolicy


class MultiCyclePolicy(CyclePolicy):
    """Any number of cycles per day; a scan after a completed one opens a new visit."""

    def decide(self, *, open_record: Optional[AttendanceRecord], completed: Optional[AttendanceRecord]) -> ScanAction:
        if open_record:
            return ScanAction.CHECKED_OUT
        return ScanAction.CHECKED_IN
