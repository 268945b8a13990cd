from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from ...core.enums import ScanAction
from ..model import AttendanceRecord


class CyclePolicy(ABC):
    """Strategy Pattern: decide what a scan means given today's records."""

    @abstractmethod
    def decide(self, *, open_record: Optional[AttendanceRecord], completed: Optional[AttendanceRecord]) -> ScanAction:
        raise NotImplementedError
