from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..directory.model import Gym
from .strategies.base import CyclePolicy
from .strategies.multi_cycle import MultiCyclePolicy
from .strategies.single_cycle import SingleCyclePolicy


@dataclass
class CyclePolicyFactory:
    """Factory Pattern: choose the cycle policy for a scan.

    Precedence: explicit caller request, then the gym's own setting, then
    ``default_multi_session``.
    """

    default_multi_session: bool = False

    def for_scan(self, *, gym: Optional[Gym], multi_session: Optional[bool] = None) -> CyclePolicy:
        if multi_session is None and gym is not None:
            multi_session = gym.multi_session
        if multi_session is None:
            multi_session = self.default_multi_session

        if multi_session:
            return MultiCyclePolicy()
        return SingleCyclePolicy()
