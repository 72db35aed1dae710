from __future__ import annotations

from typing import Protocol

import numpy as np

from ..core.types import BodyState


class ForceModule(Protocol):
    def compute(self, state: BodyState) -> np.ndarray:
        """
        Return the 6-component generalized force (Fx, Fy, Fz, Mx, My, Mz).
        Units: N, N, N, N*m, N*m, N*m.
        """
        ...
