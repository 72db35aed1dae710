from __future__ import annotations

from typing import Sequence

import numpy as np

from ..core.exceptions import ConfigError
from ..core.types import BodyState, N_DOF


def _six(values: Sequence[float], name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.size != N_DOF:
        raise ConfigError(f"{name} must have {N_DOF} entries", field_name=name, field_value=list(arr))
    return arr


class ViscousDrag:
    """
    Quadratic drag per DOF: F_i = -0.5 * rho * Cd_i * A_i * |v_i| * v_i.
    For rotational DOFs A_i is the equivalent area-moment so the product yields N*m.
    """

    def __init__(self, rho: float = 1025.0, Cd: Sequence[float] = (0.0,) * N_DOF,
                 A: Sequence[float] = (0.0,) * N_DOF) -> None:
        self.rho = rho
        self.Cd = _six(Cd, "Cd")
        self.A = _six(A, "A")

    def set_coeffs(self, Cd: Sequence[float]) -> None:
        self.Cd = _six(Cd, "Cd")

    def set_areas(self, A: Sequence[float]) -> None:
        self.A = _six(A, "A")

    def force(self, xdot) -> np.ndarray:
        v = np.asarray(xdot, dtype=float)
        return -0.5 * self.rho * self.Cd * self.A * np.abs(v) * v

    def compute(self, state: BodyState) -> np.ndarray:
        return self.force(state.velocity)


class LinearDamping:
    """Linear damping F_i = -b_i * v_i (power take-off, mechanical losses); not radiation damping."""

    def __init__(self, b: Sequence[float] = (0.0,) * N_DOF) -> None:
        self.b = _six(b, "b")

    def set_coeffs(self, b: Sequence[float]) -> None:
        self.b = _six(b, "b")

    def force(self, xdot) -> np.ndarray:
        return -self.b * np.asarray(xdot, dtype=float)

    def compute(self, state: BodyState) -> np.ndarray:
        return self.force(state.velocity)
