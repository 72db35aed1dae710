from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

import numpy as np
from scipy.spatial.transform import Rotation

from ..core.types import BodyState, N_DOF

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BodyGeometry:
    """Static geometry snapshot, relative to the water-plane coordinate system.

    S    waterplane area
    S11  waterplane second moment of area about x (int y^2 dS)
    S22  waterplane second moment of area about y (int x^2 dS)
    """
    S: float = 0.0
    S11: float = 0.0
    S22: float = 0.0
    volume: float = 0.0
    cob: tuple[float, float, float] = (0.0, 0.0, 0.0)
    cog: tuple[float, float, float] = (0.0, 0.0, 0.0)
    mass: float = 0.0


def compute_cij(geom: BodyGeometry, rho: float, g: float) -> np.ndarray:
    """Linear hydrostatic restoring matrix (WAMIT convention, waterplane symmetric about both axes)."""
    xb, yb, zb = geom.cob
    xg, yg, zg = geom.cog
    rg = rho * g
    mg = geom.mass * g
    c = np.zeros((N_DOF, N_DOF))
    c[2, 2] = rg * geom.S
    c[3, 3] = rg * (geom.S11 + geom.volume * zb) - mg * zg
    c[4, 4] = rg * (geom.S22 + geom.volume * zb) - mg * zg
    c[3, 5] = -rg * geom.volume * xb + mg * xg
    c[4, 5] = -rg * geom.volume * yb + mg * yg
    return c


class HydrostaticModel:
    """
    Gravity and buoyancy about the current position.
    Weight and static buoyancy act at the centres of gravity/buoyancy rotated with the body;
    the waterplane stiffness (rho g S, rho g S11, rho g S22) is linearised about the
    reference position. Linearising the sum about rest reproduces `c`.
    """

    def __init__(self, rho: float = 1025.0, g: float = 9.81) -> None:
        self.rho = rho
        self.g = g
        self._geometry = BodyGeometry()
        self._c = compute_cij(self._geometry, rho, g)
        self._c_waterplane = self._waterplane_stiffness()

    @property
    def geometry(self) -> BodyGeometry:
        return self._geometry

    @property
    def c(self) -> np.ndarray:
        return self._c.copy()

    def update(self, **changes: Any) -> None:
        """Replace the geometry snapshot and recompute the restoring matrices."""
        self._geometry = replace(self._geometry, **changes)
        self._c = compute_cij(self._geometry, self.rho, self.g)
        self._c_waterplane = self._waterplane_stiffness()
        logger.debug("Hydrostatics recomputed after %s", sorted(changes))

    def _waterplane_stiffness(self) -> np.ndarray:
        rg = self.rho * self.g
        geom = self._geometry
        return np.diag([0.0, 0.0, rg * geom.S, rg * geom.S11, rg * geom.S22, 0.0])

    def gravity_force(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        weight = np.array([0.0, 0.0, -self._geometry.mass * self.g])
        r_g = Rotation.from_euler("xyz", x[3:6]).apply(self._geometry.cog)
        return np.concatenate([weight, np.cross(r_g, weight)])

    def buoyancy_force(self, x) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        lift = np.array([0.0, 0.0, self.rho * self.g * self._geometry.volume])
        r_b = Rotation.from_euler("xyz", x[3:6]).apply(self._geometry.cob)
        static = np.concatenate([lift, np.cross(r_b, lift)])
        return static - self._c_waterplane @ x[:N_DOF]

    def compute(self, state: BodyState) -> np.ndarray:
        x = np.asarray(state.position, dtype=float)
        return self.gravity_force(x) + self.buoyancy_force(x)
