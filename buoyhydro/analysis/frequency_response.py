from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

from ..core.exceptions import ConfigError
from ..core.types import N_DOF
from ..hydro.coefficients import FrequencyCoefficientStore


class FrequencyResponseSolver:
    """
    Steady-state response to a unit-amplitude regular wave at frequency omega:
      (-omega^2 (M + A(omega)) + i omega B(omega) + c) X = F(omega)
    Independent of the time-stepping histories.
    """

    def __init__(self, store: FrequencyCoefficientStore, mass_matrix: np.ndarray, c: np.ndarray) -> None:
        self.store = store
        self.M = np.asarray(mass_matrix, dtype=float)
        self.c = np.asarray(c, dtype=float)
        if self.M.shape != (N_DOF, N_DOF) or self.c.shape != (N_DOF, N_DOF):
            raise ConfigError("Mass and restoring matrices must be 6x6")

    def system_matrix(self, omega: float) -> np.ndarray:
        A = self.store.added_mass(omega)
        B = self.store.radiation_damping(omega)
        return -omega ** 2 * (self.M + A) + 1j * omega * B + self.c

    def complex_amplitude(self, omega: float, mode: Optional[int] = None):
        F = self.store.wave_exciting_force_components(omega)
        X = np.linalg.solve(self.system_matrix(omega), F)
        return X if mode is None else complex(X[mode])

    def response_curve(self, omegas: Iterable[float]) -> np.ndarray:
        """Complex amplitudes, shape (n, 6), for each frequency in `omegas`."""
        return np.array([self.complex_amplitude(float(w)) for w in omegas])
