from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.exceptions import ConfigError, DataError
from ..core.types import N_DOF

logger = logging.getLogger(__name__)


def _check_strictly_increasing(values: np.ndarray, what: str) -> None:
    if values.ndim != 1 or values.size == 0:
        raise DataError(f"{what} must be a non-empty 1-D sequence")
    if values.size > 1 and np.any(np.diff(values) <= 0):
        raise DataError(f"{what} must be strictly increasing")


@dataclass(frozen=True)
class FrequencyCoefficientTable:
    """Added mass A(w) and radiation damping B(w), shapes (n, 6, 6), sampled at omega [rad/s].

    A_inf / B_inf are the infinite-frequency asymptotes; None when the source did not provide them.
    """
    omega: np.ndarray
    A: np.ndarray
    B: np.ndarray
    A_inf: Optional[np.ndarray] = None
    B_inf: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        omega = np.asarray(self.omega, dtype=float)
        A = np.asarray(self.A, dtype=float)
        B = np.asarray(self.B, dtype=float)
        _check_strictly_increasing(omega, "radiation frequencies")
        for name, arr in (("added mass", A), ("radiation damping", B)):
            if arr.shape != (omega.size, N_DOF, N_DOF):
                raise DataError(
                    f"{name} table has shape {arr.shape}, expected {(omega.size, N_DOF, N_DOF)}"
                )
        object.__setattr__(self, "omega", omega)
        object.__setattr__(self, "A", A)
        object.__setattr__(self, "B", B)
        for name in ("A_inf", "B_inf"):
            val = getattr(self, name)
            if val is not None:
                val = np.asarray(val, dtype=float)
                if val.shape != (N_DOF, N_DOF):
                    raise DataError(f"{name} must be 6x6, got {val.shape}")
                object.__setattr__(self, name, val)

    @property
    def n_freq(self) -> int:
        return int(self.omega.size)


@dataclass(frozen=True)
class ExcitationTable:
    """Complex wave-exciting force per unit wave amplitude, shape (n_freq, n_heading, 6).

    Headings are in radians. Magnitude/phase and real/imaginary forms are exposed
    as views of the same complex data.
    """
    omega: np.ndarray
    beta: np.ndarray
    X: np.ndarray

    def __post_init__(self) -> None:
        omega = np.asarray(self.omega, dtype=float)
        beta = np.asarray(self.beta, dtype=float)
        X = np.asarray(self.X, dtype=complex)
        _check_strictly_increasing(omega, "excitation frequencies")
        _check_strictly_increasing(beta, "excitation headings")
        if X.shape != (omega.size, beta.size, N_DOF):
            raise DataError(f"excitation table has shape {X.shape}, expected {(omega.size, beta.size, N_DOF)}")
        object.__setattr__(self, "omega", omega)
        object.__setattr__(self, "beta", beta)
        object.__setattr__(self, "X", X)

    @property
    def mod(self) -> np.ndarray:
        return np.abs(self.X)

    @property
    def pha(self) -> np.ndarray:
        return np.angle(self.X)

    @property
    def re(self) -> np.ndarray:
        return self.X.real

    @property
    def im(self) -> np.ndarray:
        return self.X.imag

    def at_heading(self, beta: float) -> np.ndarray:
        """Coefficients (n_freq, 6) linearly interpolated in heading, clamped to the tabulated span."""
        return interp_heading(self.beta, self.X, beta)


def interp_heading(beta_grid: np.ndarray, values: np.ndarray, beta: float) -> np.ndarray:
    """Linear interpolation of `values` (n, n_heading, 6) along the heading axis, clamped at the ends."""
    if beta_grid.size == 1 or beta <= beta_grid[0]:
        return values[:, 0, :]
    if beta >= beta_grid[-1]:
        return values[:, -1, :]
    k = int(np.searchsorted(beta_grid, beta))
    w = (beta - beta_grid[k - 1]) / (beta_grid[k] - beta_grid[k - 1])
    return (1.0 - w) * values[:, k - 1, :] + w * values[:, k, :]


def _interp_table(omega_grid: np.ndarray, values: np.ndarray, omega: float,
                  above: Optional[np.ndarray]) -> np.ndarray:
    """Linear interpolation along the first axis, clamped outside the sampled range.
    Below the first sample the low edge is returned; above the last, `above` when given."""
    if omega < omega_grid[0]:
        return values[0]
    if omega > omega_grid[-1]:
        return values[-1] if above is None else above
    k = int(np.searchsorted(omega_grid, omega))
    if omega_grid[k] == omega:
        return values[k]
    w = (omega - omega_grid[k - 1]) / (omega_grid[k] - omega_grid[k - 1])
    return (1.0 - w) * values[k - 1] + w * values[k]


class FrequencyCoefficientStore:
    """Tabulated frequency-domain coefficients with interpolated lookup.

    The store holds immutable table snapshots; replacing a table or the wave heading
    bumps `revision`, which consumers use to detect stale derived data (kernels).
    """

    def __init__(self) -> None:
        self._radiation: Optional[FrequencyCoefficientTable] = None
        self._excitation: Optional[ExcitationTable] = None
        self._heading = 0.0
        self.revision = 0

    # --- setup ---
    def set_radiation_table(self, table: FrequencyCoefficientTable) -> None:
        self._radiation = table
        self.revision += 1
        logger.info("Radiation table loaded: %d frequencies in [%.4g, %.4g] rad/s",
                    table.n_freq, table.omega[0], table.omega[-1])

    def set_excitation_table(self, table: ExcitationTable) -> None:
        self._excitation = table
        self.revision += 1
        logger.info("Excitation table loaded: %d frequencies, %d headings",
                    table.omega.size, table.beta.size)

    @property
    def radiation(self) -> FrequencyCoefficientTable:
        if self._radiation is None:
            raise ConfigError("No radiation coefficient table loaded")
        return self._radiation

    @property
    def excitation(self) -> ExcitationTable:
        if self._excitation is None:
            raise ConfigError("No excitation coefficient table loaded")
        return self._excitation

    @property
    def has_radiation(self) -> bool:
        return self._radiation is not None

    @property
    def has_excitation(self) -> bool:
        return self._excitation is not None

    @property
    def heading(self) -> float:
        return self._heading

    @heading.setter
    def heading(self, beta: float) -> None:
        if beta != self._heading:
            self._heading = float(beta)
            self.revision += 1

    # --- lookups ---
    def added_mass(self, omega: float, i: Optional[int] = None, j: Optional[int] = None):
        tab = self.radiation
        mat = _interp_table(tab.omega, tab.A, omega, tab.A_inf)
        return mat.copy() if i is None else float(mat[i, j])

    def radiation_damping(self, omega: float, i: Optional[int] = None, j: Optional[int] = None):
        tab = self.radiation
        mat = _interp_table(tab.omega, tab.B, omega, tab.B_inf)
        return mat.copy() if i is None else float(mat[i, j])

    def wave_exciting_force_components(self, omega: float, j: Optional[int] = None):
        tab = self.excitation
        vec = _interp_table(tab.omega, tab.at_heading(self._heading), omega, None)
        return np.array(vec, dtype=complex) if j is None else complex(vec[j])

    def infinite_frequency_added_mass(self) -> np.ndarray:
        tab = self.radiation
        if tab.A_inf is None:
            logger.warning("No infinite-frequency added mass loaded; using highest-frequency sample")
            return tab.A[-1].copy()
        return tab.A_inf.copy()
