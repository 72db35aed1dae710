from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from ..core.exceptions import ConfigError
from ..core.types import N_DOF
from .kernels import ExcitationKernels, RadiationKernels

logger = logging.getLogger(__name__)

# Buffer capacity as a multiple of the kernel length. Must be > 2; larger values
# take more memory but compact less often.
STORAGE_MULTIPLIER = 5


def _trapezoid_end_weights(m: int) -> np.ndarray:
    w = np.ones(m)
    if m == 1:
        w[0] = 0.0
    elif m > 1:
        w[0] = w[-1] = 0.5
    return w


class RollingBuffer:
    """Append-only sample store of fixed capacity with a logical window.

    Samples are written at `index`. When the write cursor reaches capacity the most
    recent `window` samples are copied to the front and writing continues after them,
    so the cost of sliding the window is paid once every (capacity - window) appends.
    """

    def __init__(self, window: int, n_channels: int = 1, multiplier: int = STORAGE_MULTIPLIER) -> None:
        if window < 1:
            raise ConfigError("Rolling buffer window must be >= 1", field_name="window", field_value=window)
        if multiplier <= 2:
            raise ConfigError("Storage multiplier must be > 2", field_name="multiplier", field_value=multiplier)
        self.window = int(window)
        self.capacity = int(multiplier) * self.window
        self.data = np.zeros((self.capacity, n_channels))
        self.index = 0
        self.compactions = 0

    def __len__(self) -> int:
        return min(self.index, self.window)

    def append(self, values) -> None:
        if self.index == self.capacity:
            self.compact()
        self.data[self.index] = values
        self.index += 1

    def compact(self) -> None:
        keep = min(self.window, self.index)
        self.data[:keep] = self.data[self.index - keep:self.index]
        self.index = keep
        self.compactions += 1
        logger.debug("Buffer compacted (window=%d, capacity=%d)", self.window, self.capacity)

    def rewind(self) -> None:
        """Drop the most recent sample."""
        if self.index > 0:
            self.index -= 1

    def recent(self) -> np.ndarray:
        """Samples in the window, newest first. Fewer than `window` during startup."""
        m = len(self)
        return self.data[self.index - m:self.index][::-1]

    def reset(self) -> None:
        self.data[:] = 0.0
        self.index = 0


class ConvolutionHistory:
    """Acceleration and wave-elevation histories with their discrete convolutions.

    radiation_force: F_i = dt * sum_k w_k sum_j L_ij(k dt) xddot_j(t - k dt)
    exciting_force:  F_i = dtau * sum_k w_k K_i(tau_k) eta(t - tau_k), tau_k = -T..T

    w_k are trapezoid weights over the samples actually available; while fewer than
    n_intpts samples have been pushed the window is shorter and memory effects are
    understated.
    """

    def __init__(self, radiation: RadiationKernels, excitation: Optional[ExcitationKernels] = None,
                 multiplier: int = STORAGE_MULTIPLIER) -> None:
        self.radiation_kernels = radiation
        self.excitation_kernels = excitation
        self._xddot = RollingBuffer(radiation.n_intpts, N_DOF, multiplier)
        self._eta = RollingBuffer(excitation.n_intpts, 1, multiplier) if excitation is not None else None
        self._pending = np.zeros(N_DOF)
        self._pushed = np.zeros(N_DOF, dtype=bool)

    @property
    def n_rad_intpts(self) -> int:
        return self._xddot.window

    @property
    def n_exc_intpts(self) -> int:
        return self._eta.window if self._eta is not None else 0

    @property
    def rad_tstep_index(self) -> int:
        return self._xddot.index

    @property
    def exc_tstep_index(self) -> int:
        return self._eta.index if self._eta is not None else 0

    @property
    def acceleration_buffer(self) -> RollingBuffer:
        return self._xddot

    @property
    def wave_elevation_buffer(self) -> Optional[RollingBuffer]:
        return self._eta

    def push_acceleration(self, dof: int, value: float) -> None:
        """Stage one DOF's acceleration; the cursor advances once all six are staged."""
        self._pending[dof] = value
        self._pushed[dof] = True
        if self._pushed.all():
            self._xddot.append(self._pending)
            self._pushed[:] = False

    def push_accelerations(self, xddot) -> None:
        for dof, value in enumerate(np.asarray(xddot, dtype=float)):
            self.push_acceleration(dof, value)

    def push_wave_elevation(self, value: float) -> None:
        if self._eta is not None:
            self._eta.append(value)

    def rewind(self) -> None:
        """Drop the latest committed step from both histories."""
        self._xddot.rewind()
        if self._eta is not None:
            self._eta.rewind()
        self._pushed[:] = False

    def radiation_force(self, xdot=None) -> np.ndarray:
        """Memory force from the acceleration history.

        With `xdot` the instantaneous term -L(0) xdot is added; L(0) approximates B(0),
        which is zero for a floating body.
        """
        kern = self.radiation_kernels
        force = np.zeros(N_DOF)
        hist = self._xddot.recent()
        m = hist.shape[0]
        if m > 0:
            w = _trapezoid_end_weights(m)
            force += kern.dt * np.einsum("k,kij,kj->i", w, kern.L[:m], hist)
        if xdot is not None:
            force -= kern.L[0] @ np.asarray(xdot, dtype=float)
        return force

    def exciting_force(self) -> np.ndarray:
        if self._eta is None:
            return np.zeros(N_DOF)
        hist = self._eta.recent()[:, 0]
        m = hist.size
        if m == 0:
            return np.zeros(N_DOF)
        kern = self.excitation_kernels
        w = _trapezoid_end_weights(m)
        return kern.dtau * np.einsum("k,ki,k->i", w, kern.K[:m], hist)

    def reset(self) -> None:
        self._xddot.reset()
        if self._eta is not None:
            self._eta.reset()
        self._pushed[:] = False
