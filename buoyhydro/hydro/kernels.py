from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy.integrate import cumulative_trapezoid

from ..core.exceptions import ConfigError, DataError
from ..core.types import KernelOptions
from .coefficients import ExcitationTable, FrequencyCoefficientTable, interp_heading

logger = logging.getLogger(__name__)

# Rows of the tau x omega transform matrix built at once
_CHUNK = 512


@dataclass(frozen=True)
class ImpulseResponseTable:
    """Time-domain impulse responses read from file, before resampling onto the step grid.

    K_cos/K_sin: (n_rad, 6, 6) sampled at tau_rad >= 0.
    K_exc: (n_exc, n_heading, 6) sampled at tau_exc (two-sided), headings in radians.
    """
    tau_rad: np.ndarray
    K_cos: np.ndarray
    K_sin: np.ndarray
    tau_exc: Optional[np.ndarray] = None
    beta: Optional[np.ndarray] = None
    K_exc: Optional[np.ndarray] = None


@dataclass(frozen=True)
class RadiationKernels:
    """Radiation impulse responses on the uniform grid tau = k * dt, k = 0..n-1.

    ir_cosint: K(tau) = 2/pi int B(w) cos(w tau) dw, the velocity kernel
    ir_sinint: K(tau) rebuilt from added mass, -2/pi int w (A(w) - A_inf) sin(w tau) dw
    L:         int_tau^T K(s) ds, the kernel applied to the acceleration history
    """
    dt: float
    tau: np.ndarray
    ir_cosint: np.ndarray
    ir_sinint: np.ndarray
    L: np.ndarray

    @property
    def n_intpts(self) -> int:
        return int(self.tau.size)


@dataclass(frozen=True)
class ExcitationKernels:
    """Excitation impulse responses on tau = -T..T with step dtau, shape (n, 6)."""
    dtau: float
    tau: np.ndarray
    K: np.ndarray
    heading: float

    @property
    def n_intpts(self) -> int:
        return int(self.tau.size)

    @property
    def half_width(self) -> float:
        return float(self.tau[-1])


def _trapezoid_weights(x: np.ndarray) -> np.ndarray:
    w = np.zeros_like(x, dtype=float)
    if x.size > 1:
        d = np.diff(x)
        w[:-1] += 0.5 * d
        w[1:] += 0.5 * d
    return w


def _transform(tau: np.ndarray, omega: np.ndarray, weighted: np.ndarray,
               fn: Callable[[np.ndarray], np.ndarray]) -> np.ndarray:
    """sum_k fn(omega_k * tau) * weighted[k, ...] for every tau, computed in row chunks."""
    flat = weighted.reshape(omega.size, -1)
    out = np.empty((tau.size, flat.shape[1]), dtype=flat.dtype)
    for start in range(0, tau.size, _CHUNK):
        stop = min(start + _CHUNK, tau.size)
        out[start:stop] = fn(np.outer(tau[start:stop], omega)) @ flat
    return out.reshape((tau.size,) + weighted.shape[1:])


def _decayed_length(envelope: np.ndarray, tol: float) -> Optional[int]:
    """Number of leading samples after which envelope stays below tol * peak; None if all zero."""
    peak = float(np.max(envelope)) if envelope.size else 0.0
    if peak <= 0.0:
        return None
    above = np.nonzero(envelope > tol * peak)[0]
    return int(above[-1]) + 1


class KernelSynthesizer:
    """Frequency-to-time conversion of radiation and excitation coefficients.

    Synthesis is a pure function of the tables, the step size and the options,
    so repeated calls on unchanged inputs give identical kernels.
    """

    def __init__(self, options: Optional[KernelOptions] = None) -> None:
        self.options = options or KernelOptions()
        if self.options.decay_policy not in ("threshold", "cycles"):
            raise ConfigError("Unknown kernel decay policy", field_name="decay_policy",
                              field_value=self.options.decay_policy)

    def _n_points(self, dt: float, duration: float) -> int:
        opts = self.options
        duration = min(max(duration, opts.min_duration), opts.max_duration)
        return int(round(duration / dt)) + 1

    def _duration(self, envelope: np.ndarray, dt: float, omega_dominant: Optional[float], what: str) -> float:
        opts = self.options
        if opts.decay_policy == "cycles":
            if not omega_dominant:
                return opts.min_duration
            return opts.n_cycles * 2.0 * np.pi / omega_dominant
        n = _decayed_length(envelope, opts.decay_tolerance)
        if n is None:
            return opts.min_duration
        if n >= envelope.size:
            logger.warning("%s kernel has not decayed within max_duration=%.3g s", what, opts.max_duration)
        return n * dt

    # --- radiation ---
    def radiation(self, table: FrequencyCoefficientTable, dt: float) -> RadiationKernels:
        if dt <= 0:
            raise ConfigError("Timestep size must be > 0 before kernel synthesis", field_name="dt", field_value=dt)
        opts = self.options
        omega = table.omega
        w = _trapezoid_weights(omega)
        tau_max = np.arange(self._n_points(dt, opts.max_duration)) * dt

        K_cos = (2.0 / np.pi) * _transform(tau_max, omega, w[:, None, None] * table.B, np.cos)

        diag_B = np.abs(np.diagonal(table.B, axis1=1, axis2=2)).sum(axis=1)
        omega_dom = float(omega[np.argmax(diag_B)]) if np.any(diag_B > 0) else None
        envelope = np.abs(K_cos).reshape(tau_max.size, -1).max(axis=1)
        n = self._n_points(dt, self._duration(envelope, dt, omega_dom, "Radiation"))

        tau = tau_max[:n]
        K_cos = K_cos[:n]
        A_inf = table.A_inf if table.A_inf is not None else table.A[-1]
        weighted = (w * omega)[:, None, None] * (table.A - A_inf[None, :, :])
        K_sin = -(2.0 / np.pi) * _transform(tau, omega, weighted, np.sin)

        kernels = RadiationKernels(dt=dt, tau=tau, ir_cosint=K_cos, ir_sinint=K_sin,
                                   L=_acceleration_kernel(K_cos, tau))
        logger.info("Radiation kernels synthesised: %d points at dt=%.4g s (%.3g s memory)",
                    kernels.n_intpts, dt, tau[-1])
        return kernels

    def radiation_from_impulse(self, irf: ImpulseResponseTable, dt: float) -> RadiationKernels:
        """Resample tabulated impulse responses onto the step grid; values are otherwise kept as read."""
        if dt <= 0:
            raise ConfigError("Timestep size must be > 0 before kernel loading", field_name="dt", field_value=dt)
        if irf.tau_rad.size < 2:
            raise DataError("radiation impulse response needs at least two samples")
        n = int(np.floor(irf.tau_rad[-1] / dt + 1e-9)) + 1
        tau = np.arange(n) * dt
        K_cos = _resample(irf.tau_rad, irf.K_cos, tau)
        K_sin = _resample(irf.tau_rad, irf.K_sin, tau)
        kernels = RadiationKernels(dt=dt, tau=tau, ir_cosint=K_cos, ir_sinint=K_sin,
                                   L=_acceleration_kernel(K_cos, tau))
        logger.info("Radiation kernels loaded from impulse responses: %d points at dt=%.4g s", n, dt)
        return kernels

    # --- excitation ---
    def excitation(self, table: ExcitationTable, heading: float, dt: float) -> ExcitationKernels:
        if dt <= 0:
            raise ConfigError("Timestep size must be > 0 before kernel synthesis", field_name="dt", field_value=dt)
        opts = self.options
        omega = table.omega
        X = table.at_heading(heading)
        w = _trapezoid_weights(omega)

        m = self._n_points(dt, opts.max_duration) - 1
        tau_max = np.arange(-m, m + 1) * dt
        K = (1.0 / np.pi) * (
            _transform(tau_max, omega, w[:, None] * X.real, np.cos)
            - _transform(tau_max, omega, w[:, None] * X.imag, np.sin)
        )

        # fold onto |tau| so the decay test looks at both tails
        env = np.abs(K).max(axis=1)
        folded = np.maximum(env[m:], env[m::-1])
        mag = np.abs(X).sum(axis=1)
        omega_dom = float(omega[np.argmax(mag)]) if np.any(mag > 0) else None
        half = self._n_points(dt, self._duration(folded, dt, omega_dom, "Excitation")) - 1

        kernels = ExcitationKernels(dtau=dt, tau=tau_max[m - half:m + half + 1],
                                    K=K[m - half:m + half + 1], heading=heading)
        logger.info("Excitation kernels synthesised: %d points, half-width %.3g s, heading %.3g rad",
                    kernels.n_intpts, kernels.half_width, heading)
        return kernels

    def excitation_from_impulse(self, irf: ImpulseResponseTable, heading: float, dt: float) -> ExcitationKernels:
        if irf.K_exc is None or irf.tau_exc is None or irf.beta is None:
            raise ConfigError("Impulse-response table carries no excitation data")
        if dt <= 0:
            raise ConfigError("Timestep size must be > 0 before kernel loading", field_name="dt", field_value=dt)
        half_width = max(abs(irf.tau_exc[0]), abs(irf.tau_exc[-1]))
        m = int(np.floor(half_width / dt + 1e-9))
        tau = np.arange(-m, m + 1) * dt
        K_src = interp_heading(irf.beta, irf.K_exc, heading)
        K = _resample(irf.tau_exc, K_src, tau)
        return ExcitationKernels(dtau=dt, tau=tau, K=K, heading=heading)


def _acceleration_kernel(K: np.ndarray, tau: np.ndarray) -> np.ndarray:
    """L(tau) = int_tau^T K(s) ds by reverse cumulative trapezoid; a single sample gives zero."""
    if tau.size < 2:
        return np.zeros_like(K)
    running = cumulative_trapezoid(K, tau, axis=0, initial=0.0)
    return running[-1][None, ...] - running


def _resample(src_tau: np.ndarray, values: np.ndarray, tau: np.ndarray) -> np.ndarray:
    flat = values.reshape(src_tau.size, -1)
    out = np.empty((tau.size, flat.shape[1]))
    for col in range(flat.shape[1]):
        out[:, col] = np.interp(tau, src_tau, flat[:, col], left=0.0, right=0.0)
    return out.reshape((tau.size,) + values.shape[1:])


def kramers_kronig_residual(kernels: RadiationKernels) -> np.ndarray:
    """Per-entry max |K_cos - K_sin| over the kernel span, normalised by the K_cos peak."""
    diff = np.abs(kernels.ir_cosint - kernels.ir_sinint).max(axis=0)
    scale = np.abs(kernels.ir_cosint).max(axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(scale > 0, diff / scale, 0.0)
