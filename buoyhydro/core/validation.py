from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np

from .types import BodyParams, BodyState, DOF_NAMES, N_DOF, SimulationConfig
from .exceptions import ConfigError, NumericalInstability


def validate_params(params: BodyParams) -> None:
    if not math.isfinite(params.mass) or params.mass <= 0:
        raise ConfigError("Invalid mass", field_name="mass", field_value=params.mass)
    if not math.isfinite(params.volume) or params.volume < 0:
        raise ConfigError("Invalid submerged volume", field_name="volume", field_value=params.volume)
    if params.rho <= 0 or params.g <= 0 or params.L <= 0:
        raise ConfigError("rho, g and L must be > 0")
    inertia = np.asarray(params.inertia, dtype=float)
    if inertia.shape != (3, 3):
        raise ConfigError("Inertia tensor must be 3x3", field_name="inertia")
    if np.any(np.diag(inertia) <= 0):
        raise ConfigError("Inertia tensor diagonal must be > 0", field_name="inertia")
    for name in ("linear_damping", "drag_coeffs", "areas"):
        values = getattr(params, name)
        if len(values) != N_DOF:
            raise ConfigError(f"{name} must have {N_DOF} entries", field_name=name, field_value=values)
        if any(v < 0 for v in values):
            raise ConfigError(f"{name} must be non-negative", field_name=name, field_value=values)


def validate_config(cfg: SimulationConfig) -> None:
    if not math.isfinite(cfg.dt) or cfg.dt <= 0:
        raise ConfigError("dt must be > 0", field_name="t_step", field_value=cfg.dt)
    if not math.isfinite(cfg.t_end) or cfg.t_end <= cfg.t0:
        raise ConfigError("t_end must be > t0", field_name="t_end", field_value=cfg.t_end)
    if not math.isfinite(cfg.t0):
        raise ConfigError("t0 must be finite")
    if cfg.output_decimation <= 0:
        raise ConfigError("decimation factor must be a positive integer")
    if len(cfg.initial_state) != 2 * N_DOF:
        raise ConfigError("initial state must have 12 components", field_name="initial_state")
    if cfg.kernel.max_duration < cfg.kernel.min_duration:
        raise ConfigError("kernel max_duration must be >= min_duration")


def check_finite_state(state: BodyState) -> None:
    for name, val in zip(DOF_NAMES, state.position):
        if not math.isfinite(val):
            raise NumericalInstability(f"Non-finite position component {name}={val}", simulation_time=state.t)
    for name, val in zip(DOF_NAMES, state.velocity):
        if not math.isfinite(val):
            raise NumericalInstability(f"Non-finite velocity component {name}={val}", simulation_time=state.t)


def check_finite_derivatives(xddot: Sequence[float], t: Optional[float] = None) -> None:
    for name, val in zip(DOF_NAMES, xddot):
        if not math.isfinite(val):
            raise NumericalInstability(f"Non-finite acceleration {name}={val}", component=name, simulation_time=t)


def detect_numerical_issue(state_before: BodyState, state_after: BodyState, max_jump: float = 1e3) -> None:
    # NaN/Inf and absurd jumps within one step
    check_finite_state(state_after)
    jump = np.abs(np.asarray(state_after.position) - np.asarray(state_before.position))
    if np.any(jump > max_jump):
        k = int(np.argmax(jump))
        raise NumericalInstability(
            "Unrealistic position jump detected",
            component=DOF_NAMES[k],
            value=float(jump[k]),
            simulation_time=state_after.t,
        )


def apply_termination_bounds(state: BodyState, cfg: SimulationConfig) -> Optional[str]:
    bounds = cfg.termination_bounds or {}
    for name, val in zip(DOF_NAMES, state.position):
        lo = bounds.get(f"{name}_min")
        hi = bounds.get(f"{name}_max")
        if lo is not None and val < lo:
            return f"{name} below bound"
        if hi is not None and val > hi:
            return f"{name} above bound"
    return None
