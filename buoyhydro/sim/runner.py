from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

import numpy as np
from scipy.integrate import solve_ivp

from ..core.types import BodyState, DOF_NAMES, ForceResult, N_DOF, SimulationConfig
from ..core.validation import (
    validate_config,
    check_finite_state,
    check_finite_derivatives,
    detect_numerical_issue,
    apply_termination_bounds,
)

logger = logging.getLogger(__name__)


class RightHandSide(Protocol):
    last_forces: Optional[ForceResult]

    def __call__(self, t: float, x: "np.ndarray") -> "np.ndarray": ...


@dataclass
class Callbacks:
    on_step: Optional[Callable[[float, BodyState, np.ndarray, Optional[ForceResult]], None]] = None
    on_tick_logged: Optional[Callable[[int], None]] = None


@dataclass
class RunResult:
    status: str
    reason: Optional[str]
    end_time: float
    ticks: int
    dt: float
    final_state: Optional[np.ndarray] = None

    def summary(self) -> Mapping[str, Any]:
        return {
            "status": self.status,
            "reason": self.reason,
            "end_time": self.end_time,
            "ticks": self.ticks,
            "dt": self.dt,
        }


def _tick_record(t: float, y: np.ndarray, xddot: np.ndarray, eta: float) -> dict[str, float]:
    record: dict[str, float] = {"t": float(t)}
    for k, name in enumerate(DOF_NAMES):
        record[name] = float(y[k])
        record[f"{name}_vel"] = float(y[N_DOF + k])
        record[f"{name}_acc"] = float(xddot[k])
    record["eta"] = float(eta)
    return record


class SimulationRunner:
    """Fixed-step simulation loop integrating each dt segment with SciPy solve_ivp.

    The right-hand side is evaluated once at the start of every segment for logging;
    that evaluation lands on the already committed history sample and replaces it.
    """

    def __init__(self, method: str = "RK45", rtol: float = 1e-6, atol: float = 1e-9) -> None:
        self.method = method
        self.rtol = rtol
        self.atol = atol

    def run(
        self,
        rhs: RightHandSide,
        config: SimulationConfig,
        writer: Optional["TickWriter"] = None,
        summary_writer: Optional["SummaryWriter"] = None,
        callbacks: Optional[Callbacks] = None,
    ) -> RunResult:
        validate_config(config)
        t = config.t0
        k = 0
        y = np.asarray(config.initial_state, dtype=float)
        check_finite_state(BodyState.from_vector(t, y))
        term_reason: Optional[str] = None
        min_advance = max(1e-12, 1e-9 * config.dt)
        logger.info("Run start: t0=%.4g t_end=%.4g dt=%.4g", config.t0, config.t_end, config.dt)

        while t < config.t_end - min_advance:
            deriv = np.asarray(rhs(t, y), dtype=float)
            xddot = deriv[N_DOF:]
            check_finite_derivatives(xddot, t)
            state = BodyState.from_vector(t, y)

            if callbacks and callbacks.on_step:
                callbacks.on_step(t, state, xddot, rhs.last_forces)

            if writer and (k % config.output_decimation) == 0:
                eta = _current_eta(rhs, t)
                writer.write_tick(_tick_record(t, y, xddot, 0.0 if eta is None else eta))
                if callbacks and callbacks.on_tick_logged:
                    callbacks.on_tick_logged(k)

            t_next = min(t + config.dt, config.t_end)
            sol = solve_ivp(
                rhs,
                (t, t_next),
                y,
                method=self.method,
                rtol=self.rtol,
                atol=self.atol,
                max_step=config.dt,
            )
            if not sol.success:
                term_reason = f"solver_failed: {sol.message}"
                break
            y_next = sol.y[:, -1]
            if sol.t[-1] - t < min_advance:
                term_reason = "solver_stagnation"
                break

            state_next = BodyState.from_vector(t_next, y_next)
            detect_numerical_issue(state, state_next)

            y = y_next
            t = t_next
            k += 1

            reason = apply_termination_bounds(state_next, config)
            if reason:
                term_reason = reason
                break

        status = "completed" if term_reason is None else "terminated"
        result = RunResult(status=status, reason=term_reason, end_time=t, ticks=k, dt=config.dt, final_state=y)
        summary = dict(result.summary())
        summary["reason"] = term_reason or "completed"
        if summary_writer:
            summary_writer.write_summary(summary)
        logger.info("Run %s at t=%.4g after %d ticks", status, t, k)
        return result


def _current_eta(rhs: RightHandSide, t: float) -> Optional[float]:
    wave = getattr(rhs, "incident_wave", None)
    if wave is None:
        return None
    x, y = getattr(rhs, "reference_point", (0.0, 0.0))
    return float(wave.eta(x, y, t))


# IO writer protocols (kept local to avoid circular deps)
class TickWriter(Protocol):
    def write_tick(self, record: Mapping[str, Any]) -> None: ...


class SummaryWriter(Protocol):
    def write_summary(self, summary: Mapping[str, Any]) -> None: ...
