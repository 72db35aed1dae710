from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import numpy as np

from .exceptions import ConfigError

DOF_NAMES = ("surge", "sway", "heave", "roll", "pitch", "yaw")
N_DOF = 6


@dataclass(frozen=True)
class BodyState:
    """Caller-owned 12-component state: 6 positions/orientations then 6 velocities.
    Orientation is (roll, pitch, yaw) in radians, velocities in the same order."""
    t: float
    position: tuple[float, ...]
    velocity: tuple[float, ...]

    @classmethod
    def from_vector(cls, t: float, x: Sequence[float]) -> "BodyState":
        x = [float(v) for v in x]
        if len(x) != 2 * N_DOF:
            raise ConfigError(f"state vector must have {2 * N_DOF} components", field_name="state", field_value=len(x))
        return cls(t=float(t), position=tuple(x[:N_DOF]), velocity=tuple(x[N_DOF:]))

    def as_vector(self) -> np.ndarray:
        return np.concatenate([np.asarray(self.position, dtype=float), np.asarray(self.velocity, dtype=float)])


@dataclass(frozen=True)
class ForceResult:
    """Total generalized force on the body, with the contribution of each force model."""
    total: np.ndarray
    components: Mapping[str, np.ndarray] = field(default_factory=dict)


@dataclass(frozen=True)
class KernelOptions:
    """Tunables of the impulse-response synthesis.

    decay_policy:
      "threshold" - kernel ends where every entry stays below decay_tolerance * peak
      "cycles"    - kernel lasts n_cycles periods of the dominant damping frequency
    """
    max_duration: float = 60.0     # [s], upper bound on kernel memory
    min_duration: float = 1.0      # [s], lower bound, also used when tables carry no information
    decay_tolerance: float = 1e-3  # relative to kernel peak
    decay_policy: str = "threshold"
    n_cycles: float = 10.0


@dataclass(frozen=True)
class BodyParams:
    """Body definition normalised to SI units, populated by the body JSON loader."""
    name: str
    rho: float
    g: float
    L: float
    mass: float
    inertia: tuple[tuple[float, float, float], ...]
    cog: tuple[float, float, float]
    cob: tuple[float, float, float]
    volume: float
    S: float
    S11: float
    S22: float
    linear_damping: tuple[float, ...]
    drag_coeffs: tuple[float, ...]
    areas: tuple[float, ...]
    fd_file: Optional[str] = None
    td_file: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class SimulationConfig:
    """Simulation configuration derived from Scenario JSON."""
    t0: float
    t_end: float
    dt: float
    initial_state: tuple[float, ...] = (0.0,) * (2 * N_DOF)
    wave_heading: float = 0.0           # [rad]
    waves: Optional[Mapping[str, Any]] = None
    kernel: KernelOptions = KernelOptions()
    output_decimation: int = 1
    termination_bounds: Optional[Mapping[str, float]] = None
    notes: Optional[str] = None
