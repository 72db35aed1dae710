from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Union

import numpy as np

from ..core.exceptions import ConfigError


class IncidentWave(Protocol):
    heading: float

    def eta(self, x: float, y: float, t: float) -> float:
        """Free-surface elevation [m] at horizontal position (x, y) and time t."""
        ...


class StillWater:
    """Calm sea; used when excitation is disabled."""

    heading = 0.0

    def eta(self, x: float, y: float, t: float) -> float:
        return 0.0


@dataclass
class RegularWave:
    """
    Deep-water linear (Airy) wave:
      eta = A cos(omega t - k (x cos(beta) + y sin(beta)) + phase),  k = omega^2 / g
    Heading beta is the propagation direction [rad], 0 travelling towards +x.
    """
    amplitude: float
    omega: float
    phase: float = 0.0
    heading: float = 0.0
    g: float = 9.81

    @property
    def wave_number(self) -> float:
        return self.omega ** 2 / self.g

    def eta(self, x: float, y: float, t: float) -> float:
        k = self.wave_number
        xi = x * math.cos(self.heading) + y * math.sin(self.heading)
        return self.amplitude * math.cos(self.omega * t - k * xi + self.phase)


class IrregularWave:
    """
    Long-crested irregular sea from a Pierson-Moskowitz (Bretschneider) spectrum
      S(w) = 5/16 Hs^2 wp^4 / w^5 exp(-5/4 (wp/w)^4),  wp = 2 pi / Tp
    discretised into n_components with random phases.
    """

    def __init__(
        self,
        Hs: float,
        Tp: float,
        heading: float = 0.0,
        n_components: int = 100,
        omega_min: Optional[float] = None,
        omega_max: Optional[float] = None,
        seed: Optional[int] = None,
        g: float = 9.81,
    ) -> None:
        if Hs < 0 or Tp <= 0:
            raise ConfigError("Irregular wave needs Hs >= 0 and Tp > 0", field_name="Tp", field_value=Tp)
        if n_components < 1:
            raise ConfigError("Irregular wave needs at least one component", field_name="n_components")
        self.Hs = Hs
        self.Tp = Tp
        self.heading = heading
        self.g = g
        wp = 2.0 * math.pi / Tp
        lo = omega_min if omega_min is not None else 0.5 * wp
        hi = omega_max if omega_max is not None else 4.0 * wp
        d_omega = (hi - lo) / n_components
        # midpoint rule across the band
        self.omega = lo + d_omega * (np.arange(n_components) + 0.5)
        spectrum = pm_spectrum(self.omega, Hs, Tp)
        self.amplitude = np.sqrt(2.0 * spectrum * d_omega)
        self.phase = np.random.default_rng(seed).uniform(0.0, 2.0 * math.pi, n_components)
        self.k = self.omega ** 2 / g

    def eta(self, x: float, y: float, t: float) -> float:
        xi = x * math.cos(self.heading) + y * math.sin(self.heading)
        return float(np.sum(self.amplitude * np.cos(self.omega * t - self.k * xi + self.phase)))


def pm_spectrum(omega, Hs: float, Tp: float) -> np.ndarray:
    omega = np.asarray(omega, dtype=float)
    wp = 2.0 * math.pi / Tp
    with np.errstate(divide="ignore", over="ignore", invalid="ignore"):
        S = 5.0 / 16.0 * Hs ** 2 * wp ** 4 / omega ** 5 * np.exp(-1.25 * (wp / omega) ** 4)
    return np.where(omega > 0, S, 0.0)


def create_incident_wave_from_config(
    waves_cfg: Optional[Mapping[str, Any]], heading: float = 0.0, g: float = 9.81
) -> Union[StillWater, RegularWave, IrregularWave]:
    """
    Factory building the incident wave from the scenario `waves` block.

    Args:
        waves_cfg: {"type": "none" | "regular" | "irregular", ...}
        heading: Wave propagation heading [rad]
        g: Gravitational acceleration [m/s^2]

    Returns:
        Incident wave model
    """
    cfg = dict(waves_cfg or {})
    kind = cfg.get("type", "none")
    if kind == "none":
        return StillWater()
    if kind == "regular":
        if "omega" in cfg:
            omega = float(cfg["omega"])
        elif "period" in cfg:
            omega = 2.0 * math.pi / float(cfg["period"])
        else:
            raise ConfigError("Regular wave needs omega or period", field_name="waves")
        return RegularWave(
            amplitude=float(cfg.get("amplitude", 0.0)),
            omega=omega,
            phase=float(cfg.get("phase", 0.0)),
            heading=heading,
            g=g,
        )
    if kind == "irregular":
        return IrregularWave(
            Hs=float(cfg["Hs"]),
            Tp=float(cfg["Tp"]),
            heading=heading,
            n_components=int(cfg.get("n_components", 100)),
            omega_min=cfg.get("omega_min"),
            omega_max=cfg.get("omega_max"),
            seed=cfg.get("seed"),
            g=g,
        )
    raise ConfigError(f"Unknown wave type: {kind}", field_name="waves.type", field_value=kind)
