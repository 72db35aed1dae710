from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from ...analysis.frequency_response import FrequencyResponseSolver
from ...core.exceptions import ConfigError
from ...core.types import BodyParams, BodyState, ForceResult, KernelOptions, N_DOF, SimulationConfig
from ...environment.waves import IncidentWave
from ...forces.base import ForceModule
from ...forces.damping import LinearDamping, ViscousDrag
from ...forces.hydrostatics import HydrostaticModel
from ...hydro.coefficients import FrequencyCoefficientStore
from ...hydro.history import STORAGE_MULTIPLIER, ConvolutionHistory
from ...hydro.kernels import ExcitationKernels, ImpulseResponseTable, KernelSynthesizer, RadiationKernels
from ...io.wamit import read_wamit_fd, read_wamit_td

logger = logging.getLogger(__name__)

# Fraction of dt within which two evaluation times count as the same step
_STEP_TOL = 1e-6


def _skew(r: np.ndarray) -> np.ndarray:
    return np.array([
        [0.0, -r[2], r[1]],
        [r[2], 0.0, -r[0]],
        [-r[1], r[0], 0.0],
    ])


class ForceEvaluator:
    """6-DOF hydrodynamics of a floating body, evaluated as an ODE right-hand side.

    Responsibilities:
      - hold the frequency-domain tables, body geometry and damping settings
      - synthesise radiation/excitation kernels and own the convolution histories
      - map a 12-component state to accelerations via
        (M + A_inf) xddot = F_gravity + F_buoyancy + F_drag + F_damping + F_radiation + F_excitation

    The histories advance one sample per timestep. A call whose time is one dt past the
    last committed sample appends; a repeated call at the committed time replaces it;
    calls in between (Runge-Kutta stages) only read. Not safe for concurrent callers.
    """

    def __init__(
        self,
        incident_wave: IncidentWave,
        L: float = 1.0,
        g: float = 9.81,
        rho: float = 1025.0,
        kernel_options: Optional[KernelOptions] = None,
        storage_multiplier: int = STORAGE_MULTIPLIER,
    ) -> None:
        self.incident_wave = incident_wave
        self.L = L
        self.g = g
        self.rho = rho
        self.storage_multiplier = storage_multiplier
        self.fd_filename: Optional[str] = None
        self.td_filename: Optional[str] = None
        self.reference_point = (0.0, 0.0)

        self.store = FrequencyCoefficientStore()
        self.synthesizer = KernelSynthesizer(kernel_options)
        self.hydrostatics = HydrostaticModel(rho=rho, g=g)
        self.viscous_drag = ViscousDrag(rho=rho)
        self.linear_damping = LinearDamping()

        self._mass = 0.0
        self._inertia = np.zeros((3, 3))
        self._dt = 0.0
        self._impulse: Optional[ImpulseResponseTable] = None
        self._radiation_kernels: Optional[RadiationKernels] = None
        self._excitation_kernels: Optional[ExcitationKernels] = None
        self._history: Optional[ConvolutionHistory] = None
        self._a_inf = np.zeros((N_DOF, N_DOF))
        self._kernel_dt: Optional[float] = None
        self._kernel_revision: Optional[int] = None
        self._t_last: Optional[float] = None
        self.t_eta: Optional[float] = None
        self.last_forces: Optional[ForceResult] = None

    # --- coefficient files ---
    def read_wamit_data_fd(self, path: str | Path, period_input: bool = True) -> None:
        radiation, excitation = read_wamit_fd(path, rho=self.rho, g=self.g, L=self.L, period_input=period_input)
        self.store.set_radiation_table(radiation)
        if excitation is not None:
            self.store.set_excitation_table(excitation)
        self.fd_filename = str(path)

    def read_wamit_data_td(self, path: str | Path) -> None:
        self._impulse = read_wamit_td(path)
        self.td_filename = str(path)
        # impulse responses replace synthesis; existing kernels no longer match the source
        self._kernel_revision = None

    # --- frequency-domain lookups ---
    def added_mass(self, omega: float, i: Optional[int] = None, j: Optional[int] = None):
        return self.store.added_mass(omega, i, j)

    def radiation_damping(self, omega: float, i: Optional[int] = None, j: Optional[int] = None):
        return self.store.radiation_damping(omega, i, j)

    def wave_exciting_force_components(self, omega: float, j: Optional[int] = None):
        return self.store.wave_exciting_force_components(omega, j)

    # --- configuration ---
    def set_timestep_size(self, dt: float) -> None:
        if not dt > 0:
            raise ConfigError("Timestep size must be > 0", field_name="dt", field_value=dt)
        if self._kernel_dt is not None and dt != self._kernel_dt:
            logger.info("Timestep changed from %.4g to %.4g s; kernels must be re-synthesised", self._kernel_dt, dt)
        self._dt = float(dt)

    def get_timestep_size(self) -> float:
        return self._dt

    timestep_size = property(get_timestep_size, set_timestep_size)

    @property
    def wave_heading(self) -> float:
        return self.store.heading

    @wave_heading.setter
    def wave_heading(self, beta: float) -> None:
        self.store.heading = beta

    def set_damping_coeffs(self, b: Sequence[float]) -> None:
        self.linear_damping.set_coeffs(b)

    def set_drag_coeffs(self, Cd: Sequence[float]) -> None:
        self.viscous_drag.set_coeffs(Cd)

    def set_areas(self, A: Sequence[float]) -> None:
        self.viscous_drag.set_areas(A)

    def set_waterplane(self, S: float, S11: float, S22: float) -> None:
        self.hydrostatics.update(S=float(S), S11=float(S11), S22=float(S22))

    def set_cob(self, x: float, y: float, z: float) -> None:
        self.hydrostatics.update(cob=(float(x), float(y), float(z)))

    def set_cog(self, x: float, y: float, z: float) -> None:
        self.hydrostatics.update(cog=(float(x), float(y), float(z)))

    def set_volume(self, V: float) -> None:
        self.hydrostatics.update(volume=float(V))

    def set_mass(self, m: float) -> None:
        if not m > 0:
            raise ConfigError("Mass must be > 0", field_name="mass", field_value=m)
        self._mass = float(m)
        self.hydrostatics.update(mass=self._mass)

    def set_inertia(self, I) -> None:
        I = np.asarray(I, dtype=float)
        if I.shape != (3, 3):
            raise ConfigError("Inertia tensor must be 3x3", field_name="I", field_value=I.shape)
        self._inertia = I.copy()

    @property
    def c(self) -> np.ndarray:
        return self.hydrostatics.c

    @property
    def mass_matrix(self) -> np.ndarray:
        """Rigid-body mass matrix about the body origin; inertia tensor is taken about the COG."""
        m = self._mass
        rg = np.asarray(self.hydrostatics.geometry.cog)
        S = _skew(rg)
        M = np.zeros((N_DOF, N_DOF))
        M[:3, :3] = m * np.eye(3)
        M[:3, 3:] = -m * S
        M[3:, :3] = m * S
        M[3:, 3:] = self._inertia - m * S @ S
        return M

    # --- kernels ---
    def synthesize_kernels(self) -> None:
        """Build kernels and fresh histories for the current tables, heading and timestep."""
        if not self._dt > 0:
            raise ConfigError("Timestep size must be set before kernel synthesis", field_name="dt", field_value=self._dt)
        heading = self.store.heading
        if self._impulse is not None:
            rad = self.synthesizer.radiation_from_impulse(self._impulse, self._dt)
        elif self.store.has_radiation:
            rad = self.synthesizer.radiation(self.store.radiation, self._dt)
        else:
            raise ConfigError("No radiation coefficients loaded; read frequency- or time-domain data first")

        exc = None
        if self._impulse is not None and self._impulse.K_exc is not None:
            exc = self.synthesizer.excitation_from_impulse(self._impulse, heading, self._dt)
        elif self.store.has_excitation:
            exc = self.synthesizer.excitation(self.store.excitation, heading, self._dt)

        if self.store.has_radiation:
            self._a_inf = self.store.infinite_frequency_added_mass()
        else:
            logger.warning("No frequency-domain table; infinite-frequency added mass taken as zero")
            self._a_inf = np.zeros((N_DOF, N_DOF))

        self._radiation_kernels = rad
        self._excitation_kernels = exc
        self._history = ConvolutionHistory(rad, exc, multiplier=self.storage_multiplier)
        self._kernel_dt = self._dt
        self._kernel_revision = self.store.revision
        self._t_last = None
        self.t_eta = None

    @property
    def radiation_kernels(self) -> Optional[RadiationKernels]:
        return self._radiation_kernels

    @property
    def excitation_kernels(self) -> Optional[ExcitationKernels]:
        return self._excitation_kernels

    @property
    def history(self) -> Optional[ConvolutionHistory]:
        return self._history

    @property
    def kernels_ready(self) -> bool:
        return (
            self._history is not None
            and self._kernel_dt == self._dt
            and self._kernel_revision == self.store.revision
        )

    def _require_ready(self) -> ConvolutionHistory:
        if not self._dt > 0:
            raise ConfigError("Timestep size not set", field_name="dt", field_value=self._dt)
        if self._history is None:
            raise ConfigError("Kernels not synthesised; call synthesize_kernels() before stepping")
        if not self.kernels_ready:
            raise ConfigError(
                "Kernels are stale after a timestep, heading or table change; call synthesize_kernels()",
                field_name="dt", field_value=self._dt,
            )
        if not self._mass > 0:
            raise ConfigError("Mass not set", field_name="mass")
        return self._history

    # --- force models ---
    def viscous_drag_force(self, xdot) -> np.ndarray:
        return self.viscous_drag.force(xdot)

    def linear_damping_force(self, xdot) -> np.ndarray:
        return self.linear_damping.force(xdot)

    def gravity_force(self, x) -> np.ndarray:
        return self.hydrostatics.gravity_force(x)

    def buoyancy_force(self, x) -> np.ndarray:
        return self.hydrostatics.buoyancy_force(x)

    def radiation_force(self, xdot=None) -> np.ndarray:
        """Memory force from the committed acceleration history; the history is not modified."""
        return self._require_ready().radiation_force(xdot)

    def exciting_force(self) -> np.ndarray:
        """Wave-exciting force from the committed elevation history; the history is not modified."""
        return self._require_ready().exciting_force()

    def _state_forces(self) -> tuple[tuple[str, ForceModule], ...]:
        return (("viscous_drag", self.viscous_drag), ("linear_damping", self.linear_damping))

    def _sample_wave(self, hist: ConvolutionHistory, t: float) -> None:
        # two-sided kernels need the elevation half a kernel ahead of the body time
        lead = self._excitation_kernels.half_width if self._excitation_kernels is not None else 0.0
        self.t_eta = t + lead
        hist.push_wave_elevation(self.incident_wave.eta(*self.reference_point, self.t_eta))

    # --- equations of motion ---
    def accelerations(self, t: float, x) -> np.ndarray:
        hist = self._require_ready()
        state = BodyState.from_vector(t, x)
        x = np.asarray(x, dtype=float)
        pos = x[:N_DOF]
        vel = x[N_DOF:2 * N_DOF]

        tol = self._dt * _STEP_TOL
        new_step = self._t_last is None or t >= self._t_last + self._dt - tol
        same_step = not new_step and abs(t - self._t_last) <= tol
        if same_step:
            hist.rewind()
        if new_step or same_step:
            self._sample_wave(hist, t)

        components = {
            "gravity": self.gravity_force(pos),
            "buoyancy": self.buoyancy_force(pos),
        }
        for name, mod in self._state_forces():
            components[name] = np.asarray(mod.compute(state), dtype=float)
        components["radiation"] = hist.radiation_force(vel)
        components["excitation"] = hist.exciting_force()
        total = np.sum(list(components.values()), axis=0)
        xddot = np.linalg.solve(self.mass_matrix + self._a_inf, total)

        if new_step or same_step:
            hist.push_accelerations(xddot)
            self._t_last = t
        self.last_forces = ForceResult(total=total, components=components)
        return xddot

    def __call__(self, t: float, x) -> np.ndarray:
        """State derivative [velocities, accelerations] for a 12-component state."""
        x = np.asarray(x, dtype=float)
        xddot = self.accelerations(t, x)
        # small-angle kinematics: Euler-angle rates equal body angular velocity
        return np.concatenate([x[N_DOF:2 * N_DOF], xddot])

    def f(self, state: BodyState) -> np.ndarray:
        return self(state.t, state.as_vector())

    def reset_history(self) -> None:
        if self._history is not None:
            self._history.reset()
        self._t_last = None
        self.t_eta = None

    # --- steady state ---
    def frequency_response(self) -> FrequencyResponseSolver:
        """Steady-state solver over the current tables, mass matrix and restoring matrix."""
        return FrequencyResponseSolver(self.store, self.mass_matrix, self.hydrostatics.c)

    def complex_amplitude(self, omega: float, mode: Optional[int] = None):
        return self.frequency_response().complex_amplitude(omega, mode)

    # --- diagnostics ---
    def describe(self) -> str:
        geom = self.hydrostatics.geometry
        fmt = {"float_kind": lambda v: f"{v: .4g}"}
        lines = [
            "ForceEvaluator",
            f"  rho = {self.rho}  g = {self.g}  L = {self.L}",
            f"  dt = {self._dt}  heading = {self.store.heading:.4g} rad",
            f"  mass = {self._mass}  volume = {geom.volume}",
            f"  waterplane: S = {geom.S}  S11 = {geom.S11}  S22 = {geom.S22}",
            f"  COB = {geom.cob}  COG = {geom.cog}",
            "  inertia =",
            np.array2string(self._inertia, prefix="    ", formatter=fmt),
            "  hydrostatic matrix c =",
            np.array2string(self.hydrostatics.c, prefix="    ", formatter=fmt),
            "  linear damping b = " + np.array2string(self.linear_damping.b, formatter=fmt),
            "  drag Cd = " + np.array2string(self.viscous_drag.Cd, formatter=fmt),
            "  drag areas = " + np.array2string(self.viscous_drag.A, formatter=fmt),
        ]
        if self.store.has_radiation:
            tab = self.store.radiation
            lines.append(
                f"  radiation table: {tab.n_freq} frequencies [{tab.omega[0]:.4g}, {tab.omega[-1]:.4g}] rad/s"
                f" ({self.fd_filename or 'in memory'})"
            )
            lines.append("  A_inf diagonal = " + np.array2string(np.diag(self.store.infinite_frequency_added_mass()), formatter=fmt))
        else:
            lines.append("  radiation table: none")
        if self.store.has_excitation:
            tab = self.store.excitation
            lines.append(f"  excitation table: {tab.omega.size} frequencies, {tab.beta.size} headings")
        else:
            lines.append("  excitation table: none")
        if self._impulse is not None:
            lines.append(f"  impulse responses: {self.td_filename}")
        if self._radiation_kernels is not None:
            lines.append(
                f"  radiation kernels: {self._radiation_kernels.n_intpts} points"
                f" ({'ready' if self.kernels_ready else 'stale'})"
            )
        if self._excitation_kernels is not None:
            lines.append(
                f"  excitation kernels: {self._excitation_kernels.n_intpts} points,"
                f" half-width {self._excitation_kernels.half_width:.4g} s"
            )
        if self._history is not None:
            lines.append(
                f"  history cursors: rad = {self._history.rad_tstep_index}  exc = {self._history.exc_tstep_index}"
            )
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.describe()


def build_force_evaluator(params: BodyParams, config: SimulationConfig, incident_wave: IncidentWave) -> ForceEvaluator:
    """Configure a ForceEvaluator from loaded body/scenario definitions and synthesise its kernels."""
    evaluator = ForceEvaluator(incident_wave, L=params.L, g=params.g, rho=params.rho, kernel_options=config.kernel)
    if params.fd_file:
        evaluator.read_wamit_data_fd(params.fd_file)
    if params.td_file:
        evaluator.read_wamit_data_td(params.td_file)
    evaluator.set_mass(params.mass)
    evaluator.set_inertia(params.inertia)
    evaluator.set_cog(*params.cog)
    evaluator.set_cob(*params.cob)
    evaluator.set_volume(params.volume)
    evaluator.set_waterplane(params.S, params.S11, params.S22)
    evaluator.set_damping_coeffs(params.linear_damping)
    evaluator.set_drag_coeffs(params.drag_coeffs)
    evaluator.set_areas(params.areas)
    evaluator.wave_heading = config.wave_heading
    evaluator.set_timestep_size(config.dt)
    evaluator.synthesize_kernels()
    logger.info("Force evaluator ready for body '%s'", params.name)
    return evaluator
