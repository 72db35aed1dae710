"""
Pytest configuration.

Shared fixtures: synthetic coefficient tables, a configured force evaluator
and a complete body/scenario case written to a temporary directory.
"""

import json
import sys
from pathlib import Path

import numpy as np
import pytest

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from buoyhydro.core.types import KernelOptions, N_DOF
from buoyhydro.environment.waves import StillWater
from buoyhydro.hydro.coefficients import FrequencyCoefficientTable
from buoyhydro.io.wamit import WAMIT1_WIDTHS
from buoyhydro.models.buoy6dof.model import ForceEvaluator


def _diagonal_table(omega, a, b, a_inf=None):
    """Radiation table with the same (possibly frequency-dependent) curve on every diagonal entry."""
    omega = np.atleast_1d(np.asarray(omega, dtype=float))
    a = np.broadcast_to(np.asarray(a, dtype=float), omega.shape)
    b = np.broadcast_to(np.asarray(b, dtype=float), omega.shape)
    eye = np.eye(N_DOF)
    return FrequencyCoefficientTable(
        omega=omega,
        A=a[:, None, None] * eye,
        B=b[:, None, None] * eye,
        A_inf=None if a_inf is None else a_inf * eye,
    )


def _configured_evaluator(table, mass=500.0, inertia=100.0, dt=0.01, S=0.0, damping=(0.0,) * N_DOF,
                          options=None, excitation=None, wave=None):
    ev = ForceEvaluator(wave or StillWater(), kernel_options=options)
    ev.store.set_radiation_table(table)
    if excitation is not None:
        ev.store.set_excitation_table(excitation)
    ev.set_mass(mass)
    ev.set_inertia(np.eye(3) * inertia)
    # neutrally buoyant about the origin
    ev.set_volume(mass / ev.rho)
    ev.set_waterplane(S, 0.0, 0.0)
    ev.set_damping_coeffs(damping)
    ev.set_timestep_size(dt)
    ev.synthesize_kernels()
    return ev


@pytest.fixture
def diagonal_table():
    return _diagonal_table


@pytest.fixture
def configured_evaluator():
    return _configured_evaluator


@pytest.fixture
def single_sample_table():
    """One frequency sample at 1 rad/s, A = I, B = 0.1 I."""
    return _diagonal_table([1.0], 1.0, 0.1)


@pytest.fixture
def wamit1_text():
    return _wamit1_text


@pytest.fixture
def exponential_kernel_table():
    """B = k0 a / (a^2 + w^2), A = A_inf - k0 / (a^2 + w^2): impulse response K(t) = k0 exp(-a t)."""
    k0, a, a_inf = 2.0, 1.0, 10.0
    omega = np.arange(0.0, 50.0 + 1e-9, 0.01)
    denom = a ** 2 + omega ** 2
    return _diagonal_table(omega, a_inf - k0 / denom, k0 * a / denom, a_inf=a_inf)


def _fixed_field(value, width):
    if value is None:
        return " " * width
    if isinstance(value, str):
        return value.rjust(width)
    if isinstance(value, int):
        return f"{value:{width}d}"
    return f"{value:{width}.6E}"


def _wamit1_text(rows):
    """Fixed-width WAMIT .1 records (E14.6, 2I6, 2E14.6); None leaves a field blank."""
    return "".join(
        "".join(_fixed_field(v, w) for v, w in zip(row, WAMIT1_WIDTHS)).rstrip() + "\n"
        for row in rows
    )


WAMIT_1 = "# PER I J Abar Bbar\n" + _wamit1_text([
    (-1.0, 1, 1, 2.10),
    (0.0, 1, 1, 1.90),
    (0.0, 2, 2, 1.90),
    (0.0, 3, 3, 3.00),
    (0.0, 4, 4, 0.40),
    (0.0, 5, 5, 0.40),
    (0.0, 6, 6, 0.10),
    (10.0, 1, 1, 2.00, 0.10),
    (10.0, 2, 2, 2.00, 0.10),
    (10.0, 3, 3, 3.40, 0.30),
    (10.0, 4, 4, 0.45, 0.02),
    (10.0, 5, 5, 0.45, 0.02),
    (10.0, 6, 6, 0.12, 0.01),
    (6.0, 1, 1, 1.95, 0.20),
    (6.0, 2, 2, 1.95, 0.20),
    (6.0, 3, 3, 3.20, 0.50),
    (6.0, 4, 4, 0.42, 0.04),
    (6.0, 5, 5, 0.42, 0.04),
    (6.0, 6, 6, 0.11, 0.02),
    (5.0, 1, 1, 1.92, 0.15),
    (5.0, 2, 2, 1.92, 0.15),
    (5.0, 3, 3, 3.10, 0.40),
    (5.0, 4, 4, 0.41, 0.03),
    (5.0, 5, 5, 0.41, 0.03),
    (5.0, 6, 6, 0.11, 0.01),
])

WAMIT_3 = """\
10.0 0.0 1 1.0 0.0 0.8 -0.6
10.0 0.0 3 2.0 0.0 2.0 0.0
10.0 90.0 2 1.0 0.0 0.8 -0.6
10.0 90.0 3 2.0 0.0 2.0 0.0
6.0 0.0 1 1.0 0.0 0.6 -0.8
6.0 0.0 3 1.5 0.0 1.5 0.0
6.0 90.0 2 1.0 0.0 0.6 -0.8
6.0 90.0 3 1.5 0.0 1.5 0.0
5.0 0.0 1 1.0 0.0 0.5 -0.5
5.0 0.0 3 1.2 0.0 1.2 0.0
5.0 90.0 2 1.0 0.0 0.5 -0.5
5.0 90.0 3 1.2 0.0 1.2 0.0
"""


@pytest.fixture
def buoy_case(tmp_path):
    """Body JSON, scenario JSON and WAMIT .1/.3 files for a small spar-like buoy."""
    (tmp_path / "buoy.1").write_text(WAMIT_1, encoding="utf-8")
    (tmp_path / "buoy.3").write_text(WAMIT_3, encoding="utf-8")
    rho = 1025.0
    volume = 2.0
    body = {
        "schema_version": "1.0",
        "name": "test-buoy",
        "constants": {"rho": rho, "g": 9.81, "L": 1.0},
        "mass_properties": {
            "mass": rho * volume,
            "inertia": [[1500.0, 0.0, 0.0], [0.0, 1500.0, 0.0], [0.0, 0.0, 800.0]],
            "cog": [0.0, 0.0, -1.5],
        },
        "geometry": {
            "volume": volume,
            "cob": [0.0, 0.0, -1.0],
            "waterplane": {"S": 3.14, "S11": 0.785, "S22": 0.785},
        },
        "damping": {
            "linear": [100.0, 100.0, 200.0, 50.0, 50.0, 20.0],
            "drag_coeffs": [0.8, 0.8, 1.0, 0.0, 0.0, 0.0],
            "areas": [2.0, 2.0, 3.14, 0.0, 0.0, 0.0],
        },
        "hydrodynamics": {"frequency_domain": "buoy.1"},
    }
    scenario = {
        "schema_version": "1.0",
        "simulation": {"t0": 0.0, "t_end": 0.5, "t_step": 0.05},
        "initial_conditions": {"position": [0.0, 0.0, 0.05, 0.0, 0.0, 0.0]},
        "waves": {"type": "regular", "amplitude": 0.1, "period": 6.0, "heading_deg": 0.0},
        "kernel": {"max_duration": 5.0, "min_duration": 1.0},
        "outputs": {"decimation": 1},
    }
    body_path = tmp_path / "body.json"
    scenario_path = tmp_path / "scenario.json"
    body_path.write_text(json.dumps(body), encoding="utf-8")
    scenario_path.write_text(json.dumps(scenario), encoding="utf-8")
    return {"dir": tmp_path, "body": body_path, "scenario": scenario_path,
            "body_data": body, "scenario_data": scenario}


@pytest.fixture
def short_kernels():
    return KernelOptions(max_duration=5.0, min_duration=1.0)
