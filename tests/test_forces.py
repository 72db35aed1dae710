"""
Hydrostatic, damping and drag force model tests.
"""

import numpy as np
import pytest

from buoyhydro.core.exceptions import ConfigError
from buoyhydro.core.types import BodyState, N_DOF
from buoyhydro.forces.damping import LinearDamping, ViscousDrag
from buoyhydro.forces.hydrostatics import BodyGeometry, HydrostaticModel, compute_cij


@pytest.fixture
def geometry():
    return dict(S=2.0, S11=3.0, S22=4.0, volume=5.0, cob=(0.1, 0.2, -0.5), cog=(0.3, 0.4, -0.2), mass=1000.0)


def test_restoring_matrix_entries(geometry):
    c = compute_cij(BodyGeometry(**geometry), rho=1000.0, g=10.0)
    assert c[2, 2] == pytest.approx(2.0e4)
    assert c[3, 3] == pytest.approx(7000.0)
    assert c[4, 4] == pytest.approx(17000.0)
    assert c[3, 5] == pytest.approx(-2000.0)
    assert c[4, 5] == pytest.approx(-6000.0)
    mask = np.ones((N_DOF, N_DOF), dtype=bool)
    for i, j in [(2, 2), (3, 3), (4, 4), (3, 5), (4, 5)]:
        mask[i, j] = False
    assert not np.any(c[mask])


def test_update_recomputes_restoring_matrix(geometry):
    """Setters replace the geometry snapshot and the matrix follows."""
    model = HydrostaticModel(rho=1000.0, g=10.0)
    assert not np.any(model.c)
    model.update(**geometry)
    c_before = model.c
    model.update(S=4.0)
    assert model.c[2, 2] == pytest.approx(2.0 * c_before[2, 2])
    assert model.geometry.S11 == 3.0
    # the returned matrix is a copy
    c = model.c
    c[2, 2] = 0.0
    assert model.c[2, 2] == pytest.approx(4.0e4)


def test_forces_balance_at_equilibrium():
    model = HydrostaticModel(rho=1025.0, g=9.81)
    model.update(volume=2.0, mass=2050.0, cob=(0.0, 0.0, -1.0), cog=(0.0, 0.0, -1.5), S=3.0)
    total = model.compute(BodyState.from_vector(0.0, np.zeros(2 * N_DOF)))
    np.testing.assert_allclose(total, np.zeros(N_DOF), atol=1e-9)


def test_linearised_stiffness_matches_restoring_matrix(geometry):
    """Small displacements in heave, roll and pitch produce -c x."""
    model = HydrostaticModel(rho=1000.0, g=10.0)
    model.update(**geometry)
    x0 = np.zeros(N_DOF)
    f0 = model.gravity_force(x0) + model.buoyancy_force(x0)
    c = model.c
    h = 1e-6
    for dof in (2, 3, 4):
        x = x0.copy()
        x[dof] = h
        df = (model.gravity_force(x) + model.buoyancy_force(x) - f0) / h
        assert df[dof] == pytest.approx(-c[dof, dof], rel=1e-4)
    x = x0.copy()
    x[5] = h
    df = (model.gravity_force(x) + model.buoyancy_force(x) - f0) / h
    assert df[3] == pytest.approx(-c[3, 5], rel=1e-4)


def test_viscous_drag_formula():
    drag = ViscousDrag(rho=1000.0)
    drag.set_coeffs([1.0, 0.5, 0.0, 0.0, 0.0, 2.0])
    drag.set_areas([2.0, 4.0, 1.0, 0.0, 0.0, 0.1])
    v = np.array([2.0, -1.0, 3.0, 1.0, 1.0, -2.0])
    f = drag.force(v)
    np.testing.assert_allclose(f, [-4000.0, 1000.0, 0.0, 0.0, 0.0, 400.0])
    np.testing.assert_allclose(drag.compute(BodyState.from_vector(0.0, np.concatenate([np.zeros(6), v]))), f)


def test_linear_damping_opposes_velocity():
    damping = LinearDamping([10.0, 0.0, 50.0, 0.0, 0.0, 1.0])
    f = damping.force([1.0, 5.0, -2.0, 0.0, 0.0, 3.0])
    np.testing.assert_allclose(f, [-10.0, 0.0, 100.0, 0.0, 0.0, -3.0])


def test_coefficient_vectors_need_six_entries():
    with pytest.raises(ConfigError):
        LinearDamping([1.0, 2.0])
    with pytest.raises(ConfigError):
        ViscousDrag().set_areas([1.0] * 7)
