"""
Frequency coefficient store tests.
"""

import numpy as np
import pytest

from buoyhydro.core.exceptions import ConfigError, DataError
from buoyhydro.core.types import N_DOF
from buoyhydro.hydro.coefficients import (
    ExcitationTable,
    FrequencyCoefficientStore,
    FrequencyCoefficientTable,
)


@pytest.fixture
def store(diagonal_table):
    s = FrequencyCoefficientStore()
    s.set_radiation_table(diagonal_table([0.5, 1.0, 2.0], [3.0, 2.0, 1.5], [0.1, 0.4, 0.2], a_inf=1.0))
    X = np.zeros((3, 2, N_DOF), dtype=complex)
    X[:, 0, 2] = [1.0 + 1.0j, 2.0, 3.0 - 1.0j]
    X[:, 1, 2] = [3.0 + 1.0j, 4.0, 5.0 - 1.0j]
    s.set_excitation_table(ExcitationTable(omega=[0.5, 1.0, 2.0], beta=[0.0, np.pi / 2], X=X))
    return s


def test_lookup_at_sample_returns_stored_value(store):
    """At a sample frequency the stored value is returned."""
    assert store.added_mass(1.0, 2, 2) == pytest.approx(2.0)
    assert store.radiation_damping(2.0, 4, 4) == pytest.approx(0.2)
    assert store.added_mass(1.0, 0, 1) == 0.0


def test_lookup_between_samples_is_linear(store):
    """Between samples the value is linear in omega and bracketed by its neighbours."""
    a = store.added_mass(1.5, 3, 3)
    assert a == pytest.approx(1.75)
    assert 1.5 <= a <= 2.0
    assert store.radiation_damping(0.75, 2, 2) == pytest.approx(0.25)


def test_lookup_matrix_matches_entries(store):
    """Matrix lookup agrees with per-entry lookup."""
    A = store.added_mass(1.2)
    assert A.shape == (N_DOF, N_DOF)
    for i in range(N_DOF):
        assert A[i, i] == pytest.approx(store.added_mass(1.2, i, i))


def test_lookup_outside_range_clamps(store):
    """Below the range the low edge is used; above it the infinite-frequency value."""
    assert store.added_mass(0.1, 2, 2) == pytest.approx(3.0)
    assert store.added_mass(10.0, 2, 2) == pytest.approx(1.0)
    # no B_inf given, so damping clamps to the last sample
    assert store.radiation_damping(10.0, 2, 2) == pytest.approx(0.2)


def test_infinite_frequency_added_mass_falls_back_to_last_sample(diagonal_table):
    s = FrequencyCoefficientStore()
    s.set_radiation_table(diagonal_table([0.5, 1.0], [3.0, 2.5], [0.1, 0.1]))
    np.testing.assert_allclose(s.infinite_frequency_added_mass(), 2.5 * np.eye(N_DOF))


def test_excitation_interpolates_heading(store):
    """Excitation lookups use the configured heading."""
    assert store.wave_exciting_force_components(1.0, 2) == pytest.approx(2.0)
    store.heading = np.pi / 4
    assert store.wave_exciting_force_components(1.0, 2) == pytest.approx(3.0)
    assert store.wave_exciting_force_components(0.75, 2) == pytest.approx(2.5 + 0.5j)
    assert store.wave_exciting_force_components(1.0).shape == (N_DOF,)


def test_heading_change_bumps_revision(store):
    rev = store.revision
    store.heading = 0.3
    assert store.revision == rev + 1
    store.heading = 0.3
    assert store.revision == rev + 1


def test_lookup_without_table_raises():
    """Lookups before a table is loaded raise a configuration error."""
    s = FrequencyCoefficientStore()
    with pytest.raises(ConfigError):
        s.added_mass(1.0, 0, 0)
    with pytest.raises(ConfigError):
        s.wave_exciting_force_components(1.0, 0)


def test_non_increasing_frequencies_rejected():
    eye = np.stack([np.eye(N_DOF)] * 3)
    with pytest.raises(DataError):
        FrequencyCoefficientTable(omega=[0.5, 0.5, 1.0], A=eye, B=eye)
    with pytest.raises(DataError):
        FrequencyCoefficientTable(omega=[1.0, 0.5, 2.0], A=eye, B=eye)


def test_mismatched_table_shapes_rejected():
    with pytest.raises(DataError):
        FrequencyCoefficientTable(omega=[0.5, 1.0], A=np.zeros((3, N_DOF, N_DOF)), B=np.zeros((2, N_DOF, N_DOF)))
    with pytest.raises(DataError):
        ExcitationTable(omega=[0.5, 1.0], beta=[0.0], X=np.zeros((2, 2, N_DOF)))


def test_excitation_views_are_consistent():
    X = np.zeros((1, 1, N_DOF), dtype=complex)
    X[0, 0, 0] = 3.0 + 4.0j
    tab = ExcitationTable(omega=[1.0], beta=[0.0], X=X)
    assert tab.mod[0, 0, 0] == pytest.approx(5.0)
    assert tab.pha[0, 0, 0] == pytest.approx(np.arctan2(4.0, 3.0))
    assert tab.re[0, 0, 0] == 3.0
    assert tab.im[0, 0, 0] == 4.0
