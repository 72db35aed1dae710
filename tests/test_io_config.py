"""
Body and scenario JSON loading tests.
"""

import json
import math

import pytest

from buoyhydro.core.exceptions import ConfigError, SchemaError
from buoyhydro.core.validation import validate_config, validate_params
from buoyhydro.environment.waves import IrregularWave, RegularWave, StillWater, create_incident_wave_from_config
from buoyhydro.io import body as body_io
from buoyhydro.io import scenario as scenario_io


def _rewrite(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_body_loads_and_resolves_data_paths(buoy_case):
    params = body_io.load(buoy_case["body"])
    validate_params(params)
    assert params.name == "test-buoy"
    assert params.mass == pytest.approx(2050.0)
    assert params.inertia[2][2] == 800.0
    assert params.cob == (0.0, 0.0, -1.0)
    assert params.S11 == 0.785
    assert params.linear_damping[2] == 200.0
    assert params.fd_file == str(buoy_case["dir"] / "buoy.1")
    assert params.td_file is None


def test_body_schema_violation_raises(buoy_case):
    data = dict(buoy_case["body_data"])
    data["mass_properties"] = dict(data["mass_properties"], mass=-1.0)
    path = _rewrite(buoy_case["dir"] / "bad_body.json", data)
    with pytest.raises(SchemaError) as exc:
        body_io.load(path)
    assert "mass_properties/mass" in str(exc.value)


def test_body_without_hydrodynamics_raises(buoy_case):
    data = dict(buoy_case["body_data"])
    del data["hydrodynamics"]
    path = _rewrite(buoy_case["dir"] / "dry_body.json", data)
    with pytest.raises(ConfigError):
        body_io.load(path)


def test_unreadable_json_raises(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        body_io.load(path)


def test_scenario_loads_and_converts_units(buoy_case):
    cfg, waves = scenario_io.load(buoy_case["scenario"])
    validate_config(cfg)
    assert cfg.dt == 0.05
    assert cfg.t_end == 0.5
    assert cfg.initial_state[2] == 0.05
    assert len(cfg.initial_state) == 12
    assert cfg.kernel.max_duration == 5.0
    assert waves["type"] == "regular"

    data = dict(buoy_case["scenario_data"])
    data["waves"] = {"type": "none", "heading_deg": 90.0}
    cfg, _ = scenario_io.load(_rewrite(buoy_case["dir"] / "turned.json", data))
    assert cfg.wave_heading == pytest.approx(math.pi / 2)


def test_scenario_schema_violation_raises(buoy_case):
    data = dict(buoy_case["scenario_data"])
    data["kernel"] = {"decay_policy": "never"}
    with pytest.raises(SchemaError):
        scenario_io.load(_rewrite(buoy_case["dir"] / "bad_scenario.json", data))


def test_invalid_run_window_rejected(buoy_case):
    data = dict(buoy_case["scenario_data"])
    data["simulation"] = {"t0": 1.0, "t_end": 0.5, "t_step": 0.1}
    cfg, _ = scenario_io.load(_rewrite(buoy_case["dir"] / "backwards.json", data))
    with pytest.raises(ConfigError):
        validate_config(cfg)


def test_wave_factory():
    assert isinstance(create_incident_wave_from_config(None), StillWater)
    regular = create_incident_wave_from_config({"type": "regular", "amplitude": 0.5, "period": 2 * math.pi})
    assert isinstance(regular, RegularWave)
    assert regular.omega == pytest.approx(1.0)
    assert regular.eta(0.0, 0.0, 0.0) == pytest.approx(0.5)
    irregular = create_incident_wave_from_config({"type": "irregular", "Hs": 2.0, "Tp": 8.0, "seed": 3})
    assert isinstance(irregular, IrregularWave)
    assert irregular.eta(0.0, 0.0, 1.0) == irregular.eta(0.0, 0.0, 1.0)
    with pytest.raises(ConfigError):
        create_incident_wave_from_config({"type": "tsunami"})
    with pytest.raises(ConfigError):
        create_incident_wave_from_config({"type": "regular", "amplitude": 1.0})


def test_irregular_wave_variance_matches_spectrum():
    """Component amplitudes carry the spectral energy: 4 sqrt(m0) ~ Hs."""
    wave = IrregularWave(Hs=2.0, Tp=8.0, n_components=400, omega_min=0.2, omega_max=3.0, seed=1)
    m0 = 0.5 * (wave.amplitude ** 2).sum()
    assert 4.0 * math.sqrt(m0) == pytest.approx(2.0, rel=0.05)
