from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Mapping

from ..core.types import KernelOptions, N_DOF, SimulationConfig
from .body import SCHEMA_DIR, load_json, load_schema, validate


def load(
    path: str | Path, schema_path: str | Path = SCHEMA_DIR / "scenario.schema.json"
) -> tuple[SimulationConfig, Mapping[str, Any]]:
    """Load Scenario JSON, validate against schema, normalise to SI/radians."""
    p = Path(path)
    schema = load_schema(Path(schema_path))
    data = load_json(p)
    validate(data, schema, "Scenario")

    sim = data["simulation"]
    init = data.get("initial_conditions", {}) or {}
    waves = dict(data.get("waves", {}) or {"type": "none"})
    outputs = data.get("outputs", {}) or {}
    kernel = data.get("kernel", {}) or {}

    position = [float(v) for v in init.get("position", [0.0] * N_DOF)]
    velocity = [float(v) for v in init.get("velocity", [0.0] * N_DOF)]

    cfg = SimulationConfig(
        t0=float(sim.get("t0", 0.0)),
        t_end=float(sim["t_end"]),
        dt=float(sim["t_step"]),
        initial_state=tuple(position + velocity),
        wave_heading=math.radians(float(waves.get("heading_deg", 0.0))),
        waves=waves,
        kernel=KernelOptions(**kernel),
        output_decimation=int(outputs.get("decimation", 1) or 1),
        termination_bounds=data.get("termination_bounds"),
        notes=data.get("notes"),
    )
    return cfg, waves
