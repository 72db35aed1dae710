from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from jsonschema import Draft202012Validator

from ..core.exceptions import ConfigError, SchemaError
from ..core.types import BodyParams, N_DOF

logger = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"


def load_json(path: Path) -> Mapping[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigError(
            f"Failed to read JSON {path}: {e}",
            config_path=path,
        ) from e


def load_schema(schema_path: Path) -> Mapping[str, Any]:
    try:
        return json.loads(schema_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise SchemaError(
            f"Failed to read schema {schema_path}: {e}",
            schema_path=schema_path,
        ) from e


def validate(
    data: Mapping[str, Any], schema: Mapping[str, Any], schema_name: str
) -> None:
    errors = sorted(Draft202012Validator(schema).iter_errors(data), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = "/".join(str(p) for p in first.path) or "<root>"
        raise SchemaError(
            f"{schema_name} validation failed at {where}: {first.message}",
            schema_name=schema_name,
            validation_error=first,
        )


def _resolve_data_path(value: Optional[str], base: Path) -> Optional[str]:
    if not value:
        return None
    p = Path(value)
    return str(p if p.is_absolute() else (base / p))


def load(
    path: str | Path, schema_path: str | Path = SCHEMA_DIR / "body.schema.json"
) -> BodyParams:
    """Load a body definition JSON, validate, and normalise to BodyParams (SI units)."""
    path = Path(path)
    data = load_json(path)
    schema = load_schema(Path(schema_path))
    validate(data, schema, "Body")

    consts = data.get("constants", {}) or {}
    mp = data["mass_properties"]
    geom = data["geometry"]
    wp = geom["waterplane"]
    damping = data.get("damping", {}) or {}
    hydro = data.get("hydrodynamics", {}) or {}
    zeros = [0.0] * N_DOF

    params = BodyParams(
        name=str(data["name"]),
        rho=float(consts.get("rho", 1025.0)),
        g=float(consts.get("g", 9.81)),
        L=float(consts.get("L", 1.0)),
        mass=float(mp["mass"]),
        inertia=tuple(tuple(float(v) for v in row) for row in mp["inertia"]),
        cog=tuple(float(v) for v in mp["cog"]),
        cob=tuple(float(v) for v in geom["cob"]),
        volume=float(geom["volume"]),
        S=float(wp["S"]),
        S11=float(wp["S11"]),
        S22=float(wp["S22"]),
        linear_damping=tuple(float(v) for v in damping.get("linear", zeros)),
        drag_coeffs=tuple(float(v) for v in damping.get("drag_coeffs", zeros)),
        areas=tuple(float(v) for v in damping.get("areas", zeros)),
        fd_file=_resolve_data_path(hydro.get("frequency_domain"), path.parent),
        td_file=_resolve_data_path(hydro.get("time_domain"), path.parent),
        metadata={"source": str(path), "schema_version": data.get("schema_version")},
    )
    if params.fd_file is None and params.td_file is None:
        raise ConfigError("Body definition names no hydrodynamic coefficient file",
                          config_path=path, field_name="hydrodynamics")
    logger.info("Loaded body '%s' from %s", params.name, path)
    return params
