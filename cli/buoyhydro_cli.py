from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

import numpy as np

from buoyhydro.core.validation import validate_config, validate_params
from buoyhydro.environment.waves import create_incident_wave_from_config
from buoyhydro.io.body import load as load_body
from buoyhydro.io.results import CsvTickWriter, JsonlTickWriter, MuxTickWriter, SummaryJsonWriter, write_rao_csv
from buoyhydro.io.scenario import load as load_scenario
from buoyhydro.models.buoy6dof.model import build_force_evaluator
from buoyhydro.sim.runner import SimulationRunner

logger = logging.getLogger("buoyhydro.cli")


def _mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="buoyhydro", description="Time-domain hydrodynamics of a floating buoy")
    ap.add_argument("--body", type=Path, required=True, help="Path to body JSON definition")
    ap.add_argument("--scenario", type=Path, required=True, help="Path to scenario JSON")
    ap.add_argument("--out-dir", type=Path, required=True, help="Output directory for run artifacts")
    ap.add_argument("--describe", action="store_true", help="Print the configured hydrodynamics before running")
    ap.add_argument("--rao", type=float, nargs=3, metavar=("OMEGA_MIN", "OMEGA_MAX", "N"), default=None,
                    help="Also write rao.csv with complex amplitudes over a frequency range [rad/s]")
    ap.add_argument("--no-run", action="store_true", help="Set up (and optionally describe / write RAOs) without stepping")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = ap.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    out_dir: Path = args.out_dir
    _mkdir(out_dir)

    # Load inputs via IO layer
    params = load_body(args.body)
    cfg, waves_cfg = load_scenario(args.scenario)
    validate_params(params)
    validate_config(cfg)

    wave = create_incident_wave_from_config(waves_cfg, heading=cfg.wave_heading, g=params.g)
    evaluator = build_force_evaluator(params, cfg, wave)

    if args.describe:
        print(evaluator.describe())

    if args.rao is not None:
        w_min, w_max, n = args.rao
        omegas = np.linspace(w_min, w_max, int(n))
        amplitudes = evaluator.frequency_response().response_curve(omegas)
        write_rao_csv(out_dir / "rao.csv", omegas, amplitudes)
        logger.info("Wrote %s", out_dir / "rao.csv")

    if args.no_run:
        return

    writer = MuxTickWriter(
        CsvTickWriter(out_dir / "results.csv"),
        JsonlTickWriter(out_dir / "results.jsonl"),
    )
    summary_writer = SummaryJsonWriter(out_dir / "summary.json")
    try:
        result = SimulationRunner().run(evaluator, cfg, writer=writer, summary_writer=summary_writer)
    finally:
        writer.close()
    logger.info("Run %s (%s), %d ticks", result.status, result.reason or "completed", result.ticks)


if __name__ == "__main__":
    main()
