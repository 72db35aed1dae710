from __future__ import annotations

import cmath
import csv
import json
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from ..core.types import DOF_NAMES

DEFAULT_HEADER = (
    ["t"]
    + list(DOF_NAMES)
    + [f"{name}_vel" for name in DOF_NAMES]
    + [f"{name}_acc" for name in DOF_NAMES]
    + ["eta"]
)


class TickWriter:
    def write_tick(
        self, record: Mapping[str, Any]
    ) -> None:  # pragma: no cover - protocol-like
        raise NotImplementedError

    def close(self) -> None:
        pass


class CsvTickWriter(TickWriter):
    def __init__(self, path: Path, header: Optional[Sequence[str]] = None) -> None:
        self.path = path
        self._fh = path.open("w", newline="", encoding="utf-8")
        self._header = list(header) if header else list(DEFAULT_HEADER)
        self._writer = csv.writer(self._fh)
        self._writer.writerow(self._header)

    def write_tick(self, record: Mapping[str, Any]) -> None:
        self._writer.writerow([record.get(k, 0) for k in self._header])

    def close(self) -> None:
        self._fh.close()


class JsonlTickWriter(TickWriter):
    def __init__(self, path: Path) -> None:
        self.path = path
        self._fh = path.open("w", encoding="utf-8")

    def write_tick(self, record: Mapping[str, Any]) -> None:
        self._fh.write(json.dumps(record) + "\n")

    def close(self) -> None:
        self._fh.close()


class MuxTickWriter(TickWriter):
    def __init__(self, *writers: TickWriter) -> None:
        self._writers = writers

    def write_tick(self, record: Mapping[str, Any]) -> None:
        for w in self._writers:
            w.write_tick(record)

    def close(self) -> None:
        for w in self._writers:
            w.close()


class SummaryWriter:
    def write_summary(
        self, summary: Mapping[str, Any]
    ) -> None:  # pragma: no cover - protocol-like
        raise NotImplementedError


class SummaryJsonWriter(SummaryWriter):
    def __init__(self, path: Path) -> None:
        self.path = path

    def write_summary(self, summary: Mapping[str, Any]) -> None:
        self.path.write_text(json.dumps(summary, indent=2), encoding="utf-8")


def write_rao_csv(path: Path, omegas: Sequence[float], amplitudes) -> None:
    """Write |X| and phase [rad] per DOF for each frequency."""
    header = ["omega"]
    for name in DOF_NAMES:
        header += [f"{name}_mag", f"{name}_phase"]
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(header)
        for omega, row in zip(omegas, amplitudes):
            values = [float(omega)]
            for x in row:
                values += [abs(complex(x)), cmath.phase(complex(x))]
            writer.writerow(values)
