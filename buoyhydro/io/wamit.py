from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Optional

import numpy as np

from ..core.exceptions import DataError
from ..core.types import N_DOF
from ..hydro.coefficients import ExcitationTable, FrequencyCoefficientTable
from ..hydro.kernels import ImpulseResponseTable

logger = logging.getLogger(__name__)

# WAMIT period conventions in the .1 file
_PER_INFINITE_FREQUENCY = 0.0
_PER_ZERO_FREQUENCY = -1.0

# .1 records are fixed width (E14.6, 2I6, 2E14.6); the damping field is blank
# on the zero and infinite period rows
WAMIT1_WIDTHS = (14, 6, 6, 14, 14)

_COMMENT_PREFIXES = ("#", "!")
_GENFROMTXT_LINE = re.compile(r"Line #(\d+)")


def _load(path: Path, n_cols: int, widths: Optional[tuple[int, ...]] = None) -> tuple[np.ndarray, list[int]]:
    """Numeric rows of a coefficient file and the source line number of each row.

    Whitespace separated unless `widths` gives fixed field widths. Blank or
    non-numeric fields read as NaN.
    """
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise DataError(f"Failed to read {path}: {e}", path=path) from e
    numbered = [(n, line) for n, line in enumerate(lines, start=1)
                if line.strip() and not line.lstrip().startswith(_COMMENT_PREFIXES)]
    if not numbered:
        return np.empty((0, n_cols)), []
    line_numbers = [n for n, _ in numbered]

    try:
        data = np.genfromtxt([line for _, line in numbered], dtype=float, comments="#",
                             delimiter=widths, filling_values=np.nan, ndmin=2)
    except ValueError as e:
        # genfromtxt counts the rows it was given, starting at 1
        match = _GENFROMTXT_LINE.search(str(e))
        lineno = line_numbers[int(match.group(1)) - 1] if match else None
        detail = str(e).strip().splitlines()[-1].strip()
        raise DataError(f"malformed row: {detail}", path=path, line_number=lineno) from e
    if data.shape[1] != n_cols:
        raise DataError(f"expected {n_cols} columns, got {data.shape[1]}", path=path, line_number=line_numbers[0])
    return data, line_numbers


def _require(row: np.ndarray, columns: slice, path: Path, lineno: int) -> None:
    if np.isnan(row[columns]).any():
        raise DataError("missing or non-numeric field", path=path, line_number=lineno)


def _dof_index(value: float, path: Path, lineno: int) -> int:
    if not math.isfinite(value) or int(value) != value or not 1 <= int(value) <= N_DOF:
        raise DataError(f"mode index {value} out of range 1..{N_DOF}", path=path, line_number=lineno)
    return int(value) - 1


def _radiation_exponent(i: int, j: int) -> int:
    # L^3 translation-translation, L^5 rotation-rotation, L^4 coupled
    return 3 + (i >= 3) + (j >= 3)


def _excitation_exponent(i: int) -> int:
    return 2 if i < 3 else 3


def _frequency(per: float, period_input: bool) -> float:
    if not period_input:
        return per
    if per == _PER_ZERO_FREQUENCY:
        return 0.0
    return 2.0 * math.pi / per


def _resolve(path: str | Path, suffix: str) -> Path:
    p = Path(path)
    if p.suffix == suffix:
        return p
    return p.with_suffix(suffix) if p.suffix else p.with_name(p.name + suffix)


def read_wamit_1(path: str | Path, rho: float = 1025.0, L: float = 1.0,
                 period_input: bool = True) -> FrequencyCoefficientTable:
    """Read a fixed-width WAMIT .1 file (PER I J Abar [Bbar]) into a dimensional FrequencyCoefficientTable."""
    path = Path(path)
    A_rows: dict[float, np.ndarray] = {}
    B_rows: dict[float, np.ndarray] = {}
    seen: set[tuple[float, int, int]] = set()
    A_inf: Optional[np.ndarray] = None

    data, line_numbers = _load(path, len(WAMIT1_WIDTHS), widths=WAMIT1_WIDTHS)
    for lineno, row in zip(line_numbers, data):
        _require(row, slice(0, 4), path, lineno)
        per = float(row[0])
        i = _dof_index(row[1], path, lineno)
        j = _dof_index(row[2], path, lineno)
        key = (per, i, j)
        if key in seen:
            raise DataError(f"duplicate entry for period {per}, mode ({i + 1},{j + 1})",
                            path=path, line_number=lineno)
        seen.add(key)
        scale = rho * L ** _radiation_exponent(i, j)

        if period_input and per == _PER_INFINITE_FREQUENCY:
            if A_inf is None:
                A_inf = np.zeros((N_DOF, N_DOF))
            A_inf[i, j] = row[3] * scale
            continue
        if period_input and per < 0 and per != _PER_ZERO_FREQUENCY:
            raise DataError(f"invalid period {per}", path=path, line_number=lineno)

        omega = _frequency(per, period_input)
        A = A_rows.setdefault(omega, np.zeros((N_DOF, N_DOF)))
        B = B_rows.setdefault(omega, np.zeros((N_DOF, N_DOF)))
        A[i, j] = row[3] * scale
        if not np.isnan(row[4]):
            B[i, j] = row[4] * scale * omega
        elif omega != 0.0:
            raise DataError("damping column missing for finite period", path=path, line_number=lineno)

    if not A_rows:
        raise DataError("no finite-frequency radiation coefficients found", path=path)

    omegas = sorted(A_rows)
    table = FrequencyCoefficientTable(
        omega=np.array(omegas),
        A=np.stack([A_rows[w] for w in omegas]),
        B=np.stack([B_rows[w] for w in omegas]),
        A_inf=A_inf,
        B_inf=None if A_inf is None else np.zeros((N_DOF, N_DOF)),
    )
    logger.info("Read %s: %d frequencies, infinite-frequency added mass %s",
                path, table.n_freq, "present" if A_inf is not None else "absent")
    return table


def read_wamit_3(path: str | Path, rho: float = 1025.0, g: float = 9.81, L: float = 1.0,
                 period_input: bool = True) -> ExcitationTable:
    """Read a WAMIT .3 file (PER BETA I Mod Pha Re Im) into a dimensional ExcitationTable."""
    path = Path(path)
    entries: dict[tuple[float, float, int], complex] = {}
    data, line_numbers = _load(path, 7)
    for lineno, row in zip(line_numbers, data):
        _require(row, slice(0, 3), path, lineno)
        per, beta_deg = float(row[0]), float(row[1])
        if period_input and per <= 0:
            # zero/infinite period rows carry no diffraction data
            continue
        _require(row, slice(5, 7), path, lineno)
        i = _dof_index(row[2], path, lineno)
        key = (_frequency(per, period_input), beta_deg, i)
        if key in entries:
            raise DataError(f"duplicate entry for period {per}, heading {beta_deg}, mode {i + 1}",
                            path=path, line_number=lineno)
        entries[key] = complex(row[5], row[6]) * rho * g * L ** _excitation_exponent(i)

    if not entries:
        raise DataError("no excitation coefficients found", path=path)

    omegas = sorted({k[0] for k in entries})
    betas = sorted({k[1] for k in entries})
    X = np.zeros((len(omegas), len(betas), N_DOF), dtype=complex)
    w_index = {w: n for n, w in enumerate(omegas)}
    b_index = {b: n for n, b in enumerate(betas)}
    for (w, b, i), val in entries.items():
        X[w_index[w], b_index[b], i] = val

    table = ExcitationTable(omega=np.array(omegas), beta=np.radians(betas), X=X)
    logger.info("Read %s: %d frequencies, %d headings", path, len(omegas), len(betas))
    return table


def read_wamit_fd(path: str | Path, rho: float = 1025.0, g: float = 9.81, L: float = 1.0,
                  period_input: bool = True) -> tuple[FrequencyCoefficientTable, Optional[ExcitationTable]]:
    """Read the .1 radiation file and, when it exists alongside, the .3 excitation file.

    `path` may name the .1 file or the common stem of the pair.
    """
    rad_path = _resolve(path, ".1")
    exc_path = _resolve(rad_path.with_suffix(""), ".3")
    radiation = read_wamit_1(rad_path, rho=rho, L=L, period_input=period_input)
    excitation = None
    if exc_path.exists():
        excitation = read_wamit_3(exc_path, rho=rho, g=g, L=L, period_input=period_input)
    else:
        logger.info("No excitation file %s; wave excitation disabled", exc_path)
    return radiation, excitation


def read_wamit_td(path: str | Path) -> ImpulseResponseTable:
    """Read dimensional impulse-response files.

    Radiation (.1t):  t I J K_cos K_sin, t >= 0
    Excitation (.3t): tau BETA I K_exc, tau may be negative, BETA in degrees (optional file)
    """
    rad_path = _resolve(path, ".1t")
    exc_path = _resolve(rad_path.with_suffix(""), ".3t")

    rad: dict[float, tuple[np.ndarray, np.ndarray]] = {}
    seen: set[tuple[float, int, int]] = set()
    data, line_numbers = _load(rad_path, 5)
    for lineno, row in zip(line_numbers, data):
        _require(row, slice(None), rad_path, lineno)
        t = float(row[0])
        if t < 0:
            raise DataError("radiation impulse response must start at t >= 0", path=rad_path, line_number=lineno)
        i = _dof_index(row[1], rad_path, lineno)
        j = _dof_index(row[2], rad_path, lineno)
        if (t, i, j) in seen:
            raise DataError(f"duplicate entry for t={t}, mode ({i + 1},{j + 1})",
                            path=rad_path, line_number=lineno)
        seen.add((t, i, j))
        kc, ks = rad.setdefault(t, (np.zeros((N_DOF, N_DOF)), np.zeros((N_DOF, N_DOF))))
        kc[i, j] = row[3]
        ks[i, j] = row[4]
    if not rad:
        raise DataError("no radiation impulse response found", path=rad_path)
    tau_rad = sorted(rad)

    tau_exc = beta = K_exc = None
    if exc_path.exists():
        exc: dict[tuple[float, float, int], float] = {}
        data, line_numbers = _load(exc_path, 4)
        for lineno, row in zip(line_numbers, data):
            _require(row, slice(None), exc_path, lineno)
            i = _dof_index(row[2], exc_path, lineno)
            key = (float(row[0]), float(row[1]), i)
            if key in exc:
                raise DataError(f"duplicate entry for tau={key[0]}, heading {key[1]}, mode {i + 1}",
                                path=exc_path, line_number=lineno)
            exc[key] = float(row[3])
        if not exc:
            raise DataError("no excitation impulse response found", path=exc_path)
        taus = sorted({k[0] for k in exc})
        betas = sorted({k[1] for k in exc})
        K_exc = np.zeros((len(taus), len(betas), N_DOF))
        t_index = {t: n for n, t in enumerate(taus)}
        b_index = {b: n for n, b in enumerate(betas)}
        for (t, b, i), val in exc.items():
            K_exc[t_index[t], b_index[b], i] = val
        tau_exc = np.array(taus)
        beta = np.radians(betas)

    table = ImpulseResponseTable(
        tau_rad=np.array(tau_rad),
        K_cos=np.stack([rad[t][0] for t in tau_rad]),
        K_sin=np.stack([rad[t][1] for t in tau_rad]),
        tau_exc=tau_exc,
        beta=beta,
        K_exc=K_exc,
    )
    logger.info("Read %s: %d radiation samples, excitation %s", rad_path, len(tau_rad),
                "present" if K_exc is not None else "absent")
    return table
