"""
World Magnetic Model Coefficient File Parser
============================================

This module turns the raw text of a WMM coefficient (.COF) file into an
immutable Model holding the Gauss coefficients and their secular variation.

File layout:
    line 1      header, first token is the model epoch (decimal year)
    lines 2..   "n m g h dg dh" rows
    99999...    end of the data section, everything after it is ignored

Author: WMM Declination Service
Date: 2025
"""

import math
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, NamedTuple, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

END_MARKER = "99999"


class ModelLoadError(RuntimeError):
    """Raised when a coefficient file cannot be turned into a Model."""


def triangular(k: int) -> int:
    """Return the k-th triangular number k(k+1)/2."""
    return k * (k + 1) // 2


def idx(n: int, m: int) -> int:
    """Flat slot of the (degree n, order m) term in a triangular array."""
    return n * (n + 1) // 2 + m


def array_size(nmax: int) -> int:
    """Length of a coefficient array truncated at degree nmax."""
    return triangular(nmax + 1) + 1


class TriangularIndex:
    """
    Index accessor bound to a truncation degree.

    Checks 0 <= m <= n <= nmax on every lookup while assertions are enabled
    (they are stripped under ``python -O``).
    """

    def __init__(self, nmax: int):
        self.nmax = nmax
        self.size = array_size(nmax)

    def __call__(self, n: int, m: int) -> int:
        assert 0 <= m <= n <= self.nmax, f"invalid (n={n}, m={m}) for nmax={self.nmax}"
        return idx(n, m)

    def pairs(self) -> Iterator[tuple]:
        """Yield every valid (n, m) pair, degree-major."""
        for n in range(self.nmax + 1):
            for m in range(n + 1):
                yield n, m


class CoefficientRow(NamedTuple):
    n: int
    m: int
    g: float
    h: float
    dg: float
    dh: float


@dataclass(frozen=True, eq=False)
class Model:
    """
    Parsed WMM coefficient set.

    g, h are in nanotesla and dg, dh in nanotesla per year, all indexed by
    idx(n, m). Arrays are read-only so one instance can be shared freely.
    """
    epoch: float
    nmax: int
    g: np.ndarray
    h: np.ndarray
    dg: np.ndarray
    dh: np.ndarray
    model_name: Optional[str] = None
    release_date: Optional[str] = None

    @property
    def index(self) -> TriangularIndex:
        return TriangularIndex(self.nmax)

    def coefficients(self, n: int, m: int, dt: float = 0.0) -> tuple:
        """Return (g, h) for degree n, order m advanced dt years from the epoch."""
        i = self.index(n, m)
        return (float(self.g[i] + dt * self.dg[i]),
                float(self.h[i] + dt * self.dh[i]))


def _parse_row(line: str) -> Optional[CoefficientRow]:
    parts = line.split()
    if len(parts) < 6:
        return None
    try:
        values = [float(p) for p in parts[:6]]
    except ValueError:
        return None
    if not all(math.isfinite(v) for v in values):
        return None
    n, m = values[0], values[1]
    if n <= 0 or m < 0 or m > n or not (n.is_integer() and m.is_integer()):
        return None
    return CoefficientRow(int(n), int(m), *values[2:])


def iter_coefficient_rows(lines: Iterable[str]) -> Iterator[CoefficientRow]:
    """
    Yield the accepted coefficient rows from the data lines of a .COF file.

    Malformed rows (too few fields, non-numeric or non-finite values, n <= 0,
    m < 0 or m > n) are skipped rather than failing the load.
    """
    for line in lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith(END_MARKER):
            break
        row = _parse_row(line)
        if row is None:
            logger.debug(f"Skipping malformed coefficient row: {line[:60]}")
            continue
        yield row


def _freeze(values: np.ndarray) -> np.ndarray:
    values.flags.writeable = False
    return values


def parse_cof(text: Union[str, bytes]) -> Model:
    """
    Parse a WMM coefficient file.

    Args:
        text: Contents of the .COF file (bytes are decoded as UTF-8)

    Returns:
        Immutable Model

    Raises:
        ModelLoadError: If the file is empty, the epoch is not a finite
            number, or no coefficient row could be read
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8")

    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        raise ModelLoadError("Coefficient file is empty")

    header = lines[0].split()
    try:
        epoch = float(header[0])
    except ValueError as e:
        raise ModelLoadError(f"Invalid epoch in header: {lines[0][:40]!r}") from e
    if not math.isfinite(epoch):
        raise ModelLoadError(f"Invalid epoch in header: {lines[0][:40]!r}")

    rows: List[CoefficientRow] = list(iter_coefficient_rows(lines[1:]))
    if not rows:
        raise ModelLoadError("Coefficient file contains no usable rows")

    nmax = max(row.n for row in rows)
    size = array_size(nmax)
    g = np.zeros(size)
    h = np.zeros(size)
    dg = np.zeros(size)
    dh = np.zeros(size)

    for row in rows:
        i = idx(row.n, row.m)
        g[i] = row.g
        h[i] = row.h
        dg[i] = row.dg
        dh[i] = row.dh

    model_name = header[1] if len(header) > 1 else None
    release_date = header[2] if len(header) > 2 else None

    logger.info(f"Parsed {len(rows)} coefficient rows: epoch={epoch}, nmax={nmax}, model={model_name}")

    return Model(epoch=epoch, nmax=nmax,
                 g=_freeze(g), h=_freeze(h), dg=_freeze(dg), dh=_freeze(dh),
                 model_name=model_name, release_date=release_date)
