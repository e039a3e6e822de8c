# methcompare/core/table.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

import numpy as np
import pandas as pd

from .exceptions import InvalidTable, JoinMismatchError, NotFoundError
from .track import SignalTrack


logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["chromosome", "position", "total_count", "methylated_count"]


@dataclass(frozen=True, slots=True)
class MethylationRow:
    """One CpG-level observation: read depth and methylated reads at a position."""
    chromosome: str
    position: int
    total_count: int
    methylated_count: int

    def __post_init__(self) -> None:
        if self.total_count < 0:
            raise InvalidTable(f"total_count must be >= 0, got {self.total_count}.")
        if not 0 <= self.methylated_count <= self.total_count:
            raise InvalidTable(
                f"methylated_count must be in [0, total_count], got "
                f"{self.methylated_count} / {self.total_count}."
            )

    @property
    def fraction(self) -> float | None:
        if self.total_count == 0:
            return None
        return self.methylated_count / self.total_count


@dataclass(frozen=True, slots=True, eq=False)
class MethylationTable:
    """
    Immutable, position-ordered sequence of MethylationRow.

    Column-wise storage; rows of one chromosome are contiguous with strictly
    ascending positions. This is the unit handed to segmentation tools.
    """
    chromosomes: np.ndarray = field(repr=False)
    positions: np.ndarray = field(repr=False)
    total_counts: np.ndarray = field(repr=False)
    methylated_counts: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        c = np.asarray(self.chromosomes, dtype=object)
        p = np.asarray(self.positions).astype(np.int64)
        t = np.asarray(self.total_counts).astype(np.int64)
        m = np.asarray(self.methylated_counts).astype(np.int64)

        if not (c.ndim == p.ndim == t.ndim == m.ndim == 1):
            raise InvalidTable("table columns must be 1D.")
        if not (c.size == p.size == t.size == m.size):
            raise InvalidTable(
                f"table columns must have the same length, got {c.size}, {p.size}, {t.size}, {m.size}"
            )

        if p.size > 0:
            if np.any(p < 1):
                raise InvalidTable("positions must be >= 1 (1-based coordinates).")
            if np.any(t < 0):
                i = int(np.flatnonzero(t < 0)[0])
                raise InvalidTable(f"negative total_count at {c[i]}:{p[i]}.")
            if np.any((m < 0) | (m > t)):
                i = int(np.flatnonzero((m < 0) | (m > t))[0])
                raise InvalidTable(
                    f"methylated_count outside [0, total_count] at {c[i]}:{p[i]}."
                )

            same_chrom = c[1:] == c[:-1]
            step = np.diff(p)
            dup = np.flatnonzero(same_chrom & (step == 0))
            if dup.size:
                i = int(dup[0]) + 1
                raise JoinMismatchError(
                    "duplicate position in methylation table",
                    chromosome=str(c[i]),
                    start=int(p[i]),
                )
            if np.any(same_chrom & (step < 0)):
                raise InvalidTable("positions must be ascending within each chromosome.")
            firsts = c[np.concatenate(([True], ~same_chrom))]
            if len(set(firsts)) != firsts.size:
                raise InvalidTable("rows of one chromosome must be contiguous.")

        object.__setattr__(self, "chromosomes", c)
        object.__setattr__(self, "positions", p)
        object.__setattr__(self, "total_counts", t)
        object.__setattr__(self, "methylated_counts", m)

    # ---- constructors ----
    @classmethod
    def from_rows(cls, rows: Iterable[MethylationRow]) -> "MethylationTable":
        rows = list(rows)
        return cls(
            chromosomes=np.array([r.chromosome for r in rows], dtype=object),
            positions=np.array([r.position for r in rows], dtype=np.int64),
            total_counts=np.array([r.total_count for r in rows], dtype=np.int64),
            methylated_counts=np.array([r.methylated_count for r in rows], dtype=np.int64),
        )

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "MethylationTable":
        missing = [col for col in TABLE_COLUMNS if col not in frame.columns]
        if missing:
            raise InvalidTable(f"methylation frame is missing columns: {missing}")
        return cls(
            chromosomes=frame["chromosome"].astype(str).to_numpy(dtype=object),
            positions=frame["position"].to_numpy(),
            total_counts=frame["total_count"].to_numpy(),
            methylated_counts=frame["methylated_count"].to_numpy(),
        )

    # ---- sequence API ----
    def __len__(self) -> int:
        return int(self.positions.size)

    def __getitem__(self, i: int) -> MethylationRow:
        return MethylationRow(
            chromosome=str(self.chromosomes[i]),
            position=int(self.positions[i]),
            total_count=int(self.total_counts[i]),
            methylated_count=int(self.methylated_counts[i]),
        )

    def __iter__(self) -> Iterator[MethylationRow]:
        for i in range(len(self)):
            yield self[i]

    @property
    def chromosome_names(self) -> list[str]:
        return list(dict.fromkeys(str(c) for c in self.chromosomes))

    def fractions(self) -> np.ndarray:
        """Per-row methylated/total ratio (NaN where total_count is 0)."""
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.where(
                self.total_counts > 0,
                self.methylated_counts / np.maximum(self.total_counts, 1),
                np.nan,
            )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "chromosome": self.chromosomes.astype(str),
                "position": self.positions,
                "total_count": self.total_counts,
                "methylated_count": self.methylated_counts,
            },
            columns=TABLE_COLUMNS,
        )


def build_methylation_table(
    methylation_track: SignalTrack,
    coverage_track: SignalTrack,
    chromosome: str,
    *,
    fraction_scale: float = 1.0,
    min_coverage: int = 0,
) -> MethylationTable:
    """
    Join a methylation-fraction track and a coverage track by position.

    Every base covered by a coverage interval on `chromosome` is one
    candidate position, so multi-base runs expand to one row per base with
    the run's depth. The methylation interval covering that position
    supplies the fraction; positions without a methylation value are skipped.

    Parameters
    ----------
    fraction_scale:
        Divisor applied to methylation scores (100 for percentage tracks).
    min_coverage:
        Rows whose total_count is below this value are dropped.
    """
    for role, track in (("coverage", coverage_track), ("methylation", methylation_track)):
        if not track.declares(chromosome):
            raise NotFoundError(f"Chromosome absent from {role} track", chromosome=chromosome)
    if fraction_scale <= 0:
        raise InvalidTable(f"fraction_scale must be > 0, got {fraction_scale}.")

    cov = coverage_track.for_chromosome(chromosome)
    meth = methylation_track.for_chromosome(chromosome)

    if cov.n == 0 or meth.n == 0:
        logger.warning(
            "No joinable positions on %s (coverage=%d, methylation=%d intervals)",
            chromosome, cov.n, meth.n,
        )
        return MethylationTable.from_rows([])

    positions, depth = _expand_positions(cov)

    # Methylation interval whose start is the last one <= position
    idx = np.searchsorted(meth.starts, positions, side="right") - 1
    safe_idx = np.clip(idx, 0, None)
    covered = (idx >= 0) & (meth.ends[safe_idx] >= positions)

    fraction = np.where(covered, meth.scores[safe_idx] / fraction_scale, np.nan)
    keep = ~np.isnan(fraction) & ~np.isnan(depth)

    total = np.rint(depth[keep]).astype(np.int64)
    methylated = np.clip(np.rint(total * fraction[keep]), 0, np.maximum(total, 0)).astype(np.int64)
    kept_positions = positions[keep]

    if min_coverage > 0:
        deep = total >= min_coverage
        total, methylated, kept_positions = total[deep], methylated[deep], kept_positions[deep]

    logger.debug(
        "%s: %d coverage positions, %d joined rows (%d without methylation value)",
        chromosome, positions.size, kept_positions.size, int((~keep).sum()),
    )

    return MethylationTable(
        chromosomes=np.full(kept_positions.size, chromosome, dtype=object),
        positions=kept_positions,
        total_counts=total,
        methylated_counts=methylated,
    )


def _expand_positions(track: SignalTrack) -> tuple[np.ndarray, np.ndarray]:
    """One (position, score) pair per base covered by the track's intervals."""
    lengths = track.ends - track.starts + 1
    run_offsets = np.cumsum(lengths) - lengths
    within = np.arange(int(lengths.sum()), dtype=np.int64) - np.repeat(run_offsets, lengths)
    return np.repeat(track.starts, lengths) + within, np.repeat(track.scores, lengths)
