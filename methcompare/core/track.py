# methcompare/core/track.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

import numpy as np
import pandas as pd

from .exceptions import InvalidTrack, NotFoundError
from .interval import GenomicInterval


@dataclass(frozen=True, slots=True, eq=False)
class SignalTrack:
    """
    Immutable signal track: per-interval scores over genomic coordinates.

    Stored column-wise (numpy) in 1-based closed coordinates. Intervals are
    grouped by chromosome, sorted by start and disjoint within a chromosome.
    `chrom_sizes` keeps the coordinate system declared by the source (it may
    list chromosomes that hold no intervals).
    """

    chromosomes: np.ndarray = field(repr=False)
    starts: np.ndarray = field(repr=False)
    ends: np.ndarray = field(repr=False)
    scores: np.ndarray = field(repr=False)
    chrom_sizes: Mapping[str, int] = field(default_factory=dict, repr=False)
    name: str | None = None
    attrs: dict[str, Any] = field(default_factory=dict, repr=False)

    _index: dict[str, tuple[int, int]] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        c = np.asarray(self.chromosomes, dtype=object)
        s = np.asarray(self.starts)
        e = np.asarray(self.ends)
        v = np.asarray(self.scores, dtype=float)

        for label, arr in (("chromosomes", c), ("starts", s), ("ends", e), ("scores", v)):
            if arr.ndim != 1:
                raise InvalidTrack(f"`{label}` must be 1D, got shape {arr.shape}")
        if not (c.size == s.size == e.size == v.size):
            raise InvalidTrack(
                "`chromosomes`, `starts`, `ends` and `scores` must have the same length, "
                f"got {c.size}, {s.size}, {e.size}, {v.size}"
            )

        if s.size > 0:
            if not (np.issubdtype(s.dtype, np.integer) and np.issubdtype(e.dtype, np.integer)):
                if not (np.isfinite(s.astype(float)).all() and np.isfinite(e.astype(float)).all()):
                    raise InvalidTrack("`starts`/`ends` contain non-finite values (NaN/Inf).")
            s = s.astype(np.int64)
            e = e.astype(np.int64)
            if np.any(s < 1):
                raise InvalidTrack("`starts` must be >= 1 (1-based coordinates).")
            if np.any(e < s):
                raise InvalidTrack("every interval must satisfy end >= start.")
        else:
            s = s.astype(np.int64)
            e = e.astype(np.int64)

        if self.chrom_sizes is None:
            sizes: dict[str, int] = {}
        elif isinstance(self.chrom_sizes, Mapping):
            sizes = {str(k): int(n) for k, n in self.chrom_sizes.items()}
        else:
            raise InvalidTrack("`chrom_sizes` must be a mapping of chromosome -> length.")

        if self.attrs is None:
            object.__setattr__(self, "attrs", {})
        elif not isinstance(self.attrs, dict):
            raise InvalidTrack("`attrs` must be a dict.")

        index = _build_chrom_index(c)
        for chrom, (lo, hi) in index.items():
            # Disjoint + sorted within each chromosome
            if hi - lo > 1 and np.any(s[lo + 1:hi] <= e[lo:hi - 1]):
                raise InvalidTrack(
                    f"intervals on '{chrom}' must be sorted by start and non-overlapping."
                )
            if chrom in sizes and e[hi - 1] > sizes[chrom]:
                raise InvalidTrack(
                    f"interval end {int(e[hi - 1])} exceeds declared length "
                    f"{sizes[chrom]} of '{chrom}'."
                )

        object.__setattr__(self, "chromosomes", c)
        object.__setattr__(self, "starts", s)
        object.__setattr__(self, "ends", e)
        object.__setattr__(self, "scores", v)
        object.__setattr__(self, "chrom_sizes", sizes)
        object.__setattr__(self, "_index", index)

    # ---- constructors ----
    @classmethod
    def from_records(
        cls,
        records: Iterable[tuple[str, int, int, float]],
        *,
        chrom_sizes: Mapping[str, int] | None = None,
        name: str | None = None,
    ) -> "SignalTrack":
        """Build a track from (chromosome, start, end, score) tuples, 1-based closed."""
        rows = list(records)
        if not rows:
            return cls.empty(chrom_sizes=chrom_sizes, name=name)
        chroms, starts, ends, scores = zip(*rows)
        return cls(
            chromosomes=np.array(chroms, dtype=object),
            starts=np.array(starts, dtype=np.int64),
            ends=np.array(ends, dtype=np.int64),
            scores=np.array(scores, dtype=float),
            chrom_sizes=dict(chrom_sizes or {}),
            name=name,
        )

    @classmethod
    def empty(
        cls, *, chrom_sizes: Mapping[str, int] | None = None, name: str | None = None
    ) -> "SignalTrack":
        return cls(
            chromosomes=np.array([], dtype=object),
            starts=np.array([], dtype=np.int64),
            ends=np.array([], dtype=np.int64),
            scores=np.array([], dtype=float),
            chrom_sizes=dict(chrom_sizes or {}),
            name=name,
        )

    # ---- sequence API ----
    @property
    def n(self) -> int:
        return int(self.starts.size)

    def __len__(self) -> int:
        return self.n

    def __getitem__(self, i: int) -> tuple[GenomicInterval, float]:
        return (
            GenomicInterval(str(self.chromosomes[i]), int(self.starts[i]), int(self.ends[i])),
            float(self.scores[i]),
        )

    def __iter__(self) -> Iterator[tuple[GenomicInterval, float]]:
        for i in range(self.n):
            yield self[i]

    # ---- chromosome handling ----
    @property
    def chromosome_names(self) -> list[str]:
        """Chromosomes holding at least one interval, in track order."""
        return list(self._index)

    def declares(self, chromosome: str) -> bool:
        return chromosome in self.chrom_sizes or chromosome in self._index

    def chromosome_length(self, chromosome: str) -> int:
        try:
            return self.chrom_sizes[chromosome]
        except KeyError as e:
            raise NotFoundError(
                f"Chromosome not declared by track '{self.name}'", chromosome=chromosome
            ) from e

    def chrom_bounds(self, chromosome: str) -> tuple[int, int]:
        """Row range [lo, hi) holding `chromosome` (empty range when declared without data)."""
        if chromosome in self._index:
            return self._index[chromosome]
        if chromosome in self.chrom_sizes:
            return 0, 0
        raise NotFoundError(
            f"Chromosome not present in track '{self.name}'", chromosome=chromosome
        )

    def for_chromosome(self, chromosome: str) -> "SignalTrack":
        lo, hi = self.chrom_bounds(chromosome)
        sizes = (
            {chromosome: self.chrom_sizes[chromosome]}
            if chromosome in self.chrom_sizes
            else {}
        )
        return SignalTrack(
            chromosomes=self.chromosomes[lo:hi],
            starts=self.starts[lo:hi],
            ends=self.ends[lo:hi],
            scores=self.scores[lo:hi],
            chrom_sizes=sizes,
            name=self.name,
            attrs=self.attrs.copy(),
        )

    def scaled(self, divisor: float) -> "SignalTrack":
        """Same intervals with every score divided by `divisor` (100 turns percentages into fractions)."""
        if divisor <= 0:
            raise InvalidTrack(f"divisor must be > 0, got {divisor}.")
        return SignalTrack(
            chromosomes=self.chromosomes,
            starts=self.starts,
            ends=self.ends,
            scores=self.scores / float(divisor),
            chrom_sizes=dict(self.chrom_sizes),
            name=self.name,
            attrs=self.attrs.copy(),
        )

    # ---- positional lookups ----
    def overlap_bounds(self, chromosome: str, start: int, end: int) -> tuple[int, int]:
        """
        Row range [lo, hi) of intervals overlapping the closed region [start, end].

        Relies on intervals being sorted and disjoint, so ends are sorted too.
        """
        c_lo, c_hi = self.chrom_bounds(chromosome)
        if c_lo == c_hi:
            return c_lo, c_lo
        ends = self.ends[c_lo:c_hi]
        starts = self.starts[c_lo:c_hi]
        lo = int(np.searchsorted(ends, start, side="left"))
        hi = int(np.searchsorted(starts, end, side="right"))
        if hi < lo:
            hi = lo
        return c_lo + lo, c_lo + hi

    def overlapping(self, chromosome: str, start: int, end: int) -> "SignalTrack":
        lo, hi = self.overlap_bounds(chromosome, start, end)
        return SignalTrack(
            chromosomes=self.chromosomes[lo:hi],
            starts=self.starts[lo:hi],
            ends=self.ends[lo:hi],
            scores=self.scores[lo:hi],
            chrom_sizes=dict(self.chrom_sizes),
            name=self.name,
            attrs=self.attrs.copy(),
        )

    def score_at(self, chromosome: str, position: int) -> float | None:
        """Score of the interval covering `position`, or None if uncovered."""
        lo, hi = self.overlap_bounds(chromosome, position, position)
        if hi == lo:
            return None
        return float(self.scores[lo])

    # ---- statistics / export ----
    def mean(self, *, skipna: bool = True) -> float | None:
        if self.n == 0:
            return None
        if skipna:
            if np.isnan(self.scores).all():
                return None
            return float(np.nanmean(self.scores))
        return float(np.mean(self.scores))

    def equals(self, other: "SignalTrack") -> bool:
        """Content equality: same intervals, same scores, same order."""
        if not isinstance(other, SignalTrack):
            return False
        return (
            self.n == other.n
            and list(self.chromosomes) == list(other.chromosomes)
            and np.array_equal(self.starts, other.starts)
            and np.array_equal(self.ends, other.ends)
            and np.array_equal(self.scores, other.scores, equal_nan=True)
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "chromosome": self.chromosomes.astype(str),
                "start": self.starts,
                "end": self.ends,
                "score": self.scores,
            }
        )

    def to_numpy(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        if copy:
            return self.starts.copy(), self.ends.copy(), self.scores.copy()
        return self.starts, self.ends, self.scores


def _build_chrom_index(chromosomes: np.ndarray) -> dict[str, tuple[int, int]]:
    """Map chromosome -> [lo, hi) rows; chromosomes must occupy contiguous blocks."""
    index: dict[str, tuple[int, int]] = {}
    n = chromosomes.size
    if n == 0:
        return index

    breaks = np.flatnonzero(chromosomes[1:] != chromosomes[:-1]) + 1
    edges = [0, *breaks.tolist(), n]
    for lo, hi in zip(edges[:-1], edges[1:]):
        chrom = str(chromosomes[lo])
        if chrom in index:
            raise InvalidTrack(f"intervals of '{chrom}' must be contiguous in the track.")
        index[chrom] = (lo, hi)
    return index
