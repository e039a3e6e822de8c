# methcompare/io/bigwig.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Protocol, Sequence

import numpy as np
import pyBigWig

from methcompare.core import SignalTrack
from methcompare.core.exceptions import InvalidTrack, NotFoundError, ReadError


logger = logging.getLogger(__name__)


class SignalSource(Protocol):
    """Protocol for signal sources.

    Anything exposing a chromosome-length header and half-open, 0-based
    interval retrieval qualifies; pyBigWig file objects do.
    """

    def chroms(self) -> Mapping[str, int]:
        ...

    def intervals(self, chrom: str, start: int, end: int) -> Sequence[tuple[int, int, float]] | None:
        ...


def _records_to_arrays(
    records: Sequence[tuple[int, int, float]] | None,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Convert (start0, end, value) records to 1-based closed arrays."""
    if not records:
        return (
            np.array([], dtype=np.int64),
            np.array([], dtype=np.int64),
            np.array([], dtype=float),
        )
    arr = np.asarray(records, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"expected (start, end, value) records, got shape {arr.shape}")
    starts = arr[:, 0].astype(np.int64) + 1
    ends = arr[:, 1].astype(np.int64)
    return starts, ends, arr[:, 2]


def _read_source(source: SignalSource, name: str, chromosome: str | None) -> SignalTrack:
    try:
        sizes = {str(k): int(v) for k, v in dict(source.chroms()).items()}
    except (RuntimeError, OSError, TypeError, ValueError) as e:
        raise ReadError(f"Cannot read chromosome header of '{name}': {e}") from e

    if chromosome is not None and chromosome not in sizes:
        raise NotFoundError(f"Chromosome not declared by '{name}'", chromosome=chromosome)

    targets = list(sizes) if chromosome is None else [chromosome]

    chrom_parts: list[np.ndarray] = []
    start_parts: list[np.ndarray] = []
    end_parts: list[np.ndarray] = []
    score_parts: list[np.ndarray] = []
    for chrom in targets:
        length = sizes[chrom]
        try:
            records = source.intervals(chrom, 0, length)
            starts, ends, scores = _records_to_arrays(records)
        except (RuntimeError, OSError, TypeError, ValueError) as e:
            raise ReadError(
                f"Cannot read intervals of '{name}': {e}",
                chromosome=chrom, start=1, end=length,
            ) from e
        logger.debug("%s: %d intervals on %s", name, starts.size, chrom)
        chrom_parts.append(np.full(starts.size, chrom, dtype=object))
        start_parts.append(starts)
        end_parts.append(ends)
        score_parts.append(scores)

    try:
        return SignalTrack(
            chromosomes=np.concatenate(chrom_parts) if chrom_parts else np.array([], dtype=object),
            starts=np.concatenate(start_parts) if start_parts else np.array([], dtype=np.int64),
            ends=np.concatenate(end_parts) if end_parts else np.array([], dtype=np.int64),
            scores=np.concatenate(score_parts) if score_parts else np.array([], dtype=float),
            chrom_sizes=sizes,
            name=name,
            attrs={"source": name},
        )
    except InvalidTrack as e:
        raise ReadError(f"Corrupt signal data in '{name}': {e}", chromosome=chromosome) from e


class BigWigReader:
    """Read-only access to a bigWig file through pyBigWig.

    Usable as a context manager; the underlying handle is closed on exit.
    """

    def __init__(self, path: str | Path):
        self.path = str(path)
        try:
            bw = pyBigWig.open(self.path)
        except (RuntimeError, OSError) as e:
            raise ReadError(f"Cannot open bigWig '{self.path}': {e}") from e
        if bw is None:
            raise ReadError(f"Cannot open bigWig '{self.path}'")
        if not bw.isBigWig():
            bw.close()
            raise ReadError(f"'{self.path}' is not a bigWig file")
        self._bw: Any = bw

    # ------------------------------------------------------------------
    # Context management
    # ------------------------------------------------------------------
    def __enter__(self) -> "BigWigReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._bw is not None:
            self._bw.close()
            self._bw = None

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------
    @property
    def chrom_sizes(self) -> dict[str, int]:
        return {str(k): int(v) for k, v in self._handle().chroms().items()}

    def list_chromosomes(self) -> list[str]:
        return list(self.chrom_sizes)

    # ------------------------------------------------------------------
    # Tracks
    # ------------------------------------------------------------------
    def read(self, chromosome: str | None = None) -> SignalTrack:
        """Load one chromosome (or all of them, in header order) as a SignalTrack."""
        track = _read_source(self._handle(), self.path, chromosome)
        logger.info(
            "Read %d intervals from %s (%s)",
            track.n, self.path, chromosome if chromosome is not None else "all chromosomes",
        )
        return track

    def _handle(self) -> Any:
        if self._bw is None:
            raise ReadError(f"bigWig '{self.path}' is closed")
        return self._bw


def read_track(
    source: str | Path | SignalSource, chromosome: str | None = None
) -> SignalTrack:
    """Load a signal track from a bigWig path or an opened signal source.

    Parameters
    ----------
    source:
        Path to a bigWig file, or an object implementing SignalSource
        (e.g. an already opened pyBigWig handle, which is left open).
    chromosome:
        Restrict to this chromosome over its declared length. All declared
        chromosomes are loaded when omitted.

    Raises
    ------
    NotFoundError
        The chromosome is not declared by the source.
    ReadError
        The source cannot be opened or its data is corrupt.
    """
    if isinstance(source, (str, Path)):
        with BigWigReader(source) as reader:
            return reader.read(chromosome)
    name = getattr(source, "path", None) or type(source).__name__
    return _read_source(source, str(name), chromosome)
