# methcompare/core/segment.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

import pandas as pd

from .exceptions import InvalidSegment, OverlapViolationError
from .interval import GenomicInterval
from .metadata import CollectionMeta


SEGMENT_COLUMNS = ["chromosome", "start", "end", "label", "num_marks", "mean_signal"]


@dataclass(frozen=True, slots=True)
class LabeledSegment:
    """
    A genomic interval tagged with a segment class (UMR, LMR, FMR, ...).

    num_marks counts the signal intervals (e.g. CpGs) summarized by the
    segment; mean_signal is None when nothing was measured.
    """
    interval: GenomicInterval
    label: str
    num_marks: int = 0
    mean_signal: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.interval, GenomicInterval):
            raise InvalidSegment("LabeledSegment.interval must be a GenomicInterval.")
        if not isinstance(self.label, str) or not self.label.strip():
            raise InvalidSegment("LabeledSegment.label must be a non-empty string.")
        try:
            num_marks = int(self.num_marks)
        except (TypeError, ValueError) as e:
            raise InvalidSegment(f"num_marks must be an integer, got {self.num_marks!r}.") from e
        if num_marks < 0:
            raise InvalidSegment(f"num_marks must be >= 0, got {num_marks}.")
        object.__setattr__(self, "num_marks", num_marks)

        if self.mean_signal is not None:
            mean = float(self.mean_signal)
            # NaN is the undefined statistic as produced by numeric tools.
            object.__setattr__(self, "mean_signal", None if math.isnan(mean) else mean)

    @property
    def chromosome(self) -> str:
        return self.interval.chromosome

    @property
    def start(self) -> int:
        return self.interval.start

    @property
    def end(self) -> int:
        return self.interval.end

    @property
    def length(self) -> int:
        return self.interval.length

    def with_label(self, label: str) -> "LabeledSegment":
        return LabeledSegment(self.interval, label, self.num_marks, self.mean_signal)


@dataclass(frozen=True, slots=True)
class SegmentCollection:
    """
    Ordered, non-overlapping labeled segments.

    Design goals:
    - easy access: iteration, len, index, per-chromosome views
    - safe: segments of one chromosome are contiguous, sorted by start and
      pairwise disjoint; violations are reported, never resolved
    - predictable: immutable; transformations return new collections
    """
    segments: tuple[LabeledSegment, ...] = field(default_factory=tuple, repr=False)
    meta: CollectionMeta = field(default_factory=CollectionMeta, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.segments, (str, bytes)) or not isinstance(self.segments, Iterable):
            raise InvalidSegment("SegmentCollection.segments must be an iterable of LabeledSegment.")
        if not isinstance(self.meta, CollectionMeta):
            raise InvalidSegment("SegmentCollection.meta must be a CollectionMeta instance.")

        segments = tuple(self.segments)
        seen: set[str] = set()
        prev: LabeledSegment | None = None
        for seg in segments:
            if not isinstance(seg, LabeledSegment):
                raise InvalidSegment("SegmentCollection.segments values must be LabeledSegment instances.")
            if prev is None or seg.chromosome != prev.chromosome:
                if seg.chromosome in seen:
                    raise InvalidSegment(
                        f"segments of '{seg.chromosome}' must be contiguous in the collection."
                    )
                seen.add(seg.chromosome)
            else:
                if seg.start < prev.start:
                    raise InvalidSegment(
                        f"segments on '{seg.chromosome}' must be sorted by start "
                        f"({seg.interval} follows {prev.interval})."
                    )
                if seg.start <= prev.end:
                    raise OverlapViolationError(
                        f"{prev.label} segment {prev.interval} overlaps {seg.label} segment",
                        chromosome=seg.chromosome,
                        start=seg.start,
                        end=min(seg.end, prev.end),
                    )
            prev = seg

        object.__setattr__(self, "segments", segments)

    # ---- constructors ----
    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        *,
        meta: CollectionMeta | None = None,
        zero_based: bool = False,
        sort: bool = True,
    ) -> "SegmentCollection":
        """
        Build from a DataFrame with columns chromosome, start, end, label and
        optionally num_marks / mean_signal.

        zero_based:
            True when `start` is a BED-style 0-based start.
        sort:
            Stable sort by (chromosome, start) before validation.
        """
        missing = [c for c in SEGMENT_COLUMNS[:4] if c not in frame.columns]
        if missing:
            raise InvalidSegment(f"segment frame is missing columns: {missing}")

        df = frame
        if sort:
            df = frame.sort_values(["chromosome", "start"], kind="mergesort")

        has_marks = "num_marks" in df.columns
        has_mean = "mean_signal" in df.columns
        offset = 1 if zero_based else 0

        segments = []
        for row in df.itertuples(index=False):
            segments.append(
                LabeledSegment(
                    interval=GenomicInterval(str(row.chromosome), int(row.start) + offset, int(row.end)),
                    label=str(row.label),
                    num_marks=int(row.num_marks) if has_marks and not pd.isna(row.num_marks) else 0,
                    mean_signal=(
                        None if not has_mean or pd.isna(row.mean_signal) else float(row.mean_signal)
                    ),
                )
            )
        return cls(segments=tuple(segments), meta=meta or CollectionMeta())

    # ---- sequence API ----
    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[LabeledSegment]:
        return iter(self.segments)

    def __getitem__(self, i: int) -> LabeledSegment:
        return self.segments[i]

    @property
    def chromosomes(self) -> list[str]:
        return list(dict.fromkeys(seg.chromosome for seg in self.segments))

    @property
    def labels(self) -> list[str]:
        """Distinct labels in order of first appearance."""
        return list(dict.fromkeys(seg.label for seg in self.segments))

    def intervals(self, chromosome: str | None = None) -> list[GenomicInterval]:
        return [
            seg.interval
            for seg in self.segments
            if chromosome is None or seg.chromosome == chromosome
        ]

    def total_length(self, label: str | None = None) -> int:
        return sum(seg.length for seg in self.segments if label is None or seg.label == label)

    # ---- transformations ----
    def for_chromosome(self, chromosome: str) -> "SegmentCollection":
        return self._derive(seg for seg in self.segments if seg.chromosome == chromosome)

    def with_label(self, *labels: str) -> "SegmentCollection":
        """Keep only segments carrying one of `labels`."""
        wanted = set(labels)
        return self._derive(seg for seg in self.segments if seg.label in wanted)

    def relabel(self, mapping: Mapping[str, str]) -> "SegmentCollection":
        """Rename labels; labels absent from `mapping` are kept as-is."""
        return self._derive(
            seg.with_label(mapping[seg.label]) if seg.label in mapping else seg
            for seg in self.segments
        )

    def merge(self, *others: "SegmentCollection", meta: CollectionMeta | None = None) -> "SegmentCollection":
        """
        Return a new collection holding these segments and those of `others`.

        Segments are stably sorted by (chromosome, start); any overlap between
        inputs raises OverlapViolationError.
        """
        pooled = list(self.segments)
        for other in others:
            if not isinstance(other, SegmentCollection):
                raise InvalidSegment("merge() expects SegmentCollection instances.")
            pooled.extend(other.segments)
        pooled.sort(key=lambda seg: (seg.chromosome, seg.start))
        return SegmentCollection(
            segments=tuple(pooled),
            meta=meta if meta is not None else self.meta.copy(),
        )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                (
                    seg.chromosome,
                    seg.start,
                    seg.end,
                    seg.label,
                    seg.num_marks,
                    float("nan") if seg.mean_signal is None else seg.mean_signal,
                )
                for seg in self.segments
            ],
            columns=SEGMENT_COLUMNS,
        )

    def _derive(self, segments: Iterable[LabeledSegment]) -> "SegmentCollection":
        return SegmentCollection(segments=tuple(segments), meta=self.meta.copy())
