# methcompare/core/gaps.py
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Mapping

import numpy as np
from tqdm import tqdm

from .exceptions import InvalidInterval, NotFoundError
from .interval import GenomicInterval
from .metadata import CollectionMeta
from .segment import LabeledSegment, SegmentCollection
from .track import SignalTrack


logger = logging.getLogger(__name__)

DEFAULT_GAP_LABEL = "FMR"


def chromosome_span(
    chromosome: str, chromosome_bounds: Mapping[str, int] | GenomicInterval
) -> GenomicInterval:
    """Full coordinate span 1..length of `chromosome`."""
    if isinstance(chromosome_bounds, GenomicInterval):
        if chromosome_bounds.chromosome != chromosome:
            raise NotFoundError(
                f"bounds describe '{chromosome_bounds.chromosome}'", chromosome=chromosome
            )
        return GenomicInterval(chromosome, chromosome_bounds.start, chromosome_bounds.end)
    try:
        length = int(chromosome_bounds[chromosome])
    except KeyError as e:
        raise NotFoundError("Chromosome missing from bounds", chromosome=chromosome) from e
    return GenomicInterval(chromosome, 1, length)


def complement_intervals(
    intervals: list[GenomicInterval], span: GenomicInterval
) -> list[GenomicInterval]:
    """
    Maximal sub-intervals of `span` not covered by `intervals`.

    Strand is ignored: the union of the intervals is subtracted once, so no
    per-strand whole-chromosome placeholders are produced.
    """
    ordered = sorted(
        (iv for iv in intervals if iv.chromosome == span.chromosome),
        key=lambda iv: (iv.start, iv.end),
    )
    gaps: list[GenomicInterval] = []
    cursor = span.start
    for iv in ordered:
        if iv.start < span.start or iv.end > span.end:
            raise InvalidInterval(
                f"interval {iv} reaches outside chromosome span {span}."
            )
        if iv.start > cursor:
            gaps.append(GenomicInterval(span.chromosome, cursor, iv.start - 1))
        cursor = max(cursor, iv.end + 1)
    if cursor <= span.end:
        gaps.append(GenomicInterval(span.chromosome, cursor, span.end))
    return gaps


def gap_statistics(gap: GenomicInterval, track: SignalTrack) -> tuple[int, float | None]:
    """Count of track intervals overlapping `gap` and the mean of their scores."""
    lo, hi = track.overlap_bounds(gap.chromosome, gap.start, gap.end)
    if hi <= lo:
        return 0, None
    scores = track.scores[lo:hi]
    finite = scores[~np.isnan(scores)]
    return hi - lo, (float(finite.mean()) if finite.size else None)


def _safe_statistics(
    index: int, gap: GenomicInterval, track: SignalTrack
) -> tuple[int, float | None]:
    try:
        return gap_statistics(gap, track)
    except Exception:
        logger.warning("Statistics failed for gap #%d %s; leaving it undefined", index, gap, exc_info=True)
        return 0, None


def _collect_statistics(
    gaps: list[GenomicInterval],
    track: SignalTrack,
    max_workers: int | None,
    progress: bool,
) -> list[tuple[int, float | None]]:
    results: list[tuple[int, float | None] | None] = [None] * len(gaps)

    if not max_workers or max_workers <= 1 or len(gaps) <= 1:
        for i, gap in enumerate(tqdm(gaps, desc="Gap statistics", disable=not progress)):
            results[i] = _safe_statistics(i, gap, track)
        return results  # type: ignore[return-value]

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(_safe_statistics, i, gap, track): i
            for i, gap in enumerate(gaps)
        }
        for future in tqdm(
            as_completed(future_to_index),
            total=len(future_to_index),
            desc="Gap statistics",
            disable=not progress,
        ):
            # Reassemble by gap index, not completion order
            results[future_to_index[future]] = future.result()
    return results  # type: ignore[return-value]


def synthesize_gap_segments(
    known_segments: SegmentCollection,
    chromosome: str,
    chromosome_bounds: Mapping[str, int] | GenomicInterval,
    auxiliary_track: SignalTrack,
    synthesized_label: str = DEFAULT_GAP_LABEL,
    *,
    max_workers: int | None = None,
    progress: bool = False,
) -> SegmentCollection:
    """
    Derive the missing segment class as the complement of `known_segments`.

    One segment per maximal gap on `chromosome`, labeled `synthesized_label`,
    with num_marks / mean_signal taken from `auxiliary_track`. A gap without
    overlapping track intervals gets num_marks=0 and mean_signal=None. Only
    the gap segments are returned; see `merge_segments`.

    Parameters
    ----------
    chromosome_bounds:
        Chromosome sizes mapping, or a GenomicInterval spanning the chromosome.
    max_workers:
        Size of the worker pool computing per-gap statistics (None/1 = inline).
    """
    span = chromosome_span(chromosome, chromosome_bounds)
    known = known_segments.intervals(chromosome)
    gaps = complement_intervals(known, span)

    if not known:
        logger.warning("No known segments on %s; the whole chromosome becomes one gap", chromosome)
    if auxiliary_track.declares(chromosome):
        track = auxiliary_track.for_chromosome(chromosome)
    else:
        logger.warning(
            "Auxiliary track '%s' has no data for %s; gap statistics are undefined",
            auxiliary_track.name, chromosome,
        )
        track = SignalTrack.empty(chrom_sizes={chromosome: span.end})

    stats = _collect_statistics(gaps, track, max_workers, progress)

    segments = tuple(
        LabeledSegment(gap, synthesized_label, num_marks, mean_signal)
        for gap, (num_marks, mean_signal) in zip(gaps, stats)
    )
    undefined = sum(1 for seg in segments if seg.mean_signal is None)
    logger.info(
        "%s: synthesized %d %s segments (%d bp, %d without signal)",
        chromosome, len(segments), synthesized_label,
        sum(seg.length for seg in segments), undefined,
    )
    return SegmentCollection(
        segments=segments,
        meta=CollectionMeta(
            tool=known_segments.meta.tool,
            description=f"{synthesized_label} gaps between known segments",
            source="synthesized",
            attrs={"label": synthesized_label, "chromosome": chromosome},
        ),
    )


def merge_segments(
    known_segments: SegmentCollection, gap_segments: SegmentCollection
) -> SegmentCollection:
    """Unified collection: stable sort by (chromosome, start); overlaps raise."""
    return known_segments.merge(
        gap_segments,
        meta=known_segments.meta.copy(source="merged"),
    )
