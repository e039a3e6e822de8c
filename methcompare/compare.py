# methcompare/compare.py
from __future__ import annotations

from collections import defaultdict
from typing import Iterator, Mapping

import numpy as np
import pandas as pd

from methcompare.core import SegmentCollection


SUMMARY_COLUMNS = ["count", "total_bp", "median_length", "num_marks", "mean_signal"]


def summarize_segments(collection: SegmentCollection) -> pd.DataFrame:
    """Per-label counts, base pairs, lengths and mark-weighted mean signal."""
    rows = []
    for label in collection.labels:
        segs = [seg for seg in collection if seg.label == label]
        lengths = np.array([seg.length for seg in segs])
        measured = [seg for seg in segs if seg.mean_signal is not None and seg.num_marks > 0]
        marks = sum(seg.num_marks for seg in measured)
        mean = (
            sum(seg.mean_signal * seg.num_marks for seg in measured) / marks
            if marks else np.nan
        )
        rows.append(
            (label, len(segs), int(lengths.sum()), float(np.median(lengths)),
             sum(seg.num_marks for seg in segs), mean)
        )
    frame = pd.DataFrame(rows, columns=["label", *SUMMARY_COLUMNS])
    return frame.set_index("label")


def compare_summaries(collections: Mapping[str, SegmentCollection]) -> pd.DataFrame:
    """Stack per-tool summaries into one frame indexed by (tool, label)."""
    if not collections:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)
    return pd.concat(
        {name: summarize_segments(coll) for name, coll in collections.items()},
        names=["tool", "label"],
    )


def _intersections(
    a: SegmentCollection, b: SegmentCollection
) -> Iterator[tuple[str, str, int]]:
    """(label_a, label_b, shared bp) for every intersecting segment pair."""
    in_b = set(b.chromosomes)
    shared = [c for c in a.chromosomes if c in in_b]
    for chrom in shared:
        sa = a.for_chromosome(chrom).segments
        sb = b.for_chromosome(chrom).segments
        i = j = 0
        while i < len(sa) and j < len(sb):
            x, y = sa[i], sb[j]
            lo = max(x.start, y.start)
            hi = min(x.end, y.end)
            if lo <= hi:
                yield x.label, y.label, hi - lo + 1
            if x.end < y.end:
                i += 1
            else:
                j += 1


def overlap_matrix(
    a: SegmentCollection, b: SegmentCollection, *, normalize: str | None = None
) -> pd.DataFrame:
    """
    Base pairs shared between each label of `a` (rows) and of `b` (columns).

    normalize:
      - None: raw base pairs
      - "jaccard": shared / (bp of row label + bp of column label - shared)
      - "row": shared / bp of row label
    """
    if normalize not in {None, "jaccard", "row"}:
        raise ValueError("normalize must be one of: None, jaccard, row")

    counts: dict[tuple[str, str], int] = defaultdict(int)
    for la, lb, bp in _intersections(a, b):
        counts[(la, lb)] += bp

    rows, cols = a.labels, b.labels
    matrix = pd.DataFrame(
        [[counts.get((r, c), 0) for c in cols] for r in rows],
        index=pd.Index(rows, name="a"),
        columns=pd.Index(cols, name="b"),
        dtype=float,
    )
    if normalize is None:
        return matrix.astype("int64")

    row_bp = pd.Series({r: a.total_length(r) for r in rows}, dtype=float)
    if normalize == "row":
        return matrix.div(row_bp, axis=0)

    col_bp = pd.Series({c: b.total_length(c) for c in cols}, dtype=float)
    union = (
        np.add.outer(row_bp.to_numpy(), col_bp.to_numpy()) - matrix.to_numpy()
    )
    return pd.DataFrame(
        np.divide(matrix.to_numpy(), union, out=np.zeros_like(union), where=union > 0),
        index=matrix.index,
        columns=matrix.columns,
    )


def annotation_enrichment(
    collection: SegmentCollection, annotation: SegmentCollection
) -> pd.DataFrame:
    """Fraction of each segment label's base pairs falling in each annotation state."""
    return overlap_matrix(collection, annotation, normalize="row").rename_axis(
        index="label", columns="state"
    )
