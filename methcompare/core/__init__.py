"""
Core domain objects for methcompare.

This module defines the format-agnostic data model:
- GenomicInterval: closed, 1-based interval on a chromosome
- SignalTrack: validated per-interval scores over one or more chromosomes
- MethylationTable: position-ordered (total, methylated) read counts
- LabeledSegment / SegmentCollection: segmentation calls (UMR, LMR, FMR, ...)

plus the reconciliation logic working on them (table join, gap synthesis).
The core layer is independent from I/O and storage formats.
"""

from .interval import GenomicInterval
from .track import SignalTrack
from .table import MethylationRow, MethylationTable, build_methylation_table
from .segment import LabeledSegment, SegmentCollection
from .metadata import CollectionMeta
from .gaps import (
    DEFAULT_GAP_LABEL,
    chromosome_span,
    complement_intervals,
    gap_statistics,
    merge_segments,
    synthesize_gap_segments,
)
from .exceptions import (
    CoreError,
    InvalidInterval,
    InvalidTrack,
    InvalidTable,
    InvalidSegment,
    InvalidConfig,
    RegionError,
    NotFoundError,
    ReadError,
    JoinMismatchError,
    OverlapViolationError,
    SegmenterError,
)


__all__ = [
    # coordinates / signal
    "GenomicInterval",
    "SignalTrack",

    # methylation table
    "MethylationRow",
    "MethylationTable",
    "build_methylation_table",

    # segments
    "LabeledSegment",
    "SegmentCollection",
    "CollectionMeta",

    # gap synthesis
    "DEFAULT_GAP_LABEL",
    "chromosome_span",
    "complement_intervals",
    "gap_statistics",
    "merge_segments",
    "synthesize_gap_segments",

    # exceptions
    "CoreError",
    "InvalidInterval",
    "InvalidTrack",
    "InvalidTable",
    "InvalidSegment",
    "InvalidConfig",
    "RegionError",
    "NotFoundError",
    "ReadError",
    "JoinMismatchError",
    "OverlapViolationError",
    "SegmenterError",
]
