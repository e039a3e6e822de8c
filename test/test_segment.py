# test/test_segment.py
import math

import pandas as pd
import pytest

from methcompare.core import GenomicInterval, LabeledSegment, SegmentCollection, CollectionMeta
from methcompare.core import InvalidSegment, OverlapViolationError


def _seg(chrom, start, end, label, marks=0, mean=None):
    return LabeledSegment(GenomicInterval(chrom, start, end), label, marks, mean)


def test_segment_basic_properties():
    seg = _seg("chr2", 100, 200, "UMR", 12, 0.05)
    assert seg.chromosome == "chr2"
    assert (seg.start, seg.end, seg.length) == (100, 200, 101)
    assert seg.with_label("LMR").label == "LMR"
    assert seg.with_label("LMR").num_marks == 12


def test_segment_normalizes_nan_mean_to_undefined():
    seg = _seg("chr1", 1, 10, "FMR", 0, float("nan"))
    assert seg.mean_signal is None


def test_segment_rejects_bad_values():
    with pytest.raises(InvalidSegment):
        _seg("chr1", 1, 10, "")
    with pytest.raises(InvalidSegment):
        _seg("chr1", 1, 10, "UMR", -1)
    with pytest.raises(InvalidSegment):
        LabeledSegment(("chr1", 1, 10), "UMR")  # type: ignore[arg-type]


def test_collection_basic_api():
    coll = SegmentCollection(
        segments=(
            _seg("chr1", 10, 20, "UMR", 3, 0.1),
            _seg("chr1", 50, 90, "LMR", 5, 0.3),
            _seg("chr2", 5, 9, "UMR", 1, 0.0),
        ),
        meta=CollectionMeta(tool="methylseekr"),
    )

    assert len(coll) == 3
    assert coll[1].label == "LMR"
    assert coll.chromosomes == ["chr1", "chr2"]
    assert coll.labels == ["UMR", "LMR"]
    assert coll.total_length("UMR") == 11 + 5
    assert coll.intervals("chr2") == [GenomicInterval("chr2", 5, 9)]
    assert len(coll.for_chromosome("chr1")) == 2
    assert coll.for_chromosome("chr1").meta.tool == "methylseekr"


def test_collection_rejects_overlap_with_coordinates():
    with pytest.raises(OverlapViolationError) as exc:
        SegmentCollection(segments=(_seg("chr1", 10, 20, "UMR"), _seg("chr1", 15, 30, "LMR")))
    assert exc.value.chromosome == "chr1"
    assert exc.value.start == 15
    assert exc.value.end == 20


def test_collection_rejects_unsorted_and_split_chromosomes():
    with pytest.raises(InvalidSegment):
        SegmentCollection(segments=(_seg("chr1", 50, 60, "UMR"), _seg("chr1", 10, 20, "LMR")))
    with pytest.raises(InvalidSegment):
        SegmentCollection(
            segments=(_seg("chr1", 1, 2, "UMR"), _seg("chr2", 1, 2, "UMR"), _seg("chr1", 5, 6, "UMR"))
        )


def test_collection_with_label_and_relabel():
    coll = SegmentCollection(
        segments=(_seg("chr1", 1, 5, "1"), _seg("chr1", 10, 15, "2"), _seg("chr1", 20, 25, "1"))
    )
    assert len(coll.with_label("1")) == 2
    relabeled = coll.relabel({"1": "UMR"})
    assert [s.label for s in relabeled] == ["UMR", "2", "UMR"]


def test_merge_sorts_and_reports_overlap():
    a = SegmentCollection(segments=(_seg("chr1", 100, 200, "UMR"), _seg("chr1", 500, 600, "LMR")))
    b = SegmentCollection(segments=(_seg("chr1", 1, 99, "FMR"), _seg("chr1", 201, 499, "FMR")))

    merged = a.merge(b)
    assert [(s.start, s.label) for s in merged] == [
        (1, "FMR"), (100, "UMR"), (201, "FMR"), (500, "LMR"),
    ]

    clash = SegmentCollection(segments=(_seg("chr1", 150, 160, "FMR"),))
    with pytest.raises(OverlapViolationError):
        a.merge(clash)


def test_from_frame_and_to_frame():
    frame = pd.DataFrame(
        {
            "chromosome": ["chr1", "chr1"],
            "start": [499, 99],
            "end": [600, 200],
            "label": ["LMR", "UMR"],
            "num_marks": [7, 4],
            "mean_signal": [0.3, float("nan")],
        }
    )
    coll = SegmentCollection.from_frame(frame, zero_based=True)

    assert [(s.start, s.end) for s in coll] == [(100, 200), (500, 600)]
    assert coll[0].mean_signal is None
    assert coll[1].num_marks == 7

    out = coll.to_frame()
    assert list(out.columns) == ["chromosome", "start", "end", "label", "num_marks", "mean_signal"]
    assert math.isnan(out["mean_signal"].iloc[0])
    assert out["mean_signal"].iloc[1] == 0.3


def test_from_frame_requires_columns():
    with pytest.raises(InvalidSegment):
        SegmentCollection.from_frame(pd.DataFrame({"chromosome": ["chr1"], "start": [1]}))
