# test/test_segmenters.py
import sys

import pandas as pd
import pytest

from methcompare.core import (
    GenomicInterval,
    InvalidSegment,
    LabeledSegment,
    MethylationRow,
    MethylationTable,
    SegmentCollection,
    SegmenterError,
)
from methcompare.segmenters import (
    CommandSegmenter,
    FunctionSegmenter,
    Segmenter,
    read_tool_segments,
    relabel_by_group_mean,
)


# Stands in for an Rscript wrapper: reads the table, writes BED-like calls.
FAKE_TOOL = """
import sys
table, output, label = sys.argv[1], sys.argv[2], sys.argv[3]
rows = [line.split("\\t") for line in open(table).read().splitlines()]
with open(output, "w") as out:
    for chrom, pos, total, meth in rows:
        start0 = int(pos) - 1
        out.write(f"{chrom}\\t{start0}\\t{int(pos) + 9}\\t{label}\\t1\\t{int(meth) / int(total)}\\n")
"""


@pytest.fixture
def table():
    return MethylationTable.from_rows(
        [MethylationRow("chr1", 100, 10, 1), MethylationRow("chr1", 300, 4, 0)]
    )


def test_function_segmenter_accepts_frame_and_collection(table):
    def from_frame(t):
        return pd.DataFrame(
            {"chromosome": ["chr1"], "start": [99], "end": [120], "label": ["UMR"]}
        )

    seg = FunctionSegmenter("stub", from_frame, zero_based=True)
    assert isinstance(seg, Segmenter)
    out = seg.segment(table)
    assert out[0].interval == GenomicInterval("chr1", 100, 120)
    assert out.meta.tool == "stub"

    coll = SegmentCollection(segments=(LabeledSegment(GenomicInterval("chr1", 1, 5), "LMR"),))
    assert FunctionSegmenter("direct", lambda t: coll).segment(table) is coll


def test_function_segmenter_rejects_other_outputs(table):
    with pytest.raises(SegmenterError):
        FunctionSegmenter("bad", lambda t: [1, 2, 3]).segment(table)


def test_command_segmenter_runs_tool_and_parses_output(table, tmp_path):
    script = tmp_path / "fake_tool.py"
    script.write_text(FAKE_TOOL)

    seg = CommandSegmenter(
        name="fake",
        command=[sys.executable, str(script), "{table}", "{output}", "{label}"],
        params={"label": "UMR"},
        workdir=tmp_path / "work",
        label_map={"UMR": "unmethylated"},
    )
    out = seg.segment(table)

    assert [(s.start, s.end) for s in out] == [(100, 109), (300, 309)]
    assert out.labels == ["unmethylated"]
    assert out[0].mean_signal == pytest.approx(0.1)
    assert out.meta.tool == "fake"
    assert out.meta.attrs == {"label": "UMR"}
    assert (tmp_path / "work" / "fake.methylation.tsv").read_text().startswith("chr1\t100\t10\t1")


def test_command_segmenter_in_temporary_directory(table, tmp_path):
    script = tmp_path / "fake_tool.py"
    script.write_text(FAKE_TOOL)
    seg = CommandSegmenter("tmp", [sys.executable, str(script), "{table}", "{output}", "LMR"])
    assert len(seg.segment(table)) == 2


def test_command_segmenter_failure_raises_with_stderr(table, tmp_path):
    seg = CommandSegmenter(
        "failing",
        [sys.executable, "-c", "import sys; sys.stderr.write('model did not converge'); sys.exit(3)"],
        workdir=tmp_path,
    )
    with pytest.raises(SegmenterError, match="model did not converge"):
        seg.segment(table)


def test_command_segmenter_missing_executable_or_placeholder(table, tmp_path):
    with pytest.raises(SegmenterError):
        CommandSegmenter("nope", ["definitely-not-a-real-tool-xyz", "{table}"], workdir=tmp_path).segment(table)
    with pytest.raises(SegmenterError):
        CommandSegmenter("nope", ["echo", "{fdr}"], workdir=tmp_path).segment(table)


def test_command_segmenter_without_output_file(table, tmp_path):
    seg = CommandSegmenter("silent", [sys.executable, "-c", "pass"], workdir=tmp_path)
    with pytest.raises(SegmenterError):
        seg.segment(table)


def test_read_tool_segments_minimal_columns(tmp_path):
    path = tmp_path / "calls.bed"
    path.write_text("chr1\t500\t600\tLMR\nchr1\t99\t200\tUMR\n")
    coll = read_tool_segments(path)
    assert [(s.start, s.label, s.num_marks, s.mean_signal) for s in coll] == [
        (100, "UMR", 0, None),
        (501, "LMR", 0, None),
    ]

    with pytest.raises(SegmenterError):
        bad = tmp_path / "bad.bed"
        bad.write_text("chr1\t1\t5\n")
        read_tool_segments(bad)


def _grouped():
    def seg(start, end, group, marks, mean):
        return LabeledSegment(GenomicInterval("chr1", start, end), group, marks, mean)

    return SegmentCollection(
        segments=(
            seg(1, 100, "1", 10, 0.85),
            seg(101, 150, "2", 5, 0.05),
            seg(151, 400, "3", 20, 0.4),
            seg(401, 500, "2", 5, 0.15),
        )
    )


def test_relabel_by_group_mean_orders_groups():
    out = relabel_by_group_mean(_grouped(), ("UMR", "LMR", "FMR"))
    assert [s.label for s in out] == ["FMR", "UMR", "LMR", "UMR"]


def test_relabel_by_group_mean_too_many_groups():
    with pytest.raises(InvalidSegment):
        relabel_by_group_mean(_grouped(), ("low", "high"))
