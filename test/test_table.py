# test/test_table.py
import numpy as np
import pytest

from methcompare.core import (
    MethylationRow,
    MethylationTable,
    SignalTrack,
    build_methylation_table,
    InvalidTable,
    JoinMismatchError,
    NotFoundError,
)


SIZES = {"chr1": 1000}


def _track(records, name):
    return SignalTrack.from_records(records, chrom_sizes=SIZES, name=name)


def test_row_validates_counts():
    row = MethylationRow("chr1", 10, 8, 2)
    assert row.fraction == 0.25
    assert MethylationRow("chr1", 10, 0, 0).fraction is None
    with pytest.raises(InvalidTable):
        MethylationRow("chr1", 10, 3, 4)
    with pytest.raises(InvalidTable):
        MethylationRow("chr1", 10, -1, 0)


def test_build_joins_by_position_and_rounds():
    meth = _track([("chr1", 100, 100, 0.5), ("chr1", 300, 300, 0.34)], "meth")
    cov = _track([("chr1", 100, 100, 10.0), ("chr1", 300, 300, 3.0)], "cov")

    table = build_methylation_table(meth, cov, "chr1")

    rows = list(table)
    assert rows == [
        MethylationRow("chr1", 100, 10, 5),
        MethylationRow("chr1", 300, 3, 1),
    ]


def test_position_without_methylation_value_is_excluded():
    meth = _track([("chr1", 100, 100, 0.5)], "meth")
    cov = _track([("chr1", 100, 100, 6.0), ("chr1", 150, 150, 10.0)], "cov")

    table = build_methylation_table(meth, cov, "chr1")

    assert table.positions.tolist() == [100]
    assert 150 not in table.positions


def test_nan_methylation_value_is_excluded():
    meth = _track([("chr1", 100, 100, np.nan), ("chr1", 200, 200, 1.0)], "meth")
    cov = _track([("chr1", 100, 100, 6.0), ("chr1", 200, 200, 2.0)], "cov")

    table = build_methylation_table(meth, cov, "chr1")
    assert table.positions.tolist() == [200]
    assert table.methylated_counts.tolist() == [2]


def test_methylation_interval_spanning_position_is_used():
    # one methylation interval covering a CpG on both strands
    meth = _track([("chr1", 100, 101, 1.0)], "meth")
    cov = _track([("chr1", 101, 101, 4.0)], "cov")

    table = build_methylation_table(meth, cov, "chr1")
    assert list(table) == [MethylationRow("chr1", 101, 4, 4)]


def test_fraction_scale_and_min_coverage():
    meth = _track([("chr1", 10, 10, 50.0), ("chr1", 20, 20, 100.0)], "meth")
    cov = _track([("chr1", 10, 10, 8.0), ("chr1", 20, 20, 1.0)], "cov")

    table = build_methylation_table(meth, cov, "chr1", fraction_scale=100.0, min_coverage=2)
    assert list(table) == [MethylationRow("chr1", 10, 8, 4)]

    with pytest.raises(InvalidTable):
        build_methylation_table(meth, cov, "chr1", fraction_scale=0)


def test_ratio_round_trip_within_one_count():
    rng = np.random.default_rng(7)
    positions = np.arange(1, 400, 3)
    fractions = rng.random(positions.size)
    depths = rng.integers(1, 60, positions.size)

    meth = _track([("chr1", int(p), int(p), float(f)) for p, f in zip(positions, fractions)], "meth")
    cov = _track([("chr1", int(p), int(p), float(d)) for p, d in zip(positions, depths)], "cov")

    table = build_methylation_table(meth, cov, "chr1")
    assert len(table) == positions.size

    expected = fractions * table.total_counts
    assert np.all(np.abs(table.methylated_counts - expected) <= 1)
    assert np.all(np.abs(table.fractions() - fractions) <= 1.0 / table.total_counts)


def test_missing_chromosome_raises_notfound():
    meth = _track([("chr1", 10, 10, 0.5)], "meth")
    cov = _track([("chr1", 10, 10, 5.0)], "cov")
    with pytest.raises(NotFoundError) as exc:
        build_methylation_table(meth, cov, "chr7")
    assert exc.value.chromosome == "chr7"


def test_empty_join_returns_empty_table():
    meth = SignalTrack.empty(chrom_sizes=SIZES)
    cov = _track([("chr1", 10, 10, 5.0)], "cov")
    table = build_methylation_table(meth, cov, "chr1")
    assert len(table) == 0


def test_table_rejects_duplicate_positions():
    with pytest.raises(JoinMismatchError) as exc:
        MethylationTable.from_rows(
            [MethylationRow("chr1", 10, 5, 1), MethylationRow("chr1", 10, 6, 2)]
        )
    assert exc.value.chromosome == "chr1"
    assert exc.value.start == 10


def test_table_rejects_unsorted_positions():
    with pytest.raises(InvalidTable):
        MethylationTable.from_rows(
            [MethylationRow("chr1", 20, 5, 1), MethylationRow("chr1", 10, 6, 2)]
        )


def test_table_to_frame_columns():
    table = MethylationTable.from_rows([MethylationRow("chr1", 10, 5, 1)])
    frame = table.to_frame()
    assert list(frame.columns) == ["chromosome", "position", "total_count", "methylated_count"]
    assert frame.iloc[0].tolist() == ["chr1", 10, 5, 1]


def test_multi_base_coverage_run_expands_per_position():
    meth = _track(
        [("chr1", 100, 100, 0.5), ("chr1", 101, 101, 0.0), ("chr1", 102, 102, 1.0)], "meth"
    )
    cov = _track([("chr1", 100, 102, 10.0), ("chr1", 200, 201, 4.0)], "cov")

    table = build_methylation_table(meth, cov, "chr1")

    assert [(r.position, r.total_count, r.methylated_count) for r in table] == [
        (100, 10, 5), (101, 10, 0), (102, 10, 10),
    ]


def test_multi_base_methylation_interval_covers_each_position():
    meth = _track([("chr1", 50, 59, 0.25)], "meth")
    cov = _track([("chr1", 55, 57, 8.0), ("chr1", 58, 58, 4.0)], "cov")

    table = build_methylation_table(meth, cov, "chr1")

    assert table.positions.tolist() == [55, 56, 57, 58]
    assert table.total_counts.tolist() == [8, 8, 8, 4]
    assert table.methylated_counts.tolist() == [2, 2, 2, 1]
