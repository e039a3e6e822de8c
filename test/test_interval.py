# test/test_interval.py
import pytest

from methcompare.core import GenomicInterval, InvalidInterval


def test_interval_basic_properties():
    iv = GenomicInterval("chr2", 100, 200)
    assert iv.length == 101
    assert iv.to_tuple() == ("chr2", 100, 200)
    assert str(iv) == "chr2:100-200"
    assert iv.strand is None


def test_interval_single_base():
    iv = GenomicInterval("chr1", 5, 5)
    assert iv.length == 1


@pytest.mark.parametrize("start,end", [(0, 10), (10, 9), (-3, 4)])
def test_interval_rejects_bad_coordinates(start, end):
    with pytest.raises(InvalidInterval):
        GenomicInterval("chr1", start, end)


def test_interval_rejects_bad_chromosome_and_strand():
    with pytest.raises(InvalidInterval):
        GenomicInterval("", 1, 2)
    with pytest.raises(InvalidInterval):
        GenomicInterval("chr1", 1, 2, strand="x")


def test_interval_from_zero_based():
    iv = GenomicInterval.from_zero_based("chr1", 99, 100)
    assert iv.to_tuple() == ("chr1", 100, 100)


def test_overlaps_and_contains():
    a = GenomicInterval("chr1", 100, 200)
    assert a.overlaps(GenomicInterval("chr1", 200, 300))
    assert not a.overlaps(GenomicInterval("chr1", 201, 300))
    assert not a.overlaps(GenomicInterval("chr2", 100, 200))
    assert a.contains(GenomicInterval("chr1", 150, 160))
    assert not a.contains(GenomicInterval("chr1", 150, 260))
