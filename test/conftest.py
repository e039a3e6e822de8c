# test/conftest.py
from pathlib import Path

import pyBigWig
import pytest


def write_bigwig(path: Path, chrom_sizes: dict[str, int], records) -> Path:
    """Write (chrom, start0, end, value) records; records must follow header order."""
    bw = pyBigWig.open(str(path), "w")
    bw.addHeader(list(chrom_sizes.items()), maxZooms=0)
    if records:
        chroms, starts, ends, values = zip(*records)
        bw.addEntries(
            list(chroms),
            [int(s) for s in starts],
            ends=[int(e) for e in ends],
            values=[float(v) for v in values],
        )
    bw.close()
    return path


CHROM_SIZES = {"chr1": 1000, "chr2": 500}


@pytest.fixture
def methylation_bw(tmp_path):
    # CpG-level fractions, 0-based starts
    records = [
        ("chr1", 99, 100, 0.5),
        ("chr1", 149, 150, 0.0),
        ("chr1", 299, 300, 1.0),
        ("chr1", 499, 500, 0.25),
        ("chr2", 9, 10, 0.75),
    ]
    return write_bigwig(tmp_path / "meth.bw", CHROM_SIZES, records)


@pytest.fixture
def coverage_bw(tmp_path):
    records = [
        ("chr1", 99, 100, 10.0),
        ("chr1", 149, 150, 4.0),
        ("chr1", 199, 200, 7.0),  # no methylation value here
        ("chr1", 299, 300, 3.0),
        ("chr1", 499, 500, 8.0),
        ("chr2", 9, 10, 4.0),
    ]
    return write_bigwig(tmp_path / "cov.bw", CHROM_SIZES, records)
