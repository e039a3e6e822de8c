"""
File formats for methcompare.

- bigwig: signal tracks (methylation fraction, coverage) via pyBigWig
- table: four-column methylation table handed to segmentation tools
- segments: segment snapshots (pickle) and tab-separated exports
- annotation: categorical interval files (chromatin states)
"""

from .bigwig import BigWigReader, SignalSource, read_track
from .table import read_methylation_table, write_methylation_table
from .segments import load_snapshot, read_segments_tsv, save_snapshot, write_segments_tsv
from .annotation import read_annotation


__all__ = [
    "BigWigReader",
    "SignalSource",
    "read_track",
    "read_methylation_table",
    "write_methylation_table",
    "load_snapshot",
    "save_snapshot",
    "read_segments_tsv",
    "write_segments_tsv",
    "read_annotation",
]
