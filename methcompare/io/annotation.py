# methcompare/io/annotation.py
from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

from methcompare.core import CollectionMeta, SegmentCollection
from methcompare.core.exceptions import InvalidInterval, InvalidSegment, NotFoundError, ReadError


logger = logging.getLogger(__name__)

_HEADER_PREFIXES = ("track", "browser", "#")


def read_annotation(path: str | Path, chromosome: str | None = None) -> SegmentCollection:
    """
    Read a categorical interval file (e.g. chromatin-state BED) as segments.

    Only the first four columns are used: chromosome, 0-based start, end and
    state label. States become segment labels; num_marks is 0 and
    mean_signal undefined.
    """
    path = Path(path)
    try:
        with open(path) as f:
            body = "".join(line for line in f if not line.startswith(_HEADER_PREFIXES))
        frame = pd.read_csv(
            io.StringIO(body),
            sep="\t",
            header=None,
            usecols=[0, 1, 2, 3],
            dtype=str,
        )
        frame.columns = ["chromosome", "start", "end", "label"]
    except (OSError, ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ReadError(f"Cannot read annotation '{path}': {e}") from e

    if chromosome is not None:
        frame = frame[frame["chromosome"] == chromosome]
        if frame.empty:
            raise NotFoundError(f"No annotation intervals in '{path}'", chromosome=chromosome)

    try:
        frame = frame.assign(
            start=frame["start"].astype("int64"),
            end=frame["end"].astype("int64"),
        )
        collection = SegmentCollection.from_frame(
            frame,
            meta=CollectionMeta(tool="annotation", source=str(path)),
            zero_based=True,
        )
    except (InvalidInterval, InvalidSegment, ValueError, TypeError) as e:
        raise ReadError(f"Malformed annotation '{path}': {e}", chromosome=chromosome) from e

    logger.info(
        "Read %d annotation intervals (%d states) from %s",
        len(collection), len(collection.labels), path,
    )
    return collection
