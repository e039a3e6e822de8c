# methcompare/io/segments.py
from __future__ import annotations

import logging
import pickle
from pathlib import Path

import pandas as pd

from methcompare.core import CollectionMeta, SegmentCollection
from methcompare.core.exceptions import InvalidInterval, InvalidSegment, ReadError
from methcompare.core.segment import SEGMENT_COLUMNS


logger = logging.getLogger(__name__)


def save_snapshot(collection: SegmentCollection, path: str | Path) -> Path:
    """Pickle the collection (segments + meta) for programmatic reuse."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        pickle.dump(collection, f, protocol=pickle.HIGHEST_PROTOCOL)
    logger.info("Saved %d segments snapshot to %s", len(collection), path)
    return path


def load_snapshot(path: str | Path) -> SegmentCollection:
    path = Path(path)
    try:
        with open(path, "rb") as f:
            obj = pickle.load(f)
    except (OSError, pickle.UnpicklingError, EOFError, AttributeError) as e:
        raise ReadError(f"Cannot load segment snapshot '{path}': {e}") from e
    if not isinstance(obj, SegmentCollection):
        raise ReadError(
            f"Snapshot '{path}' holds {type(obj).__name__}, not a SegmentCollection"
        )
    return obj


def write_segments_tsv(collection: SegmentCollection, path: str | Path) -> Path:
    """Tab-separated table with a header; undefined mean_signal is written as NA."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    collection.to_frame().to_csv(path, sep="\t", index=False, na_rep="NA")
    logger.info("Wrote %d segments to %s", len(collection), path)
    return path


def read_segments_tsv(path: str | Path, *, meta: CollectionMeta | None = None) -> SegmentCollection:
    path = Path(path)
    try:
        frame = pd.read_csv(path, sep="\t", dtype={"chromosome": str, "label": str})
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ReadError(f"Cannot read segments table '{path}': {e}") from e

    missing = [c for c in SEGMENT_COLUMNS if c not in frame.columns]
    if missing:
        raise ReadError(f"Segments table '{path}' is missing columns: {missing}")

    try:
        return SegmentCollection.from_frame(
            frame,
            meta=meta or CollectionMeta(source=str(path)),
            sort=False,
        )
    except (InvalidInterval, InvalidSegment, ValueError, TypeError) as e:
        raise ReadError(f"Invalid segments table '{path}': {e}") from e
