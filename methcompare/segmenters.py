# methcompare/segmenters.py
"""
Segmentation tools behind one capability interface.

The statistical models live in external packages (a cutoff/HMM tool calling
UMRs/LMRs, a change-point/mixture tool emitting numbered segment groups).
Both are driven through `Segmenter.segment(table) -> SegmentCollection`, so a
stub or a Python callable can replace either of them.
"""
from __future__ import annotations

import logging
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence, runtime_checkable

import pandas as pd

from methcompare.core import CollectionMeta, MethylationTable, SegmentCollection
from methcompare.core.exceptions import InvalidInterval, InvalidSegment, SegmenterError
from methcompare.core.segment import SEGMENT_COLUMNS
from methcompare.io.table import write_methylation_table


logger = logging.getLogger(__name__)


@runtime_checkable
class Segmenter(Protocol):
    """Anything turning a methylation table into labeled segments."""

    name: str

    def segment(self, table: MethylationTable) -> SegmentCollection: ...


@dataclass(slots=True)
class FunctionSegmenter:
    """Wrap a Python callable returning a SegmentCollection or a segment DataFrame."""

    name: str
    func: Callable[[MethylationTable], SegmentCollection | pd.DataFrame]
    zero_based: bool = False

    def segment(self, table: MethylationTable) -> SegmentCollection:
        out = self.func(table)
        if isinstance(out, SegmentCollection):
            return out
        if isinstance(out, pd.DataFrame):
            return SegmentCollection.from_frame(
                out,
                meta=CollectionMeta(tool=self.name, source="function"),
                zero_based=self.zero_based,
            )
        raise SegmenterError(
            f"Segmenter '{self.name}' returned {type(out).__name__}, "
            "expected SegmentCollection or DataFrame"
        )


@dataclass(slots=True)
class CommandSegmenter:
    """
    Run an external segmentation tool as a subprocess.

    The table is written in the four-column interchange format, then every
    argument of `command` is formatted with `{table}`, `{output}` and the
    entries of `params` (e.g. ``["Rscript", "run_methylseekr.R", "{table}",
    "{output}", "--fdr", "{fdr}"]``). The tool must write a headerless,
    tab-separated segments file: chromosome, start, end, label and optionally
    num_marks and mean_signal.
    """

    name: str
    command: Sequence[str]
    params: Mapping[str, Any] = field(default_factory=dict)
    workdir: str | Path | None = None
    zero_based: bool = True
    label_map: Mapping[str, str] = field(default_factory=dict)

    def segment(self, table: MethylationTable) -> SegmentCollection:
        if self.workdir is None:
            with tempfile.TemporaryDirectory(prefix=f"{self.name}_") as tmp:
                return self._run(table, Path(tmp))
        workdir = Path(self.workdir)
        workdir.mkdir(parents=True, exist_ok=True)
        return self._run(table, workdir)

    def build_command(self, table_path: Path, output_path: Path) -> list[str]:
        values = {**self.params, "table": str(table_path), "output": str(output_path)}
        try:
            return [str(arg).format(**values) for arg in self.command]
        except KeyError as e:
            raise SegmenterError(
                f"Segmenter '{self.name}': command placeholder {e} has no value"
            ) from e

    def _run(self, table: MethylationTable, workdir: Path) -> SegmentCollection:
        table_path = write_methylation_table(table, workdir / f"{self.name}.methylation.tsv")
        output_path = workdir / f"{self.name}.segments.tsv"
        cmd = self.build_command(table_path, output_path)

        logger.info("Running %s: %s", self.name, " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise SegmenterError(f"Segmenter '{self.name}': executable not found ({cmd[0]})") from e

        if result.stdout:
            logger.debug("%s stdout:\n%s", self.name, result.stdout.strip())
        if result.returncode != 0:
            raise SegmenterError(
                f"Segmenter '{self.name}' exited with status {result.returncode}: "
                f"{result.stderr.strip()[-2000:]}"
            )
        if not output_path.exists():
            raise SegmenterError(f"Segmenter '{self.name}' did not write {output_path}")

        collection = read_tool_segments(
            output_path,
            meta=CollectionMeta(tool=self.name, source=str(output_path), attrs=dict(self.params)),
            zero_based=self.zero_based,
        )
        if self.label_map:
            collection = collection.relabel(self.label_map)
        logger.info(
            "%s produced %d segments (%s)",
            self.name, len(collection), ", ".join(collection.labels) or "none",
        )
        return collection


def read_tool_segments(
    path: str | Path, *, meta: CollectionMeta | None = None, zero_based: bool = True
) -> SegmentCollection:
    """Parse a headerless segments file written by an external tool."""
    path = Path(path)
    try:
        frame = pd.read_csv(path, sep="\t", header=None, dtype={0: str})
    except pd.errors.EmptyDataError:
        return SegmentCollection(meta=meta or CollectionMeta())
    except (OSError, pd.errors.ParserError) as e:
        raise SegmenterError(f"Cannot parse segments '{path}': {e}") from e

    ncol = frame.shape[1]
    if ncol < 4:
        raise SegmenterError(f"Segments '{path}' need at least 4 columns, got {ncol}")
    frame = frame.iloc[:, : min(ncol, len(SEGMENT_COLUMNS))]
    frame.columns = SEGMENT_COLUMNS[: frame.shape[1]]
    try:
        return SegmentCollection.from_frame(frame, meta=meta, zero_based=zero_based)
    except (InvalidInterval, InvalidSegment, ValueError, TypeError) as e:
        raise SegmenterError(f"Malformed segments in '{path}': {e}") from e


def relabel_by_group_mean(
    collection: SegmentCollection, labels: Sequence[str] = ("UMR", "LMR", "FMR")
) -> SegmentCollection:
    """
    Map numbered segment groups onto ordered class labels.

    Groups are ranked by their mark-weighted mean signal (lowest first) and
    paired with `labels` in order. Groups without any measured segment rank
    last.
    """
    groups = collection.labels
    if len(groups) > len(labels):
        raise InvalidSegment(
            f"{len(groups)} segment groups cannot map onto {len(labels)} labels {list(labels)}"
        )

    weighted: dict[str, float] = {}
    for group in groups:
        marks = 0
        total = 0.0
        for seg in collection:
            if seg.label == group and seg.mean_signal is not None and seg.num_marks > 0:
                marks += seg.num_marks
                total += seg.mean_signal * seg.num_marks
        weighted[group] = total / marks if marks else float("inf")

    ranked = sorted(groups, key=lambda g: weighted[g])
    mapping = dict(zip(ranked, labels))
    logger.debug("Group to label mapping: %s", mapping)
    return collection.relabel(mapping)
