# methcompare/io/table.py
from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from methcompare.core import MethylationTable
from methcompare.core.exceptions import InvalidTable, ReadError
from methcompare.core.table import TABLE_COLUMNS


logger = logging.getLogger(__name__)


def write_methylation_table(table: MethylationTable, path: str | Path) -> Path:
    """Write the tool interchange format: chromosome, position, total, methylated.

    Tab-separated, no header, one row per position.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table.to_frame().to_csv(path, sep="\t", header=False, index=False)
    logger.info("Wrote %d methylation rows to %s", len(table), path)
    return path


def read_methylation_table(path: str | Path) -> MethylationTable:
    path = Path(path)
    try:
        frame = pd.read_csv(
            path,
            sep="\t",
            header=None,
            dtype={0: str},
        )
    except pd.errors.EmptyDataError:
        return MethylationTable.from_rows([])
    except (OSError, pd.errors.ParserError) as e:
        raise ReadError(f"Cannot read methylation table '{path}': {e}") from e

    if frame.shape[1] != len(TABLE_COLUMNS):
        raise ReadError(
            f"Methylation table '{path}' must have {len(TABLE_COLUMNS)} columns, "
            f"got {frame.shape[1]}"
        )
    frame.columns = TABLE_COLUMNS

    for col in TABLE_COLUMNS[1:]:
        numeric = pd.to_numeric(frame[col], errors="coerce")
        bad = numeric.isna() | (numeric != numeric.round())
        if bad.any():
            i = int(bad.to_numpy().nonzero()[0][0])
            raise ReadError(
                f"Non-integer {col} in '{path}' (line {i + 1})",
                chromosome=str(frame.iloc[i, 0]),
            )
        frame[col] = numeric.astype("int64")

    try:
        return MethylationTable.from_frame(frame)
    except InvalidTable as e:
        raise ReadError(f"Invalid methylation table '{path}': {e}") from e
