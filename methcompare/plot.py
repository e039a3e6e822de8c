# methcompare/plot.py
from __future__ import annotations

from pathlib import Path
from typing import Mapping

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from methcompare.core import SegmentCollection  # noqa: E402


def plot_comparison(
    collections: Mapping[str, SegmentCollection], path: str | Path, *, dpi: int = 150
) -> Path:
    """Segment counts and log10 length distributions per tool and label."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    names = list(collections)
    labels = list(dict.fromkeys(lab for c in collections.values() for lab in c.labels))

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4.5))

    width = 0.8 / max(len(names), 1)
    x = np.arange(len(labels))
    for k, name in enumerate(names):
        coll = collections[name]
        counts = [sum(1 for seg in coll if seg.label == lab) for lab in labels]
        ax1.bar(x + k * width, counts, width=width, label=name)
    ax1.set_xticks(x + width * (len(names) - 1) / 2)
    ax1.set_xticklabels(labels)
    ax1.set_ylabel("segments")
    ax1.set_title("Segments per class")
    if names:
        ax1.legend()

    data, ticks = [], []
    for name in names:
        for lab in labels:
            lengths = [seg.length for seg in collections[name] if seg.label == lab]
            if lengths:
                data.append(np.log10(lengths))
                ticks.append(f"{name}\n{lab}")
    if data:
        ax2.boxplot(data, showfliers=False)
        ax2.set_xticks(np.arange(1, len(ticks) + 1))
        ax2.set_xticklabels(ticks, fontsize=8)
    ax2.set_ylabel("log10 length (bp)")
    ax2.set_title("Segment length")

    fig.tight_layout()
    fig.savefig(path, dpi=dpi)
    plt.close(fig)
    return path
