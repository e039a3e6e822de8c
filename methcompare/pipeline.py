# methcompare/pipeline.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import pandas as pd

from methcompare.compare import annotation_enrichment, compare_summaries, overlap_matrix
from methcompare.config import PipelineConfig
from methcompare.core import (
    MethylationTable,
    SegmentCollection,
    SignalTrack,
    build_methylation_table,
    merge_segments,
    synthesize_gap_segments,
)
from methcompare.io.annotation import read_annotation
from methcompare.io.bigwig import read_track
from methcompare.io.segments import save_snapshot, write_segments_tsv
from methcompare.io.table import write_methylation_table
from methcompare.plot import plot_comparison
from methcompare.segmenters import CommandSegmenter, Segmenter, relabel_by_group_mean


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ComparisonReport:
    summary: pd.DataFrame
    overlaps: dict[tuple[str, str], pd.DataFrame] = field(default_factory=dict)
    jaccard: dict[tuple[str, str], pd.DataFrame] = field(default_factory=dict)
    enrichment: dict[str, pd.DataFrame] = field(default_factory=dict)


@dataclass(slots=True)
class PipelineResult:
    table: MethylationTable
    collections: dict[str, SegmentCollection]
    report: ComparisonReport
    outputs: dict[str, Path] = field(default_factory=dict)


def build_segmenters(config: PipelineConfig) -> dict[str, Segmenter]:
    """CommandSegmenter per configured tool, each with its own work directory."""
    return {
        name: CommandSegmenter(
            name=name,
            command=settings.command,
            params=dict(settings.params),
            workdir=config.output_path / "work" / name,
            zero_based=settings.zero_based,
            label_map=dict(settings.label_map),
        )
        for name, settings in config.segmenters.items()
    }


class ComparisonPipeline:
    """
    Track extraction -> segmentation -> reconciliation -> persistence -> comparison.

    Every stage takes its inputs explicitly and either completes or raises
    before writing its outputs.
    """

    def __init__(
        self,
        config: PipelineConfig,
        segmenters: Mapping[str, Segmenter] | None = None,
    ):
        self.config = config
        self.segmenters = dict(segmenters) if segmenters is not None else build_segmenters(config)
        if not self.segmenters:
            logger.warning("No segmenters configured; only the methylation table will be produced")

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def load_tracks(self) -> tuple[SignalTrack, SignalTrack]:
        chrom = self.config.chromosome
        logger.info("Loading tracks for %s", chrom)
        methylation = read_track(self.config.methylation_track, chrom)
        coverage = read_track(self.config.coverage_track, chrom)
        return methylation, coverage

    def extract_table(self, methylation: SignalTrack, coverage: SignalTrack) -> MethylationTable:
        table = build_methylation_table(
            methylation,
            coverage,
            self.config.chromosome,
            fraction_scale=self.config.fraction_scale,
            min_coverage=self.config.min_coverage,
        )
        logger.info("Methylation table for %s: %d rows", self.config.chromosome, len(table))
        return table

    def run_segmenters(self, table: MethylationTable) -> dict[str, SegmentCollection]:
        collections: dict[str, SegmentCollection] = {}
        for name, segmenter in self.segmenters.items():
            logger.info("Segmenting with %s", name)
            collection = segmenter.segment(table)
            settings = self.config.segmenters.get(name)
            if settings is not None and settings.group_labels:
                collection = relabel_by_group_mean(collection, settings.group_labels)
            collections[name] = collection
        return collections

    def complete_segments(
        self, name: str, collection: SegmentCollection, auxiliary_track: SignalTrack
    ) -> SegmentCollection:
        """Add the implicit default class as gaps between the tool's segments."""
        settings = self.config.segmenters.get(name)
        if settings is None or not settings.fill_gaps:
            return collection

        chrom = self.config.chromosome
        # gap means on the same 0..1 scale as the table fractions
        signal = auxiliary_track.scaled(self.config.fraction_scale)
        gaps = synthesize_gap_segments(
            collection,
            chrom,
            {chrom: signal.chromosome_length(chrom)},
            signal,
            self.config.synthesized_label,
            max_workers=self.config.workers,
            progress=self.config.progress,
        )
        return merge_segments(collection.for_chromosome(chrom), gaps)

    def persist(self, name: str, collection: SegmentCollection) -> dict[str, Path]:
        seg_dir = self.config.output_path / "segments"
        stem = f"{name}.{self.config.chromosome}"
        return {
            f"{name}_snapshot": save_snapshot(collection, seg_dir / f"{stem}.pkl"),
            f"{name}_tsv": write_segments_tsv(collection, seg_dir / f"{stem}.tsv"),
        }

    def compare(
        self,
        collections: Mapping[str, SegmentCollection],
        annotation: SegmentCollection | None = None,
    ) -> ComparisonReport:
        report = ComparisonReport(summary=compare_summaries(collections))
        names = list(collections)
        for i, a in enumerate(names):
            for b in names[i + 1:]:
                report.overlaps[(a, b)] = overlap_matrix(collections[a], collections[b])
                report.jaccard[(a, b)] = overlap_matrix(
                    collections[a], collections[b], normalize="jaccard"
                )
        if annotation is not None:
            for name, coll in collections.items():
                report.enrichment[name] = annotation_enrichment(coll, annotation)
        return report

    def write_report(self, report: ComparisonReport, collections: Mapping[str, SegmentCollection]) -> dict[str, Path]:
        out_dir = self.config.output_path / "comparison"
        out_dir.mkdir(parents=True, exist_ok=True)
        chrom = self.config.chromosome

        outputs = {"summary": out_dir / f"summary.{chrom}.tsv"}
        report.summary.to_csv(outputs["summary"], sep="\t")
        for (a, b), frame in report.overlaps.items():
            outputs[f"overlap_{a}_{b}"] = out_dir / f"overlap.{a}_vs_{b}.{chrom}.tsv"
            frame.to_csv(outputs[f"overlap_{a}_{b}"], sep="\t")
        for (a, b), frame in report.jaccard.items():
            outputs[f"jaccard_{a}_{b}"] = out_dir / f"jaccard.{a}_vs_{b}.{chrom}.tsv"
            frame.to_csv(outputs[f"jaccard_{a}_{b}"], sep="\t")
        for name, frame in report.enrichment.items():
            outputs[f"enrichment_{name}"] = out_dir / f"enrichment.{name}.{chrom}.tsv"
            frame.to_csv(outputs[f"enrichment_{name}"], sep="\t")
        if collections:
            outputs["figure"] = plot_comparison(collections, out_dir / f"comparison.{chrom}.png")
        return outputs

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------
    def run(self) -> PipelineResult:
        chrom = self.config.chromosome
        methylation, coverage = self.load_tracks()
        table = self.extract_table(methylation, coverage)

        outputs: dict[str, Path] = {
            "table": write_methylation_table(
                table, self.config.output_path / "table" / f"methylation.{chrom}.tsv"
            )
        }

        collections = {
            name: self.complete_segments(name, coll, methylation)
            for name, coll in self.run_segmenters(table).items()
        }
        for name, coll in collections.items():
            outputs.update(self.persist(name, coll))

        annotation = None
        if self.config.annotation:
            annotation = read_annotation(self.config.annotation, chrom)

        report = self.compare(collections, annotation)
        outputs.update(self.write_report(report, collections))
        logger.info("Comparison on %s finished; %d outputs written", chrom, len(outputs))
        return PipelineResult(table=table, collections=collections, report=report, outputs=outputs)
