# methcompare/config.py
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from methcompare.core import DEFAULT_GAP_LABEL
from methcompare.core.exceptions import InvalidConfig


@dataclass(frozen=True, slots=True)
class SegmenterConfig:
    """
    How to run one external segmentation tool.

    - command: argument list, formatted with {table}, {output} and params
    - params: tool parameters substituted into the command
    - zero_based: the tool writes BED-style 0-based starts
    - label_map: renames tool labels (e.g. "UMR" -> "UMR", "1" -> "low")
    - group_labels: rank numbered groups by mean signal onto these labels
    - fill_gaps: the tool leaves the default class implicit; synthesize it
    """
    command: tuple[str, ...]
    params: dict[str, Any] = field(default_factory=dict)
    zero_based: bool = True
    label_map: dict[str, str] = field(default_factory=dict)
    group_labels: tuple[str, ...] | None = None
    fill_gaps: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.command, str) or not self.command:
            raise InvalidConfig("SegmenterConfig.command must be a non-empty argument list.")
        object.__setattr__(self, "command", tuple(str(a) for a in self.command))
        for name in ("params", "label_map"):
            value = getattr(self, name)
            if value is None:
                object.__setattr__(self, name, {})
            elif not isinstance(value, dict):
                raise InvalidConfig(f"SegmenterConfig.{name} must be a mapping.")
        if self.group_labels is not None:
            object.__setattr__(self, "group_labels", tuple(self.group_labels))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SegmenterConfig":
        return _build(cls, data, "segmenter")


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """
    Everything a comparison run needs, passed explicitly to each stage.

    Paths are kept as given; relative paths resolve against the working
    directory of the run.
    """
    methylation_track: str
    coverage_track: str
    chromosome: str
    output_dir: str = "results"
    annotation: str | None = None
    fraction_scale: float = 1.0
    min_coverage: int = 0
    synthesized_label: str = DEFAULT_GAP_LABEL
    workers: int = 1
    progress: bool = False
    segmenters: Mapping[str, SegmenterConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("methylation_track", "coverage_track", "chromosome"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidConfig(f"PipelineConfig.{name} must be a non-empty string.")
        if float(self.fraction_scale) <= 0:
            raise InvalidConfig("fraction_scale must be > 0.")
        if int(self.min_coverage) < 0:
            raise InvalidConfig("min_coverage must be >= 0.")
        if int(self.workers) < 1:
            raise InvalidConfig("workers must be >= 1.")
        if not isinstance(self.segmenters, Mapping):
            raise InvalidConfig("segmenters must be a mapping of name -> settings.")

        segmenters: dict[str, SegmenterConfig] = {}
        for name, settings in self.segmenters.items():
            if isinstance(settings, SegmenterConfig):
                segmenters[str(name)] = settings
            elif isinstance(settings, Mapping):
                segmenters[str(name)] = SegmenterConfig.from_dict(settings)
            else:
                raise InvalidConfig(f"segmenter '{name}' settings must be a mapping.")
        object.__setattr__(self, "segmenters", segmenters)
        object.__setattr__(self, "fraction_scale", float(self.fraction_scale))
        object.__setattr__(self, "min_coverage", int(self.min_coverage))
        object.__setattr__(self, "workers", int(self.workers))

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PipelineConfig":
        return _build(cls, data, "pipeline")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PipelineConfig":
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise InvalidConfig(f"Cannot load config '{path}': {e}") from e
        if not isinstance(data, Mapping):
            raise InvalidConfig(f"Config '{path}' must contain a mapping at top level.")
        return cls.from_dict(data)


def _build(cls, data: Mapping[str, Any], what: str):
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise InvalidConfig(f"Unknown {what} config keys: {unknown}")
    try:
        return cls(**data)
    except (TypeError, ValueError) as e:
        raise InvalidConfig(f"Invalid {what} config: {e}") from e
