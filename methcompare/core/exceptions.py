# methcompare/core/exceptions.py
from __future__ import annotations


class CoreError(Exception):
    """Base error for all core-domain exceptions."""


# ---- Validation / construction errors ----
class InvalidInterval(CoreError):
    """Raised when a GenomicInterval is constructed with invalid coordinates."""


class InvalidTrack(CoreError):
    """Raised when a SignalTrack is constructed with invalid inputs."""


class InvalidTable(CoreError):
    """Raised when a MethylationRow / MethylationTable is invalid."""


class InvalidSegment(CoreError):
    """Raised when a LabeledSegment / SegmentCollection is constructed with invalid inputs."""


class InvalidConfig(CoreError):
    """Raised when a pipeline configuration is incomplete or malformed."""


# ---- Region-scoped errors (carry the offending coordinates) ----
class RegionError(CoreError):
    """
    Error tied to a genomic region.

    The chromosome and coordinate range are kept as attributes and appended
    to the message so that a log line alone is enough for diagnosis.
    """

    def __init__(
        self,
        message: str,
        *,
        chromosome: str | None = None,
        start: int | None = None,
        end: int | None = None,
    ) -> None:
        self.message = message
        self.chromosome = chromosome
        self.start = start
        self.end = end
        super().__init__(message)

    @property
    def region(self) -> str | None:
        if self.chromosome is None:
            return None
        if self.start is None:
            return self.chromosome
        end = self.start if self.end is None else self.end
        return f"{self.chromosome}:{self.start}-{end}"

    def __str__(self) -> str:
        region = self.region
        return self.message if region is None else f"{self.message} [{region}]"


class NotFoundError(RegionError, KeyError):
    """Raised when a chromosome/region is absent from a source's coordinate system."""


class ReadError(RegionError):
    """Raised when a source is corrupt, unreadable, or malformed."""


class JoinMismatchError(RegionError):
    """Raised when a unique-keyed track holds a duplicate position."""


class OverlapViolationError(RegionError):
    """Raised when two segments of one collection overlap."""


# ---- External collaborators ----
class SegmenterError(CoreError):
    """Raised when an external segmentation tool fails."""
