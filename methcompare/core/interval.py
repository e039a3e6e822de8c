# methcompare/core/interval.py
from __future__ import annotations

from dataclasses import dataclass

from .exceptions import InvalidInterval


_STRANDS = {None, "+", "-", "*"}


@dataclass(frozen=True, slots=True)
class GenomicInterval:
    """
    Closed, 1-based genomic interval: [start, end] on `chromosome`.
    """
    chromosome: str
    start: int
    end: int
    strand: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.chromosome, str) or not self.chromosome.strip():
            raise InvalidInterval("GenomicInterval.chromosome must be a non-empty string.")
        try:
            start = int(self.start)
            end = int(self.end)
        except (TypeError, ValueError) as e:
            raise InvalidInterval(
                f"Coordinates must be integers, got start={self.start!r}, end={self.end!r}."
            ) from e
        if start < 1:
            raise InvalidInterval(f"start must be >= 1 (1-based), got {start}.")
        if end < start:
            raise InvalidInterval(f"end ({end}) must be >= start ({start}).")
        if self.strand not in _STRANDS:
            raise InvalidInterval(f"strand must be one of +, -, * or None, got {self.strand!r}.")

        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def from_zero_based(
        cls, chromosome: str, start0: int, end: int, strand: str | None = None
    ) -> "GenomicInterval":
        """Build from BED / bigWig style half-open [start0, end) coordinates."""
        return cls(chromosome, int(start0) + 1, int(end), strand)

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def overlaps(self, other: "GenomicInterval") -> bool:
        return (
            self.chromosome == other.chromosome
            and self.start <= other.end
            and other.start <= self.end
        )

    def contains(self, other: "GenomicInterval") -> bool:
        return (
            self.chromosome == other.chromosome
            and self.start <= other.start
            and other.end <= self.end
        )

    def to_tuple(self) -> tuple[str, int, int]:
        return self.chromosome, self.start, self.end

    def __str__(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}"
