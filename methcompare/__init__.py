"""Methylation segmentation comparison: track extraction, tool orchestration, reconciliation."""

__version__ = "0.1.0"
