"""Execution engine for running CSV rows against the FIM Service."""

from .pipeline import ImportPipeline
from .runner import ImportRunner

__all__ = [
    "ImportPipeline",
    "ImportRunner",
]
