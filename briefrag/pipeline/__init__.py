"""Ingestion progress tracking."""

from briefrag.pipeline.progress_tracker import ProgressTracker

__all__ = ["ProgressTracker"]
