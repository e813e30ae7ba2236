"""Pipeline orchestration: single-file runs, batches, reprocessing and stats."""

from docrag.pipeline.background import BackgroundAnalysisRunner
from docrag.pipeline.batch_runner import BatchRunner
from docrag.pipeline.orchestrator import IngestionPipeline
from docrag.pipeline.reprocessor import Reprocessor
from docrag.pipeline.stats import StatsAggregator
from docrag.pipeline.status_tracker import FileStatusTracker

__all__ = [
    "BackgroundAnalysisRunner",
    "BatchRunner",
    "FileStatusTracker",
    "IngestionPipeline",
    "Reprocessor",
    "StatsAggregator",
]
