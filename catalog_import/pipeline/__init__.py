"""Import pipeline package — orchestration, persistence and outcomes.

Public re-exports so callers can write::

    from catalog_import.pipeline import ImportPipeline, build_pipeline
"""

from catalog_import.pipeline.models import (
    Failed,
    PipelineEvent,
    PipelineOutcome,
    PipelineProgress,
    RunState,
    Skipped,
    Success,
)
from catalog_import.pipeline.orchestrator import ImportPipeline, ImportRun, build_pipeline
from catalog_import.pipeline.persistence import CatalogPersister

__all__ = [
    "ImportPipeline",
    "ImportRun",
    "build_pipeline",
    "CatalogPersister",
    "PipelineEvent",
    "PipelineOutcome",
    "PipelineProgress",
    "RunState",
    "Success",
    "Skipped",
    "Failed",
]
