"""Pipeline orchestration module."""
from .pipeline import PipelineOrchestrator, PipelineResult, Stage

__all__ = ["PipelineOrchestrator", "PipelineResult", "Stage"]
