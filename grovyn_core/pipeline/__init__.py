"""
Boot-time pipeline: stage context and orchestration
"""
from .bootstrap import boot, build_pipeline
from .context import STAGE_DEPENDENCIES, PipelineContext, Stage

__all__ = ["boot", "build_pipeline", "PipelineContext", "Stage", "STAGE_DEPENDENCIES"]
