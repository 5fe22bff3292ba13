"""
Request pipeline composition
"""

from service_base.pipeline.composer import (
    BEFORE_SECURITY_CATEGORIES,
    Pipeline,
    PipelineComposer,
    PositionHint,
    Stage,
    StageCategory,
)
from service_base.pipeline.defaults import build_default_pipeline, default_composer

__all__ = [
    "BEFORE_SECURITY_CATEGORIES",
    "Pipeline",
    "PipelineComposer",
    "PositionHint",
    "Stage",
    "StageCategory",
    "build_default_pipeline",
    "default_composer",
]
