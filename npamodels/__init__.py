"""
Network-model construction for perturbation-amplitude scoring.
"""

from .errors import (
    NpaModelsError,
    SchemaError,
    ModelIntegrityError,
    ModelNotFoundError,
    EmptyResultWarning,
)
from .config import PipelineConfig, load_pipeline_config

__all__ = [
    "NpaModelsError",
    "SchemaError",
    "ModelIntegrityError",
    "ModelNotFoundError",
    "EmptyResultWarning",
    "PipelineConfig",
    "load_pipeline_config",
]
