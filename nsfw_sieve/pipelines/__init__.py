"""Pipeline facade."""
from .media_pipeline import MediaPipeline

__all__ = ["MediaPipeline"]
