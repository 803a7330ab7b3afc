"""Orchestrator package - classifies outputs and coordinates uploads."""
from .core import Uploader
from .models import OutputPlan, PathKind, Strategy, UploadTask

__all__ = ["Uploader", "OutputPlan", "PathKind", "Strategy", "UploadTask"]
