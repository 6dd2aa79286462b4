"""Covert screen capture and analysis workflow."""

from snapsolve.controller import WorkflowController
from snapsolve.types import AnalysisResult, ScreenshotArtifact

__all__ = ["AnalysisResult", "ScreenshotArtifact", "WorkflowController"]
