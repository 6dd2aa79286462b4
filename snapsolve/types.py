"""Domain types shared across the workflow."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union


@dataclass(slots=True, frozen=True)
class ScreenshotArtifact:
    """One captured screen image with its generated identity."""

    id: str
    storage_path: str
    image_data: str
    mime_type: str = "image/png"

    @property
    def data_url(self) -> str:
        """Return the image as a data URL suitable for vision model input."""
        return f"data:{self.mime_type};base64,{self.image_data}"


@dataclass(slots=True, frozen=True)
class AnalysisRequest:
    """Prompt text plus the exact artifact set submitted together."""

    prompt_text: str
    artifacts: tuple[ScreenshotArtifact, ...]


@dataclass(slots=True, frozen=True)
class AnalysisResult:
    """Structured analysis output shown to the user."""

    explanation: str | None = None
    solution: str | None = None
    explanation_detailed: str | None = None

    @property
    def has_solution(self) -> bool:
        """Return True when the solution holds non-blank text."""
        return bool(self.solution and self.solution.strip())

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisResult":
        """Build a result from a decoded JSON object.

        Accepts both the camelCase wire spelling and snake_case keys. Raises
        ValueError when none of the known fields are present.
        """
        detailed: Any = data.get("explanationDetailed", data.get("explanation_detailed"))
        fields: dict[str, Any] = {
            "explanation": data.get("explanation"),
            "solution": data.get("solution"),
            "explanation_detailed": detailed,
        }
        if all(value is None for value in fields.values()):
            raise ValueError("Result object has no explanation or solution fields.")
        for name, value in fields.items():
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Result field '{name}' must be a string.")
        return cls(**fields)


@dataclass(slots=True, frozen=True)
class Idle:
    """Composing: screenshots may be captured, deleted or submitted."""


@dataclass(slots=True, frozen=True)
class Capturing:
    """A capture is in flight."""


@dataclass(slots=True, frozen=True)
class Analyzing:
    """An analysis request is in flight."""


@dataclass(slots=True, frozen=True)
class ShowingResult:
    result: AnalysisResult


@dataclass(slots=True, frozen=True)
class ShowingError:
    message: str


WorkflowState = Union[Idle, Capturing, Analyzing, ShowingResult, ShowingError]
