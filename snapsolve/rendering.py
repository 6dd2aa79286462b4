"""Text rendering helpers for analysis results."""

from __future__ import annotations

import re
from collections.abc import Sequence

from snapsolve.types import AnalysisResult, ScreenshotArtifact

_OPENING_FENCE = re.compile(r"\A[ \t]*(?:```|~~~)[^\n]*\n")
_CLOSING_FENCE = re.compile(r"\n?[ \t]*(?:```|~~~)[ \t]*\Z")


def strip_code_fences(text: str) -> str:
    """Remove a leading and trailing fence line around a code block."""
    body: str = text.strip("\n")
    body = _OPENING_FENCE.sub("", body, count=1)
    body = _CLOSING_FENCE.sub("", body, count=1)
    return body.strip("\n").rstrip()


def render_result(result: AnalysisResult) -> str:
    """Render a result as plain sections for the console view."""
    sections: list[str] = []
    if result.explanation:
        sections.append(f"Explanation:\n{result.explanation.strip()}")
    if result.has_solution and result.solution is not None:
        sections.append(f"Solution:\n{strip_code_fences(result.solution)}")
    if result.explanation_detailed:
        sections.append(f"Details:\n{result.explanation_detailed.strip()}")
    if not sections:
        return "The analysis returned no content."
    return "\n\n".join(sections)


def render_screenshots(artifacts: Sequence[ScreenshotArtifact]) -> str:
    """List pending screenshots in capture order."""
    if not artifacts:
        return "No screenshots captured."
    lines: list[str] = [
        f"{position}. {artifact.id}  ({artifact.storage_path})"
        for position, artifact in enumerate(artifacts, start=1)
    ]
    return "\n".join(lines)
