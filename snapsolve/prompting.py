"""Prompt-building helpers."""

from __future__ import annotations

DEFAULT_SYSTEM_PROMPT = (
    "You analyze screenshots of a problem the user is looking at. Read every "
    "screenshot, work out what is being asked, and solve it. Reply with a single "
    "JSON object with the string fields \"explanation\" (a short summary of the "
    "approach), \"solution\" (the answer, as a fenced code block when it is code) "
    "and \"explanationDetailed\" (a step-by-step walkthrough). Return only the JSON."
)


def build_analysis_prompt(description: str | None, screenshot_count: int) -> str:
    """Build the user message that accompanies the screenshots."""
    note: str = description.strip() if description else ""
    plural: str = "screenshot" if screenshot_count == 1 else "screenshots"
    header: str = f"Analyze the {screenshot_count} attached {plural} in order."
    if note:
        return f"{header}\n\nAdditional description from the user:\n{note}"
    return header
