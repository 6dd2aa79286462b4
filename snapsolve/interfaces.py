"""Protocol interfaces for workflow collaborators."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from snapsolve.types import AnalysisRequest, AnalysisResult

if TYPE_CHECKING:
    from snapsolve.shortcuts import KeyEvent


class WindowAttributes(Protocol):
    """Native window attribute primitives for the current window."""

    def set_content_protected(self, protected: bool) -> None:
        """Mark the window as excluded from (or included in) screen capture."""

    def set_skip_taskbar(self, skip: bool) -> None:
        """Hide the window from (or show it in) the taskbar and window switcher."""


class ScreenGrabber(Protocol):
    """Native capture primitive."""

    def grab(self) -> str:
        """Return the current screen as base64-encoded PNG text."""


class AnalysisClient(Protocol):
    """Submits screenshots plus prompt text to an analysis backend."""

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Return a structured result or raise AnalysisError."""


class Clipboard(Protocol):
    """System clipboard writer."""

    def copy(self, text: str) -> None:
        """Place text on the clipboard or raise ClipboardError."""


class KeySource(Protocol):
    """Process-wide key-down event source."""

    def start(
        self,
        on_key: Callable[["KeyEvent"], bool],
        should_suppress: Callable[["KeyEvent"], bool] | None = None,
    ) -> None:
        """Begin delivering key-down events to the callback.

        When ``should_suppress`` returns True for an event, the source keeps
        that key-down from reaching other applications where the platform
        allows it. Raises HotkeyError when no listener can be started.
        """

    def stop(self) -> None:
        """Stop delivering events and release the listener."""
