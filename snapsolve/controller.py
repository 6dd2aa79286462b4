"""Capture-and-analysis workflow state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from snapsolve.errors import AnalysisError, CaptureError, WindowError
from snapsolve.interfaces import AnalysisClient
from snapsolve.prompting import build_analysis_prompt
from snapsolve.screen import CaptureService
from snapsolve.store import ScreenshotStore
from snapsolve.types import (
    AnalysisRequest,
    AnalysisResult,
    Analyzing,
    Capturing,
    Idle,
    ScreenshotArtifact,
    ShowingError,
    ShowingResult,
    WorkflowState,
)
from snapsolve.window import WindowGuard

StateListener = Callable[[WorkflowState], None]

CAPTURE_FAILED_MESSAGE = "Could not capture the screen. Please try again."
CAPTURE_TIMEOUT_MESSAGE = "Screen capture timed out. Please try again."
ANALYSIS_FAILED_MESSAGE = "Analysis failed. Please capture the screen and try again."
ANALYSIS_TIMEOUT_MESSAGE = "Analysis timed out. Please capture the screen and try again."
UNEXPECTED_MESSAGE = "Something went wrong. Please try again."


@dataclass(slots=True)
class WorkflowController:
    """Coordinates window protection, capture, the screenshot set and analysis.

    The controller is the single owner of the workflow state and is driven
    from one asyncio event loop. Capture and analysis are serialized by the
    state itself: a request that arrives while either is in flight is
    dropped rather than queued. Window protection is lifted only for the
    settling delay plus the native capture, and is restored on every exit
    path including timeouts.
    """

    window_guard: WindowGuard
    capture_service: CaptureService
    analysis_client: AnalysisClient
    store: ScreenshotStore = field(default_factory=ScreenshotStore)
    settle_delay_seconds: float = 0.3
    capture_timeout_seconds: float = 15.0
    analysis_timeout_seconds: float = 90.0
    restore_on_failure: bool = False
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    logger: logging.Logger = logging.getLogger(__name__)
    _state: WorkflowState = field(default_factory=Idle, init=False)
    _description: str = field(default="", init=False)
    _listeners: list[StateListener] = field(default_factory=list, init=False)

    @property
    def state(self) -> WorkflowState:
        """Return the active workflow state."""
        return self._state

    @property
    def description(self) -> str:
        """Return the note that will accompany the next analysis."""
        return self._description

    @property
    def screenshots(self) -> tuple[ScreenshotArtifact, ...]:
        """Return the pending screenshots in capture order."""
        return self.store.items()

    @property
    def is_busy(self) -> bool:
        """Return True while a capture or analysis is in flight."""
        return isinstance(self._state, (Capturing, Analyzing))

    @property
    def can_analyze(self) -> bool:
        """Return True when an analysis request would be accepted."""
        return not self.is_busy and bool(self.store)

    def activate(self) -> None:
        """Apply startup window protection (hidden from taskbar, non-capturable)."""
        try:
            self.window_guard.protect()
        except WindowError as error:
            self.logger.warning("Window protection could not be enabled: %s", error)
            return
        self.logger.info("Window protections enabled.")

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_description(self, text: str) -> None:
        """Replace the note sent with the next analysis."""
        self._description = text

    def current_solution(self) -> str | None:
        """Return the solution text of the shown result, if any."""
        if isinstance(self._state, ShowingResult) and self._state.result.has_solution:
            return self._state.result.solution
        return None

    async def request_capture(self) -> bool:
        """Capture one screenshot; return False when the request was dropped."""
        if self.is_busy:
            self.logger.debug("Capture request dropped while %s.", type(self._state).__name__)
            return False

        self._transition(Capturing())
        try:
            artifact: ScreenshotArtifact = await asyncio.wait_for(
                self._capture_unprotected(), timeout=self.capture_timeout_seconds
            )
            self.store.add(artifact)
        except CaptureError as error:
            self.logger.warning("Screen capture failed: %s", error)
            self._transition(ShowingError(CAPTURE_FAILED_MESSAGE))
        except asyncio.TimeoutError:
            self.logger.warning(
                "Screen capture timed out after %.1fs.", self.capture_timeout_seconds
            )
            self._transition(ShowingError(CAPTURE_TIMEOUT_MESSAGE))
        except Exception:
            self.logger.exception("Unexpected error during screen capture.")
            self._transition(ShowingError(UNEXPECTED_MESSAGE))
        else:
            self.logger.info(
                "Captured screenshot %s (%d pending).", artifact.id, len(self.store)
            )
            self._transition(Idle())
        return True

    async def request_analysis(self) -> bool:
        """Submit every pending screenshot; return False when nothing was submitted."""
        if self.is_busy:
            self.logger.debug("Analysis request dropped while %s.", type(self._state).__name__)
            return False
        if not self.store:
            self.logger.debug("Analysis request dropped: no screenshots captured.")
            return False

        artifacts: tuple[ScreenshotArtifact, ...] = self.store.drain()
        request = AnalysisRequest(
            prompt_text=build_analysis_prompt(self._description, len(artifacts)),
            artifacts=artifacts,
        )
        self._description = ""
        self._transition(Analyzing())

        try:
            result: AnalysisResult = await asyncio.wait_for(
                asyncio.to_thread(self.analysis_client.analyze, request),
                timeout=self.analysis_timeout_seconds,
            )
        except AnalysisError as error:
            self.logger.warning("Analysis failed: %s", error)
            self._fail_analysis(artifacts, ANALYSIS_FAILED_MESSAGE)
        except asyncio.TimeoutError:
            self.logger.warning("Analysis timed out after %.1fs.", self.analysis_timeout_seconds)
            self._fail_analysis(artifacts, ANALYSIS_TIMEOUT_MESSAGE)
        except Exception:
            self.logger.exception("Unexpected error during analysis.")
            self._fail_analysis(artifacts, UNEXPECTED_MESSAGE)
        else:
            self.logger.info("Analysis of %d screenshot(s) completed.", len(artifacts))
            self._transition(ShowingResult(result))
        return True

    def new_analysis(self) -> bool:
        """Leave the result view and return to composing."""
        if not isinstance(self._state, ShowingResult):
            return False
        self._transition(Idle())
        return True

    def dismiss_error(self) -> bool:
        """Leave the error view and return to composing."""
        if not isinstance(self._state, ShowingError):
            return False
        self._transition(Idle())
        return True

    def delete_screenshot(self, artifact_id: str) -> bool:
        """Remove a pending screenshot; only allowed while composing."""
        if not isinstance(self._state, Idle):
            self.logger.debug("Delete of %s ignored outside the compose view.", artifact_id)
            return False
        removed: bool = self.store.remove(artifact_id)
        if removed:
            self._notify()
        return removed

    async def _capture_unprotected(self) -> ScreenshotArtifact:
        """Wait for the settling delay and grab the screen with protection lifted."""
        async with self._protection_lifted():
            await self.sleep(self.settle_delay_seconds)
            return await asyncio.to_thread(self.capture_service.capture)

    @asynccontextmanager
    async def _protection_lifted(self) -> AsyncIterator[None]:
        """Lift window protection for the block and restore it on every exit path."""
        try:
            self.window_guard.unprotect()
        except WindowError as error:
            self.logger.warning("Could not lift window protection: %s", error)
        try:
            yield
        finally:
            try:
                self.window_guard.protect()
            except WindowError as error:
                self.logger.warning("Could not restore window protection: %s", error)

    def _fail_analysis(self, artifacts: tuple[ScreenshotArtifact, ...], message: str) -> None:
        if self.restore_on_failure:
            self.store.restore(artifacts)
            self.logger.info("Restored %d screenshot(s) after failed analysis.", len(artifacts))
        self._transition(ShowingError(message))

    def _transition(self, state: WorkflowState) -> None:
        self.logger.debug(
            "Workflow %s -> %s", type(self._state).__name__, type(state).__name__
        )
        self._state = state
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                self.logger.exception("State listener failed.")
