"""Shared fakes and fixtures for snapsolve tests."""

from __future__ import annotations

import threading
from collections.abc import Callable

import pytest

from snapsolve.controller import WorkflowController
from snapsolve.errors import CaptureError, ClipboardError, WindowError
from snapsolve.screen import CaptureService
from snapsolve.store import ScreenshotStore
from snapsolve.types import AnalysisRequest, AnalysisResult, ScreenshotArtifact
from snapsolve.window import WindowGuard

PNG_BASE64 = "iVBORw0KGgo="

SOLVED = AnalysisResult(
    explanation="Reverse the list in place.",
    solution="```python\nprint(1)\n```",
    explanation_detailed="Use slicing.",
)


class FakeWindowAttributes:
    def __init__(self) -> None:
        self.calls: list[tuple[str, bool]] = []
        self.content_protected: bool = False
        self.skip_taskbar: bool = False
        self.fail_protect: int = 0
        self.fail_unprotect: int = 0

    def set_content_protected(self, protected: bool) -> None:
        self.calls.append(("content_protected", protected))
        if protected and self.fail_protect:
            self.fail_protect -= 1
            raise WindowError("protect refused")
        if not protected and self.fail_unprotect:
            self.fail_unprotect -= 1
            raise WindowError("unprotect refused")
        self.content_protected = protected

    def set_skip_taskbar(self, skip: bool) -> None:
        self.calls.append(("skip_taskbar", skip))
        self.skip_taskbar = skip


class FakeGrabber:
    """Records whether the window was protected at the moment of each grab."""

    def __init__(self, protection_check: Callable[[], bool] | None = None) -> None:
        self.calls: int = 0
        self.protected_during_grab: list[bool] = []
        self.failures: list[bool] = []
        self.protection_check = protection_check

    def grab(self) -> str:
        self.calls += 1
        if self.protection_check is not None:
            self.protected_during_grab.append(self.protection_check())
        if self.failures and self.failures.pop(0):
            raise CaptureError("display unavailable")
        return PNG_BASE64


class FakeAnalysisClient:
    def __init__(self, result: AnalysisResult = SOLVED) -> None:
        self.result = result
        self.error: Exception | None = None
        self.requests: list[AnalysisRequest] = []
        self.release = threading.Event()
        self.release.set()

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        self.requests.append(request)
        self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.result


class FakeClipboard:
    def __init__(self, fail: bool = False) -> None:
        self.copied: list[str] = []
        self.fail = fail

    def copy(self, text: str) -> None:
        if self.fail:
            raise ClipboardError("no clipboard")
        self.copied.append(text)


async def no_sleep(_: float) -> None:
    return None


def make_artifact(artifact_id: str) -> ScreenshotArtifact:
    return ScreenshotArtifact(
        id=artifact_id, storage_path=f"captures/{artifact_id}.png", image_data=PNG_BASE64
    )


@pytest.fixture
def window_attributes() -> FakeWindowAttributes:
    return FakeWindowAttributes()


@pytest.fixture
def guard(window_attributes: FakeWindowAttributes) -> WindowGuard:
    return WindowGuard(attributes=window_attributes)


@pytest.fixture
def grabber(guard: WindowGuard) -> FakeGrabber:
    return FakeGrabber(protection_check=lambda: guard.protected)


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture
def make_controller(
    guard: WindowGuard, grabber: FakeGrabber, analysis_client: FakeAnalysisClient
) -> Callable[..., WorkflowController]:
    counter = iter(range(1, 1000))

    def factory(**overrides) -> WorkflowController:
        options = {
            "window_guard": guard,
            "capture_service": CaptureService(
                grabber=grabber, id_factory=lambda: f"shot-{next(counter)}"
            ),
            "analysis_client": analysis_client,
            "store": ScreenshotStore(),
            "settle_delay_seconds": 0.0,
            "sleep": no_sleep,
        }
        options.update(overrides)
        controller = WorkflowController(**options)
        controller.activate()
        return controller

    return factory


@pytest.fixture
def controller(make_controller: Callable[..., WorkflowController]) -> WorkflowController:
    return make_controller()
