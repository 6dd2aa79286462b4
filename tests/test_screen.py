"""Tests for capture artifact assembly."""

import base64
import sys
from pathlib import Path
from types import SimpleNamespace

import mss
import mss.tools
import pytest
from mss.exception import ScreenShotError

from conftest import PNG_BASE64, FakeGrabber
from snapsolve.errors import CaptureError
from snapsolve.screen import CaptureService, MSSScreenGrabber


def test_capture_builds_artifact_from_grab() -> None:
    service = CaptureService(
        grabber=FakeGrabber(), captures_dir=Path("shots"), id_factory=lambda: "abc123"
    )

    artifact = service.capture()

    assert artifact.id == "abc123"
    assert artifact.storage_path == str(Path("shots") / "abc123.png")
    assert artifact.image_data == PNG_BASE64
    assert artifact.data_url == f"data:image/png;base64,{PNG_BASE64}"


def test_capture_generates_unique_ids() -> None:
    service = CaptureService(grabber=FakeGrabber())

    ids = {service.capture().id for _ in range(20)}

    assert len(ids) == 20


def test_capture_error_propagates() -> None:
    grabber = FakeGrabber()
    grabber.failures = [True]

    with pytest.raises(CaptureError):
        CaptureService(grabber=grabber).capture()


def test_unexpected_grab_errors_become_capture_errors() -> None:
    class BrokenGrabber:
        def grab(self) -> str:
            raise OSError("XGetImage failed")

    with pytest.raises(CaptureError, match="XGetImage"):
        CaptureService(grabber=BrokenGrabber()).capture()


def test_empty_grab_is_a_capture_error() -> None:
    class EmptyGrabber:
        def grab(self) -> str:
            return ""

    with pytest.raises(CaptureError):
        CaptureService(grabber=EmptyGrabber()).capture()


ALL_MONITORS = {"left": 0, "top": 0, "width": 3840, "height": 1080}
PRIMARY = {"left": 0, "top": 0, "width": 1920, "height": 1080}
SECONDARY = {"left": 1920, "top": 0, "width": 1920, "height": 1080}


class FakeSession:
    def __init__(self, monitors, error=None) -> None:
        self.monitors = monitors
        self.error = error
        self.grabbed: list[dict] = []

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info) -> bool:
        return False

    def grab(self, monitor):
        if self.error is not None:
            raise self.error
        self.grabbed.append(monitor)
        return SimpleNamespace(size=(1, 1), rgb=b"\x00\x00\x00")


@pytest.fixture
def install_session(monkeypatch):
    def install(monitors, error=None) -> FakeSession:
        session = FakeSession(monitors, error)
        monkeypatch.setattr(mss, "mss", lambda: session)
        return session

    return install


def test_grab_encodes_selected_monitor_as_png(install_session) -> None:
    session = install_session([ALL_MONITORS, PRIMARY, SECONDARY])

    encoded = MSSScreenGrabber(monitor_index=2).grab()

    assert session.grabbed == [SECONDARY]
    assert base64.b64decode(encoded).startswith(b"\x89PNG")


@pytest.mark.parametrize(
    ("monitors", "index", "expected"),
    [
        ([ALL_MONITORS, PRIMARY, SECONDARY], 5, PRIMARY),
        ([ALL_MONITORS, PRIMARY], -1, PRIMARY),
        ([ALL_MONITORS], 1, ALL_MONITORS),
    ],
)
def test_grab_falls_back_when_monitor_is_missing(install_session, monitors, index, expected) -> None:
    session = install_session(monitors)

    MSSScreenGrabber(monitor_index=index).grab()

    assert session.grabbed == [expected]


def test_grab_without_monitors_reports_no_display(install_session) -> None:
    install_session([])

    with pytest.raises(CaptureError, match="No display found."):
        MSSScreenGrabber().grab()


def test_grab_wraps_mss_failures(install_session) -> None:
    install_session([ALL_MONITORS, PRIMARY], error=ScreenShotError("XGetImage failed"))

    with pytest.raises(CaptureError, match="Screen capture failed: XGetImage failed"):
        MSSScreenGrabber().grab()


def test_grab_rejects_empty_png(install_session, monkeypatch) -> None:
    install_session([ALL_MONITORS, PRIMARY])
    monkeypatch.setattr(mss.tools, "to_png", lambda *args, **kwargs: None)

    with pytest.raises(CaptureError, match="PNG encoding produced no data."):
        MSSScreenGrabber().grab()


def test_grab_without_mss_is_a_capture_error(monkeypatch) -> None:
    monkeypatch.setitem(sys.modules, "mss", None)

    with pytest.raises(CaptureError, match="mss is required"):
        MSSScreenGrabber().grab()
