"""Screen-capture implementations."""

from __future__ import annotations

import base64
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from snapsolve.errors import CaptureError
from snapsolve.interfaces import ScreenGrabber
from snapsolve.types import ScreenshotArtifact

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class MSSScreenGrabber:
    """Captures a selected monitor using mss and returns base64 PNG text."""

    monitor_index: int = 1
    logger: logging.Logger = LOGGER

    def grab(self) -> str:
        """Capture current screen contents as base64-encoded PNG."""
        try:
            import mss
            import mss.tools
            from mss.exception import ScreenShotError
        except ImportError as error:
            raise CaptureError("mss is required for screenshot capture.") from error

        try:
            with mss.mss() as session:
                if not session.monitors:
                    raise CaptureError("No display found.")
                fallback_index: int = 1 if len(session.monitors) > 1 else 0
                if self.monitor_index < 0 or self.monitor_index >= len(session.monitors):
                    monitor = session.monitors[fallback_index]
                else:
                    monitor = session.monitors[self.monitor_index]

                screenshot = session.grab(monitor)
                width, height = screenshot.size
                self.logger.debug("Captured image: %sx%s", width, height)
                png_bytes: bytes | None = mss.tools.to_png(screenshot.rgb, screenshot.size)
        except CaptureError:
            raise
        except ScreenShotError as error:
            raise CaptureError(f"Screen capture failed: {error}") from error

        if not png_bytes:
            raise CaptureError("PNG encoding produced no data.")
        encoded: str = base64.b64encode(png_bytes).decode("ascii")
        self.logger.debug("Encoded capture as base64 (%d chars).", len(encoded))
        return encoded


def _new_artifact_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class CaptureService:
    """Turns one native grab into a screenshot artifact.

    Window state is not touched here; the caller is responsible for lifting
    capture protection around the call.
    """

    grabber: ScreenGrabber
    captures_dir: Path = Path("./captures")
    id_factory: Callable[[], str] = field(default=_new_artifact_id)

    def capture(self) -> ScreenshotArtifact:
        """Grab the screen and assemble a new artifact, or raise CaptureError."""
        try:
            image_data: str = self.grabber.grab()
        except CaptureError:
            raise
        except Exception as error:
            raise CaptureError(f"Screen capture failed: {error}") from error

        if not image_data:
            raise CaptureError("Screen capture returned no image data.")

        artifact_id: str = self.id_factory()
        return ScreenshotArtifact(
            id=artifact_id,
            storage_path=str(self.captures_dir / f"{artifact_id}.png"),
            image_data=image_data,
        )
