"""Window capture-protection and visibility control."""

from __future__ import annotations

import ctypes
import logging
import platform
from collections.abc import Callable
from dataclasses import dataclass, field

from snapsolve.errors import WindowError
from snapsolve.interfaces import WindowAttributes

LOGGER = logging.getLogger(__name__)

WDA_NONE = 0x00000000
WDA_EXCLUDEFROMCAPTURE = 0x00000011
GWL_EXSTYLE = -20
WS_EX_TOOLWINDOW = 0x00000080
WS_EX_APPWINDOW = 0x00040000
SW_HIDE = 0
SW_SHOW = 5


@dataclass(slots=True)
class Win32WindowAttributes:
    """Applies window attributes to a Win32 window (the console by default)."""

    hwnd: int | None = None

    def set_content_protected(self, protected: bool) -> None:
        """Toggle display affinity so capture APIs skip the window."""
        hwnd: int = self._resolve_hwnd()
        affinity: int = WDA_EXCLUDEFROMCAPTURE if protected else WDA_NONE
        if not ctypes.windll.user32.SetWindowDisplayAffinity(hwnd, affinity):
            raise WindowError(f"SetWindowDisplayAffinity failed: {ctypes.WinError()}")

    def set_skip_taskbar(self, skip: bool) -> None:
        """Swap the app-window style for a tool-window style and re-show."""
        user32 = ctypes.windll.user32
        hwnd: int = self._resolve_hwnd()
        style: int = user32.GetWindowLongW(hwnd, GWL_EXSTYLE)
        if skip:
            style = (style | WS_EX_TOOLWINDOW) & ~WS_EX_APPWINDOW
        else:
            style = (style | WS_EX_APPWINDOW) & ~WS_EX_TOOLWINDOW

        ctypes.windll.kernel32.SetLastError(0)
        previous: int = user32.SetWindowLongW(hwnd, GWL_EXSTYLE, style)
        if previous == 0 and ctypes.windll.kernel32.GetLastError() != 0:
            raise WindowError(f"SetWindowLongW failed: {ctypes.WinError()}")

        # The taskbar only notices style changes when the window is re-shown.
        user32.ShowWindow(hwnd, SW_HIDE)
        user32.ShowWindow(hwnd, SW_SHOW)

    def _resolve_hwnd(self) -> int:
        """Return the target window handle, defaulting to the console window."""
        if self.hwnd:
            return self.hwnd
        hwnd: int = ctypes.windll.kernel32.GetConsoleWindow()
        if hwnd == 0:
            raise WindowError("No console window is attached to this process.")
        return hwnd


@dataclass(slots=True)
class HeadlessWindowAttributes:
    """Records requested attributes where the platform offers no primitive."""

    content_protected: bool = False
    skip_taskbar: bool = False
    logger: logging.Logger = LOGGER
    _warned: bool = field(default=False, init=False, repr=False)

    def set_content_protected(self, protected: bool) -> None:
        """Record the requested capture-protection flag."""
        self._warn_once()
        self.content_protected = protected

    def set_skip_taskbar(self, skip: bool) -> None:
        """Record the requested taskbar visibility."""
        self._warn_once()
        self.skip_taskbar = skip

    def _warn_once(self) -> None:
        if not self._warned:
            self.logger.warning(
                "Window protection is not supported on %s; attributes are recorded only.",
                platform.system() or "this platform",
            )
            self._warned = True


def default_window_attributes() -> WindowAttributes:
    """Pick the window-attribute primitives for the current platform."""
    if platform.system() == "Windows":
        return Win32WindowAttributes()
    return HeadlessWindowAttributes()


@dataclass(slots=True)
class WindowGuard:
    """Owns the window's capture-protection flag.

    ``protect`` enables capture protection and, the first time it succeeds,
    hides the window from the taskbar. ``unprotect`` clears capture
    protection only; taskbar visibility is never reverted. Both calls are
    idempotent. When a platform call fails, ``WindowError`` is raised and the
    window is treated as unprotected until the next successful ``protect``.
    """

    attributes: WindowAttributes
    logger: logging.Logger = LOGGER
    _protected: bool = field(default=False, init=False)
    _taskbar_hidden: bool = field(default=False, init=False)

    @property
    def protected(self) -> bool:
        """Return True while capture protection is known to be applied."""
        return self._protected

    def protect(self) -> None:
        """Enable capture protection and hide the window from the taskbar once."""
        if not self._protected:
            self._apply("content protection", self.attributes.set_content_protected, True)
            self._protected = True
            self.logger.debug("Window capture protection enabled.")
        if not self._taskbar_hidden:
            self._apply("skip taskbar", self.attributes.set_skip_taskbar, True)
            self._taskbar_hidden = True

    def unprotect(self) -> None:
        """Lift capture protection; a no-op when it is not applied."""
        if not self._protected:
            return
        # Until the platform confirms the change the window may be in either state.
        self._protected = False
        self._apply("content protection", self.attributes.set_content_protected, False)
        self.logger.debug("Window capture protection disabled.")

    def _apply(self, label: str, setter: Callable[[bool], None], value: bool) -> None:
        """Call a platform setter, wrapping unexpected failures in ``WindowError``."""
        try:
            setter(value)
        except WindowError:
            raise
        except Exception as error:
            raise WindowError(f"Setting {label} to {value} failed: {error}") from error
