"""Error taxonomy for collaborator failures."""

from __future__ import annotations


class SnapsolveError(Exception):
    """Base class for snapsolve failures."""


class WindowError(SnapsolveError):
    """Toggling window protection or visibility failed."""


class CaptureError(SnapsolveError):
    """The native screen capture failed."""


class AnalysisError(SnapsolveError):
    """The analysis backend failed or returned unparsable data."""


class ClipboardError(SnapsolveError):
    """Writing to the system clipboard failed."""


class HotkeyError(SnapsolveError):
    """The global key listener could not be started."""
