"""System clipboard integration."""

from __future__ import annotations

from dataclasses import dataclass

import pyperclip

from snapsolve.errors import ClipboardError


@dataclass(slots=True)
class PyperclipClipboard:
    """Writes text to the system clipboard with pyperclip."""

    def copy(self, text: str) -> None:
        """Place text on the system clipboard or raise ClipboardError."""
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as error:
            raise ClipboardError(f"Clipboard write failed: {error}") from error
