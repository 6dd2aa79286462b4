"""Console main view for the capture and analysis workflow."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass

from snapsolve.controller import WorkflowController
from snapsolve.interfaces import KeySource
from snapsolve.rendering import render_result, render_screenshots
from snapsolve.shortcuts import ShortcutDispatcher
from snapsolve.types import (
    Analyzing,
    Capturing,
    Idle,
    ShowingError,
    ShowingResult,
    WorkflowState,
)

HELP_TEXT = (
    "Commands: /capture, /analyze, /list, /delete <id|number>, /new, /copy, "
    "/dismiss, /help, /quit.\n"
    "Any other text becomes the description sent with the next analysis."
)


@dataclass(slots=True)
class ConsoleView:
    """Line-oriented main view; owns the global shortcut registration."""

    controller: WorkflowController
    dispatcher: ShortcutDispatcher
    key_source: KeySource | None = None
    read_line: Callable[[str], str] = input
    write: Callable[[str], None] = print
    prompt: str = "snapsolve> "
    logger: logging.Logger = logging.getLogger(__name__)

    async def run(self) -> None:
        """Read commands until /quit or end of input."""
        unsubscribe = self.controller.subscribe(self.render)
        try:
            with self._shortcuts():
                self.write(HELP_TEXT)
                while True:
                    line: str | None = await self._read()
                    if line is None or not await self.handle_line(line):
                        self.write("Session ended.")
                        return
        finally:
            unsubscribe()

    async def handle_line(self, line: str) -> bool:
        """Apply one line of input; return False when the view should close."""
        text: str = line.strip()
        if not text:
            return True
        command, _, argument = text.partition(" ")
        command = command.lower()
        if command in {"/quit", "/exit"}:
            return False

        # Any action leaves the error view before it runs.
        if isinstance(self.controller.state, ShowingError) and command != "/help":
            self.controller.dismiss_error()

        if command == "/capture":
            if not await self.controller.request_capture():
                self.write("Busy; capture ignored.")
        elif command == "/analyze":
            if not await self.controller.request_analysis():
                self.write("Nothing to analyze yet. Capture a screenshot first.")
        elif command == "/list":
            self.write(render_screenshots(self.controller.screenshots))
        elif command == "/delete":
            self._delete(argument.strip())
        elif command == "/new":
            if not self.controller.new_analysis():
                self.write("No result is shown.")
        elif command == "/copy":
            if not self.dispatcher.copy_result():
                self.write("No solution to copy.")
        elif command == "/dismiss":
            pass
        elif command == "/help":
            self.write(HELP_TEXT)
        elif command.startswith("/"):
            self.write(f"Unknown command {command}. Type /help for the list.")
        else:
            self.controller.set_description(text)
            self.write("Description updated.")
        return True

    async def _read(self) -> str | None:
        """Read one line on a daemon thread; None at end of input.

        The reader thread is never joined, so cancelling the view or
        interrupting the loop does not wait for pending input.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[str | None] = loop.create_future()

        def resolve(line: str | None, error: BaseException | None) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(line)

        def worker() -> None:
            line: str | None = None
            error: BaseException | None = None
            try:
                line = self.read_line(self.prompt)
            except EOFError:
                pass
            except Exception as exc:
                error = exc
            try:
                loop.call_soon_threadsafe(resolve, line, error)
            except RuntimeError:
                # The loop closed while input was pending.
                pass

        threading.Thread(target=worker, name="snapsolve-input", daemon=True).start()
        return await future

    def render(self, state: WorkflowState) -> None:
        """Write a status line for a state change."""
        if isinstance(state, Capturing):
            self.write("Capturing...")
        elif isinstance(state, Analyzing):
            self.write("Analyzing...")
        elif isinstance(state, ShowingResult):
            self.write(render_result(state.result))
            self.write("Use /copy to copy the solution or /new to start over.")
        elif isinstance(state, ShowingError):
            self.write(f"Error: {state.message}")
        elif isinstance(state, Idle):
            count: int = len(self.controller.screenshots)
            self.write(f"Ready. {count} screenshot(s) pending.")

    def _delete(self, target: str) -> None:
        screenshots = self.controller.screenshots
        if target.isdigit() and 1 <= int(target) <= len(screenshots):
            target = screenshots[int(target) - 1].id
        if not target or not self.controller.delete_screenshot(target):
            self.write("No such screenshot to delete.")

    def _shortcuts(self) -> AbstractContextManager[None]:
        if self.key_source is None:
            return nullcontext()
        return self.dispatcher.attach(self.key_source)
