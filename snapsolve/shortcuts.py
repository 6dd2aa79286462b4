"""Global keyboard shortcut binding and dispatch."""

from __future__ import annotations

import asyncio
import logging
import platform
from collections.abc import Callable, Coroutine, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from snapsolve.config import HotkeyConfig
from snapsolve.controller import WorkflowController
from snapsolve.errors import ClipboardError, HotkeyError
from snapsolve.interfaces import Clipboard, KeySource
from snapsolve.rendering import strip_code_fences

LOGGER = logging.getLogger(__name__)

MODIFIER_ALIASES: dict[str, str] = {
    "ctrl": "ctrl",
    "control": "ctrl",
    "shift": "shift",
    "alt": "alt",
    "option": "alt",
    "cmd": "cmd",
    "command": "cmd",
    "win": "cmd",
    "super": "cmd",
    "meta": "cmd",
}
KEY_ALIASES: dict[str, str] = {"return": "enter", "esc": "escape", "del": "delete"}
_MODIFIER_ORDER: tuple[str, ...] = ("ctrl", "alt", "shift", "cmd")


def normalize_key(name: str) -> str:
    """Lower-case a key name and resolve aliases such as ``return``."""
    lowered: str = name.strip().lower()
    return KEY_ALIASES.get(lowered, lowered)


def modifier_of(name: str) -> str | None:
    """Map a key name such as ``ctrl_l`` or ``alt_gr`` to its modifier, if any."""
    lowered: str = name.lower()
    return MODIFIER_ALIASES.get(lowered) or MODIFIER_ALIASES.get(lowered.split("_", 1)[0])


@dataclass(slots=True, frozen=True)
class KeyEvent:
    """A normalized key-down event with the modifiers held at the time."""

    key: str
    modifiers: frozenset[str] = frozenset()


@dataclass(slots=True, frozen=True)
class KeyCombo:
    """A modifier set plus one main key."""

    key: str
    modifiers: frozenset[str]

    @classmethod
    def parse(cls, text: str) -> "KeyCombo":
        """Parse ``ctrl+shift+s`` style text."""
        parts: list[str] = [part.strip().lower() for part in text.split("+") if part.strip()]
        modifiers: set[str] = set()
        keys: list[str] = []
        for part in parts:
            modifier: str | None = MODIFIER_ALIASES.get(part)
            if modifier is not None:
                modifiers.add(modifier)
            else:
                keys.append(normalize_key(part))
        if len(keys) != 1:
            raise ValueError(f"Key combination '{text}' must name exactly one non-modifier key.")
        return cls(key=keys[0], modifiers=frozenset(modifiers))

    def matches(self, event: KeyEvent) -> bool:
        """Return True when the event has this key and exactly these modifiers."""
        return event.key == self.key and event.modifiers == self.modifiers

    def __str__(self) -> str:
        ordered: list[str] = [name for name in _MODIFIER_ORDER if name in self.modifiers]
        return "+".join([*ordered, self.key])


@dataclass(slots=True, frozen=True)
class ShortcutBindings:
    capture: KeyCombo
    analyze: KeyCombo
    copy_result: KeyCombo

    @classmethod
    def from_config(cls, hotkeys: HotkeyConfig) -> "ShortcutBindings":
        """Parse the configured combination text for each action."""
        return cls(
            capture=KeyCombo.parse(hotkeys.capture),
            analyze=KeyCombo.parse(hotkeys.analyze),
            copy_result=KeyCombo.parse(hotkeys.copy_result),
        )


@dataclass(slots=True)
class ShortcutDispatcher:
    """Routes global key combinations to workflow actions.

    ``handle`` must run on the event loop thread. It returns True only when
    the copy-result combination copied a shown solution, signalling that the
    platform's default behaviour for that combination should be suppressed.
    """

    controller: WorkflowController
    clipboard: Clipboard
    bindings: ShortcutBindings
    logger: logging.Logger = LOGGER
    _tasks: set[asyncio.Task[bool]] = field(default_factory=set, init=False, repr=False)

    def handle(self, event: KeyEvent) -> bool:
        """Run the action bound to ``event``; return True when it should be suppressed."""
        if self.bindings.copy_result.matches(event):
            return self.copy_result()
        if self.bindings.capture.matches(event):
            if not self.controller.is_busy:
                self._schedule(self.controller.request_capture())
            return False
        if self.bindings.analyze.matches(event):
            if self.controller.can_analyze:
                self._schedule(self.controller.request_analysis())
            return False
        return False

    def should_suppress(self, event: KeyEvent) -> bool:
        """Return True when ``event`` is the copy combination and a solution is shown.

        Only reads controller state, so key sources may call it from their
        listener thread before the event reaches ``handle``.
        """
        return (
            self.bindings.copy_result.matches(event)
            and self.controller.current_solution() is not None
        )

    def copy_result(self) -> bool:
        """Copy the shown solution without fence markers; False when none is shown."""
        solution: str | None = self.controller.current_solution()
        if solution is None:
            return False
        try:
            self.clipboard.copy(strip_code_fences(solution))
        except ClipboardError as error:
            self.logger.warning("Could not copy solution: %s", error)
        else:
            self.logger.info("Solution copied to clipboard.")
        return True

    @contextmanager
    def attach(self, source: KeySource) -> Iterator[None]:
        """Deliver events from ``source`` for the duration of the block.

        When the source cannot start, the block still runs without shortcuts.
        """
        try:
            source.start(self.handle, self.should_suppress)
        except HotkeyError as error:
            self.logger.warning("Global hotkeys disabled: %s", error)
            started = False
        else:
            started = True
            self.logger.debug(
                "Shortcuts bound: capture=%s analyze=%s copy=%s",
                self.bindings.capture,
                self.bindings.analyze,
                self.bindings.copy_result,
            )
        try:
            yield
        finally:
            if started:
                source.stop()
                self.logger.debug("Shortcuts unbound.")

    async def drain(self) -> None:
        """Wait for actions already scheduled by shortcuts."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _schedule(self, action: Coroutine[Any, Any, bool]) -> None:
        task: asyncio.Task[bool] = asyncio.get_running_loop().create_task(action)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


WM_KEYDOWN = 0x0100
WM_SYSKEYDOWN = 0x0104
WIN32_VK_NAMES: dict[int, str] = {
    0x08: "backspace",
    0x09: "tab",
    0x0D: "enter",
    0x1B: "escape",
    0x20: "space",
    0x2E: "delete",
}
# Quartz virtual keycodes for the ANSI layout.
DARWIN_KEYCODES: dict[int, str] = {
    0x00: "a", 0x01: "s", 0x02: "d", 0x03: "f", 0x04: "h", 0x05: "g",
    0x06: "z", 0x07: "x", 0x08: "c", 0x09: "v", 0x0B: "b", 0x0C: "q",
    0x0D: "w", 0x0E: "e", 0x0F: "r", 0x10: "y", 0x11: "t", 0x12: "1",
    0x13: "2", 0x14: "3", 0x15: "4", 0x16: "6", 0x17: "5", 0x19: "9",
    0x1A: "7", 0x1C: "8", 0x1D: "0", 0x1F: "o", 0x20: "u", 0x22: "i",
    0x23: "p", 0x24: "enter", 0x25: "l", 0x26: "j", 0x28: "k", 0x2D: "n",
    0x2E: "m", 0x30: "tab", 0x31: "space", 0x33: "backspace", 0x35: "escape",
}


def pynput_key_name(key: Any) -> str | None:
    """Normalize a pynput ``Key`` or ``KeyCode`` to a key name."""
    name: str | None = getattr(key, "name", None)
    if name:
        return normalize_key(name)
    char: str | None = getattr(key, "char", None)
    if char and char.isprintable():
        return normalize_key(char)
    # Control characters arrive when ctrl is held on some platforms.
    vk: int | None = getattr(key, "vk", None)
    if vk is not None:
        return win32_key_name(vk)
    return None


def win32_key_name(vk: int) -> str | None:
    """Map a Win32 virtual-key code to a key name; None for unmapped keys."""
    if 0x30 <= vk <= 0x39 or 0x41 <= vk <= 0x5A:
        return chr(vk).lower()
    return WIN32_VK_NAMES.get(vk)


@dataclass(slots=True)
class PynputKeySource:
    """Process-wide key-down listener backed by pynput.

    pynput calls back on its own thread; events are handed to the event
    loop with ``call_soon_threadsafe``. On Windows and macOS a platform hook
    consults ``should_suppress`` and swallows matching key-downs so other
    applications never see them. Other platforms only observe keys.
    """

    loop: asyncio.AbstractEventLoop
    logger: logging.Logger = LOGGER
    _listener: Any = field(default=None, init=False, repr=False)
    _on_key: Callable[[KeyEvent], bool] | None = field(default=None, init=False, repr=False)
    _should_suppress: Callable[[KeyEvent], bool] | None = field(
        default=None, init=False, repr=False
    )
    _held: set[str] = field(default_factory=set, init=False, repr=False)

    def start(
        self,
        on_key: Callable[[KeyEvent], bool],
        should_suppress: Callable[[KeyEvent], bool] | None = None,
    ) -> None:
        """Start the pynput listener; raise HotkeyError when pynput is unavailable."""
        try:
            from pynput import keyboard
        except ImportError as error:
            raise HotkeyError(f"Global hotkeys are unavailable: {error}") from error

        if self._listener is not None:
            raise RuntimeError("Key listener is already running.")
        self._on_key = on_key
        self._should_suppress = should_suppress
        self._held.clear()

        options: dict[str, Any] = {}
        if should_suppress is not None:
            system: str = platform.system()
            if system == "Windows":
                options["win32_event_filter"] = self._win32_filter
            elif system == "Darwin":
                options["darwin_intercept"] = self._darwin_intercept
            else:
                self.logger.debug("Shortcut suppression is not supported on %s.", system)
        self._listener = keyboard.Listener(
            on_press=self._on_press, on_release=self._on_release, **options
        )
        self._listener.start()

    def stop(self) -> None:
        """Stop the listener and forget held modifiers; a no-op when stopped."""
        if self._listener is None:
            return
        self._listener.stop()
        self._listener = None
        self._on_key = None
        self._should_suppress = None
        self._held.clear()

    def _on_press(self, key: Any) -> None:
        name: str | None = pynput_key_name(key)
        if name is None:
            return
        if modifier_of(name) is not None:
            self._held.add(name)
            return
        on_key = self._on_key
        if on_key is None:
            return
        self.loop.call_soon_threadsafe(on_key, self._event_for(name))

    def _on_release(self, key: Any) -> None:
        name: str | None = pynput_key_name(key)
        if name is not None:
            self._held.discard(name)

    def _win32_filter(self, msg: int, data: Any) -> bool:
        """Swallow key-downs that ``should_suppress`` claims.

        Runs before ``_on_press``; pynput skips ``on_press`` for suppressed
        events, so the event is delivered here instead.
        """
        if msg not in (WM_KEYDOWN, WM_SYSKEYDOWN):
            return True
        name: str | None = win32_key_name(data.vkCode)
        listener, on_key, should_suppress = self._listener, self._on_key, self._should_suppress
        if name is None or listener is None or on_key is None or should_suppress is None:
            return True
        event: KeyEvent = self._event_for(name)
        if not should_suppress(event):
            return True
        self.loop.call_soon_threadsafe(on_key, event)
        listener.suppress_event()
        return False

    def _darwin_intercept(self, event_type: Any, event: Any) -> Any:
        """Return None for key-downs that ``should_suppress`` claims.

        pynput has already called ``_on_press`` for the event at this point.
        """
        import Quartz

        should_suppress = self._should_suppress
        if event_type != Quartz.kCGEventKeyDown or should_suppress is None:
            return event
        keycode: int = Quartz.CGEventGetIntegerValueField(event, Quartz.kCGKeyboardEventKeycode)
        name: str | None = DARWIN_KEYCODES.get(keycode)
        if name is not None and should_suppress(self._event_for(name)):
            return None
        return event

    def _event_for(self, name: str) -> KeyEvent:
        modifiers: frozenset[str] = frozenset(
            modifier for held in self._held if (modifier := modifier_of(held)) is not None
        )
        return KeyEvent(key=name, modifiers=modifiers)
