"""Command-line interface for snapsolve."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace

from dotenv import load_dotenv

from snapsolve.analysis import build_analysis_client
from snapsolve.clipboard import PyperclipClipboard
from snapsolve.config import BACKENDS, AppConfig, OpenAIConfig
from snapsolve.controller import WorkflowController
from snapsolve.rendering import render_result
from snapsolve.screen import CaptureService, MSSScreenGrabber
from snapsolve.shortcuts import PynputKeySource, ShortcutBindings, ShortcutDispatcher
from snapsolve.store import ScreenshotStore
from snapsolve.types import ShowingError, ShowingResult
from snapsolve.view import ConsoleView
from snapsolve.window import WindowGuard, default_window_attributes


def build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Capture screen regions unseen and send them for analysis."
    )
    parser.add_argument("--once", action="store_true", help="Capture once, analyze, print and exit.")
    parser.add_argument("--note", type=str, default=None, help="Description sent with --once.")
    parser.add_argument("--backend", choices=BACKENDS, default=None, help="Analysis backend.")
    parser.add_argument("--mock-url", type=str, default=None, help="Stand-in backend base URL.")
    parser.add_argument("--settle-delay", type=float, default=None, help="Seconds to wait before capture.")
    parser.add_argument("--monitor-index", type=int, default=None, help="mss monitor index (default from env).")
    parser.add_argument(
        "--restore-on-failure",
        action="store_true",
        help="Keep screenshots for another attempt when analysis fails.",
    )
    parser.add_argument("--no-hotkeys", action="store_true", help="Do not register global hotkeys.")
    return parser


def configure_logging(level: str) -> None:
    """Configure process logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def apply_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Layer CLI flags over environment configuration."""
    if args.backend is not None:
        openai_config = config.openai
        if args.backend == "openai" and openai_config is None:
            openai_config = OpenAIConfig.from_env()
        config = replace(config, backend=args.backend, openai=openai_config)
    if args.mock_url is not None:
        config = replace(config, mock_server_url=args.mock_url)
    if args.settle_delay is not None:
        config = replace(config, settle_delay_seconds=args.settle_delay)
    if args.monitor_index is not None:
        config = replace(config, monitor_index=args.monitor_index)
    if args.restore_on_failure:
        config = replace(config, restore_on_failure=True)
    if args.no_hotkeys:
        config = replace(config, hotkeys=replace(config.hotkeys, enabled=False))
    return config


def build_controller(config: AppConfig) -> WorkflowController:
    """Construct a fully wired workflow controller."""
    capture_service = CaptureService(
        grabber=MSSScreenGrabber(monitor_index=config.monitor_index),
        captures_dir=config.captures_dir,
    )
    return WorkflowController(
        window_guard=WindowGuard(attributes=default_window_attributes()),
        capture_service=capture_service,
        analysis_client=build_analysis_client(config),
        store=ScreenshotStore(),
        settle_delay_seconds=config.settle_delay_seconds,
        capture_timeout_seconds=config.capture_timeout_seconds,
        analysis_timeout_seconds=config.analysis_timeout_seconds,
        restore_on_failure=config.restore_on_failure,
        logger=logging.getLogger("snapsolve.controller"),
    )


async def run_once(controller: WorkflowController, note: str | None) -> int:
    """Capture one screenshot, analyze it and print the outcome."""
    controller.activate()
    await controller.request_capture()
    if isinstance(controller.state, ShowingError):
        print(f"Error: {controller.state.message}", file=sys.stderr)
        return 1

    controller.set_description(note or "")
    await controller.request_analysis()
    state = controller.state
    if isinstance(state, ShowingResult):
        print(render_result(state.result))
        return 0
    if isinstance(state, ShowingError):
        print(f"Error: {state.message}", file=sys.stderr)
    return 1


async def run_interactive(controller: WorkflowController, config: AppConfig) -> int:
    """Run the console view with global hotkeys bound for its lifetime."""
    dispatcher = ShortcutDispatcher(
        controller=controller,
        clipboard=PyperclipClipboard(),
        bindings=ShortcutBindings.from_config(config.hotkeys),
    )
    key_source = PynputKeySource(loop=asyncio.get_running_loop()) if config.hotkeys.enabled else None
    view = ConsoleView(controller=controller, dispatcher=dispatcher, key_source=key_source)
    controller.activate()
    await view.run()
    return 0


def run(args: argparse.Namespace) -> int:
    """Run the command and return exit code."""
    load_dotenv()
    try:
        config: AppConfig = apply_overrides(AppConfig.from_env(), args)
        # Validate hotkey text before anything touches the window.
        ShortcutBindings.from_config(config.hotkeys)
    except ValueError as error:
        print(f"Configuration error: {error}", file=sys.stderr)
        return 2
    configure_logging(config.log_level)

    controller = build_controller(config)
    try:
        if args.once:
            return asyncio.run(run_once(controller, args.note))
        return asyncio.run(run_interactive(controller, config))
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Stopped by user.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)
