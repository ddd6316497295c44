"""Command line entry point for QuizCapture."""

import sys
import argparse
import logging
from pathlib import Path
from typing import Any, List

from rich.console import Console
from rich.panel import Panel

from . import __version__
from .config import QuizCaptureConfig, SessionSettings
from .services.generation import GenerationContext, HttpQuestionGenerator
from .services.persistence import HttpTranscriptStore, MemoryTranscriptStore
from .services.source import ScriptedSource
from .services.workers import InlineCallRunner
from .session.clock import ManualScheduler
from .session.controller import RecordingSessionController
from .session.publisher import SessionPublisher
from .session.timer import custom_duration, duration_from_preset
from .ui.status_screen import SessionStatusScreen

logger = logging.getLogger(__name__)


def setup_logging(config: QuizCaptureConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/quizcapture.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("QuizCapture starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


class DryRunQuestionGenerator:
    """Stands in for the backend when replaying offline; generates nothing."""

    async def generate(self, text: str, context: GenerationContext) -> List[Any]:
        logger.info(f"[dry-run] would generate questions for {len(text)} chars "
                    f"(segment={context.segment_index}, session={context.session_id})")
        return []


def parse_timer(value: str) -> int:
    """Timer duration in ms from a preset value ('5min') or a number of minutes."""
    if value.isdigit():
        return custom_duration(0, int(value))
    return duration_from_preset(value)


def run_replay(config: QuizCaptureConfig, args: argparse.Namespace, console: Console) -> int:
    settings = SessionSettings.from_config(config)
    scheduler = ManualScheduler()
    source = ScriptedSource.from_file(args.script, scheduler)

    if args.dry_run:
        generator = DryRunQuestionGenerator()
        store = MemoryTranscriptStore()
    else:
        base_url = config.get('backend.base_url')
        timeout = config.get('backend.timeout_seconds', 60)
        auth_token = config.get('backend.auth_token')
        generator = HttpQuestionGenerator(
            base_url,
            ai_provider=config.get('backend.ai_provider', 'gemini'),
            question_count=config.get('backend.question_count', 5),
            timeout_seconds=timeout,
            auth_token=auth_token,
        )
        store = HttpTranscriptStore(base_url, timeout_seconds=timeout, auth_token=auth_token)

    publisher = SessionPublisher()
    controller = RecordingSessionController(
        source, generator, store=store, settings=settings, scheduler=scheduler,
        runner=InlineCallRunner(), publisher=publisher)
    source.attach(controller)
    screen = SessionStatusScreen(publisher, console)

    timer_ms = 0
    if args.timer:
        timer_ms = parse_timer(args.timer)
        session_id = controller.start_timer(timer_ms)
        console.print(f"⏱️  Timer session {session_id} started ({timer_ms // 1000}s)", style="blue")
    else:
        controller.start()

    # Enough simulated time for the last segment to close and the timer grace to pass.
    total_ms = max(source.duration_ms + settings.threshold_ms, timer_ms)
    total_ms += settings.grace_ms + settings.segmentation_tick_ms + settings.timer_tick_ms
    logger.info(f"Replaying {args.script} over {total_ms}ms of simulated time")
    scheduler.advance(total_ms)

    screen.render(controller.snapshot())
    if args.export:
        console.print(Panel(controller.export_transcripts() or "(no final transcript lines)",
                            title="Transcript"))
    screen.close()
    controller.shutdown()
    return 0


def main() -> None:
    """Main entry point for QuizCapture."""
    parser = argparse.ArgumentParser(
        description="QuizCapture - timed transcript segmentation for quiz generation"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in defaults)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"QuizCapture v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")
    replay = subparsers.add_parser("replay", help="Replay a scripted transcript through a session")
    replay.add_argument("script", type=str, help="Path to a YAML transcript script")
    replay.add_argument(
        "--timer",
        type=str,
        help="Run a timer session: minutes (e.g. 3) or a preset (1min, 5min, 10min, 30min, 60min)"
    )
    replay.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep transcripts in memory and skip question generation calls"
    )
    replay.add_argument(
        "--export",
        action="store_true",
        help="Print the exported transcript after the replay"
    )

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(2)

    console = Console()
    try:
        config = QuizCaptureConfig(args.config)
        setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))
        sys.exit(run_replay(config, args, console))
    except KeyboardInterrupt:
        console.print("\n👋 Goodbye!")
    except Exception as e:
        console.print(f"❌ Error: {e}", style="bold red")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
