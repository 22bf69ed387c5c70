"""Main application entry point for prepcoach."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from prepcoach.errors import LiveSessionError
from prepcoach.live.gemini_backend import GeminiLiveBackend
from prepcoach.models.roles import JobRole
from prepcoach.models.session import SessionResult
from prepcoach.services.live_session import LiveAudioSession
from prepcoach.services.session_publisher import SessionPublisher
from prepcoach.ui.status_screen import SessionStatusScreen

from .config import PrepCoachConfig

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: str, log_level: Optional[str] = None):
        self.config = PrepCoachConfig(config_path)
        # Command line overrides config
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.session: Optional[LiveAudioSession] = None
        self.result: Optional[SessionResult] = None

    def init(self):
        logger.info("Initializing services...")

        topic = self.config.get('live.status_topic', 'live.session')
        logger.info(f"Audio settings: capture {self.config.get('audio.input_sample_rate', 16000)}Hz, "
                    f"playback {self.config.get('audio.output_sample_rate', 24000)}Hz, "
                    f"{self.config.get('audio.chunk_size', 4096)} samples/chunk")

        self.status_screen = SessionStatusScreen(topic)
        self.backend = GeminiLiveBackend(api_key=self.config.get_api_key())
        self.session = LiveAudioSession(
            self.config,
            self.backend,
            publisher=SessionPublisher(topic),
        )

    async def _run_session(self, role: JobRole, duration: Optional[int]) -> None:
        try:
            await self.session.start(role)
            if duration:
                try:
                    await asyncio.wait_for(self.session.wait_finished(), timeout=duration)
                except asyncio.TimeoutError:
                    logger.info(f"Interview time limit of {duration}s reached")
            else:
                await self.session.wait_finished()
        finally:
            self.result = self.session.stop()
            # Let the remote close request go out before the loop shuts down
            await asyncio.sleep(0.1)

    def run(self, role: JobRole, duration: Optional[int]) -> Optional[SessionResult]:
        try:
            asyncio.run(self._run_session(role, duration))
        finally:
            self.cleanup()
        return self.result

    def cleanup(self):
        if self.session is not None:
            self.session.stop()
        self.status_screen.shutdown()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/prepcoach.log')
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
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("prepcoach starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for prepcoach."""
    parser = argparse.ArgumentParser(
        description="prepcoach - live voice interview practice",
        epilog="Press Ctrl+C to end the interview"
    )

    parser.add_argument(
        "--config",
        type=str,
        default="prepcoach.yaml",
        help="Path to configuration YAML file (default: prepcoach.yaml)"
    )

    parser.add_argument(
        "--role",
        type=str,
        default=JobRole.SOFTWARE_ENGINEER.value,
        choices=[role.value for role in JobRole],
        help="Target job role for the interview (default: Software Engineer)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="End the interview after this many seconds (default: run until the interviewer closes)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="prepcoach v0.1.0"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init()
        result = server.run(JobRole.from_label(args.role), args.duration)
    except KeyboardInterrupt:
        print("\n👋 Interview ended. Goodbye!")
        return
    except (LiveSessionError, ValueError, FileNotFoundError) as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)

    if result is not None and result.error:
        sys.exit(1)


if __name__ == "__main__":
    main()
