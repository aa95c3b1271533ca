"""Main application entry point for TriageVoice."""

import sys
import asyncio
import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from triagevoice import __version__
from triagevoice.audio.capture import AudioCaptureSession
from triagevoice.audio.playback import AudioPlayer
from triagevoice.dialogue import ConversationStore, LemonfoxClient, MessagePublisher, TurnArbiter
from triagevoice.recorder import RecorderSettings, RecorderStatePublisher, RecordingController
from triagevoice.ui import ConsoleInput, QUIT_COMMAND, RESET_COMMAND, SAVED_COMMAND, StatusDisplay

from .config import VoiceTriageConfig

logger = logging.getLogger(__name__)


class VoiceTriageApp:
    """Wires microphone, recorder, dialogue and terminal UI on one event loop."""

    def __init__(self, config: VoiceTriageConfig):
        self.config = config
        self.quit_event: Optional[asyncio.Event] = None
        self.session: Optional[AudioCaptureSession] = None
        self.controller: Optional[RecordingController] = None
        self.arbiter: Optional[TurnArbiter] = None
        self.display: Optional[StatusDisplay] = None
        self.console_input: Optional[ConsoleInput] = None

    def init(self, loop: asyncio.AbstractEventLoop) -> None:
        logger.info("Initializing services...")

        sample_rate = self.config.get('audio.sample_rate', 16000)
        chunk_size = self.config.get('audio.chunk_size', 1024)
        channels = self.config.get('audio.channels', 1)
        logger.info(f"Audio settings: {sample_rate}Hz, {chunk_size} samples/chunk, {channels} channels")

        self.quit_event = asyncio.Event()
        self.display = StatusDisplay()

        self.session = AudioCaptureSession(
            sample_rate=sample_rate,
            chunk_size=chunk_size,
            channels=channels,
            input_device_index=self.config.get('audio.input_device_index'),
        )
        self.arbiter = TurnArbiter(
            client=LemonfoxClient.from_config(self.config),
            store=ConversationStore(),
            player=AudioPlayer(output_device_index=self.config.get('audio.output_device_index'),
                               chunk_size=chunk_size),
            language=self.config.get('conversation.language', 'es'),
            voice=self.config.get('conversation.voice', 'dora'),
            history_limit=self.config.get('conversation.history_limit', 10),
            auto_play=self.config.get('conversation.auto_play', True),
            case_description=self.config.get('conversation.case_description'),
            case_category=self.config.get('conversation.case_category'),
            loop=loop,
            on_message=MessagePublisher("conversation.message").get_callback(),
        )
        self.controller = RecordingController(
            on_utterance=self.arbiter.on_utterance,
            session=self.session,
            settings=RecorderSettings.from_config(self.config),
            loop=loop,
            on_status=RecorderStatePublisher("recorder.state").publish_status,
        )
        self.arbiter.attach(self.controller)
        self.console_input = ConsoleInput(self.handle_line, loop=loop)

    def handle_line(self, line: str) -> None:
        """Dispatch one console line."""
        if line == QUIT_COMMAND:
            logger.info("Quit requested")
            self.quit_event.set()
        elif line == RESET_COMMAND:
            self.arbiter.reset()
        elif line == SAVED_COMMAND:
            self.show_saved()
        elif not line:
            if self.controller.has_permission is not True:
                self.controller.retry_permission()
        else:
            self.arbiter.submit_text(line)

    def show_saved(self) -> None:
        """Print a one-line summary of each saved conversation."""
        conversations = self.arbiter.store.list_conversations()
        if not conversations:
            self.display.console.print("No hay conversaciones guardadas")
            return
        for conversation in conversations:
            doctor_turns = sum(1 for m in conversation.messages if m.role == "user")
            created = datetime.fromtimestamp(conversation.created_at / 1000.0).strftime("%H:%M")
            self.display.console.print(
                f"[{created}] {conversation.case_name} ({conversation.category}): {doctor_turns} preguntas"
            )

    async def run(self, duration: Optional[int] = None) -> None:
        loop = asyncio.get_running_loop()
        self.init(loop)
        try:
            problem = await self.arbiter.client.check_health()
            if problem:
                logger.warning(f"LemonFox API not reachable: {problem}")

            self.display.start()
            self.display.add_messages(self.arbiter.session.messages)
            self.console_input.start()
            self.controller.activate()

            if duration:
                try:
                    await asyncio.wait_for(self.quit_event.wait(), timeout=duration)
                except asyncio.TimeoutError:
                    logger.info(f"Run duration of {duration}s elapsed")
            else:
                await self.quit_event.wait()
        finally:
            await self.cleanup()

    async def cleanup(self) -> None:
        if self.console_input:
            self.console_input.stop()
        if self.controller:
            self.controller.shutdown()
        if self.arbiter:
            if self.arbiter.player is not None:
                self.arbiter.player.stop()
            await self.arbiter.drain()
            saved = self.arbiter.save_session()
            if saved:
                logger.info(f"Saved conversation {saved.id} on exit")
        if self.display:
            self.display.stop()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/triagevoice.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
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
    logger.info("TriageVoice application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for TriageVoice application."""
    parser = argparse.ArgumentParser(
        description="TriageVoice - Voice triage practice with a simulated patient",
        epilog="Commands: Enter=retry microphone, /reset=new case, /quit=quit, other text=typed message"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--voice",
        type=str,
        help="Patient voice (dora, alex, noel)"
    )

    parser.add_argument(
        "--case",
        type=str,
        help="Clinical case description the patient acts out"
    )

    parser.add_argument(
        "--category",
        type=str,
        help="Clinical case category (e.g. trauma_shock, gynecology)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="Exit automatically after this many seconds"
    )

    parser.add_argument(
        "--no-autoplay",
        action="store_true",
        help="Do not speak the patient replies"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"TriageVoice v{__version__}"
    )

    args = parser.parse_args()

    try:
        config = VoiceTriageConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Configuration error: {e}")
        sys.exit(1)

    if args.voice:
        config.set('conversation.voice', args.voice)
    if args.case:
        config.set('conversation.case_description', args.case)
    if args.category:
        config.set('conversation.case_category', args.category)
    if args.no_autoplay:
        config.set('conversation.auto_play', False)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    app = VoiceTriageApp(config)
    try:
        asyncio.run(app.run(args.duration))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
