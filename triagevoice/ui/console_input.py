"""Line-based console input for the terminal UI."""

import asyncio
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

QUIT_COMMAND = "/quit"
RESET_COMMAND = "/reset"
SAVED_COMMAND = "/saved"


class ConsoleInput:
    """Read console lines on a background thread and hand them to the event loop.

    Commands understood by the application:
        (empty line)  retry microphone access
        /reset        start a new case session
        /saved        list the conversations saved so far
        /quit         exit
        anything else is sent as a typed doctor message
    """

    def __init__(self, callback: Callable[[str], None],
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 read_line: Callable[[str], str] = input):
        """Initialize console input.

        Args:
            callback: Receives each stripped line on the event loop thread
            loop: Event loop the lines are delivered to
            read_line: Blocking line reader, ``input`` by default
        """
        self.callback = callback
        self.loop = loop
        self.read_line = read_line
        self.running = False
        self.thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Start the input reader thread."""
        if self.running:
            return

        if self.loop is None:
            self.loop = asyncio.get_event_loop()
        self.running = True
        self.thread = threading.Thread(target=self._input_loop, daemon=True)
        self.thread.start()
        logger.info("Console input started")

    def stop(self) -> None:
        """Stop the reader. A blocked ``input`` call only returns on the next line."""
        self.running = False
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=0.5)
        logger.info("Console input stopped")

    def _input_loop(self) -> None:
        while self.running:
            try:
                line = self.read_line("").strip()
            except (EOFError, KeyboardInterrupt):
                line = QUIT_COMMAND

            self.loop.call_soon_threadsafe(self.callback, line)
            if line == QUIT_COMMAND:
                break
        self.running = False
        logger.info("Console input loop ended")
