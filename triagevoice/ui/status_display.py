"""Live terminal view of the recorder and the conversation."""

import logging
from datetime import datetime
from typing import List, Optional

from pubsub import pub
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..models.conversation import Message
from ..models.recorder import RecorderPhase, RecorderStatus

logger = logging.getLogger(__name__)


PHASE_LABELS = {
    RecorderPhase.IDLE: ("Iniciando micrófono...", "dim white"),
    RecorderPhase.LISTENING_QUIET: ("Esperando que hables...", "yellow"),
    RecorderPhase.LISTENING_SPEAKING: ("Escuchando...", "bold green"),
    RecorderPhase.PROCESSING: ("Procesando...", "cyan"),
    RecorderPhase.PLAYING: ("Paciente hablando...", "bold blue"),
    RecorderPhase.NO_PERMISSION: ("Se necesita acceso al micrófono (Enter para reintentar)", "bold red"),
}

LEVEL_BAR_WIDTH = 30


def level_bar(level: float, width: int = LEVEL_BAR_WIDTH) -> str:
    """Bar for a 0-100 display level."""
    filled = int(round(max(0.0, min(level, 100.0)) / 100.0 * width))
    return "█" * filled + "░" * (width - filled)


def render_status(status: Optional[RecorderStatus], messages: List[Message],
                  max_messages: int = 6) -> Panel:
    """Render the recorder phase, the level meter and the latest messages."""
    phase = status.phase if status else RecorderPhase.IDLE
    label, style = PHASE_LABELS[phase]

    lines = [Text(label, style=style)]
    if phase in (RecorderPhase.LISTENING_QUIET, RecorderPhase.LISTENING_SPEAKING):
        bar_style = "green" if phase is RecorderPhase.LISTENING_SPEAKING else "yellow"
        lines.append(Text(level_bar(status.audio_level), style=bar_style))

    lines.append(Text(""))
    for message in messages[-max_messages:]:
        speaker, speaker_style = (("Doctor", "bold cyan") if message.role == "user"
                                  else ("Paciente", "bold magenta"))
        time_str = datetime.fromtimestamp(message.timestamp / 1000.0).strftime("%H:%M")
        lines.append(Text.assemble((f"[{time_str}] ", "dim"), (f"{speaker}: ", speaker_style),
                                   message.content))

    footer = Text.assemble(
        ("Enter", "bold green"), " reintentar micrófono  ",
        ("/reset", "bold blue"), " nuevo caso  ",
        ("/saved", "bold magenta"), " casos guardados  ",
        ("/quit", "bold red"), " salir  ",
        "otro texto se envía como mensaje",
        style="dim",
    )
    lines.append(Text(""))
    lines.append(footer)

    return Panel(Group(*lines), title="TriageVoice - Simulación de paciente", border_style="bright_blue")


class StatusDisplay:
    """Subscribes to recorder and conversation topics and keeps a live panel up to date."""

    def __init__(self, console: Optional[Console] = None,
                 status_topic: str = "recorder.state",
                 message_topic: str = "conversation.message"):
        self.console = console or Console()
        self.status_topic = status_topic
        self.message_topic = message_topic
        self.status: Optional[RecorderStatus] = None
        self.messages: List[Message] = []
        self.live: Optional[Live] = None

        pub.subscribe(self._on_status, status_topic)
        pub.subscribe(self._on_message, message_topic)
        logger.info(f"StatusDisplay subscribed to {status_topic} and {message_topic}")

    def _on_status(self, status: RecorderStatus) -> None:
        self.status = status
        self.refresh()

    def _on_message(self, message: Message) -> None:
        self.messages.append(message)
        self.refresh()

    def add_messages(self, messages: List[Message]) -> None:
        """Show messages that were added before the display subscribed."""
        self.messages.extend(messages)
        self.refresh()

    def render(self) -> Panel:
        return render_status(self.status, self.messages)

    def refresh(self) -> None:
        if self.live is not None:
            self.live.update(self.render())

    def start(self) -> None:
        if self.live is not None:
            return
        self.live = Live(self.render(), console=self.console, refresh_per_second=10)
        self.live.start()

    def stop(self) -> None:
        if self.live is not None:
            self.live.stop()
            self.live = None

        try:
            pub.unsubscribe(self._on_status, self.status_topic)
            pub.unsubscribe(self._on_message, self.message_topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
