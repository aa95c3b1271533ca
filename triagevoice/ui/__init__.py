"""Terminal user interface."""

from .status_display import StatusDisplay, render_status
from .console_input import ConsoleInput, QUIT_COMMAND, RESET_COMMAND, SAVED_COMMAND

__all__ = [
    "StatusDisplay",
    "render_status",
    "ConsoleInput",
    "QUIT_COMMAND",
    "RESET_COMMAND",
    "SAVED_COMMAND",
]
