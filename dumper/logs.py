from __future__ import annotations

import logging
import sys
from typing import Dict, Optional, TextIO

import colorama
from colorama import Fore, Style

_LEVEL_COLORS: Dict[int, str] = {
    logging.DEBUG: Fore.LIGHTBLACK_EX,
    logging.INFO: Fore.CYAN,
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}


class ColorFormatter(logging.Formatter):
    """Colors the whole line by level. Plain text when color is off."""

    def __init__(self, use_color: bool = True) -> None:
        super().__init__("%(levelname)-7s %(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if not self.use_color:
            return text
        color = _LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{text}{Style.RESET_ALL}"


def build_logger(verbose: bool = False, stream: Optional[TextIO] = None, use_color: Optional[bool] = None) -> logging.Logger:
    """
    Build the run logger handed to every component.

    The logger is constructed directly instead of through logging.getLogger,
    so nothing outside the run can reach or reconfigure it. verbose enables
    per-file DEBUG trace; warnings, errors and the summary always show.
    """
    stream = stream or sys.stderr
    if use_color is None:
        use_color = hasattr(stream, "isatty") and stream.isatty()
    if use_color:
        colorama.just_fix_windows_console()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColorFormatter(use_color=use_color))

    log = logging.Logger("dumper", level=logging.DEBUG if verbose else logging.INFO)
    log.addHandler(handler)
    return log


def silent_logger() -> logging.Logger:
    log = logging.Logger("dumper.silent")
    log.addHandler(logging.NullHandler())
    return log
