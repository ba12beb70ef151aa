"""Progress reporters for the replication monitor."""

import sys
from typing import Optional, TextIO

from common.logging_config import get_logger

logger = get_logger(__name__)

GREEN = "\033[32m"
RESET = "\033[0m"


class TerminalProgressReporter:
    """Rewrites a single stdout line with the current sync progress."""

    def __init__(self, label: str = "Syncing chunks", stream: Optional[TextIO] = None, width: int = 30):
        """
        Args:
            label: Text shown before the bar
            stream: Output stream (defaults to sys.stdout)
            width: Bar width in characters
        """
        self.label = label
        self.stream = stream if stream is not None else sys.stdout
        self.width = width
        self._last_line_length = 0

    def update(self, current: int, total: int) -> None:
        """Redraw the progress line."""
        fraction = min(current / total, 1.0) if total > 0 else 1.0
        filled = int(fraction * self.width)
        bar = "■" * filled + " " * (self.width - filled)
        line = f"\r{self.label}: [{bar}] {current} / {total} ({GREEN}{fraction * 100:.1f}%{RESET})"
        self._last_line_length = len(line)
        self.stream.write(line)
        self.stream.flush()

    def close(self) -> None:
        """Clear the progress line."""
        if self._last_line_length:
            self.stream.write('\r' + ' ' * self._last_line_length + '\r')
            self.stream.flush()
            self._last_line_length = 0


class LoggingProgressReporter:
    """Logs sync progress whenever it changes; used when stdout is not a terminal."""

    def __init__(self):
        self._last: Optional[tuple] = None

    def update(self, current: int, total: int) -> None:
        if (current, total) != self._last:
            logger.info(f"Sync progress: {current}/{total} chunks")
            self._last = (current, total)

    def close(self) -> None:
        self._last = None
