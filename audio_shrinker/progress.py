from __future__ import annotations

import sys
import threading
import time
from typing import Optional, TextIO

from .pool import CompletionCounter

PROGRESS_UPDATE_INTERVAL = 1.0


def render_progress(processed: int, total: int) -> str:
    if total <= 0:
        return "0/0 (100%)"
    shown = max(0, min(processed, total))
    percent = shown * 100 // total
    return f"{shown}/{total} ({percent}%)"


class ProgressReporter(threading.Thread):
    """Redraws a ``processed/total (percent%)`` status line until every file is accounted for.

    The loop ends on its own once the counter reaches ``total``; it never
    touches the workers.
    """

    def __init__(
        self,
        total: int,
        counter: CompletionCounter,
        interval: float = PROGRESS_UPDATE_INTERVAL,
        stream: Optional[TextIO] = None,
    ) -> None:
        super().__init__(name="progress", daemon=True)
        self.total = total
        self.counter = counter
        self.interval = interval
        self.stream = stream if stream is not None else sys.stdout
        self.renders = 0
        self._last_line = ""

    def _display(self, line: str) -> None:
        padded = line.ljust(len(self._last_line))
        self.stream.write("\r" + padded)
        self.stream.flush()
        self._last_line = line
        self.renders += 1

    def run(self) -> None:
        while True:
            processed = self.counter.value
            self._display(render_progress(processed, self.total))
            if processed >= self.total:
                break
            time.sleep(self.interval)
        self.stream.write("\n")
        self.stream.flush()
