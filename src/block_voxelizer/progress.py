"""Coarse progress reporting for long-running stages."""

from typing import Callable, Dict, Optional

ProgressCallback = Callable[[str, float], None]


class ProgressTracker:
    """
    Forwards progress to an optional callback, at most once per percent.

    Args:
        callback: Called as callback(task, fraction) with fraction in [0, 1]
    """

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self._last: Dict[str, int] = {}

    def start(self, task: str) -> None:
        self._last[task] = -1
        self.progress(task, 0.0)

    def progress(self, task: str, fraction: float) -> None:
        if self._callback is None:
            return
        percent = int(min(max(fraction, 0.0), 1.0) * 100)
        if percent != self._last.get(task):
            self._last[task] = percent
            self._callback(task, percent / 100.0)

    def end(self, task: str) -> None:
        self.progress(task, 1.0)
        self._last.pop(task, None)
