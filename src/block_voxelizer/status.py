"""
Status Messages

Non-fatal conditions found during a job (blocks that will fall, palette
entries without textures, ...) are collected here so they can be shown to
the user once the job finishes. One handler is created per job.
"""

import logging
from enum import Enum
from typing import List, Tuple

logger = logging.getLogger(__name__)


class StatusKind(Enum):
    INFO = "info"
    WARNING = "warning"


class StatusHandler:
    """Accumulates info and warning messages for one job."""

    def __init__(self):
        self._messages: List[Tuple[StatusKind, str]] = []

    def info(self, message: str) -> None:
        logger.info(message)
        self._messages.append((StatusKind.INFO, message))

    def warning(self, message: str) -> None:
        logger.warning(message)
        self._messages.append((StatusKind.WARNING, message))

    def messages(self, kind: StatusKind) -> List[str]:
        return [text for message_kind, text in self._messages if message_kind is kind]

    @property
    def warnings(self) -> List[str]:
        return self.messages(StatusKind.WARNING)

    @property
    def infos(self) -> List[str]:
        return self.messages(StatusKind.INFO)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
