# src/taskminder/connectors/console_transport.py

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import TextIO

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleTransport:
    """
    Offline NotificationTransport used when no SMTP relay is configured.

    Prints each reminder instead of emailing it, so the whole pipeline
    (selection, guard, reports) can be exercised locally.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self.sent = 0

    async def send(self, *, address: str, subject: str, body: str) -> None:
        out = self._stream or sys.stdout
        indented = "\n".join(f"    {line}" for line in body.splitlines())
        print(f"[{_ts_local()}] [MAIL] to={address} subject={subject}\n{indented}", file=out, flush=True)
        self.sent += 1

    async def close(self) -> None:
        logger.debug("Console transport closed after %d reminder(s).", self.sent)
