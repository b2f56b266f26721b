"""
Ways to tell a supervising process that the server is up.
"""

import os
from abc import ABC, abstractmethod
from collections.abc import Callable

READY_MESSAGE = b"READY=1\n"


class ReadinessNotifier(ABC):
    @abstractmethod
    def notify_ready(self) -> None: ...


class NullNotifier(ReadinessNotifier):
    def notify_ready(self) -> None:
        pass


class FileDescriptorNotifier(ReadinessNotifier):
    """
    Writes ``READY=1`` to a descriptor inherited from the parent (normally the write end of a pipe)
    and closes it, so the parent sees the message followed by EOF.
    """

    def __init__(self, fd: int):
        self._fd = fd

    def notify_ready(self) -> None:
        try:
            os.write(self._fd, READY_MESSAGE)
        finally:
            os.close(self._fd)


class CallbackNotifier(ReadinessNotifier):
    def __init__(self, callback: Callable[[], None]):
        self._callback = callback

    def notify_ready(self) -> None:
        self._callback()
