from ..address import ListenAddress
from ..readiness import ReadinessNotifier
from ..server import ListenerServer
from ..utils.logging import Handler, Level, LogRecord


class RecordingHandler(Handler):
    def __init__(self) -> None:
        self.records: list[LogRecord] = []

    def emit(self, record: LogRecord) -> None:
        self.records.append(record)

    def at_level(self, level: Level) -> list[LogRecord]:
        return [record for record in self.records if record.level == level]

    def messages(self, level: Level | None = None) -> list[str]:
        records = self.records if level is None else self.at_level(level)
        return [record.render() for record in records]


class MockNotifier(ReadinessNotifier):
    def __init__(self) -> None:
        self.calls = 0

    def notify_ready(self) -> None:
        self.calls += 1


class RecordingStartCallback:
    """A start callback that does not bind anything, only remembers what it was given."""

    def __init__(self) -> None:
        self.calls: list[tuple[ListenerServer, ListenAddress, str, str]] = []

    async def __call__(
        self, server: ListenerServer, address: ListenAddress, name: str, version: str
    ) -> None:
        self.calls.append((server, address, name, version))

    @property
    def addresses(self) -> list[ListenAddress]:
        return [address for _server, address, _name, _version in self.calls]
