from .filesystem import MockFileSystem
from .recording import MockNotifier, RecordingHandler, RecordingStartCallback

__all__ = [
    "MockFileSystem",
    "MockNotifier",
    "RecordingHandler",
    "RecordingStartCallback",
]
