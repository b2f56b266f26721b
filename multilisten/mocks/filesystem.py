from collections.abc import Mapping

from ..filesystem import BaseFileSystem


class MockFileSystem(BaseFileSystem):
    """
    An in-memory filesystem that remembers every operation performed on it,
    in the order they happened (as ``(operation, path)`` tuples).
    """

    def __init__(self, files: Mapping[str, bytes] | None = None):
        self.files = dict(files or {})
        self.operations: list[tuple[str, str]] = []

    def read_bytes(self, path: str) -> bytes:
        self.operations.append(("read", path))
        try:
            return self.files[path]
        except KeyError as exc:
            raise FileNotFoundError(2, "No such file or directory", path) from exc

    def exists(self, path: str) -> bool:
        self.operations.append(("exists", path))
        return path in self.files

    def unlink(self, path: str) -> None:
        self.operations.append(("unlink", path))
        try:
            del self.files[path]
        except KeyError as exc:
            raise FileNotFoundError(2, "No such file or directory", path) from exc

    def reads(self) -> list[str]:
        return [path for operation, path in self.operations if operation == "read"]
