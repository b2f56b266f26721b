from abc import ABC, abstractmethod
from pathlib import Path


class BaseFileSystem(ABC):
    """
    The subset of filesystem operations the bootstrap performs.
    Tests substitute an implementation that records (or forbids) the calls.
    """

    @abstractmethod
    def read_bytes(self, path: str) -> bytes: ...

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def unlink(self, path: str) -> None: ...


class LocalFileSystem(BaseFileSystem):
    def read_bytes(self, path: str) -> bytes:
        with Path(path).open("rb") as file:
            return file.read()

    def exists(self, path: str) -> bool:
        # A dangling symlink counts as existing, binding would fail on it too.
        return Path(path).is_symlink() or Path(path).exists()

    def unlink(self, path: str) -> None:
        Path(path).unlink()
