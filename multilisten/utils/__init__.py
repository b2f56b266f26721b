import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


@contextmanager
def temp_file(contents: bytes) -> Iterator[Path]:
    with tempfile.NamedTemporaryFile(mode="wb") as file:
        file.write(contents)
        file.flush()
        yield Path(file.name)
