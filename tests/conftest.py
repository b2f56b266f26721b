from pathlib import Path

import pytest

from multilisten.mocks import RecordingHandler
from multilisten.tls import generate_self_signed
from multilisten.utils import logging


@pytest.fixture(scope="session")
def logger() -> logging.Logger:
    return logging.Logger(level=logging.DEBUG, handlers=[logging.ConsoleHandler(stderr_at=None)])


@pytest.fixture
def log_records() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def recording_logger(logger: logging.Logger, log_records: RecordingHandler) -> logging.Logger:
    return logger.get_child("test", handlers=[log_records])


@pytest.fixture(scope="session")
def self_signed_pair() -> tuple[bytes, bytes]:
    return generate_self_signed("127.0.0.1")


@pytest.fixture
def cert_files(tmp_path: Path, self_signed_pair: tuple[bytes, bytes]) -> dict[str, Path]:
    key_pem, cert_pem = self_signed_pair
    key_path = tmp_path / "multilisten-key.pem"
    cert_path = tmp_path / "multilisten-cert.pem"
    key_path.write_bytes(key_pem)
    cert_path.write_bytes(cert_pem)
    return {"key": key_path, "cert": cert_path, "ca": cert_path}
