from pathlib import Path

import pytest

from multilisten.address import ListenAddress
from multilisten.config import HTTPSConfig
from multilisten.errors import CertificateLoadError, ConfigurationError
from multilisten.mocks import MockFileSystem, RecordingHandler
from multilisten.server import build_server, https_setup_instructions
from multilisten.status_app import make_status_asgi_app
from multilisten.utils.logging import FATAL, Logger

APP = make_status_asgi_app("multilisten", "test")


def test_http_server(recording_logger: Logger) -> None:
    filesystem = MockFileSystem()
    address = ListenAddress.from_string("127.0.0.1:5555")

    server = build_server(
        address, APP, HTTPSConfig(), filesystem=filesystem, logger=recording_logger
    )

    assert not server.secure
    assert server.address == address
    assert server.config.bind == ["127.0.0.1:5555"]
    assert filesystem.operations == []


def test_https_server(
    recording_logger: Logger, self_signed_pair: tuple[bytes, bytes]
) -> None:
    key_pem, cert_pem = self_signed_pair
    filesystem = MockFileSystem({"/certs/key.pem": key_pem, "/certs/cert.pem": cert_pem})
    https_config = HTTPSConfig(key="/certs/key.pem", cert="/certs/cert.pem", ca="/certs/cert.pem")

    server = build_server(
        ListenAddress.from_string("https://127.0.0.1:5556"),
        APP,
        https_config,
        filesystem=filesystem,
        logger=recording_logger,
    )

    assert server.secure
    assert server.config.create_ssl_context() is not None


@pytest.mark.parametrize(
    "https_config",
    [HTTPSConfig(), HTTPSConfig(key="/certs/key.pem", cert="/certs/cert.pem")],
)
def test_https_without_material(
    recording_logger: Logger,
    log_records: RecordingHandler,
    https_config: HTTPSConfig,
    tmp_path: Path,
) -> None:
    filesystem = MockFileSystem()

    with pytest.raises(ConfigurationError):
        build_server(
            ListenAddress.from_string("https://localhost:5556"),
            APP,
            https_config,
            config_path=tmp_path / "config.json",
            filesystem=filesystem,
            logger=recording_logger,
        )

    # Nothing is read before the operator is told what to do
    assert filesystem.operations == []

    (message,) = log_records.messages(FATAL)
    assert "openssl genrsa" in message
    assert str(tmp_path.resolve() / "multilisten-key.pem") in message
    assert '"ca": "multilisten-cert.pem"' in message


def test_https_broken_material(recording_logger: Logger, log_records: RecordingHandler) -> None:
    filesystem = MockFileSystem({"/certs/server.pfx": b"not a pfx"})

    with pytest.raises(CertificateLoadError):
        build_server(
            ListenAddress.from_string("https://localhost:5556"),
            APP,
            HTTPSConfig(pfx="/certs/server.pfx"),
            filesystem=filesystem,
            logger=recording_logger,
        )

    (message,) = log_records.messages(FATAL)
    assert message.startswith("cannot create server: Invalid TLS material")


def test_https_missing_file(recording_logger: Logger, log_records: RecordingHandler) -> None:
    with pytest.raises(CertificateLoadError):
        build_server(
            ListenAddress.from_string("https://localhost:5556"),
            APP,
            HTTPSConfig(pfx="/certs/server.pfx"),
            filesystem=MockFileSystem(),
            logger=recording_logger,
        )

    (message,) = log_records.messages(FATAL)
    assert message == (
        "cannot create server: Cannot read /certs/server.pfx: No such file or directory"
    )


def test_setup_instructions_without_config_path() -> None:
    instructions = https_setup_instructions(None)
    assert "your config file" in instructions
    assert "multilisten selfsigned" in instructions
