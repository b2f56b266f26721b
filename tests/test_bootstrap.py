from pathlib import Path

import pytest

from multilisten.address import DEFAULT_LISTEN, ListenAddress
from multilisten.bootstrap import start_servers, unlink_stale_socket
from multilisten.errors import BindError, ConfigurationError
from multilisten.mocks import MockFileSystem, RecordingHandler, RecordingStartCallback
from multilisten.server import ListenerServer
from multilisten.status_app import make_status_asgi_app
from multilisten.utils.logging import FATAL, WARNING, Logger

APP = make_status_asgi_app("multilisten", "test")


async def test_start_in_order(recording_logger: Logger) -> None:
    callback = RecordingStartCallback()

    servers = await start_servers(
        {"listen": ["localhost:5555", "localhost:5557"]},
        None,
        callback,
        app=APP,
        name="multilisten",
        version="1.2.3",
        filesystem=MockFileSystem(),
        logger=recording_logger,
    )

    assert callback.addresses == [
        ListenAddress.from_string("localhost:5555"),
        ListenAddress.from_string("localhost:5557"),
    ]
    assert [server for server, _address, _name, _version in callback.calls] == servers
    assert all(name == "multilisten" for _server, _address, name, _version in callback.calls)
    assert all(version == "1.2.3" for _server, _address, _name, version in callback.calls)
    assert [server.config.bind for server in servers] == [["localhost:5555"], ["localhost:5557"]]


async def test_cli_listen_overrides_config(recording_logger: Logger) -> None:
    callback = RecordingStartCallback()
    await start_servers(
        {"listen": ["localhost:5555", "localhost:5557"]},
        "localhost:6000",
        callback,
        app=APP,
        filesystem=MockFileSystem(),
        logger=recording_logger,
    )
    assert callback.addresses == [ListenAddress.from_string("localhost:6000")]


async def test_default_address(recording_logger: Logger) -> None:
    callback = RecordingStartCallback()
    await start_servers(
        {}, None, callback, app=APP, filesystem=MockFileSystem(), logger=recording_logger
    )
    assert callback.addresses == [ListenAddress.from_string(DEFAULT_LISTEN)]


async def test_invalid_addresses_skipped(
    recording_logger: Logger, log_records: RecordingHandler
) -> None:
    callback = RecordingStartCallback()
    await start_servers(
        {"listen": ["localhost:5555", "ftp://localhost:21", "localhost:5557"]},
        None,
        callback,
        app=APP,
        filesystem=MockFileSystem(),
        logger=recording_logger,
    )
    assert [address.port for address in callback.addresses] == [5555, 5557]
    assert [record.fields["addr"] for record in log_records.at_level(WARNING)] == [
        "ftp://localhost:21"
    ]


async def test_empty_listen_list(recording_logger: Logger, log_records: RecordingHandler) -> None:
    callback = RecordingStartCallback()
    servers = await start_servers(
        {"listen": []},
        None,
        callback,
        app=APP,
        filesystem=MockFileSystem(),
        logger=recording_logger,
    )
    assert servers == []
    assert callback.calls == []
    assert log_records.messages(WARNING) == ["no valid listen addresses, nothing to start"]


@pytest.mark.parametrize("config", [None, ["localhost:5555"], "localhost:5555"])
async def test_config_must_be_mapping(
    recording_logger: Logger, log_records: RecordingHandler, config: object
) -> None:
    callback = RecordingStartCallback()
    filesystem = MockFileSystem()

    with pytest.raises(ConfigurationError):
        await start_servers(
            config, None, callback, app=APP, filesystem=filesystem, logger=recording_logger
        )

    assert callback.calls == []
    assert filesystem.operations == []
    assert log_records.messages(FATAL) == ["config file must be an object"]


async def test_stale_socket_removed_before_start(recording_logger: Logger) -> None:
    filesystem = MockFileSystem({"/tmp/multilisten.sock": b""})
    seen_files = []

    async def callback(
        server: ListenerServer, address: ListenAddress, name: str, version: str
    ) -> None:
        seen_files.append(dict(filesystem.files))

    await start_servers(
        {"listen": "unix:/tmp/multilisten.sock"},
        None,
        callback,
        app=APP,
        filesystem=filesystem,
        logger=recording_logger,
    )

    assert filesystem.operations == [
        ("exists", "/tmp/multilisten.sock"),
        ("unlink", "/tmp/multilisten.sock"),
    ]
    assert seen_files == [{}]


def test_unlink_stale_socket() -> None:
    filesystem = MockFileSystem()
    assert not unlink_stale_socket(ListenAddress.from_string("/tmp/missing.sock"), filesystem)
    assert filesystem.operations == [("exists", "/tmp/missing.sock")]

    # TCP addresses never touch the filesystem
    filesystem = MockFileSystem()
    assert not unlink_stale_socket(ListenAddress.from_string("localhost:5555"), filesystem)
    assert filesystem.operations == []


async def test_https_failure_stops_startup(
    recording_logger: Logger, log_records: RecordingHandler
) -> None:
    callback = RecordingStartCallback()

    with pytest.raises(ConfigurationError):
        await start_servers(
            {"listen": ["localhost:5555", "https://localhost:5556", "localhost:5557"]},
            None,
            callback,
            app=APP,
            filesystem=MockFileSystem(),
            logger=recording_logger,
        )

    # The servers before the failing one were started, nothing after it
    assert [address.port for address in callback.addresses] == [5555]
    assert len(log_records.messages(FATAL)) == 1


async def test_stale_socket_cannot_be_removed(
    recording_logger: Logger, log_records: RecordingHandler, tmp_path: Path
) -> None:
    # A non-empty directory sits where the socket should be
    socket_path = tmp_path / "http.sock"
    socket_path.mkdir()
    (socket_path / "contents").write_bytes(b"")
    callback = RecordingStartCallback()

    with pytest.raises(BindError, match="Cannot remove stale socket file"):
        await start_servers(
            {"listen": f"unix:{socket_path}"},
            None,
            callback,
            app=APP,
            logger=recording_logger,
        )

    assert callback.calls == []
    (message,) = log_records.messages(FATAL)
    assert message.startswith("cannot create server: ")
