from collections.abc import Awaitable, Callable
from pathlib import Path

from hypercorn.typing import ASGIFramework

from .address import ListenAddress, resolve_listen_addresses
from .config import ServeConfig
from .errors import BindError, ConfigurationError
from .filesystem import BaseFileSystem, LocalFileSystem
from .server import ListenerServer, build_server
from .utils.logging import NULL_LOGGER, Logger

StartCallback = Callable[[ListenerServer, ListenAddress, str, str], Awaitable[None]]


def unlink_stale_socket(address: ListenAddress, filesystem: BaseFileSystem) -> bool:
    """
    Removes whatever is left at the socket path of ``address`` (if it is a Unix socket address).
    Returns ``True`` if something was removed.
    """
    if address.path is None or not filesystem.exists(address.path):
        return False
    filesystem.unlink(address.path)
    return True


async def start_servers(
    config: object,
    cli_listen: str | None,
    start_callback: StartCallback,
    *,
    app: ASGIFramework,
    config_path: Path | None = None,
    name: str = "multilisten",
    version: str = "",
    filesystem: BaseFileSystem = LocalFileSystem(),
    logger: Logger = NULL_LOGGER,
) -> list[ListenerServer]:
    """
    Constructs a server for every listen address in the config (or ``cli_listen``, if given)
    and passes each one to ``start_callback``, in the order the addresses are listed.
    The callback is responsible for actually binding and serving.

    ``config`` must be a mapping, otherwise `ConfigurationError` is raised
    before any address is looked at.
    Any `FatalError` raised while constructing or starting a server propagates
    (after being logged), the servers started before it are not rolled back.
    """
    try:
        serve_config = ServeConfig.from_mapping(config, config_path)
    except ConfigurationError as exc:
        logger.fatal("{err}", err=exc)
        raise

    addresses = resolve_listen_addresses(cli_listen, serve_config.listen, logger)

    if not addresses:
        logger.warn("no valid listen addresses, nothing to start")

    servers = []
    for address in addresses:
        try:
            removed = unlink_stale_socket(address, filesystem)
        except OSError as exc:
            logger.fatal("cannot create server: {err}", err=exc)
            raise BindError(
                f"Cannot remove stale socket file {address.path}: {exc.strerror or exc}"
            ) from exc
        if removed:
            logger.debug("removed stale socket file {path}", path=address.path)

        server = build_server(
            address,
            app,
            serve_config.https,
            config_path=config_path,
            filesystem=filesystem,
            logger=logger,
        )
        await start_callback(server, address, name, version)
        servers.append(server)

    return servers
