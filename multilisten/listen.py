import trio
from hypercorn.config import Sockets

from .address import ListenAddress
from .errors import BindError
from .readiness import NullNotifier, ReadinessNotifier
from .server import ListenerServer
from .utils.logging import NULL_LOGGER, Logger


def bound_address(address: ListenAddress, sockets: Sockets) -> ListenAddress:
    """Returns ``address`` with the port the OS actually assigned (matters for port 0)."""
    all_sockets = sockets.secure_sockets + sockets.insecure_sockets
    if address.is_unix or not all_sockets:
        return address
    return address.with_port(all_sockets[0].getsockname()[1])


class ListenerStarter:
    """
    The default start callback for `start_servers`.

    Binds each server right away, then serves it in a task of the given nursery.
    The readiness notifier is fired once, when the first server is accepting connections;
    one starter is meant to be used for all the servers of a process.
    """

    def __init__(
        self,
        nursery: trio.Nursery,
        notifier: ReadinessNotifier = NullNotifier(),
        logger: Logger = NULL_LOGGER,
    ):
        self._nursery = nursery
        self._notifier = notifier
        self._logger = logger
        self._ready_sent = False

    async def __call__(
        self, server: ListenerServer, address: ListenAddress, name: str, version: str
    ) -> None:
        try:
            sockets = server.bind()
        except OSError as exc:
            self._logger.fatal("cannot create server: {err}", err=exc)
            raise BindError(f"Cannot listen on {address}: {exc.strerror or exc}") from exc

        self._nursery.start_soon(self._serve, server, sockets)

        self._logger.info(
            "http address - {addr} - {version}",
            addr=str(bound_address(address, sockets)),
            version=f"{name}/{version}",
        )

    async def _serve(self, server: ListenerServer, sockets: Sockets) -> None:
        async with trio.open_nursery() as nursery:
            await nursery.start(server.serve, sockets)
            self._notify_ready()

    def _notify_ready(self) -> None:
        if self._ready_sent:
            return
        self._ready_sent = True
        self._notifier.notify_ready()
