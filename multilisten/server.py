"""Encapsulates a specific HTTP server serving the app on one address (currently ``hypercorn``)."""

from pathlib import Path
from ssl import SSLContext
from typing import TYPE_CHECKING, cast

import hypercorn.logging
import trio
from hypercorn.config import Config, Sockets
from hypercorn.trio.run import worker_serve
from hypercorn.typing import ASGIFramework
from hypercorn.utils import wrap_app

from .address import ListenAddress, Protocol
from .config import HTTPSConfig
from .errors import CertificateLoadError, ConfigurationError
from .filesystem import BaseFileSystem, LocalFileSystem
from .tls import TLSMaterial, load_tls_material, make_ssl_context
from .utils.logging import NULL_LOGGER, Logger

if TYPE_CHECKING:  # pragma: no cover
    import logging


def _bound_logger_class(logger: Logger) -> type[hypercorn.logging.Logger]:
    # Since the config accepts a class and not an instance of a logger,
    # we have to pass the parent logger through via an ad-hoc class.
    class BoundLogger(hypercorn.logging.Logger):
        def __init__(self, config: Config):
            super().__init__(config)
            self.access_logger = None
            # Our logger has the same subset of `logging.Logger`'s API Hypercorn uses,
            # so we can safely cast.
            self.error_logger = cast("logging.Logger", logger)

    return BoundLogger


class ListenerConfig(Config):
    """
    Hypercorn config for a single listen address.

    The SSL context is created right away (rather than when Hypercorn asks for it)
    so that broken certificate material is reported before anything is bound.
    """

    def __init__(self, address: ListenAddress, logger: Logger, tls_material: TLSMaterial | None):
        super().__init__()
        self.bind = [address.bind_string()]
        self.worker_class = "trio"
        self.accesslog = None
        self.errorlog = None
        self.logger_class = _bound_logger_class(logger)

        self.__ssl_context = None
        if tls_material is not None:
            self.__ssl_context = make_ssl_context(
                tls_material, ciphers=self.ciphers, alpn_protocols=self.alpn_protocols
            )

    def create_ssl_context(self) -> SSLContext | None:
        return self.__ssl_context

    @property
    def ssl_enabled(self) -> bool:
        return self.__ssl_context is not None


class ListenerServer:
    """
    A server for one listen address.
    Constructed unbound: `bind()` creates the sockets, `serve()` runs the app on them.
    """

    def __init__(self, address: ListenAddress, app: ASGIFramework, config: ListenerConfig):
        self.address = address
        self.app = app
        self.config = config
        self._shutdown_event = trio.Event()
        self._shutdown_finished = trio.Event()

    @property
    def secure(self) -> bool:
        return self.config.ssl_enabled

    def bind(self) -> Sockets:
        """
        Creates, binds and starts listening on the sockets for this server's address.
        Raises `OSError` on failure.
        """
        sockets = self.config.create_sockets()
        all_sockets = sockets.secure_sockets + sockets.insecure_sockets
        try:
            for sock in all_sockets:
                sock.listen(self.config.backlog)
        except OSError:
            for sock in all_sockets:
                sock.close()
            raise
        return sockets

    async def serve(
        self,
        sockets: Sockets,
        *,
        task_status: trio.TaskStatus[list[str]] = trio.TASK_STATUS_IGNORED,
    ) -> None:
        """
        Serves the app on sockets previously created by `bind()`.

        Supports start-up reporting when invoked via `nursery.start()`.
        """
        await worker_serve(
            wrap_app(self.app, self.config.wsgi_max_body_size, "asgi"),
            self.config,
            sockets=sockets,
            shutdown_trigger=self._shutdown_event.wait,
            task_status=task_status,
        )
        self._shutdown_finished.set()

    async def shutdown(self) -> None:
        self._shutdown_event.set()
        await self._shutdown_finished.wait()


def https_setup_instructions(config_path: Path | None) -> str:
    config_dir = config_path.parent if config_path is not None else Path()

    def resolve_config_path(file: str) -> Path:
        return config_dir.resolve() / file

    key_path = resolve_config_path("multilisten-key.pem")
    csr_path = resolve_config_path("multilisten-csr.pem")
    cert_path = resolve_config_path("multilisten-cert.pem")
    config_location = str(config_path) if config_path is not None else "your config file"

    return "\n".join(
        [
            "You have enabled HTTPS and need to specify either ",
            '    "https.key", "https.cert" and "https.ca" or ',
            '    "https.pfx" and optionally "https.passphrase" ',
            "to run https server",
            "",
            "To quickly create self-signed certificate, use:",
            f" $ openssl genrsa -out {key_path} 2048",
            f" $ openssl req -new -sha256 -key {key_path} -out {csr_path}",
            f" $ openssl x509 -req -in {csr_path} -signkey {key_path} -out {cert_path}",
            "",
            f"or, equivalently: $ multilisten selfsigned {config_dir.resolve()}",
            "",
            f"And then add to config file ({config_location}):",
            '  "https": {',
            '    "key": "multilisten-key.pem",',
            '    "cert": "multilisten-cert.pem",',
            '    "ca": "multilisten-cert.pem"',
            "  }",
        ]
    )


def build_server(
    address: ListenAddress,
    app: ASGIFramework,
    https_config: HTTPSConfig,
    *,
    config_path: Path | None = None,
    filesystem: BaseFileSystem = LocalFileSystem(),
    logger: Logger = NULL_LOGGER,
) -> ListenerServer:
    """
    Constructs an unbound server for ``address``.

    For HTTPS addresses, the config must name either a PFX, or all of key/cert/ca.
    If it does not, the operator gets instructions on how to fix it,
    and `ConfigurationError` is raised without touching the filesystem.
    Unreadable or broken certificate material raises `CertificateLoadError`.
    """
    server_logger = logger.get_child("HTTPServer")

    if address.proto == Protocol.HTTP:
        return ListenerServer(address, app, ListenerConfig(address, server_logger, None))

    if https_config.material_shape() is None:
        logger.fatal(https_setup_instructions(config_path))
        raise ConfigurationError("HTTPS is enabled, but the certificate material is not configured")

    try:
        material = load_tls_material(https_config, filesystem)
        config = ListenerConfig(address, server_logger, material)
    except CertificateLoadError as exc:
        logger.fatal("cannot create server: {err}", err=exc)
        raise

    return ListenerServer(address, app, config)
