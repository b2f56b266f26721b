from .address import (
    DEFAULT_LISTEN,
    ListenAddress,
    Protocol,
    parse_address,
    resolve_listen_addresses,
)
from .bootstrap import StartCallback, start_servers, unlink_stale_socket
from .config import HTTPSConfig, ServeConfig, load_config_file
from .errors import (
    FATAL_EXIT_STATUS,
    AddressParseError,
    BindError,
    CertificateLoadError,
    ConfigurationError,
    FatalError,
)
from .listen import ListenerStarter
from .readiness import CallbackNotifier, FileDescriptorNotifier, NullNotifier, ReadinessNotifier
from .server import ListenerServer, build_server

__all__ = [
    "DEFAULT_LISTEN",
    "FATAL_EXIT_STATUS",
    "AddressParseError",
    "BindError",
    "CallbackNotifier",
    "CertificateLoadError",
    "ConfigurationError",
    "FatalError",
    "FileDescriptorNotifier",
    "HTTPSConfig",
    "ListenAddress",
    "ListenerServer",
    "ListenerStarter",
    "NullNotifier",
    "Protocol",
    "ReadinessNotifier",
    "ServeConfig",
    "StartCallback",
    "build_server",
    "load_config_file",
    "parse_address",
    "resolve_listen_addresses",
    "start_servers",
    "unlink_stale_socket",
]
