"""
Parsing of listen addresses.

Examples of valid addresses::

    4873                         port (HTTP, all IPv4 interfaces)
    localhost:4873               host + port
    [::1]:4873                   IPv6 literal + port
    [::]:4873                    all IPv6 interfaces (a missing host is IPv4 only)
    http::4873                   protocol + port
    https:localhost:4873         protocol + host + port
    https://localhost:443/       full URL
    unix:/tmp/http.sock          Unix socket
    https://unix:/tmp/http.sock  Unix socket serving HTTPS
    /tmp/http.sock               Unix socket (a bare filesystem path)
"""

import re
from collections.abc import Sequence
from enum import Enum

import attrs
from attrs import frozen

from .errors import AddressParseError
from .utils.logging import Logger

DEFAULT_LISTEN = "4873"

# What a missing host turns into when binding. IPv4 only: an address without a host
# does not accept IPv6 connections, use `[::]:PORT` for that.
BIND_ALL_HOST = "0.0.0.0"  # noqa: S104

MAX_PORT = 65535

_HOST_PORT_RE = re.compile(
    r"(?:(https?):(?://)?)?(?:(?:([^/:]*)|\[([^\[\]]+)\]):)?(\d+)/?", re.ASCII
)
_UNIX_RE = re.compile(r"(?:(https?):(?://)?)?unix:(.*)", re.ASCII)
_BARE_PATH_RE = re.compile(r"(?:/|\./|\.\./).*", re.ASCII)


class Protocol(Enum):
    HTTP = "http"
    HTTPS = "https"

    @classmethod
    def from_scheme(cls, scheme: str | None) -> "Protocol":
        if not scheme or scheme == "http":
            return cls.HTTP
        if scheme == "https":
            return cls.HTTPS
        raise ValueError(f"Unknown protocol: {scheme}")


@frozen
class ListenAddress:
    proto: Protocol
    host: str | None = None
    port: int | None = None
    path: str | None = None

    def __attrs_post_init__(self) -> None:
        if (self.port is None) == (self.path is None):
            raise ValueError("Exactly one of `port` and `path` must be set")
        if self.port is not None and not 0 <= self.port <= MAX_PORT:
            raise ValueError(f"Port out of range: {self.port}")

    @classmethod
    def from_string(cls, raw: object) -> "ListenAddress":
        """
        Parses a single listen address.
        Raises `AddressParseError` if the string matches none of the supported forms.
        """
        # A port given as a number in the config file is as good as a string.
        if isinstance(raw, int) and not isinstance(raw, bool):
            raw = str(raw)
        if not isinstance(raw, str):
            raise AddressParseError(raw, f"expected a string, got {type(raw).__name__}")

        match = _HOST_PORT_RE.fullmatch(raw)
        if match:
            scheme, host, ipv6_host, port_str = match.groups()
            port = int(port_str)
            if port > MAX_PORT:
                raise AddressParseError(raw, f"port {port} is out of range")
            return cls(
                proto=Protocol.from_scheme(scheme), host=host or ipv6_host or None, port=port
            )

        match = _UNIX_RE.fullmatch(raw)
        if match:
            scheme, path = match.groups()
            if not path:
                raise AddressParseError(raw, "empty socket path")
            return cls(proto=Protocol.from_scheme(scheme), path=path)

        if _BARE_PATH_RE.fullmatch(raw):
            return cls(proto=Protocol.HTTP, path=raw)

        raise AddressParseError(raw, "unrecognized format")

    @property
    def is_unix(self) -> bool:
        return self.path is not None

    def bind_string(self) -> str:
        """The address in the form Hypercorn's ``Config.bind`` expects."""
        if self.path is not None:
            return f"unix:{self.path}"
        return f"{self._url_host()}:{self.port}"

    def with_port(self, port: int) -> "ListenAddress":
        return attrs.evolve(self, port=port)

    def _url_host(self) -> str:
        host = self.host or BIND_ALL_HOST
        return f"[{host}]" if ":" in host else host

    def __str__(self) -> str:
        if self.path is not None:
            return f"unix:{self.path}"
        return f"{self.proto.value}://{self._url_host()}:{self.port}/"


def parse_address(raw: object) -> ListenAddress | None:
    """Returns the parsed address, or ``None`` if ``raw`` is not a valid listen address."""
    try:
        return ListenAddress.from_string(raw)
    except AddressParseError:
        return None


def resolve_listen_addresses(
    cli_listen: str | None,
    config_listen: str | int | Sequence[str] | None,
    logger: Logger,
) -> list[ListenAddress]:
    """
    Picks the list of addresses to listen on (command line, then config file, then default)
    and parses it.
    Invalid entries are skipped with a warning.
    """
    raw_addresses: Sequence[object]
    if cli_listen:
        raw_addresses = [cli_listen]
    elif isinstance(config_listen, Sequence) and not isinstance(config_listen, str):
        raw_addresses = config_listen
    elif config_listen:
        raw_addresses = [config_listen]
    else:
        raw_addresses = [DEFAULT_LISTEN]

    addresses = []
    for raw in raw_addresses:
        try:
            address = ListenAddress.from_string(raw)
        except AddressParseError as exc:
            logger.warn(
                "invalid address - {addr} ({reason}), we expect a port (e.g. \"4873\"),"
                " host:port (e.g. \"localhost:4873\") or full url"
                " (e.g. \"http://localhost:4873/\")",
                addr=raw,
                reason=exc.reason,
            )
            continue
        addresses.append(address)

    return addresses
