import json
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

from attrs import frozen
from platformdirs import PlatformDirs

from .errors import ConfigurationError
from .utils.logging import ConsoleHandler, Handler, Level, Logger, RotatingFileHandler


def app_log_dir(profile_name: str) -> Path:
    dirs = PlatformDirs(appname="multilisten")
    return Path(dirs.user_log_dir).resolve() / profile_name


def make_logger(
    profile_name: str,
    log_name: str,
    *,
    log_to_console: bool = True,
    log_to_file: bool = False,
    debug: bool = False,
) -> Logger:
    log_handlers: list[Handler] = []
    if log_to_console:
        log_handlers.append(ConsoleHandler())
    if log_to_file:
        log_file = app_log_dir(profile_name) / (log_name + ".log")
        log_handlers.append(RotatingFileHandler(log_file=log_file))
    return Logger(level=Level.DEBUG if debug else Level.INFO, handlers=log_handlers)


def load_config_file(config_path: Path) -> object:
    """
    Reads a JSON config file.
    The shape of the result is not checked here, it is up to the consumer.
    """
    try:
        with config_path.open(encoding="utf-8") as file:
            return json.load(file)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {config_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Config file {config_path} is not valid JSON: {exc}") from exc


class MaterialShape(Enum):
    PFX = "pfx"
    KEY_CERT_CA = "key_cert_ca"


@frozen
class HTTPSConfig:
    key: str | None = None
    cert: str | None = None
    ca: str | None = None
    pfx: str | None = None
    passphrase: str | None = None

    @classmethod
    def from_config_values(
        cls, values: object, config_path: Path | None = None
    ) -> "HTTPSConfig":
        """
        Builds the config from the ``https`` section of the config file.
        Anything that is not a mapping counts as a missing section,
        and non-string fields count as missing fields.
        Relative paths are taken relative to the config file, if its location is known.
        """
        if not isinstance(values, Mapping):
            return cls()

        base_dir = config_path.parent if config_path is not None else None

        def path_value(name: str) -> str | None:
            value = values.get(name)
            if not isinstance(value, str) or not value:
                return None
            if base_dir is not None:
                return str(base_dir / value)
            return value

        passphrase = values.get("passphrase")

        return cls(
            key=path_value("key"),
            cert=path_value("cert"),
            ca=path_value("ca"),
            pfx=path_value("pfx"),
            passphrase=passphrase if isinstance(passphrase, str) else None,
        )

    def material_shape(self) -> MaterialShape | None:
        """
        Returns the shape the TLS material will be loaded from,
        or ``None`` if neither shape is complete.
        A PFX takes priority over key/cert/ca.
        """
        if self.pfx is not None:
            return MaterialShape.PFX
        if self.key is not None and self.cert is not None and self.ca is not None:
            return MaterialShape.KEY_CERT_CA
        return None


@frozen
class ServeConfig:
    listen: str | int | list[str] | None
    https: HTTPSConfig
    config_path: Path | None

    @classmethod
    def from_mapping(cls, config: object, config_path: Path | None = None) -> "ServeConfig":
        if not isinstance(config, Mapping):
            raise ConfigurationError("config file must be an object")

        return cls(
            listen=config.get("listen"),
            https=HTTPSConfig.from_config_values(config.get("https"), config_path),
            config_path=config_path,
        )
