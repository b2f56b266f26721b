import importlib
import sys
from pathlib import Path

import click
import trio
from hypercorn.typing import ASGIFramework

from .address import resolve_listen_addresses
from .bootstrap import start_servers
from .config import ServeConfig, load_config_file, make_logger
from .errors import FATAL_EXIT_STATUS, FatalError
from .listen import ListenerStarter
from .readiness import FileDescriptorNotifier, NullNotifier, ReadinessNotifier
from .status_app import make_status_asgi_app
from .tls import generate_self_signed
from .utils.logging import Logger
from .version import PACKAGE_NAME, package_version


def load_app(app_path: str) -> ASGIFramework:
    module_name, _, attr_name = app_path.partition(":")
    if not module_name or not attr_name:
        raise click.BadParameter("expected `module:attribute`", param_hint="--app")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"cannot import {module_name}: {exc}", param_hint="--app") from exc

    try:
        app: ASGIFramework = getattr(module, attr_name)
    except AttributeError as exc:
        raise click.BadParameter(
            f"module {module_name} has no attribute {attr_name}", param_hint="--app"
        ) from exc

    return app


async def run_servers(
    config: object,
    config_path: Path,
    cli_listen: str | None,
    app: ASGIFramework,
    notifier: ReadinessNotifier,
    logger: Logger,
) -> None:
    """
    Starts all the listeners and serves until they are all stopped (or the process is interrupted).
    """
    fatal_error: FatalError | None = None

    async with trio.open_nursery() as nursery:
        starter = ListenerStarter(nursery, notifier=notifier, logger=logger)
        try:
            await start_servers(
                config,
                cli_listen,
                starter,
                app=app,
                config_path=config_path,
                name=PACKAGE_NAME,
                version=package_version(),
                logger=logger,
            )
        except FatalError as exc:
            # Stop the listeners that did manage to start.
            fatal_error = exc
            nursery.cancel_scope.cancel()

    if fatal_error is not None:
        raise fatal_error


def read_config(config_path: Path, logger: Logger) -> object:
    try:
        return load_config_file(config_path)
    except FatalError as exc:
        logger.fatal("{err}", err=exc)
        sys.exit(FATAL_EXIT_STATUS)


listen_option = click.option(
    "--listen", "cli_listen", default=None, help="Address to listen on (overrides the config file)."
)


@click.group()
def main() -> None:
    pass


@main.command()
@click.argument("config_path", type=click.Path(path_type=Path))
@listen_option
@click.option("--app", "app_path", default=None, help="ASGI app to serve, as `module:attribute`.")
@click.option(
    "--ready-fd",
    type=int,
    default=None,
    help="File descriptor to write READY=1 to once the first listener is up.",
)
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.option(
    "--log-to-file/--no-log-to-file", default=False, help="Also log to the user log directory."
)
def serve(
    config_path: Path,
    cli_listen: str | None,
    app_path: str | None,
    ready_fd: int | None,
    *,
    debug: bool,
    log_to_file: bool,
) -> None:
    """Serve an app on every listen address in CONFIG_PATH."""
    logger = make_logger("default", "server", log_to_file=log_to_file, debug=debug)

    app = load_app(app_path) if app_path else make_status_asgi_app(PACKAGE_NAME, package_version())
    notifier: ReadinessNotifier = (
        FileDescriptorNotifier(ready_fd) if ready_fd is not None else NullNotifier()
    )

    config = read_config(config_path, logger)

    try:
        trio.run(run_servers, config, config_path, cli_listen, app, notifier, logger)
    except FatalError:
        # Already logged where it was raised.
        sys.exit(FATAL_EXIT_STATUS)


@main.command()
@click.argument("config_path", type=click.Path(path_type=Path))
@listen_option
def addresses(config_path: Path, cli_listen: str | None) -> None:
    """Print the addresses `serve` would listen on, without binding anything."""
    logger = make_logger("default", "addresses")
    config = read_config(config_path, logger)

    try:
        serve_config = ServeConfig.from_mapping(config, config_path)
    except FatalError as exc:
        logger.fatal("{err}", err=exc)
        sys.exit(FATAL_EXIT_STATUS)

    for address in resolve_listen_addresses(cli_listen, serve_config.listen, logger):
        click.echo(f"{address.proto.value}\t{address}")


@main.command()
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option(
    "--host", default="localhost", show_default=True, help="Host the certificate is issued for."
)
@click.option("--days", default=365, show_default=True, help="Validity period in days.")
@click.option("--force", is_flag=True, help="Overwrite existing files.")
def selfsigned(output_dir: Path, host: str, days: int, *, force: bool) -> None:
    """Write a self-signed key/certificate pair usable as https.key/cert/ca."""
    key_path = output_dir / "multilisten-key.pem"
    cert_path = output_dir / "multilisten-cert.pem"

    if not force:
        for path in (key_path, cert_path):
            if path.exists():
                raise click.ClickException(f"{path} already exists (use --force to overwrite)")

    key_pem, cert_pem = generate_self_signed(host, days_valid=days)

    output_dir.mkdir(parents=True, exist_ok=True)
    key_path.touch(mode=0o600)
    key_path.chmod(0o600)
    key_path.write_bytes(key_pem)
    cert_path.write_bytes(cert_pem)

    click.echo(f"Private key: {key_path}")
    click.echo(f"Certificate: {cert_path}")
