"""Command-line interface: manage FIFO nodes and run authenticated transfers."""

from __future__ import annotations

import asyncio
import secrets
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from sfifo.config import FifoConfig
from sfifo.errors import FifoError
from sfifo.fifo import NamedPipe
from sfifo.log import configure_logging
from sfifo.paths import (
    create_fifo,
    default_fifo_path,
    delete_fifo,
    is_fifo,
    remove_handshake_fifos,
)

_READ_CHUNK = 4096


def _package_version() -> str:
    try:
        return version("sfifo")
    except PackageNotFoundError:
        # Running from a source checkout without installed metadata.
        return "0+unknown"


_token_option = click.option(
    "--token",
    "-t",
    envvar="SFIFO_TOKEN",
    required=True,
    help="Shared secret both peers must present (or set SFIFO_TOKEN).",
)
_config_option = click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="TOML file with a [fifo] table of default options.",
)


def _load_config(path: Path, config_file: Path | None, **overrides: object) -> FifoConfig:
    options = {key: value for key, value in overrides.items() if value is not None}
    if config_file is not None:
        return FifoConfig.from_toml(config_file, path=path, **options)
    return FifoConfig(path=path, **options)


def _describe_peer(channel, role: str) -> None:
    peer = channel.peer_info
    click.secho(f"{role}: authenticated peer", fg="green", bold=True, err=True)
    click.echo(f"  PID:       {peer.process_id}", err=True)
    click.echo(f"  Name:      {peer.process_name}", err=True)
    click.echo(f"  Timestamp: {peer.timestamp}", err=True)


@click.group()
@click.version_option(_package_version(), prog_name="sfifo")
@click.option("-v", "--verbose", count=True, help="Log progress (-vv for debug output).")
def cli(verbose: int) -> None:
    """Authenticated named-pipe channels between local processes."""
    if verbose:
        configure_logging(verbose=verbose > 1)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
def create(path: Path) -> None:
    """Create an owner-only FIFO at PATH."""
    if path.exists() and not is_fifo(path):
        raise click.ClickException(f"{path} exists and is not a FIFO")
    create_fifo(path)
    click.echo(str(path))


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option(
    "--handshake/--no-handshake",
    default=True,
    help="Also remove the .c2s/.s2c handshake FIFOs.",
)
def remove(path: Path, handshake: bool) -> None:
    """Remove the FIFO at PATH."""
    try:
        delete_fifo(path)
    except FileNotFoundError as exc:
        raise click.ClickException(f"{path} does not exist") from exc
    finally:
        if handshake:
            remove_handshake_fifos(path)


async def _serve(config: FifoConfig, token: str) -> int:
    received = 0
    async with await NamedPipe(config).open_as_server(token) as channel:
        _describe_peer(channel, "Server")
        out = sys.stdout.buffer
        while chunk := await channel.read(_READ_CHUNK):
            out.write(chunk)
            out.flush()
            received += len(chunk)
    return received


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@_token_option
@_config_option
@click.option("--create/--no-create", default=None, help="Create the FIFO if absent.")
@click.option("--handshake-timeout", type=float, default=None, help="Seconds to wait for a client.")
def serve(
    path: Path,
    token: str,
    config_file: Path | None,
    create: bool | None,
    handshake_timeout: float | None,
) -> None:
    """Authenticate one client on PATH and copy what it sends to stdout."""
    config = _load_config(
        path,
        config_file,
        create=True if create is None and config_file is None else create,
        handshake_timeout=handshake_timeout,
    )
    try:
        received = asyncio.run(_serve(config, token))
    except FifoError as exc:
        raise click.ClickException(f"[{exc.code}] {exc}") from exc
    click.echo(f"Received {received} bytes", err=True)


async def _send(config: FifoConfig, token: str, messages: tuple[str, ...]) -> int:
    sent = 0
    async with await NamedPipe(config).open_as_client(token) as channel:
        _describe_peer(channel, "Client")
        if messages:
            for message in messages:
                await channel.write_line(message)
                sent += len(message.encode("utf-8")) + 1
        else:
            data = sys.stdin.buffer.read()
            await channel.write_all(data)
            sent = len(data)
    return sent


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("messages", nargs=-1)
@_token_option
@_config_option
@click.option("--timeout", type=float, default=None, help="Seconds to wait for the server's reader.")
@click.option("--notify/--no-notify", default=None, help="Wait until PATH is deleted instead.")
@click.option("--handshake-timeout", type=float, default=None, help="Seconds to wait for the server.")
def send(
    path: Path,
    messages: tuple[str, ...],
    token: str,
    config_file: Path | None,
    timeout: float | None,
    notify: bool | None,
    handshake_timeout: float | None,
) -> None:
    """Authenticate to the server on PATH and send MESSAGES (or stdin)."""
    config = _load_config(
        path,
        config_file,
        timeout=timeout,
        notify=notify,
        handshake_timeout=handshake_timeout,
    )
    try:
        sent = asyncio.run(_send(config, token, messages))
    except FifoError as exc:
        raise click.ClickException(f"[{exc.code}] {exc}") from exc
    click.echo(f"Sent {sent} bytes", err=True)


async def _demo(path: Path, token: str, message: str) -> bytes:
    server_pipe = NamedPipe(FifoConfig(path=path, create=True, read=True))
    client_pipe = NamedPipe(FifoConfig(path=path, write=True))

    async def _server() -> bytes:
        async with await server_pipe.open_as_server(token) as channel:
            _describe_peer(channel, "Server")
            return await channel.read_exact(len(message.encode("utf-8")))

    async def _client() -> None:
        async with await client_pipe.open_as_client(token) as channel:
            _describe_peer(channel, "Client")
            await channel.write_text(message)

    received, _ = await asyncio.gather(_server(), _client())
    return received


@cli.command()
@click.option(
    "--path",
    type=click.Path(path_type=Path),
    default=None,
    help="FIFO location (defaults to the sfifo runtime directory).",
)
@click.option("--token", "-t", default=None, help="Shared secret (random when omitted).")
@click.option("--message", "-m", default="Hello, server!", show_default=True)
def demo(path: Path | None, token: str | None, message: str) -> None:
    """Run a server and a client in this process and exchange one message."""
    fifo_path = path or default_fifo_path("demo")
    try:
        received = asyncio.run(_demo(fifo_path, token or secrets.token_hex(16), message))
    except FifoError as exc:
        raise click.ClickException(f"[{exc.code}] {exc}") from exc
    finally:
        if fifo_path.exists():
            delete_fifo(fifo_path)
        remove_handshake_fifos(fifo_path)
    click.echo(f"Server read: {received.decode('utf-8', errors='replace')}")
    click.secho("Both processes verified each other's identity.", fg="green")


def main() -> None:
    cli()


__all__ = ["cli", "main"]
