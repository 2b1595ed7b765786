"""
wgproxy CLI entry point.

Usage:
    wgproxy serve [TCP_HOST] [UDP_TARGET] [UDP_BIND_HOST_RANGE] [SOCKET_TIMEOUT]

Example:
    # Accept TCP on all interfaces, relay to a local WireGuard endpoint
    wgproxy serve 0.0.0.0:5555 127.0.0.1:51820 127.0.0.1:30000-40000 30
"""

import asyncio
from typing import Annotated

import typer

from wgproxy.config import ConfigError, config
from wgproxy.cli.output import console, print_error
from wgproxy.models.enums import LogLevel
from wgproxy.relay.server import run_server
from wgproxy.utils.logger import configure_logging

app = typer.Typer(
    name="wgproxy",
    help="Relay UDP traffic (e.g. WireGuard) over TCP connections",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command("serve")
def serve(
    tcp_host: Annotated[
        str, typer.Argument(help="host:port to accept TCP connections on")
    ] = "127.0.0.1:5555",
    udp_target: Annotated[
        str, typer.Argument(help="host:port of the UDP endpoint to relay to")
    ] = "127.0.0.1:51820",
    udp_bind_host_range: Annotated[
        str,
        typer.Argument(help="host:low-high range for local UDP sockets"),
    ] = "127.0.0.1:30000-40000",
    socket_timeout: Annotated[
        float,
        typer.Argument(help="Read timeout in seconds, 0 for none"),
    ] = 0,
    log_level: Annotated[
        LogLevel,
        typer.Option("--log-level", "-L", help="Logging verbosity"),
    ] = LogLevel.INFO,
):
    """
    Run the relay daemon.

    Every TCP connection gets its own UDP socket on the first free port of
    the bind range; bytes are relayed both ways until either side stops.
    """
    try:
        config.TCP_LISTEN = tcp_host
        config.UDP_TARGET = udp_target
        config.set_bind_range(udp_bind_host_range)
        config.SOCKET_TIMEOUT_SECONDS = socket_timeout
        config.LOG_LEVEL = log_level
        config.validate()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1)

    configure_logging(config.LOG_LEVEL)

    console.print(
        f"[bold green]Relaying[/bold green] "
        f"[cyan]tcp://{config.TCP_LISTEN}[/cyan] "
        f"[dim]→[/dim] "
        f"[yellow]udp://{config.UDP_TARGET}[/yellow] "
        f"[dim](bind {config.get_bind_range()}, "
        f"timeout {config.get_socket_timeout() or 'none'})[/dim]"
    )
    console.print("[dim]Press Ctrl+C to stop.[/dim]")

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
    except OSError as e:
        if "Address already in use" in str(e):
            print_error(f"TCP address {config.TCP_LISTEN} is already in use.")
        else:
            print_error(f"Error: {e}")
        raise typer.Exit(1)


@app.command("version")
def version():
    """Show version information."""
    from wgproxy import __version__

    console.print(f"wgproxy v{__version__}")


def run():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
