"""
Hotmoka CLI

Command-line interface for inspecting a remote Hotmoka node.

Commands:
  info      - Show the node's takamaka code, manifest and gas settings
  state     - Show the state of an object
  response  - Show (or wait for) the response of a transaction
  call      - Run a view method without persisting anything
  events    - Print events as the node publishes them
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import click

from . import __version__
from .config import NodeConfig
from .errors import HotmokaError
from .network.node import RemoteNode

VERSION = __version__


def open_node(ctx: click.Context) -> RemoteNode:
    """Create a node for the configuration of the current invocation."""
    return RemoteNode(ctx.obj["config"])


def fail(message: str) -> None:
    click.secho(f"ERROR: {message}", fg="red", err=True)
    sys.exit(1)


def run_guarded(action) -> None:
    """Run ``action``, reporting client errors the way every command does."""
    try:
        action()
    except HotmokaError as exc:
        fail(f"{type(exc).__name__}: {exc}")


@click.group()
@click.version_option(version=VERSION, prog_name="hotmoka")
@click.option("--url", envvar="HOTMOKA_URL", default=None, help="Base URL of the node (default: http://localhost:8080)")
@click.option("--timeout", type=float, default=None, help="HTTP timeout in seconds")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.pass_context
def cli(ctx: click.Context, url: Optional[str], timeout: Optional[float], log_level: str) -> None:
    """Hotmoka: talk to a remote node."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = NodeConfig.from_env(url=url, timeout=timeout)


from .commands.call import call
from .commands.events import events
from .commands.info import info
from .commands.response import response
from .commands.state import state

cli.add_command(info)
cli.add_command(state)
cli.add_command(response)
cli.add_command(call)
cli.add_command(events)


if __name__ == "__main__":
    cli()
