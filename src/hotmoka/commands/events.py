from __future__ import annotations

import threading
from typing import Optional

import click

from ..beans.references import StorageReference


@click.command()
@click.option("--creator", default=None, help="Only events created by this object")
@click.option("--count", type=int, default=None, help="Stop after this many events")
@click.option("--timeout", type=float, default=None, help="Stop after this many seconds")
@click.pass_context
def events(ctx: click.Context, creator: Optional[str], count: Optional[int], timeout: Optional[float]) -> None:
    """Print events as the node publishes them (Ctrl-C to stop)."""
    from ..cli import open_node, run_guarded

    def action() -> None:
        received = 0
        finished = threading.Event()
        lock = threading.Lock()

        def on_event(event: StorageReference, event_creator: StorageReference) -> None:
            nonlocal received
            click.echo(f"{event} created by {event_creator}")
            with lock:
                received += 1
                if count is not None and received >= count:
                    finished.set()

        with open_node(ctx) as node:
            filter_ = StorageReference.parse(creator) if creator else None
            with node.subscribe_to_events(filter_, on_event):
                click.secho(f"Listening on {node.config.events_url}", dim=True, err=True)
                try:
                    finished.wait(timeout)
                except KeyboardInterrupt:
                    click.echo("", err=True)

    run_guarded(action)
