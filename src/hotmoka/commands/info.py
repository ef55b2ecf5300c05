"""Info - summary of a node: installed code, manifest and gas settings."""

from __future__ import annotations

import click

from ..errors import RemoteError


@click.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show the takamaka code, manifest and gas settings of the node."""
    from ..cli import open_node, run_guarded

    def action() -> None:
        with open_node(ctx) as node:
            click.echo(f"Node:                {node.config.url}")
            click.echo(f"Takamaka code:       {node.get_takamaka_code()}")
            click.echo(f"Signature algorithm: {node.get_signature_algorithm()}")
            try:
                manifest = node.get_manifest()
            except RemoteError as exc:
                click.secho(f"Manifest:            not available ({exc.message})", fg="yellow")
                return
            click.echo(f"Manifest:            {manifest}")
            click.echo(f"Chain id:            {node.get_chain_id()}")
            click.echo(f"Gamete:              {node.get_gamete()}")
            click.echo(f"Gas station:         {node.get_gas_station()}")
            ignores = node.ignores_gas_price()
            price = "ignored" if ignores else str(node.get_gas_price())
            click.echo(f"Gas price:           {price}")

    run_guarded(action)
