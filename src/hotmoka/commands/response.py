from __future__ import annotations

import click

from ..beans.references import TransactionReference
from ..beans.responses import ResponseCategory


@click.command()
@click.argument("transaction")
@click.option("--poll", is_flag=True, help="Wait until the response is available")
@click.pass_context
def response(ctx: click.Context, transaction: str, poll: bool) -> None:
    """Show the response of TRANSACTION (hex hash)."""
    from ..cli import open_node, run_guarded

    def action() -> None:
        reference = TransactionReference(transaction)
        with open_node(ctx) as node:
            result = node.get_polled_response(reference) if poll else node.get_response(reference)
        color = {
            ResponseCategory.SUCCESSFUL: "green",
            ResponseCategory.FAILED: "red",
            ResponseCategory.REJECTED: "red",
        }.get(result.category, "yellow")
        click.secho(f"{result.kind.type_name} ({result.category.value})", fg=color, bold=True)
        for name in ("new_object", "result", "gamete", "class_name_of_cause", "message_of_cause", "where"):
            value = getattr(result, name, None)
            if value not in (None, ""):
                click.echo(f"  {name}: {value}")
        for update in getattr(result, "updates", ()):
            target = update.class_name if update.field is None else f"{update.field.name} = {update.value}"
            click.echo(f"  update {update.object}: {target}")

    run_guarded(action)
