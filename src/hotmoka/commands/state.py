from __future__ import annotations

import click

from ..beans.references import StorageReference
from ..beans.updates import UpdateKind


@click.command()
@click.argument("reference")
@click.pass_context
def state(ctx: click.Context, reference: str) -> None:
    """Show the state of the object at REFERENCE (<hash>#<progressive>)."""
    from ..cli import open_node, run_guarded

    def action() -> None:
        obj = StorageReference.parse(reference)
        with open_node(ctx) as node:
            snapshot = node.get_state(obj)
        tag = snapshot.class_tag()
        if tag is not None:
            click.secho(f"{obj}: {tag.class_name}", bold=True)
            click.echo(f"  jar: {tag.jar}")
        for update in snapshot.updates:
            if update.kind is UpdateKind.FIELD:
                field = update.field
                click.echo(f"  {field.defining_class}.{field.name}: {field.type} = {update.value}")

    run_guarded(action)
