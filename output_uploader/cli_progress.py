"""Console rendering helpers for the uploader CLI."""
from __future__ import annotations

from typing import Any, Dict, Union

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import ErrorDocument, LiteralMap

console = Console()


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]output-uploader[/bold green]",
        subtitle="[dim]task outputs[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_result(result: Union[LiteralMap, ErrorDocument]) -> None:
    """Render the written output record, or the task error that replaced it."""
    if isinstance(result, ErrorDocument):
        console.print(f"[yellow]Task reported an error ({result.code}):[/yellow] {result.message.strip()}")
        return

    table = Table(title=f"Uploaded {len(result)} output(s)")
    table.add_column("Output", style="bold cyan")
    table.add_column("Kind")
    table.add_column("Value / URI", overflow="fold")

    for name, literal in sorted(result.literals.items()):
        if literal.blob is not None:
            kind = literal.blob.metadata.type.dimensionality.value
            table.add_row(name, kind, literal.blob.uri)
        elif literal.primitive is not None:
            table.add_row(name, literal.primitive.simple_type.value, str(literal.primitive.value))

    console.print(table)


def render_error(message: str) -> None:
    console.print(f"[red]ERROR:[/red] {message}", highlight=False)
