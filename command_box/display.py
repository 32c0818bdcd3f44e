"""Rich rendering of selectors, spaces and commands."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from .models import Command, NamespaceType, Selector, Space

_NAMESPACE_STYLE = {
    NamespaceType.USER: "cyan",
    NamespaceType.ORGANIZATION: "yellow",
}

_NAMESPACE_SEPARATOR = {
    NamespaceType.USER: ":",
    NamespaceType.ORGANIZATION: "/",
}


def format_selector(selector: Selector) -> str:
    """Colored canonical form (same text as ``str(selector)``)."""
    location = ""
    if selector.namespace_type is not NamespaceType.NONE:
        style = _NAMESPACE_STYLE[selector.namespace_type]
        separator = _NAMESPACE_SEPARATOR[selector.namespace_type]
        location = f"[{style}]{selector.namespace}[/{style}][bold white]{separator}[/bold white]"
    if selector.space:
        location += f"[bold green]{selector.space}[/bold green]"
    if not selector.item:
        return location
    return f"[bold blue]{selector.item}[/bold blue][magenta]@[/magenta]{location}"


def _timestamps(updated_at, created_at) -> str:
    return (
        f"[dim](Updated: {updated_at:%Y-%m-%d %H:%M} - "
        f"Created: {created_at:%Y-%m-%d %H:%M})[/dim]"
    )


def print_selector(console: Console, header: str, selector: Selector) -> None:
    console.print(f"[yellow]{escape(header)}:[/yellow] {format_selector(selector)}")


def print_space(console: Console, space: Space, header: str = "") -> None:
    if header:
        console.print(f"[yellow]- - - {escape(header)} - - -[/yellow]")
    console.print(
        f"{format_selector(space.selector)} - {escape(space.description)} "
        f"[dim]({len(space.entries)} commands)[/dim] "
        f"{_timestamps(space.updated_at, space.created_at)}"
    )


def print_spaces(console: Console, spaces: list[Space]) -> None:
    if not spaces:
        console.print("[dim]No spaces found.[/dim]")
        return

    table = Table(title="Spaces")
    table.add_column("Selector")
    table.add_column("Label", style="bold")
    table.add_column("Description", max_width=50)
    table.add_column("Commands", justify="right")
    table.add_column("Updated", style="dim")
    for space in sorted(spaces, key=lambda s: str(s.selector)):
        table.add_row(
            format_selector(space.selector),
            space.label,
            escape(space.description),
            str(len(space.entries)),
            f"{space.updated_at:%Y-%m-%d %H:%M}",
        )
    console.print(table)


def command_summary(command: Command) -> str:
    summary = f"{format_selector(command.selector)} - {escape(command.description)}"
    if command.tags:
        summary += f" [red]({escape(', '.join(command.tags))})[/red]"
    return summary


def print_command(console: Console, command: Command, source_only: bool = False) -> None:
    if source_only:
        console.print(command.code, markup=False, highlight=False)
        return

    selector = command.selector
    if selector.namespace_type is NamespaceType.NONE:
        namespace = "-"
    else:
        style = _NAMESPACE_STYLE[selector.namespace_type]
        namespace = (
            f"[{style}]{selector.namespace}[/{style}] ({selector.namespace_type.value.title()})"
        )

    console.print(f"  Namespace: {namespace}")
    console.print(f"  Space: [bold green]{selector.space}[/bold green]")
    console.print(f"  Label: [bold blue]{command.label}[/bold blue]")
    console.print(f"  Selector: {format_selector(selector)}")
    console.print()
    console.print(f"  Description: {escape(command.description)}")
    console.print(f"  URL: [green]{escape(command.url)}[/green]")
    console.print(f"  Tags: [red]{escape(', '.join(command.tags))}[/red]")
    console.print()
    console.print(f"  Created at: [dim]{command.created_at:%Y-%m-%d %H:%M:%S}[/dim]")
    console.print(f"  Updated at: [dim]{command.updated_at:%Y-%m-%d %H:%M:%S}[/dim]")
    console.print("\n[yellow]- - -[/yellow]\n")
    console.print(Syntax(command.code, "bash", word_wrap=True))


def sort_commands(commands: list[Command], listing_sort: str = "name") -> list[Command]:
    if listing_sort == "date":
        return sorted(commands, key=lambda c: c.updated_at)
    return sorted(commands, key=lambda c: (c.label, str(c.selector)))


def print_command_list(
    console: Console,
    commands: list[Command],
    header: str = "",
    listing_sort: str = "name",
    view_source: bool = False,
) -> None:
    if header:
        console.print(f"[yellow]- - - {escape(header)} - - -[/yellow]")
    if not commands:
        console.print("[dim]No commands found.[/dim]")
        return

    for command in sort_commands(commands, listing_sort):
        console.print(f"[dim]*[/dim] {command_summary(command)}")
        if view_source:
            console.print(Syntax(command.code, "bash", word_wrap=True))
