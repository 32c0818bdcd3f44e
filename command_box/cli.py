"""cbox CLI: main entry point."""

from __future__ import annotations

import json as json_mod
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .cbox import CommandBox
from .cloud.directory import DirectoryCloud
from .config import CBoxConfig, default_config_path
from .display import (
    format_selector,
    print_command,
    print_command_list,
    print_selector,
    print_space,
    print_spaces,
)
from .errors import CBoxError, DuplicateError
from .models import Command, Selector, Space, check_label, check_namespace
from .repository import SpaceRepository
from .sync import SyncEngine, SyncResult

app = typer.Typer(
    name="cbox",
    help="cbox: organize, tag and share your shell commands",
    add_completion=False,
    invoke_without_command=True,
)
console = Console()

# --- Sub-command groups ---

space_app = typer.Typer(help="Manage spaces (collections of commands)")
app.add_typer(space_app, name="space")

command_app = typer.Typer(help="Manage the commands stored in spaces")
app.add_typer(command_app, name="command")

cloud_app = typer.Typer(help="Publish, clone and pull spaces")
app.add_typer(cloud_app, name="cloud")

config_app = typer.Typer(help="View and modify configuration")
app.add_typer(config_app, name="config")


# --- Invocation context ---


@dataclass
class CLIState:
    """Per-invocation state handed to every command through the typer context."""

    config: CBoxConfig
    skip_questions: bool = False


def _state(ctx: typer.Context) -> CLIState:
    if isinstance(ctx.obj, CLIState):
        return ctx.obj
    state = CLIState(config=CBoxConfig.load())
    state.skip_questions = state.config.skip_questions
    ctx.obj = state
    return state


def _repository(state: CLIState) -> SpaceRepository:
    return SpaceRepository(state.config.resolved_home)


def _load(state: CLIState) -> CommandBox:
    cbox = CommandBox.load(_repository(state))
    if cbox.fresh:
        console.print(f"[green]Created cbox store:[/green] {cbox.repository.spaces_dir}")
    return cbox


def _save(cbox: CommandBox) -> None:
    cbox.save()
    for selector in cbox.complete_deletions():
        console.print(f"[dim]Removed old file for {selector}[/dim]")


def _cloud(state: CLIState) -> DirectoryCloud:
    return DirectoryCloud(state.config.resolved_cloud_path, login=state.config.cloud_login)


def _confirm(state: CLIState, message: str) -> bool:
    if state.skip_questions:
        return True
    return typer.confirm(message, default=False)


def _ask_label(state: CLIState, message: str) -> str | None:
    if state.skip_questions:
        return None
    console.print(f"[red]{escape(message)}[/red]")
    value = typer.prompt("Label", default="", show_default=False)
    return value or None


def _engine(state: CLIState, cbox: CommandBox) -> SyncEngine:
    return SyncEngine(
        cbox,
        _cloud(state),
        confirm=lambda message: _confirm(state, message),
        ask_label=lambda message: _ask_label(state, message),
    )


@contextmanager
def _fail_on_error() -> Iterator[None]:
    """Report cbox errors in red and exit non-zero."""
    try:
        yield
    except CBoxError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def _prompt_label(state: CLIState, current: str | None = None) -> str:
    while True:
        value = typer.prompt("Label", default=current) if current else typer.prompt("Label")
        try:
            return check_label(value)
        except CBoxError as exc:
            if state.skip_questions:
                raise
            console.print(f"[red]{escape(str(exc))}[/red]")


def _print_warnings(result: SyncResult) -> None:
    for warning in result.warnings:
        console.print(f"[black on red] WARNING [/black on red] [magenta]{escape(warning)}[/magenta]")


# --- Top-level commands ---


@app.callback()
def main(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation questions"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """cbox, your command box."""
    with _fail_on_error():
        config = CBoxConfig.load()
    level = logging.DEBUG if verbose else config.log_level_number
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    ctx.obj = CLIState(config=config, skip_questions=yes or config.skip_questions)

    if ctx.invoked_subcommand is None:
        console.print(f"[bold]cbox[/bold] v{__version__}")
        console.print("Run [cyan]cbox --help[/cyan] for available commands.")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"cbox v{__version__}")


@app.command()
def search(
    ctx: typer.Context,
    criteria: str = typer.Argument(..., help="Text to look for in label, description or code"),
    selector: str = typer.Argument("", help="Restrict to a space (e.g. @scripts)"),
    tag: str | None = typer.Option(None, "--tag", "-t", help="Only commands with this tag"),
    view: bool = typer.Option(False, "--view", "-v", help="Show code snippets"),
) -> None:
    """Search for commands across spaces."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse(selector) if selector else None
        cbox = _load(state)
        commands = cbox.search(criteria, parsed, tag=tag)
    print_command_list(
        console,
        commands,
        header=f"Matches for '{criteria}'",
        listing_sort=state.config.listing_sort,
        view_source=view,
    )


@app.command()
def tags(
    ctx: typer.Context,
    selector: str = typer.Argument("", help="Restrict to a space"),
) -> None:
    """List the tags available in your cbox."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse(selector) if selector else None
        found = _load(state).tags(parsed)
    if not found:
        console.print("[dim]No tags found.[/dim]")
    for tag in found:
        console.print(f"[dim]*[/dim] [red]{tag}[/red]")


# --- Space sub-commands ---


@space_app.command("list")
def space_list(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List local spaces."""
    state = _state(ctx)
    with _fail_on_error():
        cbox = _load(state)

    if json_output:
        print(json_mod.dumps([s.model_dump(mode="json") for s in cbox.spaces]))
        return
    print_spaces(console, cbox.spaces)


@space_app.command("add")
def space_add(
    ctx: typer.Context,
    label: str | None = typer.Option(None, "--label", "-l", help="Space label"),
    description: str | None = typer.Option(None, "--description", "-d", help="Description"),
) -> None:
    """Create a new space."""
    state = _state(ctx)
    with _fail_on_error():
        cbox = _load(state)
        label = check_label(label) if label else _prompt_label(state)
        if description is None:
            description = "" if state.skip_questions else typer.prompt("Description", default="")

        space = Space(label=label, description=description)
        while True:
            try:
                cbox.space_add(space)
                break
            except DuplicateError:
                console.print("[red]Space already found in your cbox. Try a different one[/red]")
                if state.skip_questions:
                    raise
                space.label = _prompt_label(state)

        _save(cbox)
    print_space(console, space, header="New space")
    console.print("[green]Space successfully created![/green]")


@space_app.command("edit")
def space_edit(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Space to edit (e.g. @scripts)"),
    label: str | None = typer.Option(None, "--label", "-l", help="New label"),
    description: str | None = typer.Option(None, "--description", "-d", help="New description"),
) -> None:
    """Rename a space or change its description."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_space_mandatory(selector)
        cbox = _load(state)
        space = cbox.space_find(parsed)
        previous = space.selector
        print_space(console, space, header="Space to edit")

        interactive = label is None and description is None and not state.skip_questions
        if label is not None:
            label = check_label(label)
        elif interactive:
            label = _prompt_label(state, current=space.label)
        if description is None and interactive:
            description = typer.prompt("Description", default=space.description)

        if not _confirm(state, "Update?"):
            console.print("[red]Edition cancelled[/red]")
            raise typer.Exit(code=1)

        if description is not None:
            space.description = description
        if label is not None:
            space.label = label
        while True:
            try:
                cbox.space_edit(space, previous)
                break
            except DuplicateError:
                console.print("[red]Label already found in your cbox. Try a different one[/red]")
                if state.skip_questions:
                    raise
                space.label = _prompt_label(state)

        _save(cbox)
    print_space(console, space, header="Space after edition")
    console.print("[green]Space updated successfully![/green]")


@space_app.command("delete")
def space_delete(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Space to delete"),
) -> None:
    """Delete a space and all of its commands."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_space_mandatory(selector)
        cbox = _load(state)
        space = cbox.space_find(parsed)
        print_space(console, space, header="Space to delete")

        if not _confirm(state, "Are you sure you want to delete this space?"):
            console.print("[red]Deletion cancelled[/red]")
            raise typer.Exit(code=1)

        cbox.space_delete(space.selector)
        _save(cbox)
    console.print("[green]Space deleted successfully![/green]")


@space_app.command("cleanup")
def space_cleanup(
    ctx: typer.Context,
    apply: bool = typer.Option(False, "--apply", help="Rewrite and remove stray files"),
) -> None:
    """Find space files whose name no longer matches their content."""
    state = _state(ctx)
    with _fail_on_error():
        repository = _repository(state)
        repository.initialize()
        orphans = repository.find_orphans()
        if not orphans:
            console.print("[green]No stray space files.[/green]")
            return

        for path, selector in orphans:
            console.print(f"  {path.name} -> {format_selector(selector)}")
        if not apply:
            console.print("Use --apply to store them under their proper names.")
            return

        # Loading re-reads every file by content; saving writes proper names.
        cbox = CommandBox.load(repository)
        cbox.save()
        for path, _selector in orphans:
            repository.discard(path)
    console.print(f"[green]Cleaned up {len(orphans)} file(s)[/green]")


# --- Command sub-commands ---


@command_app.command("add")
def command_add(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Space to add to (e.g. @scripts)"),
    label: str | None = typer.Option(None, "--label", "-l", help="Command label"),
    code: str | None = typer.Option(None, "--code", "-c", help="Command / snippet"),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    url: str = typer.Option("", "--url", "-u", help="Reference URL"),
    tag: list[str] | None = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
) -> None:
    """Store a new command in a space."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_space_mandatory(selector)
        cbox = _load(state)
        space = cbox.space_find(parsed)

        label = check_label(label) if label else (parsed.item or _prompt_label(state))
        if code is None:
            code = typer.prompt("Code / Command")

        command = Command(label=label, code=code, description=description, url=url)
        for t in tag or []:
            command.tag_add(t)

        cbox.command_add(space, command)
        _save(cbox)
    print_command(console, command)
    console.print("[green]Command successfully created![/green]")


@command_app.command("list")
def command_list(
    ctx: typer.Context,
    selector: str = typer.Argument("", help="Space or item filter (e.g. @scripts, deploy@scripts)"),
    view: bool = typer.Option(False, "--view", "-v", help="Show code snippets"),
    sort: str | None = typer.Option(None, "--sort", "-s", help="Sort by 'name' or 'date'"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List stored commands."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse(selector) if selector else None
        commands = _load(state).command_list(parsed)

    if json_output:
        print(json_mod.dumps([c.model_dump(mode="json") for c in commands]))
        return
    print_command_list(
        console,
        commands,
        header=selector,
        listing_sort=sort or state.config.listing_sort,
        view_source=view,
    )


@command_app.command("view")
def command_view(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Command to show (e.g. deploy@scripts)"),
    source: bool = typer.Option(False, "--source", "-s", help="Only print the snippet"),
) -> None:
    """Show one command."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_item_mandatory(selector)
        command = _load(state).command_find(parsed)
    print_command(console, command, source_only=source)


@command_app.command("edit")
def command_edit(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Command to edit"),
    label: str | None = typer.Option(None, "--label", "-l", help="New label"),
    code: str | None = typer.Option(None, "--code", "-c", help="New snippet"),
    description: str | None = typer.Option(None, "--description", "-d", help="New description"),
    url: str | None = typer.Option(None, "--url", "-u", help="New URL"),
) -> None:
    """Change a command's label, code or metadata."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_item_mandatory(selector)
        cbox = _load(state)
        space = cbox.space_find(parsed)
        command = space.command_find(parsed.item)

        if all(v is None for v in (label, code, description, url)) and not state.skip_questions:
            label = typer.prompt("Label", default=command.label)
            description = typer.prompt("Description", default=command.description)
            url = typer.prompt("URL", default=command.url)
            code = typer.prompt("Code / Command", default=command.code)

        if label is not None:
            space.command_relabel(command, check_label(label))
        for field_name, value in (("code", code), ("description", description), ("url", url)):
            if value is not None:
                setattr(command, field_name, value)
        command.touch()
        space.touch()
        _save(cbox)
    print_command(console, command)
    console.print("[green]Command updated successfully![/green]")


@command_app.command("delete")
def command_delete(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Command to delete"),
) -> None:
    """Delete a command."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_item_mandatory(selector)
        cbox = _load(state)
        command = cbox.command_find(parsed)
        print_command(console, command)

        if not _confirm(state, "Are you sure you want to delete this command?"):
            console.print("[red]Deletion cancelled[/red]")
            raise typer.Exit(code=1)

        cbox.command_delete(parsed)
        _save(cbox)
    console.print("[green]Command deleted successfully![/green]")


@command_app.command("tag")
def command_tag(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Command to tag"),
    new_tags: list[str] = typer.Argument(..., help="Tags to add"),
) -> None:
    """Add tags to a command."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_item_mandatory(selector)
        cbox = _load(state)
        command = cbox.command_find(parsed)
        for t in new_tags:
            command.tag_add(t)
        _save(cbox)
    console.print(f"[green]Tags:[/green] {', '.join(command.tags)}")


@command_app.command("untag")
def command_untag(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Command to untag"),
    old_tags: list[str] = typer.Argument(..., help="Tags to remove"),
) -> None:
    """Remove tags from a command."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_item_mandatory(selector)
        cbox = _load(state)
        command = cbox.command_find(parsed)
        for t in old_tags:
            command.tag_delete(t)
        _save(cbox)
    console.print(f"[green]Tags:[/green] {', '.join(command.tags) or '-'}")


# --- Cloud sub-commands ---


@cloud_app.command("login")
def cloud_login(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Your user namespace"),
) -> None:
    """Set the user namespace spaces are published under."""
    state = _state(ctx)
    with _fail_on_error():
        state.config.update("cloud_login", name)
    state.config.save()
    console.print(f"[green]Hi {state.config.cloud_login}![/green]")


@cloud_app.command("logout")
def cloud_logout(ctx: typer.Context) -> None:
    """Forget the user namespace."""
    state = _state(ctx)
    state.config.cloud_login = ""
    state.config.save()
    console.print("[green]Successfully logged out. See you back soon![/green]")


@cloud_app.command("publish")
def cloud_publish(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Space (or item@space) to publish"),
    organization: str | None = typer.Option(
        None, "--org", "-o", help="Publish under this organization"
    ),
) -> None:
    """Publish a local space."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_space_mandatory(selector)
        org = check_namespace(organization) if organization else None
        cbox = _load(state)
        result = _engine(state, cbox).publish(parsed, organization=org)

    _print_warnings(result)
    if not result.completed:
        console.print("[red]Publishing cancelled[/red]")
        raise typer.Exit(code=1)
    print_command_list(console, result.commands, header=f"Published {result.selector}")
    console.print("[green]Space published successfully![/green]")


@cloud_app.command("unpublish")
def cloud_unpublish(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Published space (user:space or org/space)"),
) -> None:
    """Remove a space from the cloud. The local copy is kept."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_for_cloud(selector)
        print_selector(console, "Space to unpublish", parsed)
        cbox = _load(state)
        result = _engine(state, cbox).unpublish(parsed)

    for note in result.warnings:
        console.print(f"[cyan]{escape(note)}[/cyan]")
    if not result.completed:
        console.print("[red]Unpublishing cancelled[/red]")
        raise typer.Exit(code=1)
    console.print("[green]Space unpublished successfully![/green]")


@cloud_app.command("clone")
def cloud_clone(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Published space to clone"),
) -> None:
    """Create a local space from a published one."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_for_cloud(selector)
        cbox = _load(state)
        result = _engine(state, cbox).clone(parsed)

    if not result.completed:
        console.print("[red]Clone cancelled[/red]")
        raise typer.Exit(code=1)
    print_space(console, result.space, header="Cloned space")
    console.print("[green]Space cloned successfully![/green]")


@cloud_app.command("pull")
def cloud_pull(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Local space to refresh"),
) -> None:
    """Refresh a local space from its published copy (keeps your label)."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_space_mandatory(selector)
        cbox = _load(state)
        result = _engine(state, cbox).pull(parsed)

    print_space(console, result.space, header="Pulled space")
    console.print("[green]Space pulled successfully![/green]")


@cloud_app.command("copy")
def cloud_copy(
    ctx: typer.Context,
    remote: str = typer.Argument(..., help="Published commands (e.g. deploy@acme/ops)"),
    target: str = typer.Argument(..., help="Local space to copy into"),
) -> None:
    """Copy published commands into a local space."""
    state = _state(ctx)
    with _fail_on_error():
        remote_selector = Selector.parse_for_cloud(remote)
        target_selector = Selector.parse_space_mandatory(target)
        cbox = _load(state)
        result = _engine(state, cbox).copy_commands(remote_selector, target_selector)

    if not result.completed:
        console.print("[red]Copy cancelled[/red]")
        raise typer.Exit(code=1)
    for failure in result.failures:
        console.print(f"[red]{escape(failure)}[/red]")
    if result.partial:
        console.print("[red]Some commands could not be stored[/red]")
        raise typer.Exit(code=1)
    console.print("[green]Commands copied successfully![/green]")


@cloud_app.command("list")
def cloud_list(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Published space or item@space"),
    view: bool = typer.Option(False, "--view", "-v", help="Show code snippets"),
) -> None:
    """List the commands of a published space."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_for_cloud(selector)
        commands = _cloud(state).command_list(parsed)
    print_command_list(console, commands, header=str(parsed), view_source=view)


@cloud_app.command("info")
def cloud_info(
    ctx: typer.Context,
    selector: str = typer.Argument(..., help="Published space"),
) -> None:
    """Show a published space."""
    state = _state(ctx)
    with _fail_on_error():
        parsed = Selector.parse_for_cloud(selector)
        space = _cloud(state).space_find(parsed)
    print_space(console, space, header=str(parsed))


# --- Config sub-commands ---


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """Show current configuration (file values with CBOX_* overrides applied)."""
    config = _state(ctx).config
    if json_output:
        print(json_mod.dumps(config.as_dict()))
        return

    table = Table(title=str(default_config_path()))
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in config.as_dict().items():
        table.add_row(key, escape(str(value)) if value != "" else "[dim]-[/dim]")
    console.print(table)


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Config key"),
    value: str = typer.Argument(..., help="Config value"),
) -> None:
    """Set a configuration value."""
    config = _state(ctx).config
    with _fail_on_error():
        config.update(key, value)
    config.save()
    console.print(f"[green]Set[/green] {key} = {getattr(config, key)}")
