# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Beam CLI entry point.

Design:
- CLI owns process startup: config, logging, the extension registry.
- Kernel is the navigation engine (root page + capabilities injected).
- ui.Program owns the terminal while a page is shown.

Startup failures (bad config, broken manifest) print ``Error: ...`` and exit
1 before any interactive state exists.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
from prompt_toolkit.input import Input, create_input
from prompt_toolkit.output import Output, create_output

from . import __version__
from .commands import exit_with_error, register_extensions, write_output
from .config import YAMLConfig, load_config
from .errors import BeamError
from .executor import ExtensionRunner, OriginTarget
from .interfaces import Capabilities
from .kernel import Kernel
from .logs import configure_logging
from .pages import Action, ListItem, ListPage, Page, parse_item, parse_page
from .registry import (
    ExtensionRegistry,
    install_extension,
    load_registry,
    remove_extension,
)
from .root import build_root_list
from .store import HistoryStore
from .ui import SystemCapabilities, run_program
from .utils import format_table, parse_row, split_rows

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a command needs, built once at startup."""

    config: YAMLConfig
    registry: ExtensionRegistry
    runner: ExtensionRunner
    history: HistoryStore
    capabilities: Capabilities

    @classmethod
    def create(
        cls, config: YAMLConfig, registry: ExtensionRegistry
    ) -> AppContext:
        return cls(
            config=config,
            registry=registry,
            runner=ExtensionRunner(),
            history=HistoryStore(config.paths.history_path),
            capabilities=SystemCapabilities(),
        )


# ----------------------------
# Terminal handling
# ----------------------------


@contextmanager
def terminal_io() -> Iterator[tuple[Input | None, Output | None]]:
    """Keep the UI on the terminal when stdin or stdout is a pipe."""
    tty = None
    ui_input: Input | None = None
    ui_output: Output | None = None

    if not sys.stdin.isatty():
        try:
            tty = open("/dev/tty", encoding="utf-8")
        except OSError as e:
            raise click.ClickException(f"no terminal available: {e}") from e
        ui_input = create_input(stdin=tty)
    if not sys.stdout.isatty():
        ui_output = create_output(stdout=sys.stderr)

    try:
        yield ui_input, ui_output
    finally:
        if tty is not None:
            tty.close()


def show_page(ctx: click.Context, app: AppContext, page: Page) -> None:
    """Run ``page`` as the root of an interactive session, then exit."""
    kernel = Kernel(page, app.capabilities, app.config)
    with terminal_io() as (ui_input, ui_output):
        exit_code = run_program(kernel, input=ui_input, output=ui_output)
    if kernel.output is not None:
        click.echo(kernel.output)
    ctx.exit(exit_code)


def read_stdin() -> bytes:
    stdin = click.get_binary_stream("stdin")
    if stdin.isatty():
        return b""
    return stdin.read()


# ----------------------------
# beam run
# ----------------------------


@click.command(
    "run",
    context_settings={"ignore_unknown_options": True},
    short_help="Run a script, directory or URL as a Beam command.",
)
@click.argument("origin")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run_command(ctx: click.Context, origin: str, args: tuple[str, ...]):
    """Run ORIGIN (https URL, directory, executable or beam.json).

    Output that is a Beam page is shown interactively; anything else is
    written to stdout as is.
    """
    app: AppContext = ctx.obj
    data = read_stdin()
    try:
        output = app.runner.run_origin(origin, list(args), data)
    except BeamError as e:
        exit_with_error(ctx, e)
        return

    target = OriginTarget(origin, app.runner, data)
    try:
        page = parse_page(output, target)
    except ValueError:
        write_output(output)
        return
    show_page(ctx, app, page)


# ----------------------------
# beam filter
# ----------------------------


def _parse_with_nth(raw: str | None) -> list[int] | None:
    if not raw:
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise click.BadParameter(
            "expected comma separated field numbers", param_hint="--with-nth"
        ) from None


def build_filter_items(
    rows: Sequence[str],
    delimiter: str = "\t",
    with_nth: Sequence[int] | None = None,
    as_json: bool = False,
) -> list[ListItem]:
    """One list item per row; confirming an item prints its row."""
    items = []
    for idx, row in enumerate(rows):
        if as_json:
            try:
                item = parse_item(json.loads(row), idx)
            except ValueError as e:
                raise click.ClickException(f"invalid JSON: {e}") from e
            if not item.actions:
                item.actions.append(Action.print_text(row))
            items.append(item)
            continue

        title, subtitle, accessories = parse_row(row, delimiter, with_nth)
        items.append(
            ListItem(
                id=str(idx),
                title=title,
                subtitle=subtitle,
                accessories=accessories,
                actions=[Action.print_text(row)],
            )
        )
    return items


@click.command("filter", short_help="Pick one of the rows piped to stdin.")
@click.option("--delimiter", "-d", default=None, help="Field delimiter [default: tab].")
@click.option("--json", "as_json", is_flag=True, help="Read one JSON list item per row.")
@click.option("--with-nth", default=None, help="Fields to show, e.g. 1,3 (1-based).")
@click.option("--title", default="Beam", show_default=True, help="Page title.")
@click.pass_context
def filter_command(
    ctx: click.Context,
    delimiter: str | None,
    as_json: bool,
    with_nth: str | None,
    title: str,
):
    """Show piped rows as a list and print the one you confirm."""
    if as_json and (delimiter is not None or with_nth):
        raise click.UsageError(
            "--json cannot be combined with --delimiter or --with-nth"
        )

    stdin = click.get_binary_stream("stdin")
    if stdin.isatty():
        raise click.ClickException("no input provided")
    rows = split_rows(stdin.read())
    if not rows:
        raise click.ClickException("no rows in input")

    items = build_filter_items(
        rows,
        delimiter="\t" if delimiter is None else delimiter,
        with_nth=_parse_with_nth(with_nth),
        as_json=as_json,
    )
    show_page(ctx, ctx.obj, ListPage(title, items))


# ----------------------------
# beam extension
# ----------------------------


@click.group("extension", short_help="Manage installed extensions.")
def extension_group():
    """List, install and remove extensions."""


@extension_group.command("list")
@click.pass_obj
def list_extensions(app: AppContext):
    """List registered extensions."""
    rows = [
        [name, ext.title, str(ext.origin)]
        for name, ext in app.registry.items()
    ]
    if not rows:
        click.echo("No extensions installed")
        return
    click.echo(format_table(["Name", "Title", "Origin"], rows))


@extension_group.command("install")
@click.argument("name")
@click.argument(
    "origin", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
@click.pass_obj
def install_command(app: AppContext, name: str, origin: Path):
    """Copy the extension directory ORIGIN into the data directory as NAME."""
    try:
        target = install_extension(app.config, name, origin)
    except BeamError as e:
        raise click.ClickException(str(e)) from e
    logger.info("installed extension %s from %s", name, origin)
    click.echo(f"Installed {name} in {target}")


@extension_group.command("remove")
@click.argument("name")
@click.pass_obj
def remove_command(app: AppContext, name: str):
    """Delete the installed extension NAME."""
    try:
        remove_extension(app.config, name)
    except BeamError as e:
        raise click.ClickException(str(e)) from e
    logger.info("removed extension %s", name)
    click.echo(f"Removed {name}")


# ----------------------------
# Root group
# ----------------------------


def run_root(ctx: click.Context, app: AppContext) -> None:
    app.history.load()
    root = build_root_list(
        app.registry, app.config.root_items, app.history, app.runner
    )
    show_page(ctx, app, root)


def build_cli(app: AppContext) -> click.Group:
    """The ``beam`` command: core commands plus one group per extension."""

    @click.pass_context
    def callback(ctx: click.Context):
        if ctx.invoked_subcommand is None:
            run_root(ctx, app)

    group = click.Group(
        name="beam",
        callback=callback,
        invoke_without_command=True,
        help="Beam: a launcher for extension commands in the terminal.",
        context_settings={"obj": app},
    )
    click.version_option(__version__, prog_name="beam")(group)
    for command in (run_command, filter_command, extension_group):
        group.add_command(command)
    register_extensions(group, app.registry, app.runner)
    return group


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for the beam CLI."""
    try:
        config = load_config()
        configure_logging(config)
        registry = load_registry(config)
        cli = build_cli(AppContext.create(config, registry))
    except BeamError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    cli.main(args=list(argv) if argv is not None else None, prog_name="beam")
