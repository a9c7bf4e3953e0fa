# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Headless command surface built from extension manifests.

Every extension becomes a click group with one subcommand per manifest
command and one option per param:

    beam <extension> <command> --<string-param> TEXT --<flag>/--no-<flag>

All params are validated while the groups are built, so a manifest with a
bad param type or default never registers half of its commands.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import click

from .errors import BeamError, ExtensionError, ManifestError, UsageError
from .executor import ExtensionRunner
from .manifest import Command, Param, ParamType
from .registry import Extension

logger = logging.getLogger(__name__)

CORE_COMMANDS = frozenset({"run", "filter", "extension"})


@dataclass(frozen=True)
class ParamSpec:
    """A manifest param checked against the supported types."""

    name: str
    dest: str
    type: ParamType
    description: str
    default: Any
    required: bool

    @classmethod
    def from_param(cls, param: Param, dest: str, where: str) -> ParamSpec:
        try:
            kind = ParamType(param.type)
        except ValueError:
            raise ManifestError(
                f"{where}: param {param.name!r} has unsupported type "
                f"{param.type!r}"
            ) from None

        expected = str if kind is ParamType.STRING else bool
        if param.default is not None and not isinstance(param.default, expected):
            raise ManifestError(
                f"{where}: default of param {param.name!r} must be "
                f"a {kind.value}"
            )

        if not param.optional:
            default = None
        elif param.default is not None:
            default = param.default
        else:
            default = "" if kind is ParamType.STRING else False

        return cls(
            name=param.name,
            dest=dest,
            type=kind,
            description=param.description,
            default=default,
            required=not param.optional,
        )

    def to_option(self) -> click.Option:
        kwargs: dict[str, Any] = {
            "required": self.required,
            "help": self.description or None,
        }
        # Required options get no default at all.
        if not self.required:
            kwargs["default"] = self.default
        if self.type is ParamType.BOOLEAN:
            return click.Option(
                [f"--{self.name}/--no-{self.name}", self.dest], **kwargs
            )
        return click.Option(
            [f"--{self.name}", self.dest],
            type=click.STRING,
            show_default=bool(self.default),
            **kwargs,
        )


def build_param_specs(command: Command, where: str) -> list[ParamSpec]:
    specs: list[ParamSpec] = []
    seen: set[str] = set()
    for idx, param in enumerate(command.params):
        if param.name in seen:
            raise ManifestError(f"{where}: duplicate param {param.name!r}")
        seen.add(param.name)
        specs.append(ParamSpec.from_param(param, f"param_{idx}", where))
    return specs


def write_output(data: bytes) -> None:
    """Write extension output to stdout untouched."""
    stream = click.get_binary_stream("stdout")
    stream.write(data)
    stream.flush()


def exit_with_error(ctx: click.Context, error: BeamError) -> None:
    """Report a run failure the way the CLI does everywhere."""
    if isinstance(error, UsageError):
        click.echo(error.format_usage(), err=True)
        ctx.exit(error.exit_code)
    logger.warning("command failed: %s", error)
    exc = click.ClickException(str(error))
    if isinstance(error, ExtensionError) and error.exit_code > 0:
        exc.exit_code = error.exit_code
    raise exc


def _build_command(
    extension: Extension, command: Command, runner: ExtensionRunner
) -> click.Command:
    where = f"extension {extension.name!r}, command {command.name!r}"
    specs = build_param_specs(command, where)

    @click.pass_context
    def callback(ctx: click.Context, args: tuple[str, ...], **values: Any):
        params = {spec.name: values[spec.dest] for spec in specs}
        try:
            output = runner.run_extension(
                extension, command.name, params, list(args)
            )
        except BeamError as e:
            exit_with_error(ctx, e)
            return
        write_output(output)

    options: list[click.Parameter] = [spec.to_option() for spec in specs]
    options.append(click.Argument(["args"], nargs=-1))
    return click.Command(
        name=command.name,
        callback=callback,
        params=options,
        help=command.description or command.title,
        short_help=command.title,
        hidden=command.hidden,
    )


def build_extension_group(
    extension: Extension, runner: ExtensionRunner
) -> click.Group:
    """One click group for ``extension``; raises ManifestError on bad params."""
    commands = [
        _build_command(extension, cmd, runner)
        for cmd in extension.manifest.commands.values()
    ]
    group = click.Group(
        name=extension.name,
        help=extension.manifest.description or extension.title,
        short_help=extension.title,
    )
    for cmd in commands:
        group.add_command(cmd)
    return group


def register_extensions(
    group: click.Group,
    registry: Mapping[str, Extension],
    runner: ExtensionRunner,
) -> list[click.Group]:
    """Attach one group per extension to ``group``.

    Every group is built before any is attached.
    """
    built = [build_extension_group(ext, runner) for ext in registry.values()]
    for sub in built:
        if sub.name in CORE_COMMANDS or sub.name in group.commands:
            raise ManifestError(
                f"extension {sub.name!r} clashes with a built-in command"
            )
    for sub in built:
        group.add_command(sub)
    return built
