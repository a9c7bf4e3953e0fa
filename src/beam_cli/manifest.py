# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Extension manifest model.

A manifest (``beam.json``) describes an extension: its title, the commands it
exposes with their typed params, the items it contributes to the root list,
and optionally a manifest-level entrypoint or subcommand table used when the
manifest itself is run as an origin.

Parsing is structural only: params keep whatever type string the manifest
declares so that the command-surface builder can reject it eagerly.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import AmbiguousManifestError, ManifestError, ManifestNotFoundError

MANIFEST_NAME = "beam.json"


class ParamType(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class Param:
    name: str
    type: str
    description: str = ""
    default: Any = None
    optional: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Param:
        _require_mapping(data, "param")
        return cls(
            name=_require_str(data, "name", "param"),
            type=str(data.get("type", "")),
            description=str(data.get("description", "")),
            default=data.get("default"),
            optional=_optional(data, "optional", bool, "param", False),
        )


@dataclass(frozen=True)
class SubCommand:
    entrypoint: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubCommand:
        _require_mapping(data, "subcommand")
        return cls(entrypoint=_require_str(data, "entrypoint", "subcommand"))


@dataclass(frozen=True)
class Command:
    """A named command; resolves through its entrypoint or its subcommands."""

    name: str
    title: str = ""
    description: str = ""
    hidden: bool = False
    entrypoint: str | None = None
    params: tuple[Param, ...] = ()
    subcommands: dict[str, SubCommand] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> Command:
        _require_mapping(data, f"command {name!r}")
        return cls(
            name=str(data.get("name") or name),
            title=str(data.get("title") or name),
            description=str(data.get("description", "")),
            hidden=_optional(data, "hidden", bool, f"command {name!r}", False),
            entrypoint=data.get("entrypoint") or None,
            params=tuple(
                Param.from_dict(p)
                for p in _optional(data, "params", list, f"command {name!r}", [])
            ),
            subcommands=_parse_subcommands(data.get("subcommands")),
        )


@dataclass(frozen=True)
class RootItem:
    extension: str
    command: str
    title: str
    with_: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RootItem:
        _require_mapping(data, "root item")
        params = _optional(data, "with", dict, "root item", {})
        return cls(
            extension=str(data.get("extension", "")),
            command=_require_str(data, "command", "root item"),
            title=_require_str(data, "title", "root item"),
            with_=dict(params),
        )


@dataclass(frozen=True)
class Manifest:
    title: str
    description: str = ""
    root_items: tuple[RootItem, ...] = ()
    commands: dict[str, Command] = field(default_factory=dict)
    entrypoint: str | None = None
    subcommands: dict[str, SubCommand] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Manifest:
        _require_mapping(data, "manifest")
        raw_commands = _optional(data, "commands", dict, "manifest", {})
        root_key = "rootItems" if "rootItems" in data else "root_items"
        return cls(
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            root_items=tuple(
                RootItem.from_dict(item)
                for item in _optional(data, root_key, list, "manifest", [])
            ),
            commands={
                name: Command.from_dict(name, spec)
                for name, spec in raw_commands.items()
            },
            entrypoint=data.get("entrypoint") or None,
            subcommands=_parse_subcommands(data.get("subcommands")),
        )

    def as_command(self) -> Command:
        """View the manifest itself as a command, for origin resolution."""
        return Command(
            name=self.title,
            title=self.title,
            description=self.description,
            entrypoint=self.entrypoint,
            subcommands=self.subcommands,
        )


# -----------------------
# Parsing helpers
# -----------------------


def _require_mapping(data: Any, what: str) -> None:
    if not isinstance(data, dict):
        raise ManifestError(f"{what} must be an object")


def _require_str(data: dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ManifestError(f"{what} is missing '{key}'")
    return value


_KIND_NAMES = {bool: "a boolean", dict: "a mapping", list: "a list"}


def _optional(
    data: dict[str, Any], key: str, kind: type, what: str, empty: Any
) -> Any:
    """Return ``data[key]``, ``empty`` when absent or null; any other type
    is an error."""
    value = data.get(key)
    if value is None:
        return empty
    if not isinstance(value, kind):
        raise ManifestError(f"{what} '{key}' must be {_KIND_NAMES[kind]}")
    return value


def _parse_subcommands(raw: Any) -> dict[str, SubCommand]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ManifestError("'subcommands' must be a mapping")
    return {name: SubCommand.from_dict(spec) for name, spec in raw.items()}


# -----------------------
# Filesystem
# -----------------------


def load_manifest(path: Path) -> Manifest:
    """Read and parse a manifest file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(f"could not read manifest {path}: {e}") from e
    return Manifest.from_dict(data)


def find_manifest(directory: Path) -> Path:
    """Return the single manifest inside ``directory``.

    ``<dir>/beam.json`` wins; otherwise exactly one ``<dir>/*/beam.json``
    must exist.
    """
    direct = directory / MANIFEST_NAME
    if direct.is_file():
        return direct

    candidates = sorted(
        p for p in directory.glob(f"*/{MANIFEST_NAME}") if p.is_file()
    )
    if not candidates:
        raise ManifestNotFoundError(f"no {MANIFEST_NAME} found in {directory}")
    if len(candidates) > 1:
        found = ", ".join(str(p.parent.name) for p in candidates)
        raise AmbiguousManifestError(
            f"multiple manifests found in {directory}: {found}"
        )
    return candidates[0]
