# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Extension registry.

Extensions come from two places:
- directories installed under <data>/extensions/<name>
- ``extensions`` entries in config.yaml (name -> path), which win on clash

The registry is built once at startup and is read-only afterwards.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from .config import YAMLConfig
from .errors import ManifestError
from .manifest import MANIFEST_NAME, Manifest, find_manifest, load_manifest


@dataclass(frozen=True)
class Extension:
    name: str
    origin: Path
    manifest_path: Path
    manifest: Manifest

    @property
    def root_dir(self) -> Path:
        return self.manifest_path.parent

    @property
    def title(self) -> str:
        return self.manifest.title or self.name


def load_extension(name: str, origin: Path) -> Extension:
    """Load one extension from a directory or a beam.json path."""
    if origin.is_dir():
        manifest_path = find_manifest(origin)
    elif origin.name == MANIFEST_NAME and origin.is_file():
        manifest_path = origin
    else:
        raise ManifestError(
            f"extension {name!r}: {origin} is not a directory "
            f"or {MANIFEST_NAME}"
        )
    return Extension(
        name=name,
        origin=origin,
        manifest_path=manifest_path,
        manifest=load_manifest(manifest_path),
    )


class ExtensionRegistry(Mapping[str, Extension]):
    """Read-only mapping of extension name to Extension, sorted by name."""

    def __init__(self, extensions: Mapping[str, Extension] | None = None):
        self._extensions = dict(sorted((extensions or {}).items()))

    def __getitem__(self, name: str) -> Extension:
        return self._extensions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._extensions)

    def __len__(self) -> int:
        return len(self._extensions)


def discover_installed(extensions_dir: Path) -> dict[str, Path]:
    """Installed extension directories, name -> path."""
    if not extensions_dir.is_dir():
        return {}
    return {
        p.name: p
        for p in sorted(extensions_dir.iterdir())
        if p.is_dir() and not p.name.startswith(".")
    }


def load_registry(config: YAMLConfig) -> ExtensionRegistry:
    """Build the registry; any broken extension aborts startup."""
    origins = discover_installed(config.paths.extensions_dir)
    for name, raw in config.extensions.items():
        path = Path(raw).expanduser()
        if not path.is_absolute():
            path = config.paths.config_dir / path
        origins[name] = path

    return ExtensionRegistry(
        {name: load_extension(name, path) for name, path in origins.items()}
    )


# -----------------------
# Install / remove
# -----------------------


def install_extension(config: YAMLConfig, name: str, origin: Path) -> Path:
    """Copy a local extension directory into the extensions dir."""
    if not origin.is_dir():
        raise ManifestError(f"{origin} is not a directory")
    # Validates the manifest before anything is copied.
    load_extension(name, origin)

    target = config.paths.extensions_dir / name
    if target.exists():
        raise ManifestError(f"extension {name!r} is already installed")

    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(origin, target)
    return target


def remove_extension(config: YAMLConfig, name: str) -> None:
    target = config.paths.extensions_dir / name
    if not target.is_dir():
        raise ManifestError(f"extension {name!r} is not installed")
    shutil.rmtree(target)
