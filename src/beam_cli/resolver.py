# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Origin resolution.

Turns an origin (https URL, directory, executable file or manifest) plus
trailing arguments into the concrete executable to spawn. Precedence, first
match wins:

1. remote https URL: download to a private temp file and run it
2. directory: locate its single beam.json
3. any file that is not beam.json: run it directly
4. manifest with an entrypoint: run the entrypoint
5. manifest with subcommands: the first argument picks the entrypoint

Entrypoints that point at another directory or manifest are resolved again
from step 2.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from urllib.parse import urlparse

import httpx

from .errors import FetchError, ResolutionError, UsageError
from .manifest import (
    MANIFEST_NAME,
    Command,
    Manifest,
    find_manifest,
    load_manifest,
)

logger = logging.getLogger(__name__)

HttpGet = Callable[[str], tuple[int, bytes]]

SCRIPT_NAME = "beam-command"
MAX_DEPTH = 16


class OriginKind(Enum):
    REMOTE = auto()
    DIRECTORY = auto()
    EXECUTABLE = auto()
    MANIFEST_ENTRYPOINT = auto()
    MANIFEST_DISPATCHER = auto()


@dataclass(frozen=True)
class ResolvedCommand:
    executable: Path
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [str(self.executable), *self.args]


def is_remote(origin: str) -> bool:
    parsed = urlparse(origin)
    return parsed.scheme == "https" and bool(parsed.netloc)


def classify_origin(origin: str) -> OriginKind:
    """Report which resolution step applies to ``origin``."""
    if is_remote(origin):
        return OriginKind.REMOTE
    kind, _ = _classify_local(Path(origin))
    return kind


def _classify_local(path: Path) -> tuple[OriginKind, Manifest | None]:
    if path.is_dir():
        return OriginKind.DIRECTORY, None
    if path.name != MANIFEST_NAME:
        return OriginKind.EXECUTABLE, None
    manifest = load_manifest(path)
    if manifest.entrypoint:
        return OriginKind.MANIFEST_ENTRYPOINT, manifest
    return OriginKind.MANIFEST_DISPATCHER, manifest


def httpx_get(url: str) -> tuple[int, bytes]:
    response = httpx.get(url, follow_redirects=True)
    return response.status_code, response.content


class CommandResolver:
    """Resolves origins and commands to executables."""

    def __init__(
        self,
        http_get: HttpGet | None = None,
        manifest_finder: Callable[[Path], Path] = find_manifest,
        max_depth: int = MAX_DEPTH,
    ):
        """Initialize resolver.

        Args:
            http_get: fetches a URL and returns (status, body)
            manifest_finder: returns exactly one manifest path in a
                directory, or raises
            max_depth: how many nested manifests may be followed
        """
        self.http_get = http_get or httpx_get
        self.manifest_finder = manifest_finder
        self.max_depth = max_depth

    @contextmanager
    def resolve(
        self, origin: str, args: Sequence[str] = ()
    ) -> Iterator[ResolvedCommand]:
        """Resolve ``origin``; any downloaded script lives as long as the
        context does."""
        if is_remote(origin):
            with self._fetch_script(origin) as script:
                yield ResolvedCommand(script, tuple(args))
            return

        yield self.resolve_local(Path(origin), args)

    def resolve_local(
        self, path: Path, args: Sequence[str] = (), depth: int = 0
    ) -> ResolvedCommand:
        if depth > self.max_depth:
            raise ResolutionError(f"manifests nested too deeply at {path}")
        if not path.exists():
            raise ResolutionError(f"no such file or directory: {path}")

        kind, manifest = _classify_local(path)
        if kind is OriginKind.DIRECTORY:
            return self.resolve_local(self.manifest_finder(path), args, depth)
        if kind is OriginKind.EXECUTABLE:
            return ResolvedCommand(path, tuple(args))

        assert manifest is not None
        if kind is OriginKind.MANIFEST_ENTRYPOINT:
            return self._follow(
                path.parent / manifest.entrypoint, args, depth
            )
        return self.resolve_command(
            manifest.as_command(), path.parent, args, depth
        )

    def resolve_command(
        self,
        command: Command,
        base_dir: Path,
        args: Sequence[str] = (),
        depth: int = 0,
    ) -> ResolvedCommand:
        """Apply the entrypoint / subcommand rules to one command."""
        args = list(args)
        if command.entrypoint:
            target = base_dir / command.entrypoint
        elif command.subcommands:
            if not args:
                raise UsageError(
                    "No subcommand provided", command.subcommands
                )
            name, args = args[0], args[1:]
            sub = command.subcommands.get(name)
            if sub is None:
                raise ResolutionError(f"subcommand not found: {name}")
            target = base_dir / sub.entrypoint
        else:
            raise ResolutionError(
                f"command {command.name!r} declares neither an entrypoint "
                "nor subcommands"
            )

        return self._follow(target, args, depth)

    def _follow(
        self, target: Path, args: Sequence[str], depth: int
    ) -> ResolvedCommand:
        """Run ``target`` directly, or resolve again if it is a manifest."""
        if target.is_dir() or target.name == MANIFEST_NAME:
            return self.resolve_local(target, args, depth + 1)
        return ResolvedCommand(target, tuple(args))

    # ----------------------------------------------------------------
    # Remote scripts
    # ----------------------------------------------------------------

    @contextmanager
    def _fetch_script(self, url: str) -> Iterator[Path]:
        try:
            status, body = self.http_get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"could not fetch script: {e}") from e
        if status != 200:
            raise FetchError(f"could not fetch script: HTTP {status}")

        with tempfile.TemporaryDirectory(prefix="beam-") as tmp_dir:
            script = Path(tmp_dir) / SCRIPT_NAME
            fd = os.open(script, os.O_CREAT | os.O_WRONLY | os.O_EXCL, 0o700)
            with os.fdopen(fd, "wb") as f:
                f.write(body)
            logger.debug("fetched %s to %s", url, script)
            yield script
