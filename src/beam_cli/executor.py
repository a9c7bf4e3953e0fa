# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Subprocess-backed execution of extensions.

This module provides:
- SubprocessExecutor: spawn an argv, feed stdin, capture stdout in full
- ExtensionRunner: resolve an extension command or an origin, then run it

Output is returned as raw bytes. Turning it into a page, or writing it to the
terminal, is up to the caller. There is no timeout: a hung
extension keeps its page loading.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .errors import ExtensionError, ResolutionError
from .interfaces import Executor
from .manifest import Command
from .registry import Extension
from .resolver import CommandResolver, ResolvedCommand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    exit_code: int
    stdout: bytes
    stderr: str
    started_at: str
    duration_ms: int
    command: str = ""

    def check(self) -> bytes:
        """Return stdout, or raise ExtensionError on a non-zero exit."""
        if self.exit_code != 0:
            raise ExtensionError(self.command, self.exit_code, self.stderr)
        return self.stdout


class SubprocessExecutor:
    """Subprocess implementation of Executor protocol."""

    def __init__(self, env: Mapping[str, str] | None = None):
        """Initialize executor.

        Args:
            env: extra environment variables for every spawned process
        """
        self.env = dict(env or {})

    def _build_env(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self.env)
        return env

    def run(
        self,
        argv: Sequence[str],
        input: bytes = b"",
        cwd: str | Path | None = None,
    ) -> RunResult:
        """Run argv, write ``input`` to its stdin and capture stdout.

        Args:
            argv: executable followed by its arguments
            input: bytes written to the process's stdin
            cwd: working directory for the command (default: current directory)

        Returns:
            RunResult with the raw stdout bytes
        """
        env = self._build_env()
        started_at = datetime.now().isoformat()
        start_ts = time.time()
        command = str(argv[0]) if argv else ""

        try:
            proc = subprocess.run(
                list(argv),
                input=input,
                capture_output=True,
                env=env,
                cwd=cwd,
            )
        except OSError as e:
            duration_ms = int((time.time() - start_ts) * 1000)
            logger.warning("could not start %s: %s", command, e)
            return RunResult(
                exit_code=1,
                stdout=b"",
                stderr=f"Error executing command: {e}",
                started_at=started_at,
                duration_ms=duration_ms,
                command=command,
            )

        duration_ms = int((time.time() - start_ts) * 1000)
        logger.debug(
            "%s exited with %s after %sms", command, proc.returncode,
            duration_ms,
        )
        return RunResult(
            exit_code=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr.decode("utf-8", errors="replace"),
            started_at=started_at,
            duration_ms=duration_ms,
            command=command,
        )


class ExtensionRunner:
    """Resolves extension commands and origins, then executes them."""

    def __init__(
        self,
        resolver: CommandResolver | None = None,
        executor: Executor | None = None,
    ):
        self.resolver = resolver or CommandResolver()
        self.executor = executor or SubprocessExecutor()

    def _execute(self, resolved: ResolvedCommand, input: bytes) -> bytes:
        return self.executor.run(resolved.argv, input=input).check()

    def run_extension(
        self,
        extension: Extension,
        command: str,
        params: Mapping[str, Any] | None = None,
        args: Sequence[str] = (),
    ) -> bytes:
        """Run one manifest command of ``extension``.

        The command receives ``{"command": ..., "params": {...}}`` as JSON on
        stdin. Commands declaring their own entrypoint or subcommands resolve
        relative to the manifest directory; all others go through the
        manifest-level entrypoint with the command name as first argument.
        """
        spec: Command | None = extension.manifest.commands.get(command)
        if spec is None:
            raise ResolutionError(
                f"extension {extension.name!r} has no command {command!r}"
            )

        payload = json.dumps(
            {"command": command, "params": dict(params or {})}
        ).encode("utf-8")

        if spec.entrypoint or spec.subcommands:
            resolved = self.resolver.resolve_command(
                spec, extension.root_dir, args
            )
        else:
            resolved = self.resolver.resolve_local(
                extension.manifest_path, [command, *args]
            )
        return self._execute(resolved, payload)

    def run_origin(
        self, origin: str, args: Sequence[str] = (), input: bytes = b""
    ) -> bytes:
        """Resolve and run an origin, passing ``input`` through verbatim."""
        with self.resolver.resolve(origin, args) as resolved:
            return self._execute(resolved, input)


# ----------------------------
# Page targets
# ----------------------------


class ExtensionTarget:
    """Runs commands of one registered extension."""

    def __init__(self, extension: Extension, runner: ExtensionRunner):
        self.extension = extension
        self.runner = runner

    @property
    def title(self) -> str:
        return self.extension.title

    def run(
        self,
        command: str | None,
        params: Mapping[str, Any],
        args: Sequence[str],
    ) -> bytes:
        if not command:
            raise ResolutionError(
                f"no command given for extension {self.extension.name!r}"
            )
        return self.runner.run_extension(self.extension, command, params, args)


class OriginTarget:
    """Reruns an origin, as ``beam run`` does.

    Without a command the origin gets ``input`` verbatim. With one, the
    command name leads the args and stdin carries the JSON payload.
    """

    def __init__(
        self, origin: str, runner: ExtensionRunner, input: bytes = b""
    ):
        self.origin = origin
        self.runner = runner
        self.input = input

    @property
    def title(self) -> str:
        return self.origin

    def run(
        self,
        command: str | None,
        params: Mapping[str, Any],
        args: Sequence[str],
    ) -> bytes:
        if not command:
            return self.runner.run_origin(self.origin, args, self.input)
        payload = json.dumps(
            {"command": command, "params": dict(params)}
        ).encode("utf-8")
        return self.runner.run_origin(self.origin, [command, *args], payload)
