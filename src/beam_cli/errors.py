# Beam - Terminal Command Launcher
# Copyright (c) 2025
# TriFactoria (Andrew Blankfield)
#
# Licensed under the Business Source License 1.1 (BSL 1.1).
# You may use, modify, and redistribute this file under the terms of the BSL.
# On the Change Date (2029-01-01), this file will be licensed under
# the Apache License, Version 2.0.

"""
Exception hierarchy for Beam.

Three classes of failure are kept apart:
- startup errors (ManifestError, ConfigError) abort before the UI exists
- runtime errors (ExtensionError, ResolutionError, FetchError) are shown
  in place as an error page
- UsageError carries a documented exit code for the ``run`` command
"""

from __future__ import annotations

from collections.abc import Iterable


class BeamError(Exception):
    """Base class for all Beam errors."""


class ConfigError(BeamError):
    """The user configuration could not be loaded."""


class ManifestError(BeamError):
    """A manifest is unreadable or declares something we cannot register."""


class ManifestNotFoundError(ManifestError):
    """No manifest could be located in a directory."""


class AmbiguousManifestError(ManifestError):
    """More than one candidate manifest was found in a directory."""


class ResolutionError(BeamError):
    """An origin or command could not be resolved to an executable."""


class FetchError(ResolutionError):
    """A remote origin could not be downloaded."""


class UsageError(ResolutionError):
    """A dispatcher manifest was invoked without a subcommand name."""

    exit_code = 1

    def __init__(self, message: str, subcommands: Iterable[str] = ()):
        super().__init__(message)
        self.subcommands = sorted(subcommands)

    def format_usage(self) -> str:
        lines = [str(self), "Subcommands:"]
        lines.extend(f"  - {name}" for name in self.subcommands)
        return "\n".join(lines)


class ExtensionError(BeamError):
    """An extension process exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        message = f"{command} exited with code {exit_code}"
        if stderr.strip():
            message += f"\n\n{stderr.strip()}"
        super().__init__(message)
