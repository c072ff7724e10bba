"""Flake command facade."""

from flakegraph.commands.flake import FlakeCommands
from flakegraph.commands.types import CommandResult, CommandStatus

__all__ = ["CommandResult", "CommandStatus", "FlakeCommands"]
