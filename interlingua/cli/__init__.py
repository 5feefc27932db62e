"""Command line interface."""

from interlingua.cli.main import cli, main

__all__ = ["cli", "main"]
