"""Interlingua CLI.

Commands:
    extract   module surface -> IDL document
    generate  module surface -> IDL document -> backends -> status report
    config    print the effective configuration and where each value came from

Standard output carries only command results (IDL documents, reports,
configuration); logs and diagnostics go to standard error.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from interlingua import __version__
from interlingua.cli._context import cli_build_scope
from interlingua.config.resolver import ConfigurationResolver, EffectiveConfiguration
from interlingua.dispatch.dispatcher import BackendDispatcher
from interlingua.extraction.extractor import InterfaceExtractor
from interlingua.idl.codec import encode_document
from interlingua.types.errors import IdlBuildError, InterlinguaError, InvalidConfigurationError
from interlingua.utils.logger import configure_logging


def _fail(error: InterlinguaError) -> None:
    click.echo(error.get_formatted_message(), err=True)
    if isinstance(error, IdlBuildError):
        for item_error in error.errors:
            click.echo(f"  {item_error}", err=True)
    sys.exit(1)


def _resolve_config(
    project: str,
    config_file: str | None,
    overrides: tuple[str, ...],
    interactive: bool,
) -> EffectiveConfiguration:
    return ConfigurationResolver(
        project_root=project,
        config_file=config_file,
        overrides=overrides,
        prompter=_prompt if interactive else None,
    ).resolve()


def _prompt(key: str) -> str:
    return click.prompt(f"Value for required setting '{key}'", default="", show_default=False, err=True)


project_option = click.option(
    "--project",
    "-p",
    default=".",
    type=click.Path(file_okay=False),
    help="Project root (holds .interlingua/config.json)",
)
config_file_option = click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(dir_okay=False),
    help="Explicit configuration file",
)
set_option = click.option(
    "--set",
    "overrides",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override a setting (dotted keys, JSON values); repeatable",
)


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="Interlingua", message="%(prog)s v%(version)s")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Interlingua - public interface extraction and binding generation.

    Extracts the public surface of a library into a language-neutral IDL
    and hands it to pluggable code-generation backends.
    """
    configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("surface", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False), help="Write the IDL here instead of stdout")
@click.option("--ignore", multiple=True, help="Declaration name to exclude; repeatable")
def extract(surface: str, output: str | None, ignore: tuple[str, ...]) -> None:
    """Extract the IDL document of a module surface.

    SURFACE is the scanner's JSON description of the module. Exits with
    status 1 when any diagnostic was recorded; the document is written
    either way.
    """
    try:
        extractor = InterfaceExtractor(ignore=ignore)
        with cli_build_scope():
            document = extractor.extract_path(surface)
    except InterlinguaError as e:
        _fail(e)
        return

    text = encode_document(document)
    if output:
        Path(output).write_text(text, encoding="utf-8")
    else:
        click.echo(text, nl=False)

    for diagnostic in document.diagnostics:
        click.echo(diagnostic.render(), err=True)
    if document.diagnostics:
        sys.exit(1)


@cli.command()
@click.argument("surface", type=click.Path(exists=True, dir_okay=False))
@project_option
@config_file_option
@set_option
@click.option("--backend", "-b", "backend_ids", multiple=True, help="Backend to run (default: all configured); repeatable")
@click.option("--interactive/--no-interactive", default=False, help="Prompt for missing required settings")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
def generate(
    surface: str,
    project: str,
    config_file: str | None,
    overrides: tuple[str, ...],
    backend_ids: tuple[str, ...],
    interactive: bool,
    as_json: bool,
) -> None:
    """Extract SURFACE and run backends against the resulting IDL.

    Exits with status 1 if extraction reports diagnostics or any backend
    fails.
    """
    try:
        config = _resolve_config(project, config_file, overrides, interactive)
        ids = list(backend_ids) or config.backend_ids
        if not ids:
            raise click.UsageError("no backends requested; pass --backend or configure 'backends'")

        with cli_build_scope(config.module_path):
            extractor = InterfaceExtractor(ignore=config.ignore)
            document = extractor.extract_path(surface)
            if document.module_path != config.module_path:
                raise InvalidConfigurationError(
                    f"surface describes '{document.module_path}' but module_path is "
                    f"'{config.module_path}'",
                    setting="module_path",
                )
            document.require_clean()

            dispatcher = BackendDispatcher.from_configuration(config)
            report = dispatcher.dispatch(document, [config.backend(b) for b in ids])
    except InterlinguaError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo(report.summary())

    for outcome in report.failed:
        if outcome.diagnostic_output:
            click.echo(f"--- {outcome.backend_id} stderr ---", err=True)
            click.echo(outcome.error.diagnostic_text, err=True)
    if not report.all_succeeded:
        sys.exit(1)


@cli.command("config")
@project_option
@config_file_option
@set_option
@click.option("--interactive/--no-interactive", default=False, help="Prompt for missing required settings")
def config_command(
    project: str, config_file: str | None, overrides: tuple[str, ...], interactive: bool
) -> None:
    """Print the effective configuration with per-setting provenance."""
    try:
        config = _resolve_config(project, config_file, overrides, interactive)
    except InterlinguaError as e:
        _fail(e)
        return
    click.echo(json.dumps(config.to_dict(), indent=2))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
