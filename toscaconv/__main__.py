#!/usr/bin/env python
# Copyright (c) 2020 Adam Souzis
# SPDX-License-Identifier: MIT
"""
Converts the node templates of a TOSCA service template to entity specifications.
"""
import json
import logging
import os
import os.path
import sys
import traceback
from typing import Optional

import rich_click as click

from . import DefaultNames, __version__, get_settings_path, logs
from .converter import NodeConverter, load_node_templates
from .logs import Levels
from .resources import PackageResourceResolver, ResourceLoader
from .util import ToscaConvError, get_base_dir
from .yamlloader import dump_yaml, load_settings

click.rich_click.STYLE_METAVAR = "dark_orange"
click.rich_click.STYLE_OPTION_ENVVAR = "dim dark_orange"
click.rich_click.STYLE_OPTION = "green"
click.rich_click.STYLE_COMMAND = "bold green"
if os.environ.get("PY_COLORS") == "0":
    click.rich_click.COLOR_SYSTEM = None  # disable colors
click.rich_click.OPTION_ENVVAR_FIRST = False
click.rich_click.ENVVAR_STRING = "(${})"


def detect_log_level(loglevel: Optional[str], quiet: bool, verbose: int) -> Levels:
    if quiet:
        effective_log_level = Levels.CRITICAL
    else:
        loglevel_env = os.getenv("TOSCACONV_LOGGING")
        if loglevel_env:
            effective_log_level = Levels[loglevel_env.upper()]
        else:
            levels = [Levels.INFO, Levels.VERBOSE, Levels.DEBUG, Levels.TRACE]
            effective_log_level = levels[min(verbose, 3)]
    if loglevel:
        effective_log_level = Levels[loglevel.upper()]
    return effective_log_level


def detect_verbose_level(effective_log_level: Levels) -> int:
    if effective_log_level is Levels.VERBOSE:
        verbose = 1
    elif effective_log_level is Levels.DEBUG:
        verbose = 2
    elif effective_log_level is Levels.TRACE:
        verbose = 3
    elif effective_log_level is Levels.CRITICAL:
        verbose = -1
    else:
        verbose = 0
    return verbose


@click.group()
@click.pass_context
@click.option(
    "-v",
    "--verbose",
    count=True,
    metavar="",
    help="Verbose mode (-vvv for more)",
)
@click.option(
    "-q",
    "--quiet",
    default=False,
    is_flag=True,
    help="Only output errors to the stdout",
)
@click.option(
    "--loglevel",
    envvar="TOSCACONV_LOGGING",
    show_envvar=True,
    type=click.Choice([level.name for level in Levels], case_sensitive=False),
    help="Log level (overrides -v)",
)
@click.option(
    "--logfile",
    default=None,
    help="Log messages to file (at DEBUG level)",
)
@click.option(
    "--config",
    envvar="TOSCACONV_CONFIG",
    show_envvar=True,
    type=click.Path(exists=False),
    help=f"Path to the settings file (default: ./{DefaultNames.LocalConfig})",
)
def cli(ctx, verbose=0, quiet=False, loglevel=None, logfile=None, config=None):
    """A command line tool for converting TOSCA node templates to entity specifications."""
    ctx.ensure_object(dict)
    effective_log_level = detect_log_level(loglevel, quiet, verbose)
    ctx.obj["verbose"] = detect_verbose_level(effective_log_level)
    if logfile:
        logs.add_log_file(logfile, effective_log_level)
    logs.set_console_log_level(effective_log_level)
    logging.debug("initialized logging")
    try:
        ctx.obj["settings"] = load_settings(get_settings_path(config))
    except ToscaConvError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.pass_context
@click.argument(
    "template",
    default=DefaultNames.ServiceTemplate,
    type=click.Path(exists=True, dir_okay=False),
)
@click.option("--node", "node_ids", multiple=True, help="Only convert this node template (repeatable).")
@click.option(
    "--catalog",
    type=click.Path(exists=True, dir_okay=False),
    envvar="TOSCACONV_CATALOG",
    show_envvar=True,
    help=f"Catalog of pre-built entity specifications (default: {DefaultNames.Catalog} next to TEMPLATE).",
)
@click.option(
    "--base-dir",
    type=click.Path(exists=True, file_okay=False),
    help="Directory lifecycle scripts are relative to (default: TEMPLATE's directory).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
)
def convert(ctx, template, node_ids=(), catalog=None, base_dir=None, output_format="yaml"):
    """Convert the node templates in TEMPLATE and print the entity specifications."""
    settings = ctx.obj["settings"]
    template_dir = get_base_dir(os.path.abspath(template))
    if not catalog:
        catalog = settings.get("catalog")
    if not catalog and os.path.isfile(os.path.join(template_dir, DefaultNames.Catalog)):
        catalog = os.path.join(template_dir, DefaultNames.Catalog)

    loader = ResourceLoader(
        base_dir or settings.get("base_dir") or template_dir,
        settings.get("resource_package"),
    )
    try:
        converter = NodeConverter.from_settings(settings, loader, catalog)
        node_templates = load_node_templates(template)
        if node_ids:
            missing = [n for n in node_ids if n not in node_templates]
            if missing:
                raise click.UsageError(f"node templates not found in {template}: {missing}")
            node_templates = {n: node_templates[n] for n in node_ids}
        specs = converter.convert_topology(node_templates)
    except ToscaConvError as e:
        raise click.ClickException(str(e))

    services = [spec.to_dict() for spec in specs.values()]
    if output_format == "json":
        click.echo(json.dumps(dict(services=services), indent=2))
    else:
        dump_yaml(dict(services=services), sys.stdout)


@cli.command()
@click.argument("pattern")
@click.option(
    "--package",
    default="toscaconv",
    show_default=True,
    help="Python package to search with classpath*: patterns.",
)
def resources(pattern, package):
    """List the resources matching PATTERN, e.g. 'classpath*:templates/**/*.yaml'."""
    try:
        found = PackageResourceResolver(package).list(pattern)
    except ToscaConvError as e:
        raise click.ClickException(str(e))
    for resource in found:
        click.echo(str(resource))


@cli.command()
def version():
    """Print the current version."""
    click.echo(f"toscaconv version {__version__()}")


def main():
    obj: dict = {}
    try:
        rv = cli(standalone_mode=False, obj=obj)
        sys.exit(rv or 0)
    except click.Abort:
        click.secho("Aborted!", fg="red", err=True)
        sys.exit(1)
    except click.ClickException as e:
        if obj.get("verbose", 0) > 0:
            traceback.print_exc(file=sys.stderr)
        click.secho(f"Error: {e.format_message()}", fg="red", err=True)
        sys.exit(e.exit_code)
    except Exception as err:
        if obj.get("verbose", 0) > 0:
            traceback.print_exc(file=sys.stderr)
        else:
            click.secho("Exiting with error: " + str(err), fg="red", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
