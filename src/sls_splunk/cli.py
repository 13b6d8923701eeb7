"""Command-line interface for sls-splunk.

Runs the same transformation the lifecycle hooks perform, against a
``serverless.yml`` on disk, so the generated resources can be inspected
without deploying.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
import yaml

from .exceptions import SplunkPluginError
from .plugin import SplunkPlugin
from .provisioner import cleanup_artifact
from .resources import collect_declarations
from .service import ServiceConfig, dump_yaml

FILE_OPTION = click.option(
    "--file",
    "-f",
    "file_path",
    default="serverless.yml",
    show_default=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Service manifest.",
)
STAGE_OPTION = click.option("--stage", "-s", help="Stage (default: provider.stage, then dev).")


def _load_service(file_path: str) -> ServiceConfig:
    try:
        return ServiceConfig.from_yaml(Path(file_path).read_text())
    except (SplunkPluginError, yaml.YAMLError) as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.version_option(package_name="sls-splunk")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Forward function logs to Splunk via CloudWatch Logs subscriptions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@FILE_OPTION
@STAGE_OPTION
@click.option(
    "--service-path",
    type=click.Path(file_okay=False),
    help="Deployment working directory (default: directory of the manifest).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    help="Write the transformed manifest here instead of stdout.",
)
def render(
    file_path: str,
    stage: str | None,
    service_path: str | None,
    output: str | None,
) -> None:
    """Print the manifest with the forwarder and its resources added."""
    service = _load_service(file_path)
    path = Path(service_path) if service_path else Path(file_path).resolve().parent

    def _log(message: str) -> None:
        click.echo(message, err=True)

    try:
        plugin = SplunkPlugin(service, {"stage": stage}, service_path=path, log=_log)
        plugin.start()
    except SplunkPluginError as e:
        raise click.ClickException(str(e)) from e

    document = dump_yaml(service.to_dict())
    if output:
        Path(output).write_text(document)
        click.echo(f"Wrote {output}", err=True)
    else:
        click.echo(document)


@cli.command()
@FILE_OPTION
@STAGE_OPTION
def plan(file_path: str, stage: str | None) -> None:
    """Preview the resources that would be merged (like terraform plan)."""
    service = _load_service(file_path)

    try:
        plugin = SplunkPlugin(service, {"stage": stage}, log=lambda _msg: None)
        declarations = collect_declarations(
            service, plugin.stage, plugin.settings, plugin.cicd, log=lambda _msg: None
        )
    except SplunkPluginError as e:
        raise click.ClickException(str(e)) from e

    if plugin.settings.is_excluded(plugin.stage):
        click.echo(f"Splunk is ignored for {plugin.stage} stage. No changes.")
        return

    existing = (service.resources or {}).get("Resources") or {}
    click.echo(f"Plan: {len(declarations)} resource(s) for stage {plugin.stage}\n")
    for logical_id, declaration in declarations.items():
        symbol = "~" if logical_id in existing else "+"
        action = "replace" if logical_id in existing else "create"
        click.echo(f"  {symbol} {action} {declaration.type}: {logical_id}")

    if plugin.settings.arn:
        click.echo(f"\nForwarder: existing {plugin.settings.arn}")
    else:
        click.echo("\nForwarder: + create function 'splunk'")


@cli.command()
@click.option(
    "--service-path",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Deployment working directory.",
)
@click.option("--suffix", default=".js", show_default=True, help="Staged artifact suffix.")
def cleanup(service_path: str, suffix: str) -> None:
    """Remove the staged forwarder artifact."""
    try:
        removed = cleanup_artifact(service_path, suffix)
    except SplunkPluginError as e:
        raise click.ClickException(str(e)) from e

    if removed:
        click.echo("Removed temporary Splunk function file")
    else:
        click.echo("No temporary Splunk function file found")


if __name__ == "__main__":
    cli()
