"""CLI entry point for route-scribe."""

import logging
import time
from pathlib import Path

import click
import yaml

from route_scribe.assembler import detect_format, dump_document
from route_scribe.config import load_config
from route_scribe.discovery.scanner import routes_from_descriptor
from route_scribe.docs import ApiDocs


def _build_docs(config_path: Path | None, title: str | None, version: str | None, exclude: tuple[str, ...]) -> ApiDocs:
    overrides = {"title": title, "version": version}
    if exclude:
        overrides["exclude_paths"] = list(exclude)
    try:
        config = load_config(config_path, **overrides)
    except (ValueError, yaml.YAMLError) as e:
        raise click.BadParameter(str(e), param_hint="--config") from e
    return ApiDocs(config)


def _write(document: dict, output: Path, fmt: str) -> None:
    if fmt == "auto":
        fmt = detect_format(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(dump_document(document, fmt), encoding="utf-8")


def _seed(docs: ApiDocs, seed: Path | None) -> None:
    if seed is None:
        return
    try:
        count = docs.load_document(seed)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Seeded {count} routes from {seed}")


config_option = click.option(
    "--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML settings file.",
)
output_format_option = click.option(
    "--format", "fmt", default="auto", type=click.Choice(["auto", "json", "yaml"]),
    help="Output format (auto picks from the file extension).",
)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """Build OpenAPI documents from the routes in your source tree."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("src", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the document.")
@config_option
@click.option("--title", default=None, help="Document title.")
@click.option("--version", "api_version", default=None, help="API version string.")
@click.option("--exclude", multiple=True, help="Path prefix to leave out (repeatable).")
@click.option("--seed", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Existing OpenAPI document to merge in.")
@output_format_option
def scan(src: Path, output: Path, config_path: Path | None, title: str | None, api_version: str | None,
         exclude: tuple[str, ...], seed: Path | None, fmt: str):
    """Scan SRC for routers and write an OpenAPI document."""
    docs = _build_docs(config_path, title, api_version, exclude)
    _seed(docs, seed)

    click.echo(f"Scanning {src}...")
    routers = docs.scan(src)
    click.echo(f"Found {len(routers)} routers, {len(docs.registry)} routes.")

    _write(docs.spec(), output, fmt)
    click.echo(f"Document saved to {output}")


@main.command()
@click.argument("src", type=click.Path(exists=True, file_okay=False, path_type=Path))
@config_option
def routes(src: Path, config_path: Path | None):
    """List the routers and routes found in SRC."""
    docs = _build_docs(config_path, None, None, ())
    routers = docs.scan(src)
    if not routers:
        click.echo("No routers found.")
        return

    for descriptor in routers:
        click.echo(f"{descriptor.source}  {descriptor.name} ({descriptor.export_style})")
        for found, route in zip(descriptor.routes, routes_from_descriptor(descriptor)):
            click.echo(f"  {route.method.upper():<7} {route.path:<40} line {found.line}")


@main.command()
@click.argument("src", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the document.")
@config_option
@output_format_option
def watch(src: Path, output: Path, config_path: Path | None, fmt: str):
    """Rewrite the document whenever a file under SRC changes."""
    docs = _build_docs(config_path, None, None, ())
    docs.scan(src)
    _write(docs.spec(), output, fmt)
    click.echo(f"Document saved to {output}; watching {src} (Ctrl+C to stop)")

    def update(document: dict) -> None:
        _write(document, output, fmt)
        click.echo(f"Updated {output}")

    watcher = docs.watch(src, on_update=update)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping.")
    finally:
        watcher.stop()
