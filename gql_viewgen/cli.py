"""Command-line interface for gql-viewgen."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .core.config import GeneratorConfig, load_config
from .core.declarations import collect_sources, load_sources
from .core.errors import DirectiveSyntaxErrors, GqlViewgenError, SchemaValidationError
from .core.ir import EntityKind
from .core.pipeline import SchemaPipeline


def _configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: str | None, **overrides) -> GeneratorConfig:
    config = load_config(config_path) if config_path else GeneratorConfig()
    updates = {k: v for k, v in overrides.items() if v is not None}
    if updates:
        # Round-trip through validation so overrides are checked too
        config = GeneratorConfig.model_validate({**config.model_dump(), **updates})
    return config


def _load_declarations(source: str, verbose: bool):
    paths = collect_sources(source)
    if verbose:
        click.echo(f"Sources: {len(paths)} file(s)")
        for path in paths:
            click.echo(f"  {path}")
    return load_sources(paths)


def _report_failure(error: GqlViewgenError):
    """Print every problem carried by a pipeline error."""
    if isinstance(error, DirectiveSyntaxErrors):
        for syntax_error in error.errors:
            click.echo(f"error: DirectiveSyntax: {syntax_error}", err=True)
        click.echo(f"{len(error.errors)} syntax error(s); nothing was generated.", err=True)
    elif isinstance(error, SchemaValidationError):
        for issue in error.issues:
            click.echo(str(issue), err=True)
        errors = sum(1 for i in error.issues if i.is_error)
        click.echo(f"{errors} error(s); nothing was generated.", err=True)
    else:
        click.echo(f"error: {error}", err=True)


@click.group()
@click.version_option(version=__version__, prog_name="gql-viewgen")
def main():
    """GraphQL view synthesis from annotated declarations.

    Generate GraphQL SDL with several named views per declared type.
    """
    pass


@main.command()
@click.option(
    "--source",
    "-s",
    required=True,
    type=click.Path(exists=True),
    help="Path to a Go source file, a declarations JSON file, or a directory of them.",
)
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(),
    help="Output file for the generated schema (e.g., schema.graphql).",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file (.toml, .json, or pyproject.toml).",
)
@click.option("--header", help="Comment header to put at the top of the schema.")
@click.option(
    "--explicit-only",
    is_flag=True,
    help="Only emit types carrying an explicit @GqlType/@GqlInput/@GqlEnum.",
)
@click.option("--workers", type=int, help="Number of parser threads.")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
def generate(
    source: str,
    output: str,
    config: str | None,
    header: str | None,
    explicit_only: bool,
    workers: int | None,
    verbose: bool,
):
    """Generate a GraphQL schema from annotated declarations.

    Examples:

        gql-viewgen generate --source ./models --output ./schema.graphql

        gql-viewgen generate -s ./user.go -o ./schema.graphql --explicit-only
    """
    _configure_logging(verbose)
    output_path = Path(output).resolve()

    try:
        generator_config = _load_config(
            config,
            header=header,
            max_workers=workers,
            implicit_bindings=False if explicit_only else None,
        )
        declarations = _load_declarations(source, verbose)
        click.echo(f"Building {len(declarations)} declaration(s)...")
        result = SchemaPipeline(generator_config).run(declarations)
    except GqlViewgenError as e:
        _report_failure(e)
        sys.exit(1)

    for warning in result.warnings:
        click.echo(str(warning), err=True)
    if verbose:
        click.echo(f"  Views: {len(result.schema.views)}")
        click.echo(f"  Scalars: {len(result.schema.scalars)}")

    # Create output directory if needed
    output_path.parent.mkdir(parents=True, exist_ok=True)
    click.echo(f"Writing to {output_path}...")
    output_path.write_text(result.text)
    click.echo(f"Done! Generated {len(result.schema.views)} view(s).")


@main.command()
@click.option(
    "--source",
    "-s",
    required=True,
    type=click.Path(exists=True),
    help="Path to a Go source file, a declarations JSON file, or a directory of them.",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file (.toml, .json, or pyproject.toml).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
def check(source: str, config: str | None, verbose: bool):
    """Validate annotations without writing a schema.

    Exits with status 1 if any error is found.
    """
    _configure_logging(verbose)
    try:
        generator_config = _load_config(config)
        issues = SchemaPipeline(generator_config).check(_load_declarations(source, verbose))
    except GqlViewgenError as e:
        _report_failure(e)
        sys.exit(1)

    for issue in issues:
        click.echo(str(issue))
    errors = sum(1 for i in issues if i.is_error)
    click.echo(f"{errors} error(s), {len(issues) - errors} warning(s)")
    if errors:
        sys.exit(1)


@main.command()
@click.option(
    "--source",
    "-s",
    required=True,
    type=click.Path(exists=True),
    help="Path to a Go source file, a declarations JSON file, or a directory of them.",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    help="Configuration file (.toml, .json, or pyproject.toml).",
)
def views(source: str, config: str | None):
    """List every resolved view with its fields.

    Views are listed even when validation would fail, to help track down
    the cause.
    """
    _configure_logging(False)
    try:
        generator_config = _load_config(config)
        schema = SchemaPipeline(generator_config).resolve(_load_declarations(source, False))
    except GqlViewgenError as e:
        _report_failure(e)
        sys.exit(1)

    for view in schema.views.values():
        if view.kind is EntityKind.ENUM:
            click.echo(f"{view.kind.keyword} {view.name} ({view.entity.declared_name})")
            for value in view.values:
                click.echo(f"  {value.name}")
            continue
        click.echo(
            f"{view.kind.keyword} {view.name} ({view.entity.declared_name}, {view.inclusion_mode.value})"
        )
        for view_field in view.fields:
            click.echo(f"  {view_field.name}: {view_field.type_ref} [{view_field.access.value}]")


if __name__ == "__main__":
    main()
