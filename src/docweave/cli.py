"""docweave CLI entrypoint."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from docweave.config import Settings, load_config
from docweave.errors import DocweaveError
from docweave.logging_config import configure_logging, get_logger
from docweave.pipeline import Pipeline
from docweave.renderer.asciidoc_renderer import AsciiDocRenderer
from docweave.renderer.html_renderer import HTMLRenderer

logger = get_logger(__name__)

_SUFFIXES = {"html": ".html", "asciidoc": ".adoc"}


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), required=True, help="Output file path")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["html", "asciidoc"], case_sensitive=False),
    default="html",
    show_default=True,
    help="Output format",
)
@click.option("--title", type=str, default=None, help="Override document title")
@click.option("--username", "-u", type=str, default=None, help="Confluence user (or DOCWEAVE_CONFLUENCE_USERNAME)")
@click.option("--password", "-p", type=str, default=None, help="Confluence password (or DOCWEAVE_CONFLUENCE_PASSWORD)")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Logging verbosity (or DOCWEAVE_LOG_LEVEL)",
)
def main(
    config_path: Path,
    output: Path,
    output_format: str,
    title: str | None,
    username: str | None,
    password: str | None,
    log_level: str | None,
) -> None:
    """Merge the documents listed in CONFIG_PATH into one generated document."""
    overrides = {
        "confluence_username": username,
        "confluence_password": password,
        "log_level": log_level.upper() if log_level else None,
    }
    settings = Settings(**{key: value for key, value in overrides.items() if value is not None})
    configure_logging(settings.log_level, settings.log_format)

    output_format = output_format.lower()
    if not output.suffix:
        output = output.with_suffix(_SUFFIXES[output_format])
    output.parent.mkdir(parents=True, exist_ok=True)

    try:
        config = load_config(config_path)
        result = asyncio.run(Pipeline(config, settings, image_dir=output.parent).run())
        renderer = HTMLRenderer() if output_format == "html" else AsciiDocRenderer()
        document = renderer.render(result.transcripts, title_override=title)
    except DocweaveError as exc:
        raise click.ClickException(str(exc)) from exc

    output.write_text(document, encoding="utf-8")

    for failure in result.failures:
        click.echo(f"Skipped: {failure.node.index} ({failure.error})", err=True)
    click.echo(f"Rendered: {output}")


if __name__ == "__main__":  # pragma: no cover
    main()
