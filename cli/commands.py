from collections import Counter
from dataclasses import replace
from typing import Optional

import click
from utils.logging import LOG_LEVELS, get_logger, setup_logging

from config import Config
from core.chunker import SemanticChunker, generate_domain_context
from core.language_registry import get_language_registry


@click.group()
@click.option("--config", "-c", help="Config file path")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Override the configured log level")
@click.pass_context
def cli(ctx, config, log_level):
    """chunkwise - split source files into semantic chunks."""
    ctx.ensure_object(dict)
    loaded_config = Config.load(config)
    if log_level:
        loaded_config.log_level = log_level
    ctx.obj["config"] = loaded_config

    try:
        setup_logging(level=loaded_config.log_level)
    except ValueError as e:
        raise click.UsageError(str(e))
    ctx.obj["logger"] = get_logger(__name__)


def _chunking_config(config: Config, max_size: Optional[int], min_size: Optional[int], nested: bool, hints: bool):
    overrides = {"chunk_nested_constructs": nested, "extract_domain_hints": hints}
    if max_size is not None:
        overrides["max_chunk_size"] = max_size
    if min_size is not None:
        overrides["min_chunk_size"] = min_size
    return replace(config.chunking, **overrides)


@cli.command()
@click.argument("file_path")
@click.option("--repo", "-r", default=".", type=click.Path(exists=True, file_okay=False), help="Repository root")
@click.option("--max-size", type=int, help="Maximum chunk size in characters")
@click.option("--min-size", type=int, help="Minimum chunk size in characters")
@click.option("--nested/--no-nested", default=True, help="Split large containers into members")
@click.option("--hints/--no-hints", default=True, help="Infer business-domain hints")
@click.option("--context", "as_context", is_flag=True, help="Print one-line domain context per chunk")
@click.pass_context
def chunk(ctx, file_path: str, repo: str, max_size, min_size, nested: bool, hints: bool, as_context: bool):
    """Chunk FILE_PATH (relative to --repo) and print one JSON object per chunk."""
    chunking = _chunking_config(ctx.obj["config"], max_size, min_size, nested, hints)
    chunks = SemanticChunker(chunking).chunk_file(file_path, repo)

    for item in chunks:
        click.echo(generate_domain_context(item) if as_context else item.to_json())
    ctx.obj["logger"].debug(f"{file_path}: {len(chunks)} chunks")


@cli.command()
@click.argument("repo_path", type=click.Path(exists=True, file_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print every chunk as JSON instead of a summary")
@click.pass_context
def scan(ctx, repo_path: str, as_json: bool):
    """Chunk every file of a repository."""
    chunks = SemanticChunker(ctx.obj["config"].chunking).chunk_repository(repo_path)

    if as_json:
        for item in chunks:
            click.echo(item.to_json())
        return

    files = {c.file_path for c in chunks}
    click.echo(f"{len(chunks)} chunks in {len(files)} files")

    click.echo("\nBy language:")
    for language, count in Counter(c.language for c in chunks).most_common():
        click.echo(f"  {language:<14} {count}")

    click.echo("\nBy chunk type:")
    for chunk_type, count in Counter(c.chunk_type for c in chunks).most_common():
        click.echo(f"  {chunk_type:<14} {count}")


@cli.command()
def languages():
    """List supported languages and how they are chunked."""
    registry = get_language_registry()
    for name in registry.get_supported_languages():
        config = registry.get_config(name)
        click.echo(f"{name:<12} {config.family:<16} {' '.join(config.extensions)}")
