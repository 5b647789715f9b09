"""
cli.py — Command-line interface for yt-transcript-enhancer.

Provides the `yt-transcript` command group (registered as a console script
in pyproject.toml):

    get        Fetch a transcript (text, json, doc or timestamped lines).
    metadata   Show title, channel, duration and description for a video.
    enhance    Fetch a transcript and clean it up with the configured LLM.
    summarize  Fetch a transcript and summarise it with the configured LLM.
    stats      Word count, token estimate, quality check and search.
    providers  Show which LLM providers are configured (and reachable).
    models     List the models a provider offers.

Settings come from the environment (and a .env file); see config.py.

Usage examples:
    yt-transcript get "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    yt-transcript get dQw4w9WgXcQ --format lines
    yt-transcript enhance dQw4w9WgXcQ --provider ollama --model llama3.1:8b
    yt-transcript stats dQw4w9WgXcQ --search "never gonna"
"""

from __future__ import annotations

import json
import logging
import sys

import click

from yt_transcript_enhancer.config import Settings, load_settings
from yt_transcript_enhancer.enhancer import EnhancementOrchestrator
from yt_transcript_enhancer.errors import AppError
from yt_transcript_enhancer.extractor import (
    format_doc,
    format_json,
    format_text,
    format_timestamped_lines,
    search_transcript,
    transcript_stats,
    validate_transcript_quality,
)
from yt_transcript_enhancer.metadata import resolve_metadata
from yt_transcript_enhancer.pipeline import build_acquisition, build_orchestrator, process_video
from yt_transcript_enhancer.prompts import format_duration
from yt_transcript_enhancer.providers import ProviderManager, config_for, create_provider

_PROVIDER_CHOICE = click.Choice(["openai", "openrouter", "ollama"], case_sensitive=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fail(message: str) -> None:
    """Print a clean error to stderr and exit non-zero (no traceback)."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _write(text: str, output: str | None) -> None:
    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.write("\n")
        click.echo(f"Written to {output}", err=True)
    else:
        click.echo(text)


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


# ---------------------------------------------------------------------------
# CLI group — the top-level `yt-transcript` command
# ---------------------------------------------------------------------------

@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr.")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Read settings from this dotenv file instead of ./.env.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, env_file: str | None) -> None:
    """
    YouTube Transcript Enhancer — fetch, inspect and AI-clean video transcripts.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = load_settings(env_file)


# ---------------------------------------------------------------------------
# Subcommand: get — fetch a transcript
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
@click.option(
    "--format", "-f",
    "fmt",                           # avoid shadowing the builtin "format"
    type=click.Choice(["text", "json", "doc", "lines"], case_sensitive=False),
    default="doc",
    show_default=True,
    help="Plain text, JSON with timings, markdown document, or [M:SS] lines.",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write output to a file instead of stdout.",
)
@click.pass_context
def get(ctx: click.Context, video: str, fmt: str, output: str | None) -> None:
    """
    Fetch a YouTube video transcript.

    URL_OR_ID can be a full YouTube URL or an 11-character video ID.
    """
    acquisition = build_acquisition(_settings(ctx))
    try:
        result = acquisition.acquire(video)
    except AppError as exc:
        _fail(exc.message)

    if fmt == "json":
        text = json.dumps(format_json(result.segments, result.video_id), indent=2, ensure_ascii=False)
    elif fmt == "text":
        text = format_text(result.segments)
    elif fmt == "lines":
        text = format_timestamped_lines(result.segments)
    else:
        text = format_doc(result.segments)
    _write(text, output)


# ---------------------------------------------------------------------------
# Subcommand: metadata
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
@click.option("--json", "as_json", is_flag=True, help="Print the metadata as JSON.")
@click.pass_context
def metadata(ctx: click.Context, video: str, as_json: bool) -> None:
    """Show title, channel, duration and description for a video."""
    meta = resolve_metadata(video, api_key=_settings(ctx).youtube_api_key)
    if as_json:
        click.echo(json.dumps({
            "title": meta.title,
            "channel": meta.channel,
            "description": meta.description,
            "duration_seconds": meta.duration_seconds,
        }, indent=2, ensure_ascii=False))
        return

    click.echo(f"Title:    {meta.title}")
    click.echo(f"Channel:  {meta.channel}")
    if meta.duration_seconds is not None:
        click.echo(f"Duration: {format_duration(meta.duration_seconds)}")
    if meta.description:
        click.echo()
        click.echo(meta.description)


# ---------------------------------------------------------------------------
# Subcommands: enhance / summarize — LLM processing
# ---------------------------------------------------------------------------

_provider_option = click.option(
    "--provider", "-p",
    type=_PROVIDER_CHOICE,
    default=None,
    help="LLM provider (defaults to YT_TRANSCRIPT_PROVIDER).",
)
_model_option = click.option("--model", "-m", default=None, help="Model name (defaults to the provider's).")


@main.command()
@click.argument("video", metavar="URL_OR_ID")
@_provider_option
@_model_option
@click.option("--output", "-o", type=click.Path(), default=None, help="Write output to a file.")
@click.pass_context
def enhance(
    ctx: click.Context,
    video: str,
    provider: str | None,
    model: str | None,
    output: str | None,
) -> None:
    """
    Fetch a transcript and clean it up with an LLM.

    If enhancement fails the raw transcript is still printed, the reason
    goes to stderr, and the exit code is 1.
    """
    settings = _settings(ctx)
    try:
        llm = create_provider(config_for(settings.provider_settings(), provider, model))
    except AppError as exc:
        _fail(exc.message)

    try:
        processed = process_video(video, provider=llm, settings=settings)
    except AppError as exc:
        _fail(exc.message)
    finally:
        llm.close()

    result = processed.enhancement
    _write(result.text, output)
    if not result.enhanced:
        click.echo(f"Error: Enhancement failed, raw transcript returned. {result.error}", err=True)
        sys.exit(1)


@main.command()
@click.argument("video", metavar="URL_OR_ID")
@_provider_option
@_model_option
@click.pass_context
def summarize(ctx: click.Context, video: str, provider: str | None, model: str | None) -> None:
    """Fetch a transcript and summarise it with an LLM."""
    settings = _settings(ctx)
    try:
        llm = create_provider(config_for(settings.provider_settings(), provider, model))
    except AppError as exc:
        _fail(exc.message)

    try:
        processed = process_video(video, settings=settings)
        orchestrator: EnhancementOrchestrator = build_orchestrator(settings)
        summary = orchestrator.summarize(processed.transcript.text, processed.metadata, llm)
    except AppError as exc:
        _fail(exc.message)
    finally:
        llm.close()

    click.echo(summary)
    if summary.startswith("Error:"):
        sys.exit(1)


# ---------------------------------------------------------------------------
# Subcommand: stats — inspect a transcript
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
@click.option("--search", "-s", "term", default=None, help="Also list occurrences of this phrase.")
@click.pass_context
def stats(ctx: click.Context, video: str, term: str | None) -> None:
    """Word count, token estimate, reading time and a quality check."""
    acquisition = build_acquisition(_settings(ctx))
    try:
        text = acquisition.acquire(video).text
    except AppError as exc:
        _fail(exc.message)

    info = transcript_stats(text)
    quality = validate_transcript_quality(text)
    click.echo(f"Words:            {info['word_count']}")
    click.echo(f"Characters:       {info['character_count']}")
    click.echo(f"Estimated tokens: {info['estimated_tokens']}")
    click.echo(f"Reading time:     {info['estimated_reading_time']} min")
    click.echo(f"Language:         {info['language']}")
    click.echo(f"Quality:          {quality['quality']}")
    for issue in quality["issues"]:
        click.echo(f"  - {issue}")

    if term:
        matches = search_transcript(text, term)
        click.echo(f"\n{len(matches)} match(es) for '{term}'")
        for match in matches:
            click.echo(f"  @{match['position']}: ...{match['context']}...")


# ---------------------------------------------------------------------------
# Subcommands: providers / models
# ---------------------------------------------------------------------------

@main.command()
@click.option("--test", "run_test", is_flag=True, help="Also send a tiny test prompt to each available provider.")
@click.pass_context
def providers(ctx: click.Context, run_test: bool) -> None:
    """Show which LLM providers are configured."""
    settings = _settings(ctx)
    manager = ProviderManager(settings.provider_settings())
    try:
        validation = manager.get_provider_validation()
        status = manager.get_provider_status() if run_test else {}
    finally:
        manager.close()

    for tag, result in validation.items():
        marker = "*" if tag == settings.provider else " "
        state = "ok" if result.valid else "not configured"
        if tag in status and "connected" in status[tag]:
            state += ", connected" if status[tag]["connected"] else ", unreachable"
        click.echo(f"{marker} {tag:<11} {state}")
        for error in result.errors:
            click.echo(f"      {error}")


@main.command()
@click.argument("provider", type=_PROVIDER_CHOICE)
@click.pass_context
def models(ctx: click.Context, provider: str) -> None:
    """List the models PROVIDER offers."""
    manager = ProviderManager(_settings(ctx).provider_settings())
    try:
        names = manager.get_available_models(provider.lower())
    finally:
        manager.close()

    if not names:
        _fail(f"No models available for {provider} (is it configured?)")
    for name in names:
        click.echo(name)
