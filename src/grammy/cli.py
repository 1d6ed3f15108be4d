"""CLI entry point for grammy. Uses Click for argument parsing."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import click

from grammy.checker.base import Checker, checker_name
from grammy.checker.factory import CHECKER_KINDS, build_checker
from grammy.checker.llm import LlmChecker
from grammy.engine.normalizer import normalize
from grammy.engine.resolver import resolve
from grammy.engine.units import UNIT_SCHEMES
from grammy.errors import CheckerError
from grammy.settings import SETTABLE_KEYS, SettingsManager
from grammy.types import Suggestion

LOG_LEVELS = ["debug", "info", "warning", "error"]


def _run(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


def _load_settings(provider: str | None = None, model: str | None = None) -> SettingsManager:
    settings = SettingsManager.create()
    if settings.load_error:
        click.echo(f"Warning: ignoring unreadable settings file: {settings.load_error}", err=True)
    settings.apply_overrides({"provider": provider, "model": model})
    return settings


def _mask(key: str) -> str:
    return key[:4] + "..." + key[-4:] if len(key) > 12 else "***"


@click.group(invoke_without_command=True)
@click.option("--log-level", type=click.Choice(LOG_LEVELS), default="warning", help="Logging verbosity")
@click.pass_context
def main(ctx, log_level):
    """Live grammar suggestions for your writing."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------

@main.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", type=int, default=3000, help="Port to bind to")
@click.option("--checker", "kind", type=click.Choice(CHECKER_KINDS), default="auto", help="Checker to use")
@click.option("--provider", default=None, help="Override the LLM provider")
@click.option("--model", default=None, help="Override the LLM model")
@click.option("--units", type=click.Choice(UNIT_SCHEMES), default=None, help="Storage unit scheme for offsets")
@click.option("--debounce-ms", type=int, default=None, help="Delay after the last edit before checking")
@click.option("--no-drafts", is_flag=True, help="Do not restore or save the draft")
@click.option("--static-dir", default=None, help="Directory with the browser frontend")
def serve(host, port, kind, provider, model, units, debounce_ms, no_drafts, static_dir):
    """Run the web server."""
    from grammy.web.app import create_app
    from grammy.web.config import Config

    settings = _load_settings(provider, model)
    config = Config(
        host=host,
        port=port,
        units=units or settings.get_units(),
        debounce_ms=settings.get_debounce_ms() if debounce_ms is None else debounce_ms,
    )
    if no_drafts:
        config.draft_path = None
    if static_dir:
        config.static_dir = static_dir

    app = create_app(config, build_checker(settings, kind))

    import uvicorn

    uvicorn.run(app, host=config.host, port=config.port)


# ---------------------------------------------------------------------------
# One-shot checks
# ---------------------------------------------------------------------------

async def _check_text(checker: Checker, text: str, units) -> list[Suggestion]:
    try:
        matches = await checker.check(text)
    finally:
        aclose = getattr(checker, "aclose", None)
        if aclose is not None:
            await aclose()
    return resolve(normalize(text, matches, units, rule=checker_name(checker)))


@main.command()
@click.argument("file", type=click.File("r", encoding="utf-8"), default="-")
@click.option("--checker", "kind", type=click.Choice(CHECKER_KINDS), default="auto", help="Checker to use")
@click.option("--provider", default=None, help="Override the LLM provider")
@click.option("--model", default=None, help="Override the LLM model")
@click.option("--units", type=click.Choice(UNIT_SCHEMES), default="codepoint", help="Unit scheme for reported offsets")
@click.option("--json", "as_json", is_flag=True, help="Print suggestions as JSON")
def check(file, kind, provider, model, units, as_json):
    """Check FILE (or stdin) once and print the suggestions."""
    text = file.read()
    settings = _load_settings(provider, model)
    checker = build_checker(settings, kind)

    try:
        suggestions = _run(_check_text(checker, text, units))
    except CheckerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if as_json:
        click.echo(json.dumps({"matches": [s.model_dump(mode="json") for s in suggestions]}, indent=2, ensure_ascii=False))
        return

    if not suggestions:
        click.echo("All good!")
        return
    for s in suggestions:
        click.echo(f"{s.offset}+{s.length} [{s.severity}] {s.message}")
        click.echo(f"    {s.original!r} -> {s.replacement!r}")
    click.echo(f"{len(suggestions)} suggestion(s)")


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

def _llm_checker(settings: SettingsManager) -> LlmChecker:
    checker = build_checker(settings, "llm")
    assert isinstance(checker, LlmChecker)
    return checker


async def _list_models(checker: LlmChecker) -> list[str]:
    try:
        return await checker.list_models()
    finally:
        await checker.aclose()


async def _test_connection(checker: LlmChecker) -> None:
    try:
        await checker.test_connection()
    finally:
        await checker.aclose()


@main.command()
@click.option("--provider", default=None, help="Override the LLM provider")
def models(provider):
    """List the models offered by the provider."""
    settings = _load_settings(provider)
    try:
        names = _run(_list_models(_llm_checker(settings)))
    except CheckerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if not names:
        click.echo(f"No models (is an API key set for {settings.get_provider()}?)", err=True)
        sys.exit(1)
    for name in names:
        click.echo(name)


@main.command("test-connection")
@click.option("--provider", default=None, help="Override the LLM provider")
@click.option("--model", default=None, help="Override the LLM model")
def test_connection(provider, model):
    """Verify the API key and that the configured model exists."""
    settings = _load_settings(provider, model)
    try:
        _run(_test_connection(_llm_checker(settings)))
    except CheckerError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Connected to {settings.get_provider()} ({settings.get_model()})")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@main.group(invoke_without_command=True)
@click.pass_context
def config(ctx):
    """Show or change stored settings."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(config_show)


@config.command("show")
def config_show():
    """Print the effective settings (API keys masked)."""
    settings = _load_settings()
    provider = settings.get_provider()
    key = settings.get_api_key(provider)
    effective = {
        "settingsPath": settings.settings_path,
        "provider": provider,
        "model": settings.get_model(),
        "apiKey": _mask(key) if key else None,
        "debounceMs": settings.get_debounce_ms(),
        "units": settings.get_units(),
        "timeoutSeconds": settings.get_timeout_seconds(),
        "historyPairs": settings.get_history_pairs(),
    }
    click.echo(json.dumps(effective, indent=2))


@config.command("set")
@click.argument("key", type=click.Choice(SETTABLE_KEYS))
@click.argument("value")
def config_set(key, value):
    """Store KEY=VALUE in the settings file."""
    settings = _load_settings()
    if settings.load_error:
        click.echo("Refusing to overwrite an unreadable settings file", err=True)
        sys.exit(1)
    try:
        settings.set_value(key, value)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Saved {key}")


if __name__ == "__main__":
    main()
