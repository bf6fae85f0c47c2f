import locale
import logging
import sys
from datetime import datetime
from pathlib import Path

import click

from journal.date_utils import resolve_cutoff, week_bounds
from journal.git_utils import check_git_installed
from journal.logging_config import setup_default_logging
from standup.aggregator import CommitAggregator
from standup.config import StandupConfig
from standup.exporter import StandupExporter
from standup.formatter import format_flat, format_grouped, to_accomplishments
from standup.retro import WeeklyRetro
from standup.summarizer import StandupSummarizer
from standup.types import DisplayFormat

logger = logging.getLogger(__name__)

SINCE_HELP = "Time range: auto, yesterday, week, a weekday name, or hours (e.g. 72 or 72h)"


def _cutoff_or_fail(since: str, now: datetime) -> datetime:
    try:
        return resolve_cutoff(since, now)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--since") from e


@click.group()
@click.option('--verbose', '-v', is_flag=True, help="Enable verbose (DEBUG level) logging")
@click.option('--quiet', '-q', is_flag=True, help="Suppress all logging output")
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help="Path to a YAML configuration file")
@click.pass_context
def cli(ctx, verbose, quiet, config_path):
    """standup - daily standup journal built from your git activity."""
    ctx.ensure_object(dict)

    if quiet:
        logging.disable(logging.CRITICAL)
    else:
        setup_default_logging(verbose=verbose)

    # repository groups are ordered with locale.strxfrm
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as e:
        logger.debug(f"Collation locale not available, using code-point order: {e}")

    try:
        ctx.obj['config'] = StandupConfig.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    logger.debug(f"CLI initialized (verbose={verbose}, quiet={quiet})")


@cli.command()
@click.pass_context
def repos(ctx):
    """List git repositories found under the scan root."""
    config: StandupConfig = ctx.obj['config']
    found = CommitAggregator(config).find_repositories()

    if not found:
        click.echo(f"⚠️  No git repositories found under {config.get_expanded_root_path()}")
        return

    for repo in found:
        click.echo(str(repo))


@cli.command()
@click.option('--since', default="auto", show_default=True, help=SINCE_HELP)
@click.option('--flat', 'display', flag_value=DisplayFormat.FLAT.value, help="Flat list with repository tags")
@click.option('--accomplishments', 'display', flag_value=DisplayFormat.ACCOMPLISHMENTS.value,
              help="Accomplishment lines with commit prefixes removed")
@click.pass_context
def commits(ctx, since, display):
    """Show recent commits across all repositories."""
    display = DisplayFormat(display or DisplayFormat.GROUPED.value)
    config: StandupConfig = ctx.obj['config']
    now = datetime.now().astimezone()
    cutoff = _cutoff_or_fail(since, now)

    result = CommitAggregator(config).scan(cutoff)
    if result.total_commits == 0:
        click.echo(f"No commits found since {cutoff.strftime('%A %d %B %Y %H:%M')}")
        return

    click.echo(f"Found {result.total_commits} commits in {len(result.groups)} repos\n")
    if display is DisplayFormat.FLAT:
        lines = format_flat(result.groups)
    elif display is DisplayFormat.ACCOMPLISHMENTS:
        lines = to_accomplishments(result.groups)
    else:
        lines = format_grouped(result.groups)
    click.echo("\n".join(lines))


@cli.command()
@click.option('--since', default="auto", show_default=True, help=SINCE_HELP)
@click.option('--force', is_flag=True, help="Overwrite today's standup if it exists")
@click.option('--no-ai', is_flag=True, help="Use the simple summary even if AI is enabled")
@click.option('--print', 'print_only', is_flag=True, help="Print the standup instead of saving it")
@click.pass_context
def auto(ctx, since, force, no_ai, print_only):
    """Generate today's standup from git activity without prompts."""
    config: StandupConfig = ctx.obj['config']
    now = datetime.now().astimezone()
    cutoff = _cutoff_or_fail(since, now)
    exporter = StandupExporter(config)

    if not print_only and not force and exporter.entry_path(now.date()).exists():
        click.echo(f"❌ Standup already exists: {exporter.entry_path(now.date())} (use --force)", err=True)
        sys.exit(1)

    if not check_git_installed():
        click.echo("❌ Git not found. Cannot scan commits.", err=True)
        sys.exit(1)

    aggregator = CommitAggregator(config)
    found = aggregator.find_repositories()
    if not found:
        click.echo(f"⚠️  No git repositories found under {config.get_expanded_root_path()}", err=True)
        sys.exit(1)

    result = aggregator.aggregate(found, cutoff)
    if result.total_commits == 0:
        click.echo(f"⚠️  No commits found since {cutoff.strftime('%A %d %B %Y %H:%M')}", err=True)
        sys.exit(1)

    summary = StandupSummarizer(config).summarize(result, now=now, use_ai=not no_ai)
    kind = "AI" if summary.used_ai else "simple"
    click.echo(f"✓ Found {result.total_commits} commits, generated {kind} summary")

    markdown = exporter.render(summary, result, now=now)
    if print_only:
        click.echo(markdown)
        return

    path = exporter.write(markdown, now.date(), overwrite=True)
    click.echo(f"✅ Standup saved to {path}")

    retro_path, message = WeeklyRetro(config).run_auto(now=now, use_ai=not no_ai)
    if retro_path:
        click.echo(f"✅ {message}: {retro_path}")
    elif message != "Not retro day":
        click.echo(f"ℹ️  Weekly retro: {message}")


@cli.command()
@click.option('--week-offset', default=0, show_default=True, type=click.IntRange(min=0),
              help="How many weeks back (0 = this week)")
@click.option('--force', is_flag=True, help="Overwrite the retro if it exists")
@click.option('--no-ai', is_flag=True, help="Use the simple retro even if AI is enabled")
@click.option('--print', 'print_only', is_flag=True, help="Print the retro instead of saving it")
@click.pass_context
def retro(ctx, week_offset, force, no_ai, print_only):
    """Generate a weekly retrospective from the week's standups."""
    config: StandupConfig = ctx.obj['config']
    now = datetime.now().astimezone()
    service = WeeklyRetro(config)
    week_start, _ = week_bounds(now, week_offset)

    if not print_only and not force and service.retro_path(week_start).exists():
        click.echo(f"❌ Retro already exists: {service.retro_path(week_start)} (use --force)", err=True)
        sys.exit(1)

    generated = service.generate(now, week_offset=week_offset, use_ai=not no_ai)
    if generated is None:
        click.echo(f"⚠️  No standups found for the week of {week_start.isoformat()} (Mon-Fri)", err=True)
        sys.exit(1)

    markdown, summary = generated
    kind = "AI" if summary.used_ai else "simple"
    click.echo(f"✓ Found {summary.total_days} standup(s), generated {kind} retro")

    if print_only:
        click.echo(markdown)
        return

    path = service.write(markdown, week_start, overwrite=True)
    click.echo(f"✅ Retro saved to {path}")


@cli.command()
@click.pass_context
def check(ctx):
    """Check git installation and local LLM availability."""
    config: StandupConfig = ctx.obj['config']
    ok = True

    if check_git_installed():
        click.echo("✅ git is installed")
    else:
        click.echo("❌ git is not installed", err=True)
        ok = False

    status = StandupSummarizer(config).test_connection()
    if not config.ollama.enabled:
        click.echo("ℹ️  AI summaries are disabled (set ollama.enabled: true to use them)")
    elif not status["available"]:
        click.echo(f"❌ Ollama not reachable at {config.ollama.endpoint}: {status['error']}", err=True)
        ok = False
    elif not status["has_model"]:
        click.echo(f"⚠️  Model {config.ollama.model} not found. Run: ollama pull {config.ollama.model}")
        ok = False
    else:
        click.echo(f"✅ Ollama ready with {config.ollama.model}")

    if not ok:
        sys.exit(1)


if __name__ == "__main__":
    cli()
