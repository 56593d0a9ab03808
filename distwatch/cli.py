"""
DistWatch command line interface.

Exit codes for compare/run: 0 = no changes, 1 = changes detected or first
run, 2 = comparison error.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from distwatch.core.config import load_settings
from distwatch.core.exceptions import ConfigurationError
from distwatch.core.logging_config import setup_logging
from distwatch.services.change_detection.download_manager import DownloadManager
from distwatch.services.change_detection.hash_indexer import HashIndexer
from distwatch.services.change_detection.service import ChangeDetectionService
from distwatch.services.monitor import MonitorService
from distwatch.services.notification.gate import NotificationGate
from distwatch.services.notification.lock_store import FileLockStore

@click.group()
@click.option('--log-level', default=None, help='Override OBSERVABILITY_LOG_LEVEL')
@click.pass_context
def cli(ctx, log_level: Optional[str]):
    """Detect changes between distribution snapshots and gate notifications."""
    overrides = {}
    if log_level:
        overrides['observability'] = {'log_level': log_level.upper()}
    try:
        app_settings = load_settings(**overrides)
    except ConfigurationError as e:
        raise click.ClickException(e.message)
    setup_logging(app_settings)
    ctx.obj = app_settings

@cli.command()
@click.argument('previous', type=click.Path(file_okay=False, path_type=Path))
@click.argument('current', type=click.Path(file_okay=False, path_type=Path))
@click.argument('report', type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def compare(app_settings, previous: Path, current: Path, report: Path):
    """Compare PREVIOUS and CURRENT snapshots and write REPORT."""
    detector = ChangeDetectionService(indexer=HashIndexer(config=app_settings.hashing))
    outcome = detector.compare(previous, current)
    outcome.report.write(report)
    click.echo(outcome.classification.value)
    sys.exit(outcome.classification.get_exit_code())

@cli.command()
@click.option('--fetch/--no-fetch', default=False, help='Download the artifact into the current snapshot first')
@click.option('--url', default=None, help='Override DOWNLOAD_URL')
@click.pass_obj
def run(app_settings, fetch: bool, url: Optional[str]):
    """Run one full monitoring cycle using configured paths."""
    result = MonitorService(app_settings=app_settings).run(fetch=fetch, url=url)
    decision = result.decision.decision.value if result.decision else "NONE"
    click.echo(f"{result.classification.value} {decision}")
    if result.delivery.get('errors'):
        for error in result.delivery['errors']:
            click.echo(f"delivery error: {error}", err=True)
    sys.exit(result.exit_code)

@cli.command('lock-status')
@click.pass_obj
def lock_status(app_settings):
    """Show the notification cooldown state."""
    gate = NotificationGate(
        store=FileLockStore(app_settings.notification.lock_path),
        config=app_settings.notification
    )
    status = gate.current_state()
    age = status.lock_age_seconds
    age_text = "n/a" if age is None else f"{age:.0f}s"
    click.echo(
        f"{status.state_before.value} age={age_text} "
        f"cooldown={int(gate.cooldown.total_seconds())}s"
    )

@cli.command()
@click.argument('url')
@click.argument('dest', type=click.Path(file_okay=False, path_type=Path))
@click.pass_obj
def fetch(app_settings, url: str, dest: Path):
    """Download the ZIP artifact at URL and extract it into DEST."""
    result = DownloadManager(config=app_settings.download).download_and_extract(url, dest)
    if not result.success:
        raise click.ClickException(result.error_message or "download failed")
    click.echo(f"Extracted {result.files_extracted} files ({result.size_bytes} bytes)")

if __name__ == "__main__":
    cli()
