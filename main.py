#!/usr/bin/env python3
"""
DailyPal - News Feed Ingestion
==============================

Main application entry point with CLI interface for management and runs.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py import-feeds [PATH]       # Load feed sources from JSON
    python main.py fetch-rss                 # Run one ingestion pass
    python main.py stats                     # Show stored news statistics
"""

import sys
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from dailypal.config.settings import get_settings
from dailypal.database.schema import DatabaseSchema
from dailypal.database.connection import get_db_manager, close_db_manager
from dailypal.services.ingestion_service import IngestionService
from dailypal.storage.news_repository import NewsRepository
from dailypal.utils.logging import configure_application_logging
from dailypal.utils.exceptions import DailyPalError, get_user_friendly_message, handle_exception

console = Console()
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """DailyPal - concurrent news feed ingestion."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        # Show help if no subcommand provided
        click.echo(ctx.get_help())


def _setup(ctx):
    """Load settings and configure logging for a command."""
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if ctx.obj.get('debug') else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging
    )
    return settings


def _open_service(settings) -> IngestionService:
    """Ensure the schema exists and build the ingestion service on the shared pool."""
    DatabaseSchema(settings.database.path).create_tables()
    db_manager = get_db_manager(settings.database.path, pool_size=settings.database.pool_size)
    return IngestionService(db_manager)


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking DailyPal Configuration[/bold blue]")

    try:
        settings = get_settings()

        table = Table(title="Configuration Status")
        table.add_column("Component", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Details")

        checks = [
            ("Database", _check_database_config, settings),
            ("Logging", _check_logging_config, settings),
            ("Ingestion", _check_ingestion_config, settings),
            ("Sources", _check_source_file, settings),
        ]

        all_passed = True
        for name, check_func, config in checks:
            try:
                status, details = check_func(config)
                table.add_row(name, "✅ Valid" if status else "❌ Invalid", details)
                if not status:
                    all_passed = False
            except Exception as e:
                table.add_row(name, "❌ Error", str(e))
                all_passed = False

        console.print(table)

        if all_passed:
            console.print("[bold green]✅ All configuration checks passed![/bold green]")
            sys.exit(0)
        else:
            console.print("[bold red]❌ Configuration validation failed[/bold red]")
            sys.exit(1)

    except DailyPalError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def init_db(ctx):
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing DailyPal Database[/bold blue]")

    try:
        settings = _setup(ctx)
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        console.print("[bold green]✅ Database initialized successfully![/bold green]")

        db_manager = get_db_manager(settings.database.path, pool_size=settings.database.pool_size)
        info = db_manager.get_database_info()

        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")

        info_table.add_row("Database Path", settings.database.path)
        info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
        info_table.add_row("Feed Sources", str(info['table_counts']['feed_sources']))
        info_table.add_row("News Records", str(info['table_counts']['news']))
        info_table.add_row("Connection Pool", f"{info['total_connections']} connections")

        console.print(info_table)

    except DailyPalError as e:
        console.print(f"[bold red]❌ Database initialization error: {get_user_friendly_message(e)}[/bold red]")
        sys.exit(1)
    finally:
        close_db_manager()


@cli.command()
@click.argument('path', required=False)
@click.pass_context
def import_feeds(ctx, path):
    """Load or replace feed sources from a JSON document (default: rss_feeds.json)."""
    settings = _setup(ctx)
    path = path or settings.ingestion.source_file
    console.print(f"[bold blue]📥 Importing feed sources from {path}[/bold blue]")

    try:
        service = _open_service(settings)
        count = service.import_sources(path)
        console.print(f"[bold green]✅ Imported {count} source categories[/bold green]")

    except DailyPalError as e:
        console.print(f"[bold red]❌ Import failed: {e}[/bold red]")
        sys.exit(1)
    finally:
        close_db_manager()


@cli.command()
@click.pass_context
def fetch_rss(ctx):
    """Run one ingestion pass over all configured feed sources."""
    settings = _setup(ctx)
    console.print("[bold blue]📡 Fetching RSS feeds[/bold blue]")

    try:
        service = _open_service(settings)
        stats = service.run_ingestion()

    except DailyPalError as e:
        console.print(f"[bold red]❌ Ingestion run failed: {e}[/bold red]")
        sys.exit(1)
    finally:
        close_db_manager()

    table = Table(title="Ingestion Run")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")

    for name, value in stats.to_dict().items():
        table.add_row(name.replace('_', ' ').capitalize(), str(value))

    console.print(table)
    console.print("[bold green]✅ Ingestion run completed[/bold green]")


@cli.command()
@click.option('--limit', default=10, help='Number of recent records to show (default: 10)')
@click.pass_context
def stats(ctx, limit):
    """Show stored news statistics and the most recent records."""
    settings = _setup(ctx)

    try:
        DatabaseSchema(settings.database.path).create_tables()
        db_manager = get_db_manager(settings.database.path, pool_size=settings.database.pool_size)
        news_repository = NewsRepository(db_manager)

        total = news_repository.count_news()
        recent = news_repository.get_recent_news(limit)

    except DailyPalError as e:
        console.print(f"[bold red]❌ Could not read statistics: {e}[/bold red]")
        sys.exit(1)
    finally:
        close_db_manager()

    console.print(f"[bold blue]📊 {total} news records stored[/bold blue]")

    if not recent:
        console.print("[yellow]No news records yet. Run fetch-rss first.[/yellow]")
        return

    table = Table(title=f"Latest {len(recent)} Records")
    table.add_column("Published", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Topic", style="green")
    table.add_column("Lang", style="yellow")

    for record in recent:
        table.add_row(
            record.pub_date.strftime("%Y-%m-%d %H:%M"),
            record.title[:60] + ("..." if len(record.title) > 60 else ""),
            record.sub_category,
            record.language,
        )

    console.print(table)


def _check_database_config(settings) -> tuple[bool, str]:
    """Check database configuration."""
    try:
        db_path = Path(settings.database.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Path: {settings.database.path}, Pool: {settings.database.pool_size}"
    except Exception as e:
        return False, str(e)


def _check_logging_config(settings) -> tuple[bool, str]:
    """Check logging configuration."""
    try:
        if settings.logging.file_path:
            log_path = Path(settings.logging.file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
        return True, f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    except Exception as e:
        return False, str(e)


def _check_ingestion_config(settings) -> tuple[bool, str]:
    """Check ingestion configuration."""
    timeout = settings.limits.request_timeout
    return True, (
        f"Workers: {settings.ingestion.worker_count}, Queue: {settings.ingestion.queue_size}, "
        f"Timeout: {f'{timeout}s' if timeout else 'transport default'}, "
        f"Default language: {settings.ingestion.default_language}"
    )


def _check_source_file(settings) -> tuple[bool, str]:
    """Check that the default source list document exists."""
    path = Path(settings.ingestion.source_file)
    if not path.exists():
        return False, f"{path} not found"
    return True, f"{path}"


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 DailyPal interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        error = handle_exception(e, logger, "cli")
        console.print(f"\n[bold red]❌ Unexpected error: {get_user_friendly_message(error)}[/bold red]")
        sys.exit(1)
