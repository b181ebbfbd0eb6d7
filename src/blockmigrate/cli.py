# src/blockmigrate/cli.py
"""blockmigrate Command Line Interface.

Entry point for the blockmigrate CLI tool. One invocation handles one
partition; run one process per segment for a parallel migration:

    for i in $(seq 0 9); do blockmigrate scan blocks blocks-cars-positions 10 $i & done
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

import typer
from botocore.exceptions import BotoCoreError, ClientError

from blockmigrate import __version__
from blockmigrate.contracts.errors import ConfigurationError, MalformedRecordError
from blockmigrate.contracts.events import PhaseAction, PhaseCompleted, PhaseError, PhaseStarted, PipelinePhase
from blockmigrate.core.config import MigrateSettings, load_settings
from blockmigrate.core.events import EventBus
from blockmigrate.core.logging import get_logger
from blockmigrate.core.partition import Partition

if TYPE_CHECKING:
    from blockmigrate.plugins.clients.dynamodb import DynamoDBBackend

__all__ = [
    "app",
]

logger = get_logger(__name__)

app = typer.Typer(
    name="blockmigrate",
    help="Migrate block indexes from `blocks` to `blocks-cars-positions`, one partition at a time.",
    no_args_is_help=True,
)

OutputFormat = Literal["console", "json"]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"blockmigrate version {__version__}")
        raise typer.Exit()


def _load_dotenv(env_file: Path | None = None) -> bool:
    """Load environment variables from .env file.

    Args:
        env_file: Explicit path to .env file. If None, searches for .env
                 in current directory and parent directories.

    Returns:
        True if .env was found and loaded, False otherwise.

    Raises:
        typer.Exit: If explicit env_file path doesn't exist.
    """
    from dotenv import load_dotenv

    if env_file is not None:
        if not env_file.exists():
            typer.secho(
                f"Error: .env file not found: {env_file}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(1)
        return load_dotenv(env_file, override=False)

    return load_dotenv(override=False)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    no_dotenv: bool = typer.Option(
        False,
        "--no-dotenv",
        help="Skip loading .env file.",
    ),
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        help="Path to .env file (skips automatic search).",
        exists=False,  # existence checked in _load_dotenv for a better message
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """blockmigrate: partitioned block index migration."""
    from blockmigrate.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")

    if not no_dotenv:
        _load_dotenv(env_file=env_file)
    elif env_file is not None:
        typer.secho(
            "Warning: --env-file ignored because --no-dotenv is set.",
            fg=typer.colors.YELLOW,
            err=True,
        )


# === Shared helpers ===


def _load_settings_or_exit(config: Path | None) -> MigrateSettings:
    try:
        return load_settings(config)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(1) from None


def _partition_or_exit(segment: int, total_segments: int) -> Partition:
    try:
        return Partition(segment=segment, total_segments=total_segments)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _create_event_bus(output_format: OutputFormat) -> EventBus:
    from blockmigrate.cli_formatters import (
        create_console_formatters,
        create_json_formatters,
        subscribe_formatters,
    )

    event_bus = EventBus()
    formatters = create_json_formatters() if output_format == "json" else create_console_formatters()
    subscribe_formatters(event_bus, formatters)
    return event_bus


def _connect_backend(
    settings: MigrateSettings,
    *,
    local: bool,
    destination_table: str,
    event_bus: EventBus,
) -> DynamoDBBackend:
    """Create the DynamoDB backend; for --local, ensure the destination table exists."""
    import time

    from blockmigrate.plugins.clients.dynamodb import create_dynamodb_backend

    target = settings.local_endpoint_url if local else (settings.endpoint_url or "aws")
    event_bus.emit(PhaseStarted(phase=PipelinePhase.BACKEND, action=PhaseAction.CONNECTING, target=target))
    started = time.perf_counter()
    try:
        backend = create_dynamodb_backend(settings, local=local)
        if local:
            backend.create_table(destination_table)
    except (BotoCoreError, ClientError) as e:
        event_bus.emit(PhaseError(phase=PipelinePhase.BACKEND, error=e, target=target))
        raise typer.Exit(1) from None
    event_bus.emit(PhaseCompleted(phase=PipelinePhase.BACKEND, duration_seconds=time.perf_counter() - started))
    return backend


# === Commands ===


@app.command()
def scan(
    source_table: str = typer.Argument(..., help="Source `blocks` table name."),
    destination_table: str = typer.Argument(..., help="Destination `blocks-cars-positions` table name."),
    total_segments: int = typer.Argument(..., help="Total number of scan segments, e.g. 10."),
    segment: int = typer.Argument(..., help="Segment to scan, 0 <= SEGMENT < TOTAL_SEGMENTS."),
    local: bool = typer.Option(
        False,
        "--local",
        help="Use DynamoDB Local and create the destination table if missing.",
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for the candidate file (default from settings).",
    ),
    prefix: str | None = typer.Option(
        None,
        "--prefix",
        help="Candidate file name prefix (default from settings).",
    ),
    upgrade_car_paths: bool = typer.Option(
        False,
        "--upgrade-car-paths",
        help="Rewrite legacy dotstorage CAR paths to carpark CAR CID keys.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to settings YAML file.",
    ),
    output_format: OutputFormat = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Scan one source partition and write not-yet-migrated positions to an NDJSON file.

    Read-only against both tables. Safe to re-run.
    """
    from blockmigrate.engine.orchestrator import MigrationOrchestrator
    from blockmigrate.plugins.sinks.ndjson_sink import NDJSONSink

    partition = _partition_or_exit(segment, total_segments)
    settings = _load_settings_or_exit(config)
    event_bus = _create_event_bus(output_format)

    output_path = partition.path(prefix or settings.scan_prefix, output_dir or settings.output_dir)
    backend = _connect_backend(settings, local=local, destination_table=destination_table, event_bus=event_bus)

    orchestrator = MigrationOrchestrator(
        backend,
        event_bus=event_bus,
        progress_interval=settings.progress_interval,
    )
    try:
        orchestrator.run_scan(
            source_table,
            destination_table,
            partition.segment,
            partition.total_segments,
            NDJSONSink(output_path),
            upgrade_car_paths=upgrade_car_paths,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("scan_aborted", error=str(e), segment=partition.segment)
        raise typer.Exit(1) from None
    except OSError as e:
        typer.echo(f"Error: cannot write {output_path}: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        backend.close()


@app.command()
def write(
    source_prefix: str = typer.Argument(..., help="Candidate file prefix, e.g. migrate-block-index."),
    destination_table: str = typer.Argument(..., help="Destination `blocks-cars-positions` table name."),
    total_segments: int = typer.Argument(..., help="Total number of scan segments the file was produced with."),
    segment: int = typer.Argument(..., help="Segment whose candidate file to write."),
    local: bool = typer.Option(
        False,
        "--local",
        help="Use DynamoDB Local and create the destination table if missing.",
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for candidate input and recovery output (default from settings).",
    ),
    unprocessed_prefix: str | None = typer.Option(
        None,
        "--unprocessed-prefix",
        help="Recovery file name prefix (default from settings). Must differ from SOURCE_PREFIX.",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to settings YAML file.",
    ),
    output_format: OutputFormat = typer.Option(
        "console",
        "--format",
        "-f",
        help="Output format: 'console' (human-readable) or 'json' (structured JSON).",
    ),
) -> None:
    """Write one partition's candidate file into the destination table.

    Items DynamoDB leaves unprocessed are written to a recovery file of the
    same shape; pass its prefix back to `write` to retry them.
    """
    from blockmigrate.engine.orchestrator import MigrationOrchestrator
    from blockmigrate.plugins.sinks.ndjson_sink import NDJSONSink
    from blockmigrate.plugins.sources.ndjson_source import NDJSONSource

    partition = _partition_or_exit(segment, total_segments)
    settings = _load_settings_or_exit(config)
    directory = output_dir or settings.output_dir

    input_path = partition.path(source_prefix, directory)
    if not input_path.exists():
        typer.echo(f"Error: candidate file not found: {input_path}", err=True)
        raise typer.Exit(1)
    recovery_path = partition.path(unprocessed_prefix or settings.unprocessed_prefix, directory)
    if recovery_path.resolve() == input_path.resolve():
        typer.echo(
            f"Error: recovery file would overwrite its own input: {input_path}. "
            "Pass --unprocessed-prefix to retry a recovery file.",
            err=True,
        )
        raise typer.Exit(1)

    event_bus = _create_event_bus(output_format)
    backend = _connect_backend(settings, local=local, destination_table=destination_table, event_bus=event_bus)

    orchestrator = MigrationOrchestrator(
        backend,
        event_bus=event_bus,
        progress_interval=settings.progress_interval,
    )
    try:
        orchestrator.run_write(
            NDJSONSource(input_path),
            destination_table,
            partition.segment,
            partition.total_segments,
            NDJSONSink(recovery_path),
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("write_aborted", error=str(e), segment=partition.segment)
        raise typer.Exit(1) from None
    except OSError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    except MalformedRecordError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    finally:
        backend.close()


if __name__ == "__main__":
    app()
