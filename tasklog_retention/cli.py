"""CLI entry point for standalone usage: tasklog-retention.

Subcommands:
    tasklog-retention truncate manifest.json          # Truncate one worker's logs
    tasklog-retention show-index ROOT ATTEMPT_ID      # Print an attempt's index details
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from pydantic import BaseModel, ValidationError, field_validator

from tasklog_retention.core.logging import LOG_FORMATS, setup_logging
from tasklog_retention.exceptions import LogRetentionError
from tasklog_retention.layout.local import LocalLogLayout
from tasklog_retention.models.attempt import Attempt, AttemptCategory, WorkerProcess
from tasklog_retention.orchestrator import LogsTruncater
from tasklog_retention.policy import RetentionPolicy

_STATUS_ICONS = {
    "committed": "+",
    "aborted": "!",
    "skipped": "-",
}


class AttemptSchema(BaseModel):
    attempt_id: str
    category: AttemptCategory
    is_cleanup: bool = False

    @field_validator("attempt_id", mode="before")
    @classmethod
    def _strip_whitespace(cls, v: str) -> str:
        return v.strip() if isinstance(v, str) else v


class ManifestSchema(BaseModel):
    """A worker process to truncate, as written by the scheduler."""

    root: str
    log_dir: str
    attempts: list[AttemptSchema]

    @field_validator("attempts")
    @classmethod
    def _non_empty(cls, v: list[AttemptSchema]) -> list[AttemptSchema]:
        if not v:
            raise ValueError("at least one attempt is required")
        return v

    def to_process(self) -> WorkerProcess:
        return WorkerProcess(
            log_dir=Path(self.log_dir),
            attempts=[
                Attempt(attempt_id=a.attempt_id, category=a.category, is_cleanup=a.is_cleanup)
                for a in self.attempts
            ],
        )


def _resolve_policy(map_retain_size: int | None, reduce_retain_size: int | None) -> RetentionPolicy:
    """CLI flags take precedence over the environment."""
    env_policy = RetentionPolicy.from_env()
    return RetentionPolicy(
        map_retain_size=(
            map_retain_size if map_retain_size is not None else env_policy.map_retain_size
        ),
        reduce_retain_size=(
            reduce_retain_size if reduce_retain_size is not None else env_policy.reduce_retain_size
        ),
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option(
    "--log-format",
    type=click.Choice(LOG_FORMATS),
    default=None,
    help="Log output format (default: $TASKLOG_LOG_FORMAT or console)",
)
def main(verbose: bool, log_format: str | None) -> None:
    """Task log retention: shrink worker logs to their configured retain sizes."""
    setup_logging("DEBUG" if verbose else None, log_format)


@main.command("truncate")
@click.argument("manifest_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--map-retain-size", type=int, default=None, help="Bytes kept per map attempt")
@click.option("--reduce-retain-size", type=int, default=None, help="Bytes kept per reduce attempt")
def truncate(manifest_file: str, map_retain_size: int | None, reduce_retain_size: int | None) -> None:
    """Truncate the logs of the worker process described by MANIFEST_FILE."""
    try:
        manifest = ManifestSchema.model_validate(json.loads(Path(manifest_file).read_text()))
    except json.JSONDecodeError as e:
        click.echo(f"Error: Invalid JSON in {manifest_file}: {e}", err=True)
        sys.exit(1)
    except ValidationError as e:
        click.echo(f"Error: Invalid manifest {manifest_file}:\n{e}", err=True)
        sys.exit(1)

    try:
        policy = _resolve_policy(map_retain_size, reduce_retain_size)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    truncater = LogsTruncater(policy, LocalLogLayout(manifest.root))
    result = truncater.truncate_logs(manifest.to_process())

    if result.abandoned:
        click.echo(f"Truncation abandoned: {result.reason}", err=True)
        sys.exit(1)

    summary = result.get_summary()
    click.echo("Log kinds:")
    for k in summary["kinds"]:
        icon = _STATUS_ICONS.get(k["status"], "?")
        detail = f" - {k['detail']}" if k["detail"] else ""
        error = f" ERROR: {k['error']}" if k["error"] else ""
        click.echo(f"  [{icon}] {k['kind']}{detail}{error}")
    if result.index_updated:
        click.echo("Index files updated.")
    for attempt_id in result.index_failures:
        click.echo(f"  Index update failed for {attempt_id}", err=True)


@main.command("show-index")
@click.argument("root", type=click.Path(exists=True, file_okay=False))
@click.argument("attempt_id")
@click.option("--cleanup", is_flag=True, help="Read the cleanup attempt's index")
def show_index(root: str, attempt_id: str, cleanup: bool) -> None:
    """Print the log details recorded for ATTEMPT_ID."""
    layout = LocalLogLayout(root)
    try:
        details = layout.get_all_log_details(attempt_id, cleanup)
    except LogRetentionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Attempt: {attempt_id}")
    for kind, detail in details.items():
        click.echo(f"  {kind.value:<12} start={detail.start} length={detail.length}")


if __name__ == "__main__":
    main()
