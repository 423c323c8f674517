"""CLI interface for pymirror."""

import dataclasses
import logging
from pathlib import Path
from typing import Any, Optional

import click

from .config import MAX_WORKERS_LIMIT, MirrorConfig, load_mirror_jobs_from_json
from .exceptions import MirrorConfigError, MirrorError
from .log import OperationLogger
from .mirror import MirrorEngine
from .output import OutputFormatter

logger = logging.getLogger(__name__)


def _build_jobs(
    source: Optional[Path],
    replica: Optional[Path],
    config_file: Optional[Path],
    overrides: dict[str, Any],
) -> list[MirrorConfig]:
    """Create mirror jobs from the arguments or a JSON config file.

    Raises:
        MirrorConfigError: If the arguments do not describe a valid job
    """
    if config_file is not None:
        if source is not None or replica is not None:
            raise MirrorConfigError(
                "Cannot combine SOURCE/REPLICA arguments with --config"
            )
        jobs = load_mirror_jobs_from_json(config_file)
        if not jobs:
            raise MirrorConfigError(f"No mirror jobs in {config_file}")
    else:
        if source is None or replica is None:
            raise MirrorConfigError(
                "SOURCE and REPLICA are required unless --config is given"
            )
        jobs = [MirrorConfig(source=source, replica=replica)]

    # Command line flags switch features on for every job
    changes: dict[str, Any] = {}
    if overrides["sync_permissions"]:
        changes["sync_permissions"] = True
    if overrides["dry_run"]:
        changes["dry_run"] = True
    if overrides["debug"]:
        changes["debug"] = True
    if overrides["log_file"] is not None:
        changes["log_file"] = overrides["log_file"]
    if overrides["workers"] is not None:
        changes["max_workers"] = overrides["workers"]

    if changes:
        jobs = [dataclasses.replace(job, **changes) for job in jobs]

    if len(jobs) > 1:
        logger.debug("Running %d mirror jobs", len(jobs))
    return jobs


@click.command()
@click.argument(
    "source", required=False, type=click.Path(file_okay=False, path_type=Path)
)
@click.argument(
    "replica", required=False, type=click.Path(file_okay=False, path_type=Path)
)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with a list of mirror jobs",
)
@click.option(
    "--log-file",
    "-l",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Append info, warning and error events to this file",
)
@click.option(
    "--sync-permissions",
    "-p",
    is_flag=True,
    help="Copy owner, mode bits and ACLs to the replica (requires root)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would change without changing it"
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(1, MAX_WORKERS_LIMIT),
    default=None,
    help="Number of parallel workers for file copies (default: 1)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show unchanged items too")
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug logging and write verbose events to the log file",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", "json_output", is_flag=True, help="Output summary as JSON")
@click.version_option(package_name="pymirror")
@click.pass_context
def main(
    ctx: Any,
    source: Optional[Path],
    replica: Optional[Path],
    config_file: Optional[Path],
    log_file: Optional[Path],
    sync_permissions: bool,
    dry_run: bool,
    workers: Optional[int],
    verbose: bool,
    debug: bool,
    quiet: bool,
    json_output: bool,
) -> None:
    """PyMirror - Mirror SOURCE directory into REPLICA directory.

    New and changed files are copied, files and directories missing from
    SOURCE are deleted from REPLICA. Files are compared by size only.

    Examples:
        pymirror ~/photos /mnt/backup/photos
        pymirror ~/photos /mnt/backup/photos --dry-run -v
        pymirror /srv/data /mnt/replica -p -l /var/log/pymirror.log
        pymirror --config jobs.json
    """
    out = OutputFormatter(json_output=json_output, quiet=quiet)

    # Configure logging based on debug flag
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pymirror").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides = {
        "sync_permissions": sync_permissions,
        "dry_run": dry_run,
        "debug": debug,
        "log_file": log_file,
        "workers": workers,
    }
    try:
        jobs = _build_jobs(source, replica, config_file, overrides)
    except MirrorConfigError as e:
        out.error(str(e))
        ctx.exit(1)
        return  # Unreachable, but helps type checker

    results: list[dict[str, Any]] = []
    failed = False

    for job in jobs:
        try:
            log = OperationLogger(
                out, log_file=job.log_file, verbose=verbose, debug=job.debug
            )
        except OSError as e:
            out.error(f"Cannot open log file {job.log_file}: {e}")
            results.append({"job": job.name, "error": str(e)})
            failed = True
            continue

        with log:
            engine = MirrorEngine(job, log, out)
            try:
                stats = engine.run()
            except MirrorError as e:
                # Already reported through the operation log
                results.append({"job": job.name, "error": str(e)})
                failed = True
                continue
            except KeyboardInterrupt:
                out.warning("Mirror cancelled by user")
                ctx.exit(130)
                return

        results.append({"job": job.name, **stats})

    if json_output:
        out.output_json(results)

    if failed:
        ctx.exit(1)
