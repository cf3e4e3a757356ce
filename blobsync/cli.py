"""CLI interface for blobsync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .azure_gateway import AzureBlobGateway
from .config import CONNECTION_STRING_ENV, SyncOptions, config
from .exceptions import BlobSyncConfigError, BlobSyncError
from .keepalive import KeepAwake
from .output import OutputFormatter
from .sync.engine import SyncEngine, validate_options
from .sync.modes import Operation
from .sync.outcome import RunSummary
from .sync.policy import AttemptPolicy, ExponentialRetryPolicy, SpeedTimeoutPolicy

logger = logging.getLogger(__name__)

# Operations long enough to warrant keeping the host awake
LONG_RUNNING = (Operation.BACKUP, Operation.RESTORE, Operation.CLEAN)


def configure_logging(verbose: bool) -> None:
    """Configure logging based on the verbose flag."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("blobsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def build_policy(
    max_retries: int,
    upload_speed: Optional[float],
    download_speed: Optional[float],
) -> AttemptPolicy:
    """Select the transfer policy from the command line options.

    Giving either speed selects the size-derived timeout policy; a missing
    speed defaults to the other one.
    """
    if upload_speed is not None or download_speed is not None:
        upload = upload_speed if upload_speed is not None else download_speed
        download = download_speed if download_speed is not None else upload_speed
        return SpeedTimeoutPolicy(upload, download)  # type: ignore[arg-type]
    return ExponentialRetryPolicy(max_retries=max_retries)


def _usage_error(ctx: Any, out: OutputFormatter, message: str) -> None:
    out.error(message)
    click.echo(ctx.get_usage(), err=True)
    ctx.exit(1)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--backup", "-b", is_flag=True, help="Back up the source directory")
@click.option("--restore", "-r", is_flag=True, help="Restore the container")
@click.option(
    "--clean", "-c", is_flag=True, help="Delete backups of removed local files"
)
@click.option(
    "--list",
    "-l",
    "list_",
    is_flag=True,
    help="List containers, or the files of the destination container",
)
@click.option("--delete", is_flag=True, help="Delete the destination container")
@click.option(
    "--source",
    "-s",
    type=click.Path(file_okay=False, path_type=Path),
    help="Local directory",
)
@click.option("--destination", "-d", help="Container name")
@click.option(
    "--include", "-i", help="Extensions to include, e.g. '.jpg;.css;.html'"
)
@click.option("--exclude", "-e", help="Extensions to exclude, e.g. '.tmp;.bak'")
@click.option(
    "--threads",
    "-t",
    type=click.IntRange(min=1),
    help="Number of parallel transfers (default: CPU count)",
)
@click.option(
    "--account",
    "-a",
    help=(
        "Connection string or configured account name "
        f"(default: ${CONNECTION_STRING_ENV})"
    ),
)
@click.option(
    "--overwrite",
    "-o",
    is_flag=True,
    help="Upload all files without comparing timestamps",
)
@click.option("--verbose", "-v", is_flag=True, help="Report every file")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--dry-run", is_flag=True, help="Show what would be done")
@click.option(
    "--max-retries",
    type=click.IntRange(min=0),
    default=3,
    show_default=True,
    envvar="BLOBSYNC_MAX_RETRIES",
    help="Retries per transfer (exponential backoff from 5 seconds)",
)
@click.option(
    "--upload-speed",
    type=click.FloatRange(min=0, min_open=True),
    help="Expected upload speed in MB/s; enables size-based timeouts",
)
@click.option(
    "--download-speed",
    type=click.FloatRange(min=0, min_open=True),
    help="Expected download speed in MB/s; enables size-based timeouts",
)
@click.version_option(package_name="blobsync")
@click.pass_context
def main(
    ctx: Any,
    backup: bool,
    restore: bool,
    clean: bool,
    list_: bool,
    delete: bool,
    source: Optional[Path],
    destination: Optional[str],
    include: Optional[str],
    exclude: Optional[str],
    threads: Optional[int],
    account: Optional[str],
    overwrite: bool,
    verbose: bool,
    quiet: bool,
    dry_run: bool,
    max_retries: int,
    upload_speed: Optional[float],
    download_speed: Optional[float],
) -> None:
    """blobsync - back up local directories to Azure Blob Storage.

    \b
    Examples:
        blobsync -b -s ./photos -d photos -i ".jpg;.png"
        blobsync -r -s ./restore -d photos -t 8
        blobsync -c -s ./photos -d photos --dry-run
        blobsync -l
        blobsync --delete -d photos
    """
    configure_logging(verbose)
    out = OutputFormatter(quiet=quiet)

    selected = [
        operation
        for operation, flag in (
            (Operation.BACKUP, backup),
            (Operation.RESTORE, restore),
            (Operation.CLEAN, clean),
            (Operation.LIST, list_),
            (Operation.DELETE, delete),
        )
        if flag
    ]
    if len(selected) != 1:
        _usage_error(
            ctx,
            out,
            "Specify exactly one of --backup, --restore, --clean, --list "
            "or --delete.",
        )
        return
    operation = selected[0]

    try:
        option_kwargs: dict[str, Any] = {}
        if threads is not None:
            option_kwargs["workers"] = threads
        options = SyncOptions(
            source=source,
            container=destination,
            include=include,  # type: ignore[arg-type]
            exclude=exclude,  # type: ignore[arg-type]
            overwrite=overwrite,
            verbose=verbose,
            dry_run=dry_run,
            **option_kwargs,
        )
        validate_options(operation, options)
        gateway = AzureBlobGateway(config.resolve_connection_string(account))
    except BlobSyncConfigError as e:
        _usage_error(ctx, out, str(e))
        return

    engine = SyncEngine(
        gateway,
        options,
        output=out,
        policy=build_policy(max_retries, upload_speed, download_speed),
    )

    def confirm(text: str) -> str:
        return click.prompt(text, default="n", show_default=False)

    try:
        if operation in LONG_RUNNING:
            with KeepAwake():
                result = engine.run(operation)
        else:
            result = engine.run(operation, confirm=confirm)
    except KeyboardInterrupt:
        out.warning("Interrupted by user")
        ctx.exit(130)  # Standard exit code for SIGINT
        return
    except BlobSyncConfigError as e:
        _usage_error(ctx, out, str(e))
        return
    except BlobSyncError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if isinstance(result, RunSummary) and result.failed:
        ctx.exit(1)


if __name__ == "__main__":
    main()
