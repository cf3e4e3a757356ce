"""Core sync engine for executing backup, restore, clean, list and delete."""

import logging
import time
from datetime import datetime
from functools import partial
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional, Sequence, TypeVar

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from ..config import SyncOptions
from ..exceptions import (
    BlobNotFoundError,
    BlobSyncConfigError,
    BlobSyncError,
    LocalFilesystemError,
)
from ..gateway import ObjectStoreGateway
from ..mime_types import get_content_type
from ..output import OutputFormatter
from ..utils import format_size, format_speed, format_timestamp
from .modes import Operation
from .operations import TransferOperations
from .outcome import RunSummary, SkipReason, TransferOutcome
from .policy import AttemptPolicy, needs_upload
from .scanner import DirectoryScanner, ExtensionFilter, LocalFile, RemoteFile
from .scheduler import WorkItem, WorkResult, WorkScheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONFIRM_TOKEN = "yes"
ROOT_CONTAINER = "/"


def _now() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def validate_options(operation: Operation, options: SyncOptions) -> None:
    """Check that the options required by ``operation`` are present.

    Raises:
        BlobSyncConfigError: Listing every missing option
    """
    problems = []
    if operation.requires_container and not options.container:
        problems.append(
            "Destination container (-d, --destination) is required for "
            f"{operation.value}."
        )
    if operation.requires_source and options.source is None:
        problems.append(
            f"Local source path (-s, --source) is required for {operation.value}."
        )
    if problems:
        raise BlobSyncConfigError(" ".join(problems))


class SyncEngine:
    """Orchestrates one operation against a container.

    The container handle is resolved once per run and shared by all workers.
    Per-item transfer errors are caught inside the item closure and counted
    as failures. During backup, a metadata probe failing for any reason other
    than "not found" escapes the closure instead; it is reported as an error
    regardless of verbosity but, like every item failure, never aborts the
    remaining items.
    """

    def __init__(
        self,
        gateway: ObjectStoreGateway,
        options: SyncOptions,
        output: Optional[OutputFormatter] = None,
        policy: Optional[AttemptPolicy] = None,
    ):
        """Initialize sync engine.

        Args:
            gateway: Object store gateway
            options: Options for this run
            output: Output formatter for displaying progress/status
            policy: Timeout/retry policy for individual transfers
        """
        self.gateway = gateway
        self.options = options
        self.output = output or OutputFormatter()
        self.operations = TransferOperations(gateway, policy)
        self.extension_filter = ExtensionFilter(options.include, options.exclude)

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(
        self,
        operation: Operation,
        confirm: Optional[Callable[[str], str]] = None,
    ) -> Any:
        """Validate options and run a single operation.

        Args:
            operation: Operation to run
            confirm: Prompt function used by DELETE

        Returns:
            RunSummary for backup/restore/clean, the number of listed entries
            for list, and whether the container was deleted for delete

        Raises:
            BlobSyncConfigError: If options required by the operation are missing
        """
        validate_options(operation, self.options)

        self.output.info(
            f"Using account {self.gateway.account_name}, "
            f"base URI {self.gateway.endpoint}, "
            f"container name {self.options.container or ROOT_CONTAINER}."
        )
        if self.options.dry_run and operation in (
            Operation.BACKUP,
            Operation.RESTORE,
            Operation.CLEAN,
        ):
            self.output.info("Dry run: No changes will be made")

        if operation == Operation.BACKUP:
            return self.backup()
        if operation == Operation.RESTORE:
            return self.restore()
        if operation == Operation.CLEAN:
            return self.clean()
        if operation == Operation.LIST:
            return self.list()
        return self.delete(confirm or input)

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    def backup(self) -> RunSummary:
        """Upload new and changed local files.

        Returns:
            Summary with the number of files uploaded
        """
        source = self._require_directory()
        start = time.time()
        self.output.info(f"Backup started at {_now()}")

        scanner = DirectoryScanner(self.extension_filter)
        local_files = self._with_spinner(
            "Scanning local directory...", lambda: scanner.scan_local(source)
        )
        logger.debug(
            f"Local scan found {len(local_files)} file(s), "
            f"{scanner.filtered_count} filtered"
        )
        if self.options.verbose:
            self.output.info(f"Backing up a total of {len(local_files)} files")

        container = self._resolve_for_backup()

        items = [
            WorkItem(f.relative_path, partial(self._backup_file, container, f))
            for f in local_files
        ]
        summary = self._execute(
            Operation.BACKUP, items, scanner.filtered_count, start, "Uploading..."
        )

        self.output.success(
            f"Backup completed at {_now()} with {summary.transferred} files "
            f"{'to upload' if summary.dry_run else 'uploaded'}"
        )
        self._report_failures(summary)
        return summary

    def _resolve_for_backup(self) -> Any:
        container_name = self.options.container
        if not self.options.dry_run:
            return self.gateway.resolve_container(container_name, create=True)
        try:
            return self.gateway.resolve_container(container_name, create=False)
        except BlobNotFoundError:
            logger.debug(f"Container {container_name} does not exist yet")
            return None

    def _backup_file(self, container: Any, local_file: LocalFile) -> TransferOutcome:
        """Upload one file if it is newer than its remote copy."""
        path = local_file.relative_path
        verbose = self.options.verbose
        if verbose:
            self.output.info(
                f"Backing up file {path} ({local_file.size // 1024:,} kB)"
            )

        if not self.options.overwrite:
            # Errors other than "not found" propagate out of the closure
            remote = (
                self.operations.probe_remote(container, path)
                if container is not None
                else None
            )
            if not needs_upload(
                local_file,
                remote_exists=remote is not None,
                remote_last_modified=remote.last_modified if remote else None,
                overwrite=False,
            ):
                if verbose:
                    self.output.info(f"File {path} unchanged, not uploaded")
                return TransferOutcome.skipped(path, SkipReason.UNCHANGED)

        if self.options.dry_run:
            if verbose:
                self.output.info(f"Would upload {path}")
            return TransferOutcome.done(path, local_file.size)

        start = time.time()
        try:
            self.operations.upload_file(container, local_file, get_content_type(path))
        except BlobSyncError as e:
            self._report_item_error(f"Error while backing up file {local_file.path}", e)
            return TransferOutcome.failed(path, e)

        elapsed = time.time() - start
        logger.debug(
            f"Upload of {path} ({format_size(local_file.size)}) took {elapsed:.2f}s"
        )
        if verbose:
            self.output.info(
                f"File {path} uploaded at {format_speed(local_file.size, elapsed)}"
            )
        return TransferOutcome.done(path, local_file.size)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def restore(self) -> RunSummary:
        """Download every object in the container to the source root.

        Local files are always overwritten.

        Returns:
            Summary with the number of objects downloaded
        """
        root = self._require_source()
        start = time.time()
        self.output.info(f"Restore started at {_now()}")

        container = self.gateway.resolve_container(self.options.container, create=False)
        scanner = DirectoryScanner(self.extension_filter)
        remote_files = self._with_spinner(
            "Listing container...",
            lambda: list(scanner.scan_remote(self.gateway.list_objects(container))),
        )
        logger.debug(
            f"Remote listing found {len(remote_files)} object(s), "
            f"{scanner.filtered_count} filtered"
        )

        items = [
            WorkItem(r.relative_path, partial(self._restore_file, container, root, r))
            for r in remote_files
        ]
        summary = self._execute(
            Operation.RESTORE, items, scanner.filtered_count, start, "Downloading..."
        )

        self.output.success(
            f"Restore completed at {_now()} with {summary.transferred} blobs "
            f"{'to download' if summary.dry_run else 'downloaded'}"
        )
        self._report_failures(summary)
        return summary

    def _restore_file(
        self, container: Any, root: Path, remote_file: RemoteFile
    ) -> TransferOutcome:
        """Download one object, creating missing parent directories."""
        path = remote_file.relative_path
        verbose = self.options.verbose
        if verbose:
            self.output.info(f"Restoring blob {path} ({remote_file.size // 1024:,} kB)")

        try:
            local_path = self._local_path(root, path)
            if self.options.dry_run:
                if verbose:
                    self.output.info(f"Would download {path} to {local_path}")
                return TransferOutcome.done(path, remote_file.size)

            start = time.time()
            self.operations.download_file(container, remote_file, local_path)
        except BlobSyncError as e:
            self._report_item_error(f"Error restoring blob {path}", e)
            return TransferOutcome.failed(path, e)

        elapsed = time.time() - start
        logger.debug(
            f"Download of {path} ({format_size(remote_file.size)}) took {elapsed:.2f}s"
        )
        if verbose:
            self.output.info(
                f"Blob {path} downloaded at {format_speed(remote_file.size, elapsed)}"
            )
        return TransferOutcome.done(path, remote_file.size)

    # ------------------------------------------------------------------
    # Clean
    # ------------------------------------------------------------------

    def clean(self) -> RunSummary:
        """Delete remote objects that have no local counterpart.

        Local-only files are left alone; uploading them is the job of backup.

        Returns:
            Summary with the number of objects deleted
        """
        root = self._require_directory()
        start = time.time()

        container = self.gateway.resolve_container(self.options.container, create=False)
        scanner = DirectoryScanner(self.extension_filter)
        remote_files = self._with_spinner(
            "Listing container...",
            lambda: list(scanner.scan_remote(self.gateway.list_objects(container))),
        )

        kept: list[TransferOutcome] = []
        items = []
        for remote_file in remote_files:
            if self._exists_locally(root, remote_file.relative_path):
                kept.append(
                    TransferOutcome.skipped(
                        remote_file.relative_path, SkipReason.LOCAL_EXISTS
                    )
                )
            else:
                items.append(
                    WorkItem(
                        remote_file.relative_path,
                        partial(self._clean_file, container, remote_file),
                    )
                )
        logger.debug(
            f"Clean: {len(items)} of {len(remote_files)} object(s) have no local file"
        )

        summary = self._execute(
            Operation.CLEAN,
            items,
            scanner.filtered_count,
            start,
            "Deleting...",
            extra_outcomes=kept,
        )

        verb = "to delete" if summary.dry_run else "deleted"
        self.output.success(f"{summary.transferred} file(s) {verb} from backup.")
        self._report_failures(summary)
        return summary

    def _exists_locally(self, root: Path, relative_path: str) -> bool:
        # Same view of the tree as the local scan, symlinks included
        if not _is_relative_key(relative_path):
            return False
        return (root / relative_path).is_file()

    def _clean_file(self, container: Any, remote_file: RemoteFile) -> TransferOutcome:
        """Delete one remote object."""
        path = remote_file.relative_path
        if not self.options.dry_run:
            try:
                self.operations.delete_remote(container, remote_file)
            except BlobSyncError as e:
                self._report_item_error(f"Error deleting blob {path}", e)
                return TransferOutcome.failed(path, e)

        if self.options.verbose:
            verb = "would be deleted" if self.options.dry_run else "deleted"
            self.output.info(
                f"Backup of {path} ({remote_file.size // 1024:,} kbytes) {verb}"
            )
        return TransferOutcome.done(path, remote_file.size)

    # ------------------------------------------------------------------
    # List / Delete
    # ------------------------------------------------------------------

    def list(self) -> int:
        """List containers, or the objects of the configured container.

        Returns:
            Number of entries listed
        """
        name = self.options.container
        if not name or name == ROOT_CONTAINER:
            containers = list(self.gateway.list_containers())
            self.output.print_table(
                ["Container", "Last modified"],
                [(c.name, format_timestamp(c.last_modified)) for c in containers],
            )
            self.output.info(f"Total: {len(containers)} containers")
            return len(containers)

        container = self.gateway.resolve_container(name, create=False)
        scanner = DirectoryScanner(self.extension_filter)
        remote_files = list(scanner.scan_remote(self.gateway.list_objects(container)))
        self.output.print_table(
            ["Name", "Size"],
            [(r.relative_path, f"{r.size // 1024:,} kB") for r in remote_files],
            right_align=(1,),
        )
        self.output.info(f"Total: {len(remote_files)} files")
        return len(remote_files)

    def delete(self, confirm: Callable[[str], str]) -> bool:
        """Delete the container after interactive confirmation.

        Args:
            confirm: Prompt function returning the user's answer

        Returns:
            True if the container was deleted
        """
        name = self.options.container
        container = self.gateway.resolve_container(name, create=False)

        answer = confirm(
            f"This will delete the entire container ({name}). "
            "Do you want to continue? [yes|no|n]"
        )
        if (answer or "").strip().lower() != CONFIRM_TOKEN:
            self.output.info("Cancelled!")
            return False

        self.gateway.delete_container(container)
        self.output.success("Container deleted!")
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_source(self) -> Path:
        if self.options.source is None:
            raise BlobSyncConfigError("Local source path (-s, --source) is required.")
        return self.options.source

    def _require_directory(self) -> Path:
        source = self._require_source()
        if not source.exists():
            raise BlobSyncConfigError(f"Local directory does not exist: {source}")
        if not source.is_dir():
            raise BlobSyncConfigError(f"Local path is not a directory: {source}")
        return source

    @staticmethod
    def _local_path(root: Path, relative_path: str) -> Path:
        """Map an object key to a path below ``root``.

        Raises:
            LocalFilesystemError: If the key would resolve outside the root
        """
        if not _is_relative_key(relative_path):
            raise LocalFilesystemError(
                f"Refusing to write outside {root}: {relative_path}"
            )
        resolved_root = root.resolve()
        local_path = (resolved_root / relative_path).resolve()
        if resolved_root not in local_path.parents:
            raise LocalFilesystemError(
                f"Refusing to write outside {root}: {relative_path}"
            )
        return local_path

    def _with_spinner(self, description: str, func: Callable[[], T]) -> T:
        if self.output.quiet:
            return func()
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            console=self.output.console,
        ) as progress:
            progress.add_task(description, total=None)
            return func()

    def _execute(
        self,
        operation: Operation,
        items: Sequence[WorkItem[TransferOutcome]],
        filtered: int,
        start: float,
        description: str,
        extra_outcomes: Optional[Sequence[TransferOutcome]] = None,
    ) -> RunSummary:
        """Run item closures through the scheduler and summarize."""
        workers = self.options.workers
        logger.debug(f"Executing {len(items)} item(s) with {workers} worker(s)")

        if self.output.quiet or self.options.verbose or not items:
            report = WorkScheduler(workers).run(items, _is_transferred)
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                transient=True,
                console=self.output.console,
            ) as progress:
                task = progress.add_task(description, total=len(items))

                def advance(_: WorkResult[Any]) -> None:
                    progress.update(task, advance=1)

                report = WorkScheduler(workers, on_complete=advance).run(
                    items, _is_transferred
                )

        outcomes = list(extra_outcomes or [])
        for result in report.results:
            if result.failed:
                # Errors that escaped the item closure
                self.output.error(f"Failed to process {result.name}: {result.error}")
                outcomes.append(TransferOutcome.failed(result.name, result.error))
            else:
                outcomes.append(result.value)

        return RunSummary.from_outcomes(
            operation,
            outcomes,
            filtered=filtered,
            elapsed=time.time() - start,
            dry_run=self.options.dry_run,
        )

    def _report_item_error(self, message: str, error: BaseException) -> None:
        logger.debug(f"{message}: {error}")
        if self.options.verbose:
            self.output.error(f"{message}: {error}")

    def _report_failures(self, summary: RunSummary) -> None:
        if summary.failed:
            self.output.warning(
                f"{summary.failed} of {summary.candidates} item(s) failed"
            )


def _is_transferred(outcome: TransferOutcome) -> bool:
    return outcome.transferred


def _is_relative_key(relative_path: str) -> bool:
    """Whether an object key names a path below the local root.

    Examples:
        >>> _is_relative_key("docs/a.txt"), _is_relative_key("../a.txt")
        (True, False)
    """
    key = PurePosixPath(relative_path)
    return bool(key.parts) and not key.is_absolute() and ".." not in key.parts
