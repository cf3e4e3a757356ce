"""Per-item transfer primitives shared by all sync operations."""

import logging
from pathlib import Path
from typing import Any, Optional

from ..exceptions import BlobNotFoundError, LocalFilesystemError
from ..gateway import BlobMetadata, ObjectStoreGateway
from .modes import TransferDirection
from .policy import AttemptPolicy, ExponentialRetryPolicy
from .scanner import LocalFile, RemoteFile

logger = logging.getLogger(__name__)


class TransferOperations:
    """Unified upload/download/delete operations with a common interface.

    Every byte transfer runs under the configured attempt policy. Each
    attempt reopens the local file so a retry never resumes a half-consumed
    stream.
    """

    def __init__(
        self,
        gateway: ObjectStoreGateway,
        policy: Optional[AttemptPolicy] = None,
    ):
        """Initialize transfer operations.

        Args:
            gateway: Object store gateway
            policy: Timeout/retry policy (defaults to exponential retry)
        """
        self.gateway = gateway
        self.policy = policy or ExponentialRetryPolicy()

    def probe_remote(self, container: Any, relative_path: str) -> Optional[BlobMetadata]:
        """Fetch remote metadata.

        Returns:
            Metadata, or None if the object does not exist

        Raises:
            BlobTransportError: For any failure other than "not found"
        """
        try:
            return self.gateway.probe_metadata(container, relative_path)
        except BlobNotFoundError:
            return None

    def upload_file(
        self,
        container: Any,
        local_file: LocalFile,
        content_type: str,
    ) -> int:
        """Upload a local file to the object with the same relative path.

        Args:
            container: Container handle
            local_file: Local file to upload
            content_type: MIME type stored with the object

        Returns:
            Number of bytes uploaded
        """

        def attempt(timeout: Optional[float]) -> int:
            try:
                with open(local_file.path, "rb") as f:
                    self.gateway.upload_stream(
                        container,
                        local_file.relative_path,
                        f,
                        local_file.size,
                        content_type,
                        timeout=timeout,
                    )
            except OSError as e:
                raise LocalFilesystemError(
                    f"Cannot read {local_file.path}: {e}"
                ) from e
            return local_file.size

        return self.policy.execute(
            attempt,
            local_file.size,
            TransferDirection.UPLOAD,
            local_file.relative_path,
        )

    def download_file(
        self,
        container: Any,
        remote_file: RemoteFile,
        local_path: Path,
    ) -> int:
        """Download a remote object, overwriting the local file.

        Args:
            container: Container handle
            remote_file: Remote object to download
            local_path: Local path where the object is written

        Returns:
            Number of bytes written
        """
        try:
            # Ensure parent directory exists
            local_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalFilesystemError(
                f"Cannot create directory {local_path.parent}: {e}"
            ) from e

        def attempt(timeout: Optional[float]) -> int:
            try:
                with open(local_path, "wb") as f:
                    return self.gateway.download_stream(
                        container,
                        remote_file.relative_path,
                        f,
                        timeout=timeout,
                    )
            except OSError as e:
                raise LocalFilesystemError(f"Cannot write {local_path}: {e}") from e

        return self.policy.execute(
            attempt,
            remote_file.size,
            TransferDirection.DOWNLOAD,
            remote_file.relative_path,
        )

    def delete_remote(self, container: Any, remote_file: RemoteFile) -> None:
        """Delete a remote object."""
        self.gateway.delete_object(container, remote_file.relative_path)
