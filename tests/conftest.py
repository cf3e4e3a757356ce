"""Shared fixtures for blobsync tests."""

import threading
from datetime import datetime, timezone
from typing import BinaryIO, Iterator, Optional
from unittest.mock import Mock

import pytest

from blobsync.exceptions import BlobNotFoundError, BlobTransportError
from blobsync.gateway import BlobMetadata, ContainerInfo
from blobsync.output import OutputFormatter


class MemoryGateway:
    """In-memory object store used in place of Azure.

    Container handles are plain container names. Names listed in
    ``probe_errors``, ``upload_errors`` and ``download_errors`` raise
    ``BlobTransportError`` from the corresponding call.
    """

    account_name = "devstoreaccount1"
    endpoint = "https://devstoreaccount1.blob.core.windows.net/"

    def __init__(self):
        self.containers: dict[str, dict[str, tuple[bytes, datetime, str]]] = {}
        self.container_modified: dict[str, datetime] = {}
        self.probe_errors: set[str] = set()
        self.upload_errors: set[str] = set()
        self.download_errors: set[str] = set()
        self.uploaded: list[str] = []
        self.deleted: list[str] = []
        self.upload_timeouts: list[Optional[float]] = []
        self._lock = threading.Lock()

    def add_container(self, name: str) -> None:
        with self._lock:
            self.containers.setdefault(name, {})
            self.container_modified[name] = datetime.now(timezone.utc)

    def add_blob(
        self,
        container: str,
        name: str,
        data: bytes = b"",
        last_modified: Optional[datetime] = None,
        content_type: str = "application/octet-stream",
    ) -> None:
        self.add_container(container)
        with self._lock:
            self.containers[container][name] = (
                data,
                last_modified or datetime.now(timezone.utc),
                content_type,
            )

    def blob_names(self, container: str) -> list[str]:
        return sorted(self.containers.get(container, {}))

    def blob_data(self, container: str, name: str) -> bytes:
        return self.containers[container][name][0]

    def resolve_container(self, name: str, create: bool = True) -> str:
        with self._lock:
            if name not in self.containers:
                if not create:
                    raise BlobNotFoundError(f"Container {name}: not found")
                self.containers[name] = {}
                self.container_modified[name] = datetime.now(timezone.utc)
        return name

    def list_objects(self, container: str) -> Iterator[BlobMetadata]:
        with self._lock:
            snapshot = sorted(self.containers[container].items())
        for name, (data, modified, content_type) in snapshot:
            yield BlobMetadata(name, len(data), modified, content_type)

    def probe_metadata(self, container: str, name: str) -> BlobMetadata:
        if name in self.probe_errors:
            raise BlobTransportError(f"Blob {name}: connection reset")
        with self._lock:
            try:
                data, modified, content_type = self.containers[container][name]
            except KeyError:
                raise BlobNotFoundError(f"Blob {name}: not found") from None
        return BlobMetadata(name, len(data), modified, content_type)

    def upload_stream(
        self,
        container: str,
        name: str,
        data: BinaryIO,
        length: int,
        content_type: str,
        timeout: Optional[float] = None,
    ) -> None:
        if name in self.upload_errors:
            raise BlobTransportError(f"Upload of {name}: connection reset")
        payload = data.read()
        with self._lock:
            self.containers[container][name] = (
                payload,
                datetime.now(timezone.utc),
                content_type,
            )
            self.uploaded.append(name)
            self.upload_timeouts.append(timeout)

    def download_stream(
        self,
        container: str,
        name: str,
        output: BinaryIO,
        timeout: Optional[float] = None,
    ) -> int:
        if name in self.download_errors:
            raise BlobTransportError(f"Download of {name}: connection reset")
        with self._lock:
            try:
                data = self.containers[container][name][0]
            except KeyError:
                raise BlobNotFoundError(f"Blob {name}: not found") from None
        output.write(data)
        return len(data)

    def delete_object(self, container: str, name: str) -> None:
        with self._lock:
            try:
                del self.containers[container][name]
            except KeyError:
                raise BlobNotFoundError(f"Blob {name}: not found") from None
            self.deleted.append(name)

    def list_containers(self) -> Iterator[ContainerInfo]:
        with self._lock:
            names = sorted(self.containers)
        for name in names:
            yield ContainerInfo(name, self.container_modified.get(name))

    def delete_container(self, container: str) -> None:
        with self._lock:
            self.containers.pop(container, None)
            self.container_modified.pop(container, None)


@pytest.fixture
def gateway():
    """Create an empty in-memory gateway."""
    return MemoryGateway()


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True  # Suppress progress bars during tests
    return output

