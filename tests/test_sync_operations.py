"""Tests for per-item transfer operations."""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest

from blobsync.exceptions import (
    BlobNotFoundError,
    BlobTransportError,
    LocalFilesystemError,
)
from blobsync.sync.operations import TransferOperations
from blobsync.sync.policy import ExponentialRetryPolicy, SpeedTimeoutPolicy
from blobsync.sync.scanner import LocalFile, RemoteFile


@pytest.fixture
def operations(gateway):
    gateway.add_container("c")
    return TransferOperations(gateway, ExponentialRetryPolicy(max_retries=0))


class TestTransferOperations:
    """Test TransferOperations functionality."""

    def test_default_policy(self, gateway):
        assert isinstance(TransferOperations(gateway).policy, ExponentialRetryPolicy)

    def test_probe_missing_returns_none(self, operations):
        assert operations.probe_remote("c", "missing.txt") is None

    def test_probe_existing(self, gateway, operations):
        gateway.add_blob("c", "a.txt", b"abc")
        metadata = operations.probe_remote("c", "a.txt")
        assert metadata.size == 3

    def test_probe_transport_error_propagates(self, gateway, operations):
        gateway.probe_errors = {"a.txt"}
        with pytest.raises(BlobTransportError):
            operations.probe_remote("c", "a.txt")

    def test_upload_file(self, gateway, operations, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello")
        local = LocalFile.from_path(path, tmp_path)

        assert operations.upload_file("c", local, "text/plain") == 5
        assert gateway.blob_data("c", "a.txt") == b"hello"

    @patch("blobsync.sync.policy.time.sleep")
    def test_upload_retry_rereads_file(self, mock_sleep, tmp_path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello")
        local = LocalFile.from_path(path, tmp_path)
        received = []

        def upload(container, name, data, length, content_type, timeout=None):
            received.append(data.read())
            if len(received) == 1:
                raise BlobTransportError("reset")

        gateway = Mock()
        gateway.upload_stream.side_effect = upload
        operations = TransferOperations(gateway, ExponentialRetryPolicy(max_retries=1))

        operations.upload_file("c", local, "text/plain")

        assert received == [b"hello", b"hello"]

    def test_upload_missing_local_file(self, operations, tmp_path):
        local = LocalFile(
            path=tmp_path / "gone.txt",
            relative_path="gone.txt",
            size=1,
            last_modified=datetime.now(timezone.utc),
        )
        with pytest.raises(LocalFilesystemError):
            operations.upload_file("c", local, "text/plain")

    def test_upload_passes_speed_timeout(self, gateway, tmp_path):
        gateway.add_container("c")
        path = tmp_path / "a.bin"
        path.write_bytes(b"x" * 10)
        operations = TransferOperations(gateway, SpeedTimeoutPolicy(1, 1))

        operations.upload_file("c", LocalFile.from_path(path, tmp_path), "x/y")

        assert gateway.upload_timeouts == [1.0]

    def test_download_creates_parents(self, gateway, operations, tmp_path):
        gateway.add_blob("c", "x/y.txt", b"data")
        remote = RemoteFile("x/y.txt", 4, datetime.now(timezone.utc))
        target = tmp_path / "out" / "x" / "y.txt"

        assert operations.download_file("c", remote, target) == 4
        assert target.read_bytes() == b"data"

    def test_download_missing_blob(self, operations, tmp_path):
        remote = RemoteFile("nope.txt", 0, datetime.now(timezone.utc))
        with pytest.raises(BlobNotFoundError):
            operations.download_file("c", remote, tmp_path / "nope.txt")

    def test_download_into_unwritable_path(self, gateway, operations, tmp_path):
        gateway.add_blob("c", "a.txt", b"a")
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        remote = RemoteFile("a.txt", 1, datetime.now(timezone.utc))

        with pytest.raises(LocalFilesystemError):
            operations.download_file("c", remote, blocker / "a.txt")

    def test_delete_remote(self, gateway, operations):
        gateway.add_blob("c", "a.txt", b"a")
        operations.delete_remote("c", RemoteFile("a.txt", 1, datetime.now(timezone.utc)))
        assert gateway.blob_names("c") == []
