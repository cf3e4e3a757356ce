"""Azure Blob Storage implementation of the object store gateway."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import BinaryIO, Iterator

from azure.core.exceptions import (
    AzureError,
    ResourceExistsError,
    ResourceNotFoundError,
)
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from .exceptions import BlobNotFoundError, BlobSyncConfigError, BlobTransportError
from .gateway import BlobMetadata, ContainerInfo
from .utils import to_utc

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(description: str) -> Iterator[None]:
    """Map Azure SDK exceptions onto the blobsync error taxonomy."""
    try:
        yield
    except ResourceNotFoundError as e:
        raise BlobNotFoundError(f"{description}: not found") from e
    except AzureError as e:
        raise BlobTransportError(f"{description}: {e}") from e


class AzureBlobGateway:
    """Gateway backed by ``azure-storage-blob``.

    The SDK's own retry policy is disabled so that retries and timeouts are
    governed solely by the transfer policy chosen for the run.
    """

    def __init__(
        self,
        connection_string: str,
        service: BlobServiceClient | None = None,
    ):
        """Initialize the gateway.

        Args:
            connection_string: Storage account connection string
            service: Pre-built service client (mainly for testing)

        Raises:
            BlobSyncConfigError: If the connection string cannot be parsed
        """
        if service is None:
            try:
                service = BlobServiceClient.from_connection_string(
                    connection_string, retry_total=0
                )
            except ValueError as e:
                raise BlobSyncConfigError(f"Invalid connection string: {e}") from e
        self._service = service

    @property
    def account_name(self) -> str:
        return self._service.account_name or ""

    @property
    def endpoint(self) -> str:
        return self._service.url

    def resolve_container(self, name: str, create: bool = True) -> ContainerClient:
        """Get a container client, creating the container if needed.

        Args:
            name: Container name
            create: Create the container with private access when absent

        Returns:
            Container client shared by all workers of the run

        Raises:
            BlobNotFoundError: If the container is absent and create is False
        """
        container = self._service.get_container_client(name)

        with _translate_errors(f"Container {name}"):
            if create:
                try:
                    # No public_access argument: the container is private
                    container.create_container(metadata={"Name": name})
                    logger.debug(f"Created container {name}")
                except ResourceExistsError:
                    logger.debug(f"Container {name} already exists")
            elif not container.exists():
                raise BlobNotFoundError(f"Container {name} not found")

        return container

    def list_objects(self, container: ContainerClient) -> Iterator[BlobMetadata]:
        with _translate_errors(f"Listing {container.container_name}"):
            for blob in container.list_blobs():
                yield BlobMetadata(
                    name=blob.name,
                    size=blob.size or 0,
                    last_modified=to_utc(blob.last_modified),
                    content_type=(
                        blob.content_settings.content_type
                        if blob.content_settings
                        else None
                    ),
                )

    def probe_metadata(self, container: ContainerClient, name: str) -> BlobMetadata:
        with _translate_errors(f"Blob {name}"):
            props = container.get_blob_client(name).get_blob_properties()
        return BlobMetadata(
            name=name,
            size=props.size or 0,
            last_modified=to_utc(props.last_modified),
            content_type=(
                props.content_settings.content_type if props.content_settings else None
            ),
        )

    def upload_stream(
        self,
        container: ContainerClient,
        name: str,
        data: BinaryIO,
        length: int,
        content_type: str,
        timeout: float | None = None,
    ) -> None:
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = int(timeout)

        with _translate_errors(f"Upload of {name}"):
            container.upload_blob(
                name,
                data,
                length=length,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
                **kwargs,
            )

    def download_stream(
        self,
        container: ContainerClient,
        name: str,
        output: BinaryIO,
        timeout: float | None = None,
    ) -> int:
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = int(timeout)

        with _translate_errors(f"Download of {name}"):
            downloader = container.download_blob(name, **kwargs)
            return downloader.readinto(output)

    def delete_object(self, container: ContainerClient, name: str) -> None:
        with _translate_errors(f"Delete of {name}"):
            container.delete_blob(name)

    def list_containers(self) -> Iterator[ContainerInfo]:
        with _translate_errors("Listing containers"):
            for props in self._service.list_containers():
                yield ContainerInfo(
                    name=props.name,
                    last_modified=(
                        to_utc(props.last_modified) if props.last_modified else None
                    ),
                )

    def delete_container(self, container: ContainerClient) -> None:
        with _translate_errors(f"Container {container.container_name}"):
            container.delete_container()
