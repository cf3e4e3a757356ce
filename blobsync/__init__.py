"""blobsync - back up, restore and clean local directories in blob storage."""

from .azure_gateway import AzureBlobGateway
from .exceptions import (
    BlobNotFoundError,
    BlobSyncConfigError,
    BlobSyncError,
    BlobTransportError,
    LocalFilesystemError,
)
from .gateway import BlobMetadata, ContainerInfo, ObjectStoreGateway

__all__ = [
    "AzureBlobGateway",
    "BlobMetadata",
    "ContainerInfo",
    "ObjectStoreGateway",
    "BlobSyncError",
    "BlobNotFoundError",
    "BlobTransportError",
    "LocalFilesystemError",
    "BlobSyncConfigError",
]
