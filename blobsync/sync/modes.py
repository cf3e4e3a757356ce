"""Operations and transfer directions."""

from enum import Enum


class Operation(str, Enum):
    """Top-level operations performed by the sync engine."""

    BACKUP = "backup"
    """Upload changed local files to the container"""

    RESTORE = "restore"
    """Download every object in the container to the local root"""

    CLEAN = "clean"
    """Delete remote objects that no longer exist locally"""

    LIST = "list"
    """List containers, or the objects of one container"""

    DELETE = "delete"
    """Delete the container and everything in it"""

    @property
    def requires_container(self) -> bool:
        """Whether a destination container must be given."""
        return self is not Operation.LIST

    @property
    def requires_source(self) -> bool:
        """Whether a local source path must be given."""
        return self in (Operation.BACKUP, Operation.RESTORE, Operation.CLEAN)


class TransferDirection(str, Enum):
    """Direction of a single byte transfer."""

    UPLOAD = "upload"
    DOWNLOAD = "download"
