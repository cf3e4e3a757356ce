"""Object store gateway interface consumed by the sync engine.

Implementations must be safe to share between worker threads: every call is
independent and the container handle returned by ``resolve_container`` is
read-mostly.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, BinaryIO, Iterator, Optional, Protocol


@dataclass(frozen=True)
class ContainerInfo:
    """A container in the storage account."""

    name: str
    last_modified: Optional[datetime]


@dataclass(frozen=True)
class BlobMetadata:
    """Properties of a single remote object."""

    name: str
    """Object key (slash separated relative path)"""

    size: int
    """Size in bytes"""

    last_modified: datetime
    """Last modified time reported by the service (UTC)"""

    content_type: Optional[str] = None


class ObjectStoreGateway(Protocol):
    """Capability interface of a remote blob store.

    ``probe_metadata`` raises ``BlobNotFoundError`` when the object does not
    exist and ``BlobTransportError`` for any other failure; callers rely on
    the distinction. Transfer calls accept an optional per-request timeout
    in seconds.
    """

    @property
    def account_name(self) -> str: ...

    @property
    def endpoint(self) -> str: ...

    def resolve_container(self, name: str, create: bool = True) -> Any:
        """Return a handle for a container, creating it (private) if allowed."""
        ...

    def list_objects(self, container: Any) -> Iterator[BlobMetadata]:
        """Flat listing of every object in the container."""
        ...

    def probe_metadata(self, container: Any, name: str) -> BlobMetadata: ...

    def upload_stream(
        self,
        container: Any,
        name: str,
        data: BinaryIO,
        length: int,
        content_type: str,
        timeout: Optional[float] = None,
    ) -> None: ...

    def download_stream(
        self,
        container: Any,
        name: str,
        output: BinaryIO,
        timeout: Optional[float] = None,
    ) -> int: ...

    def delete_object(self, container: Any, name: str) -> None: ...

    def list_containers(self) -> Iterator[ContainerInfo]: ...

    def delete_container(self, container: Any) -> None: ...
