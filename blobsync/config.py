"""Configuration for blobsync runs.

``SyncOptions`` is the immutable per-run configuration handed to the sync
engine. ``Config`` resolves storage account connection strings from the
environment and the user config file; it is used by the CLI only, the engine
never performs ambient lookups.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional, Union

from .exceptions import BlobSyncConfigError
from .mime_types import normalize_extension

logger = logging.getLogger(__name__)

CONNECTION_STRING_ENV = "BLOBSYNC_CONNECTION_STRING"
DEFAULT_ACCOUNT_NAME = "default"


def default_worker_count() -> int:
    """Number of workers to use when none is configured."""
    return os.cpu_count() or 1


def parse_extensions(value: Union[str, Iterable[str], None]) -> frozenset[str]:
    """Parse a semicolon separated extension list.

    Args:
        value: String such as ``".jpg;.css;html"`` or an iterable of
            extensions

    Returns:
        Frozen set of lower-case extensions with a leading dot

    Examples:
        >>> sorted(parse_extensions("jpg; .PNG;;"))
        ['.jpg', '.png']
        >>> parse_extensions(None)
        frozenset()
    """
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = value.split(";")
    return frozenset(ext for ext in map(normalize_extension, value) if ext)


@dataclass(frozen=True)
class SyncOptions:
    """Read-only options for one run of the sync engine."""

    source: Optional[Path] = None
    """Local root directory"""

    container: Optional[str] = None
    """Destination container name"""

    include: frozenset[str] = field(default_factory=frozenset)
    """Extensions to include (empty means all)"""

    exclude: frozenset[str] = field(default_factory=frozenset)
    """Extensions to exclude (wins over include)"""

    overwrite: bool = False
    """Upload without comparing last modified times"""

    workers: int = field(default_factory=default_worker_count)
    """Maximum number of concurrent transfers"""

    verbose: bool = False
    """Report per-item details"""

    dry_run: bool = False
    """Evaluate everything but do not modify local or remote state"""

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise BlobSyncConfigError(
                f"Worker count must be at least 1 (got {self.workers})"
            )
        # Accept plain iterables and strings for the extension sets
        object.__setattr__(self, "include", parse_extensions(self.include))
        object.__setattr__(self, "exclude", parse_extensions(self.exclude))
        if self.source is not None and not isinstance(self.source, Path):
            object.__setattr__(self, "source", Path(self.source))


def parse_connection_string(connection_string: str) -> dict[str, str]:
    """Parse and validate a storage account connection string.

    Args:
        connection_string: ``Key=Value;Key=Value`` connection string

    Returns:
        Dictionary of connection string settings

    Raises:
        BlobSyncConfigError: If the string is malformed or lacks credentials

    Examples:
        >>> parse_connection_string(
        ...     "DefaultEndpointsProtocol=https;AccountName=acct;AccountKey=a2V5"
        ... )["AccountName"]
        'acct'
    """
    settings: dict[str, str] = {}
    for part in connection_string.strip().split(";"):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        if not sep or not key.strip():
            raise BlobSyncConfigError(f"Invalid connection string segment: {part!r}")
        settings[key.strip()] = value.strip()

    if settings.get("UseDevelopmentStorage", "").lower() == "true":
        return settings
    if "AccountName" in settings and (
        "AccountKey" in settings or "SharedAccessSignature" in settings
    ):
        return settings
    if "BlobEndpoint" in settings:
        return settings

    raise BlobSyncConfigError(
        "Connection string must contain AccountName and AccountKey, "
        "a SharedAccessSignature, a BlobEndpoint or UseDevelopmentStorage=true"
    )


class Config:
    """Resolves storage account connection strings.

    Lookup order without an explicit account: the ``BLOBSYNC_CONNECTION_STRING``
    environment variable, then the ``default`` entry of the config file.

    The config file (``~/.config/blobsync/config``) holds one
    ``name=connection-string`` entry per line; lines starting with ``#`` are
    ignored.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or (
            Path.home() / ".config" / "blobsync" / "config"
        )

    def get_config_path(self) -> Path:
        """Path of the user config file."""
        return self.config_path

    def load_accounts(self) -> dict[str, str]:
        """Read named accounts from the config file.

        Returns:
            Mapping of account name to connection string (empty if no file)
        """
        if not self.config_path.exists():
            return {}

        accounts: dict[str, str] = {}
        try:
            with open(self.config_path, encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    name, sep, value = line.partition("=")
                    if not sep:
                        logger.warning(f"Ignoring malformed config line: {line}")
                        continue
                    accounts[name.strip()] = value.strip()
        except OSError as e:
            raise BlobSyncConfigError(
                f"Failed to read config file {self.config_path}: {e}"
            ) from e

        logger.debug(f"Loaded {len(accounts)} account(s) from {self.config_path}")
        return accounts

    def resolve_connection_string(self, account: Optional[str] = None) -> str:
        """Resolve the connection string for a run.

        Args:
            account: Literal connection string or name of a configured account

        Returns:
            Validated connection string

        Raises:
            BlobSyncConfigError: If nothing is configured or the string is invalid
        """
        if account and "=" in account:
            parse_connection_string(account)
            return account

        if account:
            accounts = self.load_accounts()
            if account not in accounts:
                raise BlobSyncConfigError(
                    f"Account '{account}' not found in {self.config_path}"
                )
            connection_string = accounts[account]
        else:
            connection_string = os.environ.get(CONNECTION_STRING_ENV, "")
            if not connection_string:
                connection_string = self.load_accounts().get(DEFAULT_ACCOUNT_NAME, "")
            if not connection_string:
                raise BlobSyncConfigError(
                    "No storage account configured. Use --account, set "
                    f"{CONNECTION_STRING_ENV} or add a '{DEFAULT_ACCOUNT_NAME}' "
                    f"entry to {self.config_path}"
                )

        parse_connection_string(connection_string)
        return connection_string


config = Config()
