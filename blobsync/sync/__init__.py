"""Sync engine for blobsync - backup, restore and clean operations."""

from .engine import SyncEngine
from .modes import Operation, TransferDirection
from .operations import TransferOperations
from .outcome import OutcomeStatus, RunSummary, SkipReason, TransferOutcome
from .policy import (
    AttemptPolicy,
    ExponentialRetryPolicy,
    SpeedTimeoutPolicy,
    compute_timeout,
    needs_upload,
)
from .scanner import DirectoryScanner, ExtensionFilter, LocalFile, RemoteFile
from .scheduler import ScheduleReport, WorkItem, WorkResult, WorkScheduler

__all__ = [
    "SyncEngine",
    "Operation",
    "TransferDirection",
    "TransferOperations",
    "OutcomeStatus",
    "RunSummary",
    "SkipReason",
    "TransferOutcome",
    "AttemptPolicy",
    "ExponentialRetryPolicy",
    "SpeedTimeoutPolicy",
    "compute_timeout",
    "needs_upload",
    "DirectoryScanner",
    "ExtensionFilter",
    "LocalFile",
    "RemoteFile",
    "ScheduleReport",
    "WorkItem",
    "WorkResult",
    "WorkScheduler",
]
