"""Bounded-parallelism executor for independent units of work.

Work items are drawn lazily from an iterable and at most ``max_workers`` are
in flight at any time. A failing item is recorded and the run continues;
``run`` returns only after every submitted item has finished. Aggregation
happens in the calling thread from the finished futures, so workers never
share mutable counters.
"""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class WorkItem(Generic[T]):
    """A named unit of work."""

    name: str
    func: Callable[[], T]


@dataclass(frozen=True)
class WorkResult(Generic[T]):
    """Terminal state of one work item."""

    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class ScheduleReport(Generic[T]):
    """Aggregate of a scheduler run."""

    submitted: int = 0
    counted: int = 0
    failed: int = 0
    elapsed: float = 0.0
    results: list[WorkResult[T]] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return len(self.results)


class WorkScheduler:
    """Runs work items with a fixed worker budget.

    Examples:
        >>> scheduler = WorkScheduler(max_workers=3)
        >>> items = [WorkItem(str(i), lambda i=i: i % 2 == 0) for i in range(10)]
        >>> scheduler.run(items).counted
        5
    """

    def __init__(
        self,
        max_workers: int,
        on_complete: Optional[Callable[[WorkResult[Any]], None]] = None,
    ):
        """Initialize the scheduler.

        Args:
            max_workers: Maximum number of items in flight (at least 1)
            on_complete: Called in the submitting thread for every finished item
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1 (got {max_workers})")
        self.max_workers = max_workers
        self.on_complete = on_complete

    def run(
        self,
        items: Iterable[WorkItem[T]],
        is_counted: Callable[[T], bool] = bool,
    ) -> ScheduleReport[T]:
        """Execute all items and wait for them to finish.

        Args:
            items: Work items (may be a lazy generator)
            is_counted: Decides whether a successful result counts

        Returns:
            ScheduleReport with one result per submitted item

        Raises:
            KeyboardInterrupt: After in-flight items have finished. Errors
                raised while iterating ``items`` propagate the same way.
        """
        start = time.time()
        report: ScheduleReport[T] = ScheduleReport()

        if self.max_workers == 1:
            for item in items:
                report.submitted += 1
                self._record(report, self._execute(item), is_counted)
        else:
            self._run_parallel(items, is_counted, report)

        report.elapsed = time.time() - start
        logger.debug(
            f"Scheduler finished {report.completed}/{report.submitted} items "
            f"({report.counted} counted, {report.failed} failed) "
            f"in {report.elapsed:.2f}s"
        )
        return report

    def _run_parallel(
        self,
        items: Iterable[WorkItem[T]],
        is_counted: Callable[[T], bool],
        report: ScheduleReport[T],
    ) -> None:
        pending: set[Future[WorkResult[T]]] = set()

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="blobsync"
        ) as executor:
            try:
                for item in items:
                    if len(pending) >= self.max_workers:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                        for future in done:
                            self._record(report, future.result(), is_counted)

                    pending.add(executor.submit(self._execute, item))
                    report.submitted += 1
            except BaseException as e:
                # Interrupted or the item source failed: account for what is
                # already running before propagating
                logger.debug(
                    f"Stopped submitting ({type(e).__name__}), "
                    f"waiting for {len(pending)} in-flight item(s)"
                )
                self._drain(pending, report, is_counted)
                raise

            self._drain(pending, report, is_counted)

    def _drain(
        self,
        pending: set[Future[WorkResult[T]]],
        report: ScheduleReport[T],
        is_counted: Callable[[T], bool],
    ) -> None:
        while pending:
            done, pending = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                self._record(report, future.result(), is_counted)

    @staticmethod
    def _execute(item: WorkItem[T]) -> WorkResult[T]:
        start = time.time()
        try:
            value = item.func()
        except Exception as e:
            elapsed = time.time() - start
            logger.debug(f"Failed {item.name} in {elapsed:.2f}s: {e}")
            return WorkResult(name=item.name, error=e, elapsed=elapsed)
        elapsed = time.time() - start
        logger.debug(f"Completed {item.name} in {elapsed:.2f}s")
        return WorkResult(name=item.name, value=value, elapsed=elapsed)

    def _record(
        self,
        report: ScheduleReport[T],
        result: WorkResult[T],
        is_counted: Callable[[T], bool],
    ) -> None:
        report.results.append(result)
        if result.failed:
            report.failed += 1
        elif is_counted(result.value):  # type: ignore[arg-type]
            report.counted += 1
        if self.on_complete is not None:
            self.on_complete(result)
