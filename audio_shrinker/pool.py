from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Sequence

from .encoder import FileResult, FileTask


class CompletionCounter:
    """Monotonic count of finished files, shared between workers and the progress reporter."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class ResultCollector:
    """Append-only result list; read it only after the pool has drained."""

    def __init__(self) -> None:
        self._results: List[FileResult] = []
        self._lock = threading.Lock()

    def append(self, result: FileResult) -> None:
        with self._lock:
            self._results.append(result)

    def snapshot(self) -> List[FileResult]:
        with self._lock:
            return list(self._results)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


def _run_task(
    task: FileTask,
    fn: Callable[[FileTask], FileResult],
    results: ResultCollector,
    counter: CompletionCounter,
) -> FileResult:
    try:
        result = fn(task)
    except Exception as exc:  # noqa: BLE001
        logging.error("Failed: %s\nReason: %s", task.source_path, exc)
        result = FileResult(task.source_path, task.dest_path, success=False, error_detail=str(exc))
    try:
        results.append(result)
    finally:
        counter.increment()
    return result


def run_pool(
    tasks: Sequence[FileTask],
    parallelism: int,
    fn: Callable[[FileTask], FileResult],
    counter: Optional[CompletionCounter] = None,
    results: Optional[ResultCollector] = None,
) -> List[FileResult]:
    """Run ``fn`` over every task with at most ``parallelism`` in flight.

    Idle workers pick up the next pending task as soon as they finish. Returns
    once every task has completed; the result order follows completion, not
    submission.
    """
    if parallelism <= 0:
        raise ValueError(f"parallelism must be positive, got {parallelism}")
    counter = counter if counter is not None else CompletionCounter()
    results = results if results is not None else ResultCollector()
    if not tasks:
        return results.snapshot()

    with ThreadPoolExecutor(max_workers=parallelism, thread_name_prefix="encode") as pool:
        futures = [pool.submit(_run_task, task, fn, results, counter) for task in tasks]
        for future in as_completed(futures):
            future.result()

    return results.snapshot()
