"""
Parallel diagram fan-out.

Each diagram type gets its own task in a thread pool, keyed by type. Tasks
are independent: one failing or being cancelled never affects the others.
"""

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from concurrent.futures import wait
from dataclasses import dataclass
from typing import Optional

from repobook.config import settings
from repobook.diagrams.generator import DiagramGenerator, GeneratedDiagram

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_ERROR = "error"
STATUS_CANCELLED = "cancelled"


@dataclass
class DiagramOutcome:
    """Result of one diagram task."""

    status: str
    diagram: Optional[GeneratedDiagram] = None
    error: Optional[str] = None


class DiagramBatch:
    """
    Run diagram generations concurrently, one task per diagram type.

    Usable as a context manager; leaving the block shuts the pool down.

    Args:
        generator: Diagram generator shared by all tasks
        max_workers: Thread pool size (defaults to settings)
    """

    def __init__(self, generator: DiagramGenerator, max_workers: Optional[int] = None):
        self.generator = generator
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.diagram_max_workers,
            thread_name_prefix="diagram",
        )
        self._tasks: dict[str, Future] = {}
        self._lock = threading.Lock()

    def __enter__(self) -> "DiagramBatch":
        return self

    def __exit__(self, *args) -> None:
        self.shutdown()

    def submit(self, diagram_type: str, context: str, repo_name: Optional[str]) -> Future:
        """
        Start generating a diagram type.

        A type that is still running keeps its task; a finished one is
        replaced by a new task.
        """
        with self._lock:
            existing = self._tasks.get(diagram_type)
            if existing is not None and not existing.done():
                return existing
            future = self._executor.submit(
                self.generator.generate, diagram_type, context, repo_name
            )
            self._tasks[diagram_type] = future
            return future

    def cancel(self, diagram_type: str) -> bool:
        """
        Cancel a diagram type that has not started running yet.

        Returns:
            True if the task was cancelled
        """
        with self._lock:
            future = self._tasks.get(diagram_type)
        if future is None:
            return False
        return future.cancel()

    def results(self, timeout: Optional[float] = None) -> dict[str, DiagramOutcome]:
        """
        Wait for every task and collect outcomes keyed by diagram type.

        Tasks still running after `timeout` are reported as errors.
        """
        with self._lock:
            tasks = dict(self._tasks)
        wait(list(tasks.values()), timeout=timeout)

        outcomes: dict[str, DiagramOutcome] = {}
        for diagram_type, future in tasks.items():
            outcomes[diagram_type] = self._outcome(diagram_type, future)
        return outcomes

    def _outcome(self, diagram_type: str, future: Future) -> DiagramOutcome:
        if future.cancelled():
            return DiagramOutcome(status=STATUS_CANCELLED)
        if not future.done():
            return DiagramOutcome(status=STATUS_ERROR, error="Timed out")
        try:
            return DiagramOutcome(status=STATUS_OK, diagram=future.result(timeout=0))
        except (CancelledError, FutureTimeoutError):
            return DiagramOutcome(status=STATUS_CANCELLED)
        except Exception as e:
            logger.warning(f"Diagram '{diagram_type}' failed: {e}")
            return DiagramOutcome(status=STATUS_ERROR, error=str(e) or type(e).__name__)

    def shutdown(self) -> None:
        """Stop accepting work and cancel tasks that have not started."""
        self._executor.shutdown(wait=False, cancel_futures=True)
