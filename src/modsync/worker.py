"""Background thread for a single sync pass.

The CLI keeps the main thread free for the progress bar and Ctrl-C, so a
pass runs here and reports back through a queue of typed events.
"""

from __future__ import annotations

import traceback
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from queue import Empty, Queue
from threading import Event, Thread
from typing import Union

from modsync.reporting.report import SyncResult

# A pass: (on_progress=..., cancel_event=...) -> SyncResult
SyncTask = Callable[..., SyncResult]


@dataclass(frozen=True)
class ProgressUpdate:
    phase: str
    current: int
    total: int
    item_id: str = ""


@dataclass(frozen=True)
class PassFinished:
    result: SyncResult


@dataclass(frozen=True)
class PassFailed:
    error: Exception
    details: str


WorkerEvent = Union[ProgressUpdate, PassFinished, PassFailed]


class SyncWorker:
    """Runs ``task`` in a daemon thread, one pass at a time.

    :meth:`cancel` sets the event handed to the task; the orchestrator
    checks it between items, so a pass never stops mid-request.
    """

    def __init__(self, task: SyncTask) -> None:
        self._task = task
        self._thread: Thread | None = None
        self._cancel_event = Event()
        self._events: Queue[WorkerEvent] = Queue()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def start(self) -> bool:
        """Start a pass. Returns False if one is already running."""
        if self.is_running:
            return False
        self._cancel_event.clear()
        # Events of an earlier pass are not carried over
        self._events = Queue()
        self._thread = Thread(target=self._run, name="modsync-sync", daemon=True)
        self._thread.start()
        return True

    def cancel(self) -> None:
        self._cancel_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def events(self, poll_interval: float = 0.1) -> Iterator[WorkerEvent]:
        """Yield events until the pass finishes or fails."""
        while True:
            try:
                event = self._events.get(timeout=poll_interval)
            except Empty:
                if not self.is_running and self._events.empty():
                    return
                continue
            yield event
            if not isinstance(event, ProgressUpdate):
                return

    def _report(self, phase: str, current: int, total: int, item_id: str = "") -> None:
        self._events.put(ProgressUpdate(phase, current, total, item_id))

    def _run(self) -> None:
        try:
            result = self._task(on_progress=self._report, cancel_event=self._cancel_event)
        except Exception as e:
            self._events.put(PassFailed(e, traceback.format_exc()))
        else:
            self._events.put(PassFinished(result))
