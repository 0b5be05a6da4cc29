"""
Runs the editor's coroutines on the Qt GUI thread.

An asyncio event loop is owned by the bridge and stepped from a QTimer, so
coroutines, their done callbacks and the widgets they touch all live on the
GUI thread. Blocking HTTP calls still leave the thread through
``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional, Set

from PyQt5.QtCore import QObject, QTimer, pyqtSignal

logger = logging.getLogger(__name__)

PUMP_INTERVAL_MS = 10


class AsyncBridge(QObject):
    """Steps an asyncio loop from the Qt event loop."""

    busy_changed = pyqtSignal(bool)

    def __init__(self, parent=None, interval_ms: int = PUMP_INTERVAL_MS):
        super().__init__(parent)
        self.loop = asyncio.new_event_loop()
        self._tasks: Set[asyncio.Task] = set()
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._pump)
        self._timer.start()

    @property
    def busy(self) -> bool:
        return bool(self._tasks)

    def _pump(self):
        # A modal exec_() inside a callback would re-enter here
        if self.loop.is_running() or self.loop.is_closed():
            return
        self.loop.call_soon(self.loop.stop)
        self.loop.run_forever()

    def submit(self, coro: Coroutine[Any, Any, Any],
               on_done: Optional[Callable[[Any], None]] = None,
               on_error: Optional[Callable[[BaseException], None]] = None) -> asyncio.Task:
        """
        Schedule a coroutine.

        Args:
            coro: Coroutine to run
            on_done: Called with the result on success
            on_error: Called with the exception on failure; when omitted the
                failure is logged

        Returns:
            The scheduled task
        """
        task = self.loop.create_task(coro)
        was_busy = self.busy
        self._tasks.add(task)
        if not was_busy:
            self.busy_changed.emit(True)

        def finished(t: asyncio.Task):
            self._tasks.discard(t)
            if not self.busy:
                self.busy_changed.emit(False)
            if t.cancelled():
                return
            error = t.exception()
            if error is not None:
                if on_error is not None:
                    on_error(error)
                else:
                    logger.error("Background task failed: %s", error, exc_info=error)
            elif on_done is not None:
                on_done(t.result())

        task.add_done_callback(finished)
        return task

    def shutdown(self, final: Optional[Coroutine[Any, Any, Any]] = None):
        """Stop pumping, cancel outstanding tasks, run ``final`` and close the loop."""
        self._timer.stop()
        if self.loop.is_closed():
            if final is not None:
                final.close()
            return
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            self.loop.run_until_complete(
                asyncio.gather(*self._tasks, return_exceptions=True))
        if final is not None:
            self.loop.run_until_complete(final)
        self.loop.run_until_complete(self.loop.shutdown_default_executor())
        self.loop.close()
