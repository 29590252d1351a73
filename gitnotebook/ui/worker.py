from __future__ import annotations

from typing import Callable

from PySide6.QtCore import QObject, QRunnable, Signal

from gitnotebook.core.errors import Outcome


class SyncTaskSignals(QObject):
    """
    finished(req_id, op, outcome)
    failed(req_id, op, error_message)   -- unexpected exception, not a NotebookError
    """
    finished = Signal(int, str, object)
    failed = Signal(int, str, str)


class SyncTaskWorker(QRunnable):
    """
    Runs one workflow operation off the GUI thread.
    No widgets are touched here; results go back through signals.
    """

    def __init__(self, *, req_id: int, op: str, fn: Callable[[], Outcome]):
        super().__init__()
        self.req_id = req_id
        self.op = op
        self.fn = fn
        self.signals = SyncTaskSignals()

    def run(self) -> None:
        try:
            outcome = self.fn()
        except Exception as e:
            self.signals.failed.emit(self.req_id, self.op, f"{type(e).__name__}: {e}")
            return
        self.signals.finished.emit(self.req_id, self.op, outcome)
