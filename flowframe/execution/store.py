"""In-memory store for flow execution traces.

Producers (trackers) write the latest trace for a flow id; observers such
as an inspector read it and subscribe for change notifications, so neither
side holds a reference to the other. Data is not persisted across process
restarts.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from ..constants import DEFAULT_HISTORY_LIMIT
from .models import FlowExecution

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class ExecutionStore:
    """Live execution per flow id plus a bounded history of past runs.

    Every read returns a copy of the execution and step records; step
    inputs and outputs are shared by reference and must not be mutated.
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._live: Dict[str, FlowExecution] = {}
        self._history: Dict[str, List[FlowExecution]] = defaultdict(list)
        self._listeners: List[Listener] = []
        self._history_limit = history_limit
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    def set_execution(self, flow_id: str, execution: FlowExecution) -> None:
        """Store or replace the live trace for ``flow_id``.

        Finished executions are also recorded in the flow's history.
        """
        snapshot = execution.snapshot()
        with self._lock:
            self._live[flow_id] = snapshot
            if snapshot.is_terminal:
                self._append_history(flow_id, snapshot)
            self._notify()

    def archive_execution(self, flow_id: str, execution: FlowExecution) -> None:
        """Record ``execution`` in history without touching the live entry.

        Archiving an id that is already in history replaces that entry.
        """
        with self._lock:
            self._append_history(flow_id, execution.snapshot())
            self._notify()

    def get_execution(self, flow_id: str) -> Optional[FlowExecution]:
        """Latest trace for ``flow_id``: the live one, else the newest archived."""
        with self._lock:
            execution = self._live.get(flow_id)
            if execution is None and self._history.get(flow_id):
                execution = self._history[flow_id][-1]
            return execution.snapshot() if execution else None

    def get_all_executions(self) -> List[FlowExecution]:
        with self._lock:
            return [execution.snapshot() for execution in self._live.values()]

    def get_execution_history(self, flow_id: str) -> List[FlowExecution]:
        """Archived runs for ``flow_id``, newest first."""
        with self._lock:
            return [e.snapshot() for e in reversed(self._history.get(flow_id, []))]

    def get_historical_execution(
        self, flow_id: str, execution_id: str
    ) -> Optional[FlowExecution]:
        with self._lock:
            for execution in self._history.get(flow_id, []):
                if execution.id == execution_id:
                    return execution.snapshot()
            return None

    def clear_history(self, flow_id: Optional[str] = None) -> None:
        """Drop archived runs for one flow, or for every flow."""
        with self._lock:
            if flow_id is None:
                self._history.clear()
            else:
                self._history.pop(flow_id, None)
            self._notify()

    def clear_live_execution(self, flow_id: str) -> None:
        with self._lock:
            if self._live.pop(flow_id, None) is not None:
                self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change notifications.

        Returns:
            A function that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    def _append_history(self, flow_id: str, execution: FlowExecution) -> None:
        history = self._history[flow_id]
        for index, existing in enumerate(history):
            if existing.id == execution.id:
                history[index] = execution
                return
        history.append(execution)
        if len(history) > self._history_limit:
            del history[: len(history) - self._history_limit]

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Execution store listener failed")
