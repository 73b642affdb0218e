"""
Execution Context - Per-run mutable state.

Owns the status, current node, ordered log and result map of one
execution, and writes every change through to the execution store.
Exactly one run loop owns a context.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional

from nodeflow.node_sdk.basenode import NodeRecord, utc_now_iso
from nodeflow.observability import with_execution_context

from .models import Execution, ExecutionStatus, LogEntry, LogLevel
from .store import ExecutionStore


logger = logging.getLogger(__name__)

_PYTHON_LEVELS = {
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class ExecutionContext:
    """
    Mutable state of a single execution.

    Status transitions are monotone: once the execution is terminal
    (locally or because the store reports an external stop) every
    further write is refused.
    """

    def __init__(self, store: ExecutionStore, execution: Execution):
        self._store = store
        self.execution_id = execution.id
        self.workflow_id = execution.workflow_id
        self._status = execution.status
        self._current_node_id = execution.current_node_id
        self._logs: List[LogEntry] = list(execution.logs)
        self._results: Dict[str, List[NodeRecord]] = copy.deepcopy(execution.results)

    # ==== State accessors ====

    @property
    def status(self) -> ExecutionStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    @property
    def current_node_id(self) -> Optional[str]:
        return self._current_node_id

    @property
    def logs(self) -> List[LogEntry]:
        return list(self._logs)

    @property
    def results(self) -> Dict[str, List[NodeRecord]]:
        return copy.deepcopy(self._results)

    def get_result(self, node_id: str) -> Optional[List[NodeRecord]]:
        """Records stored for ``node_id``, or None if it has not run successfully."""
        result = self._results.get(node_id)
        return copy.deepcopy(result) if result is not None else None

    # ==== Writes ====

    def log(self, level: LogLevel | str, message: str, node_id: Optional[str] = None) -> bool:
        """
        Append a log entry.

        Returns False (and writes nothing) once the execution is terminal.
        """
        if self.is_terminal:
            return False

        entry = LogEntry(level=LogLevel(level), message=message, node_id=node_id)
        if not self._write({"logs": self._logs + [entry]}):
            return False
        self._logs.append(entry)

        prefix = f"[{node_id}] " if node_id else ""
        logger.log(
            _PYTHON_LEVELS[entry.level],
            f"{prefix}{message}",
            extra=with_execution_context(
                execution_id=self.execution_id,
                workflow_id=self.workflow_id,
                node_id=node_id,
            ),
        )
        return True

    def set_current_node(self, node_id: Optional[str]) -> bool:
        """Record the node currently executing."""
        if self.is_terminal:
            return False
        if not self._write({"current_node_id": node_id}):
            return False
        self._current_node_id = node_id
        return True

    def record_result(self, node_id: str, outputs: List[NodeRecord]) -> bool:
        """Store the output records of a successful node."""
        if self.is_terminal:
            return False
        results = {**self._results, node_id: copy.deepcopy(outputs)}
        if not self._write({"results": results}):
            return False
        self._results = results
        return True

    def finish(self, status: ExecutionStatus) -> bool:
        """
        Move to a terminal status.

        Sets completedAt, clears the current node and snapshots results.
        Returns False if the execution was already terminal.
        """
        if not status.is_terminal:
            raise ValueError(f"Not a terminal status: {status.value}")
        if self.is_terminal:
            return False

        changes = {
            "status": status,
            "completed_at": utc_now_iso(),
            "current_node_id": None,
            "results": self._results,
        }
        if not self._write(changes):
            return False
        self._status = status
        self._current_node_id = None
        return True

    def is_cancelled(self) -> bool:
        """
        Check the store for an external stop request.

        Marks the context stopped when the stored execution is no longer
        running.
        """
        if self.is_terminal:
            return True
        stored = self._store.get(self.execution_id)
        if stored is None or stored.status.is_terminal:
            self._status = stored.status if stored else ExecutionStatus.STOPPED
            return True
        return False

    def snapshot(self) -> Execution:
        """Current state of the execution as persisted."""
        stored = self._store.get(self.execution_id)
        if stored is not None:
            return stored
        return Execution(
            id=self.execution_id,
            workflow_id=self.workflow_id,
            status=self._status,
            current_node_id=self._current_node_id,
            logs=self._logs,
            results=self._results,
        )

    def _write(self, changes: Dict[str, Any]) -> bool:
        """Write changes while the stored execution is still running."""
        updated = self._store.update(
            self.execution_id,
            changes,
            expected_status=ExecutionStatus.RUNNING,
        )
        if updated is None:
            # Stopped externally (or removed) since our last write
            self.is_cancelled()
            return False
        return True


__all__ = [
    "ExecutionContext",
]
