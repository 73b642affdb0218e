"""
Execution Store - Persistence interface the engine writes executions through.

The engine treats the store as a single-writer-per-execution key-value
store: it creates a record when a run is requested and calls update()
after every log append, result write and status transition.

CONCURRENCY:
- create/update are atomic per store (one lock)
- update(expected_status=...) is a compare-and-set on the status, so a
  terminal status is never overwritten by a late writer
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import Execution, ExecutionStatus


logger = logging.getLogger(__name__)


class ExecutionStore(ABC):
    """Abstract execution store."""

    @abstractmethod
    def get(self, execution_id: str) -> Optional[Execution]:
        """Return a snapshot of the execution, or None."""
        ...

    @abstractmethod
    def create(self, workflow_id: str, execution_id: Optional[str] = None) -> Execution:
        """Create a running execution with empty logs and results."""
        ...

    @abstractmethod
    def update(
        self,
        execution_id: str,
        changes: Dict[str, Any],
        expected_status: Optional[ExecutionStatus] = None,
    ) -> Optional[Execution]:
        """
        Merge ``changes`` (attribute name -> value) into an execution.

        Returns the updated snapshot, or None when the execution does not
        exist or its status differs from ``expected_status``.
        """
        ...

    @abstractmethod
    def list_by_workflow(self, workflow_id: str) -> List[Execution]:
        """All executions of a workflow, oldest first."""
        ...


class InMemoryExecutionStore(ExecutionStore):
    """
    Thread-safe in-memory store.

    Snapshots handed out are deep copies; callers never share state with
    the store or with each other.
    """

    def __init__(self) -> None:
        self._executions: Dict[str, Execution] = {}
        self._lock = threading.Lock()

    def get(self, execution_id: str) -> Optional[Execution]:
        with self._lock:
            execution = self._executions.get(execution_id)
            return execution.model_copy(deep=True) if execution else None

    def create(self, workflow_id: str, execution_id: Optional[str] = None) -> Execution:
        execution = Execution(
            id=execution_id or str(uuid.uuid4()),
            workflow_id=workflow_id,
            status=ExecutionStatus.RUNNING,
        )
        with self._lock:
            if execution.id in self._executions:
                raise ValueError(f"Execution already exists: {execution.id}")
            self._executions[execution.id] = execution
        logger.debug(f"Created execution {execution.id} for workflow {workflow_id}")
        return execution.model_copy(deep=True)

    def update(
        self,
        execution_id: str,
        changes: Dict[str, Any],
        expected_status: Optional[ExecutionStatus] = None,
    ) -> Optional[Execution]:
        with self._lock:
            existing = self._executions.get(execution_id)
            if existing is None:
                return None
            if expected_status is not None and existing.status != expected_status:
                return None
            updated = existing.model_copy(update=copy.deepcopy(changes))
            self._executions[execution_id] = updated
            return updated.model_copy(deep=True)

    def list_by_workflow(self, workflow_id: str) -> List[Execution]:
        with self._lock:
            return [
                execution.model_copy(deep=True)
                for execution in self._executions.values()
                if execution.workflow_id == workflow_id
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._executions)


__all__ = [
    "ExecutionStore",
    "InMemoryExecutionStore",
]
