"""
Workflow Runtime - Sequential DAG execution of workflows.

This package provides:
- Workflow / Execution: Definition and run records
- WorkflowGraph: Validated graph with a deterministic execution order
- ExecutionStore: Persistence interface (plus an in-memory store)
- ExecutionContext: Per-run mutable state
- WorkflowExecutor: The run loop
"""

from .models import (
    Workflow,
    WorkflowNode,
    Connection,
    Execution,
    ExecutionStatus,
    LogEntry,
    LogLevel,
    parse_workflow,
    load_workflow,
)
from .graph import (
    WorkflowGraph,
    compute_order,
    GraphError,
    DuplicateNodeError,
    InvalidConnectionError,
    CycleDetectedError,
)
from .store import ExecutionStore, InMemoryExecutionStore
from .context import ExecutionContext
from .executor import WorkflowExecutor

__all__ = [
    # Models
    "Workflow",
    "WorkflowNode",
    "Connection",
    "Execution",
    "ExecutionStatus",
    "LogEntry",
    "LogLevel",
    "parse_workflow",
    "load_workflow",
    # Graph
    "WorkflowGraph",
    "compute_order",
    "GraphError",
    "DuplicateNodeError",
    "InvalidConnectionError",
    "CycleDetectedError",
    # Store / context
    "ExecutionStore",
    "InMemoryExecutionStore",
    "ExecutionContext",
    # Executor
    "WorkflowExecutor",
]
