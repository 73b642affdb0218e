"""
Workflow Executor - Sequential run loop.

Executes a workflow one node at a time in topological order, feeding each
node the results of its upstream nodes, and drives the execution to
exactly one terminal status.

Stopping is cooperative: a stop request is honoured before the next node
is scheduled, never in the middle of a node. Output of a node that was
in flight when the stop arrived is discarded.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
from typing import Any, Dict, List, Optional, Union

from nodeflow.config import Settings, get_settings
from nodeflow.node_registry import NodeRegistry
from nodeflow.node_sdk.basenode import (
    NodeExecutionContext,
    NodeExecutionError,
    NodeRecord,
    utc_now_iso,
)
from nodeflow.node_sdk.http import HttpClient
from nodeflow.nodepacks.core import create_default_registry
from nodeflow.observability import with_execution_context

from .context import ExecutionContext
from .graph import GraphError, WorkflowGraph
from .models import Execution, ExecutionStatus, LogLevel, Workflow, WorkflowNode, parse_workflow
from .store import ExecutionStore, InMemoryExecutionStore


logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """
    Sequential workflow executor.

    Each run gets its own ExecutionContext; concurrent runs share only
    the store.

    Usage:
        executor = WorkflowExecutor(store=InMemoryExecutionStore())
        execution = executor.execute(workflow)
        print(execution.status, execution.results)
    """

    def __init__(
        self,
        store: Optional[ExecutionStore] = None,
        registry: Optional[NodeRegistry] = None,
        http_client: Optional[HttpClient] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize executor.

        Args:
            store: Execution store (in-memory store if omitted)
            registry: Node registry (core node pack if omitted)
            http_client: HTTP client handed to nodes
            settings: Engine settings (global settings if omitted)
        """
        self._settings = settings or get_settings()
        self._store = store if store is not None else InMemoryExecutionStore()
        self._registry = registry if registry is not None else create_default_registry()
        self._http_client = http_client or HttpClient(timeout=self._settings.http_timeout_s)
        self._threads: Dict[str, threading.Thread] = {}
        self._threads_lock = threading.Lock()

    @property
    def store(self) -> ExecutionStore:
        return self._store

    @property
    def registry(self) -> NodeRegistry:
        return self._registry

    # ==== Public API ====

    def start(self, workflow: Union[Workflow, Dict[str, Any]]) -> Execution:
        """Create a running execution record for ``workflow``."""
        workflow = self._coerce(workflow)
        return self._store.create(workflow.id)

    def execute(self, workflow: Union[Workflow, Dict[str, Any]]) -> Execution:
        """
        Run a workflow to completion in the calling thread.

        Returns:
            The terminal execution record
        """
        workflow = self._coerce(workflow)
        execution = self.start(workflow)
        return self.run(workflow, execution.id)

    def execute_in_background(self, workflow: Union[Workflow, Dict[str, Any]]) -> Execution:
        """
        Start a workflow on a background thread.

        Returns:
            The execution record as created (status running)
        """
        workflow = self._coerce(workflow)
        execution = self.start(workflow)

        thread = threading.Thread(
            target=self._run_in_background,
            args=(workflow, execution.id),
            name=f"workflow-{execution.id}",
            daemon=True,
        )
        with self._threads_lock:
            self._threads[execution.id] = thread
        thread.start()
        return execution

    def wait(self, execution_id: str, timeout: Optional[float] = None) -> Optional[Execution]:
        """Wait for a background run and return the execution record."""
        with self._threads_lock:
            thread = self._threads.get(execution_id)
        if thread is not None:
            thread.join(timeout)
        return self._store.get(execution_id)

    def stop(self, execution_id: str) -> Optional[Execution]:
        """
        Request that a running execution stop.

        Only a running execution can be stopped; for a terminal or unknown
        execution the stored record (or None) is returned unchanged.
        """
        updated = self._store.update(
            execution_id,
            {"status": ExecutionStatus.STOPPED, "completed_at": utc_now_iso()},
            expected_status=ExecutionStatus.RUNNING,
        )
        if updated is None:
            return self._store.get(execution_id)
        logger.info(
            "Stop requested",
            extra=with_execution_context(execution_id=execution_id, workflow_id=updated.workflow_id),
        )
        return updated

    def run(self, workflow: Union[Workflow, Dict[str, Any]], execution_id: str) -> Execution:
        """
        Drive an existing execution to a terminal status.

        Raises:
            KeyError: If the execution does not exist
        """
        workflow = self._coerce(workflow)
        execution = self._store.get(execution_id)
        if execution is None:
            raise KeyError(f"Execution not found: {execution_id}")

        context = ExecutionContext(self._store, execution)
        if context.is_terminal:
            return execution

        try:
            self._run(workflow, context)
        except Exception as e:
            logger.exception(
                f"Workflow {workflow.id} crashed",
                extra=with_execution_context(execution_id=execution_id, workflow_id=workflow.id),
            )
            context.log(LogLevel.ERROR, f"Workflow execution failed: {e}")
            context.finish(ExecutionStatus.FAILED)

        return context.snapshot()

    # ==== Run loop ====

    def _run_in_background(self, workflow: Workflow, execution_id: str) -> None:
        try:
            self.run(workflow, execution_id)
        finally:
            with self._threads_lock:
                self._threads.pop(execution_id, None)

    def _run(self, workflow: Workflow, context: ExecutionContext) -> None:
        context.log(LogLevel.INFO, "--- Workflow Starting ---")
        context.log(LogLevel.INFO, f"Executing workflow: {workflow.name}")

        try:
            graph = WorkflowGraph.from_workflow(workflow)
        except GraphError as e:
            context.log(LogLevel.ERROR, f"Workflow execution failed: {e}")
            context.finish(ExecutionStatus.FAILED)
            return

        order = graph.execution_order
        context.log(LogLevel.INFO, f"Execution order: {' -> '.join(order)}")

        for node_id in order:
            if context.is_cancelled():
                logger.info(
                    f"Execution stopped before node {node_id}",
                    extra=with_execution_context(execution_id=context.execution_id, node_id=node_id),
                )
                return

            node = graph.get_node(node_id)
            if not context.set_current_node(node_id):
                return
            context.log(LogLevel.INFO, f"Executing Node: {node.id} ({node.type.value})", node_id)

            try:
                outputs = self._execute_node(context, graph, node)
            except NodeExecutionError as e:
                self._fail(context, node_id, e.message)
                return
            except Exception as e:
                logger.exception(
                    f"Node {node_id} raised an unexpected error",
                    extra=with_execution_context(execution_id=context.execution_id, node_id=node_id),
                )
                self._fail(context, node_id, str(e) or type(e).__name__)
                return

            # Discard output that finished after a stop request
            rendered = json.dumps(outputs, indent=self._settings.output_log_indent, default=str)
            if not context.log(LogLevel.INFO, f"Output: {rendered}", node_id):
                return
            if not context.record_result(node_id, outputs):
                return

        context.log(LogLevel.INFO, "--- Workflow Finished Successfully ---")
        context.finish(ExecutionStatus.COMPLETED)

    def _execute_node(
        self,
        context: ExecutionContext,
        graph: WorkflowGraph,
        node: WorkflowNode,
    ) -> List[NodeRecord]:
        """Execute a single node and return its output records."""
        inputs = self._gather_inputs(context, graph, node.id)

        implementation = self._registry.create_node(node.type)
        implementation.set_context(NodeExecutionContext(
            execution_id=context.execution_id,
            node_id=node.id,
            log_sink=lambda level, message, node_id: context.log(level, message, node_id),
            http_client=self._http_client,
        ))

        outputs = implementation.execute(inputs, copy.deepcopy(node.params))

        if not isinstance(outputs, list) or not all(isinstance(item, dict) for item in outputs):
            raise NodeExecutionError(
                f"Node {node.id} returned {type(outputs).__name__}, expected a list of records",
                node_id=node.id,
            )
        return outputs

    @staticmethod
    def _gather_inputs(
        context: ExecutionContext,
        graph: WorkflowGraph,
        node_id: str,
    ) -> List[NodeRecord]:
        """
        Collect input records for a node.

        Upstream results are concatenated in connection-list order; a node
        without incoming connections receives a single empty record.
        """
        incoming = graph.incoming(node_id)
        if not incoming:
            return [{}]

        inputs: List[NodeRecord] = []
        for conn in incoming:
            result = context.get_result(conn.source)
            if result:
                inputs.extend(result)
        return inputs

    @staticmethod
    def _fail(context: ExecutionContext, node_id: str, message: str) -> None:
        context.log(LogLevel.ERROR, f"ERROR: {message}", node_id)
        context.finish(ExecutionStatus.FAILED)

    @staticmethod
    def _coerce(workflow: Union[Workflow, Dict[str, Any]]) -> Workflow:
        if isinstance(workflow, dict):
            return parse_workflow(workflow)
        return workflow


__all__ = [
    "WorkflowExecutor",
]
