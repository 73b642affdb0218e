"""
Workflow Graph - Validated, indexed form of a workflow.

Takes a node/connection list, checks it and computes a deterministic
topological execution order with Kahn's algorithm.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence

from .models import Connection, Workflow, WorkflowNode


logger = logging.getLogger(__name__)


class GraphError(ValueError):
    """Workflow graph cannot be scheduled."""


class DuplicateNodeError(GraphError):
    """Two nodes share an ID."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Duplicate node id: {node_id}")


class InvalidConnectionError(GraphError):
    """A connection references a node ID that does not exist."""

    def __init__(self, source: str, target: str, connection_id: Optional[str] = None):
        self.source = source
        self.target = target
        self.connection_id = connection_id
        super().__init__(f"Invalid connection: {source} -> {target}")


class CycleDetectedError(GraphError):
    """The connections contain a cycle; no total order exists."""

    def __init__(self, remaining: Sequence[str]):
        self.remaining = list(remaining)
        super().__init__(
            "Workflow contains a cycle and cannot be executed "
            f"(nodes involved: {', '.join(self.remaining)})"
        )


class WorkflowGraph:
    """
    Workflow compiled for execution.

    Contains:
    - Node index by ID
    - Adjacency lists and in-degree table
    - Topological order for sequential execution
    """

    def __init__(self, nodes: Sequence[WorkflowNode], connections: Sequence[Connection]):
        """
        Validate and index a workflow.

        Raises:
            DuplicateNodeError: If two nodes share an ID
            InvalidConnectionError: If a connection endpoint is unknown
            CycleDetectedError: If the connections form a cycle
        """
        self._nodes: Dict[str, WorkflowNode] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise DuplicateNodeError(node.id)
            self._nodes[node.id] = node

        self._connections = list(connections)
        self._downstream: Dict[str, List[str]] = {node_id: [] for node_id in self._nodes}
        self._incoming: Dict[str, List[Connection]] = {node_id: [] for node_id in self._nodes}
        self._in_degree: Dict[str, int] = {node_id: 0 for node_id in self._nodes}
        self._build_edges()

        self._execution_order: List[str] = self._compute_execution_order()

    @classmethod
    def from_workflow(cls, workflow: Workflow) -> "WorkflowGraph":
        return cls(workflow.nodes, workflow.connections)

    def _build_edges(self) -> None:
        """Build adjacency lists and in-degree counts."""
        for conn in self._connections:
            if conn.source not in self._nodes or conn.target not in self._nodes:
                raise InvalidConnectionError(conn.source, conn.target, conn.id)
            self._downstream[conn.source].append(conn.target)
            self._incoming[conn.target].append(conn)
            self._in_degree[conn.target] += 1

    def _compute_execution_order(self) -> List[str]:
        """
        Compute topological order for execution.

        Kahn's algorithm. The queue is seeded in node-list order, so
        independent entry nodes run in the order they were declared.
        """
        in_degree = dict(self._in_degree)
        queue = deque(node_id for node_id in self._nodes if in_degree[node_id] == 0)
        order: List[str] = []

        while queue:
            node_id = queue.popleft()
            order.append(node_id)

            for downstream_id in self._downstream[node_id]:
                in_degree[downstream_id] -= 1
                if in_degree[downstream_id] == 0:
                    queue.append(downstream_id)

        if len(order) != len(self._nodes):
            scheduled = set(order)
            raise CycleDetectedError([node_id for node_id in self._nodes if node_id not in scheduled])

        return order

    @property
    def execution_order(self) -> List[str]:
        """Get node IDs in execution order."""
        return self._execution_order.copy()

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Get node by ID."""
        return self._nodes.get(node_id)

    def incoming(self, node_id: str) -> List[Connection]:
        """Connections ending at ``node_id``, in connection-list order."""
        return list(self._incoming.get(node_id, []))

    def upstream(self, node_id: str) -> List[str]:
        """Source IDs of incoming connections, in connection-list order."""
        return [conn.source for conn in self._incoming.get(node_id, [])]

    def downstream(self, node_id: str) -> List[str]:
        """Target IDs of outgoing connections, in connection-list order."""
        return list(self._downstream.get(node_id, []))

    def in_degree(self, node_id: str) -> int:
        return self._in_degree[node_id]

    def get_start_nodes(self) -> List[str]:
        """Entry point node IDs (no incoming connections)."""
        return [node_id for node_id in self._nodes if self._in_degree[node_id] == 0]


def compute_order(nodes: Iterable[WorkflowNode], connections: Iterable[Connection]) -> List[str]:
    """
    Compute the execution order of a node/connection set.

    Raises:
        DuplicateNodeError, InvalidConnectionError, CycleDetectedError
    """
    return WorkflowGraph(list(nodes), list(connections)).execution_order


__all__ = [
    "WorkflowGraph",
    "compute_order",
    "GraphError",
    "DuplicateNodeError",
    "InvalidConnectionError",
    "CycleDetectedError",
]
