"""
BaseNode - Abstract base class for workflow step implementations.

Every step type implements one capability:

    execute(inputs, params) -> outputs

where ``inputs`` and ``outputs`` are ordered lists of plain dict records.
Nodes signal failure by raising NodeExecutionError (or a subclass).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING


if TYPE_CHECKING:
    from .http import HttpClient


logger = logging.getLogger(__name__)


# ==============================================================================
# NodeType - closed set of step variants
# ==============================================================================

class NodeType(str, Enum):
    """Type tag of a workflow step."""
    TRIGGER = "Trigger"
    HTTP_FETCH = "HttpFetch"
    LOG = "Log"
    BRANCH = "Branch"


# Tags used by older workflow files
LEGACY_NODE_TYPES: Dict[str, NodeType] = {
    "StartNode": NodeType.TRIGGER,
    "FetchApiNode": NodeType.HTTP_FETCH,
    "LogMessageNode": NodeType.LOG,
    "IfNode": NodeType.BRANCH,
}


NodeRecord = Dict[str, Any]
LogSink = Callable[[str, str, Optional[str]], None]

_PYTHON_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


# ==============================================================================
# Errors
# ==============================================================================

class NodeExecutionError(Exception):
    """Error raised by a node while executing."""

    def __init__(self, message: str, node_id: Optional[str] = None) -> None:
        self.message = message
        self.node_id = node_id
        super().__init__(message)


class MissingParameterError(NodeExecutionError):
    """A required node parameter is absent or empty."""

    def __init__(self, parameter: str, message: Optional[str] = None) -> None:
        self.parameter = parameter
        super().__init__(message or f"Parameter '{parameter}' is required")


class UnregisteredNodeTypeError(NodeExecutionError):
    """No executor is registered for a node type."""

    def __init__(self, node_type: str) -> None:
        self.node_type = node_type
        super().__init__(f'Node type "{node_type}" is not registered')


class ConditionEvaluationError(NodeExecutionError):
    """A Branch condition could not be evaluated."""

    def __init__(self, condition: str, detail: str) -> None:
        self.condition = condition
        self.detail = detail
        super().__init__(f'Failed to evaluate condition "{condition}": {detail}')


# ==============================================================================
# NodeExecutionContext - Runtime context for node execution
# ==============================================================================

class NodeExecutionContext:
    """
    Runtime context provided to nodes by the run loop.

    Gives nodes access to the execution they run in, a sink for
    appending entries to that execution's log and the shared HTTP client.
    """

    def __init__(
        self,
        execution_id: Optional[str] = None,
        node_id: Optional[str] = None,
        log_sink: Optional[LogSink] = None,
        http_client: Optional["HttpClient"] = None,
    ) -> None:
        self.execution_id = execution_id
        self.node_id = node_id
        self.http_client = http_client
        self._log_sink = log_sink

    def log(self, level: str, message: str) -> None:
        """Append an entry to the execution log for this node."""
        if self._log_sink is not None:
            self._log_sink(level, message, self.node_id)


# ==============================================================================
# BaseNode - Abstract base class
# ==============================================================================

class BaseNode(ABC):
    """
    Abstract base class for all step implementations.

    Subclasses set ``type`` and ``description`` and implement execute().

    Example:

        class EchoNode(BaseNode):
            type = NodeType.LOG
            description = {"displayName": "Echo", "description": "Echo inputs"}

            def execute(self, inputs, params):
                return [dict(item) for item in inputs]
    """

    type: NodeType
    version: int = 1

    description: Dict[str, Any] = {
        "displayName": "Base Node",
        "description": "",
        "group": [],
    }

    # Parameter metadata shown by `nodeflow nodes`
    properties: Dict[str, Any] = {
        "parameters": [],
    }

    def __init__(self) -> None:
        self.logger = logging.getLogger(f"node.{self.type.value}")
        self._context: Optional[NodeExecutionContext] = None

    @abstractmethod
    def execute(self, inputs: List[NodeRecord], params: Dict[str, Any]) -> List[NodeRecord]:
        """
        Execute the step.

        Args:
            inputs: Records produced by upstream nodes
            params: Node parameters from the workflow definition

        Returns:
            Output records for downstream nodes

        Raises:
            NodeExecutionError: On any failure
        """
        raise NotImplementedError

    # ==== Context Management ====

    def set_context(self, context: NodeExecutionContext) -> None:
        """Set the execution context."""
        self._context = context

    # ==== Helpers for subclasses ====

    @staticmethod
    def first_input(inputs: List[NodeRecord]) -> NodeRecord:
        """First input record, or an empty record."""
        return inputs[0] if inputs else {}

    def emit_log(self, message: str, level: str = "info") -> None:
        """Emit a message to the execution log, or the node logger when detached."""
        if self._context is not None:
            self._context.log(level, message)
        else:
            self.logger.log(_PYTHON_LEVELS.get(level, logging.INFO), message)

    def get_http_client(self) -> "HttpClient":
        """HTTP client from the context, or a default one bounded by the configured timeout."""
        if self._context is not None and self._context.http_client is not None:
            return self._context.http_client

        from nodeflow.config import get_settings
        from .http import HttpClient

        return HttpClient(timeout=get_settings().http_timeout_s)


__all__ = [
    "BaseNode",
    "NodeType",
    "LEGACY_NODE_TYPES",
    "NodeRecord",
    "NodeExecutionContext",
    "NodeExecutionError",
    "MissingParameterError",
    "UnregisteredNodeTypeError",
    "ConditionEvaluationError",
    "utc_now_iso",
]
