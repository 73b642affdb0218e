"""
Workflow Models - Workflow definitions and execution records.

Python attributes are snake_case; the wire format is camelCase
(``workflowId``, ``currentNodeId``...) and connections use ``from``/``to``.
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from nodeflow.node_sdk.basenode import LEGACY_NODE_TYPES, NodeType, utc_now_iso


class WorkflowNode(BaseModel):
    """
    A single typed step in a workflow.

    Editor-only fields (``position``, ``status``) are accepted and ignored.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Node ID (unique within workflow)")
    type: NodeType = Field(..., description="Step type tag")
    params: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def normalize_legacy_type(cls, v: Any) -> Any:
        """Accept the type tags used by older workflow files."""
        if isinstance(v, str) and v in LEGACY_NODE_TYPES:
            return LEGACY_NODE_TYPES[v]
        return v

    @field_validator("params", mode="before")
    @classmethod
    def default_params(cls, v: Any) -> Any:
        return {} if v is None else v


class Connection(BaseModel):
    """
    Directed data-flow edge from one node's output to another node's input.

    Example: {"id": "conn-1", "from": "start", "to": "fetch"}
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field("", description="Connection ID")
    source: str = Field(..., alias="from", description="Upstream node ID")
    target: str = Field(..., alias="to", description="Downstream node ID")


class Workflow(BaseModel):
    """
    Complete workflow definition.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field("workflow", description="Workflow ID")
    name: str = Field("Unnamed Workflow", description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")

    # Node order is the tie-break priority for scheduling
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Get node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class ExecutionStatus(str, Enum):
    """Overall execution status."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self is not ExecutionStatus.RUNNING


class LogLevel(str, Enum):
    """Severity of an execution log entry."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class LogEntry(BaseModel):
    """One line of an execution log."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: str = Field(default_factory=utc_now_iso)
    level: LogLevel
    message: str
    node_id: Optional[str] = Field(None, alias="nodeId")


class Execution(BaseModel):
    """
    One run of a workflow.

    ``results`` maps a node ID to the records its executor returned; only
    nodes that ran successfully have an entry.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    workflow_id: str = Field(..., alias="workflowId")
    status: ExecutionStatus = ExecutionStatus.RUNNING
    started_at: str = Field(default_factory=utc_now_iso, alias="startedAt")
    completed_at: Optional[str] = Field(None, alias="completedAt")
    current_node_id: Optional[str] = Field(None, alias="currentNodeId")
    logs: List[LogEntry] = Field(default_factory=list)
    results: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        """External output format (camelCase, unset optional fields omitted)."""
        data = self.model_dump(mode="json", by_alias=True)
        for key in ("completedAt", "currentNodeId"):
            if data.get(key) is None:
                data.pop(key, None)
        for entry in data["logs"]:
            if entry.get("nodeId") is None:
                entry.pop("nodeId", None)
        return data


def parse_workflow(data: Dict[str, Any]) -> Workflow:
    """Parse workflow JSON into a Workflow."""
    return Workflow.model_validate(data)


def load_workflow(path: Union[str, Path]) -> Workflow:
    """Load a workflow definition from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return parse_workflow(json.load(f))


__all__ = [
    "Workflow",
    "WorkflowNode",
    "Connection",
    "Execution",
    "ExecutionStatus",
    "LogEntry",
    "LogLevel",
    "parse_workflow",
    "load_workflow",
]
