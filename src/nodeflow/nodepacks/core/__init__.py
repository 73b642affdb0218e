"""
Core Node Pack - The built-in workflow steps.

- Trigger: Start a workflow
- HttpFetch: Make an HTTP request
- Log: Write a templated message to the execution log
- Branch: Evaluate a condition
"""

from .nodes import (
    TriggerNode,
    HttpFetchNode,
    LogNode,
    BranchNode,
)
from .manifest import MANIFEST, create_default_registry, register_nodes

__all__ = [
    "TriggerNode",
    "HttpFetchNode",
    "LogNode",
    "BranchNode",
    "MANIFEST",
    "create_default_registry",
    "register_nodes",
]
