"""
Core Node Pack Manifest - Registration of the built-in nodes.
"""

from nodeflow.node_registry import NodePackManifest, NodeRegistry
from nodeflow.node_sdk.basenode import NodeType
from .nodes import (
    TriggerNode,
    HttpFetchNode,
    LogNode,
    BranchNode,
)


NODE_CLASSES = {
    NodeType.TRIGGER: TriggerNode,
    NodeType.HTTP_FETCH: HttpFetchNode,
    NodeType.LOG: LogNode,
    NodeType.BRANCH: BranchNode,
}

MANIFEST = NodePackManifest(
    name="core",
    version="1.0.0",
    description="Built-in workflow steps",
    nodes=[node_type.value for node_type in NODE_CLASSES],
)


def register_nodes(registry: NodeRegistry) -> NodeRegistry:
    """Register the core pack into ``registry`` and return it."""
    registry.register_pack(MANIFEST, NODE_CLASSES)
    return registry


def create_default_registry() -> NodeRegistry:
    """Registry holding every built-in node type."""
    return register_nodes(NodeRegistry())
