"""
Node Registry - Maps a step's type tag to its executor implementation.

The set of node types is closed (see NodeType); the registry is the single
place the run loop asks for an executor.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Type, Union

from nodeflow.node_sdk.basenode import BaseNode, NodeType, UnregisteredNodeTypeError

from .models import NodeDefinition, NodePackManifest


logger = logging.getLogger(__name__)


class NodeRegistry:
    """
    Registry of node executors keyed by NodeType.

    Usage:
        registry = NodeRegistry()
        registry.register_node(TriggerNode)

        node = registry.create_node(NodeType.TRIGGER)
        outputs = node.execute([{}], {})
    """

    def __init__(self):
        """Initialize empty registry."""
        self._nodes: Dict[NodeType, NodeDefinition] = {}
        self._node_classes: Dict[NodeType, Type[BaseNode]] = {}
        self._packs: Dict[str, NodePackManifest] = {}

    def register_node(
        self,
        node_class: Type[BaseNode],
        node_type: Optional[NodeType] = None,
    ) -> NodeDefinition:
        """
        Register a node class.

        Args:
            node_class: BaseNode subclass
            node_type: Override node type (uses class.type if not provided)

        Returns:
            NodeDefinition for the registered node
        """
        node_type = NodeType(node_type if node_type is not None else node_class.type)

        definition = NodeDefinition.from_node_class(node_class)
        definition.node_type = node_type.value

        self._nodes[node_type] = definition
        self._node_classes[node_type] = node_class

        logger.debug(f"Registered node: {node_type.value}")
        return definition

    def register_pack(
        self,
        manifest: NodePackManifest,
        node_classes: Dict[NodeType, Type[BaseNode]],
    ) -> None:
        """
        Register a node pack with its nodes.

        Args:
            manifest: Pack manifest
            node_classes: Map of node type -> node class
        """
        self._packs[manifest.name] = manifest

        for node_type, node_class in node_classes.items():
            definition = self.register_node(node_class, node_type)
            definition.node_pack = manifest.name

        logger.debug(f"Registered pack '{manifest.name}' with {len(node_classes)} nodes")

    def get_node(self, node_type: Union[NodeType, str]) -> Optional[NodeDefinition]:
        """Get node definition by type."""
        return self._nodes.get(self._coerce(node_type))

    def get_node_class(self, node_type: Union[NodeType, str]) -> Type[BaseNode]:
        """
        Get node class by type.

        Raises:
            UnregisteredNodeTypeError: If nothing is registered for the type
        """
        node_class = self._node_classes.get(self._coerce(node_type))
        if node_class is None:
            raise UnregisteredNodeTypeError(getattr(node_type, "value", str(node_type)))
        return node_class

    def create_node(self, node_type: Union[NodeType, str]) -> BaseNode:
        """
        Create a node instance.

        Raises:
            UnregisteredNodeTypeError: If nothing is registered for the type
        """
        return self.get_node_class(node_type)()

    def list_nodes(self) -> List[NodeDefinition]:
        """List all registered nodes."""
        return list(self._nodes.values())

    def list_packs(self) -> List[NodePackManifest]:
        """List all registered packs."""
        return list(self._packs.values())

    def has_node(self, node_type: Union[NodeType, str]) -> bool:
        """Check if node type is registered."""
        return self._coerce(node_type) in self._nodes

    @staticmethod
    def _coerce(node_type: Union[NodeType, str]) -> Optional[NodeType]:
        try:
            return NodeType(node_type)
        except ValueError:
            return None

    def __len__(self) -> int:
        """Number of registered nodes."""
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeDefinition]:
        """Iterate over node definitions."""
        return iter(self._nodes.values())

    def __contains__(self, node_type: Union[NodeType, str]) -> bool:
        """Check if node type is registered."""
        return self.has_node(node_type)


__all__ = [
    "NodeRegistry",
]
