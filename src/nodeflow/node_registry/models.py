"""
Node Registry Models - Metadata structures for nodes and node packs.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class NodeDefinition(BaseModel):
    """
    Metadata about a registered node.
    """
    model_config = ConfigDict(extra="allow")

    # Identity
    node_type: str = Field(..., description="Node type tag")
    version: int = Field(1, description="Node version")

    # Display
    display_name: str = Field(..., description="Human-readable name")
    description: str = Field("", description="Node description")
    group: List[str] = Field(default_factory=list, description="Categories")

    # Technical
    node_class: Optional[str] = Field(None, description="Fully qualified class name")
    node_pack: Optional[str] = Field(None, description="Source node pack")
    parameters: List[Dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_node_class(cls, node_class: Type) -> "NodeDefinition":
        """Create definition from a BaseNode class."""
        node_type = getattr(node_class, "type", None)
        node_type = getattr(node_type, "value", node_type) or node_class.__name__
        description = getattr(node_class, "description", {}) or {}
        properties = getattr(node_class, "properties", {}) or {}

        return cls(
            node_type=node_type,
            version=getattr(node_class, "version", 1),
            display_name=description.get("displayName", node_type),
            description=description.get("description", ""),
            group=description.get("group", []),
            node_class=f"{node_class.__module__}.{node_class.__name__}",
            parameters=properties.get("parameters", []),
        )


class NodePackManifest(BaseModel):
    """
    Manifest for a node pack (collection of nodes).
    """
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., description="Pack name")
    version: str = Field("1.0.0", description="Pack version")
    description: str = Field("", description="Pack description")
    nodes: List[str] = Field(
        default_factory=list,
        description="List of node types in this pack"
    )


__all__ = [
    "NodeDefinition",
    "NodePackManifest",
]
