"""
Node Registry - Registration of step executor implementations.

This package provides:
- NodeDefinition: Metadata about a registered node
- NodePackManifest: Package metadata for a node pack
- NodeRegistry: Maps node type tags to executor classes
"""

from .models import NodeDefinition, NodePackManifest
from .registry import NodeRegistry

__all__ = [
    "NodeDefinition",
    "NodePackManifest",
    "NodeRegistry",
]
