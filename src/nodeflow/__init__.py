"""
nodeflow - a workflow execution engine.

Architecture:
- workflow_runtime/: Graph scheduling, execution context and run loop
- node_sdk/: Step contract, HTTP transport, templates, condition grammar
- node_registry/: Node type -> executor registration
- nodepacks/core/: The built-in steps (Trigger, HttpFetch, Log, Branch)
"""

__version__ = "1.0.0"
