"""
Node SDK - Step execution semantics.

This package provides the runtime contract for workflow steps:
- BaseNode: Abstract base class for step implementations
- NodeExecutionContext: Runtime context a step runs in
- HttpClient: Timeout-bounded HTTP transport
- Template placeholders and the restricted condition grammar
"""

from .basenode import (
    BaseNode,
    NodeType,
    LEGACY_NODE_TYPES,
    NodeRecord,
    NodeExecutionContext,
    NodeExecutionError,
    MissingParameterError,
    UnregisteredNodeTypeError,
    ConditionEvaluationError,
    utc_now_iso,
)
from .http import (
    HttpClient,
    HttpResponse,
    HttpStatusError,
    HttpNoResponseError,
    HttpSetupError,
)
from .templating import lookup_path, render_template, to_display, to_json
from .expressions import ExpressionError, evaluate_condition, evaluate_expression

__all__ = [
    # Base class
    "BaseNode",
    "NodeType",
    "LEGACY_NODE_TYPES",
    "NodeRecord",
    "NodeExecutionContext",
    "utc_now_iso",
    # Errors
    "NodeExecutionError",
    "MissingParameterError",
    "UnregisteredNodeTypeError",
    "ConditionEvaluationError",
    # HTTP
    "HttpClient",
    "HttpResponse",
    "HttpStatusError",
    "HttpNoResponseError",
    "HttpSetupError",
    # Templates and conditions
    "lookup_path",
    "render_template",
    "to_display",
    "to_json",
    "ExpressionError",
    "evaluate_condition",
    "evaluate_expression",
]
