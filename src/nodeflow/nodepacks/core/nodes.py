"""
Core Nodes - The four built-in step implementations.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

from nodeflow.node_sdk.basenode import (
    BaseNode,
    ConditionEvaluationError,
    MissingParameterError,
    NodeRecord,
    NodeType,
    utc_now_iso,
)
from nodeflow.node_sdk.expressions import ExpressionError, evaluate_condition
from nodeflow.node_sdk.http import HttpSetupError
from nodeflow.node_sdk.templating import render_template, to_json


logger = logging.getLogger(__name__)


class TriggerNode(BaseNode):
    """
    Trigger - Entry point of a workflow.

    Ignores its inputs and emits one record holding the start time
    merged with the node parameters.
    """

    type = NodeType.TRIGGER

    description = {
        "displayName": "Trigger",
        "group": ["trigger"],
        "description": "Starts the workflow and emits its parameters",
    }

    def execute(self, inputs: List[NodeRecord], params: Dict[str, Any]) -> List[NodeRecord]:
        return [{"startTime": utc_now_iso(), **params}]


class HttpFetchNode(BaseNode):
    """
    HTTP Fetch - Make an HTTP request.

    The response is decoded as JSON when possible, otherwise kept as text.
    """

    type = NodeType.HTTP_FETCH

    description = {
        "displayName": "HTTP Fetch",
        "group": ["input", "output"],
        "description": "Make an HTTP request",
    }

    properties = {
        "parameters": [
            {"name": "url", "type": "string", "required": True},
            {"name": "method", "type": "options", "default": "GET",
             "options": ["GET", "POST", "PUT", "PATCH", "DELETE"]},
            {"name": "headers", "type": "json", "default": {}},
            {"name": "body", "type": "json", "default": None},
        ],
    }

    def execute(self, inputs: List[NodeRecord], params: Dict[str, Any]) -> List[NodeRecord]:
        url = params.get("url")
        if not url:
            raise MissingParameterError("url", "URL is required for HTTP request")

        method = str(params.get("method") or "GET").upper()
        headers = params.get("headers") or {}
        body = params.get("body")

        # Headers may arrive as a JSON string from editors
        if isinstance(headers, str):
            try:
                headers = json.loads(headers)
            except json.JSONDecodeError as e:
                raise HttpSetupError(f"headers is not valid JSON: {e}", url=url) from e
        if not isinstance(headers, dict):
            raise HttpSetupError(
                f"headers must be an object, got {type(headers).__name__}", url=url
            )

        response = self.get_http_client().request(method, url, headers=headers, body=body)
        response.raise_for_status()

        data = response.data
        return [{
            "statusCode": response.status_code,
            "headers": response.headers,
            "data": data,
            "inputData": self.first_input(inputs),
            "api_result": data,
        }]


class LogNode(BaseNode):
    """
    Log - Render a message template against the first input record.

    ``{{path.to.field}}`` placeholders are replaced by the value found in
    the first input; unresolvable placeholders stay as written.
    """

    type = NodeType.LOG

    description = {
        "displayName": "Log Message",
        "group": ["output"],
        "description": "Write a templated message to the execution log",
    }

    properties = {
        "parameters": [
            {"name": "message", "type": "string", "default": "Log output"},
        ],
    }

    def execute(self, inputs: List[NodeRecord], params: Dict[str, Any]) -> List[NodeRecord]:
        data = self.first_input(inputs)
        template = params.get("message") or "Log output"
        message = render_template(str(template), data)

        self.emit_log(message)

        return [{
            "logMessage": message,
            "loggedData": data,
            "timestamp": utc_now_iso(),
        }]


class BranchNode(BaseNode):
    """
    Branch - Evaluate a condition against the first input record.

    Placeholders are substituted with the JSON form of the looked-up value
    before the condition is evaluated with the restricted grammar in
    nodeflow.node_sdk.expressions.
    """

    type = NodeType.BRANCH

    description = {
        "displayName": "Branch",
        "group": ["transform"],
        "description": "Evaluate a condition and report which path it takes",
    }

    properties = {
        "parameters": [
            {"name": "condition", "type": "string", "default": "true"},
        ],
    }

    def execute(self, inputs: List[NodeRecord], params: Dict[str, Any]) -> List[NodeRecord]:
        data = self.first_input(inputs)
        condition = params.get("condition")
        if condition is None or condition == "":
            condition = "true"
        condition = str(condition)

        expression = render_template(condition, data, serialize=to_json)
        try:
            result = evaluate_condition(expression)
        except ExpressionError as e:
            raise ConditionEvaluationError(condition, str(e)) from e

        return [{
            "conditionResult": result,
            "conditionExpression": condition,
            "inputData": data,
            "outputPath": "true" if result else "false",
        }]


# Export all nodes
__all__ = [
    "TriggerNode",
    "HttpFetchNode",
    "LogNode",
    "BranchNode",
]
