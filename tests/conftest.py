"""Pytest configuration and fixtures."""
import json
import os
from typing import Any, Optional

import pytest
import requests

# Set test environment variables
os.environ["NODEFLOW_ENV"] = "test"
os.environ["NODEFLOW_LOG_FORMAT"] = "text"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Drop cached settings between tests."""
    from nodeflow.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def store():
    """Empty in-memory execution store."""
    from nodeflow.workflow_runtime import InMemoryExecutionStore

    return InMemoryExecutionStore()


@pytest.fixture
def executor(store):
    """Executor backed by the in-memory store and the core node pack."""
    from nodeflow.workflow_runtime import WorkflowExecutor

    return WorkflowExecutor(store=store)


def make_response(
    status_code: int = 200,
    json_body: Any = None,
    text: Optional[str] = None,
    reason: str = "OK",
    url: str = "https://api.example.com/data",
) -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.url = url
    response.encoding = "utf-8"
    if json_body is not None:
        response._content = json.dumps(json_body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = (text or "").encode("utf-8")
        response.headers["Content-Type"] = "text/plain"
    return response


@pytest.fixture
def http_response():
    """Factory fixture for fake HTTP responses."""
    return make_response


@pytest.fixture
def chain_workflow():
    """Trigger -> HttpFetch -> Log chain."""
    return {
        "id": "chain",
        "name": "Chain",
        "nodes": [
            {"id": "trigger", "type": "Trigger", "params": {}},
            {"id": "fetch", "type": "HttpFetch", "params": {"url": "https://api.example.com/data"}},
            {"id": "log", "type": "Log", "params": {"message": "value: {{api_result}}"}},
        ],
        "connections": [
            {"id": "c1", "from": "trigger", "to": "fetch"},
            {"id": "c2", "from": "fetch", "to": "log"},
        ],
    }
