"""
Integration tests for workflow execution.

Runs complete workflows through WorkflowExecutor with the core node pack;
HTTP is mocked at requests.request.
"""

import threading
import time
from unittest.mock import patch

import pytest
import requests

from nodeflow.node_registry import NodeRegistry
from nodeflow.node_sdk import BaseNode, NodeType
from nodeflow.nodepacks.core import TriggerNode, create_default_registry
from nodeflow.workflow_runtime import (
    ExecutionStatus,
    InMemoryExecutionStore,
    LogLevel,
    WorkflowExecutor,
    parse_workflow,
)


def messages(execution):
    return [entry.message for entry in execution.logs]


class TestChainExecution:
    """Trigger -> HttpFetch -> Log."""

    @patch("requests.request")
    def test_successful_chain(self, mock_request, executor, chain_workflow, http_response):
        mock_request.return_value = http_response(200, {"ok": True})

        execution = executor.execute(chain_workflow)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.completed_at is not None
        assert execution.current_node_id is None
        assert list(execution.results) == ["trigger", "fetch", "log"]
        assert execution.results["fetch"][0]["statusCode"] == 200
        assert '{"ok":true}' in execution.results["log"][0]["logMessage"]

        logged = messages(execution)
        assert logged[0] == "--- Workflow Starting ---"
        assert logged[1] == "Executing workflow: Chain"
        assert logged[2] == "Execution order: trigger -> fetch -> log"
        assert logged[-1] == "--- Workflow Finished Successfully ---"
        assert 'value: {"ok":true}' in logged
        assert "Executing Node: fetch (HttpFetch)" in logged

    @patch("requests.request")
    def test_node_log_entries_carry_node_id(self, mock_request, executor, chain_workflow, http_response):
        mock_request.return_value = http_response(200, {"ok": True})

        execution = executor.execute(chain_workflow)

        entry = next(e for e in execution.logs if e.message == 'value: {"ok":true}')
        assert entry.node_id == "log"
        assert entry.level == LogLevel.INFO
        assert execution.logs[0].node_id is None

    @patch("requests.request")
    def test_output_logged_as_indented_json(self, mock_request, executor, chain_workflow, http_response):
        mock_request.return_value = http_response(200, {"ok": True})

        execution = executor.execute(chain_workflow)

        output_entries = [e for e in execution.logs if e.message.startswith("Output: ")]
        assert [e.node_id for e in output_entries] == ["trigger", "fetch", "log"]
        assert '\n  {\n    "startTime"' in output_entries[0].message

    def test_output_logged_before_result_stored(self):
        class RecordingStore(InMemoryExecutionStore):
            def __init__(self):
                super().__init__()
                self.stored_at_output_log = []

            def update(self, execution_id, changes, expected_status=None):
                logs = changes.get("logs")
                if logs and logs[-1].message.startswith("Output: "):
                    stored = self.get(execution_id).results
                    self.stored_at_output_log.append((logs[-1].node_id, list(stored)))
                return super().update(execution_id, changes, expected_status=expected_status)

        store = RecordingStore()
        executor = WorkflowExecutor(store=store)

        execution = executor.execute({
            "nodes": [
                {"id": "t", "type": "Trigger"},
                {"id": "l", "type": "Log", "params": {"message": "hi"}},
            ],
            "connections": [{"from": "t", "to": "l"}],
        })

        assert execution.status == ExecutionStatus.COMPLETED
        assert store.stored_at_output_log == [("t", []), ("l", ["t"])]
        assert list(execution.results) == ["t", "l"]

    @patch("requests.request")
    def test_http_error_fails_execution(self, mock_request, executor, chain_workflow, http_response):
        mock_request.return_value = http_response(500, {"error": "boom"}, reason="Internal Server Error")

        execution = executor.execute(chain_workflow)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.completed_at is not None
        assert list(execution.results) == ["trigger"]

        last = execution.logs[-1]
        assert last.level == LogLevel.ERROR
        assert last.node_id == "fetch"
        assert last.message == "ERROR: HTTP 500: Internal Server Error"
        assert "Executing Node: log (Log)" not in messages(execution)

    @patch("requests.request")
    def test_timeout_fails_execution(self, mock_request, executor, chain_workflow):
        mock_request.side_effect = requests.exceptions.Timeout()

        execution = executor.execute(chain_workflow)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.logs[-1].message == "ERROR: No response received from server"


class TestBranchWorkflow:
    """Branch nodes in a full run."""

    def test_condition_against_upstream(self, executor):
        workflow = {
            "id": "branch",
            "nodes": [
                {"id": "trigger", "type": "Trigger", "params": {"a": {"b": 5}}},
                {"id": "check", "type": "Branch", "params": {"condition": "{{a.b}} === 5"}},
                {"id": "log", "type": "Log", "params": {"message": "took {{outputPath}}"}},
            ],
            "connections": [
                {"from": "trigger", "to": "check"},
                {"from": "check", "to": "log"},
            ],
        }

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.results["check"][0]["conditionResult"] is True
        assert execution.results["log"][0]["logMessage"] == "took true"

    def test_both_paths_run_downstream(self, executor):
        """A false branch does not prune its successors."""
        workflow = {
            "nodes": [
                {"id": "trigger", "type": "Trigger", "params": {"n": 1}},
                {"id": "check", "type": "Branch", "params": {"condition": "{{n}} > 5"}},
                {"id": "log", "type": "Log", "params": {"message": "path={{outputPath}}"}},
            ],
            "connections": [
                {"from": "trigger", "to": "check"},
                {"from": "check", "to": "log"},
            ],
        }

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.results["log"][0]["logMessage"] == "path=false"

    def test_bad_condition_fails(self, executor):
        workflow = {
            "nodes": [
                {"id": "trigger", "type": "Trigger", "params": {"a": {}}},
                {"id": "check", "type": "Branch", "params": {"condition": "{{a.b}} === 5"}},
            ],
            "connections": [{"from": "trigger", "to": "check"}],
        }

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.logs[-1].message.startswith('ERROR: Failed to evaluate condition "{{a.b}} === 5"')
        assert "check" not in execution.results


class TestGraphFailures:
    """Pre-flight failures never invoke a node."""

    def test_cycle_fails_before_any_node(self, executor):
        workflow = {
            "nodes": [
                {"id": "a", "type": "Trigger"},
                {"id": "b", "type": "Log"},
                {"id": "c", "type": "Log"},
            ],
            "connections": [
                {"from": "a", "to": "b"},
                {"from": "b", "to": "c"},
                {"from": "c", "to": "b"},
            ],
        }

        with patch.object(TriggerNode, "execute") as mock_execute:
            execution = executor.execute(workflow)

        mock_execute.assert_not_called()
        assert execution.status == ExecutionStatus.FAILED
        assert execution.results == {}
        assert execution.logs[-1].level == LogLevel.ERROR
        assert "cycle" in execution.logs[-1].message

    def test_invalid_connection(self, executor):
        workflow = {
            "nodes": [{"id": "a", "type": "Trigger"}],
            "connections": [{"from": "a", "to": "ghost"}],
        }

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.results == {}
        assert "Invalid connection: a -> ghost" in execution.logs[-1].message

    def test_unregistered_node_type(self, store):
        registry = NodeRegistry()
        registry.register_node(TriggerNode)
        executor = WorkflowExecutor(store=store, registry=registry)
        workflow = {
            "nodes": [{"id": "a", "type": "Trigger"}, {"id": "b", "type": "Log"}],
            "connections": [{"from": "a", "to": "b"}],
        }

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.FAILED
        assert list(execution.results) == ["a"]
        assert execution.logs[-1].message == 'ERROR: Node type "Log" is not registered'


class TestInputs:
    """Input gathering between nodes."""

    def test_isolated_node_gets_empty_record(self, executor):
        workflow = {"nodes": [{"id": "solo", "type": "Log", "params": {"message": "alone"}}]}

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.results["solo"][0]["loggedData"] == {}

    def test_fan_in_concatenates_in_connection_order(self, store):
        seen = []

        class CaptureNode(BaseNode):
            type = NodeType.LOG

            def execute(self, inputs, params):
                seen.append(inputs)
                return [{"count": len(inputs)}]

        registry = create_default_registry()
        registry.register_node(CaptureNode)
        executor = WorkflowExecutor(store=store, registry=registry)
        workflow = {
            "nodes": [
                {"id": "first", "type": "Trigger", "params": {"name": "first"}},
                {"id": "second", "type": "Trigger", "params": {"name": "second"}},
                {"id": "join", "type": "Log"},
            ],
            "connections": [
                {"from": "second", "to": "join"},
                {"from": "first", "to": "join"},
            ],
        }

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.COMPLETED
        assert [record["name"] for record in seen[0]] == ["second", "first"]

    def test_params_not_mutated_by_node(self, store):
        class MutatingNode(BaseNode):
            type = NodeType.LOG

            def execute(self, inputs, params):
                params["message"] = "changed"
                return [{}]

        registry = create_default_registry()
        registry.register_node(MutatingNode)
        executor = WorkflowExecutor(store=store, registry=registry)
        workflow = parse_workflow({"nodes": [{"id": "a", "type": "Log", "params": {"message": "orig"}}]})

        executor.execute(workflow)

        assert workflow.nodes[0].params == {"message": "orig"}

    def test_non_list_output_fails(self, store):
        class BadNode(BaseNode):
            type = NodeType.LOG

            def execute(self, inputs, params):
                return {"not": "a list"}

        registry = create_default_registry()
        registry.register_node(BadNode)
        executor = WorkflowExecutor(store=store, registry=registry)

        execution = executor.execute({"nodes": [{"id": "a", "type": "Log"}]})

        assert execution.status == ExecutionStatus.FAILED
        assert "expected a list of records" in execution.logs[-1].message

    def test_unexpected_exception_fails_node(self, store):
        class CrashingNode(BaseNode):
            type = NodeType.LOG

            def execute(self, inputs, params):
                raise RuntimeError("kaboom")

        registry = create_default_registry()
        registry.register_node(CrashingNode)
        executor = WorkflowExecutor(store=store, registry=registry)

        execution = executor.execute({"nodes": [{"id": "a", "type": "Log"}]})

        assert execution.status == ExecutionStatus.FAILED
        assert execution.logs[-1].message == "ERROR: kaboom"
        assert execution.logs[-1].node_id == "a"


class TestConcurrentRuns:
    """Independent executions sharing one store."""

    def test_runs_do_not_mix(self, executor, store):
        first = executor.execute({"id": "wf", "nodes": [{"id": "t", "type": "Trigger", "params": {"run": 1}}]})
        second = executor.execute({"id": "wf", "nodes": [{"id": "t", "type": "Trigger", "params": {"run": 2}}]})

        assert first.id != second.id
        assert store.get(first.id).results["t"][0]["run"] == 1
        assert store.get(second.id).results["t"][0]["run"] == 2
        assert len(store.list_by_workflow("wf")) == 2

    def test_background_runs(self, executor):
        workflows = [
            {"id": f"wf-{i}", "nodes": [{"id": "t", "type": "Trigger", "params": {"run": i}}]}
            for i in range(3)
        ]

        started = [executor.execute_in_background(workflow) for workflow in workflows]
        finished = [executor.wait(execution.id, timeout=10) for execution in started]

        for i, execution in enumerate(finished):
            assert execution.status == ExecutionStatus.COMPLETED
            assert execution.results["t"][0]["run"] == i

    def test_finished_background_runs_release_threads(self, executor, store):
        """Runs observed only through the store leave no thread bookkeeping behind."""
        started = [
            executor.execute_in_background({"id": "wf", "nodes": [{"id": "t", "type": "Trigger"}]})
            for _ in range(20)
        ]

        deadline = time.monotonic() + 10
        while time.monotonic() < deadline:
            with executor._threads_lock:
                pending = len(executor._threads)
            if pending == 0 and all(store.get(e.id).is_terminal for e in started):
                break
            time.sleep(0.01)

        assert all(store.get(e.id).status == ExecutionStatus.COMPLETED for e in started)
        assert executor._threads == {}

    def test_wait_after_release_returns_record(self, executor):
        execution = executor.execute_in_background({"nodes": [{"id": "t", "type": "Trigger"}]})
        executor.wait(execution.id, timeout=10)

        result = executor.wait(execution.id, timeout=10)

        assert result.status == ExecutionStatus.COMPLETED
        assert execution.id not in executor._threads


class TestStop:
    """Cooperative cancellation."""

    @patch("requests.request")
    def test_stop_during_node_discards_output(self, mock_request, executor, chain_workflow, http_response):
        execution = executor.start(chain_workflow)

        def stop_then_respond(**kwargs):
            executor.stop(execution.id)
            return http_response(200, {"ok": True})

        mock_request.side_effect = stop_then_respond

        result = executor.run(chain_workflow, execution.id)

        assert result.status == ExecutionStatus.STOPPED
        assert result.completed_at is not None
        assert list(result.results) == ["trigger"]
        assert [e.message for e in result.logs if e.node_id == "fetch"] == ["Executing Node: fetch (HttpFetch)"]
        assert "Executing Node: log (Log)" not in messages(result)
        assert "--- Workflow Finished Successfully ---" not in messages(result)

    def test_stop_before_run(self, executor, chain_workflow):
        execution = executor.start(chain_workflow)
        executor.stop(execution.id)

        result = executor.run(chain_workflow, execution.id)

        assert result.status == ExecutionStatus.STOPPED
        assert result.logs == []
        assert result.results == {}

    def test_stop_waiting_background_run(self, store, chain_workflow):
        release = threading.Event()

        class BlockingNode(BaseNode):
            type = NodeType.TRIGGER

            def execute(self, inputs, params):
                release.wait(10)
                return [{}]

        registry = create_default_registry()
        registry.register_node(BlockingNode)
        executor = WorkflowExecutor(store=store, registry=registry)

        execution = executor.execute_in_background(chain_workflow)
        stopped = executor.stop(execution.id)
        release.set()
        result = executor.wait(execution.id, timeout=10)

        assert stopped.status == ExecutionStatus.STOPPED
        assert result.status == ExecutionStatus.STOPPED
        assert result.results == {}

    def test_stop_terminal_execution_is_noop(self, executor):
        execution = executor.execute({"nodes": [{"id": "t", "type": "Trigger"}]})

        result = executor.stop(execution.id)

        assert result.status == ExecutionStatus.COMPLETED
        assert result.completed_at == execution.completed_at

    def test_stop_unknown_execution(self, executor):
        assert executor.stop("missing") is None

    def test_run_unknown_execution(self, executor, chain_workflow):
        with pytest.raises(KeyError):
            executor.run(chain_workflow, "missing")


class TestLegacyWorkflows:
    """Workflow files written with the older type tags."""

    @patch("requests.request")
    def test_legacy_tags_execute(self, mock_request, executor, http_response):
        mock_request.return_value = http_response(200, {"id": 1})
        workflow = {
            "id": "legacy",
            "nodes": [
                {"id": "start", "type": "StartNode"},
                {"id": "fetch", "type": "FetchApiNode", "params": {"url": "https://api.example.com/data"}},
                {"id": "check", "type": "IfNode", "params": {"condition": "{{data.id}} === 1"}},
                {"id": "log", "type": "LogMessageNode", "params": {"message": "done {{outputPath}}"}},
            ],
            "connections": [
                {"from": "start", "to": "fetch"},
                {"from": "fetch", "to": "check"},
                {"from": "check", "to": "log"},
            ],
        }

        execution = executor.execute(workflow)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.results["log"][0]["logMessage"] == "done true"
        assert "Executing Node: start (Trigger)" in messages(execution)
