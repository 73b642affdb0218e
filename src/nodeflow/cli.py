"""
Command line interface for running workflow files.

Commands:
- run: Execute a workflow and print the execution record
- order: Print the computed execution order
- nodes: List the registered node types
"""

import sys
import json
import argparse
from typing import List, Optional

from pydantic import ValidationError

from nodeflow.nodepacks.core import create_default_registry
from nodeflow.observability import setup_logging
from nodeflow.workflow_runtime import (
    ExecutionStatus,
    GraphError,
    InMemoryExecutionStore,
    Workflow,
    WorkflowExecutor,
    WorkflowGraph,
    load_workflow,
)


def _load(path: str) -> Optional[Workflow]:
    """Load a workflow file, reporting problems on stderr."""
    try:
        return load_workflow(path)
    except FileNotFoundError:
        print(f"Error: workflow file not found: {path}", file=sys.stderr)
    except json.JSONDecodeError as e:
        print(f"Error: {path} is not valid JSON: {e}", file=sys.stderr)
    except ValidationError as e:
        print(f"Error: invalid workflow definition in {path}:\n{e}", file=sys.stderr)
    return None


def cmd_run(args: argparse.Namespace) -> int:
    """Execute a workflow file."""
    setup_logging()

    workflow = _load(args.workflow)
    if workflow is None:
        return 1

    executor = WorkflowExecutor(store=InMemoryExecutionStore())
    execution = executor.execute(workflow)

    print(json.dumps(execution.to_dict(), indent=args.indent, default=str))
    return 0 if execution.status == ExecutionStatus.COMPLETED else 1


def cmd_order(args: argparse.Namespace) -> int:
    """Print the execution order of a workflow file."""
    workflow = _load(args.workflow)
    if workflow is None:
        return 1

    try:
        graph = WorkflowGraph.from_workflow(workflow)
    except GraphError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(" -> ".join(graph.execution_order))
    return 0


def cmd_nodes(args: argparse.Namespace) -> int:
    """List registered node types."""
    registry = create_default_registry()
    for definition in registry.list_nodes():
        print(f"{definition.node_type:<10} {definition.display_name}: {definition.description}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="nodeflow",
        description="Run workflow definitions",
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # run command
    run_parser = subparsers.add_parser('run', help='Execute a workflow file')
    run_parser.add_argument('workflow', help='Path to workflow JSON file')
    run_parser.add_argument('--indent', type=int, default=2, help='Indent of the printed execution JSON')

    # order command
    order_parser = subparsers.add_parser('order', help='Print the execution order')
    order_parser.add_argument('workflow', help='Path to workflow JSON file')

    # nodes command
    subparsers.add_parser('nodes', help='List registered node types')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'run':
        return cmd_run(args)
    elif args.command == 'order':
        return cmd_order(args)
    elif args.command == 'nodes':
        return cmd_nodes(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
