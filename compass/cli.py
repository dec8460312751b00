"""Interactive shell that reads commands and prints their JSON results."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Sequence

from compass.errors import CompassError
from compass.mcp.server import MCPServer, to_jsonable
from compass.service.context_retriever import ContextRetriever
from compass.service.planning_service import PlanningService
from compass.service.project_service import ProjectService
from compass.service.project_summary import ProjectSummaryService
from compass.service.task_service import TaskService
from compass.storage.file import FileStorage

PROMPT = "compass> "

_HELP_LINES = (
    "Available commands:",
    "  help                           - Show this help",
    "  quit/exit                      - Exit the application",
    "",
    "MCP Commands (JSON format):",
    "  Project commands:",
    "    compass.project.create       - Create a new project",
    "    compass.project.list         - List all projects",
    "    compass.project.current      - Get current project",
    "    compass.project.set_current  - Set current project",
    "",
    "  Task commands:",
    "    compass.task.create          - Create a new task",
    "    compass.task.list            - List tasks",
    "    compass.task.get             - Get a specific task",
    "    compass.task.update          - Update a task",
    "    compass.task.delete          - Delete a task",
    "",
    "  Context commands:",
    "    compass.context.get          - Get full context for a task",
    "    compass.context.search       - Search tasks by query",
    "    compass.context.check        - Check context sufficiency",
    "",
    "  Intelligent queries:",
    "    compass.next                 - Get next recommended task",
    "    compass.blockers             - Get all blocked tasks",
    "",
    "  Planning commands:",
    "    compass.planning.start       - Start a new planning session",
    "    compass.planning.list        - List planning sessions",
    "    compass.planning.get         - Get planning session details",
    "    compass.planning.complete    - Complete a planning session",
    "    compass.planning.abort       - Abort a planning session",
    "",
    "  Discovery and Decision commands:",
    "    compass.discovery.add        - Record a new discovery",
    "    compass.discovery.list       - List all discoveries",
    "    compass.decision.record      - Record a decision",
    "    compass.decision.list        - List all decisions",
    "",
    "  Summary commands:",
    "    compass.project.summary      - Generate intelligent project summary and insights",
    "",
    "Example usage:",
    '  compass.project.create {"name":"My Project","description":"A test project",'
    '"goal":"Learn Compass"}',
    '  compass.task.create {"projectId":"<project-id>","title":"Setup",'
    '"description":"Initial setup"}',
    '  compass.context.search {"query":"authentication","limit":5}',
    "  compass.next {}",
    '  compass.context.get {"taskId":"<task-id>"}',
    '  compass.planning.start {"name":"Sprint Planning"}',
    '  compass.discovery.add {"insight":"Users prefer OAuth","impact":"high",'
    '"source":"research"}',
    '  compass.decision.record {"question":"Database choice","choice":"PostgreSQL",'
    '"rationale":"Better JSON support"}',
    "  compass.project.summary {}",
)


def help_text() -> str:
    """The text shown by the ``help`` command."""
    return "\n".join(_HELP_LINES)


def build_server(base_path: str | os.PathLike[str]) -> MCPServer:
    """Wire file storage under ``base_path`` to the services and the server."""
    storage = FileStorage(base_path)
    task_service = TaskService(storage)
    project_service = ProjectService(storage)
    context_retriever = ContextRetriever(storage, storage)
    planning_service = PlanningService(storage, task_service, project_service)
    summary_service = ProjectSummaryService(task_service, project_service, planning_service)
    return MCPServer(
        task_service, project_service, context_retriever, planning_service, summary_service
    )


def handle_line(server: MCPServer, line: str) -> str:
    """Run one ``<method> [json]`` line and return the text to print."""
    method, _, param_text = line.partition(" ")
    params = None
    if param_text:
        try:
            json.loads(param_text)
        except json.JSONDecodeError as exc:
            return f"Error: Invalid JSON parameters: {exc}"
        params = param_text

    try:
        result = server.handle_command(method, params)
    except (CompassError, ValueError, OSError) as exc:
        return f"Error: {exc}"

    try:
        return json.dumps(to_jsonable(result), indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        return f"Error formatting result: {exc}"


def main(argv: Sequence[str] | None = None) -> int:
    """Start the interactive shell on the current directory."""
    parser = argparse.ArgumentParser(
        prog="compass", description="Interactive shell for Compass project and task commands."
    )
    parser.parse_args(argv)

    try:
        server = build_server(os.getcwd())
    except (CompassError, OSError) as exc:
        print(f"Failed to initialize file storage: {exc}", file=sys.stderr)
        return 1

    print("Compass MCP Server started")
    print("Type 'help' for available commands or 'quit' to exit")

    while True:
        sys.stdout.write(PROMPT)
        sys.stdout.flush()
        line = sys.stdin.readline()
        if not line:
            break
        text = line.strip()
        if not text:
            continue
        if text in ("quit", "exit"):
            print("Goodbye!")
            break
        if text == "help":
            print(help_text())
            continue
        print(handle_line(server, text))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())