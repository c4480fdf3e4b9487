from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from agentgraph.app import (
    export_full_graph,
    import_full_graph,
    migrate,
    register_resource,
    serve,
)
from agentgraph.config import configure_logging
from agentgraph.domain.errors import AgentGraphError, SchemaValidationError
from agentgraph.domain.model import GraphScope, ProjectScope, ResourceKind

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tenant", required=True, help="Tenant id owning the project")
    parser.add_argument("--project", required=True, help="Project id owning the graph")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage multi-tenant agent graphs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_cmd = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_cmd.add_argument("--host", type=str, help="Bind address (defaults to config)")
    serve_cmd.add_argument("--port", type=int, help="Bind port (defaults to config)")

    subparsers.add_parser("migrate", help="Upgrade the database schema to the latest revision")

    resource = subparsers.add_parser("resource", help="Project catalog commands")
    resource_sub = resource.add_subparsers(dest="resource_command", required=True)
    resource_add = resource_sub.add_parser("add", help="Register a tool or component")
    _add_scope_arguments(resource_add)
    resource_add.add_argument(
        "--kind",
        required=True,
        choices=[kind.value for kind in ResourceKind],
        help="Catalog entry kind",
    )
    resource_add.add_argument("--id", dest="resource_id", required=True, help="Catalog entry id")
    resource_add.add_argument("--name", required=True, help="Display name")
    resource_add.add_argument("--description", type=str, help="Optional description")

    graph = subparsers.add_parser("graph", help="Full-graph import and export")
    graph_sub = graph.add_subparsers(dest="graph_command", required=True)
    graph_import = graph_sub.add_parser("import", help="Upsert a full graph from a JSON file")
    _add_scope_arguments(graph_import)
    graph_import.add_argument("file", type=Path, help="Path to the full-graph JSON document")
    graph_import.add_argument(
        "--graph-id",
        type=str,
        help="Graph id to upsert (defaults to the document's id)",
    )
    graph_export = graph_sub.add_parser("export", help="Write a stored graph as JSON")
    _add_scope_arguments(graph_export)
    graph_export.add_argument("--graph-id", required=True, help="Graph id to export")
    graph_export.add_argument(
        "--output",
        type=Path,
        help="Destination file (defaults to stdout)",
    )

    return parser.parse_args(list(argv))


def _load_document(path: Path) -> dict[str, Any]:
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc.strerror}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc.msg} (line {exc.lineno})") from exc
    if not isinstance(document, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return document


def _log_domain_error(exc: AgentGraphError) -> None:
    log.error("%s", exc.detail)
    if isinstance(exc, SchemaValidationError):
        for field in exc.fields:
            log.error("  %s: %s", field.pointer, field.reason)


def _run(parsed_args: argparse.Namespace) -> None:
    if parsed_args.command == "serve":
        serve(host=parsed_args.host, port=parsed_args.port)
    elif parsed_args.command == "migrate":
        revision = migrate()
        log.info("Schema revision: %s", revision)
    elif parsed_args.command == "resource" and parsed_args.resource_command == "add":
        resource = register_resource(
            scope=ProjectScope(tenant_id=parsed_args.tenant, project_id=parsed_args.project),
            kind=ResourceKind(parsed_args.kind),
            resource_id=parsed_args.resource_id,
            name=parsed_args.name,
            description=parsed_args.description,
        )
        log.info("Registered %s %s", resource.kind, resource.id)
    elif parsed_args.command == "graph" and parsed_args.graph_command == "import":
        outcome = import_full_graph(
            scope=ProjectScope(tenant_id=parsed_args.tenant, project_id=parsed_args.project),
            payload=_load_document(parsed_args.file),
            graph_id=parsed_args.graph_id,
        )
        log.info(
            "Graph %s %s",
            outcome.view.id,
            "created" if outcome.created else "updated",
        )
    elif parsed_args.command == "graph" and parsed_args.graph_command == "export":
        document = export_full_graph(
            scope=GraphScope(
                tenant_id=parsed_args.tenant,
                project_id=parsed_args.project,
                graph_id=parsed_args.graph_id,
            )
        )
        rendered = json.dumps(document, indent=2, sort_keys=True) + "\n"
        if parsed_args.output is None:
            sys.stdout.write(rendered)
        else:
            parsed_args.output.write_text(rendered, encoding="utf-8")
            log.info("Wrote graph %s to %s", parsed_args.graph_id, parsed_args.output)
    else:
        raise ValueError(f"Unsupported command: {parsed_args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        _run(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    except AgentGraphError as exc:
        _log_domain_error(exc)
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
