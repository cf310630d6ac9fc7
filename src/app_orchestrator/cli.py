"""
Command line entry point.

Read an application model, compile it, and print the node graph and the order
in which nodes have to be deployed.

usage: app-orchestrator [-j FILE] [-e ENV] [--strict-producers] [-d] MODEL.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from app_orchestrator.compiler import CompilerConfig, compile_model
from app_orchestrator.core.errors import OrchestratorError
from app_orchestrator.model.mapping import ProducerPolicy
from app_orchestrator.model.source import StaticModelSource
from app_orchestrator.report.report import (
    DEFAULT_COMMAND_TEMPLATE,
    ReportConfig,
    build_report,
    deployment_commands,
    render_application,
    render_node_graph,
)

log = logging.getLogger("app_orchestrator.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="app-orchestrator",
        description="Manage cross-node applications: compute the order in which nodes are deployed.",
    )
    parser.add_argument("model", type=Path, help="application model as json")
    parser.add_argument("-j", "--json", type=Path, help="write the environment catalog to FILE as json")
    parser.add_argument("-e", "--environment", help="environment name, defaults to the one in the model")
    parser.add_argument(
        "--strict-producers",
        action="store_true",
        help="reject capabilities produced by more than one component",
    )
    parser.add_argument(
        "--command-template",
        default=DEFAULT_COMMAND_TEMPLATE,
        help="deployment command per node, {node} is replaced by the node name",
    )
    parser.add_argument("-d", "--debug", action="store_true", help="enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        model = StaticModelSource(path=args.model).load()
        config = CompilerConfig(
            producer_policy=ProducerPolicy.strict if args.strict_producers else ProducerPolicy.first_match,
            environment=args.environment or model.environment,
        )
        result = compile_model(model, config)
    except OrchestratorError as exc:
        log.debug("compile failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print("Application instances:")
    for instance in result.instances:
        print("\n".join(render_application(instance)))
        print()

    if args.json:
        report = build_report(result.environment, result.instances, result.graph, result.order)
        args.json.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
        print(f"Wrote environment catalog to {args.json}")

    print("Node graph:")
    print("\n".join(render_node_graph(result.graph)))

    print("\nRun in this order:")
    for cmd in deployment_commands(result.order, ReportConfig(command_template=args.command_template)):
        print(f"  {cmd}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
