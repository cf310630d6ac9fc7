"""
Environment report.

Turns compiled application instances and the node graph into:
1) a json safe environment catalog for deployment tooling
2) human readable text for operators
3) one deployment command per node, in graph order

Nothing here changes the instances or the graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from app_orchestrator.core.serialization import to_json_safe
from app_orchestrator.model.application import ApplicationInstance
from app_orchestrator.topology.graph import NodeGraph

DEFAULT_COMMAND_TEMPLATE = "ssh {node} puppet agent -otv"


@dataclass(frozen=True)
class ReportConfig:
    """
    Report configuration.

    command_template
    Format string for one deployment command. {node} is the node name.
    """

    command_template: str = DEFAULT_COMMAND_TEMPLATE


def application_components(instance: ApplicationInstance) -> Dict[str, Dict[str, Any]]:
    """component ref -> produces, consumes and node for one instance."""
    out: Dict[str, Dict[str, Any]] = {}
    for comp in instance.mapping.components:
        out[comp.ref] = {
            "produces": [c.ref for c in comp.produces],
            "consumes": [c.ref for c in comp.consumes],
            "node": instance.mapping.node_for(comp),
        }
    return out


def build_report(
    environment: str,
    instances: Iterable[ApplicationInstance],
    graph: NodeGraph,
    order: List[str] | None = None,
) -> Dict[str, Any]:
    """
    Build the environment catalog.

    order is computed from graph when not given, so a cyclic graph raises
    CycleDetected here too.
    """
    applications: Dict[str, Any] = {}
    parameters: Dict[str, Any] = {}
    for instance in instances:
        applications[instance.ref] = application_components(instance)
        parameters[instance.ref] = to_json_safe(dict(instance.parameters))

    return {
        "environment": environment,
        "applications": applications,
        "parameters": parameters,
        "graph": {node: list(deps) for node, deps in sorted(graph.nodes.items())},
        "order": list(order) if order is not None else graph.order(),
    }


def render_application(instance: ApplicationInstance) -> List[str]:
    """Text lines describing one instance, its components and its mapping."""
    lines = [f"  {instance.ref}", "    components:"]
    lines.extend(" " * 6 + comp.describe() for comp in instance.mapping.components)
    lines.append("    mapping:")
    lines.extend(" " * 6 + line for line in instance.mapping.describe())
    return lines


def render_node_graph(graph: NodeGraph) -> List[str]:
    """Adjacency lines, one per node in name order. Nodes without dependencies show (root)."""
    lines: List[str] = []
    for src in sorted(graph.nodes):
        deps = graph.nodes[src]
        if not deps:
            lines.append("  %-10s    (root)" % src)
        else:
            lines.append("  %-10s -> %s" % (src, ",".join(deps)))
    return lines


def deployment_commands(order: Iterable[str], config: ReportConfig | None = None) -> List[str]:
    """One command per node, in the given order."""
    cfg = config or ReportConfig()
    return [cfg.command_template.format(node=node) for node in order]
