"""
Node dependency graph.

This module folds application instances into a graph of nodes and computes the
order in which nodes must be deployed.

What is a NodeGraph
- nodes: node name -> names of the nodes it depends on

A node depends on another node when one of its components consumes a
capability that a component on the other node produces. Producers must be
deployed before their consumers.

Design goals
1. Every consumed capability must resolve. A silently dropped edge would
   deploy a consumer before its producer.
2. order never touches the accumulated edges. It works on a copy.
3. Ties are broken deterministically so test output is reproducible.

Tie break
The ready set starts with the nodes that have no dependencies, in the order
they were first added, and is used as a LIFO stack. Nodes released by a
completed node are pushed in node insertion order. Any valid topological order
is acceptable to callers, this is only documented for reproducibility.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from app_orchestrator.core.errors import CycleDetected, UnresolvedCapability
from app_orchestrator.model.application import ApplicationInstance
from app_orchestrator.model.mapping import ProducerPolicy

log = logging.getLogger("app_orchestrator.topology.graph")


@dataclass
class NodeGraph:
    """
    Adjacency list: node n requires all the nodes in nodes[n].

    Dependency lists never hold duplicates and keep first added order.
    Self edges are never recorded.
    """

    nodes: Dict[str, List[str]] = field(default_factory=dict)
    producer_policy: ProducerPolicy = ProducerPolicy.first_match

    def add_node(self, node: str) -> None:
        """Make sure node has an entry, keeping any edges it already has."""
        self.nodes.setdefault(node, [])

    def add_edge(self, consumer: str, producer: str) -> None:
        """Record that consumer depends on producer."""
        self.add_node(consumer)
        self.add_node(producer)
        if consumer == producer:
            return
        deps = self.nodes[consumer]
        if producer not in deps:
            deps.append(producer)
            log.debug("edge %s -> %s", consumer, producer)

    def add_application(self, instance: ApplicationInstance) -> None:
        """
        Add dependency edges for every consumed capability of an instance.

        Behavior
        1. Every mapped node gets an entry, even when it has no edges.
        2. For each consumed capability, find the producing node in the same
           instance. No producer raises UnresolvedCapability.
        3. If the producer is on another node, add consumer -> producer.
        """
        m = instance.mapping
        for node in m.nodes():
            self.add_node(node)
            for comp in m.components_by_node[node]:
                for cons in comp.consumes:
                    prod = m.producing_node(cons, self.producer_policy)
                    if prod is None:
                        raise UnresolvedCapability(comp.ref, node, cons.ref)
                    self.add_edge(node, prod)
        log.debug("added application %s, graph now has %d nodes", instance.ref, len(self.nodes))

    def merge(self, other: "NodeGraph") -> None:
        """Fold the edges of another graph into this one."""
        for node, deps in other.nodes.items():
            self.add_node(node)
            for dep in deps:
                self.add_edge(node, dep)

    def roots(self) -> List[str]:
        """Nodes that depend on nothing."""
        return [node for node, deps in self.nodes.items() if not deps]

    def dependents(self, node: str) -> List[str]:
        """Nodes that depend on node."""
        return [n for n, deps in self.nodes.items() if node in deps]

    def edges(self) -> List[tuple[str, str]]:
        return [(node, dep) for node, deps in self.nodes.items() for dep in deps]

    def order(self) -> List[str]:
        """
        Return node names in topological order, producers first.

        Kahn's algorithm on a copy of the adjacency list. Self edges are
        stripped up front so they never look like a cycle. If the ready stack
        runs dry while nodes are left, CycleDetected reports what is left.
        Dependencies that have no entry of their own are treated as roots.
        """
        nodes = dict(self.nodes)
        for deps in self.nodes.values():
            for dep in deps:
                nodes.setdefault(dep, [])

        queue: List[str] = []
        graph: Dict[str, List[str]] = {}
        for node, deps in nodes.items():
            remaining = [d for d in deps if d != node]
            if remaining:
                graph[node] = remaining
            else:
                queue.append(node)

        result: List[str] = []
        while queue:
            node = queue.pop()
            result.append(node)
            for n in list(graph.keys()):
                deps = graph[n]
                if node in deps:
                    deps.remove(node)
                if not deps:
                    del graph[n]
                    queue.append(n)

        if graph:
            raise CycleDetected(graph)

        log.debug("node order %s", result)
        return result


def build_node_graph(
    instances: Iterable[ApplicationInstance],
    producer_policy: ProducerPolicy = ProducerPolicy.first_match,
) -> NodeGraph:
    """Build a NodeGraph from application instances."""
    g = NodeGraph(producer_policy=producer_policy)
    for instance in instances:
        g.add_application(instance)
    return g
