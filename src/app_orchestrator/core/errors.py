"""
Error taxonomy.

We separate error types so callers can react correctly.
Every error here is fatal to the current compile. Nothing is retried.

structural
Caught while building the model. InvalidMapping, DuplicateMapping and friends.

resolution
Caught while folding components and capabilities. These carry the component,
node and capability involved so the operator can act on them.

graph
Only CycleDetected. Raised by NodeGraph.order with the unresolved subgraph.

external
CapabilityLookupFailed wraps failures of a registry backend. It is distinct from
UnresolvedCapability: unreachable is not the same as absent.
"""

from __future__ import annotations

from typing import Dict, List, Optional


class OrchestratorError(Exception):
    """Base class for all orchestrator exceptions."""


class ModelStructureError(OrchestratorError):
    """Raised when the application model is malformed."""


class ResolutionError(OrchestratorError):
    """Raised when a component or capability cannot be resolved."""


class GraphError(OrchestratorError):
    """Raised when the node dependency graph cannot be ordered."""


class ExternalError(OrchestratorError):
    """Raised when an external collaborator fails."""


class ModelSourceError(OrchestratorError):
    """Raised when a model document cannot be loaded."""


class InvalidReference(ModelStructureError):
    """Raised when a Kind[title] reference string cannot be parsed."""


class InvalidMapping(ModelStructureError):
    """Raised when a node mapping pair does not have exactly one Node side."""

    def __init__(self, left: str, right: str, reason: str) -> None:
        self.left = left
        self.right = right
        super().__init__(f"Invalid mapping {left} => {right}; {reason}")


class DuplicateMapping(ModelStructureError):
    """Raised when one component is mapped to two different nodes."""

    def __init__(self, component: str, first_node: str, second_node: str) -> None:
        self.component = component
        self.first_node = first_node
        self.second_node = second_node
        super().__init__(
            f"Component {component} mapped to two nodes: Node[{first_node}] and Node[{second_node}]"
        )


class MissingNodeMapping(ModelStructureError):
    """Raised when an application instantiation has no nodes argument."""

    def __init__(self, application: str) -> None:
        self.application = application
        super().__init__(f"the application instantiation of {application} does not contain a node mapping")


class MalformedMappingPair(InvalidMapping):
    """Raised when a nodes entry is not a two element pair."""

    def __init__(self, entry: str) -> None:
        self.left = entry
        self.right = ""
        ModelStructureError.__init__(self, f"Invalid mapping entry {entry}; expected a pair of references")


class InvalidExpression(ModelStructureError):
    """Raised when an expression can not be evaluated, such as a malformed string template."""

    def __init__(self, source: str, detail: str) -> None:
        self.source = source
        super().__init__(f"Invalid expression {source!r}: {detail}")


class UnsupportedMultiTitle(ModelStructureError):
    """Raised when a title does not reduce to exactly one string."""

    def __init__(self, what: str, count: int) -> None:
        self.what = what
        self.count = count
        super().__init__(f"Can only handle one title for {what}, but got {count}")


class DuplicateParameter(ModelStructureError):
    """Raised when the same argument name is given twice in one declaration."""

    def __init__(self, owner: str, name: str) -> None:
        self.owner = owner
        self.name = name
        super().__init__(f"{owner}: argument {name} is already defined")


class MissingParameter(ModelStructureError):
    """Raised when a declared parameter has neither a value nor a default."""

    def __init__(self, owner: str, name: str) -> None:
        self.owner = owner
        self.name = name
        super().__init__(f"{owner}: parameter {name} has no value")


class ComponentSealed(ModelStructureError):
    """Raised when a component is changed after its application instance was built."""


class UndefinedApplication(ResolutionError):
    """Raised when an instantiation names an application nobody defined."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"no definition for application {name}")


class UndefinedComponentType(ResolutionError):
    """Raised when a component declaration names an unknown component type."""

    def __init__(self, application: str, type_name: str) -> None:
        self.application = application
        self.type_name = type_name
        super().__init__(f"In {application}: no definition for component type {type_name}")


class UnmappedComponent(ResolutionError):
    """Raised when a declared component is not part of the node mapping."""

    def __init__(self, application: str, component: str) -> None:
        self.application = application
        self.component = component
        super().__init__(f"In {application}: component {component} is not mapped to a node")


class MissingCapabilityArgument(ResolutionError):
    """Raised when a consumes clause refers to a parameter that was not supplied."""

    def __init__(self, application: str, component: str, parameter: str) -> None:
        self.application = application
        self.component = component
        self.parameter = parameter
        super().__init__(f"In {application}: parameter {parameter} not defined for component {component}")


class InvalidCapabilityArgument(ResolutionError):
    """Raised when a consumed parameter is not a capability of the declared kind."""

    def __init__(self, application: str, component: str, parameter: str, detail: str) -> None:
        self.application = application
        self.component = component
        self.parameter = parameter
        super().__init__(
            f"In {application}: parameter {parameter} of component {component} is not a capability: {detail}"
        )


class UnresolvedCapability(ResolutionError):
    """Raised when a consumed capability has no producer."""

    def __init__(self, component: str, node: str, capability: str) -> None:
        self.component = component
        self.node = node
        self.capability = capability
        super().__init__(
            f"Component {component} on node {node} consumes {capability} but nobody produces it; "
            "maybe it is not a capability ?"
        )


class MultipleProducers(ResolutionError):
    """Raised under the strict producer policy when a capability has several producers."""

    def __init__(self, capability: str, producers: List[str]) -> None:
        self.capability = capability
        self.producers = list(producers)
        super().__init__(f"Capability {capability} is produced by more than one component: {', '.join(producers)}")


class UndefinedVariable(ResolutionError):
    """Raised when an expression references a name that is not bound in scope."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown variable: '{name}'")


class AmbiguousCapability(ResolutionError):
    """Raised when a registry holds more than one record for a capability."""

    def __init__(self, capability: str, count: int) -> None:
        self.capability = capability
        self.count = count
        super().__init__(f"Multiple resources found when looking up {capability}: {count}")


class CycleDetected(GraphError):
    """
    Raised when topological ordering cannot complete.

    remaining is the subgraph left over when no node was ready, node to the
    dependencies it still waits for.
    """

    def __init__(self, remaining: Dict[str, List[str]]) -> None:
        self.remaining = {node: list(deps) for node, deps in remaining.items()}
        super().__init__(f"The graph has cycles; can't complete toposort: {self.remaining!r}")


class CapabilityLookupFailed(ExternalError):
    """Raised when a capability registry backend is unreachable or answers garbage."""

    def __init__(self, capability: str, detail: str, backend: Optional[str] = None) -> None:
        self.capability = capability
        self.backend = backend
        where = f" via {backend}" if backend else ""
        super().__init__(f"Capability lookup for {capability} failed{where}: {detail}")
