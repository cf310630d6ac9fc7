"""
Core types.

This file defines the shared data structures used across the engine.

Two groups live here.

Resolved objects
Ref, CapabilityRef, CapabilityValue and Component. These are what the compiler
builds and what the node graph reasons about.

External model
Parameter, ProducesClause, ConsumesClause, ComponentType, ComponentDeclaration,
ApplicationDefinition, ApplicationInstantiation and ApplicationModel. These are
handed to us fully parsed. Values inside them are expressions from
app_orchestrator.language.expressions and are only evaluated by the compiler.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from app_orchestrator.core.errors import ComponentSealed, InvalidReference

if TYPE_CHECKING:
    from app_orchestrator.language.expressions import Expression


NODE_KIND = "Node"

_REF_PATTERN = re.compile(r"^\s*([A-Za-z][\w:]*)\s*\[\s*(.*?)\s*\]\s*$")


@dataclass(frozen=True)
class Ref:
    """
    Reference to a resource by kind and title, such as Node[n1] or Db[one].

    Node mappings are expressed as pairs of Ref values.
    """

    kind: str
    title: str

    @classmethod
    def parse(cls, text: str) -> "Ref":
        """Parse the Kind[title] string form."""
        match = _REF_PATTERN.match(text)
        if match is None:
            raise InvalidReference(f"not a resource reference: {text!r}")
        return cls(kind=match.group(1), title=match.group(2))

    @property
    def is_node(self) -> bool:
        return self.kind == NODE_KIND

    @property
    def ref(self) -> str:
        return f"{self.kind}[{self.title}]"

    def __str__(self) -> str:
        return self.ref


@dataclass(frozen=True)
class CapabilityRef:
    """
    Identifier of one producible or consumable capability instance.

    Equality is structural on kind and name.
    """

    kind: str
    name: str

    @property
    def ref(self) -> str:
        return f"{self.kind}[{self.name}]"

    def __str__(self) -> str:
        return self.ref


@dataclass(frozen=True)
class CapabilityValue:
    """
    A capability record as published by a producer.

    parameters holds the attribute values the producer exported, for example
    host and port of an Sql capability.
    """

    kind: str
    name: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def capability(self) -> CapabilityRef:
        return CapabilityRef(kind=self.kind, name=self.name)


CapabilityInput = Union[CapabilityRef, List[CapabilityRef]]


@dataclass(eq=False)
class Component:
    """
    One resource instance inside an application instance.

    produces and consumes keep the order in which capabilities were appended.
    Equality and hashing use ref, so two Component objects for Db[one] are the
    same component as far as mappings are concerned.

    Once the owning application instance is built the component is sealed and
    further appends raise ComponentSealed.
    """

    kind: str
    name: str
    produces: List[CapabilityRef] = field(default_factory=list)
    consumes: List[CapabilityRef] = field(default_factory=list)
    _sealed: bool = field(default=False, repr=False)

    @property
    def ref(self) -> str:
        return f"{self.kind}[{self.name}]"

    def produce(self, other: CapabilityInput) -> None:
        """Append one capability or a list of capabilities to produces."""
        self._append(self.produces, other)

    def consume(self, other: CapabilityInput) -> None:
        """Append one capability or a list of capabilities to consumes."""
        self._append(self.consumes, other)

    def produces_capability(self, cap: CapabilityRef) -> bool:
        return cap in self.produces

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _append(self, target: List[CapabilityRef], other: CapabilityInput) -> None:
        if self._sealed:
            raise ComponentSealed(f"component {self.ref} can not change after its application was built")
        if isinstance(other, list):
            target.extend(other)
        else:
            target.append(other)

    def describe(self) -> str:
        """One line summary used by the text report."""
        parts = [f"define {self.ref}"]
        if self.produces:
            parts.append("produces " + ",".join(c.ref for c in self.produces))
        if self.consumes:
            parts.append("consumes " + ",".join(c.ref for c in self.consumes))
        return " ".join(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Component):
            return NotImplemented
        return self.ref == other.ref

    def __hash__(self) -> int:
        return hash(self.ref)

    def __str__(self) -> str:
        return self.ref


@dataclass(frozen=True)
class Parameter:
    """
    A declared parameter.

    default is an expression evaluated in the declaring scope when the caller
    does not supply a value. None means the parameter is required.
    """

    name: str
    default: Optional["Expression"] = None


@dataclass(frozen=True)
class ProducesClause:
    """
    produces Kind { title: }

    title is evaluated with the component parameters visible.
    """

    kind: str
    title: "Expression"


@dataclass(frozen=True)
class ConsumesClause:
    """
    consumes Kind $parameter

    The component parameter named here must hold a capability of kind.
    """

    kind: str
    parameter: str


@dataclass(frozen=True)
class ComponentType:
    """A defined type that takes part in applications through capability clauses."""

    name: str
    parameters: List[Parameter] = field(default_factory=list)
    produces: List[ProducesClause] = field(default_factory=list)
    consumes: List[ConsumesClause] = field(default_factory=list)


Arguments = List[Tuple[str, "Expression"]]


@dataclass(frozen=True)
class ComponentDeclaration:
    """A component resource declared in an application body."""

    type_name: str
    title: "Expression"
    arguments: Arguments = field(default_factory=list)


@dataclass(frozen=True)
class ApplicationDefinition:
    """
    An application definition.

    parameters are in declaration order, defaults may refer to earlier ones.
    body is the ordered list of component declarations.
    """

    name: str
    parameters: List[Parameter] = field(default_factory=list)
    body: List[ComponentDeclaration] = field(default_factory=list)


@dataclass(frozen=True)
class ApplicationInstantiation:
    """
    One instantiation of an application definition.

    arguments must include nodes, which evaluates to a list of
    (Ref, Ref or list of Ref) pairs.
    """

    definition_name: str
    title: "Expression"
    arguments: Arguments = field(default_factory=list)


@dataclass
class ApplicationModel:
    """
    Fully parsed application model handed to the compiler.

    instantiations keep source order. Application and component type names are
    unique keys.
    """

    definitions: Dict[str, ApplicationDefinition] = field(default_factory=dict)
    component_types: Dict[str, ComponentType] = field(default_factory=dict)
    instantiations: List[ApplicationInstantiation] = field(default_factory=list)
    environment: str = "production"
