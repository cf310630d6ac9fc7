"""
Component to node mapping.

This is the internal representation of the nodes argument of an application
instance. It is built from (left, right) pairs where exactly one side is a
Node reference and the other side is a component reference, or a list of
component references.

It also serves as the list of all components of the instance, in the order in
which they were mapped.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from app_orchestrator.core.errors import DuplicateMapping, InvalidMapping, MalformedMappingPair, MultipleProducers
from app_orchestrator.core.types import CapabilityRef, Component, Ref

log = logging.getLogger("app_orchestrator.model.mapping")

MappingPairs = Union[Iterable[Tuple[Any, Any]], Mapping[Any, Any]]


class ProducerPolicy(StrEnum):
    """
    What to do when several components produce the same capability.

    first_match
    The first component in mapping order wins.

    strict
    More than one producer raises MultipleProducers.
    """

    first_match = "first_match"
    strict = "strict"


class ComponentMapping:
    """
    Validated index of components and the single node each one is deployed to.

    components_by_node keeps insertion order per node.
    components keeps global insertion order.
    """

    def __init__(self) -> None:
        self.components_by_node: Dict[str, List[Component]] = {}
        self.components: List[Component] = []
        self._node_for_component: Dict[str, str] = {}

    @classmethod
    def from_pairs(cls, pairs: MappingPairs) -> "ComponentMapping":
        """
        Build a mapping from node pairs.

        pairs may be a sequence of two element tuples or a dict. Either side of
        a pair may be a list, which is flattened to one pair per element.
        """
        mapping = cls()
        items = pairs.items() if isinstance(pairs, Mapping) else pairs
        for pair in items:
            if not isinstance(pair, (tuple, list)) or len(pair) != 2:
                raise MalformedMappingPair(repr(pair))
            left, right = pair
            for a in _as_list(left):
                for b in _as_list(right):
                    mapping.assoc(a, b)
        return mapping

    def assoc(self, left: Any, right: Any) -> Component:
        """Bind one component to one node. The Node side may come first or second."""
        _check_ref(left, right)
        node, comp = (left, right) if left.is_node else (right, left)
        if not node.is_node:
            raise InvalidMapping(left.ref, right.ref, "one of them must be a Node")
        if comp.is_node:
            raise InvalidMapping(left.ref, right.ref, "only one of them can be a Node")

        component = Component(kind=comp.kind, name=comp.title)
        prev = self._node_for_component.get(component.ref)
        if prev is not None:
            if prev != node.title:
                raise DuplicateMapping(component.ref, prev, node.title)
            log.debug("component %s mapped to node %s again, ignoring", component.ref, prev)
            return self.component(component.ref)  # type: ignore[return-value]

        self.components_by_node.setdefault(node.title, []).append(component)
        self._node_for_component[component.ref] = node.title
        self.components.append(component)
        return component

    def nodes(self) -> List[str]:
        """Mapped node names in first mapped order."""
        return list(self.components_by_node.keys())

    def node_for(self, component: Union[Component, str]) -> Optional[str]:
        ref = component if isinstance(component, str) else component.ref
        return self._node_for_component.get(ref)

    def component(self, ref: str) -> Optional[Component]:
        for comp in self.components:
            if comp.ref == ref:
                return comp
        return None

    def producers(self, cap: CapabilityRef) -> List[Component]:
        """All components producing cap, in mapping order."""
        return [comp for comp in self.components if comp.produces_capability(cap)]

    def producing_node(
        self,
        cap: CapabilityRef,
        policy: ProducerPolicy = ProducerPolicy.first_match,
    ) -> Optional[str]:
        """
        Return the node of the component producing cap, or None.

        Under first_match the scan stops at the first producer. Under strict
        every producer is collected and more than one is an error.
        """
        if policy == ProducerPolicy.strict:
            found = self.producers(cap)
            if len(found) > 1:
                raise MultipleProducers(cap.ref, [c.ref for c in found])
            return self._node_for_component[found[0].ref] if found else None

        for comp in self.components:
            if comp.produces_capability(cap):
                return self._node_for_component[comp.ref]
        return None

    def describe(self) -> List[str]:
        """Node[name] : [components] lines used by the text report."""
        return [
            f"Node[{node}] : [{','.join(c.ref for c in comps)}]"
            for node, comps in self.components_by_node.items()
        ]

    def __len__(self) -> int:
        return len(self.components)


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else [value]


def _check_ref(left: Any, right: Any) -> None:
    if not isinstance(left, Ref) or not isinstance(right, Ref):
        raise InvalidMapping(str(left), str(right), "both sides must be resource references")
