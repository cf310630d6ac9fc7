"""
Capability registry interfaces.

Goal
When producer and consumer nodes are compiled as separate per node catalogs,
the consumer can not see the producing component. It asks a capability
registry instead.

A registry answers find(environment, cap) with the published CapabilityValue
or None when nothing was published. Backend failures are raised as
CapabilityLookupFailed, never turned into None.

Registries are explicit objects handed to whoever needs them. There is no
process wide registry table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from app_orchestrator.core.errors import UnresolvedCapability
from app_orchestrator.core.types import CapabilityRef, CapabilityValue
from app_orchestrator.model.application import ApplicationInstance

log = logging.getLogger("app_orchestrator.registry")


class CapabilityRegistry(Protocol):
    """
    Capability registry interface.

    find returns the capability published in environment, or None.
    """

    def find(self, environment: str, cap: CapabilityRef) -> Optional[CapabilityValue]:
        """Look a capability up."""


@dataclass
class InMemoryCapabilityRegistry(CapabilityRegistry):
    """
    Registry kept in process memory.

    Useful for tests and for compiling several node catalogs in one process.
    Publishing the same capability twice in one environment replaces it.
    """

    _values: Dict[Tuple[str, CapabilityRef], CapabilityValue] = field(default_factory=dict)

    def publish(self, environment: str, value: CapabilityValue) -> None:
        self._values[(environment, value.capability)] = value

    def find(self, environment: str, cap: CapabilityRef) -> Optional[CapabilityValue]:
        return self._values.get((environment, cap))


@dataclass(frozen=True)
class ChainedCapabilityRegistry(CapabilityRegistry):
    """
    Ask several registries in order.

    The first backend that knows the capability answers. A backend error stops
    the chain and propagates unchanged.
    """

    backends: Sequence[CapabilityRegistry]

    def find(self, environment: str, cap: CapabilityRef) -> Optional[CapabilityValue]:
        for backend in self.backends:
            value = backend.find(environment, cap)
            if value is not None:
                log.debug("capability %s found by %s", cap.ref, type(backend).__name__)
                return value
        return None


def resolve_consumed_capabilities(
    instance: ApplicationInstance,
    node: str,
    registry: CapabilityRegistry,
    environment: str,
) -> List[CapabilityValue]:
    """
    Look up every capability consumed by the components of instance on node.

    Capabilities are returned in component order then consume order, without
    duplicates. A capability the registry does not know raises
    UnresolvedCapability. Lookup failures propagate as CapabilityLookupFailed.
    """
    resolved: List[CapabilityValue] = []
    seen: set[CapabilityRef] = set()
    for comp in instance.mapping.components_by_node.get(node, []):
        for cons in comp.consumes:
            if cons in seen:
                continue
            value = registry.find(environment, cons)
            if value is None:
                raise UnresolvedCapability(comp.ref, node, cons.ref)
            seen.add(cons)
            resolved.append(value)
    log.debug("resolved %d capabilities for node %s", len(resolved), node)
    return resolved


def produced_capabilities(instance: ApplicationInstance, node: str) -> List[CapabilityRef]:
    """Capabilities produced by the components of instance on node."""
    out: List[CapabilityRef] = []
    for comp in instance.mapping.components_by_node.get(node, []):
        for prod in comp.produces:
            if prod not in out:
                out.append(prod)
    return out
