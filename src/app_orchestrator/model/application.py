"""
Application instance.

One instantiation of an application definition. It owns the component mapping
built from the nodes argument and the resolved parameters of the instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from app_orchestrator.core.errors import MissingNodeMapping
from app_orchestrator.core.types import Component
from app_orchestrator.model.mapping import ComponentMapping

NODES_ARGUMENT = "nodes"

ParameterResolver = Callable[[Dict[str, Any]], Dict[str, Any]]


@dataclass(frozen=True, eq=False)
class ApplicationInstance:
    """
    kind and title identify the instance, as in Lamp[prod].

    parameters is read only once the instance exists.
    mapping is owned by this instance alone.
    """

    kind: str
    title: str
    parameters: Mapping[str, Any]
    mapping: ComponentMapping

    @classmethod
    def build(
        cls,
        kind: str,
        title: str,
        arguments: Mapping[str, Any],
        resolve_parameters: Optional[ParameterResolver] = None,
    ) -> "ApplicationInstance":
        """
        Build an instance from evaluated instantiation arguments.

        The nodes argument is required and is checked before anything else.
        The remaining arguments are the supplied parameters. resolve_parameters,
        when given, receives them and returns the final parameter values with
        defaults filled in.
        """
        ref = f"{kind}[{title}]"
        if NODES_ARGUMENT not in arguments or arguments[NODES_ARGUMENT] is None:
            raise MissingNodeMapping(ref)

        mapping = ComponentMapping.from_pairs(arguments[NODES_ARGUMENT])
        supplied = {k: v for k, v in arguments.items() if k != NODES_ARGUMENT}
        resolved = resolve_parameters(supplied) if resolve_parameters is not None else supplied

        return cls(kind=kind, title=title, parameters=MappingProxyType(dict(resolved)), mapping=mapping)

    @property
    def ref(self) -> str:
        return f"{self.kind}[{self.title}]"

    def component(self, ref: str) -> Optional[Component]:
        """Return the mapped component with this ref, or None."""
        return self.mapping.component(ref)

    def seal(self) -> None:
        """Freeze every component of the instance."""
        for comp in self.mapping.components:
            comp.seal()

    def __str__(self) -> str:
        return self.ref
