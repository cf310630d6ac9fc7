"""
Application compiler.

Purpose
Turn a parsed application model into ApplicationInstance objects whose
components know which capabilities they produce and consume, then fold them
into a NodeGraph and compute the deployment order.

Flow per instantiation
1. Look up the application definition.
2. Reduce the title to exactly one string.
3. Evaluate the arguments inside a scope frame where name is the title.
4. Build the instance. The nodes argument is checked first, then parameter
   defaults are filled in and bound in scope.
5. Walk the body declaration by declaration. Each declaration gets its own
   scope frame with the component parameters bound, and its produces and
   consumes clauses are appended to the mapped component.
6. Seal the components and keep the instance.

No declaration is visited twice and nothing survives between compile runs
except what the compiler returns. Any error aborts the whole compile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app_orchestrator.core.errors import (
    DuplicateParameter,
    InvalidCapabilityArgument,
    MissingCapabilityArgument,
    MissingParameter,
    UndefinedApplication,
    UndefinedComponentType,
    UnmappedComponent,
    UnsupportedMultiTitle,
)
from app_orchestrator.core.types import (
    ApplicationDefinition,
    ApplicationInstantiation,
    ApplicationModel,
    Arguments,
    CapabilityRef,
    ComponentDeclaration,
    ComponentType,
    Parameter,
)
from app_orchestrator.language.expressions import Expression, evaluate, evaluate_titles
from app_orchestrator.language.scope import Scope
from app_orchestrator.model.application import ApplicationInstance
from app_orchestrator.model.mapping import ProducerPolicy
from app_orchestrator.topology.graph import NodeGraph, build_node_graph

log = logging.getLogger("app_orchestrator.compiler")


@dataclass(frozen=True)
class CompilerConfig:
    """
    Compiler configuration.

    producer_policy
    How to treat a capability produced by more than one component.

    environment
    Name of the environment being compiled. Used in reports and registry lookups.
    """

    producer_policy: ProducerPolicy = ProducerPolicy.first_match
    environment: str = "production"


@dataclass(frozen=True)
class CompileResult:
    """
    Output of a full compile.

    instances are in instantiation order.
    graph holds every instance folded in.
    order is graph.order() computed once.
    """

    environment: str
    instances: List[ApplicationInstance]
    graph: NodeGraph
    order: List[str]


class ApplicationCompiler:
    """
    Builds application instances from a parsed model.

    definitions and component_types are read only. The list of built instances
    is the only state, and it belongs to a single compile run.
    """

    def __init__(self, model: ApplicationModel, config: Optional[CompilerConfig] = None) -> None:
        self._model = model
        self._config = config or CompilerConfig(environment=model.environment)
        self.applications: List[ApplicationInstance] = []

    @property
    def config(self) -> CompilerConfig:
        return self._config

    def compile(self) -> List[ApplicationInstance]:
        """Build an instance for every instantiation in the model."""
        self.applications = []
        scope = Scope()
        for inst in self._model.instantiations:
            self.applications.append(self.instantiate(inst, scope))
        log.info("compiled %d application instances", len(self.applications))
        return self.applications

    def instantiate(self, inst: ApplicationInstantiation, scope: Scope) -> ApplicationInstance:
        """Build and expand one application instantiation."""
        definition = self._model.definitions.get(inst.definition_name)
        if definition is None:
            raise UndefinedApplication(inst.definition_name)

        title = _single_title(inst.title, scope, f"application instantiation {inst.definition_name}")
        ref = f"{definition.name}[{title}]"

        with scope.guarded({"name": title}):
            args = _evaluate_arguments(inst.arguments, scope, ref)

            def resolve(supplied: Dict[str, Any]) -> Dict[str, Any]:
                return _resolve_parameters(definition.parameters, supplied, scope, ref)

            instance = ApplicationInstance.build(definition.name, title, args, resolve)
            log.info("expanding %s on nodes %s", instance.ref, instance.mapping.nodes())
            self._expand(definition, instance, scope)

        instance.seal()
        return instance

    def _expand(self, definition: ApplicationDefinition, instance: ApplicationInstance, scope: Scope) -> None:
        declared: set[str] = set()
        for decl in definition.body:
            declared.add(self._expand_component(decl, instance, scope))

        for comp in instance.mapping.components:
            if comp.ref not in declared:
                log.warning("In %s: component %s is mapped to a node but never declared", instance.ref, comp.ref)

    def _expand_component(self, decl: ComponentDeclaration, instance: ApplicationInstance, scope: Scope) -> str:
        ctype = self._component_type(decl.type_name, instance)
        title = _single_title(decl.title, scope, f"component {decl.type_name} in {instance.ref}")
        ref = f"{ctype.name}[{title}]"

        with scope.guarded({"name": title}):
            args = _evaluate_arguments(decl.arguments, scope, ref)
            consumed = {c.parameter for c in ctype.consumes}
            params = _resolve_parameters(ctype.parameters, args, scope, ref, optional=consumed)

            comp = instance.component(ref)
            if comp is None:
                raise UnmappedComponent(instance.ref, ref)

            for prod in ctype.produces:
                cap = CapabilityRef(kind=prod.kind, name=str(evaluate(prod.title, scope)))
                log.debug("%s produces %s", ref, cap.ref)
                comp.produce(cap)

            for cons in ctype.consumes:
                value = params.get(cons.parameter)
                if value is None:
                    raise MissingCapabilityArgument(instance.ref, ref, cons.parameter)
                comp.consume(_check_capability(value, cons.kind, instance.ref, ref, cons.parameter))
                log.debug("%s consumes %s", ref, value)

        return ref

    def _component_type(self, type_name: str, instance: ApplicationInstance) -> ComponentType:
        ctype = self._model.component_types.get(type_name)
        if ctype is None:
            raise UndefinedComponentType(instance.ref, type_name)
        return ctype


def compile_model(model: ApplicationModel, config: Optional[CompilerConfig] = None) -> CompileResult:
    """
    Compile a model end to end.

    Either every instance compiles, folds into the graph, and orders, or an
    OrchestratorError is raised and nothing is returned.
    """
    compiler = ApplicationCompiler(model, config)
    instances = compiler.compile()
    graph = build_node_graph(instances, compiler.config.producer_policy)
    return CompileResult(
        environment=compiler.config.environment,
        instances=instances,
        graph=graph,
        order=graph.order(),
    )


def _single_title(expr: Expression, scope: Scope, what: str) -> str:
    titles = evaluate_titles(expr, scope)
    if len(titles) != 1:
        raise UnsupportedMultiTitle(what, len(titles))
    return str(titles[0])


def _evaluate_arguments(arguments: Arguments, scope: Scope, owner: str) -> Dict[str, Any]:
    args: Dict[str, Any] = {}
    for name, expr in arguments:
        if name in args:
            raise DuplicateParameter(owner, name)
        args[name] = evaluate(expr, scope)
    return args


def _resolve_parameters(
    declared: List[Parameter],
    supplied: Dict[str, Any],
    scope: Scope,
    owner: str,
    optional: Optional[set[str]] = None,
) -> Dict[str, Any]:
    """
    Fill in defaults for declared parameters and bind all values in scope.

    Defaults are evaluated in declaration order so they can see earlier
    parameters. Supplied values for undeclared names are kept as they are.
    Names in optional may stay unset; consumes clauses report those themselves.
    """
    resolved = dict(supplied)
    for name, value in supplied.items():
        scope[name] = value

    for param in declared:
        if resolved.get(param.name) is not None:
            continue
        if param.default is None:
            if optional and param.name in optional:
                continue
            raise MissingParameter(owner, param.name)
        value = evaluate(param.default, scope)
        if value is None:
            raise MissingParameter(owner, param.name)
        resolved[param.name] = value
        scope[param.name] = value

    return resolved


def _check_capability(value: Any, kind: str, application: str, component: str, parameter: str) -> Any:
    items = value if isinstance(value, list) else [value]
    for item in items:
        if not isinstance(item, CapabilityRef):
            raise InvalidCapabilityArgument(application, component, parameter, f"got {item!r}")
        if item.kind != kind:
            raise InvalidCapabilityArgument(application, component, parameter, f"expected {kind}, got {item.ref}")
    return list(items) if isinstance(value, list) else value
