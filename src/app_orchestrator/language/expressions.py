"""
Expression model.

The model extractor hands us expressions it has already parsed but not
evaluated, for example the title of a produces clause which depends on the
parameters of the component that declares it.

Each variant is a frozen dataclass. evaluate dispatches on the variant with an
explicit isinstance chain; there is no reflective dispatch.

Variants
Literal        a constant value
Variable       $name
Interpolation  "db-${name}" string templates
ListExpr       [a, b]
PairExpr       a => b, used by node mappings
RefExpr        Kind[title], a resource or capability reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from string import Template
from typing import Any, List, Tuple, Union

from app_orchestrator.core.errors import InvalidExpression, UndefinedVariable
from app_orchestrator.core.types import CapabilityRef, Ref
from app_orchestrator.language.scope import Scope


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Variable:
    name: str


@dataclass(frozen=True)
class Interpolation:
    """String template using $name or ${name} placeholders."""

    template: str


@dataclass(frozen=True)
class ListExpr:
    items: Tuple["Expression", ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PairExpr:
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class RefExpr:
    """
    Kind[title]

    With capability set the result is a CapabilityRef, otherwise a Ref.
    """

    kind: str
    title: "Expression"
    capability: bool = False


Expression = Union[Literal, Variable, Interpolation, ListExpr, PairExpr, RefExpr]


def evaluate(expr: Expression, scope: Scope) -> Any:
    """Evaluate an expression against scope."""
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, Variable):
        return scope.lookup(expr.name)
    if isinstance(expr, Interpolation):
        return _interpolate(expr.template, scope)
    if isinstance(expr, ListExpr):
        return [evaluate(item, scope) for item in expr.items]
    if isinstance(expr, PairExpr):
        return (evaluate(expr.left, scope), evaluate(expr.right, scope))
    if isinstance(expr, RefExpr):
        title = evaluate(expr.title, scope)
        if expr.capability:
            return CapabilityRef(kind=expr.kind, name=str(title))
        return Ref(kind=expr.kind, title=str(title))
    raise TypeError(f"unsupported expression {expr!r}")


def evaluate_titles(expr: Expression, scope: Scope) -> List[Any]:
    """Evaluate a title expression and flatten it into a list of titles."""
    return _flatten(evaluate(expr, scope))


def _interpolate(template: str, scope: Scope) -> str:
    try:
        return Template(template).substitute(scope.as_dict())
    except KeyError as exc:
        raise UndefinedVariable(str(exc.args[0])) from exc
    except ValueError as exc:
        raise InvalidExpression(template, str(exc)) from exc


def _flatten(value: Any) -> List[Any]:
    if isinstance(value, list):
        out: List[Any] = []
        for item in value:
            out.extend(_flatten(item))
        return out
    return [value]
