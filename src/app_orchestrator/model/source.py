"""
Model sources.

Goal
Provide pluggable model ingestion. Parsing the configuration language is not
our job; a model source hands the compiler an already parsed ApplicationModel.

StaticModelSource reads the model from a local json file. This is useful for
dev, tests, and for feeding models exported by an external parser.

Schema example
{
  "environment": "production",
  "component_types": [
    {"name": "Db", "produces": [{"kind": "Sql", "title": "$name"}]},
    {"name": "Web", "consumes": [{"kind": "Sql", "parameter": "db"}]}
  ],
  "applications": [
    {
      "name": "Lamp",
      "parameters": [{"name": "port", "default": 5432}],
      "components": [
        {"type": "Db", "title": "$name"},
        {"type": "Web", "title": "$name", "arguments": {"db": {"capability": "Sql[$name]"}}}
      ]
    }
  ],
  "instances": [
    {
      "application": "Lamp",
      "title": "prod",
      "arguments": {"nodes": [["Node[n1]", "Db[prod]"], ["Node[n2]", ["Web[prod]"]]]}
    }
  ]
}

Value encoding
A string containing $ is an interpolation, any other scalar is a literal.
A list is a list expression. An object with a single key is one of
{"var": name}, {"ref": "Kind[title]"}, {"capability": "Kind[title]"} or
{"literal": value}. Inside the nodes argument, strings are references.

Arguments may be an object or a list of [name, value] pairs. The pair form
keeps repeated names so the compiler can reject them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Protocol, Tuple

from app_orchestrator.core.errors import InvalidReference, ModelSourceError
from app_orchestrator.core.types import (
    ApplicationDefinition,
    ApplicationInstantiation,
    ApplicationModel,
    Arguments,
    ComponentDeclaration,
    ComponentType,
    ConsumesClause,
    Parameter,
    ProducesClause,
    Ref,
)
from app_orchestrator.language.expressions import (
    Expression,
    Interpolation,
    ListExpr,
    Literal,
    PairExpr,
    RefExpr,
    Variable,
)
from app_orchestrator.model.application import NODES_ARGUMENT


class ModelSource(Protocol):
    """
    Model source interface.

    load returns a fully parsed ApplicationModel.
    """

    def load(self) -> ApplicationModel:
        """Load the application model."""


def expression_from_json(raw: Any) -> Expression:
    """Decode one json value into an expression."""
    if isinstance(raw, str):
        return Interpolation(raw) if "$" in raw else Literal(raw)
    if raw is None or isinstance(raw, (bool, int, float)):
        return Literal(raw)
    if isinstance(raw, list):
        return ListExpr(tuple(expression_from_json(x) for x in raw))
    if isinstance(raw, dict) and len(raw) == 1:
        key, value = next(iter(raw.items()))
        if key == "var":
            return Variable(str(value))
        if key == "literal":
            return Literal(value)
        if key in ("ref", "capability"):
            return _ref_expression(str(value), capability=key == "capability")
    raise ModelSourceError(f"can not decode expression {raw!r}")


def _ref_expression(text: str, capability: bool = False) -> RefExpr:
    try:
        ref = Ref.parse(text)
    except InvalidReference as exc:
        raise ModelSourceError(str(exc)) from exc
    return RefExpr(kind=ref.kind, title=expression_from_json(ref.title), capability=capability)


def _node_side(raw: Any) -> Expression:
    if isinstance(raw, str):
        return _ref_expression(raw)
    if isinstance(raw, list):
        return ListExpr(tuple(_node_side(x) for x in raw))
    return expression_from_json(raw)


def nodes_from_json(raw: Any) -> Expression:
    """
    Decode the nodes argument.

    Accepts a list of [left, right] pairs or an object of left to right.
    """
    if isinstance(raw, dict):
        pairs: List[Any] = [[k, v] for k, v in raw.items()]
    elif isinstance(raw, list):
        pairs = raw
    else:
        raise ModelSourceError(f"nodes must be a list of pairs or an object, got {raw!r}")

    out: List[Expression] = []
    for pair in pairs:
        if not isinstance(pair, list) or len(pair) != 2:
            raise ModelSourceError(f"nodes entry must be a [left, right] pair, got {pair!r}")
        out.append(PairExpr(_node_side(pair[0]), _node_side(pair[1])))
    return ListExpr(tuple(out))


def _arguments_from_json(raw: Any) -> Arguments:
    if raw is None:
        return []
    items: List[Tuple[str, Any]]
    if isinstance(raw, dict):
        items = list(raw.items())
    elif isinstance(raw, list):
        items = []
        for pair in raw:
            if not isinstance(pair, list) or len(pair) != 2:
                raise ModelSourceError(f"argument must be a [name, value] pair, got {pair!r}")
            items.append((str(pair[0]), pair[1]))
    else:
        raise ModelSourceError(f"arguments must be an object or a list of pairs, got {raw!r}")

    args: Arguments = []
    for name, value in items:
        expr = nodes_from_json(value) if name == NODES_ARGUMENT else expression_from_json(value)
        args.append((str(name), expr))
    return args


def _parameters_from_json(raw: Any) -> List[Parameter]:
    params: List[Parameter] = []
    for obj in raw or []:
        if isinstance(obj, str):
            params.append(Parameter(name=obj))
        elif isinstance(obj, dict) and "name" in obj:
            default = expression_from_json(obj["default"]) if "default" in obj else None
            params.append(Parameter(name=str(obj["name"]), default=default))
        else:
            raise ModelSourceError(f"bad parameter {obj!r}")
    return params


def _component_type_from_dict(obj: Dict[str, Any]) -> ComponentType:
    return ComponentType(
        name=str(obj["name"]),
        parameters=_parameters_from_json(obj.get("parameters")),
        produces=[
            ProducesClause(kind=str(p["kind"]), title=expression_from_json(p.get("title", "$name")))
            for p in obj.get("produces", []) or []
        ],
        consumes=[
            ConsumesClause(kind=str(c["kind"]), parameter=str(c["parameter"]))
            for c in obj.get("consumes", []) or []
        ],
    )


def _definition_from_dict(obj: Dict[str, Any]) -> ApplicationDefinition:
    body = [
        ComponentDeclaration(
            type_name=str(c["type"]),
            title=expression_from_json(c.get("title", "$name")),
            arguments=_arguments_from_json(c.get("arguments")),
        )
        for c in obj.get("components", []) or []
    ]
    return ApplicationDefinition(
        name=str(obj["name"]),
        parameters=_parameters_from_json(obj.get("parameters")),
        body=body,
    )


def _instantiation_from_dict(obj: Dict[str, Any]) -> ApplicationInstantiation:
    return ApplicationInstantiation(
        definition_name=str(obj["application"]),
        title=expression_from_json(obj["title"]),
        arguments=_arguments_from_json(obj.get("arguments")),
    )


def model_from_dict(data: Dict[str, Any]) -> ApplicationModel:
    """Convert a decoded json document into an ApplicationModel."""
    if not isinstance(data, dict):
        raise ModelSourceError("model document must be a json object")

    try:
        model = ApplicationModel(environment=str(data.get("environment", "production")))
        for obj in data.get("component_types", []) or []:
            ctype = _component_type_from_dict(obj)
            model.component_types[ctype.name] = ctype
        for obj in data.get("applications", []) or []:
            definition = _definition_from_dict(obj)
            model.definitions[definition.name] = definition
        for obj in data.get("instances", []) or []:
            model.instantiations.append(_instantiation_from_dict(obj))
    except (KeyError, TypeError, AttributeError) as exc:
        raise ModelSourceError(f"malformed model document: {exc!r}") from exc

    return model


@dataclass(frozen=True)
class StaticModelSource(ModelSource):
    """Load an application model from a local json file."""

    path: Path

    def load(self) -> ApplicationModel:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ModelSourceError(f"{self.path}: {exc}") from exc
        return model_from_dict(data)
