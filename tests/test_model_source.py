from __future__ import annotations

import json
from pathlib import Path

import pytest

from app_orchestrator.core.errors import ModelSourceError
from app_orchestrator.core.types import ConsumesClause, ProducesClause
from app_orchestrator.language.expressions import Interpolation, ListExpr, Literal, PairExpr, RefExpr, Variable
from app_orchestrator.model.source import StaticModelSource, expression_from_json, model_from_dict, nodes_from_json

from example_models import lamp_document


def test_static_source_loads_model(tmp_path: Path):
    path = tmp_path / "model.json"
    path.write_text(json.dumps(lamp_document(environment="staging")), encoding="utf-8")

    model = StaticModelSource(path=path).load()

    assert model.environment == "staging"
    assert set(model.component_types) == {"Db", "Web"}
    assert model.component_types["Db"].produces == [ProducesClause(kind="Sql", title=Interpolation("$name"))]
    assert model.component_types["Web"].consumes == [ConsumesClause(kind="Sql", parameter="db")]
    assert model.definitions["Lamp"].body[1].type_name == "Web"
    assert model.instantiations[0].definition_name == "Lamp"
    assert model.instantiations[0].title == Literal("foo")


def test_static_source_rejects_bad_json(tmp_path: Path):
    path = tmp_path / "model.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(ModelSourceError):
        StaticModelSource(path=path).load()


def test_expression_decoding():
    assert expression_from_json(3) == Literal(3)
    assert expression_from_json("plain") == Literal("plain")
    assert expression_from_json("$x") == Interpolation("$x")
    assert expression_from_json({"var": "x"}) == Variable("x")
    assert expression_from_json({"literal": "$x"}) == Literal("$x")
    assert expression_from_json(["a"]) == ListExpr((Literal("a"),))
    assert expression_from_json({"capability": "Sql[$name]"}) == RefExpr(
        kind="Sql", title=Interpolation("$name"), capability=True
    )


def test_expression_decoding_rejects_unknown_objects():
    with pytest.raises(ModelSourceError):
        expression_from_json({"call": "each"})

    with pytest.raises(ModelSourceError):
        expression_from_json({"ref": "no brackets"})


def test_nodes_decoding_treats_strings_as_references():
    expr = nodes_from_json([["Node[n1]", ["Db[a]", "Db[b]"]]])

    assert expr == ListExpr(
        (
            PairExpr(
                RefExpr("Node", Literal("n1")),
                ListExpr((RefExpr("Db", Literal("a")), RefExpr("Db", Literal("b")))),
            ),
        )
    )


def test_nodes_decoding_rejects_bad_pairs():
    with pytest.raises(ModelSourceError):
        nodes_from_json([["Node[n1]"]])

    with pytest.raises(ModelSourceError):
        nodes_from_json("Node[n1]")


def test_malformed_document():
    with pytest.raises(ModelSourceError):
        model_from_dict({"instances": [{"title": "missing application"}]})

    with pytest.raises(ModelSourceError):
        model_from_dict([])  # type: ignore[arg-type]
