import copy
import logging

import pytest

from app_orchestrator.compiler import ApplicationCompiler, CompilerConfig, compile_model
from app_orchestrator.core.errors import (
    CycleDetected,
    DuplicateParameter,
    InvalidCapabilityArgument,
    MissingCapabilityArgument,
    MissingNodeMapping,
    MissingParameter,
    MultipleProducers,
    UndefinedApplication,
    UndefinedComponentType,
    UnmappedComponent,
    UnresolvedCapability,
    UnsupportedMultiTitle,
)
from app_orchestrator.core.types import CapabilityRef
from app_orchestrator.model.mapping import ProducerPolicy
from app_orchestrator.model.source import model_from_dict

from example_models import lamp_document


def compile_doc(doc, config=None):
    return compile_model(model_from_dict(doc), config)


def test_end_to_end_producer_node_first():
    result = compile_doc(lamp_document())

    assert result.order == ["n1", "n2"]
    assert result.environment == "production"

    [app] = result.instances
    assert app.ref == "Lamp[foo]"
    assert app.component("Db[foo]").produces == [CapabilityRef("Sql", "foo")]
    assert app.component("Web[foo]").consumes == [CapabilityRef("Sql", "foo")]


def test_parameter_defaults_are_resolved_and_frozen():
    result = compile_doc(lamp_document())
    app = result.instances[0]

    assert dict(app.parameters) == {"dbname": "foo_db"}
    with pytest.raises(TypeError):
        app.parameters["dbname"] = "other"  # type: ignore[index]


def test_supplied_parameter_wins_over_default():
    doc = lamp_document()
    doc["instances"][0]["arguments"]["dbname"] = "custom"

    app = compile_doc(doc).instances[0]

    assert app.parameters["dbname"] == "custom"


def test_produces_clause_sees_component_parameters():
    doc = lamp_document()
    doc["component_types"][0]["produces"] = [{"kind": "Sql", "title": "${name}-${port}"}]
    doc["applications"][0]["components"][1]["arguments"] = {"db": {"capability": "Sql[${name}-5432]"}}

    result = compile_doc(doc)

    assert result.instances[0].component("Db[foo]").produces == [CapabilityRef("Sql", "foo-5432")]
    assert result.order == ["n1", "n2"]


def test_application_parameters_are_visible_in_body():
    doc = lamp_document()
    doc["applications"][0]["components"][0]["title"] = "$dbname"
    doc["instances"][0]["arguments"]["nodes"] = [["Node[n1]", "Db[foo_db]"], ["Node[n2]", "Web[foo]"]]
    doc["applications"][0]["components"][1]["arguments"] = {"db": {"capability": "Sql[$dbname]"}}

    result = compile_doc(doc)

    assert result.instances[0].component("Db[foo_db]").produces == [CapabilityRef("Sql", "foo_db")]


def test_components_are_sealed_after_compile():
    app = compile_doc(lamp_document()).instances[0]

    assert all(c.sealed for c in app.mapping.components)


def test_undefined_application():
    doc = lamp_document()
    doc["instances"][0]["application"] = "Nope"

    with pytest.raises(UndefinedApplication):
        compile_doc(doc)


def test_multi_title_instantiation_is_rejected():
    doc = lamp_document()
    doc["instances"][0]["title"] = ["a", "b"]

    with pytest.raises(UnsupportedMultiTitle):
        compile_doc(doc)


def test_single_element_title_list_is_accepted():
    doc = lamp_document()
    doc["instances"][0]["title"] = ["foo"]

    assert compile_doc(doc).instances[0].title == "foo"


def test_multi_title_component_is_rejected():
    doc = lamp_document()
    doc["applications"][0]["components"][0]["title"] = ["x", "y"]

    with pytest.raises(UnsupportedMultiTitle):
        compile_doc(doc)


def test_missing_node_mapping_comes_before_anything_else():
    doc = lamp_document()
    doc["instances"][0]["arguments"] = {}
    # Would fail with UndefinedComponentType if components were evaluated.
    doc["component_types"] = []

    with pytest.raises(MissingNodeMapping) as exc:
        compile_doc(doc)

    assert exc.value.application == "Lamp[foo]"


def test_duplicate_instantiation_argument():
    doc = lamp_document()
    nodes = doc["instances"][0]["arguments"]["nodes"]
    doc["instances"][0]["arguments"] = [["nodes", nodes], ["dbname", "a"], ["dbname", "b"]]

    with pytest.raises(DuplicateParameter) as exc:
        compile_doc(doc)

    assert exc.value.name == "dbname"


def test_duplicate_component_argument():
    doc = lamp_document()
    doc["applications"][0]["components"][0]["arguments"] = [["port", 1], ["port", 2]]

    with pytest.raises(DuplicateParameter):
        compile_doc(doc)


def test_unmapped_component():
    doc = lamp_document()
    doc["instances"][0]["arguments"]["nodes"] = [["Node[n1]", "Db[foo]"]]

    with pytest.raises(UnmappedComponent) as exc:
        compile_doc(doc)

    assert exc.value.component == "Web[foo]"


def test_undefined_component_type():
    doc = lamp_document()
    doc["applications"][0]["components"][0]["type"] = "Cache"

    with pytest.raises(UndefinedComponentType):
        compile_doc(doc)


def test_missing_capability_argument():
    doc = lamp_document()
    doc["applications"][0]["components"][1].pop("arguments")

    with pytest.raises(MissingCapabilityArgument) as exc:
        compile_doc(doc)

    assert exc.value.parameter == "db"
    assert exc.value.component == "Web[foo]"


def test_consumed_value_must_be_a_capability_of_the_declared_kind():
    doc = lamp_document()
    doc["applications"][0]["components"][1]["arguments"] = {"db": {"capability": "Http[$name]"}}

    with pytest.raises(InvalidCapabilityArgument):
        compile_doc(doc)

    doc["applications"][0]["components"][1]["arguments"] = {"db": "just a string"}
    with pytest.raises(InvalidCapabilityArgument):
        compile_doc(doc)


def test_missing_required_parameter():
    doc = lamp_document()
    doc["applications"][0]["parameters"] = ["owner"]

    with pytest.raises(MissingParameter) as exc:
        compile_doc(doc)

    assert exc.value.name == "owner"


def test_consumed_capability_without_producer():
    doc = lamp_document()
    doc["applications"][0]["components"][1]["arguments"] = {"db": {"capability": "Sql[elsewhere]"}}

    with pytest.raises(UnresolvedCapability) as exc:
        compile_doc(doc)

    assert exc.value.capability == "Sql[elsewhere]"


def test_cycle_between_nodes():
    doc = lamp_document()
    doc["component_types"] = [
        {
            "name": "Svc",
            "parameters": ["peer"],
            "produces": [{"kind": "Http", "title": "$name"}],
            "consumes": [{"kind": "Http", "parameter": "peer"}],
        }
    ]
    doc["applications"][0]["components"] = [
        {"type": "Svc", "title": "a", "arguments": {"peer": {"capability": "Http[b]"}}},
        {"type": "Svc", "title": "b", "arguments": {"peer": {"capability": "Http[a]"}}},
    ]
    doc["instances"][0]["arguments"]["nodes"] = {"Node[A]": "Svc[a]", "Node[B]": "Svc[b]"}

    with pytest.raises(CycleDetected) as exc:
        compile_doc(doc)

    assert set(exc.value.remaining) == {"A", "B"}


def test_strict_producer_policy():
    doc = lamp_document()
    doc["component_types"].append({"name": "Replica", "produces": [{"kind": "Sql", "title": "foo"}]})
    doc["applications"][0]["components"].insert(1, {"type": "Replica", "title": "r1"})
    doc["instances"][0]["arguments"]["nodes"].append(["Node[n3]", "Replica[r1]"])

    assert compile_doc(copy.deepcopy(doc)).order == ["n3", "n1", "n2"]
    with pytest.raises(MultipleProducers):
        compile_doc(doc, CompilerConfig(producer_policy=ProducerPolicy.strict))


def test_two_instances_of_one_application():
    doc = lamp_document()
    doc["instances"].append(
        {
            "application": "Lamp",
            "title": "bar",
            "arguments": {"nodes": [["Node[m1]", "Db[bar]"], ["Node[m2]", "Web[bar]"]]},
        }
    )

    result = compile_doc(doc)
    pos = {n: i for i, n in enumerate(result.order)}

    assert [a.ref for a in result.instances] == ["Lamp[foo]", "Lamp[bar]"]
    assert pos["n1"] < pos["n2"]
    assert pos["m1"] < pos["m2"]


def test_mapped_but_undeclared_component_is_logged(caplog):
    doc = lamp_document()
    doc["instances"][0]["arguments"]["nodes"].append(["Node[n3]", "Cache[foo]"])

    with caplog.at_level(logging.WARNING, logger="app_orchestrator.compiler"):
        result = compile_doc(doc)

    assert "Cache[foo]" in caplog.text
    assert "n3" in result.order


def test_compiler_runs_are_independent():
    compiler = ApplicationCompiler(model_from_dict(lamp_document()))

    first = compiler.compile()
    second = compiler.compile()

    assert len(first) == 1 and len(second) == 1
    assert first[0] is not second[0]
