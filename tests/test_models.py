"""Tests for the entity graph and diagram records."""

import pytest

from modelview_core import (
    Association, Attribute, DiagramNode, EntityGraph, LayoutMode, Model,
    ModelClass, Side, make_class_id,
)
from modelview_core.models import is_within, normalize_path, parent_path

from conftest import add_class


def test_path_helpers():
    assert normalize_path(None) == ""
    assert normalize_path("/Domain/Orders/") == "Domain/Orders"
    assert parent_path("") is None
    assert parent_path("Domain") == ""
    assert parent_path("Domain/Orders") == "Domain"


def test_is_within_respects_segment_boundaries():
    assert is_within("Domain/Orders", "Domain")
    assert is_within("Domain", "Domain")
    assert is_within("UI", "")
    assert not is_within("Domain2", "Domain")
    assert not is_within("Domain", "Domain/Orders")


def test_make_class_id_is_stable():
    first = make_class_id("Domain", "Customer")
    assert first == make_class_id("Domain", "Customer")
    assert first.startswith("c_")
    assert first != make_class_id("UI", "Customer")


def test_add_model_creates_ancestors():
    graph = EntityGraph()
    graph.add_model("A/B/C")

    assert set(graph.models) == {"", "A", "A/B", "A/B/C"}
    assert graph.models[""].name == "Root"
    assert graph.models["A"].submodels == ["A/B"]
    assert graph.models["A/B"].submodels == ["A/B/C"]
    assert graph.models["A/B/C"].name == "C"


def test_add_class_registers_in_home_model(empty_graph):
    cls = add_class(empty_graph, "Domain", "Customer")
    assert empty_graph.models["Domain"].classes == [cls.id]
    assert empty_graph.get_class(cls.id) is cls
    assert cls.fqn == "Domain/Customer"


def test_root_class_fqn(empty_graph):
    cls = add_class(empty_graph, "", "Thing")
    assert cls.fqn == "/Thing"


def test_duplicate_class_id_rejected(empty_graph):
    add_class(empty_graph, "Domain", "Customer", class_id="c1")
    with pytest.raises(ValueError):
        add_class(empty_graph, "UI", "Other", class_id="c1")


def test_root_path_without_root_model():
    graph = EntityGraph(models={"X": Model(path="X", name="X"), "X/Y": Model(path="X/Y", name="Y")})
    assert graph.root_path() == "X"
    assert EntityGraph().root_path() == ""


def test_association_accepts_legacy_keys():
    assoc = Association.model_validate({"from": "a", "to": "b", "to_multiplicity": "0..*"})
    assert assoc.from_id == "a"
    assert assoc.to_id == "b"
    assert assoc.to_navigable is True
    assert assoc.from_navigable is False

    camel = Association.model_validate({"fromId": "x", "toId": "y"})
    assert (camel.from_id, camel.to_id) == ("x", "y")


def test_from_json_dict_accepts_ingestion_layout():
    data = {
        "models": {
            "": {"name": "Root", "submodels": ["Domain"]},
            "Domain": {"name": "Domain"},
        },
        "classes": [
            {"id": "c1", "name": "Customer", "homeModelPath": "Domain", "refs": ["Order"],
             "archetype": "role"},
            {"name": "Order", "homeModelPath": "Domain"},
        ],
        "attributes": {"c1": [{"name": "email", "multiplicity": "0..1", "datatype": "String"}]},
        "associations": [{"from": "c1", "to": make_class_id("Domain", "Order")}],
        "shapes": {"/Domain/": {"c1": {"x": 10, "y": 20, "w": 200, "h": 80}}},
    }

    graph = EntityGraph.from_json_dict(data)

    order_id = make_class_id("Domain", "Order")
    assert set(graph.models) == {"", "Domain"}
    assert graph.models["Domain"].classes == ["c1", order_id]
    customer = graph.classes["c1"]
    assert customer.archetype_tag == "role"
    assert customer.attributes[0].row_text() == "email: String"
    assert graph.associations[0].to_id == order_id
    assert graph.shape_hint("Domain", "c1").w == 200
    assert graph.shape_hint("Domain", order_id) is None


def test_graph_json_roundtrip_keeps_structure(demo_graph):
    restored = EntityGraph.from_json_dict(demo_graph.to_json_dict())
    assert set(restored.models) == set(demo_graph.models)
    assert set(restored.classes) == set(demo_graph.classes)
    for path, model in demo_graph.models.items():
        assert restored.models[path].classes == model.classes


def test_attribute_row_text():
    assert Attribute(name="id").row_text() == "id"
    assert Attribute(name="id", datatype="Integer").row_text() == "id: Integer"


def test_visiting_node_subtitle():
    home = DiagramNode(id="a", name="A", home_model_path="Domain")
    visiting = DiagramNode(id="b", name="B", home_model_path="UI", is_visiting=True)
    from_root = DiagramNode(id="c", name="C", home_model_path="", is_visiting=True)

    assert home.subtitle() == ""
    assert visiting.subtitle() == "(from UI)"
    assert from_root.subtitle() == "(from Root)"


def test_node_geometry_helpers():
    node = DiagramNode(id="a", name="A", x=10, y=20, w=100, h=50)
    assert node.center() == (60, 45)
    assert node.bounds() == (10, 20, 110, 70)
    assert node.contains(10, 20)
    assert not node.contains(111, 20)


def test_layout_mode_cycle():
    assert LayoutMode.FORCE.next() == LayoutMode.GRID
    assert LayoutMode.GRID.next() == LayoutMode.RADIAL
    assert LayoutMode.RADIAL.next() == LayoutMode.LAYERED
    assert LayoutMode.LAYERED.next() == LayoutMode.FORCE


def test_side_normals():
    assert Side.LEFT.normal == (-1.0, 0.0)
    assert Side.BOTTOM.normal == (0.0, 1.0)
    assert Side.RIGHT.is_horizontal
    assert not Side.TOP.is_horizontal


def test_model_class_defaults():
    cls = ModelClass(id="x", name="X")
    assert cls.home_model_path == ""
    assert cls.refs == []
    assert cls.archetype_tag is None
