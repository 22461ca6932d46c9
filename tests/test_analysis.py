"""Tests for diagram summaries."""

from modelview_core import DiagramView, find_connected_components, summarize_diagram

from conftest import make_node


def test_summary_of_demo_model(session):
    diagram = session.select_model("Domain/Orders")
    summary = summarize_diagram(diagram)

    assert summary.total_nodes == 3
    assert summary.home_nodes == 2
    assert summary.visiting_nodes == 1
    assert summary.total_edges == 2
    assert summary.connected_components == 1
    assert summary.orphan_count == 0
    assert summary.most_connected_nodes[0].name == "Order"
    assert summary.most_connected_nodes[0].total == 2
    assert sum(summary.nodes_by_archetype.values()) == 3


def test_summary_dict_has_every_archetype(session):
    data = summarize_diagram(session.select_model("")).to_dict()
    assert data["total_nodes"] == 0
    assert data["nodes_by_archetype"] == {"ppt": 0, "role": 0, "desc": 0, "moment": 0}
    assert data["most_connected_nodes"] == []


def test_components_count_orphans():
    diagram = DiagramView(model_path="M", model_name="M",
                          nodes=[make_node("a"), make_node("b"), make_node("c")])
    components = find_connected_components(diagram)
    assert [c.node_ids for c in components] == [["a"], ["b"], ["c"]]
    assert summarize_diagram(diagram).orphan_count == 3
