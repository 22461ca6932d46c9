"""Tests for model selection, per-path caches and view state handling."""

import json

import pytest

from modelview_core import (
    Association, DiagramSession, EntityGraph, FitState, Geometry, LayoutMode,
    content_bounds, content_to_screen,
)

from conftest import add_class, assert_no_overlaps

ORDERS = "Domain/Orders"


def _names(diagram, visiting=None):
    return sorted(n.name for n in diagram.nodes if visiting is None or n.is_visiting == visiting)


def test_model_tree(session):
    tree = session.model_tree()
    assert tree["name"] == "Root"
    assert [child["path"] for child in tree["submodels"]] == ["Domain", "UI"]
    domain = tree["submodels"][0]
    assert domain["class_count"] == 1
    assert domain["submodels"][0]["path"] == ORDERS
    assert domain["submodels"][0]["class_count"] == 2
    assert session.model_tree("Missing") is None


def test_visiting_classes_from_references(session):
    diagram = session.select_model(ORDERS)

    assert _names(diagram, visiting=False) == ["Order", "OrderLine"]
    assert _names(diagram, visiting=True) == ["OrderView"]
    view_node = next(n for n in diagram.nodes if n.name == "OrderView")
    assert view_node.subtitle() == "(from UI)"
    assert len(diagram.edges) == 2


def test_descendant_classes_are_not_visiting(session):
    diagram = session.select_model("Domain")
    assert _names(diagram) == ["Customer", "Order"]
    assert not any(n.is_visiting for n in diagram.nodes)
    assert len(diagram.edges) == 1


def test_archetypes_assigned(session):
    diagram = session.select_model(ORDERS)
    by_name = {n.name: n.archetype.value for n in diagram.nodes}
    assert by_name["Order"] == "moment"
    assert by_name["OrderLine"] == "moment"


def test_empty_model_renders_empty_diagram(session):
    diagram = session.select_model("")
    assert diagram.nodes == []
    assert diagram.edges == []
    assert diagram.view.scale == 1
    assert diagram.view.fit_state == FitState.FITTED


def test_unknown_model(session):
    assert session.select_model("Nope") is None
    assert session.relayout("Nope") is None
    assert session.fit_view("Nope") is None


def test_first_render_fits_view(session):
    diagram = session.select_model(ORDERS)
    view = diagram.view
    bounds = content_bounds(diagram.nodes)
    width, height = session.viewport_size
    padding = session.settings.viewport.fit_padding

    assert view.fit_state == FitState.FITTED
    assert content_to_screen(view, bounds.x, bounds.y) == pytest.approx((padding, padding))
    right, bottom = content_to_screen(view, bounds.x + bounds.width, bounds.y + bounds.height)
    assert right <= width - padding + 1e-6
    assert bottom <= height - padding + 1e-6


def test_view_is_reused_on_reselection(session):
    session.select_model(ORDERS)
    session.pan(ORDERS, 40, -20)
    view = session.view_state(ORDERS)
    pan = (view.pan_x, view.pan_y, view.scale)

    session.select_model("UI")
    again = session.select_model(ORDERS)
    assert again.view is view
    assert (view.pan_x, view.pan_y, view.scale) == pan


def test_reset_view_refits_on_next_render(session):
    fitted = session.select_model(ORDERS).view.model_copy()
    session.pan(ORDERS, 100, 100)

    view = session.reset_view(ORDERS)
    assert view.fit_state == FitState.RESET
    assert (view.pan_x, view.pan_y, view.scale) == (0, 0, 1)

    diagram = session.get_diagram(ORDERS)
    assert diagram.view.fit_state == FitState.FITTED
    assert diagram.view.scale == pytest.approx(fitted.scale)
    assert diagram.view.pan_x == pytest.approx(fitted.pan_x)


def test_layout_carried_across_selections(session):
    first = session.select_model(ORDERS)
    positions = {n.id: (n.x, n.y) for n in first.nodes}

    session.select_model("UI")
    second = session.select_model(ORDERS)
    for node in second.nodes:
        assert (node.x, node.y) == pytest.approx(positions[node.id])


def test_shared_class_positions_are_per_model(session):
    orders = session.select_model(ORDERS)
    ui = session.select_model("UI")
    shared = next(n for n in ui.nodes if n.name == "Order")
    assert shared.is_visiting
    assert shared is not next(n for n in orders.nodes if n.name == "Order")


def test_relayout_cycles_modes(session):
    session.select_model(ORDERS)
    seen = []
    for _ in range(4):
        diagram = session.relayout(ORDERS)
        seen.append(diagram.layout_mode)
        assert_no_overlaps(diagram.nodes)
        assert diagram.view.fit_state == FitState.FITTED
    assert seen == [LayoutMode.GRID, LayoutMode.RADIAL, LayoutMode.LAYERED, LayoutMode.FORCE]


def test_relayout_mode_is_remembered(session):
    session.select_model(ORDERS)
    session.relayout(ORDERS, LayoutMode.LAYERED)
    session.select_model("UI")
    assert session.select_model(ORDERS).layout_mode == LayoutMode.LAYERED


@pytest.mark.parametrize("path", ["", "Domain", ORDERS, "UI"])
def test_demo_diagrams_have_no_overlaps(session, path):
    diagram = session.select_model(path)
    assert_no_overlaps(diagram.nodes)
    margin = session.settings.layout.fit_margin
    if diagram.nodes:
        bounds = content_bounds(diagram.nodes)
        assert (bounds.x, bounds.y) == pytest.approx((margin, margin))
        assert diagram.surface_width == pytest.approx(bounds.width + 2 * margin)


def test_forget_layout_lays_out_afresh(session):
    session.select_model(ORDERS)
    session.relayout(ORDERS, LayoutMode.GRID)
    session.forget_layout(ORDERS)
    assert session.remembered_layout(ORDERS) == {}
    assert session.select_model(ORDERS).nodes


def test_change_callbacks(session):
    changes = []
    session.on_change(changes.append)
    session.select_model(ORDERS)
    session.pan(ORDERS, 1, 1)
    assert changes == [ORDERS, ORDERS]


def test_load_graph_drops_caches(session):
    session.select_model(ORDERS)
    session.load_graph(EntityGraph())
    assert session.remembered_layout(ORDERS) == {}
    assert session.current_path is None
    assert session.select_model(ORDERS) is None


def test_sessions_are_independent(demo_graph):
    first = DiagramSession(demo_graph)
    second = DiagramSession(demo_graph)
    first.select_model(ORDERS)
    first.pan(ORDERS, 50, 50)
    assert second.view_state(ORDERS).fit_state == FitState.PENDING
    assert second.remembered_layout(ORDERS) == {}


def test_shape_hints_seed_positions():
    graph = EntityGraph()
    graph.add_model("", "Root")
    add_class(graph, "M", "Alpha", class_id="a")
    add_class(graph, "M", "Beta", class_id="b")
    graph.shapes["M"] = {
        "a": Geometry(x=100, y=100, w=240, h=90),
        "b": Geometry(x=500, y=100, w=100, h=40),
    }
    diagram = DiagramSession(graph).select_model("M")
    a, b = diagram.get_node("a"), diagram.get_node("b")

    assert (a.x, a.y) == pytest.approx((24, 24))
    assert (b.x, b.y) == pytest.approx((424, 24))
    assert (a.w, a.h) == (240, 90)
    assert (b.w, b.h) == (180, 60)


def test_overlapping_shape_hints_are_separated():
    graph = EntityGraph()
    graph.add_model("", "Root")
    add_class(graph, "M", "Alpha", class_id="a")
    add_class(graph, "M", "Beta", class_id="b")
    graph.shapes["M"] = {
        "a": Geometry(x=0, y=0, w=100, h=40),
        "b": Geometry(x=110, y=0, w=100, h=40),
    }
    session = DiagramSession(graph)
    diagram = session.select_model("M")

    assert (diagram.get_node("a").w, diagram.get_node("b").w) == (180, 180)
    assert_no_overlaps(diagram.nodes)
    bounds = content_bounds(diagram.nodes)
    margin = session.settings.layout.fit_margin
    assert (bounds.x, bounds.y) == pytest.approx((margin, margin))


def test_associations_drive_visiting_classes():
    graph = EntityGraph()
    graph.add_model("", "Root")
    add_class(graph, "A", "Invoice", ["B/Customer"], class_id="inv")
    add_class(graph, "B", "Customer", class_id="cust")
    add_class(graph, "C", "Product", class_id="prod")
    graph.associations = [Association(id="x", from_id="inv", to_id="prod", to_multiplicity="1..*")]

    diagram = DiagramSession(graph).select_model("A")
    assert {n.id for n in diagram.nodes} == {"inv", "prod"}
    assert [e.id for e in diagram.edges] == ["x"]
    assert diagram.edges[0].target_label.text == "1..*"


def test_self_association_is_drawn_as_loop():
    graph = EntityGraph()
    graph.add_model("", "Root")
    add_class(graph, "M", "Employee", class_id="emp")
    graph.associations = [Association(id="manager", from_id="emp", to_id="emp", to_multiplicity="0..1")]

    diagram = DiagramSession(graph).select_model("M")
    assert [e.id for e in diagram.edges] == ["manager"]
    edge = diagram.edges[0]
    assert (edge.source, edge.target) == ("emp", "emp")
    assert edge.target_label.text == "0..1"
    assert all(a[0] == b[0] or a[1] == b[1] for a, b in zip(edge.points, edge.points[1:]))


def test_self_reference_is_drawn_as_loop():
    graph = EntityGraph()
    graph.add_model("", "Root")
    add_class(graph, "M", "Employee", ["Employee"], class_id="emp")

    diagram = DiagramSession(graph).select_model("M")
    assert [(e.source, e.target) for e in diagram.edges] == [("emp", "emp")]
    node = diagram.get_node("emp")
    assert diagram.edges[0].points[0][0] == pytest.approx(node.right)
    assert diagram.edges[0].points[-1][1] == pytest.approx(node.y)


def test_open_graph(tmp_path, demo_graph):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(demo_graph.to_json_dict()), encoding="utf-8")

    session = DiagramSession()
    graph = session.open_graph(path)
    assert set(graph.classes) == set(demo_graph.classes)
    assert session.get_state()["classes"] == 4

    with pytest.raises(FileNotFoundError):
        session.open_graph(tmp_path / "missing.json")
