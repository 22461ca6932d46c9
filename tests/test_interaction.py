"""Tests for the pointer state machine: drag, pan, wheel and expand/collapse."""

import pytest

from modelview_core import InteractionMode, apply_pointer_delta, content_to_screen
from modelview_core.interaction import hit_test

from conftest import assert_no_overlaps, make_node

ORDERS = "Domain/Orders"


def _on_border(node, point, tol=1e-6):
    x, y = point
    inside = node.x - tol <= x <= node.right + tol and node.y - tol <= y <= node.bottom + tol
    on_edge = min(abs(x - node.x), abs(x - node.right), abs(y - node.y), abs(y - node.bottom)) <= tol
    return inside and on_edge


def _node_named(diagram, name):
    return next(n for n in diagram.nodes if n.name == name)


def test_apply_pointer_delta():
    assert apply_pointer_delta((10, 5), (110, 55)) == (100, 50)


def test_hit_test_prefers_topmost():
    bottom = make_node("bottom", x=0, y=0)
    top = make_node("top", x=50, y=10)
    assert hit_test([bottom, top], 60, 20).id == "top"
    assert hit_test([bottom, top], 5, 5).id == "bottom"
    assert hit_test([bottom, top], 1000, 1000) is None


def test_drag_moves_node_and_commits_on_release(session):
    diagram = session.select_model(ORDERS)
    controller = session.interaction(ORDERS)
    node = _node_named(diagram, "Order")
    start_x, start_y = node.x, node.y
    sx, sy = content_to_screen(diagram.view, *node.center())

    assert controller.pointer_down(sx, sy) == InteractionMode.DRAGGING_NODE
    assert controller.dragging_node_id == node.id

    controller.pointer_move(sx + 30, sy + 15)
    scale = diagram.view.scale
    assert node.x == pytest.approx(start_x + 30 / scale)
    assert node.y == pytest.approx(start_y + 15 / scale)

    assert controller.pointer_up(sx + 60, sy + 30) == InteractionMode.DRAGGING_NODE
    assert controller.mode == InteractionMode.IDLE
    assert node.x == pytest.approx(start_x + 60 / scale)

    remembered = session.remembered_layout(ORDERS)[node.id]
    assert (remembered.x, remembered.y) == pytest.approx((node.x, node.y))


def test_drag_reroutes_edges(session):
    diagram = session.select_model(ORDERS)
    controller = session.interaction(ORDERS)
    node = _node_named(diagram, "Order")
    sx, sy = content_to_screen(diagram.view, *node.center())

    controller.pointer_down(sx, sy)
    controller.pointer_move(sx + 200, sy - 150)

    for edge in diagram.edges:
        if edge.source == node.id:
            assert _on_border(node, edge.points[0])
        if edge.target == node.id:
            assert _on_border(node, edge.points[-1])


def test_background_drag_pans(session):
    diagram = session.select_model(ORDERS)
    controller = session.interaction(ORDERS)
    view = diagram.view
    pan_before = (view.pan_x, view.pan_y)
    positions = [(n.x, n.y) for n in diagram.nodes]
    sx, sy = content_to_screen(view, 1, 1)

    assert controller.pointer_down(sx, sy) == InteractionMode.PANNING
    controller.pointer_move(sx + 10, sy + 10)
    controller.pointer_move(sx + 30, sy + 40)
    assert controller.pointer_up(sx + 30, sy + 40) == InteractionMode.PANNING

    assert (view.pan_x, view.pan_y) == pytest.approx((pan_before[0] + 30, pan_before[1] + 40))
    assert [(n.x, n.y) for n in diagram.nodes] == positions
    assert controller.mode == InteractionMode.IDLE


def test_move_without_press_does_nothing(session):
    session.select_model(ORDERS)
    assert session.interaction(ORDERS).pointer_move(10, 10) is False


def test_wheel_zooms_one_step(session):
    diagram = session.select_model(ORDERS)
    controller = session.interaction(ORDERS)
    scale = diagram.view.scale

    controller.wheel(100, 100, -1)
    assert diagram.view.scale == pytest.approx(scale * 1.1)
    controller.wheel(100, 100, 1)
    assert diagram.view.scale == pytest.approx(scale)


def test_toggle_expand_resizes_and_reroutes(session):
    diagram = session.select_model(ORDERS)
    node = _node_named(diagram, "Order")
    collapsed_height = node.h

    assert session.toggle_expanded(ORDERS, node.id) is True
    assert node.expanded
    assert node.h == collapsed_height + 2 * session.settings.layout.attribute_row_height
    assert node.id in session.expanded_ids(ORDERS)
    assert_no_overlaps(diagram.nodes)
    for edge in diagram.edges:
        if edge.source == node.id:
            assert _on_border(node, edge.points[0])

    assert session.toggle_expanded(ORDERS, node.id) is False
    assert node.h == collapsed_height
    assert node.id not in session.expanded_ids(ORDERS)


def test_expanded_state_survives_reselection(session):
    diagram = session.select_model(ORDERS)
    node = _node_named(diagram, "Order")
    session.toggle_expanded(ORDERS, node.id)

    session.select_model("UI")
    again = _node_named(session.select_model(ORDERS), "Order")
    assert again.expanded


def test_toggle_unknown_class(session):
    session.select_model(ORDERS)
    assert session.toggle_expanded(ORDERS, "nope") is None
