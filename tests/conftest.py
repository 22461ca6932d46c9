"""Shared fixtures for the model viewer tests."""

import pytest

from modelview_core import (
    DiagramNode, DiagramSession, EntityGraph, ModelClass, build_demo_graph,
)


def make_node(node_id, x=0.0, y=0.0, w=180.0, h=60.0, name=None, **kwargs):
    return DiagramNode(id=node_id, name=name or node_id, x=x, y=y, w=w, h=h, **kwargs)


def add_class(graph, home, name, refs=(), class_id=None, **kwargs):
    return graph.add_class(ModelClass(
        id=class_id or f"{home}:{name}",
        name=name,
        home_model_path=home,
        refs=list(refs),
        **kwargs,
    ))


def boxes_overlap(a, b):
    overlap_x = min(a.right, b.right) - max(a.x, b.x)
    overlap_y = min(a.bottom, b.bottom) - max(a.y, b.y)
    return overlap_x > 1e-9 and overlap_y > 1e-9


def assert_no_overlaps(nodes):
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            assert not boxes_overlap(a, b), f"{a.id} overlaps {b.id}"


@pytest.fixture
def demo_graph():
    return build_demo_graph()


@pytest.fixture
def session(demo_graph):
    return DiagramSession(demo_graph)


@pytest.fixture
def empty_graph():
    graph = EntityGraph()
    graph.add_model("", "Root")
    return graph
