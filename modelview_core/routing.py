"""
Edge routing - attach edges to node sides and build orthogonal polylines.

Routing works on final node rectangles:
1. Pick a side on each endpoint from the dominant axis between centers
2. Spread all attachments sharing a (node, side) evenly along that side
3. Project each attachment outward by a short stub
4. Join the stubs with at most one orthogonal bend
5. Place multiplicity labels just outside each attachment

This module also derives which edges a model diagram shows, either from
explicit associations or from class reference lists.
"""

import logging
from collections import defaultdict
from typing import Iterable, Optional, TYPE_CHECKING

from .models import EdgeSpec, LabelPlacement, RoutedEdge, Side
from .settings import RouterSettings

if TYPE_CHECKING:
    from .models import DiagramNode, EntityGraph
    from .resolver import ReferenceResolver


logger = logging.getLogger(__name__)

Point = tuple[float, float]

DEFAULT_SETTINGS = RouterSettings()

_TEXT_ANCHORS = {
    Side.LEFT: "end",
    Side.RIGHT: "start",
    Side.TOP: "middle",
    Side.BOTTOM: "middle",
}


def choose_sides(source: "DiagramNode", target: "DiagramNode") -> tuple[Side, Side]:
    """Calculate connection sides based on relative node positions."""
    if source.id == target.id:
        return (Side.RIGHT, Side.TOP)
    sx, sy = source.center()
    tx, ty = target.center()
    dx = tx - sx
    dy = ty - sy

    if abs(dx) > abs(dy):
        return (Side.RIGHT, Side.LEFT) if dx > 0 else (Side.LEFT, Side.RIGHT)
    return (Side.BOTTOM, Side.TOP) if dy > 0 else (Side.TOP, Side.BOTTOM)


def side_point(node: "DiagramNode", side: Side, offset: float) -> Point:
    """Point on a side, `offset` along it from the top/left corner."""
    if side == Side.LEFT:
        return (node.x, node.y + offset)
    if side == Side.RIGHT:
        return (node.right, node.y + offset)
    if side == Side.TOP:
        return (node.x + offset, node.y)
    return (node.x + offset, node.bottom)


def distribute_along_side(
    node: "DiagramNode",
    side: Side,
    count: int,
    settings: RouterSettings = DEFAULT_SETTINGS,
) -> list[Point]:
    """
    Evenly spaced attachment points on one side, inset from its corners.

    A single attachment lands on the side's midpoint.
    """
    length = node.h if side.is_horizontal else node.w
    inset = min(settings.corner_inset, length / 4)
    usable = length - 2 * inset
    return [
        side_point(node, side, inset + usable * (i + 1) / (count + 1))
        for i in range(count)
    ]


def _offset(point: Point, side: Side, distance: float) -> Point:
    nx, ny = side.normal
    return (point[0] + nx * distance, point[1] + ny * distance)


def _orthogonal_path(
    source_point: Point, source_side: Side,
    target_point: Point, target_side: Side,
    stub_length: float,
) -> list[Point]:
    """Polyline from attachment to attachment with stubs and one bend."""
    s = _offset(source_point, source_side, stub_length)
    t = _offset(target_point, target_side, stub_length)

    points = [source_point, s]
    if s[0] != t[0] and s[1] != t[1]:
        # Leave along the source side's axis, bend once, arrive at the target stub
        if source_side.is_horizontal:
            points.append((t[0], s[1]))
        else:
            points.append((s[0], t[1]))
    points.extend([t, target_point])

    deduped = [points[0]]
    for p in points[1:]:
        if p != deduped[-1]:
            deduped.append(p)
    return deduped


def _self_loop_path(source_point: Point, target_point: Point, stub_length: float) -> list[Point]:
    """Loop from a right-side attachment around the corner into a top-side one."""
    s = _offset(source_point, Side.RIGHT, stub_length)
    t = _offset(target_point, Side.TOP, stub_length)
    return [source_point, s, (s[0], t[1]), t, target_point]


def place_label(
    text: str,
    attachment: Point,
    side: Side,
    settings: RouterSettings = DEFAULT_SETTINGS,
) -> Optional[LabelPlacement]:
    """Multiplicity label just outside an attachment point."""
    if not text:
        return None
    x, y = _offset(attachment, side, settings.label_offset)
    if side.is_horizontal:
        # Sit above the horizontal stub rather than on it
        y -= settings.label_lift
    return LabelPlacement(text=text, x=x, y=y, anchor=_TEXT_ANCHORS[side])


def route_edges(
    nodes: list["DiagramNode"],
    edges: Iterable[EdgeSpec],
    settings: RouterSettings = DEFAULT_SETTINGS,
) -> list[RoutedEdge]:
    """
    Route every edge between the given node rectangles.

    Edges with a missing endpoint are skipped; a self edge loops from the
    right side back into the top side. Routing is
    global: attachments on a shared side depend on every edge touching it,
    so re-route the whole set after any node moves.
    """
    node_map = {n.id: n for n in nodes}
    routable = [
        e for e in edges
        if e.source in node_map and e.target in node_map
    ]

    sides: list[tuple[Side, Side]] = []
    # (node_id, side) -> [(sort key, edge index, end)]
    groups: dict[tuple[str, Side], list[tuple[float, int, int]]] = defaultdict(list)

    for index, edge in enumerate(routable):
        source = node_map[edge.source]
        target = node_map[edge.target]
        source_side, target_side = choose_sides(source, target)
        sides.append((source_side, target_side))

        tx, ty = target.center()
        sx, sy = source.center()
        groups[(source.id, source_side)].append((ty if source_side.is_horizontal else tx, index, 0))
        groups[(target.id, target_side)].append((sy if target_side.is_horizontal else sx, index, 1))

    attachments: dict[tuple[int, int], Point] = {}
    for (node_id, side), members in groups.items():
        members.sort()
        points = distribute_along_side(node_map[node_id], side, len(members), settings)
        for (_, index, end), point in zip(members, points):
            attachments[(index, end)] = point

    routed: list[RoutedEdge] = []
    for index, edge in enumerate(routable):
        source_side, target_side = sides[index]
        source_point = attachments[(index, 0)]
        target_point = attachments[(index, 1)]
        routed.append(RoutedEdge(
            id=edge.id,
            source=edge.source,
            target=edge.target,
            source_side=source_side,
            target_side=target_side,
            points=(
                _self_loop_path(source_point, target_point, settings.stub_length)
                if edge.source == edge.target
                else _orthogonal_path(source_point, source_side, target_point, target_side,
                                      settings.stub_length)
            ),
            source_label=place_label(edge.source_multiplicity, source_point, source_side, settings),
            target_label=place_label(edge.target_multiplicity, target_point, target_side, settings),
            source_navigable=edge.source_navigable,
            target_navigable=edge.target_navigable,
        ))

    return routed


# --- Edge derivation ---

def collect_edges(
    graph: "EntityGraph",
    resolver: "ReferenceResolver",
    local_ids: list[str],
    visible_ids: set[str],
) -> list[EdgeSpec]:
    """
    Edges a model diagram shows.

    With associations, one edge per association that touches at least one
    local class and has both ends visible. Without, one edge per unordered
    pair of classes linked by a local class's reference list. Self
    associations and self references are kept and route as loops.
    """
    local = set(local_ids)

    if graph.has_associations:
        specs = []
        for assoc in graph.associations:
            if assoc.from_id not in local and assoc.to_id not in local:
                continue
            if assoc.from_id not in visible_ids or assoc.to_id not in visible_ids:
                continue
            specs.append(EdgeSpec(
                id=assoc.id,
                source=assoc.from_id,
                target=assoc.to_id,
                source_multiplicity=assoc.from_multiplicity,
                target_multiplicity=assoc.to_multiplicity,
                source_navigable=assoc.from_navigable,
                target_navigable=assoc.to_navigable,
            ))
        return specs

    specs = []
    seen: set[frozenset[str]] = set()
    for class_id in local_ids:
        cls = graph.classes.get(class_id)
        if cls is None:
            continue
        for ref in cls.refs:
            target = resolver.resolve(ref, cls.home_model_path)
            if target is None or target.id not in visible_ids:
                continue
            pair = frozenset((cls.id, target.id))
            if pair in seen:
                continue
            seen.add(pair)
            specs.append(EdgeSpec(id=f"{cls.id}->{target.id}", source=cls.id, target=target.id))

    return specs
