"""
Layout algorithms for diagram nodes.

Provides the arrangements a model diagram can be laid out with:
- Force: Annealed force-directed layout (repulsion, spring attraction, gravity)
- Grid: Row-major grid
- Radial: Nodes evenly spaced on a circle
- Layered: Breadth-first layers over directed edges

Every arrangement is followed by overlap resolution and a fit-to-content
pass (see `arrange`). All layout functions modify nodes in-place and return
the modified list. Layout never raises: empty node sets are a no-op and
coincident nodes are pushed apart along a fixed direction.
"""

import logging
import math
from collections import defaultdict, deque
from typing import Iterable, Optional, TYPE_CHECKING

from .models import ContentBounds, LayoutMode
from .settings import LayoutSettings

if TYPE_CHECKING:
    from .models import DiagramNode


logger = logging.getLogger(__name__)

EdgePair = tuple[str, str]

DEFAULT_SETTINGS = LayoutSettings()


# --- Node sizing ---

def estimate_text_width(text: str, char_width: float) -> float:
    """Approximate rendered width of a line of text."""
    return len(text) * char_width


def node_text_lines(node: "DiagramNode") -> list[str]:
    """Every text line that contributes to a node's width."""
    lines = [node.name]
    subtitle = node.subtitle()
    if subtitle:
        lines.append(subtitle)
    if node.expanded:
        lines.extend(attr.row_text() for attr in node.attributes)
    return lines


def size_node(node: "DiagramNode", settings: LayoutSettings = DEFAULT_SETTINGS) -> bool:
    """
    Recompute a node's box size from its text.

    Returns:
        True if the width or height changed
    """
    widest = max(estimate_text_width(line, settings.char_width) for line in node_text_lines(node))
    width = max(settings.min_box_width, widest + 2 * settings.text_padding + settings.toggle_width)
    height = settings.box_height
    if node.expanded:
        height += settings.attribute_row_height * len(node.attributes)

    changed = width != node.w or height != node.h
    node.w = width
    node.h = height
    return changed


# --- Force-directed ---

def force_layout(
    nodes: list["DiagramNode"],
    edges: Iterable[EdgePair],
    settings: LayoutSettings = DEFAULT_SETTINGS,
    seeds: Optional[dict[str, tuple[float, float]]] = None,
) -> list["DiagramNode"]:
    """
    Arrange nodes using simulated annealing over spring forces.

    Simulates (on node centers, over a virtual canvas):
    - Every pair repels with k^2 / d
    - Every edge attracts with d^2 / k
    - Gravity pulls each node toward the canvas center

    where k = sqrt(area / (N + 1)). Displacement per step is capped by a
    temperature that starts at k and cools linearly to zero.

    Args:
        nodes: Nodes to arrange (w/h must already be set)
        edges: (source_id, target_id) pairs; unknown ids are ignored
        settings: Layout parameters
        seeds: Optional starting top-left positions by node id

    Returns:
        The same list of nodes (modified in-place)
    """
    if not nodes:
        return nodes

    n = len(nodes)
    center_x = settings.canvas_width / 2
    center_y = settings.canvas_height / 2
    area = settings.canvas_width * settings.canvas_height
    k = math.sqrt(area / (n + 1))
    min_distance = settings.min_distance
    seeds = seeds or {}

    # Initialize with circular layout for better starting positions
    radius = min(settings.canvas_width, settings.canvas_height) / 3
    pos: dict[str, list[float]] = {}
    for i, node in enumerate(nodes):
        if node.id in seeds:
            sx, sy = seeds[node.id]
            pos[node.id] = [sx + node.w / 2, sy + node.h / 2]
        elif n == 1:
            pos[node.id] = [center_x, center_y]
        else:
            angle = 2 * math.pi * i / n
            pos[node.id] = [center_x + radius * math.cos(angle), center_y + radius * math.sin(angle)]

    edge_list = [(s, t) for s, t in edges if s in pos and t in pos and s != t]

    iterations = settings.iteration_count(n)
    temperature = k
    cooling = k / iterations

    for step in range(iterations):
        disp: dict[str, list[float]] = {node.id: [0.0, 0.0] for node in nodes}

        # Repulsion between all node pairs
        for i in range(n):
            a = nodes[i].id
            for j in range(i + 1, n):
                b = nodes[j].id
                dx = pos[a][0] - pos[b][0]
                dy = pos[a][1] - pos[b][1]
                dist = math.hypot(dx, dy)
                if dist < min_distance:
                    # Coincident centers: separate along x, earlier node to the right
                    dx, dy, dist = min_distance, 0.0, min_distance
                force = k * k / dist
                fx = force * dx / dist
                fy = force * dy / dist
                disp[a][0] += fx
                disp[a][1] += fy
                disp[b][0] -= fx
                disp[b][1] -= fy

        # Attraction along edges
        for s, t in edge_list:
            dx = pos[t][0] - pos[s][0]
            dy = pos[t][1] - pos[s][1]
            dist = max(min_distance, math.hypot(dx, dy))
            force = dist * dist / k
            fx = force * dx / dist
            fy = force * dy / dist
            disp[s][0] += fx
            disp[s][1] += fy
            disp[t][0] -= fx
            disp[t][1] -= fy

        # Gravity toward the canvas center, then capped displacement
        for node in nodes:
            p = pos[node.id]
            d = disp[node.id]
            d[0] += (center_x - p[0]) * settings.gravity
            d[1] += (center_y - p[1]) * settings.gravity
            length = math.hypot(d[0], d[1])
            if length > 0:
                move = min(length, temperature)
                p[0] += d[0] / length * move
                p[1] += d[1] / length * move

        temperature -= cooling
        if temperature < settings.temperature_epsilon:
            logger.debug("Force layout cooled after %d of %d steps", step + 1, iterations)
            break

    for node in nodes:
        cx, cy = pos[node.id]
        node.x = cx - node.w / 2
        node.y = cy - node.h / 2

    return nodes


# --- Deterministic arrangements ---

def grid_layout(
    nodes: list["DiagramNode"],
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> list["DiagramNode"]:
    """
    Arrange nodes in a row-major grid with ceil(sqrt(N)) columns.

    Cells are sized to the largest node so rows and columns line up.
    """
    if not nodes:
        return nodes

    columns = math.ceil(math.sqrt(len(nodes)))
    cell_w = max(n.w for n in nodes) + settings.grid_gap_x
    cell_h = max(n.h for n in nodes) + settings.grid_gap_y

    for i, node in enumerate(nodes):
        row = i // columns
        col = i % columns
        node.x = col * cell_w
        node.y = row * cell_h

    return nodes


def radial_layout(
    nodes: list["DiagramNode"],
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> list["DiagramNode"]:
    """Place node centers evenly on a circle whose radius grows with N."""
    if not nodes:
        return nodes

    center_x = settings.canvas_width / 2
    center_y = settings.canvas_height / 2

    if len(nodes) == 1:
        node = nodes[0]
        node.x = center_x - node.w / 2
        node.y = center_y - node.h / 2
        return nodes

    radius = settings.radial_base_radius + settings.radial_radius_per_node * len(nodes)
    for i, node in enumerate(nodes):
        angle = 2 * math.pi * i / len(nodes) - math.pi / 2
        node.x = center_x + radius * math.cos(angle) - node.w / 2
        node.y = center_y + radius * math.sin(angle) - node.h / 2

    return nodes


def assign_layers(nodes: list["DiagramNode"], edges: Iterable[EdgePair]) -> dict[str, int]:
    """
    Breadth-first layer index per node over directed edges.

    The walk starts from the first node with minimal in-degree. Nodes the
    walk never reaches stay in layer 0.
    """
    ids = [n.id for n in nodes]
    known = set(ids)
    children: dict[str, list[str]] = {nid: [] for nid in ids}
    in_degree: dict[str, int] = {nid: 0 for nid in ids}

    for source, target in edges:
        if source in known and target in known and source != target:
            children[source].append(target)
            in_degree[target] += 1

    layers: dict[str, int] = {nid: 0 for nid in ids}
    if not ids:
        return layers

    start = min(ids, key=lambda nid: in_degree[nid])
    visited = {start}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        for child in children[current]:
            if child not in visited:
                visited.add(child)
                layers[child] = layers[current] + 1
                queue.append(child)

    return layers


def layered_layout(
    nodes: list["DiagramNode"],
    edges: Iterable[EdgePair],
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> list["DiagramNode"]:
    """
    Arrange nodes in horizontal rows, one row per BFS layer.

    Nodes within a layer are sorted by name and packed left to right.
    """
    if not nodes:
        return nodes

    layers = assign_layers(nodes, edges)
    by_layer: dict[int, list["DiagramNode"]] = defaultdict(list)
    for node in nodes:
        by_layer[layers[node.id]].append(node)

    y = 0.0
    for level in sorted(by_layer):
        row = sorted(by_layer[level], key=lambda n: (n.name, n.id))
        x = 0.0
        for node in row:
            node.x = x
            node.y = y
            x += node.w + settings.layer_gap_x
        y += max(n.h for n in row) + settings.layer_gap_y

    return nodes


# --- Post passes ---

def _overlap(a: "DiagramNode", b: "DiagramNode") -> tuple[float, float]:
    """Overlap depth on each axis; positive on both means the boxes intersect."""
    overlap_x = min(a.right, b.right) - max(a.x, b.x)
    overlap_y = min(a.bottom, b.bottom) - max(a.y, b.y)
    return overlap_x, overlap_y


def resolve_overlaps(
    nodes: list["DiagramNode"],
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> int:
    """
    Push overlapping boxes apart.

    For each overlapping pair, both boxes move apart along the axis with the
    smaller overlap, each by half the overlap plus the margin. Passes repeat
    until one finds no overlap or the pass cap is hit.

    Returns:
        Number of passes that moved something
    """
    margin = settings.overlap_margin
    moved_passes = 0

    for _ in range(settings.overlap_passes):
        moved = False
        for i in range(len(nodes)):
            for j in range(i + 1, len(nodes)):
                a = nodes[i]
                b = nodes[j]
                overlap_x, overlap_y = _overlap(a, b)
                if overlap_x <= 0 or overlap_y <= 0:
                    continue

                # Push apart along the axis with less overlap
                if overlap_x < overlap_y:
                    push = overlap_x / 2 + margin
                    if a.center()[0] <= b.center()[0]:
                        a.x -= push
                        b.x += push
                    else:
                        a.x += push
                        b.x -= push
                else:
                    push = overlap_y / 2 + margin
                    if a.center()[1] <= b.center()[1]:
                        a.y -= push
                        b.y += push
                    else:
                        a.y += push
                        b.y -= push
                moved = True

        if not moved:
            break
        moved_passes += 1

    if moved_passes == settings.overlap_passes:
        logger.debug("Overlap resolution hit the pass cap (%d)", settings.overlap_passes)
    return moved_passes


def content_bounds(nodes: list["DiagramNode"]) -> ContentBounds:
    """Bounding box of all node rectangles (empty for no nodes)."""
    if not nodes:
        return ContentBounds()
    min_x = min(n.x for n in nodes)
    min_y = min(n.y for n in nodes)
    max_x = max(n.right for n in nodes)
    max_y = max(n.bottom for n in nodes)
    return ContentBounds(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


def fit_to_content(
    nodes: list["DiagramNode"],
    settings: LayoutSettings = DEFAULT_SETTINGS,
) -> tuple[float, float]:
    """
    Translate nodes so their bounding box starts at the fit margin.

    Returns:
        (surface_width, surface_height): bounding box plus margins on all sides
    """
    margin = settings.fit_margin
    if not nodes:
        return (2 * margin, 2 * margin)

    bounds = content_bounds(nodes)
    dx = margin - bounds.x
    dy = margin - bounds.y
    for node in nodes:
        node.x += dx
        node.y += dy

    return (bounds.width + 2 * margin, bounds.height + 2 * margin)


def arrange(
    nodes: list["DiagramNode"],
    edges: Iterable[EdgePair],
    mode: LayoutMode = LayoutMode.FORCE,
    settings: LayoutSettings = DEFAULT_SETTINGS,
    seeds: Optional[dict[str, tuple[float, float]]] = None,
) -> tuple[float, float]:
    """
    Run one arrangement followed by overlap resolution and fitting.

    Returns:
        The drawing surface size from fit_to_content
    """
    edges = list(edges)
    if mode == LayoutMode.GRID:
        grid_layout(nodes, settings)
    elif mode == LayoutMode.RADIAL:
        radial_layout(nodes, settings)
    elif mode == LayoutMode.LAYERED:
        layered_layout(nodes, edges, settings)
    else:
        force_layout(nodes, edges, settings, seeds=seeds)

    resolve_overlaps(nodes, settings)
    return fit_to_content(nodes, settings)
