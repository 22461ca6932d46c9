"""
Diagram analysis - Structural summary of a rendered model diagram.

Used by the backend and CLI to describe what a model's diagram contains.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .models import Archetype

if TYPE_CHECKING:
    from .models import DiagramView


@dataclass
class ConnectedComponent:
    """A connected component of the diagram graph."""
    node_ids: list[str] = field(default_factory=list)
    edge_count: int = 0

    @property
    def size(self) -> int:
        return len(self.node_ids)


@dataclass
class NodeConnectionInfo:
    """Connection information for a single class box."""
    node_id: str
    name: str
    incoming: int = 0   # Edges ending at this class
    outgoing: int = 0   # Edges starting at this class

    @property
    def total(self) -> int:
        return self.incoming + self.outgoing


@dataclass
class DiagramSummary:
    """Complete summary of a diagram's structure."""
    model_path: str
    model_name: str
    total_nodes: int
    home_nodes: int
    visiting_nodes: int
    total_edges: int
    nodes_by_archetype: dict[str, int]
    connected_components: int
    most_connected_nodes: list[NodeConnectionInfo]
    orphan_count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "model_path": self.model_path,
            "model_name": self.model_name,
            "total_nodes": self.total_nodes,
            "home_nodes": self.home_nodes,
            "visiting_nodes": self.visiting_nodes,
            "total_edges": self.total_edges,
            "nodes_by_archetype": self.nodes_by_archetype,
            "connected_components": self.connected_components,
            "most_connected_nodes": [
                {
                    "id": n.node_id,
                    "name": n.name,
                    "connections": n.total,
                    "incoming": n.incoming,
                    "outgoing": n.outgoing
                }
                for n in self.most_connected_nodes
            ],
            "orphan_count": self.orphan_count
        }


def find_connected_components(diagram: "DiagramView") -> list[ConnectedComponent]:
    """
    Find all connected components using BFS, treating edges as undirected.

    Args:
        diagram: The diagram to analyze

    Returns:
        List of ConnectedComponent objects, in node order of their first member
    """
    if not diagram.nodes:
        return []

    node_ids = [n.id for n in diagram.nodes]

    # Build adjacency list (undirected)
    adjacency: dict[str, set[str]] = {nid: set() for nid in node_ids}
    for edge in diagram.edges:
        if edge.source in adjacency and edge.target in adjacency:
            adjacency[edge.source].add(edge.target)
            adjacency[edge.target].add(edge.source)

    visited: set[str] = set()
    components: list[ConnectedComponent] = []

    for start_node in node_ids:
        if start_node in visited:
            continue

        component_nodes: list[str] = []
        queue = [start_node]
        while queue:
            current = queue.pop(0)
            if current in visited:
                continue
            visited.add(current)
            component_nodes.append(current)
            for neighbor in adjacency[current]:
                if neighbor not in visited:
                    queue.append(neighbor)

        members = set(component_nodes)
        edge_count = sum(1 for e in diagram.edges if e.source in members and e.target in members)
        components.append(ConnectedComponent(node_ids=component_nodes, edge_count=edge_count))

    return components


def calculate_node_connections(diagram: "DiagramView") -> dict[str, NodeConnectionInfo]:
    """Incoming/outgoing edge counts for every node."""
    connections: dict[str, NodeConnectionInfo] = {
        node.id: NodeConnectionInfo(node_id=node.id, name=node.name)
        for node in diagram.nodes
    }

    for edge in diagram.edges:
        if edge.source in connections:
            connections[edge.source].outgoing += 1
        if edge.target in connections:
            connections[edge.target].incoming += 1

    return connections


def summarize_diagram(diagram: "DiagramView", top_n: int = 5) -> DiagramSummary:
    """
    Generate a summary of a rendered diagram.

    Args:
        diagram: The diagram to summarize
        top_n: Number of top connected classes to include

    Returns:
        DiagramSummary object with all analysis results
    """
    nodes = diagram.nodes

    archetype_counts: dict[str, int] = defaultdict(int)
    for archetype in Archetype:
        archetype_counts[archetype.value] = 0
    for node in nodes:
        archetype_counts[node.archetype.value] += 1

    connections = calculate_node_connections(diagram)
    sorted_by_connections = sorted(
        connections.values(),
        key=lambda x: x.total,
        reverse=True
    )
    most_connected = [n for n in sorted_by_connections[:top_n] if n.total > 0]
    orphan_count = sum(1 for n in connections.values() if n.total == 0)
    visiting = sum(1 for n in nodes if n.is_visiting)

    return DiagramSummary(
        model_path=diagram.model_path,
        model_name=diagram.model_name,
        total_nodes=len(nodes),
        home_nodes=len(nodes) - visiting,
        visiting_nodes=visiting,
        total_edges=len(diagram.edges),
        nodes_by_archetype=dict(archetype_counts),
        connected_components=len(find_connected_components(diagram)),
        most_connected_nodes=most_connected,
        orphan_count=orphan_count
    )
