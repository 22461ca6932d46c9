"""Built-in demo project, used when no graph file is given."""

from .models import Attribute, EntityGraph, ModelClass, make_class_id


def _add_class(graph: EntityGraph, home: str, name: str, refs: list[str],
               attributes: list[Attribute] | None = None) -> ModelClass:
    return graph.add_class(ModelClass(
        id=make_class_id(home, name),
        name=name,
        home_model_path=home,
        refs=refs,
        attributes=attributes or [],
    ))


def build_demo_graph() -> EntityGraph:
    """
    A small order-handling project.

    Root
    ├── Domain           Customer
    │   └── Domain/Orders  Order, OrderLine
    └── UI               OrderView
    """
    graph = EntityGraph()
    graph.add_model("", "Root")
    graph.add_model("Domain")
    graph.add_model("Domain/Orders", "Orders")
    graph.add_model("UI")

    _add_class(graph, "Domain", "Customer", ["Domain/Orders/Order"], [
        Attribute(name="name", multiplicity="1", datatype="String"),
        Attribute(name="email", multiplicity="0..1", datatype="String"),
    ])
    _add_class(graph, "Domain/Orders", "Order", ["UI/OrderView", "OrderLine"], [
        Attribute(name="number", multiplicity="1", datatype="Integer"),
        Attribute(name="placedAt", multiplicity="1", datatype="DateTime"),
    ])
    _add_class(graph, "Domain/Orders", "OrderLine", [], [
        Attribute(name="quantity", multiplicity="1", datatype="Integer"),
    ])
    _add_class(graph, "UI", "OrderView", ["Domain/Orders/Order"])
    return graph
