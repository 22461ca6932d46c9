"""
Core data models for the model viewer.

These models define the canonical schema:
- Models (containment hierarchy keyed by path) and the classes they hold
- Associations between classes (using from/to naming with per-end details)
- Per-render diagram nodes, routed edges and view state

Entity records (Model, ModelClass, Association) are read-mostly once a graph
is loaded. Positions never live on them: diagram nodes and view states are
derived per model path and owned by a DiagramSession.

Field Naming Convention:
- Associations use `from_id` and `to_id`
- For input compatibility, `from`/`to` and `fromId`/`toId` are accepted and converted
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field, model_validator
import uuid


ROOT_PATH = ""
ROOT_NAME = "Root"
PATH_SEPARATOR = "/"


class Archetype(str, Enum):
    """The four class archetypes shown as box colours."""
    PPT = "ppt"         # Party, place or thing
    ROLE = "role"
    DESC = "desc"       # Description
    MOMENT = "moment"   # Moment-interval


class Side(str, Enum):
    """Side of a node box an edge attaches to."""
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"

    @property
    def normal(self) -> tuple[float, float]:
        """Outward unit normal of this side."""
        return _NORMALS[self]

    @property
    def is_horizontal(self) -> bool:
        """True for left/right sides (edges leave horizontally)."""
        return self in (Side.LEFT, Side.RIGHT)


_NORMALS = {
    Side.LEFT: (-1.0, 0.0),
    Side.RIGHT: (1.0, 0.0),
    Side.TOP: (0.0, -1.0),
    Side.BOTTOM: (0.0, 1.0),
}


class LayoutMode(str, Enum):
    """Arrangements a diagram can be laid out with, in cycling order."""
    FORCE = "force"
    GRID = "grid"
    RADIAL = "radial"
    LAYERED = "layered"

    def next(self) -> "LayoutMode":
        modes = list(LayoutMode)
        return modes[(modes.index(self) + 1) % len(modes)]


class FitState(str, Enum):
    """Whether a model's view has been fitted to its content."""
    PENDING = "pending"   # Never rendered in this session
    FITTED = "fitted"
    RESET = "reset"       # Explicitly reset; refit on next render


def normalize_path(path: Optional[str]) -> str:
    """Strip surrounding separators so '' is always the root."""
    if not path:
        return ROOT_PATH
    return path.strip(PATH_SEPARATOR)


def parent_path(path: str) -> Optional[str]:
    """Parent model path, or None for the root."""
    if path == ROOT_PATH:
        return None
    if PATH_SEPARATOR not in path:
        return ROOT_PATH
    return path.rsplit(PATH_SEPARATOR, 1)[0]


def is_within(path: str, ancestor: str) -> bool:
    """True if `path` is `ancestor` or lies in its subtree."""
    if ancestor == ROOT_PATH:
        return True
    return path == ancestor or path.startswith(ancestor + PATH_SEPARATOR)


def _hash_code(text: str) -> int:
    h = 0
    for ch in text:
        h = ((h << 5) - h + ord(ch)) & 0xFFFFFFFF
    return h


def _base36(value: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def make_class_id(home_model_path: str, name: str) -> str:
    """Derive a stable id for a class whose source carries none."""
    return "c_" + _base36(_hash_code(f"{home_model_path}:{name}"))


def generate_association_id() -> str:
    """Generate a unique association ID."""
    return f"a{uuid.uuid4().hex[:8]}"


class Attribute(BaseModel):
    """A single attribute row of a class."""
    name: str
    multiplicity: str = ""
    datatype: str = ""

    def row_text(self) -> str:
        """Text shown in the expanded attribute list."""
        if self.datatype:
            return f"{self.name}: {self.datatype}"
        return self.name


class Geometry(BaseModel):
    """A node rectangle, used for shape hints and remembered layouts."""
    x: float
    y: float
    w: float = 0
    h: float = 0


class Model(BaseModel):
    """A node of the containment hierarchy."""
    path: str = ROOT_PATH
    name: str = ROOT_NAME
    submodels: list[str] = Field(default_factory=list)
    classes: list[str] = Field(default_factory=list)


class ModelClass(BaseModel):
    """A class defined in exactly one model."""
    id: str
    name: str
    home_model_path: str = ROOT_PATH
    refs: list[str] = Field(default_factory=list)
    archetype_tag: Optional[str] = None
    attributes: list[Attribute] = Field(default_factory=list)

    @property
    def fqn(self) -> str:
        """Fully-qualified key: model path + '/' + class name."""
        return f"{self.home_model_path}{PATH_SEPARATOR}{self.name}"


class Association(BaseModel):
    """
    An explicit two-ended relationship.

    Uses `from_id` and `to_id` as canonical field names.
    Accepts `from`/`to` and `fromId`/`toId` on input.
    """
    id: str = Field(default_factory=generate_association_id)
    from_id: str
    to_id: str
    from_navigable: bool = False
    to_navigable: bool = True
    from_multiplicity: str = ""
    to_multiplicity: str = ""

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert 'from'/'to' style keys to 'from_id'/'to_id'."""
        if isinstance(data, dict):
            for legacy, field in (("from", "from_id"), ("fromId", "from_id"),
                                  ("to", "to_id"), ("toId", "to_id")):
                if legacy in data and field not in data:
                    data[field] = data.pop(legacy)
        return data


class EntityGraph(BaseModel):
    """
    The normalized graph of models, classes and associations.

    Models are keyed by path, classes by id. Adding a model creates any
    missing ancestors so the submodel relation always forms a tree.
    """
    models: dict[str, Model] = Field(default_factory=dict)
    classes: dict[str, ModelClass] = Field(default_factory=dict)
    associations: list[Association] = Field(default_factory=list)
    shapes: dict[str, dict[str, Geometry]] = Field(default_factory=dict)

    def add_model(self, path: str, name: Optional[str] = None) -> Model:
        """Get or create the model at `path`, creating ancestors as needed."""
        path = normalize_path(path)
        model = self.models.get(path)
        if model is None:
            default_name = path.split(PATH_SEPARATOR)[-1] if path else ROOT_NAME
            model = Model(path=path, name=name or default_name)
            self.models[path] = model
            parent = parent_path(path)
            if parent is not None:
                parent_model = self.add_model(parent)
                if path not in parent_model.submodels:
                    parent_model.submodels.append(path)
        elif name:
            model.name = name
        return model

    def add_class(self, cls: ModelClass) -> ModelClass:
        """Register a class in its home model. Class ids must be unique."""
        if cls.id in self.classes:
            raise ValueError(f"Duplicate class id: {cls.id}")
        cls.home_model_path = normalize_path(cls.home_model_path)
        model = self.add_model(cls.home_model_path)
        self.classes[cls.id] = cls
        if cls.id not in model.classes:
            model.classes.append(cls.id)
        return cls

    def get_model(self, path: str) -> Optional[Model]:
        return self.models.get(normalize_path(path))

    def get_class(self, class_id: str) -> Optional[ModelClass]:
        return self.classes.get(class_id)

    def shape_hint(self, model_path: str, class_id: str) -> Optional[Geometry]:
        """Shape stored by the source project for a class in a model's diagram."""
        return self.shapes.get(model_path, {}).get(class_id)

    @property
    def has_associations(self) -> bool:
        return bool(self.associations)

    def root_path(self) -> str:
        """The root model: '' when present, else the first top-level path."""
        if ROOT_PATH in self.models or not self.models:
            return ROOT_PATH
        top_level = sorted(p for p in self.models if parent_path(p) not in self.models)
        return top_level[0] if top_level else sorted(self.models)[0]

    def to_json_dict(self) -> dict:
        """Convert to the JSON layout accepted by from_json_dict."""
        return {
            "models": [m.model_dump() for m in self.models.values()],
            "classes": [c.model_dump() for c in self.classes.values()],
            "associations": [a.model_dump() for a in self.associations],
            "shapes": {
                path: {cid: g.model_dump() for cid, g in shapes.items()}
                for path, shapes in self.shapes.items()
            },
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "EntityGraph":
        """
        Build a graph from an ingestion result.

        Accepts models and classes either as lists of records or as dicts
        keyed by path/id, an optional per-class-id `attributes` mapping and
        optional `shapes` keyed by model path then class id.
        """
        graph = cls()

        models = data.get('models', [])
        if isinstance(models, dict):
            models = [{"path": path, **record} for path, record in models.items()]
        for record in models:
            model = graph.add_model(record.get('path', ROOT_PATH), record.get('name'))
            for sub in record.get('submodels', []):
                graph.add_model(sub)
            for class_id in record.get('classes', []):
                if class_id not in model.classes:
                    model.classes.append(class_id)

        extra_attributes = data.get('attributes', {})
        classes = data.get('classes', [])
        if isinstance(classes, dict):
            classes = [{"id": cid, **record} for cid, record in classes.items()]
        for record in classes:
            record = dict(record)
            home = normalize_path(record.pop('homeModelPath', record.get('home_model_path')))
            name = record.get('name') or record.get('id') or ""
            class_id = record.get('id') or make_class_id(home, name)
            if 'archetype' in record and 'archetype_tag' not in record:
                record['archetype_tag'] = record.pop('archetype')
            record.update(id=class_id, name=name, home_model_path=home)
            if class_id in extra_attributes and not record.get('attributes'):
                record['attributes'] = extra_attributes[class_id]
            graph.add_class(ModelClass(**record))

        graph.associations = [Association(**a) for a in data.get('associations', [])]

        for path, shapes in data.get('shapes', {}).items():
            graph.shapes[normalize_path(path)] = {
                class_id: Geometry(**shape) for class_id, shape in shapes.items()
            }

        return graph


# --- Per-render diagram records ---

class DiagramNode(BaseModel):
    """A class box on a diagram."""
    id: str
    name: str
    home_model_path: str = ROOT_PATH
    x: float = 0
    y: float = 0
    w: float = 0
    h: float = 0
    is_visiting: bool = False
    archetype: Archetype = Archetype.PPT
    expanded: bool = False
    attributes: list[Attribute] = Field(default_factory=list)

    @property
    def right(self) -> float:
        return self.x + self.w

    @property
    def bottom(self) -> float:
        return self.y + self.h

    def center(self) -> tuple[float, float]:
        """Get the center point of the node."""
        return (self.x + self.w / 2, self.y + self.h / 2)

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom)."""
        return (self.x, self.y, self.right, self.bottom)

    def contains(self, px: float, py: float) -> bool:
        return self.x <= px <= self.right and self.y <= py <= self.bottom

    def subtitle(self) -> str:
        """Second text line; only visiting classes have one."""
        if not self.is_visiting:
            return ""
        return f"(from {self.home_model_path or ROOT_NAME})"

    def geometry(self) -> Geometry:
        return Geometry(x=self.x, y=self.y, w=self.w, h=self.h)


class EdgeSpec(BaseModel):
    """An edge to route: endpoints plus per-end multiplicity and navigability."""
    id: str
    source: str
    target: str
    source_multiplicity: str = ""
    target_multiplicity: str = ""
    source_navigable: bool = False
    target_navigable: bool = True


class LabelPlacement(BaseModel):
    """A multiplicity label anchored near one end of an edge."""
    text: str
    x: float
    y: float
    anchor: str = "middle"  # SVG text-anchor: start, middle, end


class RoutedEdge(BaseModel):
    """An edge with its orthogonal polyline and label anchors."""
    id: str
    source: str
    target: str
    source_side: Side
    target_side: Side
    points: list[tuple[float, float]] = Field(default_factory=list)
    source_label: Optional[LabelPlacement] = None
    target_label: Optional[LabelPlacement] = None
    source_navigable: bool = False
    target_navigable: bool = True


class ContentBounds(BaseModel):
    """Axis-aligned bounding box of diagram content."""
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 and self.height <= 0


class ViewState(BaseModel):
    """Pan/zoom transform of one model's diagram."""
    pan_x: float = 0.0
    pan_y: float = 0.0
    scale: float = 1.0
    fit_state: FitState = FitState.PENDING

    @property
    def has_been_fitted(self) -> bool:
        return self.fit_state == FitState.FITTED


class DiagramView(BaseModel):
    """
    Everything the rendering surface needs for one model.
    This is what gets returned for a selected model path.
    """
    model_config = ConfigDict(protected_namespaces=())

    model_path: str
    model_name: str
    nodes: list[DiagramNode] = Field(default_factory=list)
    edges: list[RoutedEdge] = Field(default_factory=list)
    surface_width: float = 0
    surface_height: float = 0
    view: ViewState = Field(default_factory=ViewState)
    layout_mode: LayoutMode = LayoutMode.FORCE

    def get_node(self, node_id: str) -> Optional[DiagramNode]:
        """Get a node by ID (O(n))."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return self.model_dump(mode="json")
