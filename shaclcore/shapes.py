"""Shapes and the shapes graph.

A Shape is a named bundle of constraints. A node shape validates its focus
nodes directly; a property shape validates the values reached from each
focus node through its path (a single predicate here).

Shapes never own other shapes. Constraints that need another shape
(sh:node, sh:and, sh:property, ...) hold its identifier and resolve it
through :meth:`ShapesGraph.select` at validation time. That keeps forward
references and reference cycles representable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import RDF, SH, XSD
from rdflib.term import Node

from .constraints import Constraint
from .terms import objects_of
from .types import Severity, ShapeKind, ShapeModelError


# ---------------------------------------------------------------------------
# Shape
# ---------------------------------------------------------------------------

@dataclass
class Shape:
    """A SHACL shape — node shape or property shape.

    Build with :meth:`node_shape` / :meth:`property_shape` and the fluent
    builder methods below; every builder returns the shape itself.
    """

    id: Node
    kind: ShapeKind = ShapeKind.NODE
    path: URIRef | None = None
    constraints: list[Constraint] = field(default_factory=list)
    severity: Severity = Severity.VIOLATION
    messages: list[Literal] = field(default_factory=list)
    deactivated: bool = False

    # Property shape annotations (sh:name, sh:description, sh:order, sh:group)
    names: list[Literal] = field(default_factory=list)
    descriptions: list[Literal] = field(default_factory=list)
    order: Literal | None = None
    group: Node | None = None

    def __post_init__(self) -> None:
        if self.id is None:
            self.id = BNode()
        if self.kind == ShapeKind.PROPERTY:
            if self.path is None:
                raise ShapeModelError(f"Property shape {self.id} requires a path")
            if not isinstance(self.path, URIRef):
                raise ShapeModelError(
                    f"Property shape {self.id} path must be an IRI, got {self.path!r}"
                )
        elif self.path is not None:
            raise ShapeModelError(f"Node shape {self.id} cannot have a path")

    def __repr__(self) -> str:
        kind = "PropertyShape" if self.is_property_shape else "NodeShape"
        return f"{kind}({self.id}, {len(self.constraints)} constraints)"

    def __iter__(self) -> Iterator[Constraint]:
        return iter(self.constraints)

    # -----------------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------------

    @classmethod
    def node_shape(cls, shape_id: Node | None = None) -> Shape:
        return cls(id=shape_id, kind=ShapeKind.NODE)

    @classmethod
    def property_shape(cls, shape_id: Node | None, path: URIRef) -> Shape:
        return cls(id=shape_id, kind=ShapeKind.PROPERTY, path=path)

    @property
    def is_property_shape(self) -> bool:
        return self.kind == ShapeKind.PROPERTY

    # -----------------------------------------------------------------------
    # Builder API
    # -----------------------------------------------------------------------

    def add_constraint(self, constraint: Constraint) -> Shape:
        if not isinstance(constraint, Constraint):
            raise ShapeModelError(f"Not a constraint: {constraint!r}")
        self.constraints.append(constraint)
        return self

    def add_message(self, message: Literal | str) -> Shape:
        """Add a sh:message. Only plain or xsd:string literals are kept."""
        message = _as_text_literal(message)
        if message is not None:
            self.messages.append(message)
        return self

    def set_severity(self, severity: Severity) -> Shape:
        self.severity = severity
        return self

    def activate(self) -> Shape:
        self.deactivated = False
        return self

    def deactivate(self) -> Shape:
        self.deactivated = True
        return self

    def add_name(self, name: Literal | str) -> Shape:
        name = _as_text_literal(name)
        if name is not None:
            self.names.append(name)
        return self

    def add_description(self, description: Literal | str) -> Shape:
        description = _as_text_literal(description)
        if description is not None:
            self.descriptions.append(description)
        return self

    def set_order(self, order: int) -> Shape:
        self.order = Literal(order, datatype=XSD.integer)
        return self

    def set_group(self, group: Node) -> Shape:
        self.group = group
        return self

    # -----------------------------------------------------------------------
    # Validation support
    # -----------------------------------------------------------------------

    def value_nodes(self, data_graph: Graph, focus_node: Node) -> list[Node]:
        """Value nodes of this shape for a focus node.

        Node shape: the focus node itself. Property shape: the objects of
        (focus, path, ?o), duplicates and data-graph order preserved.
        """
        if self.kind == ShapeKind.NODE:
            return [focus_node]
        return objects_of(data_graph, focus_node, self.path)

    # -----------------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------------

    def to_graph(self) -> Graph:
        g = Graph()
        g.bind("sh", SH)
        g.add((self.id, RDF.type, self.kind.value))
        g.add((self.id, SH.severity, self.severity.value))
        g.add((self.id, SH.deactivated, Literal(self.deactivated, datatype=XSD.boolean)))
        for message in self.messages:
            g.add((self.id, SH.message, message))

        if self.is_property_shape:
            g.add((self.id, SH.path, self.path))
            for name in self.names:
                g.add((self.id, SH.name, name))
            for description in self.descriptions:
                g.add((self.id, SH.description, description))
            if self.order is not None:
                g.add((self.id, SH.order, self.order))
            if self.group is not None:
                g.add((self.id, SH.group, self.group))

        for constraint in self.constraints:
            g += constraint.to_graph(self)
        return g


def _as_text_literal(value: Literal | str) -> Literal | None:
    if isinstance(value, Literal):
        if value.language is not None or value.datatype in (None, XSD.string):
            return value
        return None
    if isinstance(value, Node):
        return None
    if isinstance(value, str):
        return Literal(value)
    return None


# ---------------------------------------------------------------------------
# ShapesGraph
# ---------------------------------------------------------------------------

@dataclass
class ShapesGraph:
    """The set of shapes, addressable by identifier.

    Mutable while being assembled, read-only while a validation runs.
    """

    id: Node = field(default_factory=BNode)
    shapes: dict[str, Shape] = field(default_factory=dict)

    def __iter__(self) -> Iterator[Shape]:
        return iter(self.shapes.values())

    def __len__(self) -> int:
        return len(self.shapes)

    def __contains__(self, shape_id: object) -> bool:
        return str(shape_id) in self.shapes

    def __repr__(self) -> str:
        return f"ShapesGraph({self.id}, {len(self.shapes)} shapes)"

    # -----------------------------------------------------------------------
    # Builder API
    # -----------------------------------------------------------------------

    def add_shape(self, shape: Shape) -> ShapesGraph:
        """Add a shape. A shape with an already-known identifier is ignored."""
        self.shapes.setdefault(str(shape.id), shape)
        return self

    def merge_shapes(self, other: ShapesGraph) -> ShapesGraph:
        for shape in other:
            self.add_shape(shape)
        return self

    def remove_shape(self, shape: Shape) -> ShapesGraph:
        self.shapes.pop(str(shape.id), None)
        return self

    # -----------------------------------------------------------------------
    # Query
    # -----------------------------------------------------------------------

    def select(self, shape_id: Node | str | None) -> Shape | None:
        """The shape with the given identifier, or None."""
        if shape_id is None:
            return None
        return self.shapes.get(str(shape_id))

    # -----------------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------------

    def to_graph(self) -> Graph:
        g = Graph(identifier=self.id) if isinstance(self.id, URIRef) else Graph()
        g.bind("sh", SH)
        for shape in self:
            g += shape.to_graph()
        return g
