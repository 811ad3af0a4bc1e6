"""Build a ShapesGraph from an rdflib Graph.

The inverse of :meth:`ShapesGraph.to_graph` for the vocabulary this
package understands. Parsing concrete syntaxes is rdflib's job:

    g = Graph().parse("shapes.ttl")
    shapes = shapes_from_graph(g)

A node is read as a shape when it is typed sh:NodeShape or
sh:PropertyShape, has a sh:path or a constraint parameter, or is
referenced from another shape (sh:property, sh:node, sh:not,
sh:qualifiedValueShape, sh:and / sh:or / sh:xone lists). Shapes with a
sh:path become property shapes. Triples outside the supported vocabulary
are ignored; malformed parameters raise :class:`ShapeModelError`.
"""

from __future__ import annotations

import logging
from typing import Callable

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.collection import Collection
from rdflib.namespace import RDF, SH
from rdflib.term import Node

from . import constraints as c
from .shapes import Shape, ShapesGraph
from .types import NodeKind, Severity, ShapeModelError

logger = logging.getLogger(__name__)


_SHAPE_REFERENCES = (SH.property, SH.node, SH["not"], SH.qualifiedValueShape)
_SHAPE_LISTS = (SH["and"], SH["or"], SH.xone)

# any subject of these is a shape, typed or not
_PARAMETERS = (
    SH["class"], SH.datatype, SH.nodeKind, SH.minCount, SH.maxCount,
    SH.minExclusive, SH.minInclusive, SH.maxExclusive, SH.maxInclusive,
    SH.minLength, SH.maxLength, SH.pattern, SH.languageIn, SH.uniqueLang,
    SH.equals, SH.disjoint, SH.lessThan, SH.lessThanOrEquals,
    SH.closed, SH.hasValue, SH["in"], *_SHAPE_REFERENCES, *_SHAPE_LISTS,
)


# ---------------------------------------------------------------------------
# Value readers
# ---------------------------------------------------------------------------

def _read_list(graph: Graph, head: Node) -> list[Node]:
    if head == RDF.nil:
        return []
    if not isinstance(head, (URIRef, BNode)):
        raise ShapeModelError(f"Expected an RDF list, got {head!r}")
    return list(Collection(graph, head))


def _read_int(value: Node, name: str) -> int:
    if isinstance(value, Literal):
        python_value = value.toPython()
        if isinstance(python_value, int) and not isinstance(python_value, bool):
            return python_value
    raise ShapeModelError(f"{name} must be an integer literal, got {value!r}")


def _read_bool(value: Node, name: str) -> bool:
    if isinstance(value, Literal):
        python_value = value.toPython()
        if isinstance(python_value, bool):
            return python_value
        if str(value).lower() in ("true", "false"):
            return str(value).lower() == "true"
    raise ShapeModelError(f"{name} must be a boolean literal, got {value!r}")


def _read_iri(value: Node, name: str) -> URIRef:
    if isinstance(value, URIRef):
        return value
    raise ShapeModelError(f"{name} must be an IRI, got {value!r}")


def _read_string(value: Node, name: str) -> str:
    if isinstance(value, Literal):
        return str(value)
    raise ShapeModelError(f"{name} must be a literal, got {value!r}")


def _single(graph: Graph, node: Node, predicate: URIRef) -> Node | None:
    values = list(graph.objects(node, predicate))
    if len(values) > 1:
        raise ShapeModelError(f"Shape {node} has {len(values)} values for {predicate}")
    return values[0] if values else None


# ---------------------------------------------------------------------------
# Shape discovery
# ---------------------------------------------------------------------------

def _shape_nodes(graph: Graph) -> list[Node]:
    found: list[Node] = []

    def add(node: Node) -> None:
        if isinstance(node, (URIRef, BNode)) and node not in found:
            found.append(node)

    for kind in (SH.NodeShape, SH.PropertyShape):
        for node in graph.subjects(RDF.type, kind):
            add(node)
    for node in graph.subjects(SH.path, None):
        add(node)
    for predicate in _PARAMETERS:
        for node in graph.subjects(predicate, None):
            add(node)
    for predicate in _SHAPE_REFERENCES:
        for _, _, node in graph.triples((None, predicate, None)):
            add(node)
    for predicate in _SHAPE_LISTS:
        for _, _, head in graph.triples((None, predicate, None)):
            for node in _read_list(graph, head):
                add(node)
    return found


# ---------------------------------------------------------------------------
# Constraint readers, one per parameter, in the order they are attached
# ---------------------------------------------------------------------------

Reader = Callable[[Graph, Node], list]


def _each(predicate: URIRef, build: Callable[[Graph, Node], c.Constraint]) -> Reader:
    def read(graph: Graph, node: Node) -> list:
        return [build(graph, value) for value in graph.objects(node, predicate)]
    return read


def _read_qualified(graph: Graph, node: Node) -> list:
    found = []
    min_value = _single(graph, node, SH.qualifiedMinCount)
    max_value = _single(graph, node, SH.qualifiedMaxCount)
    for ref in graph.objects(node, SH.qualifiedValueShape):
        found.append(c.QualifiedValueShapeConstraint(
            ref,
            min_count=_read_int(min_value, "sh:qualifiedMinCount") if min_value is not None else None,
            max_count=_read_int(max_value, "sh:qualifiedMaxCount") if max_value is not None else None,
        ))
    return found


def _read_pattern(graph: Graph, node: Node) -> list:
    flags = _single(graph, node, SH.flags)
    return [
        c.PatternConstraint(
            _read_string(pattern, "sh:pattern"),
            _read_string(flags, "sh:flags") if flags is not None else None,
        )
        for pattern in graph.objects(node, SH.pattern)
    ]


def _read_closed(graph: Graph, node: Node) -> list:
    closed = _single(graph, node, SH.closed)
    if closed is None:
        return []
    ignored = _single(graph, node, SH.ignoredProperties)
    return [c.ClosedConstraint(
        _read_bool(closed, "sh:closed"),
        tuple(_read_list(graph, ignored)) if ignored is not None else (),
    )]


def _read_range(predicate: URIRef, kind: type) -> Reader:
    def build(graph: Graph, value: Node):
        if not isinstance(value, Literal):
            raise ShapeModelError(f"{predicate} must be a literal, got {value!r}")
        return kind(value)
    return _each(predicate, build)


_READERS: tuple[Reader, ...] = (
    _each(SH["class"], lambda g, v: c.ClassConstraint(_read_iri(v, "sh:class"))),
    _each(SH.datatype, lambda g, v: c.DatatypeConstraint(_read_iri(v, "sh:datatype"))),
    _each(SH.nodeKind, lambda g, v: c.NodeKindConstraint(NodeKind.from_iri(v))),
    _each(SH.minCount, lambda g, v: c.MinCountConstraint(_read_int(v, "sh:minCount"))),
    _each(SH.maxCount, lambda g, v: c.MaxCountConstraint(_read_int(v, "sh:maxCount"))),
    _read_range(SH.minExclusive, c.MinExclusiveConstraint),
    _read_range(SH.minInclusive, c.MinInclusiveConstraint),
    _read_range(SH.maxExclusive, c.MaxExclusiveConstraint),
    _read_range(SH.maxInclusive, c.MaxInclusiveConstraint),
    _each(SH.minLength, lambda g, v: c.MinLengthConstraint(_read_int(v, "sh:minLength"))),
    _each(SH.maxLength, lambda g, v: c.MaxLengthConstraint(_read_int(v, "sh:maxLength"))),
    _read_pattern,
    _each(SH.languageIn, lambda g, v: c.LanguageInConstraint(
        tuple(_read_string(tag, "sh:languageIn") for tag in _read_list(g, v))
    )),
    _each(SH.uniqueLang, lambda g, v: c.UniqueLangConstraint(_read_bool(v, "sh:uniqueLang"))),
    _each(SH.equals, lambda g, v: c.EqualsConstraint(_read_iri(v, "sh:equals"))),
    _each(SH.disjoint, lambda g, v: c.DisjointConstraint(_read_iri(v, "sh:disjoint"))),
    _each(SH.lessThan, lambda g, v: c.LessThanConstraint(_read_iri(v, "sh:lessThan"))),
    _each(SH.lessThanOrEquals,
          lambda g, v: c.LessThanOrEqualsConstraint(_read_iri(v, "sh:lessThanOrEquals"))),
    _each(SH["not"], lambda g, v: c.NotConstraint(v)),
    _each(SH["and"], lambda g, v: c.AndConstraint(tuple(_read_list(g, v)))),
    _each(SH["or"], lambda g, v: c.OrConstraint(tuple(_read_list(g, v)))),
    _each(SH.xone, lambda g, v: c.XoneConstraint(tuple(_read_list(g, v)))),
    _each(SH.node, lambda g, v: c.NodeConstraint(v)),
    _each(SH.property, lambda g, v: c.PropertyConstraint(v)),
    _read_qualified,
    _read_closed,
    _each(SH.hasValue, lambda g, v: c.HasValueConstraint(v)),
    _each(SH["in"], lambda g, v: c.InConstraint(tuple(_read_list(g, v)))),
)


# ---------------------------------------------------------------------------
# Shapes
# ---------------------------------------------------------------------------

def shape_from_graph(graph: Graph, node: Node) -> Shape:
    """Read the shape rooted at ``node``."""
    path = _single(graph, node, SH.path)
    if path is not None:
        shape = Shape.property_shape(node, _read_iri(path, "sh:path"))
        for name in graph.objects(node, SH.name):
            shape.add_name(name)
        for description in graph.objects(node, SH.description):
            shape.add_description(description)
        order = _single(graph, node, SH.order)
        if order is not None:
            shape.order = order
        group = _single(graph, node, SH.group)
        if group is not None:
            shape.set_group(group)
    else:
        shape = Shape.node_shape(node)

    severity = _single(graph, node, SH.severity)
    if severity is not None:
        shape.set_severity(Severity.from_iri(severity))
    deactivated = _single(graph, node, SH.deactivated)
    if deactivated is not None and _read_bool(deactivated, "sh:deactivated"):
        shape.deactivate()
    for message in graph.objects(node, SH.message):
        shape.add_message(message)

    for read in _READERS:
        for constraint in read(graph, node):
            shape.add_constraint(constraint)
    return shape


def shapes_from_graph(graph: Graph, shapes_graph_id: Node | None = None) -> ShapesGraph:
    """Build a :class:`ShapesGraph` from every shape found in ``graph``."""
    if shapes_graph_id is None:
        shapes_graph_id = graph.identifier if isinstance(graph.identifier, URIRef) else BNode()
    shapes_graph = ShapesGraph(id=shapes_graph_id)
    for node in _shape_nodes(graph):
        shapes_graph.add_shape(shape_from_graph(graph, node))
    logger.debug("Loaded %d shapes from %s", len(shapes_graph), shapes_graph_id)
    return shapes_graph
