"""SHACL core constraint components.

Every constraint is a frozen dataclass with the same two operations:

  validate(shapes_graph, data_graph, shape, focus_node, value_nodes, engine)
      -> ValidationReport
  to_graph(shape) -> rdflib.Graph

``shape`` is the shape that owns the constraint; it supplies the result
path (for property shapes), the severity and the messages. When the shape
has no sh:message, each constraint falls back to its own fixed message.

Constraints are grouped as in the SHACL recommendation:

  - value type:        Class, Datatype, NodeKind
  - cardinality:       MinCount, MaxCount
  - value range:       MinExclusive, MinInclusive, MaxExclusive, MaxInclusive
  - string based:      MinLength, MaxLength, Pattern, LanguageIn, UniqueLang
  - property pair:     Equals, Disjoint, LessThan, LessThanOrEquals
  - logical:           Not, And, Or, Xone
  - shape based:       Node, Property, QualifiedValueShape
  - other:             Closed, HasValue, In

Shape-based and logical constraints hold shape identifiers only. A
reference that cannot be resolved in the shapes graph is vacuously
satisfied.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar, Iterable, Sequence

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.collection import Collection
from rdflib.namespace import RDF, SH, XSD
from rdflib.term import Node

from .engine import ValidationEngine
from .report import ValidationReport, ValidationResult
from .terms import (
    compare,
    instances_of,
    is_blank,
    is_literal,
    is_plain_literal,
    is_resource,
    lang_matches,
    lexical_form,
    objects_of,
)
from .types import Comparison, NodeKind, ShapeModelError

if TYPE_CHECKING:
    from .shapes import Shape, ShapesGraph

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Parameter helpers
# ---------------------------------------------------------------------------

def _shape_ref(value: object, constraint: str) -> Node:
    if isinstance(value, (URIRef, BNode)):
        return value
    if isinstance(value, str) and not isinstance(value, Literal) and value:
        return URIRef(value)
    raise ShapeModelError(f"{constraint} requires a shape identifier, got {value!r}")


def _shape_refs(values: Iterable[object], constraint: str) -> tuple[Node, ...]:
    refs: list[Node] = []
    for value in values or ():
        ref = _shape_ref(value, constraint)
        if ref not in refs:
            refs.append(ref)
    return tuple(refs)


def _iri(value: object, constraint: str, name: str) -> URIRef:
    if isinstance(value, URIRef):
        return value
    raise ShapeModelError(f"{constraint} requires an IRI {name}, got {value!r}")


def _clamp(value: object, constraint: str, name: str, optional: bool = False) -> int | None:
    if value is None and optional:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ShapeModelError(f"{constraint} requires an integer {name}, got {value!r}") from e
    return number if number > 0 else 0


def _integer(value: int) -> Literal:
    return Literal(value, datatype=XSD.integer)


def _boolean(value: bool) -> Literal:
    return Literal(value, datatype=XSD.boolean)


def _list_node(graph: Graph, items: Sequence[Node]) -> Node:
    """Encode items as an RDF collection on a fresh blank node."""
    if not items:
        return RDF.nil
    head = BNode()
    Collection(graph, head, list(items))
    return head


def _shape_graph() -> Graph:
    g = Graph()
    g.bind("sh", SH)
    return g


def _resolve(shapes_graph: ShapesGraph, ref: Node, constraint: Constraint) -> Shape | None:
    shape = shapes_graph.select(ref)
    if shape is None:
        logger.debug("%s references unknown shape %s, treated as satisfied",
                     type(constraint).__name__, ref)
    return shape


# ---------------------------------------------------------------------------
# Constraint: shared contract
# ---------------------------------------------------------------------------

class Constraint:
    """Base of all constraint components."""

    component: ClassVar[URIRef]

    def validate(
        self,
        shapes_graph: ShapesGraph,
        data_graph: Graph,
        shape: Shape,
        focus_node: Node,
        value_nodes: Sequence[Node],
        engine: ValidationEngine | None = None,
    ) -> ValidationReport:
        raise NotImplementedError

    def to_graph(self, shape: Shape) -> Graph:
        raise NotImplementedError

    def default_message(self) -> str:
        raise NotImplementedError

    def _result(
        self,
        shape: Shape,
        focus_node: Node,
        value: Node | None = None,
        *,
        component: URIRef | None = None,
        message: str | None = None,
        path: Node | None = None,
    ) -> ValidationResult:
        if shape.messages:
            messages = tuple(shape.messages)
        else:
            messages = (Literal(message if message is not None else self.default_message()),)
        return ValidationResult(
            source_shape=shape.id,
            source_constraint_component=component or self.component,
            focus_node=focus_node,
            result_path=path if path is not None else shape.path,
            value=value,
            messages=messages,
            severity=shape.severity,
        )


def _engine(engine: ValidationEngine | None) -> ValidationEngine:
    return engine if engine is not None else ValidationEngine()


# ===========================================================================
# Logical constraints
# ===========================================================================

@dataclass(frozen=True)
class AndConstraint(Constraint):
    """sh:and — each value node conforms to every listed shape."""
    shapes: tuple[Node, ...] = ()
    component: ClassVar[URIRef] = SH.AndConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "shapes", _shape_refs(self.shapes, "AndConstraint"))

    def default_message(self) -> str:
        return "Value does not have all the shapes in sh:and enumeration"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        engine = _engine(engine)
        report = ValidationReport()
        members = [s for s in (_resolve(shapes_graph, r, self) for r in self.shapes) if s is not None]
        if not members:
            return report
        for value_node in value_nodes:
            conforms = all(
                engine.validate_shape(shapes_graph, data_graph, member, [value_node]).conforms
                for member in members
            )
            if not conforms:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH["and"], _list_node(g, self.shapes)))
        return g


@dataclass(frozen=True)
class OrConstraint(Constraint):
    """sh:or — each value node conforms to at least one listed shape."""
    shapes: tuple[Node, ...] = ()
    component: ClassVar[URIRef] = SH.OrConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "shapes", _shape_refs(self.shapes, "OrConstraint"))

    def default_message(self) -> str:
        return "Value does not have any of the shapes in sh:or enumeration"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        engine = _engine(engine)
        report = ValidationReport()
        members = [s for s in (_resolve(shapes_graph, r, self) for r in self.shapes) if s is not None]
        if not members:
            return report
        for value_node in value_nodes:
            conforms = any(
                engine.validate_shape(shapes_graph, data_graph, member, [value_node]).conforms
                for member in members
            )
            if not conforms:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH["or"], _list_node(g, self.shapes)))
        return g


@dataclass(frozen=True)
class XoneConstraint(Constraint):
    """sh:xone — each value node conforms to exactly one listed shape."""
    shapes: tuple[Node, ...] = ()
    component: ClassVar[URIRef] = SH.XoneConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "shapes", _shape_refs(self.shapes, "XoneConstraint"))

    def default_message(self) -> str:
        return "Value does not have exactly one of the shapes in sh:xone enumeration"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        engine = _engine(engine)
        report = ValidationReport()
        members = [s for s in (_resolve(shapes_graph, r, self) for r in self.shapes) if s is not None]
        if not members:
            return report
        for value_node in value_nodes:
            conforming = sum(
                1 for member in members
                if engine.validate_shape(shapes_graph, data_graph, member, [value_node]).conforms
            )
            if conforming != 1:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.xone, _list_node(g, self.shapes)))
        return g


@dataclass(frozen=True)
class NotConstraint(Constraint):
    """sh:not — no value node may conform to the referenced shape."""
    shape: Node
    component: ClassVar[URIRef] = SH.NotConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", _shape_ref(self.shape, "NotConstraint"))

    def default_message(self) -> str:
        return f"Value does have shape <{self.shape}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        engine = _engine(engine)
        report = ValidationReport()
        negated = _resolve(shapes_graph, self.shape, self)
        if negated is None:
            return report
        for value_node in value_nodes:
            if engine.validate_shape(shapes_graph, data_graph, negated, [value_node]).conforms:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH["not"], self.shape))
        return g


# ===========================================================================
# Shape-based constraints
# ===========================================================================

@dataclass(frozen=True)
class NodeConstraint(Constraint):
    """sh:node — each value node conforms to the referenced node shape.

    On failure the nested results are kept alongside this constraint's own.
    """
    shape: Node
    component: ClassVar[URIRef] = SH.NodeConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", _shape_ref(self.shape, "NodeConstraint"))

    def default_message(self) -> str:
        return f"Value does not have shape <{self.shape}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        engine = _engine(engine)
        report = ValidationReport()
        node_shape = _resolve(shapes_graph, self.shape, self)
        if node_shape is None:
            return report
        for value_node in value_nodes:
            nested = engine.validate_shape(shapes_graph, data_graph, node_shape, [value_node])
            if not nested.conforms:
                report.add_result(self._result(shape, focus_node, value_node))
                report.merge(nested)
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.node, self.shape))
        return g


@dataclass(frozen=True)
class PropertyConstraint(Constraint):
    """sh:property — the value nodes become focus nodes of the property shape.

    The property shape's report is passed through unchanged.
    """
    shape: Node
    component: ClassVar[URIRef] = SH.PropertyConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", _shape_ref(self.shape, "PropertyConstraint"))

    def default_message(self) -> str:
        return f"Value does not conform to property shape <{self.shape}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        property_shape = _resolve(shapes_graph, self.shape, self)
        if property_shape is None:
            return ValidationReport()
        return _engine(engine).validate_shape(shapes_graph, data_graph, property_shape, value_nodes)

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.property, self.shape))
        return g


@dataclass(frozen=True)
class QualifiedValueShapeConstraint(Constraint):
    """sh:qualifiedValueShape with sh:qualifiedMinCount / sh:qualifiedMaxCount.

    Counts the value nodes that conform to the referenced shape; the two
    bounds are checked independently. SHACL has no component of its own
    for the shape parameter, so results carry the min or max component.
    """
    shape: Node
    min_count: int | None = None
    max_count: int | None = None
    component: ClassVar[URIRef] = SH.QualifiedMinCountConstraintComponent
    max_component: ClassVar[URIRef] = SH.QualifiedMaxCountConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", _shape_ref(self.shape, "QualifiedValueShapeConstraint"))
        object.__setattr__(self, "min_count", _clamp(
            self.min_count, "QualifiedValueShapeConstraint", "sh:qualifiedMinCount", optional=True))
        object.__setattr__(self, "max_count", _clamp(
            self.max_count, "QualifiedValueShapeConstraint", "sh:qualifiedMaxCount", optional=True))

    def default_message(self) -> str:
        return f"Value count does not match the qualified shape <{self.shape}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        engine = _engine(engine)
        report = ValidationReport()
        if self.min_count is None and self.max_count is None:
            return report
        qualified = _resolve(shapes_graph, self.shape, self)
        if qualified is None:
            return report

        conforming = sum(
            1 for value_node in value_nodes
            if engine.validate_shape(shapes_graph, data_graph, qualified, [value_node]).conforms
        )
        if self.min_count is not None and conforming < self.min_count:
            report.add_result(self._result(
                shape, focus_node,
                component=self.component,
                message=f"Must have a minimum of {self.min_count} conforming values "
                        f"for the shape <{self.shape}>",
            ))
        if self.max_count is not None and conforming > self.max_count:
            report.add_result(self._result(
                shape, focus_node,
                component=self.max_component,
                message=f"Must have a maximum of {self.max_count} conforming values "
                        f"for the shape <{self.shape}>",
            ))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.qualifiedValueShape, self.shape))
        if self.min_count is not None:
            g.add((shape.id, SH.qualifiedMinCount, _integer(self.min_count)))
        if self.max_count is not None:
            g.add((shape.id, SH.qualifiedMaxCount, _integer(self.max_count)))
        return g


# ===========================================================================
# Value type constraints
# ===========================================================================

@dataclass(frozen=True)
class ClassConstraint(Constraint):
    """sh:class — resource value nodes must be instances of the class."""
    class_iri: URIRef
    component: ClassVar[URIRef] = SH.ClassConstraintComponent

    def __post_init__(self) -> None:
        _iri(self.class_iri, "ClassConstraint", "class")

    def default_message(self) -> str:
        return f"Value does not have class <{self.class_iri}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        engine = _engine(engine)
        report = ValidationReport()
        instances: set[Node] | None = None
        for value_node in value_nodes:
            if is_literal(value_node):
                report.add_result(self._result(shape, focus_node, value_node))
                continue
            if instances is None:
                instances = set(instances_of(
                    data_graph, self.class_iri, engine.config.follow_subclasses
                ))
            if value_node not in instances:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH["class"], self.class_iri))
        return g


@dataclass(frozen=True)
class DatatypeConstraint(Constraint):
    """sh:datatype — literal value nodes must carry the datatype.

    A plain literal counts as xsd:string when it has no language tag and as
    rdf:langString when it has one.
    """
    datatype: URIRef
    component: ClassVar[URIRef] = SH.DatatypeConstraintComponent

    def __post_init__(self) -> None:
        _iri(self.datatype, "DatatypeConstraint", "datatype")

    def default_message(self) -> str:
        return f"Must have values of datatype <{self.datatype}>"

    def _accepts(self, value_node: Node) -> bool:
        if not is_literal(value_node):
            return False
        if is_plain_literal(value_node):
            if value_node.language:
                return self.datatype == RDF.langString
            return self.datatype == XSD.string
        return value_node.datatype == self.datatype

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if not self._accepts(value_node):
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.datatype, self.datatype))
        return g


@dataclass(frozen=True)
class NodeKindConstraint(Constraint):
    """sh:nodeKind — value nodes must be of the declared kind."""
    node_kind: NodeKind
    component: ClassVar[URIRef] = SH.NodeKindConstraintComponent

    def __post_init__(self) -> None:
        if not isinstance(self.node_kind, NodeKind):
            raise ShapeModelError(f"NodeKindConstraint requires a NodeKind, got {self.node_kind!r}")

    def default_message(self) -> str:
        return f"Must have values of node kind <{self.node_kind.value}>"

    def _accepts(self, value_node: Node) -> bool:
        if is_blank(value_node):
            return self.node_kind.allows_blank_node
        if is_literal(value_node):
            return self.node_kind.allows_literal
        return self.node_kind.allows_iri

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if not self._accepts(value_node):
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.nodeKind, self.node_kind.value))
        return g


# ===========================================================================
# Cardinality constraints
# ===========================================================================

@dataclass(frozen=True)
class MinCountConstraint(Constraint):
    """sh:minCount — at least ``min_count`` value nodes."""
    min_count: int
    component: ClassVar[URIRef] = SH.MinCountConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "min_count", _clamp(
            self.min_count, "MinCountConstraint", "sh:minCount"))

    def default_message(self) -> str:
        return f"Must have a minimum of {self.min_count} occurrences"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        if len(value_nodes) < self.min_count:
            report.add_result(self._result(shape, focus_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.minCount, _integer(self.min_count)))
        return g


@dataclass(frozen=True)
class MaxCountConstraint(Constraint):
    """sh:maxCount — at most ``max_count`` value nodes."""
    max_count: int
    component: ClassVar[URIRef] = SH.MaxCountConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_count", _clamp(
            self.max_count, "MaxCountConstraint", "sh:maxCount"))

    def default_message(self) -> str:
        return f"Must have a maximum of {self.max_count} occurrences"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        if len(value_nodes) > self.max_count:
            report.add_result(self._result(shape, focus_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.maxCount, _integer(self.max_count)))
        return g


# ===========================================================================
# Value range constraints
# ===========================================================================

@dataclass(frozen=True)
class _RangeConstraint(Constraint):
    """Compares every value node against a literal bound."""
    value: Literal
    predicate: ClassVar[URIRef]
    accepted: ClassVar[frozenset[Comparison]]
    label: ClassVar[str]

    def __post_init__(self) -> None:
        if not isinstance(self.value, Literal):
            raise ShapeModelError(
                f"{type(self).__name__} requires a literal bound, got {self.value!r}"
            )

    def default_message(self) -> str:
        return f"Must have values {self.label} <{self.value}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if compare(value_node, self.value) not in self.accepted:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, self.predicate, self.value))
        return g


@dataclass(frozen=True)
class MinExclusiveConstraint(_RangeConstraint):
    component: ClassVar[URIRef] = SH.MinExclusiveConstraintComponent
    predicate: ClassVar[URIRef] = SH.minExclusive
    accepted: ClassVar[frozenset[Comparison]] = frozenset({Comparison.GREATER})
    label: ClassVar[str] = "greater than"


@dataclass(frozen=True)
class MinInclusiveConstraint(_RangeConstraint):
    component: ClassVar[URIRef] = SH.MinInclusiveConstraintComponent
    predicate: ClassVar[URIRef] = SH.minInclusive
    accepted: ClassVar[frozenset[Comparison]] = frozenset({Comparison.GREATER, Comparison.EQUAL})
    label: ClassVar[str] = "greater or equal than"


@dataclass(frozen=True)
class MaxExclusiveConstraint(_RangeConstraint):
    component: ClassVar[URIRef] = SH.MaxExclusiveConstraintComponent
    predicate: ClassVar[URIRef] = SH.maxExclusive
    accepted: ClassVar[frozenset[Comparison]] = frozenset({Comparison.LESS})
    label: ClassVar[str] = "lower than"


@dataclass(frozen=True)
class MaxInclusiveConstraint(_RangeConstraint):
    component: ClassVar[URIRef] = SH.MaxInclusiveConstraintComponent
    predicate: ClassVar[URIRef] = SH.maxInclusive
    accepted: ClassVar[frozenset[Comparison]] = frozenset({Comparison.LESS, Comparison.EQUAL})
    label: ClassVar[str] = "lower or equal than"


# ===========================================================================
# String-based constraints
# ===========================================================================

@dataclass(frozen=True)
class MinLengthConstraint(Constraint):
    """sh:minLength — blank nodes always fail; a bound of 0 is no minimum."""
    min_length: int
    component: ClassVar[URIRef] = SH.MinLengthConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "min_length", _clamp(
            self.min_length, "MinLengthConstraint", "sh:minLength"))

    def default_message(self) -> str:
        return (f"Must have a minimum length of {self.min_length} characters "
                f"and can't be a blank node")

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            too_short = self.min_length > 0 and len(lexical_form(value_node)) < self.min_length
            if is_blank(value_node) or too_short:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.minLength, _integer(self.min_length)))
        return g


@dataclass(frozen=True)
class MaxLengthConstraint(Constraint):
    """sh:maxLength — blank nodes always fail."""
    max_length: int
    component: ClassVar[URIRef] = SH.MaxLengthConstraintComponent

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_length", _clamp(
            self.max_length, "MaxLengthConstraint", "sh:maxLength"))

    def default_message(self) -> str:
        return (f"Must have a maximum length of {self.max_length} characters "
                f"and can't be a blank node")

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if is_blank(value_node) or len(lexical_form(value_node)) > self.max_length:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.maxLength, _integer(self.max_length)))
        return g


# sh:flags letters understood by the pattern constraint
_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "s": re.DOTALL,
    "m": re.MULTILINE,
    "x": re.VERBOSE,
}


@dataclass(frozen=True)
class PatternConstraint(Constraint):
    """sh:pattern / sh:flags — value nodes must match the regular expression.

    Matching searches anywhere in the string (SPARQL ``regex``); anchor the
    expression to match the whole value. Blank nodes always fail.
    """
    pattern: str
    flags: str | None = None
    regex: re.Pattern = field(init=False, repr=False, compare=False)
    component: ClassVar[URIRef] = SH.PatternConstraintComponent

    def __post_init__(self) -> None:
        if not isinstance(self.pattern, str):
            raise ShapeModelError(f"PatternConstraint requires a pattern, got {self.pattern!r}")
        re_flags = 0
        source = str(self.pattern)
        for letter in self.flags or "":
            if letter == "q":
                source = re.escape(source)
            elif letter in _REGEX_FLAGS:
                re_flags |= _REGEX_FLAGS[letter]
            else:
                raise ShapeModelError(f"Unsupported regex flag {letter!r} in {self.flags!r}")
        try:
            compiled = re.compile(source, re_flags)
        except re.error as e:
            raise ShapeModelError(f"Invalid regular expression {self.pattern!r}: {e}") from e
        object.__setattr__(self, "regex", compiled)

    def default_message(self) -> str:
        return f"Must match expression {self.pattern} and can't be a blank node"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if is_blank(value_node) or self.regex.search(lexical_form(value_node)) is None:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.pattern, Literal(self.pattern)))
        if self.flags:
            g.add((shape.id, SH.flags, Literal(self.flags)))
        return g


_LANGUAGE_TAG = re.compile(r"^[a-zA-Z]{1,8}(-[a-zA-Z0-9]{1,8})*$")


@dataclass(frozen=True)
class LanguageInConstraint(Constraint):
    """sh:languageIn — plain literal value nodes must match a listed language.

    ``""`` admits literals without a language, ``"*"`` admits any language.
    Malformed tags are dropped at construction.
    """
    languages: tuple[str, ...] = ()
    component: ClassVar[URIRef] = SH.LanguageInConstraintComponent

    def __post_init__(self) -> None:
        kept: list[str] = []
        for tag in self.languages or ():
            tag = (str(tag) if tag is not None else "").strip()
            if tag in ("", "*") or _LANGUAGE_TAG.match(tag):
                if tag.lower() not in (k.lower() for k in kept):
                    kept.append(tag)
        object.__setattr__(self, "languages", tuple(kept))

    def default_message(self) -> str:
        return "Not a language from the sh:languageIn enumeration"

    def _accepts(self, value_node: Node) -> bool:
        if not is_plain_literal(value_node):
            return False
        return any(lang_matches(value_node.language, tag) for tag in self.languages)

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if not self._accepts(value_node):
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        tags = [Literal(tag) for tag in self.languages]
        g.add((shape.id, SH.languageIn, _list_node(g, tags)))
        return g


@dataclass(frozen=True)
class UniqueLangConstraint(Constraint):
    """sh:uniqueLang — no language tag may occur twice among the value nodes.

    Emits one result per duplicated tag.
    """
    enabled: bool = True
    component: ClassVar[URIRef] = SH.UniqueLangConstraintComponent

    def default_message(self) -> str:
        return "Must not have the same language tag more than one time per value"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        if not self.enabled:
            return report
        counts: dict[str, int] = {}
        for value_node in value_nodes:
            if is_plain_literal(value_node) and value_node.language:
                tag = value_node.language.lower()
                counts[tag] = counts.get(tag, 0) + 1
        for tag, count in counts.items():
            if count > 1:
                logger.debug("Language tag %r repeated %d times on %s", tag, count, focus_node)
                report.add_result(self._result(shape, focus_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.uniqueLang, _boolean(self.enabled)))
        return g


# ===========================================================================
# Property pair constraints
# ===========================================================================

@dataclass(frozen=True)
class EqualsConstraint(Constraint):
    """sh:equals — value nodes and objects of the predicate must coincide.

    Each unmatched element on either side yields one result.
    """
    predicate: URIRef
    component: ClassVar[URIRef] = SH.EqualsConstraintComponent

    def __post_init__(self) -> None:
        _iri(self.predicate, "EqualsConstraint", "predicate")

    def default_message(self) -> str:
        return f"Must have same values as property <{self.predicate}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        others = objects_of(data_graph, focus_node, self.predicate)
        for other in others:
            if other not in value_nodes:
                report.add_result(self._result(shape, focus_node, other))
        for value_node in value_nodes:
            if value_node not in others:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.equals, self.predicate))
        return g


@dataclass(frozen=True)
class DisjointConstraint(Constraint):
    """sh:disjoint — no value node may also be an object of the predicate."""
    predicate: URIRef
    component: ClassVar[URIRef] = SH.DisjointConstraintComponent

    def __post_init__(self) -> None:
        _iri(self.predicate, "DisjointConstraint", "predicate")

    def default_message(self) -> str:
        return f"Must not have common values with property <{self.predicate}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if (focus_node, self.predicate, value_node) in data_graph:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.disjoint, self.predicate))
        return g


@dataclass(frozen=True)
class LessThanConstraint(Constraint):
    """sh:lessThan — every value node is less than every object of the predicate.

    Incomparable pairs are violations; one result per failing pair.
    """
    predicate: URIRef
    component: ClassVar[URIRef] = SH.LessThanConstraintComponent
    accepted: ClassVar[frozenset[Comparison]] = frozenset({Comparison.LESS})

    def __post_init__(self) -> None:
        _iri(self.predicate, type(self).__name__, "predicate")

    def default_message(self) -> str:
        return f"Must have values less than values of property <{self.predicate}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        others = objects_of(data_graph, focus_node, self.predicate)
        for value_node in value_nodes:
            for other in others:
                if compare(value_node, other) not in self.accepted:
                    report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.lessThan, self.predicate))
        return g


@dataclass(frozen=True)
class LessThanOrEqualsConstraint(LessThanConstraint):
    """sh:lessThanOrEquals — as sh:lessThan, equality allowed."""
    component: ClassVar[URIRef] = SH.LessThanOrEqualsConstraintComponent
    accepted: ClassVar[frozenset[Comparison]] = frozenset({Comparison.LESS, Comparison.EQUAL})

    def default_message(self) -> str:
        return f"Must have values less or equal than values of property <{self.predicate}>"

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.lessThanOrEquals, self.predicate))
        return g


# ===========================================================================
# Other constraints
# ===========================================================================

@dataclass(frozen=True)
class HasValueConstraint(Constraint):
    """sh:hasValue — the value must be among the value nodes (one result at most)."""
    value: Node
    component: ClassVar[URIRef] = SH.HasValueConstraintComponent

    def __post_init__(self) -> None:
        if not isinstance(self.value, (URIRef, BNode, Literal)):
            raise ShapeModelError(f"HasValueConstraint requires a term, got {self.value!r}")

    def default_message(self) -> str:
        return f"Does not have value <{self.value}>"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        if self.value not in value_nodes:
            report.add_result(self._result(shape, focus_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.hasValue, self.value))
        return g


@dataclass(frozen=True)
class InConstraint(Constraint):
    """sh:in — each value node must be one of the listed terms."""
    values: tuple[Node, ...] = ()
    component: ClassVar[URIRef] = SH.InConstraintComponent

    def __post_init__(self) -> None:
        kept: list[Node] = []
        for value in self.values or ():
            if not isinstance(value, (URIRef, BNode, Literal)):
                raise ShapeModelError(f"InConstraint accepts terms only, got {value!r}")
            if value not in kept:
                kept.append(value)
        object.__setattr__(self, "values", tuple(kept))

    def default_message(self) -> str:
        return "Value is not in the sh:in enumeration"

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        for value_node in value_nodes:
            if value_node not in self.values:
                report.add_result(self._result(shape, focus_node, value_node))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH["in"], _list_node(g, self.values)))
        return g


@dataclass(frozen=True)
class ClosedConstraint(Constraint):
    """sh:closed / sh:ignoredProperties.

    A closed shape admits only the ignored properties and the paths of its
    own sh:property shapes. Each offending triple of a resource value node
    yields one result whose focus node is that value node, whose path is
    the offending predicate and whose value is the offending object.
    """
    closed: bool = True
    ignored_properties: tuple[URIRef, ...] = ()
    component: ClassVar[URIRef] = SH.ClosedConstraintComponent

    def __post_init__(self) -> None:
        kept: list[URIRef] = []
        for prop in self.ignored_properties or ():
            prop = _iri(prop, "ClosedConstraint", "ignored property")
            if prop not in kept:
                kept.append(prop)
        object.__setattr__(self, "ignored_properties", tuple(kept))

    def default_message(self) -> str:
        return "Predicate is not allowed (closed shape)"

    def allowed_properties(self, shapes_graph: ShapesGraph, shape: Shape) -> set[Node]:
        allowed: set[Node] = set(self.ignored_properties)
        for constraint in shape.constraints:
            if isinstance(constraint, PropertyConstraint):
                property_shape = shapes_graph.select(constraint.shape)
                if property_shape is not None and property_shape.is_property_shape:
                    allowed.add(property_shape.path)
        return allowed

    def validate(self, shapes_graph, data_graph, shape, focus_node, value_nodes, engine=None):
        report = ValidationReport()
        if not self.closed:
            return report
        allowed = self.allowed_properties(shapes_graph, shape)
        for value_node in value_nodes:
            if not is_resource(value_node):
                continue
            for _, predicate, obj in data_graph.triples((value_node, None, None)):
                if predicate not in allowed:
                    report.add_result(self._result(
                        shape, value_node, obj,
                        message=f"Predicate <{predicate}> is not allowed (closed shape)",
                        path=predicate,
                    ))
        return report

    def to_graph(self, shape):
        g = _shape_graph()
        g.add((shape.id, SH.closed, _boolean(self.closed)))
        g.add((shape.id, SH.ignoredProperties, _list_node(g, self.ignored_properties)))
        return g


# ---------------------------------------------------------------------------
# The closed set of constraint kinds
# ---------------------------------------------------------------------------

CONSTRAINT_TYPES: tuple[type[Constraint], ...] = (
    AndConstraint,
    OrConstraint,
    XoneConstraint,
    NotConstraint,
    NodeConstraint,
    PropertyConstraint,
    QualifiedValueShapeConstraint,
    ClassConstraint,
    DatatypeConstraint,
    NodeKindConstraint,
    MinCountConstraint,
    MaxCountConstraint,
    MinExclusiveConstraint,
    MinInclusiveConstraint,
    MaxExclusiveConstraint,
    MaxInclusiveConstraint,
    MinLengthConstraint,
    MaxLengthConstraint,
    PatternConstraint,
    LanguageInConstraint,
    UniqueLangConstraint,
    EqualsConstraint,
    DisjointConstraint,
    LessThanConstraint,
    LessThanOrEqualsConstraint,
    HasValueConstraint,
    InConstraint,
    ClosedConstraint,
)
