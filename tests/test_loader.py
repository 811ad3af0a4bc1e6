"""Tests for reading shapes back from RDF."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from rdflib import BNode, Graph, Literal, Namespace, RDF, URIRef
from rdflib.namespace import SH, XSD

from shaclcore.constraints import (
    AndConstraint,
    ClassConstraint,
    ClosedConstraint,
    DatatypeConstraint,
    EqualsConstraint,
    HasValueConstraint,
    InConstraint,
    LanguageInConstraint,
    LessThanConstraint,
    MaxCountConstraint,
    MinCountConstraint,
    MinInclusiveConstraint,
    MaxLengthConstraint,
    NodeConstraint,
    NodeKindConstraint,
    NotConstraint,
    OrConstraint,
    PatternConstraint,
    PropertyConstraint,
    QualifiedValueShapeConstraint,
    UniqueLangConstraint,
    XoneConstraint,
)
from shaclcore.engine import validate
from shaclcore.loader import shape_from_graph, shapes_from_graph
from shaclcore.shapes import Shape, ShapesGraph
from shaclcore.types import NodeKind, Severity, ShapeKind, ShapeModelError


EX = Namespace("http://example.org/")

PREFIXES = """
@prefix sh: <http://www.w3.org/ns/shacl#> .
@prefix ex: <http://example.org/> .
@prefix rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .
"""

PERSON_SHAPES = PREFIXES + """
ex:PersonShape a sh:NodeShape ;
    sh:closed true ;
    sh:ignoredProperties ( rdf:type ) ;
    sh:property [
        sh:path ex:name ;
        sh:minCount 1 ;
        sh:datatype xsd:string ;
    ] ;
    sh:property [
        sh:path ex:age ;
        sh:maxCount 1 ;
        sh:minInclusive 0 ;
    ] .
"""

PEOPLE = PREFIXES + """
ex:alice ex:name "Alice" ; ex:age 30 .
ex:bob ex:age -1 ; ex:nickname "Bobby" .
"""


def _parse(text: str) -> Graph:
    return Graph().parse(data=text, format="turtle")


def _rich_shapes() -> ShapesGraph:
    """One shape per constraint family, wired through references."""
    name = (
        Shape.property_shape(EX.NameShape, EX.name)
        .add_constraint(MinCountConstraint(1))
        .add_constraint(MaxLengthConstraint(40))
        .add_constraint(PatternConstraint("^[A-Z]", "i"))
        .add_constraint(LanguageInConstraint(("en", "*")))
        .add_constraint(UniqueLangConstraint())
        .add_name("name")
        .add_description(Literal("Given name", lang="en"))
        .set_order(1)
        .set_group(EX.Names)
    )
    age = (
        Shape.property_shape(EX.AgeShape, EX.age)
        .add_constraint(DatatypeConstraint(XSD.integer))
        .add_constraint(MinInclusiveConstraint(Literal(0)))
        .add_constraint(LessThanConstraint(EX.maxAge))
        .add_constraint(EqualsConstraint(EX.years))
        .set_severity(Severity.WARNING)
    )
    adult = Shape.node_shape(EX.AdultShape).add_constraint(PropertyConstraint(EX.AgeShape))
    person = (
        Shape.node_shape(EX.PersonShape)
        .add_constraint(ClassConstraint(EX.Person))
        .add_constraint(NodeKindConstraint(NodeKind.IRI))
        .add_constraint(PropertyConstraint(EX.NameShape))
        .add_constraint(AndConstraint((EX.AdultShape,)))
        .add_constraint(OrConstraint((EX.AdultShape, EX.NameShape)))
        .add_constraint(XoneConstraint(()))
        .add_constraint(NotConstraint(EX.ChildShape))
        .add_constraint(NodeConstraint(EX.AdultShape))
        .add_constraint(QualifiedValueShapeConstraint(EX.AdultShape, min_count=1))
        .add_constraint(ClosedConstraint(True, (RDF.type,)))
        .add_constraint(HasValueConstraint(EX.alice))
        .add_constraint(InConstraint((EX.alice, EX.bob, Literal("carol"))))
        .add_message("Not a person")
        .deactivate()
    )
    child = Shape.node_shape(EX.ChildShape)
    return (
        ShapesGraph()
        .add_shape(name).add_shape(age).add_shape(adult).add_shape(person).add_shape(child)
    )


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

class TestRoundTrip:
    def test_shapes_survive_round_trip(self):
        original = _rich_shapes()
        loaded = shapes_from_graph(original.to_graph())
        assert {str(s.id) for s in loaded} == {str(s.id) for s in original}
        for shape in original:
            other = loaded.select(shape.id)
            assert other.kind == shape.kind
            assert other.path == shape.path
            assert other.severity == shape.severity
            assert other.deactivated == shape.deactivated
            assert other.messages == shape.messages
            assert set(other.constraints) == set(shape.constraints)

    def test_annotations_survive(self):
        loaded = shapes_from_graph(_rich_shapes().to_graph())
        name = loaded.select(EX.NameShape)
        assert name.names == [Literal("name")]
        assert name.descriptions == [Literal("Given name", lang="en")]
        assert name.order == Literal(1, datatype=XSD.integer)
        assert name.group == EX.Names

    def test_graph_round_trip_is_stable(self):
        once = shapes_from_graph(_rich_shapes().to_graph())
        twice = shapes_from_graph(once.to_graph())
        for shape in once:
            assert set(twice.select(shape.id).constraints) == set(shape.constraints)


# ---------------------------------------------------------------------------
# Turtle input
# ---------------------------------------------------------------------------

class TestTurtle:
    def test_blank_node_property_shapes(self):
        shapes = shapes_from_graph(_parse(PERSON_SHAPES))
        assert len(shapes) == 3
        person = shapes.select(EX.PersonShape)
        assert person.kind == ShapeKind.NODE
        kinds = sorted(type(c).__name__ for c in person.constraints)
        assert kinds == ["ClosedConstraint", "PropertyConstraint", "PropertyConstraint"]
        property_shapes = [s for s in shapes if s.is_property_shape]
        assert {s.path for s in property_shapes} == {EX.name, EX.age}
        assert all(isinstance(s.id, BNode) for s in property_shapes)

    def test_validate_parsed_data(self):
        shapes = shapes_from_graph(_parse(PERSON_SHAPES))
        data = _parse(PEOPLE)
        assert validate(shapes, data, {EX.PersonShape: [EX.alice]}).conforms

        report = validate(shapes, data, {EX.PersonShape: [EX.bob]})
        components = sorted(str(r.source_constraint_component).rsplit("#", 1)[-1] for r in report)
        assert components == [
            "ClosedConstraintComponent",
            "MinCountConstraintComponent",
            "MinInclusiveConstraintComponent",
        ]

    def test_referenced_shapes_discovered(self):
        g = _parse(PREFIXES + """
            ex:S sh:and ( ex:A ex:B ) ; sh:not ex:C .
            ex:A sh:minCount 1 .
        """)
        shapes = shapes_from_graph(g)
        assert {str(s.id) for s in shapes} == {str(EX.S), str(EX.A), str(EX.B), str(EX.C)}


# ---------------------------------------------------------------------------
# Malformed shapes graphs
# ---------------------------------------------------------------------------

class TestMalformed:
    @pytest.mark.parametrize("body", [
        'ex:S a sh:NodeShape ; sh:minCount "one" .',
        'ex:S sh:path "name" .',
        "ex:S sh:path [ sh:inversePath ex:p ] .",
        "ex:S a sh:NodeShape ; sh:severity ex:Fatal .",
        'ex:S a sh:NodeShape ; sh:pattern "a" ; sh:flags "z" .',
        "ex:S a sh:NodeShape ; sh:nodeKind ex:Thing .",
        "ex:S a sh:NodeShape ; sh:class \"Person\" .",
        "ex:S a sh:NodeShape ; sh:minExclusive ex:five .",
    ])
    def test_rejected(self, body):
        with pytest.raises(ShapeModelError):
            shapes_from_graph(_parse(PREFIXES + body))

    def test_unknown_vocabulary_ignored(self):
        g = _parse(PREFIXES + "ex:S a sh:NodeShape ; ex:comment \"hello\" .")
        shape = shape_from_graph(g, EX.S)
        assert shape.constraints == []
