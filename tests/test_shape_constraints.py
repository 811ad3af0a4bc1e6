"""Tests for constraints that reference other shapes.

Covers sh:and / sh:or / sh:xone / sh:not, sh:node, sh:property,
sh:qualifiedValueShape and sh:closed, including dangling references.
"""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from rdflib import Graph, Literal, Namespace, RDF, URIRef
from rdflib.collection import Collection
from rdflib.namespace import SH, XSD

from shaclcore.constraints import (
    AndConstraint,
    ClosedConstraint,
    InConstraint,
    MinCountConstraint,
    MinInclusiveConstraint,
    NodeConstraint,
    NotConstraint,
    OrConstraint,
    PropertyConstraint,
    QualifiedValueShapeConstraint,
    XoneConstraint,
)
from shaclcore.engine import validate_shape
from shaclcore.shapes import Shape, ShapesGraph
from shaclcore.types import ShapeModelError


EX = Namespace("http://example.org/")


def _ab_shapes() -> ShapesGraph:
    """A admits ex:x and ex:y, B admits ex:y and ex:z."""
    a = Shape.node_shape(EX.A).add_constraint(InConstraint((EX.x, EX.y)))
    b = Shape.node_shape(EX.B).add_constraint(InConstraint((EX.y, EX.z)))
    return ShapesGraph().add_shape(a).add_shape(b)


def _person_shapes() -> ShapesGraph:
    """PersonShape requires an ex:name through NameShape."""
    name = Shape.property_shape(EX.NameShape, EX.name).add_constraint(MinCountConstraint(1))
    person = Shape.node_shape(EX.PersonShape).add_constraint(PropertyConstraint(EX.NameShape))
    return ShapesGraph().add_shape(name).add_shape(person)


def _person_data() -> Graph:
    g = Graph()
    g.add((EX.alice, EX.name, Literal("Alice")))
    g.add((EX.bob, EX.age, Literal(40)))
    return g


def _adult_shapes() -> ShapesGraph:
    """AdultShape: ex:age >= 18."""
    age = Shape.property_shape(EX.AgeShape, EX.age).add_constraint(
        MinInclusiveConstraint(Literal(18))
    )
    adult = Shape.node_shape(EX.AdultShape).add_constraint(PropertyConstraint(EX.AgeShape))
    return ShapesGraph().add_shape(age).add_shape(adult)


def _adult_data() -> Graph:
    g = Graph()
    g.add((EX.p1, EX.age, Literal(20)))
    g.add((EX.p2, EX.age, Literal(30)))
    g.add((EX.p3, EX.age, Literal(10)))
    return g


def _run(constraint, shapes_graph, value_nodes, data=None, focus=EX.focus):
    owner = Shape.node_shape(EX.Owner).add_constraint(constraint)
    shapes_graph.add_shape(owner)
    data = data if data is not None else Graph()
    return constraint.validate(shapes_graph, data, owner, focus, list(value_nodes))


# ---------------------------------------------------------------------------
# Logical constraints
# ---------------------------------------------------------------------------

class TestLogical:
    @pytest.mark.parametrize("value", [EX.x, EX.y, EX.z, EX.w])
    def test_truth_tables(self, value):
        sg = _ab_shapes()
        data = Graph()
        a = validate_shape(sg, data, sg.select(EX.A), [value]).conforms
        b = validate_shape(sg, data, sg.select(EX.B), [value]).conforms

        assert _run(AndConstraint((EX.A, EX.B)), _ab_shapes(), [value]).conforms == (a and b)
        assert _run(OrConstraint((EX.A, EX.B)), _ab_shapes(), [value]).conforms == (a or b)
        assert _run(XoneConstraint((EX.A, EX.B)), _ab_shapes(), [value]).conforms == (a != b)

    def test_and_reports_each_failing_value(self):
        report = _run(AndConstraint((EX.A, EX.B)), _ab_shapes(), [EX.x, EX.y, EX.z])
        assert [r.value for r in report] == [EX.x, EX.z]
        assert all(r.source_constraint_component == SH.AndConstraintComponent for r in report)

    def test_xone_counts_all_members(self):
        c = Shape.node_shape(EX.C).add_constraint(InConstraint((EX.y,)))
        sg = _ab_shapes().add_shape(c)
        # ex:y conforms to A, B and C
        assert not _run(XoneConstraint((EX.A, EX.B, EX.C)), sg, [EX.y]).conforms

    def test_not(self):
        report = _run(NotConstraint(EX.A), _ab_shapes(), [EX.x, EX.w])
        assert [r.value for r in report] == [EX.x]
        assert str(report.results[0].messages[0]) == f"Value does have shape <{EX.A}>"

    def test_nested_results_not_leaked(self):
        report = _run(OrConstraint((EX.A, EX.B)), _ab_shapes(), [EX.w])
        assert len(report) == 1
        assert report.results[0].source_constraint_component == SH.OrConstraintComponent

    def test_dangling_references_are_vacuous(self):
        sg = ShapesGraph()
        assert _run(AndConstraint((EX.Missing,)), sg, [EX.x]).conforms
        assert _run(OrConstraint((EX.Missing,)), sg, [EX.x]).conforms
        assert _run(XoneConstraint((EX.Missing,)), sg, [EX.x]).conforms
        assert _run(NotConstraint(EX.Missing), sg, [EX.x]).conforms

    def test_only_resolvable_members_participate(self):
        assert not _run(AndConstraint((EX.A, EX.Missing)), _ab_shapes(), [EX.z]).conforms

    def test_string_identifiers(self):
        constraint = AndConstraint((str(EX.A), EX.A, EX.B))
        assert constraint.shapes == (EX.A, EX.B)

    def test_invalid_references(self):
        with pytest.raises(ShapeModelError):
            NotConstraint(Literal("A"))
        with pytest.raises(ShapeModelError):
            AndConstraint((EX.A, 42))

    def test_to_graph(self):
        owner = Shape.node_shape(EX.Owner)
        g = XoneConstraint((EX.A, EX.B)).to_graph(owner)
        head = g.value(EX.Owner, SH.xone)
        assert list(Collection(g, head)) == [EX.A, EX.B]
        assert (EX.Owner, SH["not"], EX.A) in NotConstraint(EX.A).to_graph(owner)


# ---------------------------------------------------------------------------
# sh:node and sh:property
# ---------------------------------------------------------------------------

class TestNodeAndProperty:
    def test_node_conforms(self):
        report = _run(NodeConstraint(EX.PersonShape), _person_shapes(), [EX.alice], _person_data())
        assert report.conforms

    def test_node_failure_keeps_nested_results(self):
        report = _run(
            NodeConstraint(EX.PersonShape), _person_shapes(), [EX.alice, EX.bob], _person_data()
        )
        assert len(report) == 2
        own, nested = report.results
        assert own.source_constraint_component == SH.NodeConstraintComponent
        assert own.value == EX.bob
        assert own.focus_node == EX.focus
        assert nested.source_constraint_component == SH.MinCountConstraintComponent
        assert nested.focus_node == EX.bob
        assert nested.result_path == EX.name

    def test_property_passes_report_through(self):
        report = _run(PropertyConstraint(EX.NameShape), _person_shapes(), [EX.alice, EX.bob],
                      _person_data())
        assert len(report) == 1
        result = report.results[0]
        assert result.source_shape == EX.NameShape
        assert result.focus_node == EX.bob

    def test_dangling(self):
        assert _run(NodeConstraint(EX.Missing), ShapesGraph(), [EX.bob]).conforms
        assert _run(PropertyConstraint(EX.Missing), ShapesGraph(), [EX.bob]).conforms

    def test_requires_reference(self):
        with pytest.raises(ShapeModelError):
            NodeConstraint(None)
        with pytest.raises(ShapeModelError):
            PropertyConstraint(Literal(1))


# ---------------------------------------------------------------------------
# sh:qualifiedValueShape
# ---------------------------------------------------------------------------

class TestQualifiedValueShape:
    values = [EX.p1, EX.p2, EX.p3]

    def test_within_bounds(self):
        constraint = QualifiedValueShapeConstraint(EX.AdultShape, min_count=1, max_count=2)
        assert _run(constraint, _adult_shapes(), self.values, _adult_data()).conforms

    def test_above_max(self):
        constraint = QualifiedValueShapeConstraint(EX.AdultShape, min_count=1, max_count=1)
        report = _run(constraint, _adult_shapes(), self.values, _adult_data())
        assert len(report) == 1
        assert report.results[0].source_constraint_component == SH.QualifiedMaxCountConstraintComponent
        assert report.results[0].value is None

    def test_below_min(self):
        constraint = QualifiedValueShapeConstraint(EX.AdultShape, min_count=3)
        report = _run(constraint, _adult_shapes(), self.values, _adult_data())
        assert len(report) == 1
        assert report.results[0].source_constraint_component == SH.QualifiedMinCountConstraintComponent

    def test_both_bounds_fire_independently(self):
        constraint = QualifiedValueShapeConstraint(EX.AdultShape, min_count=3, max_count=1)
        report = _run(constraint, _adult_shapes(), self.values, _adult_data())
        assert [r.source_constraint_component for r in report] == [
            SH.QualifiedMinCountConstraintComponent,
            SH.QualifiedMaxCountConstraintComponent,
        ]

    def test_no_bounds_never_fires(self):
        constraint = QualifiedValueShapeConstraint(EX.AdultShape)
        assert _run(constraint, _adult_shapes(), self.values, _adult_data()).conforms

    def test_clamp(self):
        constraint = QualifiedValueShapeConstraint(EX.AdultShape, min_count=-1, max_count=-5)
        assert constraint.min_count == 0
        assert constraint.max_count == 0

    def test_non_integer_bound_rejected(self):
        with pytest.raises(ShapeModelError):
            QualifiedValueShapeConstraint(EX.AdultShape, min_count="one")
        with pytest.raises(ShapeModelError):
            QualifiedValueShapeConstraint(EX.AdultShape, max_count=EX.many)

    def test_to_graph(self):
        owner = Shape.node_shape(EX.Owner)
        g = QualifiedValueShapeConstraint(EX.AdultShape, min_count=1).to_graph(owner)
        assert (EX.Owner, SH.qualifiedValueShape, EX.AdultShape) in g
        assert (EX.Owner, SH.qualifiedMinCount, Literal(1, datatype=XSD.integer)) in g
        assert g.value(EX.Owner, SH.qualifiedMaxCount) is None


# ---------------------------------------------------------------------------
# sh:closed
# ---------------------------------------------------------------------------

class TestClosed:
    def _shapes(self, closed: bool = True) -> ShapesGraph:
        name = Shape.property_shape(EX.NameShape, EX.name)
        x = (
            Shape.node_shape(EX.XShape)
            .add_constraint(ClosedConstraint(closed, (RDF.type,)))
            .add_constraint(PropertyConstraint(EX.NameShape))
        )
        return ShapesGraph().add_shape(name).add_shape(x)

    def _data(self) -> Graph:
        g = Graph()
        g.add((EX.x, RDF.type, EX.Thing))
        g.add((EX.x, EX.name, Literal("x")))
        g.add((EX.x, EX.extra, Literal("surplus")))
        return g

    def test_offending_predicate_reported(self):
        sg = self._shapes()
        report = validate_shape(sg, self._data(), sg.select(EX.XShape), [EX.x])
        assert len(report) == 1
        result = report.results[0]
        assert result.source_constraint_component == SH.ClosedConstraintComponent
        assert result.focus_node == EX.x
        assert result.result_path == EX.extra
        assert result.value == Literal("surplus")

    def test_open_shape(self):
        sg = self._shapes(closed=False)
        assert validate_shape(sg, self._data(), sg.select(EX.XShape), [EX.x]).conforms

    def test_literals_skipped(self):
        sg = self._shapes()
        shape = sg.select(EX.XShape)
        report = shape.constraints[0].validate(sg, self._data(), shape, EX.x, [Literal("x")])
        assert report.conforms

    def test_ignored_must_be_iris(self):
        with pytest.raises(ShapeModelError):
            ClosedConstraint(True, (Literal("p"),))

    def test_to_graph(self):
        g = ClosedConstraint(True, (RDF.type,)).to_graph(Shape.node_shape(EX.Owner))
        assert (EX.Owner, SH.closed, Literal(True, datatype=XSD.boolean)) in g
        head = g.value(EX.Owner, SH.ignoredProperties)
        assert list(Collection(g, head)) == [RDF.type]
