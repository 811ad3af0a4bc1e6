"""pySHACL bridge — cross-checks shaclcore against a reference validator.

shaclcore has no target selection: callers hand focus nodes to
:func:`shaclcore.engine.validate`. pySHACL does its own target selection,
so this bridge:

  1. serializes the ShapesGraph with :meth:`ShapesGraph.to_graph`
  2. adds one sh:targetNode triple per (shape, focus node) pair
  3. runs pySHACL on the data graph with inference disabled
  4. runs shaclcore on the same inputs
  5. returns both outcomes side by side

Shapes that reference each other cyclically are not supported by pySHACL
and should not be sent through the bridge.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Iterable

from rdflib import Graph, RDF
from rdflib.namespace import SH
from rdflib.term import Node

from .config import ValidationConfig
from .engine import validate
from .report import ValidationReport
from .shapes import ShapesGraph

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ShapesGraph → pySHACL shapes graph
# ---------------------------------------------------------------------------

def shapes_with_targets(
    shapes_graph: ShapesGraph,
    focus_nodes: Mapping[Node | str, Iterable[Node]] | Iterable[Node],
) -> Graph:
    """Serialize ``shapes_graph`` and pin its focus nodes with sh:targetNode.

    ``focus_nodes`` takes the same two forms as :func:`validate`: a mapping
    of shape id to focus nodes, or one sequence used for every node shape.
    """
    sg = shapes_graph.to_graph()
    if isinstance(focus_nodes, Mapping):
        targets = {
            shape_id: list(nodes) for shape_id, nodes in focus_nodes.items()
        }
    else:
        nodes = list(focus_nodes)
        targets = {
            shape.id: nodes for shape in shapes_graph if not shape.is_property_shape
        }

    for shape_id, nodes in targets.items():
        shape = shapes_graph.select(shape_id)
        if shape is None:
            continue
        for node in nodes:
            sg.add((shape.id, SH.targetNode, node))
    return sg


# ---------------------------------------------------------------------------
# Cross validation
# ---------------------------------------------------------------------------

def cross_validate(
    shapes_graph: ShapesGraph,
    data_graph: Graph,
    focus_nodes: Mapping[Node | str, Iterable[Node]] | Iterable[Node],
    config: ValidationConfig | None = None,
) -> CrossValidationResult:
    """Validate with both shaclcore and pySHACL and pair the outcomes."""
    from pyshacl import validate as pyshacl_validate

    if not isinstance(focus_nodes, Mapping):
        focus_nodes = list(focus_nodes)

    report = validate(shapes_graph, data_graph, focus_nodes, config)
    sg = shapes_with_targets(shapes_graph, focus_nodes)

    conforms, results_graph, results_text = pyshacl_validate(
        data_graph,
        shacl_graph=sg,
        inference="none",
        abort_on_first=False,
    )

    results = []
    for result in results_graph.subjects(RDF.type, SH.ValidationResult):
        results.append(PySHACLResult(
            focus_node=results_graph.value(result, SH.focusNode),
            path=results_graph.value(result, SH.resultPath),
            value=results_graph.value(result, SH.value),
            component=results_graph.value(result, SH.sourceConstraintComponent),
            message=str(results_graph.value(result, SH.resultMessage) or ""),
        ))

    outcome = CrossValidationResult(
        report=report,
        pyshacl_conforms=bool(conforms),
        pyshacl_results=results,
        results_text=results_text,
        shapes_graph=sg,
    )
    if not outcome.agrees:
        logger.warning("shaclcore and pySHACL disagree:\n%s", outcome.summary())
    return outcome


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class PySHACLResult:
    """A single result as reported by pySHACL."""
    focus_node: Node | None
    path: Node | None
    value: Node | None
    component: Node | None
    message: str

    def __repr__(self) -> str:
        component = str(self.component).rsplit("#", 1)[-1] if self.component else "?"
        path = f".{self.path}" if self.path is not None else ""
        return f"PySHACLResult({component}: {self.focus_node}{path})"


@dataclass
class CrossValidationResult:
    """shaclcore's report next to pySHACL's verdict on the same inputs."""
    report: ValidationReport
    pyshacl_conforms: bool
    pyshacl_results: list[PySHACLResult] = field(default_factory=list)
    results_text: str = ""
    shapes_graph: Graph | None = None

    @property
    def agrees(self) -> bool:
        """Both validators reach the same conformance verdict."""
        return self.report.conforms == self.pyshacl_conforms

    def components(self) -> tuple[list[str], list[str]]:
        """Sorted component names (local part) reported by shaclcore and pySHACL."""
        ours = sorted(
            str(r.source_constraint_component).rsplit("#", 1)[-1] for r in self.report
        )
        theirs = sorted(
            str(r.component).rsplit("#", 1)[-1] for r in self.pyshacl_results
        )
        return ours, theirs

    def summary(self) -> str:
        lines = []
        lines.append(f"shaclcore: {'CONFORMS' if self.report.conforms else 'DOES NOT CONFORM'}"
                     f" ({len(self.report)} results)")
        lines.append(f"pySHACL:   {'CONFORMS' if self.pyshacl_conforms else 'DOES NOT CONFORM'}"
                     f" ({len(self.pyshacl_results)} results)")
        lines.append("-" * 50)
        ours, theirs = self.components()
        lines.append(f"  shaclcore components: {', '.join(ours) or '-'}")
        lines.append(f"  pySHACL components:   {', '.join(theirs) or '-'}")
        return "\n".join(lines)

    def shapes_as_turtle(self) -> str:
        """Serialize the shapes graph handed to pySHACL as Turtle."""
        if self.shapes_graph is None:
            return ""
        return self.shapes_graph.serialize(format="turtle")
