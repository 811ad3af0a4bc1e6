"""Validation engine — runs shapes against focus nodes.

For every focus node the engine resolves the shape's value nodes, runs the
shape's constraints in order and concatenates whatever they report.
Constraints that reference other shapes (sh:node, sh:property, sh:and,
sh:or, sh:xone, sh:not, sh:qualifiedValueShape) call back into the engine
they were handed, so nested evaluation shares the same shapes graph, data
graph and configuration.

Recursion guard
---------------
Shape references may form cycles (A --sh:node--> B --sh:node--> A). The
engine is immutable and carries the set of (shape, focus node) pairs that
are currently being evaluated; each nested evaluation runs on a child
engine whose set includes the parent pair. Re-entering a pair that is
already active, or nesting deeper than ``config.max_depth``, is resolved by
``config.recursion_policy`` instead of recursing again.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Iterable

from rdflib import Graph, Literal
from rdflib.term import Node

from .config import DEFAULT_CONFIG, ValidationConfig
from .report import ValidationReport, ValidationResult
from .types import RECURSION_COMPONENT, RecursionPolicy

if TYPE_CHECKING:
    from .shapes import Shape, ShapesGraph

logger = logging.getLogger(__name__)


class ValidationEngine:
    """Evaluates shapes; see the module docstring for the recursion guard."""

    def __init__(
        self,
        config: ValidationConfig | None = None,
        _active: frozenset[tuple[str, Node]] = frozenset(),
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self._active = _active

    @property
    def depth(self) -> int:
        """Number of shape evaluations currently open above this engine."""
        return len(self._active)

    def _enter(self, key: tuple[str, Node]) -> ValidationEngine:
        return ValidationEngine(self.config, self._active | {key})

    def validate_shape(
        self,
        shapes_graph: ShapesGraph,
        data_graph: Graph,
        shape: Shape,
        focus_nodes: Iterable[Node],
    ) -> ValidationReport:
        """Validate ``shape`` against each of ``focus_nodes``."""
        report = ValidationReport()
        if shape.deactivated:
            logger.debug("Shape %s is deactivated, skipping", shape.id)
            return report

        for focus_node in focus_nodes:
            key = (str(shape.id), focus_node)
            if key in self._active:
                logger.warning(
                    "Recursive reference to shape %s on focus node %s", shape.id, focus_node
                )
                report.merge(self._recursion_report(shape, focus_node, "cyclic"))
                continue
            if self.config.max_depth is not None and self.depth >= self.config.max_depth:
                logger.warning(
                    "Shape nesting deeper than %d at shape %s on focus node %s",
                    self.config.max_depth, shape.id, focus_node,
                )
                report.merge(self._recursion_report(shape, focus_node, "too deep"))
                continue

            value_nodes = shape.value_nodes(data_graph, focus_node)
            child = self._enter(key)
            for constraint in shape.constraints:
                report.merge(constraint.validate(
                    shapes_graph, data_graph, shape, focus_node, value_nodes, engine=child,
                ))

        logger.debug(
            "Validated shape %s at depth %d: %d results", shape.id, self.depth, len(report)
        )
        return report

    def _recursion_report(self, shape: Shape, focus_node: Node, reason: str) -> ValidationReport:
        report = ValidationReport()
        if self.config.recursion_policy == RecursionPolicy.REPORT:
            report.add_result(ValidationResult(
                source_shape=shape.id,
                source_constraint_component=RECURSION_COMPONENT,
                focus_node=focus_node,
                result_path=shape.path,
                value=None,
                messages=(Literal(f"Shape reference is {reason}: <{shape.id}>"),),
                severity=shape.severity,
            ))
        return report


# ---------------------------------------------------------------------------
# Convenience entry points
# ---------------------------------------------------------------------------

def validate_shape(
    shapes_graph: ShapesGraph,
    data_graph: Graph,
    shape: Shape,
    focus_nodes: Iterable[Node],
    config: ValidationConfig | None = None,
) -> ValidationReport:
    """Validate one shape against the given focus nodes."""
    return ValidationEngine(config).validate_shape(shapes_graph, data_graph, shape, focus_nodes)


def validate(
    shapes_graph: ShapesGraph,
    data_graph: Graph,
    focus_nodes: Mapping[Node | str, Iterable[Node]] | Iterable[Node],
    config: ValidationConfig | None = None,
) -> ValidationReport:
    """Validate a data graph against a shapes graph.

    ``focus_nodes`` is either a mapping ``{shape id: focus nodes}`` or a
    plain sequence of focus nodes applied to every node shape. Selecting
    focus nodes from shape targets is left to the caller.
    """
    engine = ValidationEngine(config)
    report = ValidationReport()

    if isinstance(focus_nodes, Mapping):
        for shape_id, nodes in focus_nodes.items():
            shape = shapes_graph.select(shape_id)
            if shape is None:
                logger.debug("No shape %s in shapes graph, skipping", shape_id)
                continue
            report.merge(engine.validate_shape(shapes_graph, data_graph, shape, list(nodes)))
        return report

    nodes = list(focus_nodes)
    for shape in shapes_graph:
        if shape.is_property_shape:
            continue
        report.merge(engine.validate_shape(shapes_graph, data_graph, shape, nodes))
    return report
