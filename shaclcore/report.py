"""Validation report and result types.

A report is an ordered list of results; it conforms iff that list is
empty. Severity is carried on each result but never changes conformance:
a single INFO result still makes the report non-conforming.

Reports are created fresh for every top-level call and for every nested
shape evaluation. The only mutation after creation is an explicit
:meth:`ValidationReport.merge`, which copies the other report's results
into this one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from rdflib import BNode, Graph, Literal
from rdflib.namespace import RDF, SH, XSD
from rdflib.term import Node

from .types import Severity


# ---------------------------------------------------------------------------
# ValidationResult
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationResult:
    """One violation: which shape, which constraint kind, where, and why."""
    source_shape: Node
    source_constraint_component: Node
    focus_node: Node
    result_path: Node | None = None
    value: Node | None = None
    messages: tuple[Literal, ...] = ()
    severity: Severity = Severity.VIOLATION

    def __repr__(self) -> str:
        component = str(self.source_constraint_component).rsplit("#", 1)[-1]
        path = f".{self.result_path}" if self.result_path is not None else ""
        value = f" = {self.value!r}" if self.value is not None else ""
        return f"ValidationResult({component}: {self.focus_node}{path}{value})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "focusNode": str(self.focus_node),
            "resultPath": str(self.result_path) if self.result_path is not None else None,
            "value": str(self.value) if self.value is not None else None,
            "sourceShape": str(self.source_shape),
            "sourceConstraintComponent": str(self.source_constraint_component),
            "resultMessage": [str(m) for m in self.messages],
            "resultSeverity": str(self.severity.value),
        }

    def to_graph(self, node: Node | None = None) -> Graph:
        """sh:ValidationResult triples rooted at ``node`` (a fresh blank node by default)."""
        node = node if node is not None else BNode()
        g = Graph()
        g.add((node, RDF.type, SH.ValidationResult))
        g.add((node, SH.resultSeverity, self.severity.value))
        g.add((node, SH.sourceShape, self.source_shape))
        g.add((node, SH.sourceConstraintComponent, self.source_constraint_component))
        g.add((node, SH.focusNode, self.focus_node))
        if self.result_path is not None:
            g.add((node, SH.resultPath, self.result_path))
        if self.value is not None:
            g.add((node, SH.value, self.value))
        for message in self.messages:
            g.add((node, SH.resultMessage, message))
        return g


# ---------------------------------------------------------------------------
# ValidationReport
# ---------------------------------------------------------------------------

@dataclass
class ValidationReport:
    """Ordered collection of results for one validation call."""
    results: list[ValidationResult] = field(default_factory=list)

    @property
    def conforms(self) -> bool:
        return len(self.results) == 0

    def __iter__(self) -> Iterator[ValidationResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def add_result(self, result: ValidationResult) -> None:
        self.results.append(result)

    def merge(self, other: ValidationReport) -> ValidationReport:
        """Append the other report's results to this one and return self."""
        self.results.extend(list(other.results))
        return self

    # -----------------------------------------------------------------------
    # Severity views
    # -----------------------------------------------------------------------

    def violations(self) -> list[ValidationResult]:
        return [r for r in self.results if r.severity == Severity.VIOLATION]

    def warnings(self) -> list[ValidationResult]:
        return [r for r in self.results if r.severity == Severity.WARNING]

    def infos(self) -> list[ValidationResult]:
        return [r for r in self.results if r.severity == Severity.INFO]

    # -----------------------------------------------------------------------
    # Output
    # -----------------------------------------------------------------------

    def summary(self) -> str:
        lines = []
        status = "CONFORMS" if self.conforms else "DOES NOT CONFORM"
        lines.append(f"SHACL Validation: {status}")
        lines.append("-" * 50)
        if self.results:
            lines.append(f"  Results ({len(self.results)}):")
            for r in self.results:
                component = str(r.source_constraint_component).rsplit("#", 1)[-1]
                path = f" [{r.result_path}]" if r.result_path is not None else ""
                message = f": {r.messages[0]}" if r.messages else ""
                lines.append(
                    f"    - {r.severity.name} {component} on {r.focus_node}{path}{message}"
                )
        else:
            lines.append("  No results.")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "conforms": self.conforms,
            "results": [r.to_dict() for r in self.results],
            "violationCount": len(self.violations()),
            "warningCount": len(self.warnings()),
            "infoCount": len(self.infos()),
        }

    def to_graph(self, node: Node | None = None) -> Graph:
        """The report as a sh:ValidationReport graph."""
        node = node if node is not None else BNode()
        g = Graph()
        g.bind("sh", SH)
        g.add((node, RDF.type, SH.ValidationReport))
        g.add((node, SH.conforms, Literal(self.conforms, datatype=XSD.boolean)))
        for result in self.results:
            result_node = BNode()
            g.add((node, SH.result, result_node))
            g += result.to_graph(result_node)
        return g
