"""Core types for shaclcore — enums and the model error.

Everything here is a plain value: severities, node kinds, shape kinds, the
four-state comparison outcome and the recursion policy of the engine. The
SHACL-facing enums carry their vocabulary IRI as the enum value so that
they can be written back into a graph without a lookup table.
"""

from __future__ import annotations

from enum import Enum

from rdflib import Namespace, URIRef
from rdflib.namespace import SH


# Namespace for identifiers minted by this package (not part of SHACL)
SHACLCORE = Namespace("urn:shaclcore:")


# ---------------------------------------------------------------------------
# ShapeModelError: construction-time failure
# ---------------------------------------------------------------------------

class ShapeModelError(ValueError):
    """Raised when a shape or constraint is built from invalid parameters.

    Validation itself never raises this: malformed shapes are rejected
    while the shapes graph is being assembled.
    """


# ---------------------------------------------------------------------------
# Severity: sh:severity
# ---------------------------------------------------------------------------

class Severity(Enum):
    """SHACL severity levels. Carried through to results unchanged."""
    VIOLATION = SH.Violation
    WARNING = SH.Warning
    INFO = SH.Info

    @classmethod
    def from_iri(cls, iri: URIRef) -> Severity:
        for member in cls:
            if member.value == iri:
                return member
        raise ShapeModelError(f"Unknown severity: {iri}")


# ---------------------------------------------------------------------------
# NodeKind: sh:nodeKind
# ---------------------------------------------------------------------------

class NodeKind(Enum):
    """The six node kinds admitted by sh:nodeKind."""
    IRI = SH.IRI
    BLANK_NODE = SH.BlankNode
    LITERAL = SH.Literal
    BLANK_NODE_OR_IRI = SH.BlankNodeOrIRI
    BLANK_NODE_OR_LITERAL = SH.BlankNodeOrLiteral
    IRI_OR_LITERAL = SH.IRIOrLiteral

    @classmethod
    def from_iri(cls, iri: URIRef) -> NodeKind:
        for member in cls:
            if member.value == iri:
                return member
        raise ShapeModelError(f"Unknown node kind: {iri}")

    @property
    def allows_iri(self) -> bool:
        return self in (NodeKind.IRI, NodeKind.BLANK_NODE_OR_IRI, NodeKind.IRI_OR_LITERAL)

    @property
    def allows_blank_node(self) -> bool:
        return self in (NodeKind.BLANK_NODE, NodeKind.BLANK_NODE_OR_IRI,
                        NodeKind.BLANK_NODE_OR_LITERAL)

    @property
    def allows_literal(self) -> bool:
        return self in (NodeKind.LITERAL, NodeKind.BLANK_NODE_OR_LITERAL,
                        NodeKind.IRI_OR_LITERAL)


# ---------------------------------------------------------------------------
# ShapeKind: node shape vs property shape
# ---------------------------------------------------------------------------

class ShapeKind(Enum):
    NODE = SH.NodeShape
    PROPERTY = SH.PropertyShape


# ---------------------------------------------------------------------------
# Comparison: outcome of ordering two terms
# ---------------------------------------------------------------------------

class Comparison(Enum):
    """Result of comparing two terms.

    INCOMPARABLE is a first-class outcome, not a failure of the comparator:
    relational constraints treat it as a violation.
    """
    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"
    INCOMPARABLE = "incomparable"


# ---------------------------------------------------------------------------
# RecursionPolicy: what the engine does on a shape-reference cycle
# ---------------------------------------------------------------------------

class RecursionPolicy(Enum):
    CONFORM = "conform"  # re-entered (shape, focus) pair is vacuously conformant
    REPORT = "report"    # re-entry produces a single recursion result


RECURSION_COMPONENT = SHACLCORE.ShapeRecursionConstraintComponent
