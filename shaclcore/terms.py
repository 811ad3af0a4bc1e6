"""Term helpers and the term comparator.

Terms are rdflib terms:

  - ``URIRef``  — an IRI resource
  - ``BNode``   — a blank resource
  - ``Literal`` — plain (no datatype, optionally language-tagged) or typed

The engine needs three things from them: their kind, structural equality
(rdflib provides it), and an ordering that can answer "incomparable".
The ordering lives in :func:`compare`.
"""

from __future__ import annotations

import datetime
import re
from decimal import Decimal
from typing import Iterable

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import OWL, RDF, RDFS, XSD
from rdflib.term import Node

from .types import Comparison


# ---------------------------------------------------------------------------
# Datatype families
# ---------------------------------------------------------------------------

NUMERIC_DATATYPES = frozenset({
    XSD.decimal, XSD.integer, XSD.float, XSD.double,
    XSD.long, XSD.int, XSD.short, XSD.byte,
    XSD.nonNegativeInteger, XSD.positiveInteger,
    XSD.nonPositiveInteger, XSD.negativeInteger,
    XSD.unsignedLong, XSD.unsignedInt, XSD.unsignedShort, XSD.unsignedByte,
})

# Temporal datatypes grouped by kind; only values of the same kind compare.
_TEMPORAL_KINDS = {
    XSD.dateTime: "dateTime",
    XSD.dateTimeStamp: "dateTime",
    XSD.date: "date",
    XSD.time: "time",
    XSD.gYear: "gYear",
    XSD.gYearMonth: "gYearMonth",
}

# rdflib does not map these to date values, so they are read lexically
_TIMEZONE = r"(Z|[+-]\d{2}:\d{2})?"
_GREGORIAN_FORMS = {
    "gYear": re.compile(r"^(-?\d{4,})()" + _TIMEZONE + r"$"),
    "gYearMonth": re.compile(r"^(-?\d{4,})-(\d{2})" + _TIMEZONE + r"$"),
}


# ---------------------------------------------------------------------------
# Kind predicates
# ---------------------------------------------------------------------------

def is_resource(term: Node) -> bool:
    """IRI or blank node."""
    return isinstance(term, (URIRef, BNode))


def is_blank(term: Node) -> bool:
    return isinstance(term, BNode)


def is_literal(term: Node) -> bool:
    return isinstance(term, Literal)


def is_plain_literal(term: Node) -> bool:
    """A literal with a language tag or without any datatype."""
    return isinstance(term, Literal) and (term.language is not None or term.datatype is None)


def is_typed_literal(term: Node) -> bool:
    return isinstance(term, Literal) and term.language is None and term.datatype is not None


def lexical_form(term: Node) -> str:
    """The string form used by length and pattern checks."""
    return str(term)


# ---------------------------------------------------------------------------
# Comparator
# ---------------------------------------------------------------------------

def _category(term: Node) -> str | None:
    if not isinstance(term, Literal):
        return None
    if is_plain_literal(term) or term.datatype == XSD.string:
        return "string"
    if term.datatype in NUMERIC_DATATYPES:
        return "numeric"
    return _TEMPORAL_KINDS.get(term.datatype)


def _python_value(term: Literal):
    value = term.toPython()
    # rdflib hands back the Literal itself when the lexical form is ill-typed
    if isinstance(value, Literal):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal, datetime.date, datetime.time)):
        return value
    return None


def _gregorian_value(term: Literal, kind: str) -> datetime.datetime | None:
    """Start instant of a gYear / gYearMonth period, or None if ill-typed.

    Without a timezone the instant is naive, so it only orders against
    other values without one.
    """
    match = _GREGORIAN_FORMS[kind].match(str(term).strip())
    if match is None:
        return None
    year_text, month_text, zone = match.groups()
    year = int(year_text)
    month = int(month_text) if month_text else 1
    if not (datetime.MINYEAR <= year <= datetime.MAXYEAR and 1 <= month <= 12):
        return None

    tzinfo = None
    if zone == "Z":
        tzinfo = datetime.timezone.utc
    elif zone:
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        if hours > 14 or minutes > 59:
            return None
        offset = datetime.timedelta(hours=hours, minutes=minutes)
        tzinfo = datetime.timezone(-offset if zone[0] == "-" else offset)
    return datetime.datetime(year, month, 1, tzinfo=tzinfo)


def _order(left, right) -> Comparison:
    try:
        if left < right:
            return Comparison.LESS
        if left > right:
            return Comparison.GREATER
        if left == right:
            return Comparison.EQUAL
    except (TypeError, ArithmeticError):
        # naive vs timezone-aware datetimes, Decimal NaN
        return Comparison.INCOMPARABLE
    # NaN
    return Comparison.INCOMPARABLE


def compare(left: Node, right: Node) -> Comparison:
    """Order two terms.

    Comparable pairs are: two numeric literals, two temporal literals of the
    same kind, two plain/string literals (lexicographic on the lexical
    form). Every other pairing, including anything involving a resource,
    is INCOMPARABLE.
    """
    left_cat = _category(left)
    right_cat = _category(right)
    if left_cat is None or left_cat != right_cat:
        return Comparison.INCOMPARABLE

    if left_cat == "string":
        return _order(str(left), str(right))

    if left_cat in _GREGORIAN_FORMS:
        left_value = _gregorian_value(left, left_cat)
        right_value = _gregorian_value(right, right_cat)
    else:
        left_value = _python_value(left)
        right_value = _python_value(right)
    if left_value is None or right_value is None:
        return Comparison.INCOMPARABLE
    return _order(left_value, right_value)


# ---------------------------------------------------------------------------
# Language tags
# ---------------------------------------------------------------------------

def lang_matches(language: str | None, language_range: str) -> bool:
    """SPARQL langMatches over an optional language tag.

    ``"*"`` matches any language, ``""`` matches only the absence of one,
    any other range matches the tag itself or a ``-`` separated prefix of
    it, ignoring case.
    """
    language = (language or "").lower()
    language_range = language_range.lower()
    if language_range == "*":
        return language != ""
    if language_range == "":
        return language == ""
    return language == language_range or language.startswith(language_range + "-")


# ---------------------------------------------------------------------------
# Data graph queries
# ---------------------------------------------------------------------------

def objects_of(graph: Graph, subject: Node, predicate: Node) -> list[Node]:
    """Objects of (subject, predicate, ?o) in graph iteration order."""
    return [o for _, _, o in graph.triples((subject, predicate, None))]


def instances_of(
    graph: Graph,
    class_iri: Node,
    follow_subclasses: bool = True,
    _visited: set[Node] | None = None,
) -> list[Node]:
    """Direct and indirect instances of a class.

    Indirect instances come from classes declared ``rdfs:subClassOf`` or
    ``owl:equivalentClass`` of the given one, followed transitively.
    """
    visited = _visited if _visited is not None else set()
    if class_iri in visited:
        return []
    visited.add(class_iri)

    result = list(graph.subjects(RDF.type, class_iri))
    if follow_subclasses:
        for predicate in (RDFS.subClassOf, OWL.equivalentClass):
            for subclass in list(graph.subjects(predicate, class_iri)):
                result.extend(instances_of(graph, subclass, True, visited))
    return _unique(result)


def _unique(terms: Iterable[Node]) -> list[Node]:
    seen: set[Node] = set()
    out: list[Node] = []
    for t in terms:
        if t not in seen:
            seen.add(t)
            out.append(t)
    return out
