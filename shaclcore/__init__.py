"""shaclcore — an in-process SHACL core validator over rdflib graphs.

Validates an RDF data graph against a set of shapes and reports every
violation. The package is organised around four pieces:

- Shapes (shaclcore.shapes): node and property shapes, assembled with a
  fluent builder and collected in a ShapesGraph
- Constraints (shaclcore.constraints): the SHACL core constraint
  components, each an immutable value with validate() and to_graph()
- Engine (shaclcore.engine): resolves value nodes, dispatches constraints,
  and follows shape references with a cycle guard
- Report (shaclcore.report): ValidationResult / ValidationReport, with
  conformance defined as "no results"

Focus nodes are supplied by the caller; target declarations are not
evaluated. Shapes can be read from an rdflib Graph (shaclcore.loader) and
written back with to_graph(). The pySHACL bridge (shaclcore.pyshacl_bridge)
runs the same inputs through pySHACL to compare verdicts.

Typical use:

    from shaclcore.engine import validate
    from shaclcore.loader import shapes_from_graph

    shapes = shapes_from_graph(Graph().parse("shapes.ttl"))
    report = validate(shapes, data_graph, {EX.PersonShape: [EX.alice]})
    print(report.summary())
"""
