"""flowgen -- Generate Flow-typed JavaScript API clients from API designs.

This package reads an API design document (resources, actions, routes, and
named data types) and emits a JavaScript client module annotated with Flow
types, plus Redux glue that serializes the client's API calls.

Typical workflow::

    flowgen inspect design.yaml            # list the named types
    flowgen generate design.yaml --out web # write web/js/client.js

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for options and the design document format.
    config: Option precedence resolution and atomic writes.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    design: Loading and linking design documents into a type graph.
    codegen: Naming, type mapping, transforms and client emission.
"""

__version__ = "0.1.0"
