"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~flowgen.exceptions.FlowgenError` subclass.
Build scripts can inspect the exit code to tell a broken design document
apart from an incompatible transform request without parsing stderr.

Example::

    $ flowgen generate design.yaml --out gen
    $ echo $?
    8   # EXIT_TRANSFORM_ERROR -- a requested transform pairs incompatible types
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_DESIGN_PARSE_ERROR = 7
"""The design document could not be loaded, parsed, or linked."""

EXIT_TRANSFORM_ERROR = 8
"""A requested transform pairs structurally incompatible types."""

EXIT_INCOMPATIBLE_VERSION = 9
"""The design requires a generator version this release cannot honour."""

EXIT_MODEL_DEFECT = 70
"""The type graph contains a node of unknown kind (a bug upstream of rendering)."""
