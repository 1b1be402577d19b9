"""Exception hierarchy for flowgen.

All exceptions inherit from :class:`FlowgenError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`flowgen.exit_codes`.
The top-level error handler in :func:`flowgen.app.main` catches
``FlowgenError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    FlowgenError (exit 1)
    +-- InvalidUsageError            (exit 2)
    +-- ConfigError                  (exit 1)
    +-- GenerationError              (exit 1)
    +-- InvalidIdentifierInputError  (exit 1)
    +-- DesignParseError             (exit 7)
    +-- IncompatibleVersionError     (exit 9)
    +-- UnknownTypeKindError         (exit 70)
    +-- TransformError               (exit 8)
        +-- IncompatibleShapeError
        +-- IncompatibleFieldTypeError
        +-- IncompatibleElementTypeError
        +-- IncompatibleKeyTypeError
        +-- MalformedMappingKeyError
        +-- DuplicateMappingKeyError
"""

from flowgen.exit_codes import (
    EXIT_DESIGN_PARSE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INCOMPATIBLE_VERSION,
    EXIT_INVALID_USAGE,
    EXIT_MODEL_DEFECT,
    EXIT_TRANSFORM_ERROR,
)


class FlowgenError(Exception):
    """Base exception for all flowgen errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`flowgen.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FlowgenError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(FlowgenError):
    """Raised for configuration problems (invalid project config, missing host)."""

    exit_code = EXIT_GENERIC_FAILURE


class GenerationError(FlowgenError):
    """Raised when generated files cannot be written to the output directory."""

    exit_code = EXIT_GENERIC_FAILURE


class InvalidIdentifierInputError(FlowgenError):
    """Raised when a string with no letter or digit is turned into an identifier."""

    exit_code = EXIT_GENERIC_FAILURE


class DesignParseError(FlowgenError):
    """Raised when the design document cannot be loaded, validated, or linked."""

    exit_code = EXIT_DESIGN_PARSE_ERROR


class IncompatibleVersionError(FlowgenError):
    """Raised when the requested generator version does not match this release."""

    exit_code = EXIT_INCOMPATIBLE_VERSION


class UnknownTypeKindError(FlowgenError):
    """Raised when a renderer meets a type node outside the closed set of kinds.

    This is a defect in whatever built the type graph, not a user error.
    Generation aborts immediately and no partial output is written.
    """

    exit_code = EXIT_MODEL_DEFECT


class TransformError(FlowgenError):
    """Base class for structural errors found while generating a transform."""

    exit_code = EXIT_TRANSFORM_ERROR


class IncompatibleShapeError(TransformError):
    """Raised when the top-level source and target types differ in shape."""


class IncompatibleFieldTypeError(TransformError):
    """Raised when two mapped object fields have types of different kinds."""


class IncompatibleElementTypeError(TransformError):
    """Raised when array or hash elements have types of different kinds."""


class IncompatibleKeyTypeError(TransformError):
    """Raised when hash keys have types of different kinds."""


class MalformedMappingKeyError(TransformError):
    """Raised when a ``transform:key`` metadata entry carries no value."""


class DuplicateMappingKeyError(TransformError):
    """Raised when two fields of the same object resolve to the same mapping key."""
