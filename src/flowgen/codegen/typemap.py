"""Render type graph nodes as Flow type expressions and declarations.

Three entry points, all on :class:`TypeRenderer`:

* :meth:`TypeRenderer.type_name` -- the type *reference* used where a type
  appears (a field, a function signature, an array element). Named types
  render as their normalized name and are never expanded, which is what
  keeps rendering of cyclic named types finite.
* :meth:`TypeRenderer.type_def` -- the full structural *definition* of an
  attribute: anonymous objects are expanded into ``{ ... }`` literals with
  one line per field, in lexicographic field order.
* :meth:`TypeRenderer.describe` -- the one-line description written above
  the declaration of a named type.

**Type table:**

=========== ============
design      Flow
=========== ============
boolean     ``boolean``
integer     ``number``
number      ``number``
string      ``string``
datetime    ``string``
uuid        ``string``
any         ``any``
array       ``Array<T>``
hash        ``{[K]: V}``
=========== ============

The module-level :func:`type_name`, :func:`type_def` and :func:`describe`
functions use a renderer with default options.
"""

from __future__ import annotations

from typing import Iterable, Optional

from flowgen.codegen.naming import comment, indentation, normalize, property_key
from flowgen.design.types import (
    DEFAULT_VIEW,
    Array,
    Attribute,
    DataType,
    Hash,
    Kind,
    MediaType,
    Object,
    Primitive,
    UserType,
)
from flowgen.exceptions import UnknownTypeKindError

FIELD_TYPE_KEY = "struct:field:type"
"""Metadata key forcing the rendered type of an attribute."""

ERROR_TYPE_NAME = "error"
"""Type name of the built-in error media type."""

NATIVE_TYPES: dict[Kind, str] = {
    Kind.BOOLEAN: "boolean",
    Kind.INTEGER: "number",
    Kind.NUMBER: "number",
    Kind.STRING: "string",
    Kind.DATETIME: "string",
    Kind.UUID: "string",
    Kind.ANY: "any",
}


class TypeRenderer:
    """Render type references, definitions and descriptions.

    Args:
        indent: Indentation unit for one nesting level of object literals.
        mark_optional: Render fields missing from the required set as Flow
            optional properties (``name?: T``).
    """

    def __init__(self, indent: str = "  ", mark_optional: bool = False) -> None:
        self.indent = indent
        self.mark_optional = mark_optional

    # ------------------------------------------------------------------ #
    # Type references
    # ------------------------------------------------------------------ #

    def type_name(
        self,
        node: DataType,
        required: Optional[Iterable[str]] = None,
        depth: int = 0,
        private: bool = False,
    ) -> str:
        """Return the Flow type reference for *node*.

        Args:
            node: Any type node.
            required: Required field names, used only when *node* is an
                anonymous object (which does not carry them itself).
            depth: Nesting depth used to indent an inline object literal.
            private: Render named types with a lowercase first letter.

        Raises:
            UnknownTypeKindError: If *node* is not a type node.
        """
        if isinstance(node, Primitive):
            return NATIVE_TYPES[node.kind]
        if isinstance(node, Array):
            element = self.type_name(
                node.element.type, node.element.required, depth, private
            )
            return f"Array<{element}>"
        if isinstance(node, Object):
            return self.type_def(
                Attribute(type=node), depth, with_docs=False, private=private,
                required=required,
            )
        if isinstance(node, Hash):
            key = self.type_name(node.key.type, node.key.required, depth, private)
            element = self.type_name(
                node.element.type, node.element.required, depth, private
            )
            return f"{{[{key}]: {element}}}"
        if isinstance(node, MediaType):
            if node.is_error:
                return ERROR_TYPE_NAME
            return normalize(node.name, not private)
        if isinstance(node, UserType):
            return normalize(node.name, not private)
        raise UnknownTypeKindError(f"Cannot render unknown type node {node!r}")

    # ------------------------------------------------------------------ #
    # Type definitions
    # ------------------------------------------------------------------ #

    def type_def(
        self,
        attribute: Attribute,
        depth: int = 0,
        with_docs: bool = True,
        private: bool = False,
        required: Optional[Iterable[str]] = None,
    ) -> str:
        """Return the Flow type definition of *attribute*.

        The first line is never indented so the result can follow
        ``export type Name = `` or ``field: `` on the same line.

        Args:
            attribute: The attribute to define. A ``struct:field:type``
                metadata value replaces the rendered type entirely.
            depth: Nesting depth of the closing brace of an object literal.
            with_docs: Write field descriptions as comments.
            private: Render named types with a lowercase first letter.
            required: Extra required field names, merged with the
                attribute's own set.

        Raises:
            UnknownTypeKindError: If the attribute type is not a type node.
        """
        override = attribute.metadata.get(FIELD_TYPE_KEY)
        if override:
            return normalize(override[0], override[0][:1].isupper())

        node = attribute.type
        if isinstance(node, Primitive):
            return self.type_name(node)
        if isinstance(node, Array):
            return f"Array<{self.type_def(node.element, depth, with_docs, private)}>"
        if isinstance(node, Hash):
            key = self.type_def(node.key, depth, with_docs, private)
            element = self.type_def(node.element, depth, with_docs, private)
            return f"{{[{key}]: {element}}}"
        if isinstance(node, Object):
            merged = set(attribute.required)
            merged.update(required or ())
            return self._object_literal(node, merged, depth, with_docs, private)
        if isinstance(node, UserType):
            return self.type_name(node, node.required, depth, private)
        raise UnknownTypeKindError(f"Cannot render unknown type node {node!r}")

    def _object_literal(
        self,
        obj: Object,
        required: set[str],
        depth: int,
        with_docs: bool,
        private: bool,
    ) -> str:
        if not obj.fields:
            return "{}"
        pad = indentation(depth + 1, self.indent)
        lines = ["{"]
        for name, field in obj.sorted_fields():
            if with_docs and field.description:
                lines.append(f"{pad}// {comment(field.description, pad)}")
            optional = "?" if self.mark_optional and name not in required else ""
            typedef = self.type_def(field, depth + 1, with_docs, private)
            lines.append(f"{pad}{property_key(name)}{optional}: {typedef},")
        lines.append(f"{indentation(depth, self.indent)}}}")
        return "\n".join(lines)

    # ------------------------------------------------------------------ #
    # Descriptions
    # ------------------------------------------------------------------ #

    def describe(self, node: DataType, upper_first: bool = True) -> str:
        """Return the description of a named type, synthesizing one if needed.

        Author descriptions are returned as-is, with line breaks continued
        as ``//`` comment lines. Nodes that are not named types describe
        as an empty string.
        """
        if not isinstance(node, UserType):
            return ""
        if node.description:
            return comment(node.description)
        if not isinstance(node, MediaType):
            return f"{normalize(node.name, upper_first)} user type."

        name = normalize(node.base_name, upper_first)
        if node.view != DEFAULT_VIEW:
            name += normalize(node.view, True)
        shape = node.type
        if isinstance(shape, Array):
            element = self.type_name(shape.element.type, private=not upper_first)
            return f"{name} media type is a collection of {element}."
        return f"{name} media type."


_default = TypeRenderer()


def type_name(
    node: DataType,
    required: Optional[Iterable[str]] = None,
    depth: int = 0,
    private: bool = False,
) -> str:
    """Shortcut for :meth:`TypeRenderer.type_name` with default options."""
    return _default.type_name(node, required, depth, private)


def type_def(
    attribute: Attribute,
    depth: int = 0,
    with_docs: bool = True,
    private: bool = False,
) -> str:
    """Shortcut for :meth:`TypeRenderer.type_def` with default options."""
    return _default.type_def(attribute, depth, with_docs, private)


def describe(node: DataType, upper_first: bool = True) -> str:
    """Shortcut for :meth:`TypeRenderer.describe` with default options."""
    return _default.describe(node, upper_first)
