"""Generate functions converting values of one named type into another.

A transform copies a value shaped like a *source* type into a new value
shaped like a *target* type. Object fields are paired by a key-equality
join (:func:`compute_mapping`): the key of a field is the first value of
its ``transform:key`` metadata, or its name. Fields without a partner on
the other side are dropped.

Paired fields must have the same :class:`~flowgen.design.types.Kind`.
Kinds, not types, are compared, so two distinct named object types are
compatible and converted field by field. Primitive kinds are never
coerced: a ``string`` field paired with an ``integer`` field is an error.

Every transform is validated completely before any code is produced, so a
failing transform raises without consuming temporary variable names.

Output shape for ``Bottle -> BottleView``::

    export function bottleToBottleView(source: Bottle): BottleView {
      function accountToAccountView(source: Account): AccountView {
        const target: Object = {}
        target.name = source.name
        return target
      }
      const target: Object = {}
      target.name = source.name
      if (source.owner != null) {
        target.owner = accountToAccountView(source.owner)
      }
      return target
    }

Nested pairs of *named* types get a helper function declared inside the
exported function. A helper is registered before its body is generated,
so cyclic types call the helper instead of recursing forever.
Each exported function declares its own helpers, once per pair.

Hash keys are copied unchanged because JavaScript object keys are strings;
the key types of both sides must still match.
"""

from __future__ import annotations

import logging
from typing import Optional

from flowgen.codegen.naming import (
    TempCounter,
    indentation,
    member,
    normalize,
    normalize_attribute,
)
from flowgen.codegen.typemap import TypeRenderer
from flowgen.design.types import Array, Attribute, DataType, Hash, Object, UserType
from flowgen.exceptions import (
    DuplicateMappingKeyError,
    IncompatibleElementTypeError,
    IncompatibleFieldTypeError,
    IncompatibleKeyTypeError,
    IncompatibleShapeError,
    MalformedMappingKeyError,
    UnknownTypeKindError,
)

logger = logging.getLogger(__name__)

TRANSFORM_KEY = "transform:key"
"""Metadata key overriding the name used to pair object fields."""


# ---------------------------------------------------------------------------
# Attribute mapping
# ---------------------------------------------------------------------------


def _mapping_keys(obj: Object, context: str) -> dict[str, str]:
    keys: dict[str, str] = {}
    for name, attribute in obj.sorted_fields():
        key = name
        if TRANSFORM_KEY in attribute.metadata:
            values = attribute.metadata[TRANSFORM_KEY]
            if not values:
                raise MalformedMappingKeyError(
                    f"Invalid {TRANSFORM_KEY} metadata: missing value on "
                    f"attribute {name!r} of {context}"
                )
            key = values[0]
        if key in keys:
            raise DuplicateMappingKeyError(
                f"Attributes {keys[key]!r} and {name!r} of {context} both map "
                f"to key {key!r}"
            )
        keys[key] = name
    return keys


def compute_mapping(
    source: Object,
    target: Object,
    source_context: str = "source",
    target_context: str = "target",
) -> dict[str, str]:
    """Pair the fields of *source* with the fields of *target*.

    Args:
        source: The object being converted.
        target: The object being built.
        source_context: Where *source* sits, used in error messages.
        target_context: Where *target* sits, used in error messages.

    Returns:
        A ``source field -> target field`` mapping, ordered by source field
        name. Fields whose key has no match on the other side are absent.

    Raises:
        MalformedMappingKeyError: If a ``transform:key`` entry has no value.
        DuplicateMappingKeyError: If two fields of one object share a key.
    """
    source_keys = _mapping_keys(source, source_context)
    target_keys = _mapping_keys(target, target_context)
    pairs = [
        (name, target_keys[key])
        for key, name in source_keys.items()
        if key in target_keys
    ]
    return dict(sorted(pairs))


def _ordered_pairs(
    source: Object, target: Object, sctx: str, tctx: str
) -> list[tuple[str, str]]:
    """Mapped field pairs in the order of the normalized source field names."""
    mapping = compute_mapping(source, target, sctx, tctx)
    return sorted(
        mapping.items(),
        key=lambda pair: normalize_attribute(source.fields[pair[0]], pair[0]),
    )


def _shape(node: DataType) -> DataType:
    while isinstance(node, UserType):
        node = node.type
    return node


def transform_name(source: UserType, target: UserType) -> str:
    """Default function name for a transform, e.g. ``bottleToBottleView``."""
    return f"{normalize(source.name, False)}To{normalize(target.name, True)}"


# ---------------------------------------------------------------------------
# Code generation
# ---------------------------------------------------------------------------


class _Scope:
    """Helper functions declared inside one exported transform function."""

    def __init__(self) -> None:
        self.names: dict[tuple[int, int], str] = {}
        self.blocks: list[list[str]] = []


class TransformGenerator:
    """Emit transform functions for one generation run.

    Args:
        renderer: Renders the type names used in function signatures.
        counter: Supplies loop variable names. Share one counter across all
            transforms written to the same module.
    """

    def __init__(
        self,
        renderer: Optional[TypeRenderer] = None,
        counter: Optional[TempCounter] = None,
    ) -> None:
        self.renderer = renderer or TypeRenderer()
        self.counter = counter or TempCounter()

    @property
    def indent(self) -> str:
        return self.renderer.indent

    def transform(self, source: UserType, target: UserType, name: str = "") -> str:
        """Return an exported function building a *target* value from *source*.

        Args:
            source: Named type of the function argument.
            target: Named type of the returned value.
            name: Function name; defaults to :func:`transform_name`.

        Raises:
            IncompatibleShapeError: If the two types are not both objects,
                both arrays or both hashes.
            TransformError: Any other structural incompatibility found in
                nested fields, elements or keys.
        """
        self.validate(source, target)
        name = name or transform_name(source, target)
        logger.debug("Generating transform %s (%s -> %s)", name, source.name, target.name)

        scope = _Scope()
        scope.names[(id(source), id(target))] = name
        body = self._body(source, target, 1, scope)

        lines = [
            f"// {name} builds a {self.renderer.type_name(target)} from a "
            f"{self.renderer.type_name(source)}.",
            self._signature("export function", name, source, target),
        ]
        for block in scope.blocks:
            lines.extend(block)
        lines.extend(body)
        lines.append("}")
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate(self, source: UserType, target: UserType) -> None:
        """Check that *source* can be converted into *target*.

        Raises:
            TransformError: On the first incompatibility found.
        """
        source_kind, target_kind = source.kind, target.kind
        if source_kind.is_primitive or source_kind != target_kind:
            raise IncompatibleShapeError(
                f"Cannot transform {source.name} into {target.name}: source is "
                f"of kind {source_kind.value} but target is of kind "
                f"{target_kind.value}"
            )
        self._check(source.definition, target.definition, "source", "target", set())

    def _check(
        self,
        source: Attribute,
        target: Attribute,
        sctx: str,
        tctx: str,
        visited: set[tuple[int, int]],
    ) -> None:
        if isinstance(source.type, UserType) and isinstance(target.type, UserType):
            pair = (id(source.type), id(target.type))
            if pair in visited:
                return
            visited.add(pair)

        src, tgt = _shape(source.type), _shape(target.type)
        if isinstance(src, Object) and isinstance(tgt, Object):
            for sname, tname in _ordered_pairs(src, tgt, sctx, tctx):
                sfield, tfield = src.fields[sname], tgt.fields[tname]
                if sfield.kind != tfield.kind:
                    raise IncompatibleFieldTypeError(
                        f"Incompatible attribute types: {member(sctx, sname)} is of "
                        f"type {sfield.type.name} but {member(tctx, tname)} is of "
                        f"type {tfield.type.name}"
                    )
                self._check(sfield, tfield, member(sctx, sname), member(tctx, tname), visited)
        elif isinstance(src, Array) and isinstance(tgt, Array):
            if src.element.kind != tgt.element.kind:
                raise IncompatibleElementTypeError(
                    f"Incompatible attribute types: {sctx} is an array with "
                    f"elements of type {src.element.type.name} but {tctx} is an "
                    f"array with elements of type {tgt.element.type.name}"
                )
            self._check(src.element, tgt.element, f"{sctx}[i]", f"{tctx}[i]", visited)
        elif isinstance(src, Hash) and isinstance(tgt, Hash):
            if src.element.kind != tgt.element.kind:
                raise IncompatibleElementTypeError(
                    f"Incompatible attribute types: {sctx} is a hash with "
                    f"elements of type {src.element.type.name} but {tctx} is a "
                    f"hash with elements of type {tgt.element.type.name}"
                )
            if src.key.kind != tgt.key.kind:
                raise IncompatibleKeyTypeError(
                    f"Incompatible attribute types: {sctx} is a hash with keys "
                    f"of type {src.key.type.name} but {tctx} is a hash with "
                    f"keys of type {tgt.key.type.name}"
                )
            self._check(src.key, tgt.key, f"keys({sctx})", f"keys({tctx})", visited)
            self._check(src.element, tgt.element, f"{sctx}[k]", f"{tctx}[k]", visited)

    # ------------------------------------------------------------------ #
    # Emission
    # ------------------------------------------------------------------ #

    def _signature(self, keyword: str, name: str, source: UserType, target: UserType) -> str:
        source_ref = self.renderer.type_name(source)
        target_ref = self.renderer.type_name(target)
        return f"{keyword} {name}(source: {source_ref}): {target_ref} {{"

    def _body(self, source: UserType, target: UserType, depth: int, scope: _Scope) -> list[str]:
        lines = self._build(
            _shape(source.type), _shape(target.type), "source", "target", depth, scope,
            declare=True,
        )
        lines.append(f"{indentation(depth, self.indent)}return target")
        return lines

    def _helper(self, source: UserType, target: UserType, scope: _Scope) -> str:
        key = (id(source), id(target))
        if key in scope.names:
            return scope.names[key]
        name = transform_name(source, target)
        scope.names[key] = name
        pad = indentation(1, self.indent)
        block = [pad + self._signature("function", name, source, target)]
        block.extend(self._body(source, target, 2, scope))
        block.append(f"{pad}}}")
        scope.blocks.append(block)
        return name

    def _convert(
        self,
        source: Attribute,
        target: Attribute,
        src: str,
        dst: str,
        depth: int,
        scope: _Scope,
    ) -> list[str]:
        pad = indentation(depth, self.indent)
        if source.kind.is_primitive:
            return [f"{pad}{dst} = {src}"]
        if isinstance(source.type, UserType) and isinstance(target.type, UserType):
            helper = self._helper(source.type, target.type, scope)
            return [f"{pad}{dst} = {helper}({src})"]
        return self._build(
            _shape(source.type), _shape(target.type), src, dst, depth, scope,
            declare=False,
        )

    def _build(
        self,
        source: DataType,
        target: DataType,
        src: str,
        dst: str,
        depth: int,
        scope: _Scope,
        declare: bool,
    ) -> list[str]:
        pad = indentation(depth, self.indent)
        lhs = f"const {dst}" if declare else dst

        if isinstance(source, Object) and isinstance(target, Object):
            lines = [f"{pad}{lhs}{': Object' if declare else ''} = {{}}"]
            for sname, tname in _ordered_pairs(source, target, src, dst):
                sfield, tfield = source.fields[sname], target.fields[tname]
                s_expr, t_expr = member(src, sname), member(dst, tname)
                if sfield.kind.is_primitive:
                    lines.append(f"{pad}{t_expr} = {s_expr}")
                    continue
                lines.append(f"{pad}if ({s_expr} != null) {{")
                lines.extend(self._convert(sfield, tfield, s_expr, t_expr, depth + 1, scope))
                lines.append(f"{pad}}}")
            return lines

        if isinstance(source, Array) and isinstance(target, Array):
            var = self.counter.next()
            lines = [
                f"{pad}{lhs} = new Array({src}.length)",
                f"{pad}for (let {var} = 0; {var} < {src}.length; {var}++) {{",
            ]
            lines.extend(
                self._convert(
                    source.element, target.element, f"{src}[{var}]", f"{dst}[{var}]",
                    depth + 1, scope,
                )
            )
            lines.append(f"{pad}}}")
            return lines

        if isinstance(source, Hash) and isinstance(target, Hash):
            var = self.counter.next()
            lines = [
                f"{pad}{lhs}{': Object' if declare else ''} = {{}}",
                f"{pad}for (const {var} of Object.keys({src})) {{",
            ]
            lines.extend(
                self._convert(
                    source.element, target.element, f"{src}[{var}]", f"{dst}[{var}]",
                    depth + 1, scope,
                )
            )
            lines.append(f"{pad}}}")
            return lines

        raise UnknownTypeKindError(
            f"Cannot transform {source!r} into {target!r}: unknown type nodes"
        )


def transform(
    source: UserType,
    target: UserType,
    name: str = "",
    counter: Optional[TempCounter] = None,
) -> str:
    """Shortcut for :meth:`TransformGenerator.transform` with default options."""
    return TransformGenerator(counter=counter).transform(source, target, name)
