"""Tests for flowgen.codegen.transform.

Covers:
- compute_mapping: key-equality join, transform:key overrides, malformed
  and duplicate keys
- Shape, field, element and key compatibility checks
- Emitted code for scalar, nested named, inline object, array and hash fields
- Cyclic named types, determinism, counter usage and failure without output
"""

from __future__ import annotations

import textwrap

import pytest

from flowgen.codegen.naming import TempCounter
from flowgen.codegen.transform import (
    TransformGenerator,
    compute_mapping,
    transform,
    transform_name,
)
from flowgen.design.types import (
    INTEGER,
    STRING,
    APIDefinition,
    Array,
    Attribute,
    Hash,
    Object,
    UserType,
)
from flowgen.exceptions import (
    DuplicateMappingKeyError,
    IncompatibleElementTypeError,
    IncompatibleFieldTypeError,
    IncompatibleKeyTypeError,
    IncompatibleShapeError,
    MalformedMappingKeyError,
    TransformError,
)


def _object(name: str, /, **fields: Attribute) -> UserType:
    return UserType(name, Attribute(Object(dict(fields))))


# ---------------------------------------------------------------------------
# Attribute mapping
# ---------------------------------------------------------------------------


class TestComputeMapping:
    def test_unmatched_fields_dropped(self) -> None:
        source = Object({"a": Attribute(STRING), "b": Attribute(INTEGER)})
        target = Object({"a": Attribute(STRING), "c": Attribute(INTEGER)})
        assert compute_mapping(source, target) == {"a": "a"}

    def test_order_is_irrelevant(self) -> None:
        source = Object({"z": Attribute(STRING), "a": Attribute(STRING)})
        target = Object({"a": Attribute(STRING), "z": Attribute(STRING)})
        assert list(compute_mapping(source, target).items()) == [("a", "a"), ("z", "z")]

    def test_transform_key_override(self) -> None:
        source = Object(
            {"fullName": Attribute(STRING, metadata={"transform:key": ["name"]})}
        )
        target = Object({"name": Attribute(STRING)})
        assert compute_mapping(source, target) == {"fullName": "name"}

    def test_override_on_both_sides(self) -> None:
        source = Object({"a": Attribute(STRING, metadata={"transform:key": ["k"]})})
        target = Object({"b": Attribute(STRING, metadata={"transform:key": ["k"]})})
        assert compute_mapping(source, target) == {"a": "b"}

    def test_malformed_key_raises(self) -> None:
        source = Object({"a": Attribute(STRING, metadata={"transform:key": []})})
        with pytest.raises(MalformedMappingKeyError, match="missing value on attribute 'a'"):
            compute_mapping(source, Object({"a": Attribute(STRING)}))

    def test_malformed_key_on_target_raises(self) -> None:
        target = Object({"a": Attribute(STRING, metadata={"transform:key": []})})
        with pytest.raises(MalformedMappingKeyError):
            compute_mapping(Object({"a": Attribute(STRING)}), target)

    def test_duplicate_key_raises(self) -> None:
        source = Object(
            {
                "name": Attribute(STRING),
                "alias": Attribute(STRING, metadata={"transform:key": ["name"]}),
            }
        )
        with pytest.raises(DuplicateMappingKeyError, match="'alias' and 'name'"):
            compute_mapping(source, Object({"name": Attribute(STRING)}))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_object_to_array_raises(self) -> None:
        source = _object("Bottle", id=Attribute(INTEGER))
        target = UserType("Bottles", Attribute(Array(Attribute(STRING))))
        counter = TempCounter()
        with pytest.raises(IncompatibleShapeError, match="Bottle into Bottles"):
            transform(source, target, counter=counter)
        assert counter.count == 0

    def test_primitive_source_raises(self) -> None:
        source = UserType("Name", Attribute(STRING))
        target = UserType("Label", Attribute(STRING))
        with pytest.raises(IncompatibleShapeError):
            transform(source, target)

    def test_field_kind_mismatch(self) -> None:
        source = _object("A", count=Attribute(STRING))
        target = _object("B", count=Attribute(INTEGER))
        with pytest.raises(IncompatibleFieldTypeError) as exc_info:
            transform(source, target)
        message = str(exc_info.value)
        assert "source.count is of type string" in message
        assert "target.count is of type integer" in message

    def test_nested_field_mismatch_reports_path(self) -> None:
        source = _object("A", inner=Attribute(Object({"x": Attribute(STRING)})))
        target = _object("B", inner=Attribute(Object({"x": Attribute(INTEGER)})))
        with pytest.raises(IncompatibleFieldTypeError, match="source.inner.x"):
            transform(source, target)

    def test_element_kind_mismatch(self) -> None:
        source = _object("A", tags=Attribute(Array(Attribute(STRING))))
        target = _object("B", tags=Attribute(Array(Attribute(INTEGER))))
        with pytest.raises(IncompatibleElementTypeError, match="source.tags is an array"):
            transform(source, target)

    def test_hash_key_mismatch(self) -> None:
        source = _object("A", m=Attribute(Hash(Attribute(STRING), Attribute(STRING))))
        target = _object("B", m=Attribute(Hash(Attribute(INTEGER), Attribute(STRING))))
        with pytest.raises(IncompatibleKeyTypeError, match="keys of type string"):
            transform(source, target)

    def test_hash_element_mismatch(self) -> None:
        source = _object("A", m=Attribute(Hash(Attribute(STRING), Attribute(STRING))))
        target = _object("B", m=Attribute(Hash(Attribute(STRING), Attribute(INTEGER))))
        with pytest.raises(IncompatibleElementTypeError, match="hash with elements"):
            transform(source, target)

    def test_errors_share_base_class(self) -> None:
        with pytest.raises(TransformError):
            transform(_object("A", a=Attribute(STRING)), UserType("B", Attribute(STRING)))

    def test_unmatched_incompatible_fields_are_ignored(self) -> None:
        source = _object("A", a=Attribute(STRING), b=Attribute(STRING))
        target = _object("B", a=Attribute(STRING), c=Attribute(INTEGER))
        assert "target.a = source.a" in transform(source, target)


# ---------------------------------------------------------------------------
# Emission
# ---------------------------------------------------------------------------


class TestEmission:
    def test_transform_name(self) -> None:
        assert transform_name(UserType("bottle"), UserType("bottle_view")) == "bottleToBottleView"

    def test_nested_named_types(self) -> None:
        address = _object("Address", city=Attribute(STRING))
        address_view = _object("AddressView", city=Attribute(STRING))
        home = _object("Home", addr=Attribute(address))
        home_view = _object("HomeView", addr=Attribute(address_view))
        assert transform(home, home_view) == textwrap.dedent("""\
            // homeToHomeView builds a HomeView from a Home.
            export function homeToHomeView(source: Home): HomeView {
              function addressToAddressView(source: Address): AddressView {
                const target: Object = {}
                target.city = source.city
                return target
              }
              const target: Object = {}
              if (source.addr != null) {
                target.addr = addressToAddressView(source.addr)
              }
              return target
            }
        """)

    def test_helper_declared_once_per_exported_function(self) -> None:
        address = _object("Address", city=Attribute(STRING))
        address_view = _object("AddressView", city=Attribute(STRING))
        home = _object("Home", addr=Attribute(address), work=Attribute(address))
        home_view = _object("HomeView", addr=Attribute(address_view), work=Attribute(address_view))
        office = _object("Office", addr=Attribute(address))
        office_view = _object("OfficeView", addr=Attribute(address_view))
        generator = TransformGenerator(counter=TempCounter())
        first = generator.transform(home, home_view)
        second = generator.transform(office, office_view)
        for code in (first, second):
            assert code.count("function addressToAddressView(") == 1
        assert "target.work = addressToAddressView(source.work)" in first
        assert "target.addr = addressToAddressView(source.addr)" in second

    def test_inline_object(self) -> None:
        source = _object("A", meta=Attribute(Object({"note": Attribute(STRING)})))
        target = _object("B", meta=Attribute(Object({"note": Attribute(STRING)})))
        code = transform(source, target)
        assert (
            "  if (source.meta != null) {\n"
            "    target.meta = {}\n"
            "    target.meta.note = source.meta.note\n"
            "  }\n"
        ) in code

    def test_array_field(self) -> None:
        source = _object("A", tags=Attribute(Array(Attribute(STRING))))
        target = _object("B", tags=Attribute(Array(Attribute(STRING))))
        code = transform(source, target, counter=TempCounter())
        assert (
            "  if (source.tags != null) {\n"
            "    target.tags = new Array(source.tags.length)\n"
            "    for (let tmp1 = 0; tmp1 < source.tags.length; tmp1++) {\n"
            "      target.tags[tmp1] = source.tags[tmp1]\n"
            "    }\n"
            "  }\n"
        ) in code

    def test_hash_field(self) -> None:
        source = _object("A", counts=Attribute(Hash(Attribute(STRING), Attribute(INTEGER))))
        target = _object("B", counts=Attribute(Hash(Attribute(STRING), Attribute(INTEGER))))
        code = transform(source, target, counter=TempCounter())
        assert (
            "    target.counts = {}\n"
            "    for (const tmp1 of Object.keys(source.counts)) {\n"
            "      target.counts[tmp1] = source.counts[tmp1]\n"
            "    }\n"
        ) in code

    def test_array_of_named_elements(self) -> None:
        item = _object("Item", id=Attribute(INTEGER))
        item_view = _object("ItemView", id=Attribute(INTEGER))
        source = UserType("Items", Attribute(Array(Attribute(item))))
        target = UserType("ItemViews", Attribute(Array(Attribute(item_view))))
        code = transform(source, target, counter=TempCounter())
        assert "  const target = new Array(source.length)\n" in code
        assert "    target[tmp1] = itemToItemView(source[tmp1])\n" in code

    def test_renamed_and_quoted_fields(self) -> None:
        source = _object(
            "A",
            fullName=Attribute(STRING, metadata={"transform:key": ["name"]}),
            **{"first-name": Attribute(STRING)},
        )
        target = _object("B", name=Attribute(STRING), **{"first-name": Attribute(STRING)})
        code = transform(source, target)
        assert "  target.name = source.fullName\n" in code
        assert "  target['first-name'] = source['first-name']\n" in code

    def test_fields_ordered_by_normalized_source_name(self) -> None:
        source = _object("A", Zeta=Attribute(STRING), alpha=Attribute(STRING))
        target = _object("B", Zeta=Attribute(STRING), alpha=Attribute(STRING))
        code = transform(source, target)
        assert code.index("target.alpha") < code.index("target.Zeta")

    def test_custom_name(self) -> None:
        code = transform(_object("A", a=Attribute(STRING)), _object("B", a=Attribute(STRING)), "toB")
        assert "export function toB(source: A): B {" in code

    def test_cyclic_type_calls_itself(self, cellar_api: APIDefinition) -> None:
        code = transform(cellar_api.types["Node"], cellar_api.types["NodeView"])
        assert code == textwrap.dedent("""\
            // nodeToNodeView builds a NodeView from a Node.
            export function nodeToNodeView(source: Node): NodeView {
              const target: Object = {}
              if (source.next != null) {
                target.next = nodeToNodeView(source.next)
              }
              target.value = source.value
              return target
            }
        """)

    def test_deterministic(self, cellar_api: APIDefinition) -> None:
        source = cellar_api.types["AccountPayload"]
        target = cellar_api.media_types["Account"]
        first = transform(source, target, counter=TempCounter())
        second = transform(source, target, counter=TempCounter())
        assert first == second

    def test_shared_counter_is_monotonic(self) -> None:
        source = _object("A", tags=Attribute(Array(Attribute(STRING))))
        target = _object("B", tags=Attribute(Array(Attribute(STRING))))
        generator = TransformGenerator(counter=TempCounter())
        assert "tmp1" in generator.transform(source, target)
        second = generator.transform(source, target)
        assert "tmp2" in second
        assert "tmp1" not in second
