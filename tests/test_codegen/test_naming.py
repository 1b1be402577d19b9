"""Tests for flowgen.codegen.naming.

Covers:
- normalize: case-boundary and underscore segmentation, initialisms,
  numeric spellings, invalid characters, idempotence
- normalize_attribute with the struct:field:name override
- Property keys, member access and comments
- TempCounter
"""

from __future__ import annotations

import pytest

from flowgen.codegen.naming import (
    INITIALISMS,
    TempCounter,
    comment,
    indentation,
    is_identifier,
    member,
    normalize,
    normalize_attribute,
    property_key,
    quote,
)
from flowgen.design.types import STRING, Attribute
from flowgen.exceptions import InvalidIdentifierInputError


class TestNormalize:
    @pytest.mark.parametrize(
        ("raw", "first_upper", "expected"),
        [
            ("bottle", True, "Bottle"),
            ("bottle", False, "bottle"),
            ("BottlePayload", False, "bottlePayload"),
            ("bottle_payload", True, "BottlePayload"),
            ("bottle__payload", True, "BottlePayload"),
            ("foo-bar", False, "fooBar"),
            ("bottle view", False, "bottleView"),
            ("accountID", False, "accountID"),
            ("some_API_call", False, "someAPICall"),
        ],
    )
    def test_segmentation(self, raw: str, first_upper: bool, expected: str) -> None:
        assert normalize(raw, first_upper) == expected

    def test_initialism_first_word_lower(self) -> None:
        assert normalize("id", False) == "id"
        assert normalize("http_server", False) == "httpServer"

    def test_initialism_upper(self) -> None:
        assert normalize("user_id", True) == "UserID"
        assert normalize("http_server", True) == "HTTPServer"
        assert normalize("id", True) == "ID"

    @pytest.mark.parametrize("word", [w for w in sorted(INITIALISMS) if w.isalpha()])
    def test_every_initialism_upper_when_not_first(self, word: str) -> None:
        assert normalize(f"my_{word.lower()}", False) == f"my{word}"

    @pytest.mark.parametrize("raw", ["int64", "int32", "uint", "float32", "float64"])
    def test_numeric_spellings(self, raw: str) -> None:
        assert normalize(raw, True) == "number"

    def test_trailing_invalid_characters_dropped(self) -> None:
        assert normalize("bottle!!", False) == "bottle"

    @pytest.mark.parametrize("raw", ["", "!!!", "_", "- -"])
    def test_no_letter_or_digit_raises(self, raw: str) -> None:
        with pytest.raises(InvalidIdentifierInputError):
            normalize(raw)

    @pytest.mark.parametrize(
        "raw", ["bottle_payload", "user_id", "HTTPServer", "some-API call", "accountID"]
    )
    @pytest.mark.parametrize("first_upper", [True, False])
    def test_idempotent(self, raw: str, first_upper: bool) -> None:
        once = normalize(raw, first_upper)
        assert once
        assert normalize(once, first_upper) == once

    @pytest.mark.parametrize(
        ("raw", "first_upper", "expected"),
        [
            ("2fa_code", True, "_2faCode"),
            ("2fa_code", False, "_2faCode"),
            ("123", True, "_123"),
            ("-1", False, "_1"),
        ],
    )
    def test_leading_digit_prefixed(self, raw: str, first_upper: bool, expected: str) -> None:
        assert normalize(raw, first_upper) == expected

    def test_non_decimal_digits_dropped(self) -> None:
        assert normalize("x²", False) == "x"
        with pytest.raises(InvalidIdentifierInputError):
            normalize("²³")

    @pytest.mark.parametrize(
        "raw",
        [
            "2fa_code", "9lives", "123", "-1", "x²", "__init__", "a.b.c",
            "v1_api", "Ünïcode name", "bottle!!", "user_id",
        ],
    )
    @pytest.mark.parametrize("first_upper", [True, False])
    def test_always_valid_identifier(self, raw: str, first_upper: bool) -> None:
        once = normalize(raw, first_upper)
        assert is_identifier(once)
        assert normalize(once, first_upper) == once


class TestNormalizeAttribute:
    def test_uses_name(self) -> None:
        assert normalize_attribute(Attribute(STRING), "display_name") == "displayName"

    def test_override(self) -> None:
        attribute = Attribute(STRING, metadata={"struct:field:name": ["full_name"]})
        assert normalize_attribute(attribute, "name", True) == "FullName"


class TestIdentifiersAndLiterals:
    def test_is_identifier(self) -> None:
        assert is_identifier("bottle_id")
        assert is_identifier("$ref")
        assert not is_identifier("first-name")
        assert not is_identifier("1st")
        assert not is_identifier("")

    def test_quote_escapes(self) -> None:
        assert quote("it's") == "'it\\'s'"

    def test_property_key(self) -> None:
        assert property_key("name") == "name"
        assert property_key("first-name") == "'first-name'"

    def test_member(self) -> None:
        assert member("source", "name") == "source.name"
        assert member("source", "first-name") == "source['first-name']"


class TestFormatting:
    def test_indentation(self) -> None:
        assert indentation(2) == "    "
        assert indentation(2, "\t") == "\t\t"
        assert indentation(0) == ""

    def test_comment_single_line(self) -> None:
        assert comment("A bottle") == "A bottle"

    def test_comment_continuation_lines(self) -> None:
        assert comment("Line one\nLine two", "  ") == "Line one\n  // Line two"


class TestTempCounter:
    def test_monotonic(self) -> None:
        counter = TempCounter()
        assert [counter.next() for _ in range(3)] == ["tmp1", "tmp2", "tmp3"]

    def test_fresh_counters_are_independent(self) -> None:
        first, second = TempCounter(), TempCounter()
        first.next()
        assert second.next() == "tmp1"

    def test_prefix(self) -> None:
        assert TempCounter("i").next() == "i1"
