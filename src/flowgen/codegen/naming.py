"""Identifier normalization and small text helpers for emitted code.

:func:`normalize` turns any string into a camel-cased JavaScript identifier:

1. A handful of sized numeric spellings (``int64``, ``float32``, ...)
   normalize directly to ``number``.
2. Characters that are neither letters nor decimal digits are removed. An
   underscore, or a lowercase letter followed by anything that is not
   lowercase, ends a word.
3. Words found in :data:`INITIALISMS` are rendered fully uppercase, except
   for a leading initialism when ``first_upper`` is false, which is rendered
   fully lowercase.
4. Other all-lowercase words get their first letter uppercased, except the
   first word when ``first_upper`` is false.
5. A result starting with a digit is prefixed with ``_``.

Example::

    >>> normalize("user_id", True)
    'UserID'
    >>> normalize("http_server", False)
    'httpServer'
    >>> normalize("int64", True)
    'number'
    >>> normalize("2fa_code", False)
    '_2faCode'

The module also owns :class:`TempCounter`, the only stateful helper of the
code generators.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flowgen.exceptions import InvalidIdentifierInputError

if TYPE_CHECKING:
    from flowgen.design.types import Attribute

FIELD_NAME_KEY = "struct:field:name"
"""Metadata key overriding the name used for an attribute."""

INITIALISMS: frozenset[str] = frozenset(
    {
        "API", "ASCII", "CPU", "CSS", "DNS", "EOF", "GUID", "HTML", "HTTP",
        "HTTPS", "ID", "IP", "JMES", "JSON", "JWT", "LHS", "OK", "QPS", "RAM",
        "RHS", "RPC", "SLA", "SMTP", "SQL", "SSH", "TCP", "TLS", "TTL", "UDP",
        "UI", "UID", "UUID", "URI", "URL", "UTF8", "VM", "XML", "XSRF", "XSS",
    }
)
"""Words rendered with uniform case instead of camel case."""

_NUMERIC_SPELLINGS = frozenset(
    {"int64", "int32", "uint", "uint32", "int16", "uint16", "float32", "float64"}
)


def _valid(char: str) -> bool:
    return char.isalpha() or char.isdecimal()


def normalize(raw: str, first_upper: bool = False) -> str:
    """Make a valid camel-case identifier out of *raw*.

    Args:
        raw: Any string: a type name, a field name, a view name.
        first_upper: Whether the identifier starts with an uppercase
            letter (type names) or a lowercase one (functions, fields).

    Returns:
        The normalized identifier. The function is pure and idempotent:
        normalizing its own output with the same flag returns it unchanged.

    Raises:
        InvalidIdentifierInputError: If *raw* has no letter or digit.
    """
    if raw in _NUMERIC_SPELLINGS:
        return "number"

    chars = list(raw)
    while chars and not _valid(chars[-1]):
        chars.pop()
    if not chars:
        raise InvalidIdentifierInputError(
            f"Cannot build an identifier from {raw!r}: it has no letter or digit"
        )

    start = i = 0
    while i < len(chars):
        # Drop invalid characters at the scan position; a valid character
        # always remains because trailing ones were stripped above.
        end = i
        while not _valid(chars[end]):
            end += 1
        del chars[i:end]

        end_of_word = False
        if i + 1 == len(chars):
            end_of_word = True
        elif chars[i + 1] == "_":
            end_of_word = True
            end = i + 1
            while chars[end] == "_":
                end += 1
            del chars[i + 1:end]
        elif chars[i].islower() and not chars[i + 1].islower():
            end_of_word = True
        i += 1
        if not end_of_word:
            continue

        word = "".join(chars[start:i])
        upper = word.upper()
        if upper in INITIALISMS:
            cased = upper.lower() if start == 0 and not first_upper else upper
            chars[start:i] = list(cased)
        elif word.lower() == word and (start > 0 or first_upper):
            chars[start] = chars[start].upper()
        if start == 0 and not first_upper:
            chars[0] = chars[0].lower()
        start = i

    if chars[0].isdecimal():
        chars.insert(0, "_")
    return "".join(chars)


def normalize_attribute(attribute: Attribute, name: str, first_upper: bool = False) -> str:
    """Normalize *name*, or the ``struct:field:name`` override set on *attribute*."""
    override = attribute.metadata.get(FIELD_NAME_KEY)
    if override:
        name = override[0]
    return normalize(name, first_upper)


def is_identifier(name: str) -> bool:
    """Return True if *name* can be used after a dot in JavaScript."""
    if not name or name[0].isdecimal():
        return False
    return all(_valid(c) or c in "_$" for c in name)


def quote(text: str) -> str:
    """Render *text* as a single-quoted JavaScript string literal."""
    escaped = text.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def property_key(name: str) -> str:
    """Render *name* as an object type key, quoted when not an identifier."""
    return name if is_identifier(name) else quote(name)


def member(context: str, name: str) -> str:
    """Render a property access, using brackets when dot access is invalid."""
    if is_identifier(name):
        return f"{context}.{name}"
    return f"{context}[{quote(name)}]"


def indentation(depth: int, unit: str = "  ") -> str:
    return unit * depth


def comment(text: str, prefix: str = "") -> str:
    """Render *text* as ``//`` comment lines, continuation lines prefixed.

    The first line is never prefixed so the comment composes with tokens
    already written on the current line.
    """
    return f"\n{prefix}// ".join(text.splitlines() or [""])


class TempCounter:
    """Hands out unique temporary variable names for one generation run.

    Each :class:`~flowgen.codegen.generator.Generator` run creates its own
    counter; tests inject a fresh one to get predictable names.

    Example::

        >>> counter = TempCounter()
        >>> counter.next(), counter.next()
        ('tmp1', 'tmp2')
    """

    def __init__(self, prefix: str = "tmp") -> None:
        self.prefix = prefix
        self.count = 0

    def next(self) -> str:
        self.count += 1
        return f"{self.prefix}{self.count}"
