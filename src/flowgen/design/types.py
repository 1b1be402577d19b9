"""The abstract type graph and API surface consumed by the code generators.

Every data shape of an API design is one of a closed set of node classes:

* :class:`Primitive` -- a leaf (boolean, integer, number, string, datetime,
  uuid, any).
* :class:`Array` -- one element :class:`Attribute`.
* :class:`Hash` -- one key and one element :class:`Attribute`.
* :class:`Object` -- field name to :class:`Attribute`.
* :class:`UserType` -- a named wrapper around one of the above.
* :class:`MediaType` -- a user type with an identifier and views.

Required-ness is never stored on a field: it lives in the ``required`` list
of the :class:`Attribute` that *holds* an object, so the same object shape
can be referenced with different required sets.

The graph is built once by :mod:`flowgen.design.builder` and is treated as
immutable for the rest of a generation run. Named types may reference each
other cyclically; node classes therefore compare and hash by identity.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union

DEFAULT_VIEW = "default"
"""Name of the view every media type has."""

LINK_VIEW = "link"
"""Preferred view for media types exposed through links."""

ERROR_MEDIA_IDENTIFIER = "application/vnd.goa.error"
"""Content type identifier of the built-in error media type."""

_WILDCARD_RE = re.compile(r"/(?::|\*)([a-zA-Z0-9_]+)")


class Kind(str, enum.Enum):
    """Structural kind of a type node.

    Named types report the kind of the shape they wrap, so two distinct
    named object types share :attr:`OBJECT`. Each primitive is its own kind.
    """

    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    STRING = "string"
    DATETIME = "datetime"
    UUID = "uuid"
    ANY = "any"
    ARRAY = "array"
    HASH = "hash"
    OBJECT = "object"

    @property
    def is_primitive(self) -> bool:
        return self not in (Kind.ARRAY, Kind.HASH, Kind.OBJECT)


# --- Type nodes ---


@dataclass(frozen=True)
class Primitive:
    """A leaf type."""

    kind: Kind

    @property
    def name(self) -> str:
        return self.kind.value


BOOLEAN = Primitive(Kind.BOOLEAN)
INTEGER = Primitive(Kind.INTEGER)
NUMBER = Primitive(Kind.NUMBER)
STRING = Primitive(Kind.STRING)
DATETIME = Primitive(Kind.DATETIME)
UUID = Primitive(Kind.UUID)
ANY = Primitive(Kind.ANY)

PRIMITIVES: dict[str, Primitive] = {
    p.name: p for p in (BOOLEAN, INTEGER, NUMBER, STRING, DATETIME, UUID, ANY)
}
"""Primitive types indexed by the name used in design documents."""


@dataclass(eq=False)
class Attribute:
    """A typed slot: a field of an object, an array element, a hash key, etc.

    Attributes:
        type: The node describing the slot's shape.
        description: Author-supplied documentation, possibly multi-line.
        required: Names of the required fields when ``type`` is an object.
        metadata: Free-form ``key -> values`` metadata (rename and
            transform overrides).
        view: The view used when ``type`` is a media type.
    """

    type: DataType
    description: str = ""
    required: list[str] = field(default_factory=list)
    metadata: dict[str, list[str]] = field(default_factory=dict)
    view: str = ""

    @property
    def kind(self) -> Kind:
        return self.type.kind


@dataclass(eq=False)
class Array:
    element: Attribute

    kind: ClassVar[Kind] = Kind.ARRAY
    name: ClassVar[str] = "array"


@dataclass(eq=False)
class Hash:
    key: Attribute
    element: Attribute

    kind: ClassVar[Kind] = Kind.HASH
    name: ClassVar[str] = "hash"


@dataclass(eq=False)
class Object:
    fields: dict[str, Attribute] = field(default_factory=dict)

    kind: ClassVar[Kind] = Kind.OBJECT
    name: ClassVar[str] = "object"

    def sorted_fields(self) -> list[tuple[str, Attribute]]:
        """Return ``(name, attribute)`` pairs in lexicographic name order."""
        return sorted(self.fields.items())


@dataclass(eq=False)
class UserType:
    """A named type.

    ``attribute`` is ``None`` only while the builder is still linking the
    graph; every user type handed to a renderer has it set.
    """

    name: str
    attribute: Optional[Attribute] = None

    @property
    def definition(self) -> Attribute:
        if self.attribute is None:
            raise ValueError(f"type {self.name!r} has not been linked")
        return self.attribute

    @property
    def type(self) -> DataType:
        return self.definition.type

    @property
    def kind(self) -> Kind:
        return self.definition.type.kind

    @property
    def description(self) -> str:
        return self.definition.description

    @property
    def required(self) -> list[str]:
        return self.definition.required


@dataclass(eq=False)
class View:
    """A named projection of a media type's fields.

    ``fields`` maps each projected field to the view used when that field
    is itself a media type.
    """

    name: str
    fields: dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class MediaType(UserType):
    """A user type describing a response body.

    A projection created by :class:`~flowgen.design.builder.Projector` keeps
    the unprojected name in ``base_name`` and the projected view in ``view``.
    """

    identifier: str = ""
    views: dict[str, View] = field(default_factory=dict)
    links: list[str] = field(default_factory=list)
    view: str = DEFAULT_VIEW
    base_name: str = ""
    is_error: bool = False

    def __post_init__(self) -> None:
        if not self.base_name:
            self.base_name = self.name


DataType = Union[Primitive, Array, Hash, Object, UserType, MediaType]
"""The closed set of type nodes."""


# --- API surface ---


@dataclass
class Route:
    """One HTTP route of an action; ``path`` is the full path."""

    method: str
    path: str

    def params(self) -> list[str]:
        """Names of the ``:name`` and ``*name`` wildcards, in path order."""
        return _WILDCARD_RE.findall(self.path)


@dataclass
class Action:
    name: str
    resource: str
    description: str = ""
    routes: list[Route] = field(default_factory=list)
    payload: Optional[UserType] = None
    query: Optional[Attribute] = None


@dataclass
class Resource:
    name: str
    base_path: str = ""
    description: str = ""
    actions: dict[str, Action] = field(default_factory=dict)


@dataclass
class TransformRequest:
    """A requested conversion from one named type to another."""

    source: UserType
    target: UserType
    name: str = ""


@dataclass
class APIDefinition:
    """Everything a generation run needs, produced by the design builder.

    Attributes:
        types: Named user types by name.
        media_types: Unprojected media types by name, error media included.
        projections: Rendering blocks for media types in output order: each
            view of each media type, followed by its links type if any.
        transforms: Transform functions to emit, in request order.
    """

    name: str
    title: str = ""
    description: str = ""
    version: str = ""
    host: str = ""
    schemes: list[str] = field(default_factory=list)
    base_path: str = ""
    generator_version: Optional[str] = None
    types: dict[str, UserType] = field(default_factory=dict)
    media_types: dict[str, MediaType] = field(default_factory=dict)
    projections: list[UserType] = field(default_factory=list)
    resources: dict[str, Resource] = field(default_factory=dict)
    transforms: list[TransformRequest] = field(default_factory=list)

    def sorted_actions(self) -> list[Action]:
        """Actions ordered by action name, then by resource name."""
        actions = [
            action
            for resource in self.resources.values()
            for action in resource.actions.values()
        ]
        return sorted(actions, key=lambda a: (a.name, a.resource))
