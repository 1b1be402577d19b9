"""Pydantic models shared across flowgen modules.

The models fall into two groups:

**Options** -- :class:`GeneratorOptions`, the effective settings of one
generation run, resolved by :func:`flowgen.config.resolve_options`.

**Design document** -- the JSON/YAML input format, validated by
:class:`DesignDocument` and its nested models before
:mod:`flowgen.design.builder` turns it into a linked type graph:
    :class:`AttributeSpec`, :class:`MediaTypeSpec`, :class:`RouteSpec`,
    :class:`ActionSpec`, :class:`ResourceSpec`, :class:`TransformSpec`.

Design document models forbid unknown keys so that typos such as
``atributes`` fail loudly instead of silently producing empty types.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# --- Options ---


class GeneratorOptions(BaseModel):
    """Effective options of a generation run.

    Empty ``scheme`` and ``host`` are filled in from the API definition by
    :meth:`flowgen.codegen.generator.Generator.generate`.
    """

    out_dir: str = Field(default=".", description="Directory receiving js/")
    timeout: float = Field(
        default=20, description="Request timeout of the generated client, in seconds"
    )
    scheme: str = Field(default="", description="Default scheme of the generated client")
    host: str = Field(default="", description="Default host of the generated client")
    version: Optional[str] = Field(
        default=None, description="Generator version required by the caller"
    )
    indent: str = Field(default="  ", description="Indentation unit of emitted code")
    mark_optional: bool = Field(
        default=False, description="Render non-required fields as optional properties"
    )
    glue: bool = Field(default=True, description="Also emit saga.js")
    keep_going: bool = Field(
        default=False, description="Report every failing transform, not just the first"
    )

    @property
    def timeout_ms(self) -> int:
        return int(self.timeout * 1000)


# --- Design document ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods accepted in action routes."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"


class AttributeSpec(BaseModel):
    """A typed attribute: a named type body, an object field, an element, ...

    A bare string is accepted as shorthand for ``{"type": <string>}``.

    Example (YAML)::

        type: object
        required: [id]
        attributes:
          id: integer
          tags:
            type: array
            items: string
    """

    model_config = ConfigDict(extra="forbid")

    type: str = Field(
        description="Primitive (boolean, integer, number, string, datetime, uuid, "
        "any), structural (array, hash, object), or a named type"
    )
    description: str = ""
    items: Optional[AttributeSpec] = Field(default=None, description="Array element")
    key: Optional[AttributeSpec] = Field(default=None, description="Hash key")
    value: Optional[AttributeSpec] = Field(default=None, description="Hash element")
    attributes: dict[str, AttributeSpec] = Field(
        default_factory=dict, description="Object fields"
    )
    required: list[str] = Field(
        default_factory=list, description="Required fields of the described object"
    )
    metadata: dict[str, list[str]] = Field(default_factory=dict)
    view: Optional[str] = Field(
        default=None, description="View of a referenced media type"
    )

    @model_validator(mode="before")
    @classmethod
    def _expand_shorthand(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"type": data}
        return data


class MediaTypeSpec(AttributeSpec):
    """A media type: an attribute plus identifier, views and links."""

    identifier: str = Field(description="Content type, e.g. application/vnd.bottle+json")
    views: dict[str, list[str] | dict[str, str]] = Field(
        default_factory=dict,
        description="View name -> field names, or field name -> nested view",
    )
    links: list[str] = Field(
        default_factory=list, description="Fields exposed in the <Name>Links type"
    )


class RouteSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    method: HTTPMethod
    path: str = ""

    @field_validator("method", mode="before")
    @classmethod
    def _lower_method(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value


class ActionSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    description: str = ""
    routes: list[RouteSpec] = Field(default_factory=list)
    payload: Optional[str] = Field(default=None, description="Name of the payload type")
    query: Optional[AttributeSpec] = Field(
        default=None, description="Object attribute describing the query string"
    )


class ResourceSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    base_path: str = ""
    description: str = ""
    actions: dict[str, ActionSpec] = Field(default_factory=dict)


class TransformSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    source: str
    target: str
    name: Optional[str] = Field(default=None, description="Function name override")


class DesignDocument(BaseModel):
    """Root of a design document.

    Loaded by :func:`flowgen.design.loader.load_design` and linked by
    :func:`flowgen.design.builder.build_api`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    title: str = ""
    description: str = ""
    version: str = ""
    host: str = ""
    schemes: list[str] = Field(default_factory=list)
    base_path: str = ""
    generator_version: Optional[str] = Field(
        default=None, description="flowgen version the design was written for"
    )
    types: dict[str, AttributeSpec] = Field(default_factory=dict)
    media_types: dict[str, MediaTypeSpec] = Field(default_factory=dict)
    resources: dict[str, ResourceSpec] = Field(default_factory=dict)
    transforms: list[TransformSpec] = Field(default_factory=list)
