"""Turn a validated design document into a linked type graph.

Building happens in passes so that named types can reference each other in
any order, cyclically included:

1. An empty :class:`~flowgen.design.types.UserType` or
   :class:`~flowgen.design.types.MediaType` shell is created for every
   named type, plus the built-in error media type.
2. Every shell's attribute is built. Named references resolve to the
   shells, so mutually referential types share objects instead of being
   copied.
3. Views are attached and checked, and attributes that select a media
   type view are pointed at the projection.
4. Resources, actions and transform requests are resolved by name.

Before step 4 every declared name is normalized, and two types that would
be declared under the same name are rejected.

Projections are produced by :class:`Projector`, whose cache keyed by
``(media type, view)`` makes projecting cyclic media types terminate.

The single public entry point is :func:`build_api`.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from flowgen.codegen.naming import normalize
from flowgen.design.types import (
    ANY,
    DEFAULT_VIEW,
    ERROR_MEDIA_IDENTIFIER,
    LINK_VIEW,
    PRIMITIVES,
    STRING,
    Action,
    APIDefinition,
    Array,
    Attribute,
    Hash,
    Kind,
    MediaType,
    Object,
    Resource,
    Route,
    TransformRequest,
    UserType,
    View,
)
from flowgen.exceptions import DesignParseError, InvalidIdentifierInputError
from flowgen.models import (
    AttributeSpec,
    DesignDocument,
    MediaTypeSpec,
    ResourceSpec,
    TransformSpec,
)

logger = logging.getLogger(__name__)

ERROR_MEDIA_NAME = "error"

_STRUCTURAL = ("array", "hash", "object")


def error_media_type() -> MediaType:
    """Return a new instance of the built-in error media type."""
    fields = {
        "code": Attribute(
            STRING,
            description="an application-specific error code, expressed as a string value.",
        ),
        "detail": Attribute(
            STRING,
            description="a human-readable explanation specific to this occurrence "
            "of the problem.",
        ),
        "id": Attribute(
            STRING,
            description="a unique identifier for this particular occurrence of the "
            "problem.",
        ),
        "meta": Attribute(
            Hash(key=Attribute(STRING), element=Attribute(ANY)),
            description="a meta object containing non-standard meta-information "
            "about the error.",
        ),
        "status": Attribute(
            STRING,
            description="the HTTP status code applicable to this problem, expressed "
            "as a string value.",
        ),
    }
    media = MediaType(
        name=ERROR_MEDIA_NAME,
        attribute=Attribute(
            Object(fields), description="Error response media type (default view)"
        ),
        identifier=ERROR_MEDIA_IDENTIFIER,
        is_error=True,
    )
    media.views[DEFAULT_VIEW] = View(DEFAULT_VIEW, {name: "" for name in fields})
    return media


def _join_paths(*parts: str) -> str:
    segments = [part.strip("/") for part in parts if part.strip("/")]
    return "/" + "/".join(segments)


def _view_suffix(view: str) -> str:
    return view[:1].upper() + view[1:]


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


class Projector:
    """Project media types onto their views, caching each projection.

    A projection is registered in the cache before its fields are built,
    so a media type reachable from its own view resolves to the projection
    being built.
    """

    def __init__(self) -> None:
        self._cache: dict[tuple[int, str], MediaType] = {}
        self._origins: dict[int, MediaType] = {}

    def project(self, media: MediaType, view: str) -> MediaType:
        """Return *media* restricted to the fields of *view*.

        Raises:
            DesignParseError: If *media* has no such view.
        """
        media = self._origins.get(id(media), media)
        key = (id(media), view)
        if key in self._cache:
            return self._cache[key]
        if view not in media.views:
            raise DesignParseError(f"Media type {media.name!r} has no view {view!r}")

        definition = media.definition
        projected = MediaType(
            name=media.name if view == DEFAULT_VIEW else media.name + _view_suffix(view),
            identifier=media.identifier,
            views={view: media.views[view]},
            links=list(media.links),
            view=view,
            base_name=media.name,
            is_error=media.is_error,
        )
        description = definition.description
        if view != DEFAULT_VIEW:
            projected.identifier = f"{media.identifier}; view={view}"
            if description:
                description = f"{description} ({view} view)"
        self._cache[key] = projected
        self._origins[id(projected)] = media

        shape = definition.type
        if isinstance(shape, Object):
            fields = {
                name: self._project_attribute(shape.fields[name], nested or None)
                for name, nested in media.views[view].fields.items()
            }
            projected.attribute = replace(
                definition,
                type=Object(fields),
                description=description,
                required=[name for name in definition.required if name in fields],
            )
        elif isinstance(shape, Array):
            projected.attribute = replace(
                definition,
                type=Array(self._project_attribute(shape.element, view)),
                description=description,
            )
        else:
            projected.attribute = replace(definition, description=description)
        return projected

    def _project_attribute(self, attribute: Attribute, view: Optional[str]) -> Attribute:
        node = attribute.type
        if isinstance(node, MediaType):
            return replace(
                attribute, type=self.project(node, view or attribute.view or DEFAULT_VIEW)
            )
        if isinstance(node, Array) and isinstance(node.element.type, MediaType):
            element = self._project_attribute(node.element, view)
            return replace(attribute, type=Array(element))
        return attribute

    def links_type(self, media: MediaType) -> Optional[UserType]:
        """Build the ``<Name>Links`` type of *media*, or None without links.

        Each linked media type is projected at its ``link`` view, or at
        ``default`` when it has none.
        """
        if not media.links:
            return None
        shape = media.type
        assert isinstance(shape, Object)  # checked by the builder
        fields = {}
        for name in media.links:
            linked = shape.fields[name]
            assert isinstance(linked.type, MediaType)
            target = self._origins.get(id(linked.type), linked.type)
            view = LINK_VIEW if LINK_VIEW in target.views else DEFAULT_VIEW
            fields[name] = replace(linked, type=self.project(target, view))
        return UserType(
            name=f"{media.name}Links",
            attribute=Attribute(
                Object(fields),
                description=f"{media.name}Links contains links to related resources "
                f"of {media.name}.",
            ),
        )


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class DesignBuilder:
    """Link one :class:`~flowgen.models.DesignDocument` into an API definition."""

    def __init__(self, document: DesignDocument) -> None:
        self.document = document
        self.types: dict[str, UserType] = {}
        self.media_types: dict[str, MediaType] = {}
        self.projector = Projector()
        self._view_refs: list[tuple[Attribute, str, str]] = []

    def build(self) -> APIDefinition:
        doc = self.document
        self._create_shells()

        for name, spec in doc.types.items():
            self.types[name].attribute = self._attribute(spec, f"types.{name}")
        for name, spec in doc.media_types.items():
            self.media_types[name].attribute = self._attribute(spec, f"media_types.{name}")
        self._check_aliases()

        for name, spec in doc.media_types.items():
            self._attach_views(self.media_types[name], spec)
        for name, spec in doc.media_types.items():
            if spec.type == "array" and not spec.views:
                self._inherit_views(self.media_types[name])
        for name in doc.media_types:
            self._check_links(self.media_types[name])
        for attribute, view, context in self._view_refs:
            media = attribute.type
            assert isinstance(media, MediaType)
            if view not in media.views:
                raise DesignParseError(
                    f"{context}: media type {media.name!r} has no view {view!r}"
                )
            attribute.type = self.projector.project(media, view)

        api = APIDefinition(
            name=doc.name,
            title=doc.title,
            description=doc.description,
            version=doc.version,
            host=doc.host,
            schemes=list(doc.schemes),
            base_path=doc.base_path,
            generator_version=doc.generator_version,
            types=dict(sorted(self.types.items())),
            media_types=dict(sorted(self.media_types.items())),
        )
        api.projections = self._projections()
        self._check_rendered_names(api)
        api.resources = {
            name: self._resource(name, spec) for name, spec in sorted(doc.resources.items())
        }
        api.transforms = [self._transform(i, spec) for i, spec in enumerate(doc.transforms)]
        logger.debug(
            "Built API %s: %d types, %d media types, %d resources",
            api.name, len(api.types), len(api.media_types), len(api.resources),
        )
        return api

    # --- Pass 1: shells ---

    def _create_shells(self) -> None:
        error = error_media_type()
        self.media_types[error.name] = error
        for name in self.document.types:
            self._check_name(name, "types")
            self.types[name] = UserType(name)
        for name, spec in self.document.media_types.items():
            self._check_name(name, "media_types")
            self.media_types[name] = MediaType(
                name=name, identifier=spec.identifier, links=list(spec.links)
            )

    def _check_name(self, name: str, section: str) -> None:
        if name in PRIMITIVES or name in _STRUCTURAL:
            raise DesignParseError(f"{section}.{name}: {name!r} is a reserved type name")
        if name in self.types or name in self.media_types:
            raise DesignParseError(f"{section}.{name}: type {name!r} is defined twice")

    # --- Pass 2: attributes ---

    def _attribute(self, spec: AttributeSpec, context: str) -> Attribute:
        kind = spec.type
        if spec.attributes and kind != "object":
            raise DesignParseError(f"{context}: only object types have attributes")
        for key, values in sorted(spec.metadata.items()):
            if not values:
                raise DesignParseError(f"{context}: metadata {key!r} has no value")

        if kind in PRIMITIVES:
            node = PRIMITIVES[kind]
        elif kind == "array":
            if spec.items is None:
                raise DesignParseError(f"{context}: array type requires 'items'")
            node = Array(self._attribute(spec.items, f"{context}.items"))
        elif kind == "hash":
            if spec.value is None:
                raise DesignParseError(f"{context}: hash type requires 'value'")
            key = spec.key if spec.key is not None else AttributeSpec(type="string")
            node = Hash(
                key=self._attribute(key, f"{context}.key"),
                element=self._attribute(spec.value, f"{context}.value"),
            )
        elif kind == "object":
            node = Object(
                {
                    name: self._attribute(field, f"{context}.{name}")
                    for name, field in spec.attributes.items()
                }
            )
            unknown = sorted(set(spec.required) - set(node.fields))
            if unknown:
                raise DesignParseError(
                    f"{context}: required attributes {unknown} are not defined"
                )
        elif kind in self.media_types:
            node = self.media_types[kind]
        elif kind in self.types:
            node = self.types[kind]
        else:
            raise DesignParseError(f"{context}: unknown type {kind!r}")

        attribute = Attribute(
            type=node,
            description=spec.description,
            required=list(spec.required),
            metadata={key: list(values) for key, values in spec.metadata.items()},
            view=spec.view or "",
        )
        if spec.view and spec.view != DEFAULT_VIEW:
            if not isinstance(node, MediaType):
                raise DesignParseError(
                    f"{context}: view {spec.view!r} set on a type that is not a "
                    "media type"
                )
            self._view_refs.append((attribute, spec.view, context))
        return attribute

    def _check_aliases(self) -> None:
        """Reject named types that only alias each other in a loop."""
        for start in [*self.types.values(), *self.media_types.values()]:
            seen = {id(start)}
            node = start.type
            while isinstance(node, UserType):
                if id(node) in seen:
                    raise DesignParseError(
                        f"Type {start.name!r} is an alias cycle with no structure"
                    )
                seen.add(id(node))
                node = node.type

    # --- Pass 3: views and links ---

    def _attach_views(self, media: MediaType, spec: MediaTypeSpec) -> None:
        shape = media.type
        fields = shape.fields if isinstance(shape, Object) else {}
        context = f"media_types.{media.name}"
        for view_name, view_spec in spec.views.items():
            if isinstance(shape, Array):
                media.views[view_name] = View(view_name)
                continue
            if isinstance(view_spec, list):
                view_fields = {name: "" for name in view_spec}
            else:
                view_fields = dict(view_spec)
            unknown = sorted(set(view_fields) - set(fields))
            if unknown:
                raise DesignParseError(
                    f"{context}.views.{view_name}: attributes {unknown} are not defined"
                )
            media.views[view_name] = View(view_name, view_fields)

        if not spec.views and spec.type != "array":
            media.views[DEFAULT_VIEW] = View(DEFAULT_VIEW, {name: "" for name in fields})
        elif spec.views and DEFAULT_VIEW not in media.views:
            raise DesignParseError(f"{context}: media type has no 'default' view")

    def _inherit_views(self, media: MediaType) -> None:
        """Give a collection media type the views of its element."""
        shape = media.type
        assert isinstance(shape, Array)
        element = shape.element.type
        if not isinstance(element, MediaType):
            media.views[DEFAULT_VIEW] = View(DEFAULT_VIEW)
            return
        for view_name in element.views:
            media.views[view_name] = View(view_name)

    def _check_links(self, media: MediaType) -> None:
        if not media.links:
            return
        shape = media.type
        context = f"media_types.{media.name}.links"
        if not isinstance(shape, Object):
            raise DesignParseError(f"{context}: only object media types have links")
        for name in media.links:
            field = shape.fields.get(name)
            if field is None:
                raise DesignParseError(f"{context}: attribute {name!r} is not defined")
            if not isinstance(field.type, MediaType):
                raise DesignParseError(
                    f"{context}: attribute {name!r} is not a media type"
                )

    def _check_rendered_names(self, api: APIDefinition) -> None:
        """Reject named types whose declarations would share a rendered name.

        User types, media types, view projections and links types are all
        declared as ``export type <normalized name>``.
        """
        entries = [(node.name, f"type {node.name!r}") for node in api.types.values()]
        for media in api.media_types.values():
            if not media.is_error and media.kind not in (Kind.OBJECT, Kind.ARRAY):
                entries.append((media.name, f"media type {media.name!r}"))
        for block in api.projections:
            if not isinstance(block, MediaType):
                entries.append((block.name, f"links type {block.name!r}"))
            elif block.is_error:
                continue
            elif block.view == DEFAULT_VIEW:
                entries.append((block.name, f"media type {block.name!r}"))
            else:
                entries.append(
                    (block.name, f"view {block.view!r} of media type {block.base_name!r}")
                )

        seen: dict[str, str] = {}
        for name, label in entries:
            try:
                rendered = normalize(name, True)
            except InvalidIdentifierInputError as exc:
                raise DesignParseError(f"{label}: {exc}") from exc
            if rendered in seen:
                raise DesignParseError(
                    f"{seen[rendered]} and {label} both render as {rendered!r}"
                )
            seen[rendered] = label

    def _projections(self) -> list[UserType]:
        error = self.media_types[ERROR_MEDIA_NAME]
        blocks: list[UserType] = [self.projector.project(error, DEFAULT_VIEW)]
        for name, media in sorted(self.media_types.items()):
            if media.is_error or media.kind not in (Kind.OBJECT, Kind.ARRAY):
                continue
            for view in sorted(media.views):
                blocks.append(self.projector.project(media, view))
            links = self.projector.links_type(media)
            if links is not None:
                blocks.append(links)
        return blocks

    # --- Pass 4: resources and transforms ---

    def _named(self, name: str, context: str) -> UserType:
        if name in self.types:
            return self.types[name]
        if name in self.media_types:
            return self.media_types[name]
        raise DesignParseError(f"{context}: unknown type {name!r}")

    def _resource(self, name: str, spec: ResourceSpec) -> Resource:
        resource = Resource(name=name, base_path=spec.base_path, description=spec.description)
        for action_name, action_spec in sorted(spec.actions.items()):
            context = f"resources.{name}.actions.{action_name}"
            if not action_spec.routes:
                raise DesignParseError(f"{context}: action has no routes")
            action = Action(
                name=action_name,
                resource=name,
                description=action_spec.description,
                routes=[
                    Route(
                        method=route.method.value,
                        path=_join_paths(self.document.base_path, spec.base_path, route.path),
                    )
                    for route in action_spec.routes
                ],
            )
            if action_spec.payload:
                action.payload = self._named(action_spec.payload, f"{context}.payload")
            if action_spec.query is not None:
                action.query = self._attribute(action_spec.query, f"{context}.query")
                if action.query.kind is not Kind.OBJECT:
                    raise DesignParseError(f"{context}.query: query must be an object")
            resource.actions[action_name] = action
        return resource

    def _transform(self, index: int, spec: TransformSpec) -> TransformRequest:
        context = f"transforms[{index}]"
        return TransformRequest(
            source=self._named(spec.source, f"{context}.source"),
            target=self._named(spec.target, f"{context}.target"),
            name=spec.name or "",
        )


def build_api(document: DesignDocument) -> APIDefinition:
    """Link *document* into an :class:`~flowgen.design.types.APIDefinition`.

    Raises:
        DesignParseError: On unknown type names, undefined required or view
            attributes, missing views, invalid links, or alias cycles.
    """
    return DesignBuilder(document).build()
