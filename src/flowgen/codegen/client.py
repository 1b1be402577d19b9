"""Render the Flow client module and its Redux glue from an API definition.

The client module (``client.js``) is assembled from Jinja2 templates in
``codegen/templates/``, in this order:

1. ``module.js.j2`` -- flow header, ``ApiError``, ``timeoutPromise``,
   ``autobind`` and the opening of the ``Client`` class.
2. ``action.js.j2`` -- per action, sorted by action name then resource
   name: a ``<name>Path`` builder and a ``<name>`` caller method.
3. The close of the ``Client`` class.
4. ``mediatype.js.j2`` -- the error media type, then every view of every
   object or array media type, each followed by its links type.
5. ``usertype.js.j2`` -- every object or array user type.
6. Transform functions requested by the design.
7. ``module_end.js.j2`` -- ``export default Client``.

The glue module (``saga.js``) is a fixed template listing one action
creator per client method.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from flowgen import __version__
from flowgen.codegen.naming import TempCounter, normalize
from flowgen.codegen.transform import TransformGenerator
from flowgen.codegen.typemap import TypeRenderer
from flowgen.design.types import (
    Action,
    APIDefinition,
    Kind,
    MediaType,
    Object,
    UserType,
)
from flowgen.exceptions import TransformError
from flowgen.models import GeneratorOptions

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``codegen/templates/``)."""

_WILDCARD_RE = re.compile(r"[:*]([a-zA-Z0-9_]+)")


def _build_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(disabled_extensions=("js.j2",)),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _title(name: str) -> str:
    return name[:1].upper() + name[1:]


def action_label(action: Action) -> str:
    """Return ``<action><Resource>``, the raw name of an action's methods."""
    return action.name + _title(action.resource)


def action_name(action: Action) -> str:
    """Return the normalized method name of *action*, e.g. ``showBottle``."""
    return normalize(action_label(action), False)


def path_expression(path: str) -> str:
    """Render a route path as a JavaScript string expression.

    Wildcards become concatenated parameters::

        >>> path_expression("/bottles/:id")
        "'/bottles/'+id"
    """
    expr = "'" + _WILDCARD_RE.sub(lambda m: "'+" + normalize(m.group(1), False) + "+'", path) + "'"
    if expr.endswith("+''"):
        expr = expr[: -len("+''")]
    return expr


class ClientWriter:
    """Render ``client.js`` and ``saga.js`` for one API definition.

    Args:
        api: The linked API definition.
        options: Generation options. ``scheme`` and ``host`` must already
            be resolved.
        counter: Temporary variable counter shared by all transforms of
            the run.
    """

    def __init__(
        self,
        api: APIDefinition,
        options: GeneratorOptions,
        counter: Optional[TempCounter] = None,
    ) -> None:
        self.api = api
        self.options = options
        self.renderer = TypeRenderer(indent=options.indent, mark_optional=options.mark_optional)
        self.transforms = TransformGenerator(self.renderer, counter or TempCounter())
        self.env = _build_env()

    def _render(self, template: str, **context: Any) -> str:
        return self.env.get_template(template).render(**context)

    # ------------------------------------------------------------------ #
    # client.js
    # ------------------------------------------------------------------ #

    def render(self) -> str:
        """Return the complete client module.

        Raises:
            TransformError: If a requested transform is invalid. With
                ``keep_going`` every transform is attempted first and the
                failures are reported together.
            UnknownTypeKindError: If the type graph contains an unknown node.
        """
        parts = [
            self._render(
                "module.js.j2",
                title=self.api.title or self.api.name,
                generator=__version__,
                scheme=self.options.scheme,
                host=self.options.host,
                timeout_ms=self.options.timeout_ms,
            )
        ]
        for action in self.api.sorted_actions():
            parts.append(self.render_action(action))
        parts.append("}\n\n")
        for block in self.api.projections:
            parts.append(self.render_type(block))
        for user_type in self.api.types.values():
            if user_type.kind in (Kind.OBJECT, Kind.ARRAY):
                parts.append(self.render_type(user_type))
        parts.extend(self.render_transforms())
        parts.append(self._render("module_end.js.j2"))
        return "".join(parts)

    def render_action(self, action: Action) -> str:
        """Return the path builder and caller methods of *action*."""
        route = action.routes[0]
        name = action_name(action)
        label = action_label(action)
        query = self.query_params(action)

        doc = [
            action.description
            or f"{label} calls the {action.name} action of the {action.resource} resource."
        ]
        arguments = ["path: string"]
        if action.payload is not None:
            doc.append("data contains the action payload (request body)")
            arguments.append(f"data: {self.renderer.type_name(action.payload)}")
        if query:
            verb = "are" if len(query) > 1 else "is"
            doc.append(f"{', '.join(query)} {verb} used to build the request query string.")
            arguments.append(f"query: {{{', '.join(query)}}}")
        doc.append(
            "config is an optional object to be merged into the config built by "
            "the function prior to making the request."
        )
        doc.append(
            "This function returns a promise which raises an error if the HTTP "
            "response is a 4xx or 5xx."
        )
        arguments.append("config?: Object")

        logger.debug("Rendering action %s (%s %s)", name, route.method, route.path)
        return self._render(
            "action.js.j2",
            name=name,
            label=label,
            path_params=", ".join(
                f"{normalize(param, False)}: number|string" for param in route.params()
            ),
            path_expr=path_expression(route.path),
            doc=[line for text in doc for line in text.splitlines()],
            arguments=", ".join(arguments),
            method=route.method.lower(),
            payload=action.payload is not None,
            query=bool(query),
        )

    def query_params(self, action: Action) -> list[str]:
        """Return the sorted ``name: T`` query parameters of *action*."""
        if action.query is None:
            return []
        shape = action.query.type
        while isinstance(shape, UserType):
            shape = shape.type
        assert isinstance(shape, Object)  # checked by the builder
        return sorted(
            f"{name}: {self.renderer.type_name(field.type, field.required, 1)}"
            for name, field in shape.fields.items()
        )

    def render_type(self, node: UserType) -> str:
        """Return the ``export type`` declaration of a named type."""
        context = {
            "description": self.renderer.describe(node, True),
            "name": self.renderer.type_name(node, node.required),
            "definition": self.renderer.type_def(node.definition, 0, True),
        }
        if isinstance(node, MediaType):
            return self._render("mediatype.js.j2", identifier=node.identifier, **context)
        return self._render("usertype.js.j2", **context)

    def render_transforms(self) -> list[str]:
        """Return one function per requested transform.

        Raises:
            TransformError: See :meth:`render`.
        """
        blocks: list[str] = []
        failures: list[TransformError] = []
        for request in self.api.transforms:
            try:
                blocks.append(
                    self.transforms.transform(request.source, request.target, request.name)
                    + "\n"
                )
            except TransformError as exc:
                if not self.options.keep_going:
                    raise
                logger.warning("Transform %s -> %s failed: %s", request.source.name,
                               request.target.name, exc)
                failures.append(exc)
        if failures:
            if len(failures) == 1:
                raise failures[0]
            details = "\n".join(f"  {exc}" for exc in failures)
            raise TransformError(f"{len(failures)} transforms failed:\n{details}")
        return blocks

    # ------------------------------------------------------------------ #
    # saga.js
    # ------------------------------------------------------------------ #

    def render_glue(self) -> str:
        """Return the Redux glue module for the client methods."""
        methods = [
            {"name": action_name(action), "action": action.name, "resource": action.resource}
            for action in self.api.sorted_actions()
        ]
        return self._render(
            "saga.js.j2",
            title=self.api.title or self.api.name,
            generator=__version__,
            methods=methods,
        )
