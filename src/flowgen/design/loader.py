"""Load design documents from a URL, local file, or stdin.

Design documents are JSON or YAML. The format is picked from the file
extension or the response content type when there is one, otherwise JSON
is tried first and YAML second (every JSON document is also YAML, but the
JSON parser gives better error messages).

The public functions are:

* :func:`load_document` -- Fetch and parse raw content into a dict.
* :func:`parse_design` -- Validate a dict into a
  :class:`~flowgen.models.DesignDocument`.
* :func:`load_design` -- Both of the above.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import ValidationError

from flowgen.exceptions import DesignParseError
from flowgen.models import DesignDocument

logger = logging.getLogger(__name__)

_URL_TIMEOUT = 30.0


def load_design(source: str) -> DesignDocument:
    """Load and validate a design document from URL, file path, or stdin ('-').

    Raises:
        DesignParseError: If the document cannot be loaded, parsed or
            validated.
    """
    return parse_design(load_document(source), origin=source)


def load_document(source: str) -> dict[str, Any]:
    """Load a raw design document.

    Args:
        source: A URL (http/https), a file path, or '-' for stdin.

    Returns:
        The parsed document as a dictionary.

    Raises:
        DesignParseError: If the source cannot be read or parsed.
    """
    logger.debug("Loading design document from %s", source)
    if source == "-":
        return _load_from_stdin()
    if source.startswith(("http://", "https://")):
        return _load_from_url(source)
    return _load_from_file(source)


def parse_design(data: dict[str, Any], origin: str = "design") -> DesignDocument:
    """Validate a raw document against :class:`~flowgen.models.DesignDocument`.

    Raises:
        DesignParseError: Listing every validation problem with its location.
    """
    try:
        return DesignDocument.model_validate(data)
    except ValidationError as exc:
        problems = "\n".join(
            f"  {'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        )
        raise DesignParseError(f"Invalid design document {origin}:\n{problems}") from exc


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise DesignParseError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise DesignParseError("No input received from stdin")

    return _parse_content(content, hint="")


def _load_from_url(url: str) -> dict[str, Any]:
    """Fetch a design document over HTTP(S).

    The response content type, when it names JSON or YAML, decides the
    parser.
    """
    try:
        response = httpx.get(url, timeout=_URL_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise DesignParseError(
            f"HTTP {exc.response.status_code} fetching design from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise DesignParseError(f"Failed to fetch design from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"

    return _parse_content(response.text, hint=hint)


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise DesignParseError(f"Design file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DesignParseError(f"Failed to read design file {path}: {exc}") from exc

    if not content.strip():
        raise DesignParseError(f"Design file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _as_document(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise DesignParseError(f"Design must be a JSON/YAML object (got {kind})")
    return result


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML, honouring a 'json' or 'yaml' hint.

    Raises:
        DesignParseError: If the content is neither, or is not a mapping.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            return _as_document(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise DesignParseError(f"Invalid JSON: {exc}") from exc
            json_error = exc

    try:
        return _as_document(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        msg = "Failed to parse design as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise DesignParseError(msg) from exc
