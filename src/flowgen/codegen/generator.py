"""Run one generation: defaults, version gate, output directory, file writes.

:class:`Generator` renders every module in memory first and only then
touches the filesystem, so rendering errors never leave partial output.
Files are written with :func:`flowgen.config.atomic_write`. If anything
fails after the output directory has been recreated, every file written so
far is removed again (:meth:`Generator.cleanup`).

Layout under ``options.out_dir``::

    js/
      client.js   Flow client and type declarations
      saga.js     Redux glue (unless glue is disabled)
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from flowgen import __version__
from flowgen.codegen.client import ClientWriter
from flowgen.codegen.naming import TempCounter
from flowgen.config import atomic_write
from flowgen.design.types import APIDefinition
from flowgen.exceptions import ConfigError, GenerationError, IncompatibleVersionError
from flowgen.models import GeneratorOptions

logger = logging.getLogger(__name__)

OUTPUT_SUBDIR = "js"
CLIENT_FILENAME = "client.js"
GLUE_FILENAME = "saga.js"
DEFAULT_SCHEME = "http"


def _major(version: str) -> str:
    return version.lstrip("v").split(".", 1)[0]


def check_version(required: Optional[str]) -> None:
    """Check that this flowgen can serve a design written for *required*.

    Versions are compatible when their major components match. ``None`` or
    an empty string always passes.

    Raises:
        IncompatibleVersionError: If the major versions differ.
    """
    if not required:
        return
    if _major(required) != _major(__version__):
        raise IncompatibleVersionError(
            f"Design requires flowgen {required}, but this is flowgen {__version__}"
        )


class Generator:
    """Generate the client modules of one API definition.

    Args:
        api: The linked API definition.
        options: Resolved generator options.
    """

    def __init__(self, api: APIDefinition, options: GeneratorOptions) -> None:
        self.api = api
        self.options = options
        self.genfiles: list[Path] = []

    @property
    def output_dir(self) -> Path:
        return Path(self.options.out_dir) / OUTPUT_SUBDIR

    def apply_defaults(self) -> GeneratorOptions:
        """Fill in ``scheme`` and ``host`` from the API definition.

        Raises:
            ConfigError: If no host is given and the API has none.
        """
        updates = {}
        if not self.options.scheme:
            updates["scheme"] = self.api.schemes[0] if self.api.schemes else DEFAULT_SCHEME
        if not self.options.host:
            if not self.api.host:
                raise ConfigError("missing host value, set it with --host")
            updates["host"] = self.api.host
        if updates:
            self.options = self.options.model_copy(update=updates)
        return self.options

    def render(self) -> dict[str, str]:
        """Render every output module, keyed by file name."""
        writer = ClientWriter(self.api, self.options, TempCounter())
        files = {CLIENT_FILENAME: writer.render()}
        if self.options.glue:
            files[GLUE_FILENAME] = writer.render_glue()
        return files

    def generate(self) -> list[Path]:
        """Generate the client modules and return the written paths.

        Raises:
            IncompatibleVersionError: If the requested generator version is
                not served by this flowgen.
            ConfigError: If no host can be determined.
            TransformError: If a requested transform is invalid.
            GenerationError: If the output cannot be written.
        """
        check_version(self.options.version or self.api.generator_version)
        self.apply_defaults()
        files = self.render()

        try:
            if self.output_dir.exists():
                shutil.rmtree(self.output_dir)
            self.output_dir.mkdir(parents=True)
            for filename, content in files.items():
                path = self.output_dir / filename
                self.genfiles.append(path)
                atomic_write(path, content)
                logger.debug("Wrote %s (%d bytes)", path, len(content))
        except OSError as exc:
            self.cleanup()
            raise GenerationError(f"Failed to write {self.output_dir}: {exc}") from exc
        except BaseException:
            self.cleanup()
            raise
        return list(self.genfiles)

    def cleanup(self) -> None:
        """Remove every file written by :meth:`generate`."""
        for path in self.genfiles:
            path.unlink(missing_ok=True)
        self.genfiles = []
