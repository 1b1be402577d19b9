"""Option resolution, data directory, and atomic writes.

* **Data directory** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.flowgen/`` on macOS and Windows. Crash logs live under it. See
  :func:`get_data_dir`.
* **Project config** -- an optional ``./flowgen.json`` pinning generator
  options for a repository. See :func:`load_project_config`.
* **Precedence resolution** -- :func:`resolve_options` merges CLI flags,
  environment variables, project config, and defaults into one
  :class:`~flowgen.models.GeneratorOptions`.

Generated files are written with :func:`atomic_write` (temp file then
rename) so that an interrupted run never leaves a half-written module.
"""

from __future__ import annotations

import json
import logging
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from flowgen.exceptions import ConfigError
from flowgen.models import GeneratorOptions

logger = logging.getLogger(__name__)

_APP_NAME = "flowgen"
_PROJECT_CONFIG_FILENAME = "flowgen.json"

# Environment variable -> option name.
ENV_OPTIONS = {
    "FLOWGEN_OUT": "out_dir",
    "FLOWGEN_TIMEOUT": "timeout",
    "FLOWGEN_SCHEME": "scheme",
    "FLOWGEN_HOST": "host",
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_data_dir() -> Path:
    """Return the data directory, creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/flowgen/`` (default
    ``~/.local/share/flowgen/``). On macOS/Windows: ``~/.flowgen/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_logs_dir() -> Path:
    """Return ``<data dir>/logs``, creating it if necessary."""
    path = get_data_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write *data* to *path* atomically using a temp file + rename.

    The temp file lives in the same directory as *path* so ``os.replace``
    is an atomic rename on POSIX. On any failure the temp file is removed
    and the exception propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project-local config ---


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local options from ``./flowgen.json``.

    Returns:
        The parsed JSON object, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid project config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


# --- Precedence resolution ---


def resolve_options(**cli: Any) -> GeneratorOptions:
    """Resolve generator options with the full precedence chain.

    Precedence (high to low):
        1. CLI flags -- keyword arguments; ``None`` means "not given"
        2. Environment variables (``FLOWGEN_OUT``, ``FLOWGEN_TIMEOUT``,
           ``FLOWGEN_SCHEME``, ``FLOWGEN_HOST``)
        3. Project config (``./flowgen.json``)
        4. Defaults of :class:`~flowgen.models.GeneratorOptions`

    Raises:
        ConfigError: On unknown option names or values that fail validation.
    """
    merged: dict[str, Any] = {}

    project = load_project_config()
    if project is not None:
        unknown = sorted(set(project) - set(GeneratorOptions.model_fields))
        if unknown:
            raise ConfigError(f"Unknown options in {_PROJECT_CONFIG_FILENAME}: {unknown}")
        merged.update(project)

    for env_var, option in ENV_OPTIONS.items():
        value = os.environ.get(env_var)
        if value:
            merged[option] = value

    merged.update({key: value for key, value in cli.items() if value is not None})
    logger.debug("Resolved options: %s", merged)

    try:
        options = GeneratorOptions.model_validate(merged)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigError(f"Invalid generator options: {problems}") from exc
    if options.timeout <= 0:
        raise ConfigError(f"Timeout must be positive, got {options.timeout}")
    return options
