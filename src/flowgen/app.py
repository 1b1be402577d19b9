"""Typer application and CLI entry point for flowgen.

Commands:

* ``flowgen generate DESIGN`` -- write ``js/client.js`` (and ``js/saga.js``).
* ``flowgen inspect DESIGN`` -- list the named types of a design.
* ``flowgen transform DESIGN SOURCE TARGET`` -- print one transform function.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler and invokes the Typer app.
:class:`~flowgen.exceptions.FlowgenError` exits with its ``exit_code``;
any other exception is written to a crash log under the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from flowgen import __version__
from flowgen.exceptions import FlowgenError, InvalidUsageError
from flowgen.exit_codes import EXIT_GENERIC_FAILURE
from flowgen.output import (
    OutputFormat,
    OutputManager,
    configure_logging,
    debug,
    error,
    get_output,
    info,
    print_code,
    print_data,
    print_table,
    set_output,
    success,
    warning,
)

app = typer.Typer(
    name="flowgen",
    help="Generate Flow-typed JavaScript API clients from API designs.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"flowgen {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise the global :class:`~flowgen.output.OutputManager` and logging."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)


def _load_api(design: str):  # noqa: ANN202
    from flowgen.design import build_api, load_design

    document = load_design(design)
    debug(f"Loaded design {document.name!r} from {design}")
    return build_api(document)


def _fail(exc: FlowgenError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


# ------------------------------------------------------------------ #
# generate
# ------------------------------------------------------------------ #


@app.command("generate")
def generate_command(
    design: str = typer.Argument(..., help="Design file, URL, or '-' for stdin."),
    out: Optional[str] = typer.Option(
        None, "--out", "-o", help="Output directory; files go to <out>/js."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout of the generated client, in seconds."
    ),
    scheme: Optional[str] = typer.Option(
        None, "--scheme", help="Default scheme (first API scheme if omitted)."
    ),
    host: Optional[str] = typer.Option(
        None, "--host", help="Default host (API host if omitted)."
    ),
    version: Optional[str] = typer.Option(
        None, "--version", help="Required flowgen version (major must match)."
    ),
    indent: Optional[str] = typer.Option(
        None, "--indent", help="Indentation unit of emitted code."
    ),
    mark_optional: bool = typer.Option(
        False, "--mark-optional", help="Render non-required fields as name?: T."
    ),
    no_glue: bool = typer.Option(False, "--no-glue", help="Do not emit saga.js."),
    keep_going: bool = typer.Option(
        False, "--keep-going", help="Report every failing transform, not just the first."
    ),
) -> None:
    """Generate the Flow client for DESIGN.

    Example::

        flowgen generate design.yaml --out web --host api.example.com
    """
    from flowgen.codegen import Generator
    from flowgen.config import resolve_options

    try:
        options = resolve_options(
            out_dir=out,
            timeout=timeout,
            scheme=scheme,
            host=host,
            version=version,
            indent=indent,
            mark_optional=mark_optional or None,
            glue=False if no_glue else None,
            keep_going=keep_going or None,
        )
        api = _load_api(design)
        generator = Generator(api, options)
        paths = generator.generate()
    except FlowgenError as exc:
        raise _fail(exc) from None

    if not api.resources:
        warning("Design has no resources; the client has no API methods")
    for path in paths:
        print_data(str(path))
    success(f"Generated {len(paths)} files in {generator.output_dir}")


# ------------------------------------------------------------------ #
# inspect
# ------------------------------------------------------------------ #


@app.command("inspect")
def inspect_command(
    design: str = typer.Argument(..., help="Design file, URL, or '-' for stdin."),
) -> None:
    """List the named types of DESIGN with their kind and identifier.

    Example::

        flowgen --json inspect design.yaml
    """
    from flowgen.codegen.typemap import TypeRenderer

    try:
        api = _load_api(design)
    except FlowgenError as exc:
        raise _fail(exc) from None

    renderer = TypeRenderer()
    rows = []
    for node in [*api.types.values(), *api.media_types.values()]:
        identifier = getattr(node, "identifier", "")
        rows.append(
            [node.name, node.kind.value, identifier, renderer.describe(node).split("\n")[0]]
        )
    rows.sort(key=lambda row: row[0])
    print_table(
        ["name", "kind", "identifier", "description"],
        rows,
        title=f"{api.title or api.name} types",
    )
    info(f"{len(api.types)} user types, {len(api.media_types)} media types")


# ------------------------------------------------------------------ #
# transform
# ------------------------------------------------------------------ #


@app.command("transform")
def transform_command(
    design: str = typer.Argument(..., help="Design file, URL, or '-' for stdin."),
    source: str = typer.Argument(..., help="Name of the source type."),
    target: str = typer.Argument(..., help="Name of the target type."),
    name: Optional[str] = typer.Option(None, "--name", help="Function name override."),
) -> None:
    """Print the function transforming SOURCE values into TARGET values.

    Example::

        flowgen transform design.yaml Bottle BottlePayload
    """
    from flowgen.codegen.transform import transform

    try:
        api = _load_api(design)
        named = {**api.types, **api.media_types}
        for type_name in (source, target):
            if type_name not in named:
                raise InvalidUsageError(f"Unknown type {type_name!r}")
        code = transform(named[source], named[target], name or "")
    except FlowgenError as exc:
        raise _fail(exc) from None

    print_code(code)


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write the current traceback to the logs directory and return its path."""
    from flowgen.config import get_logs_dir

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = get_logs_dir() / f"crash-{timestamp}.log"
    log_path.write_text(f"{type(exc).__name__}: {exc}\n\n{traceback.format_exc()}")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``flowgen`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except FlowgenError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        log_path = _write_crash_log(exc)
        get_output().error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
