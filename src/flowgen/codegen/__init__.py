"""Code generation for Flow-typed JavaScript clients."""

from flowgen.codegen.generator import Generator, check_version

__all__ = ["Generator", "check_version"]
