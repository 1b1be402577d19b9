"""Design documents and the type graph built from them.

* :mod:`~flowgen.design.types` -- type graph node classes and API surface.
* :mod:`~flowgen.design.loader` -- read JSON/YAML documents.
* :mod:`~flowgen.design.builder` -- link documents into an API definition.
"""

from flowgen.design.builder import build_api
from flowgen.design.loader import load_design

__all__ = ["build_api", "load_design"]
