"""Top-level package for interactsim."""

from importlib import metadata as _metadata

from . import analysis, simulate

try:
    __version__ = _metadata.version("interactsim")
except _metadata.PackageNotFoundError:  # pragma: no cover - during local usage
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "analysis",
    "simulate",
]
