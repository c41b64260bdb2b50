"""
Top-level public API surface. Stable facades only.
Reconciles CDN edge-dictionary hostname -> site ID mappings against policy documents.
Does not import cli.
"""

from __future__ import annotations

from . import core, pipeline, providers
from ._version import __version__

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "core",
    "pipeline",
    "providers",
]
