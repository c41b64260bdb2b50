"""
Stable facade: exception types only. No providers, pipeline, or cli.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    ChannelClosedError,
    ConfigError,
    DictionaryFetchError,
    FatalPipelineError,
    InconsistentServiceState,
    PipelineAborted,
    PolicySourceError,
    ReconcilerError,
    ServiceFetchError,
    ServiceSourceError,
)

# Do not add exports without updating __all__.
__all__ = [
    "ChannelClosedError",
    "ConfigError",
    "DictionaryFetchError",
    "FatalPipelineError",
    "InconsistentServiceState",
    "PipelineAborted",
    "PolicySourceError",
    "ReconcilerError",
    "ServiceFetchError",
    "ServiceSourceError",
]
