"""
Shared exception types for siteid_reconciler.

Two tiers: fatal errors abort the whole reconciliation (a partial report
could be read as a clean bill of health); per-record errors are logged and
the record is counted as unverifiable.
"""

from __future__ import annotations

from typing import Optional


class ReconcilerError(Exception):
    """Base exception for siteid_reconciler; catch this for any package-raised error."""

    pass


class ConfigError(ReconcilerError):
    """Missing or invalid configuration (e.g. no API key)."""

    pass


class ChannelClosedError(ReconcilerError):
    """Send attempted on a channel that has already been closed."""

    pass


class FatalPipelineError(ReconcilerError):
    """Structural failure: the reconciliation can no longer be trusted to be complete."""

    pass


class ServiceSourceError(FatalPipelineError):
    """The CDN configuration API failed or returned an unusable payload."""

    pass


class ServiceFetchError(FatalPipelineError):
    """Resolving a service identifier failed."""

    def __init__(self, service_id: str, cause: BaseException) -> None:
        self.service_id = service_id
        self.cause = cause
        super().__init__(f"Unable to fetch service {service_id}: {cause}")


class DictionaryFetchError(FatalPipelineError):
    """Resolving or listing a service's dictionary failed."""

    def __init__(self, service_name: str, action: str, cause: BaseException) -> None:
        self.service_name = service_name
        self.cause = cause
        super().__init__(f"Unable to {action} for {service_name}: {cause}")


class InconsistentServiceState(FatalPipelineError):
    """A service does not have exactly one active version."""

    def __init__(self, service_name: str, active_versions: list[int]) -> None:
        self.service_name = service_name
        self.active_versions = list(active_versions)
        if not active_versions:
            detail = "no active version"
        else:
            detail = f"{len(active_versions)} active versions {self.active_versions}"
        super().__init__(f"Service {service_name} has {detail}; expected exactly one")


class PipelineAborted(ReconcilerError):
    """Raised by the coordinator after a stage tripped the fatal signal."""

    def __init__(self, cause: FatalPipelineError, stage: Optional[str] = None) -> None:
        self.cause = cause
        self.stage = stage
        prefix = f"{stage}: " if stage else ""
        super().__init__(f"{prefix}{cause}")


class PolicySourceError(ReconcilerError):
    """Policy document lookup failed (transport error or unexpected status). Per-record only."""

    pass


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
