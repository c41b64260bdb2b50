"""
Source interfaces and data contracts.

Two external collaborators feed the reconciliation:
- ServiceSource: the CDN configuration API (services, versions, edge dictionaries)
- PolicySource: the policy document store (expected site ID per hostname)

Data is returned via frozen dataclasses so a Service can be shared read-only
by every record derived from it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from ..core.errors import InconsistentServiceState


class PolicyVerdict(enum.Enum):
    """Outcome of checking one dictionary record against the policy source."""

    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    UNVERIFIABLE = "UNVERIFIABLE"


@dataclass(frozen=True)
class ServiceVersion:
    number: int
    active: bool = False


@dataclass(frozen=True)
class Service:
    """Immutable resolved configuration for one service identifier."""

    id: str
    name: str
    versions: Tuple[ServiceVersion, ...] = ()

    def active_version(self) -> int:
        """
        Return the number of the single active version.

        Raises InconsistentServiceState when zero or several versions are
        flagged active; never falls back to a default.
        """
        active = [v.number for v in self.versions if v.active]
        if len(active) != 1:
            raise InconsistentServiceState(self.name, active)
        return active[0]


@dataclass(frozen=True)
class Dictionary:
    id: str
    name: str
    service_id: str
    version: int


@dataclass(frozen=True)
class DictionaryItem:
    key: str
    value: str


@dataclass(frozen=True)
class DictionaryRecord:
    """One reconciliation unit. `service` is a shared back-reference used for reporting only."""

    hostname: str
    site_id: str
    service: Service


@dataclass(frozen=True)
class PolicyLookup:
    """Policy source answer for one hostname. found=False means the document does not exist."""

    hostname: str
    found: bool
    site_id: Optional[str] = None


@runtime_checkable
class ServiceSource(Protocol):
    """Protocol for CDN configuration sources."""

    @property
    def source_name(self) -> str: ...

    def get_service(self, service_id: str) -> Service:
        """Fetch a service and its versions by identifier."""
        ...

    def get_dictionary(self, service_id: str, version: int, name: str) -> Dictionary:
        """Resolve a named edge dictionary on a service version."""
        ...

    def list_dictionary_items(self, service_id: str, dictionary_id: str) -> List[DictionaryItem]:
        """List every key/value entry of a dictionary."""
        ...


@runtime_checkable
class PolicySource(Protocol):
    """Protocol for the policy document store."""

    @property
    def source_name(self) -> str: ...

    def lookup(self, hostname: str) -> PolicyLookup:
        """Return the expected site ID for a hostname, or found=False on 404."""
        ...
