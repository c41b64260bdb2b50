"""
Source architecture for site ID reconciliation.

A ServiceSource reads CDN services and their edge dictionaries; a
PolicySource answers the expected site ID for a hostname. Both are plain
blocking clients that may be shared by many threads.
"""

from __future__ import annotations

from .base import (
    Dictionary,
    DictionaryItem,
    DictionaryRecord,
    PolicyLookup,
    PolicySource,
    PolicyVerdict,
    Service,
    ServiceSource,
    ServiceVersion,
)
from .defaults import create_policy_source, create_service_source
from .fastly import FastlyServiceSource
from .policy_docs import PolicyDocsSource

__all__ = [
    "Dictionary",
    "DictionaryItem",
    "DictionaryRecord",
    "FastlyServiceSource",
    "PolicyDocsSource",
    "PolicyLookup",
    "PolicySource",
    "PolicyVerdict",
    "Service",
    "ServiceSource",
    "ServiceVersion",
    "create_policy_source",
    "create_service_source",
]
