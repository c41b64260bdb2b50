"""
Pipeline stages: service fetch, record extraction, record verification.

Stages raise FatalPipelineError subclasses on structural failures and leave
it to the coordinator to trip the shared fatal signal. Verification never
raises: per-record failures are logged and counted as unverifiable.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Tuple

from ..core.errors import DictionaryFetchError, ServiceFetchError
from ..providers.base import (
    DictionaryRecord,
    PolicySource,
    PolicyVerdict,
    Service,
    ServiceSource,
)
from .channels import Channel, FatalSignal
from .report import Discrepancy

logger = logging.getLogger(__name__)

DEFAULT_DICTIONARY_NAME = "hostname_to_site_id"


def fetch_services(
    source: ServiceSource,
    service_ids: Sequence[str],
    out: Channel[Service],
    *,
    fatal: Optional[FatalSignal] = None,
    log: logging.Logger | None = None,
) -> int:
    """
    Resolve each identifier in order and send the Service on `out` as soon as it arrives.

    Any failure raises ServiceFetchError naming the identifier. `out` is closed
    on every exit path. Returns the number of services emitted.
    """
    _log = log if log is not None else logger
    emitted = 0
    try:
        for service_id in service_ids:
            if fatal is not None and fatal.tripped:
                _log.debug("Fatal signal set, stopping before service %s", service_id)
                break
            try:
                service = source.get_service(service_id)
            except Exception as exc:
                raise ServiceFetchError(service_id, exc) from exc
            out.send(service)
            emitted += 1
    finally:
        _log.info("Closing service channel")
        out.close()
    return emitted


def emit_service_records(
    source: ServiceSource,
    service: Service,
    out: Channel[DictionaryRecord],
    dictionary_name: str = DEFAULT_DICTIONARY_NAME,
) -> int:
    """Send one DictionaryRecord per entry of the service's active dictionary. Returns the count."""
    version = service.active_version()

    try:
        dictionary = source.get_dictionary(service.id, version, dictionary_name)
    except Exception as exc:
        raise DictionaryFetchError(service.name, "get dictionary", exc) from exc

    try:
        items = source.list_dictionary_items(service.id, dictionary.id)
    except Exception as exc:
        raise DictionaryFetchError(service.name, "list dictionary items", exc) from exc

    for item in items:
        out.send(DictionaryRecord(hostname=item.key, site_id=item.value, service=service))
    return len(items)


def extract_records(
    source: ServiceSource,
    services: Iterable[Service],
    out: Channel[DictionaryRecord],
    *,
    dictionary_name: str = DEFAULT_DICTIONARY_NAME,
    fatal: Optional[FatalSignal] = None,
    log: logging.Logger | None = None,
) -> int:
    """
    Sequentially turn every service arriving on `services` into dictionary records.

    Does not close `out`; the coordinator owns it. Returns the number of records emitted.
    """
    _log = log if log is not None else logger
    emitted = 0
    for service in services:
        if fatal is not None and fatal.tripped:
            _log.debug("Fatal signal set, skipping service %s", service.name)
            continue
        _log.info("Received service: %s", service.name)
        count = emit_service_records(source, service, out, dictionary_name)
        _log.debug("Extracted %d records from %s", count, service.name)
        emitted += count
    _log.info("Done receiving services")
    return emitted


def verify_record(
    policy: PolicySource,
    record: DictionaryRecord,
    *,
    log: logging.Logger | None = None,
) -> Tuple[PolicyVerdict, Optional[Discrepancy]]:
    """Check one record against the policy source. Never raises for lookup failures."""
    _log = log if log is not None else logger
    service_name = record.service.name
    try:
        lookup = policy.lookup(record.hostname)
    except Exception as exc:
        _log.warning(
            "Unable to fetch policy doc for service %s hostname %s: %s",
            service_name, record.hostname, exc,
        )
        return PolicyVerdict.UNVERIFIABLE, None

    if not lookup.found:
        _log.warning("Policy doc not found for service %s hostname %s", service_name, record.hostname)
        return PolicyVerdict.UNVERIFIABLE, None

    expected = lookup.site_id or ""
    if record.site_id == expected:
        return PolicyVerdict.MATCH, None
    return PolicyVerdict.MISMATCH, Discrepancy(
        service_name=service_name,
        hostname=record.hostname,
        dictionary_site_id=record.site_id,
        pdocs_site_id=expected,
    )
