"""
Stable facade: the reconciliation pipeline (Reconciler, run_reconciliation, ReconcileResult)
and its concurrency primitives. Do not add exports without updating __all__.
"""

from __future__ import annotations

from .channels import Channel, FatalSignal, WaitGroup
from .coordinator import Reconciler, run_reconciliation
from .report import Discrepancy, ReconcileResult
from .stages import (
    DEFAULT_DICTIONARY_NAME,
    emit_service_records,
    extract_records,
    fetch_services,
    verify_record,
)

# Do not add exports without updating __all__.
__all__ = [
    "Channel",
    "DEFAULT_DICTIONARY_NAME",
    "Discrepancy",
    "FatalSignal",
    "ReconcileResult",
    "Reconciler",
    "WaitGroup",
    "emit_service_records",
    "extract_records",
    "fetch_services",
    "run_reconciliation",
    "verify_record",
]
