"""
Discrepancy report and run result.

Verifier tasks record into a shared ReconcileResult; the report is rendered
only after the pipeline has fully drained, so a run that aborts never prints
a partial report.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..providers.base import PolicyVerdict

REPORT_SEPARATOR = "-----"


@dataclass(frozen=True)
class Discrepancy:
    service_name: str
    hostname: str
    dictionary_site_id: str
    pdocs_site_id: str

    def render(self) -> str:
        return (
            f"Service: {self.service_name}\n"
            f"Hostname: {self.hostname}\n"
            f"Dictionary site ID: {self.dictionary_site_id}\n"
            f"PDocs site ID:      {self.pdocs_site_id}\n"
            f"{REPORT_SEPARATOR}\n"
        )


@dataclass
class ReconcileResult:
    """Counts and discrepancies for one run. record() is thread-safe."""

    service_ids: List[str] = field(default_factory=list)
    services_fetched: int = 0
    records_extracted: int = 0
    verdicts: Dict[PolicyVerdict, int] = field(
        default_factory=lambda: {v: 0 for v in PolicyVerdict}
    )
    discrepancies: List[Discrepancy] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def record(self, verdict: PolicyVerdict, discrepancy: Optional[Discrepancy] = None) -> None:
        with self._lock:
            self.verdicts[verdict] += 1
            if discrepancy is not None:
                self.discrepancies.append(discrepancy)

    @property
    def verified(self) -> int:
        return sum(self.verdicts.values())

    @property
    def mismatches(self) -> int:
        return self.verdicts[PolicyVerdict.MISMATCH]

    def summary(self) -> str:
        return (
            f"services={self.services_fetched} records={self.records_extracted} "
            f"match={self.verdicts[PolicyVerdict.MATCH]} "
            f"mismatch={self.verdicts[PolicyVerdict.MISMATCH]} "
            f"unverifiable={self.verdicts[PolicyVerdict.UNVERIFIABLE]}"
        )

    def render_report(self) -> str:
        """Concatenated discrepancy blocks in the order they were found. Empty when all matched."""
        with self._lock:
            return "".join(d.render() for d in self.discrepancies)
