"""
Coordinator: wires the three stages together and waits for full drain.

    service ids -> [fetcher] -> services -> [extractor] -> records -> [dispatcher] -> verify task per record

Two independent barriers guard two different drain conditions:
- extracted: the extractor has consumed the closed service channel
- verifications: every dispatched verify task has finished

The record channel is closed only after `extracted` reaches zero, so it is
never closed while the extractor may still send on it. A fatal error in any
stage trips the shared FatalSignal; the other stages stop taking new work,
in-flight verify tasks are drained, and run() raises PipelineAborted without
a report.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, List, Optional, Sequence

from ..core.errors import FatalPipelineError, PipelineAborted
from ..providers.base import DictionaryRecord, PolicySource, Service, ServiceSource
from .channels import Channel, FatalSignal, WaitGroup
from .report import ReconcileResult
from .stages import DEFAULT_DICTIONARY_NAME, extract_records, fetch_services, verify_record

logger = logging.getLogger(__name__)


class Reconciler:
    """
    One reconciliation run over a fixed, ordered list of service identifiers.

    Usage:
        reconciler = Reconciler(service_source, policy_source, service_ids)
        result = reconciler.run()
        sys.stdout.write(result.render_report())
    """

    def __init__(
        self,
        service_source: ServiceSource,
        policy_source: PolicySource,
        service_ids: Sequence[str],
        *,
        dictionary_name: str = DEFAULT_DICTIONARY_NAME,
        log: logging.Logger | None = None,
    ) -> None:
        self._service_source = service_source
        self._policy_source = policy_source
        self._service_ids = list(service_ids)
        self._dictionary_name = dictionary_name
        self._log = log if log is not None else logger

        self.services: Channel[Service] = Channel("services")
        self.records: Channel[DictionaryRecord] = Channel("records")
        self.fatal = FatalSignal()
        self.extracted = WaitGroup()
        self.verifications = WaitGroup()
        self.result = ReconcileResult(service_ids=list(self._service_ids))
        self._started = False

    def _guard(self, stage: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a stage body; convert any failure into a tripped fatal signal."""
        try:
            return fn(*args, **kwargs)
        except FatalPipelineError as exc:
            if self.fatal.trip(exc, stage=stage):
                self._log.debug("Stage %s tripped fatal signal: %s", stage, exc)
        except Exception as exc:
            err = FatalPipelineError(f"{type(exc).__name__}: {exc}")
            err.__cause__ = exc
            self.fatal.trip(err, stage=stage)
        return None

    def _fetch(self) -> None:
        emitted = self._guard(
            "fetch",
            fetch_services,
            self._service_source,
            self._service_ids,
            self.services,
            fatal=self.fatal,
            log=self._log,
        )
        self.result.services_fetched = emitted or 0

    def _extract(self) -> None:
        try:
            emitted = self._guard(
                "extract",
                extract_records,
                self._service_source,
                self.services,
                self.records,
                dictionary_name=self._dictionary_name,
                fatal=self.fatal,
                log=self._log,
            )
            self.result.records_extracted = emitted or 0
        finally:
            self.extracted.done()

    def _verify(self, record: DictionaryRecord) -> None:
        try:
            if self.fatal.tripped:
                return
            verdict, discrepancy = verify_record(self._policy_source, record, log=self._log)
            self.result.record(verdict, discrepancy)
        finally:
            self.verifications.done()

    def _dispatch_all(self) -> None:
        # One task per record, no concurrency cap.
        for record in self.records:
            if self.fatal.tripped:
                continue
            self.verifications.add(1)
            task = threading.Thread(
                target=self._verify,
                args=(record,),
                name=f"verify-{record.hostname}",
                daemon=True,
            )
            try:
                task.start()
            except RuntimeError:
                self.verifications.done()
                raise

    def _dispatch(self) -> None:
        self._guard("dispatch", self._dispatch_all)

    def run(self) -> ReconcileResult:
        """Run the pipeline to completion. Raises PipelineAborted on any fatal error."""
        if self._started:
            raise RuntimeError("Reconciler.run() may only be called once")
        self._started = True

        self.extracted.add(1)
        threads: List[threading.Thread] = [
            threading.Thread(target=self._dispatch, name="verifier-dispatch", daemon=True),
            threading.Thread(target=self._extract, name="record-extractor", daemon=True),
            threading.Thread(target=self._fetch, name="service-fetcher", daemon=True),
        ]
        dispatcher, _extractor, fetcher = threads
        for t in threads:
            t.start()

        self.extracted.wait()
        self.records.close()
        dispatcher.join()
        self.verifications.wait()
        fetcher.join()

        error = self.fatal.error
        if error is not None:
            raise PipelineAborted(error, stage=self.fatal.stage)

        self._log.info("Reconciliation complete: %s", self.result.summary())
        return self.result


def run_reconciliation(
    service_source: ServiceSource,
    policy_source: PolicySource,
    service_ids: Sequence[str],
    *,
    dictionary_name: str = DEFAULT_DICTIONARY_NAME,
    log: Optional[logging.Logger] = None,
) -> ReconcileResult:
    """Build a Reconciler and run it once."""
    return Reconciler(
        service_source,
        policy_source,
        service_ids,
        dictionary_name=dictionary_name,
        log=log,
    ).run()
