"""
End-to-end pipeline tests with fake sources (no live network).

Covers full drain before return, per-record isolation, unbounded
verification fan-out, and fail-fast aborts that suppress the report.
"""
from __future__ import annotations

import logging

import pytest

from siteid_reconciler.core.errors import (
    DictionaryFetchError,
    FatalPipelineError,
    InconsistentServiceState,
    PipelineAborted,
    ServiceFetchError,
)
from siteid_reconciler.pipeline.coordinator import Reconciler, run_reconciliation
from siteid_reconciler.providers.base import PolicyVerdict
from tests.fakes.sources import FakePolicySource, FakeServiceSource, make_service

_log = logging.getLogger("test_coordinator")
_log.addHandler(logging.NullHandler())
_log.setLevel(logging.INFO)


def _five_services():
    names = ["fe1", "fe2", "fe3", "fe4", "GCDN-Canary"]
    services = [make_service(f"id-{n}", name=n) for n in names]
    dictionaries = {
        f"id-{n}": {f"{n}-{i}.example.com": f"site-{n}-{i}" for i in range(4)} for n in names
    }
    return services, dictionaries


def test_all_match_produces_empty_report():
    services, dictionaries = _five_services()
    answers = {h: s for d in dictionaries.values() for h, s in d.items()}
    source = FakeServiceSource(services, dictionaries)
    policy = FakePolicySource(answers)

    result = run_reconciliation(source, policy, [s.id for s in services], log=_log)

    assert result.services_fetched == 5
    assert result.records_extracted == 20
    assert result.verdicts[PolicyVerdict.MATCH] == 20
    assert result.mismatches == 0
    assert result.render_report() == ""
    assert sorted(policy.calls) == sorted(answers)


def test_single_mismatch_reported_once():
    svc = make_service("id-fe1", name="fe1")
    source = FakeServiceSource([svc], {"id-fe1": {"example.com": "site123", "ok.com": "site9"}})
    policy = FakePolicySource({"example.com": "siteXYZ", "ok.com": "site9"})

    result = run_reconciliation(source, policy, ["id-fe1"], log=_log)

    report = result.render_report()
    assert report.count("-----\n") == 1
    assert "Service: fe1\n" in report
    assert "Hostname: example.com\n" in report
    assert "Dictionary site ID: site123\n" in report
    assert "PDocs site ID:      siteXYZ\n" in report
    assert "ok.com" not in report


def test_not_found_and_errors_do_not_stop_pipeline():
    svc = make_service("id-fe1", name="fe1")
    entries = {"missing.com": "s1", "broken.com": "s2", "diff.com": "s3", "same.com": "s4"}
    source = FakeServiceSource([svc], {"id-fe1": entries})
    policy = FakePolicySource(
        {"broken.com": "s2", "diff.com": "other", "same.com": "s4"},
        errors=["broken.com"],
    )

    result = run_reconciliation(source, policy, ["id-fe1"], log=_log)

    assert result.verdicts[PolicyVerdict.UNVERIFIABLE] == 2
    assert result.verdicts[PolicyVerdict.MISMATCH] == 1
    assert result.verdicts[PolicyVerdict.MATCH] == 1
    assert len(result.discrepancies) == 1
    assert result.discrepancies[0].hostname == "diff.com"


def test_waits_for_slow_verifications():
    services, dictionaries = _five_services()
    answers = {h: s for d in dictionaries.values() for h, s in d.items()}
    source = FakeServiceSource(services, dictionaries)
    policy = FakePolicySource(answers, delay_s=0.2)

    result = run_reconciliation(source, policy, [s.id for s in services], log=_log)

    assert policy.completed == 20
    assert result.verified == 20


def test_verifications_run_concurrently():
    svc = make_service("id-fe1", name="fe1")
    entries = {f"h{i}.com": f"s{i}" for i in range(8)}
    source = FakeServiceSource([svc], {"id-fe1": entries})
    # Every lookup blocks until all eight are in flight at once.
    policy = FakePolicySource(entries, barrier_parties=8)

    result = run_reconciliation(source, policy, ["id-fe1"], log=_log)

    assert result.verdicts[PolicyVerdict.MATCH] == 8


def test_unknown_service_aborts_without_report():
    services, dictionaries = _five_services()
    ids = [s.id for s in services]
    ids.insert(3, "does-not-exist")
    answers = {h: "wrong" for d in dictionaries.values() for h in d}
    source = FakeServiceSource(services, dictionaries)
    policy = FakePolicySource(answers)

    reconciler = Reconciler(source, policy, ids, log=_log)
    with pytest.raises(PipelineAborted, match="does-not-exist") as exc_info:
        reconciler.run()

    assert isinstance(exc_info.value.cause, ServiceFetchError)
    assert exc_info.value.stage == "fetch"
    assert "id-fe4" not in source.service_calls
    assert reconciler.records.closed
    assert reconciler.verifications.count == 0


def test_inconsistent_active_version_aborts():
    good = make_service("id-fe1", name="fe1")
    bad = make_service("id-fe2", name="fe2", active=(1, 2))
    source = FakeServiceSource([good, bad], {"id-fe1": {"a.com": "x"}, "id-fe2": {"b.com": "y"}})
    policy = FakePolicySource({"a.com": "x", "b.com": "y"})

    with pytest.raises(PipelineAborted) as exc_info:
        run_reconciliation(source, policy, ["id-fe1", "id-fe2"], log=_log)

    assert isinstance(exc_info.value.cause, InconsistentServiceState)
    assert exc_info.value.stage == "extract"
    assert all(call[0] != "id-fe2" for call in source.dictionary_calls)


def test_dictionary_failure_aborts():
    svc = make_service("id-fe1", name="fe1")
    source = FakeServiceSource([svc], {"id-fe1": {"a.com": "x"}}, fail_items_for=["id-fe1"])
    policy = FakePolicySource({"a.com": "x"})

    with pytest.raises(PipelineAborted, match="fe1") as exc_info:
        run_reconciliation(source, policy, ["id-fe1"], log=_log)

    assert isinstance(exc_info.value.cause, DictionaryFetchError)
    assert policy.calls == []


def test_unexpected_stage_error_is_wrapped(monkeypatch):
    svc = make_service("id-fe1", name="fe1")
    source = FakeServiceSource([svc], {"id-fe1": {"a.com": "x"}})
    reconciler = Reconciler(source, FakePolicySource({"a.com": "x"}), ["id-fe1"], log=_log)

    def boom():
        raise ValueError("dispatcher broke")

    monkeypatch.setattr(reconciler, "_dispatch_all", boom)
    with pytest.raises(PipelineAborted, match="dispatcher broke") as exc_info:
        reconciler.run()

    assert isinstance(exc_info.value.cause, FatalPipelineError)
    assert isinstance(exc_info.value.cause.__cause__, ValueError)
    assert exc_info.value.stage == "dispatch"


def test_run_only_once():
    svc = make_service("id-fe1")
    source = FakeServiceSource([svc], {"id-fe1": {}})
    reconciler = Reconciler(source, FakePolicySource(), ["id-fe1"], log=_log)
    reconciler.run()
    with pytest.raises(RuntimeError, match="only be called once"):
        reconciler.run()


def test_summary_logged(caplog):
    svc = make_service("id-fe1", name="fe1")
    source = FakeServiceSource([svc], {"id-fe1": {"a.com": "x", "b.com": "y"}})
    policy = FakePolicySource({"a.com": "x"})

    with caplog.at_level(logging.INFO, logger="siteid_reconciler"):
        run_reconciliation(source, policy, ["id-fe1"])

    assert "services=1 records=2 match=1 mismatch=0 unverifiable=1" in caplog.text
