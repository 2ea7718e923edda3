import pytest

from conftest import FakeClock, StubGeocoder, StubProvider

from batch_geocoding.geocoding.geocoders import GeocodeClient
from batch_geocoding.geocoding.models import ORIGIN, Coordinates, GeocodeStatus
from batch_geocoding.geocoding.orchestrator import BatchOrchestrator
from batch_geocoding.geocoding.throttling import NoOpRateLimiter
from batch_geocoding.utils.errors import NoValidRecords, NotFound, Timeout


def test_one_failure_does_not_abort_batch(people):
    updates = []
    geocoder = StubGeocoder(by_city={"Springfield": NotFound("no such place")})
    orchestrator = BatchOrchestrator(geocoder, batch_size=5, on_progress=updates.append)

    report = orchestrator.run(people)

    assert len(report.succeeded) == 4
    assert len(report.failed) == 1
    assert report.failed[0].name == "Carol"
    assert report.failures[0].status is GeocodeStatus.NOT_FOUND
    assert report.processed_count == 5
    assert report.progress == 100
    assert updates[-1].percent == 100


def test_progress_emitted_per_group(people):
    updates = []
    orchestrator = BatchOrchestrator(StubGeocoder(), batch_size=2, on_progress=updates.append)

    orchestrator.run(people)

    assert [u.percent for u in updates] == [40, 80, 100]
    assert [u.processed for u in updates] == [2, 4, 5]


def test_progress_rounds_half_up():
    updates = []
    records = [r for r in _records(8)]
    orchestrator = BatchOrchestrator(StubGeocoder(), batch_size=1, on_progress=updates.append)

    orchestrator.run(records)

    percents = [u.percent for u in updates]
    assert percents == sorted(percents)
    # 1/8 = 12.5%
    assert percents[0] == 13
    assert percents[-1] == 100


def test_no_valid_records_fails_before_any_call():
    geocoder = StubGeocoder()

    with pytest.raises(NoValidRecords) as excinfo:
        BatchOrchestrator(geocoder).run([], total_rows=3, invalid_count=3)

    assert geocoder.queries == []
    assert excinfo.value.invalid_count == 3


def test_results_keep_input_order(people):
    report = BatchOrchestrator(StubGeocoder()).run(people)

    assert [r.city for r in report.succeeded] == [p.city for p in people]
    assert report.succeeded[3].display_name == "Unknown"


def test_queries_built_from_records(people):
    geocoder = StubGeocoder()

    BatchOrchestrator(geocoder).run(people[:1])

    assert geocoder.queries[0].to_text() == "1 Main St, London, UK"


def test_fallback_to_origin(people):
    geocoder = StubGeocoder(by_city={"Paris": Timeout("slow")})

    report = BatchOrchestrator(geocoder, fallback_to_origin=True).run(people)

    assert report.failed == ()
    assert len(report.succeeded) == 5
    paris = report.succeeded[1]
    assert paris.coordinates == ORIGIN
    assert paris.status is GeocodeStatus.FALLBACK
    assert report.fallback_count == 1


def test_counts_carry_through(people):
    report = BatchOrchestrator(StubGeocoder()).run(people, total_rows=7, invalid_count=2)

    assert report.total_rows == 7
    assert report.valid_count == 5
    assert report.invalid_count == 2


def test_cancel_current_times_out_only_the_active_record(people):
    clock = FakeClock()
    holder = {}

    def cancel_first(text):
        if text.startswith("1 Main St"):
            holder["orchestrator"].cancel_current()

    provider = StubProvider([Timeout("slow"), Coordinates(1.0, 2.0)], on_search=cancel_first)
    client = GeocodeClient(provider, NoOpRateLimiter(), clock=clock)
    orchestrator = BatchOrchestrator(client)
    holder["orchestrator"] = orchestrator

    report = orchestrator.run(people[:2])

    assert [f.status for f in report.failures] == [GeocodeStatus.TIMEOUT]
    assert report.failed[0].name == "Alice"
    assert [r.name for r in report.succeeded] == ["Bob"]
    assert len(provider.calls) == 2


def test_invalid_batch_size():
    with pytest.raises(ValueError):
        BatchOrchestrator(StubGeocoder(), batch_size=0)


def _records(n):
    from batch_geocoding.geocoding.models import CandidateRecord

    for i in range(n):
        yield CandidateRecord(name=f"P{i}", city=f"City{i}", country="UK")


def test_cancel_while_call_succeeds_reports_timeout(people):
    holder = {}

    def cancel_first(text):
        if text.startswith("1 Main St"):
            holder["orchestrator"].cancel_current()

    provider = StubProvider([Coordinates(1.0, 2.0)], on_search=cancel_first)
    orchestrator = BatchOrchestrator(GeocodeClient(provider, NoOpRateLimiter(), clock=FakeClock()))
    holder["orchestrator"] = orchestrator

    report = orchestrator.run(people[:2])

    assert [f.record.name for f in report.failures] == ["Alice"]
    assert report.failures[0].status is GeocodeStatus.TIMEOUT
    assert [r.name for r in report.succeeded] == ["Bob"]


def test_cancel_between_records_does_not_hit_next_record(people):
    geocoder = StubGeocoder()
    orchestrator = BatchOrchestrator(geocoder)
    orchestrator.cancel_current()

    report = orchestrator.run(people[:2])

    assert report.failures == ()
    assert len(report.succeeded) == 2
