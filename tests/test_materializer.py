import uuid
from datetime import date, datetime
from types import SimpleNamespace

from app.domain.scheduling.materializer import (
    CREATED,
    EXISTING,
    JobMaterializer,
    build_job,
)
from app.models_route import Job

TODAY = date(2024, 1, 1)  # Monday


def job_dates(db, subscription):
    return sorted(
        j.scheduled_date for j in db.query(Job).filter(Job.subscription_id == subscription.id)
    )


def test_weekly_subscription_gets_a_job_every_service_day(db, factory, org):
    sub = factory.subscription(org, frequency="WEEKLY")

    result = JobMaterializer(db).run(6, today=TODAY)

    assert result.created == 6
    assert result.subscriptions_processed == 1
    assert date(2024, 1, 7) not in job_dates(db, sub)


def test_second_run_creates_nothing_new(db, factory, org):
    factory.subscription(org, frequency="WEEKLY", preferred_day="MONDAY")
    factory.subscription(org, frequency="BIWEEKLY")

    first = JobMaterializer(db).run(14, today=TODAY)
    count_after_first = db.query(Job).count()
    second = JobMaterializer(db).run(14, today=TODAY)

    assert first.created > 0
    assert second.created == 0
    assert second.existing == first.created
    assert db.query(Job).count() == count_after_first


def test_horizon_is_inclusive(db, factory, org):
    sub = factory.subscription(org, frequency="WEEKLY", preferred_day="MONDAY")

    JobMaterializer(db).run(7, today=TODAY)

    assert job_dates(db, sub) == [date(2024, 1, 1), date(2024, 1, 8)]


def test_job_snapshots_price_and_generation_tag(db, factory, org):
    sub = factory.subscription(org, frequency="WEEKLY", preferred_day="MONDAY", price=3150)

    JobMaterializer(db).run(0, today=TODAY)

    job = db.query(Job).filter(Job.subscription_id == sub.id).one()
    assert job.status == "SCHEDULED"
    assert job.price_cents == 3150
    assert job.client_id == sub.client_id
    assert job.location_id == sub.location_id
    assert job.job_metadata["generated_by"] == "cron"
    assert job.job_metadata["frequency"] == "WEEKLY"
    assert job.route_id is None
    assert job.route_order is None


def test_inactive_client_is_skipped(db, factory, org):
    client = factory.client(org, status="PAUSED")
    factory.subscription(org, client=client)

    result = JobMaterializer(db).run(6, today=TODAY)

    assert result.skipped == 1
    assert result.created == 0
    assert db.query(Job).count() == 0


def test_inactive_location_is_skipped(db, factory, org):
    client = factory.client(org)
    location = factory.location(client, is_active=False)
    factory.subscription(org, client=client, location=location)

    result = JobMaterializer(db).run(6, today=TODAY)

    assert result.skipped == 1
    assert db.query(Job).count() == 0


def test_paused_subscriptions_are_not_loaded(db, factory, org):
    factory.subscription(org, status="PAUSED")

    result = JobMaterializer(db).run(6, today=TODAY)

    assert result.subscriptions_processed == 0
    assert db.query(Job).count() == 0


def test_org_filter_limits_the_run(db, factory, org):
    other_org = factory.org()
    factory.subscription(org, preferred_day="MONDAY")
    factory.subscription(other_org, preferred_day="MONDAY")

    result = JobMaterializer(db).run(6, today=TODAY, org_id=org.id)

    assert result.subscriptions_processed == 1
    assert db.query(Job).filter(Job.org_id == other_org.id).count() == 0


def test_onetime_subscription_gets_exactly_one_job(db, factory, org):
    sub = factory.subscription(
        org, frequency="ONETIME", next_service_date=date(2024, 2, 20)
    )

    first = JobMaterializer(db).run(6, today=TODAY)
    second = JobMaterializer(db).run(6, today=TODAY)

    assert first.created == 1
    assert second.created == 0
    assert second.existing == 1
    assert job_dates(db, sub) == [date(2024, 2, 20)]
    job = db.query(Job).filter(Job.subscription_id == sub.id).one()
    assert job.job_metadata["frequency"] == "ONETIME"


def test_insert_conflict_reports_existing(db, factory, org):
    sub = factory.subscription(org)
    materializer = JobMaterializer(db)

    assert materializer.insert_job(build_job(sub, TODAY)) == CREATED
    assert materializer.insert_job(build_job(sub, TODAY)) == EXISTING
    assert db.query(Job).count() == 1


def test_failing_subscription_does_not_stop_the_run(db, factory, org):
    good = factory.subscription(org, preferred_day="MONDAY")
    # client_id missing, so the insert violates NOT NULL
    broken = SimpleNamespace(
        id=str(uuid.uuid4()),
        org_id=org.id,
        client_id=None,
        location_id=good.location_id,
        status="ACTIVE",
        frequency="WEEKLY",
        preferred_day="MONDAY",
        created_at=datetime(2024, 1, 1),
        price_per_visit_cents=1000,
        client=SimpleNamespace(status="ACTIVE"),
        location=SimpleNamespace(is_active=True),
    )

    result = JobMaterializer(db).materialize([broken, good], 6, TODAY)

    assert result.errors == 1
    assert result.created == 1
    assert result.subscriptions_processed == 2
    assert job_dates(db, good) == [TODAY]
