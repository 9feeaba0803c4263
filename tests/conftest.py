import os
from datetime import date, datetime

# Configure before the app modules read the environment
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("CRON_SECRET", "test-cron-secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.auth import get_optional_user  # noqa: E402
from app.config import Settings, get_settings  # noqa: E402
from app.database import Base, build_engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Client, Location, Organization, Subscription, User  # noqa: E402
from app.models_route import Job, Route  # noqa: E402

CRON_SECRET = "test-cron-secret"


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


class Factory:
    """Builds persisted rows with sensible defaults"""

    def __init__(self, db):
        self.db = db
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def org(self, name="Scoop Troop"):
        n = self._next()
        return self._save(Organization(name=f"{name} {n}", slug=f"org-{n}"))

    def user(self, org, role="OWNER", **kwargs):
        n = self._next()
        return self._save(
            User(
                org_id=org.id,
                firebase_uid=f"uid-{n}",
                email=f"user{n}@example.com",
                role=role,
                **kwargs,
            )
        )

    def client(self, org, status="ACTIVE", first_name="Pat", last_name=None):
        return self._save(
            Client(org_id=org.id, first_name=first_name, last_name=last_name, status=status)
        )

    def location(self, client, address="100 Elm St", zip_code="91710", is_active=True):
        return self._save(
            Location(
                org_id=client.org_id,
                client_id=client.id,
                address_line1=address,
                city="Chino",
                zip_code=zip_code,
                is_active=is_active,
            )
        )

    def subscription(
        self,
        org,
        client=None,
        location=None,
        frequency="WEEKLY",
        preferred_day=None,
        status="ACTIVE",
        created_at=datetime(2024, 1, 1, 9, 0),
        price=2500,
        next_service_date=None,
    ):
        client = client or self.client(org)
        location = location or self.location(client)
        return self._save(
            Subscription(
                org_id=org.id,
                client_id=client.id,
                location_id=location.id,
                frequency=frequency,
                preferred_day=preferred_day,
                status=status,
                created_at=created_at,
                price_per_visit_cents=price,
                next_service_date=next_service_date,
            )
        )

    def job(self, org, scheduled_date=date(2024, 1, 2), location=None, subscription=None, **kwargs):
        if location is None:
            location = self.location(self.client(org))
        return self._save(
            Job(
                org_id=org.id,
                client_id=location.client_id,
                location_id=location.id,
                subscription_id=subscription.id if subscription else None,
                scheduled_date=scheduled_date,
                price_cents=kwargs.pop("price_cents", 2500),
                job_metadata=kwargs.pop("job_metadata", {}),
                **kwargs,
            )
        )

    def route(self, org, route_date=date(2024, 1, 2), status="PLANNED", **kwargs):
        return self._save(Route(org_id=org.id, route_date=route_date, status=status, **kwargs))


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def org(factory):
    return factory.org()


class AuthState:
    def __init__(self):
        self.user = None


@pytest.fixture
def auth():
    return AuthState()


@pytest.fixture
def settings():
    return Settings(cron_secret=CRON_SECRET)


@pytest.fixture
def client(db, auth, settings):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_optional_user] = lambda: auth.user
    app.dependency_overrides[get_settings] = lambda: settings

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def owner(factory, org, auth):
    """Logged-in OWNER of ``org``"""
    user = factory.user(org, role="OWNER")
    auth.user = user
    return user
