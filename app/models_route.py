"""
Job and Route Models for Daily Dispatch
"""

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .models import generate_uuid

JOB_STATUSES = ("SCHEDULED", "EN_ROUTE", "IN_PROGRESS", "COMPLETED", "SKIPPED", "CANCELED")
ROUTE_STATUSES = ("PLANNED", "IN_PROGRESS", "COMPLETED")


class Job(Base):
    """A single scheduled visit"""

    __tablename__ = "jobs"
    # One visit per subscription per day; the conflict doubles as the
    # idempotency signal for job generation
    __table_args__ = (
        UniqueConstraint("subscription_id", "scheduled_date", name="uq_jobs_subscription_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    subscription_id = Column(
        String(36), ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False, index=True)
    assigned_to = Column(String(36), ForeignKey("users.id"), nullable=True)

    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_time_start = Column(Time, nullable=True)
    scheduled_time_end = Column(Time, nullable=True)

    # Status workflow: SCHEDULED → EN_ROUTE → IN_PROGRESS → COMPLETED
    # with SKIPPED / CANCELED as side exits
    status = Column(String(20), default="SCHEDULED", nullable=False, index=True)
    skip_reason = Column(Text, nullable=True)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    duration_minutes = Column(Integer, nullable=True)

    price_cents = Column(Integer, nullable=False, default=0)  # Snapshot at generation time
    notes = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    job_metadata = Column("metadata", JSON, default=dict, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    subscription = relationship("Subscription", back_populates="jobs")
    client = relationship("Client")
    location = relationship("Location")
    route_stop = relationship("RouteStop", back_populates="job", uselist=False)

    # Route placement lives on the stop only; these are read-time views of it
    @property
    def route_id(self):
        return self.route_stop.route_id if self.route_stop else None

    @property
    def route_order(self):
        return self.route_stop.stop_order if self.route_stop else None


class Route(Base):
    """A crew's ordered list of stops for one calendar day"""

    __tablename__ = "routes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    assigned_to = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    route_date = Column(Date, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    # PLANNED → IN_PROGRESS → COMPLETED
    status = Column(String(20), default="PLANNED", nullable=False)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    assigned_user = relationship("User")
    stops = relationship(
        "RouteStop",
        back_populates="route",
        cascade="all, delete-orphan",
        order_by="RouteStop.stop_order",
    )


class RouteStop(Base):
    """Placement of a job on a route; stop_order is dense 1..N"""

    __tablename__ = "route_stops"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False)
    route_id = Column(
        String(36), ForeignKey("routes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id = Column(
        String(36), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    stop_order = Column(Integer, nullable=False)
    estimated_arrival = Column(Time, nullable=True)
    actual_arrival = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    route = relationship("Route", back_populates="stops")
    job = relationship("Job", back_populates="route_stop")
