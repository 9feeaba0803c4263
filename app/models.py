import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


USER_ROLES = ("OWNER", "MANAGER", "OFFICE", "CREW_LEAD", "FIELD_TECH", "ACCOUNTANT", "CLIENT")
CLIENT_STATUSES = ("ACTIVE", "PAUSED", "CANCELED", "DELINQUENT")
SUBSCRIPTION_STATUSES = ("ACTIVE", "PAUSED", "CANCELED", "PAST_DUE")
FREQUENCIES = ("WEEKLY", "BIWEEKLY", "MONTHLY", "ONETIME")
WEEKDAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    timezone = Column(String(64), default="America/Los_Angeles", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="organization")


class User(Base):
    """Staff member (or portal client) authenticated through Firebase"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False)
    email = Column(String(255), index=True, nullable=False)
    role = Column(String(20), nullable=False)  # one of USER_ROLES
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization", back_populates="users")


class Client(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    # ACTIVE, PAUSED, CANCELED, DELINQUENT
    status = Column(String(20), default="ACTIVE", nullable=False, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    locations = relationship("Location", back_populates="client", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="client")


class Location(Base):
    """Service address; zip_code and address_line1 drive stop ordering"""

    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    address_line1 = Column(String(255), nullable=False)
    address_line2 = Column(String(255), nullable=True)
    city = Column(String(255), nullable=False)
    state = Column(String(2), default="CA", nullable=False)
    zip_code = Column(String(10), nullable=True, index=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    gate_code = Column(String(50), nullable=True)
    access_notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="locations")


class Subscription(Base):
    """Recurring service agreement between a client location and the organization"""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    org_id = Column(String(36), ForeignKey("organizations.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("clients.id"), nullable=False, index=True)
    location_id = Column(String(36), ForeignKey("locations.id"), nullable=False, index=True)
    # ACTIVE, PAUSED, CANCELED, PAST_DUE
    status = Column(String(20), default="ACTIVE", nullable=False, index=True)
    frequency = Column(String(20), nullable=False)  # WEEKLY, BIWEEKLY, MONTHLY, ONETIME
    preferred_day = Column(String(10), nullable=True)  # MONDAY..SUNDAY
    price_per_visit_cents = Column(Integer, nullable=False)
    next_service_date = Column(Date, nullable=True)  # ONETIME only
    canceled_at = Column(DateTime, nullable=True)
    cancel_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    # Anchor for biweekly / monthly phase math
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="subscriptions")
    location = relationship("Location")
    jobs = relationship("Job", back_populates="subscription")
