"""Database models for the Customers API.

This module defines SQLAlchemy ORM models used by the application.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base

USER_STATUSES = ("ACTIVE", "INACTIVE")
USER_ROLES = ("USER", "ADMIN")
RECORD_STATUSES = ("ACTIVE", "ARCHIVED")


def utcnow() -> datetime:
    """Current time as naive UTC with microseconds."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """Creation and update timestamps.

    Stamped in Python with microseconds, matching how filter bounds are
    bound; the server default only covers raw inserts.
    """

    created_at = Column(
        DateTime, nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime,
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )


class User(TimestampMixin, Base):
    """
    SQLAlchemy model representing an application user.

    ``password_hash`` is written only by the user repository and is never
    part of a response schema.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    status = Column(
        Enum(*USER_STATUSES, name="user_status"), default="ACTIVE", nullable=False
    )
    role = Column(Enum(*USER_ROLES, name="user_role"), default="USER", nullable=False)


class Customer(TimestampMixin, Base):
    """
    SQLAlchemy model representing a customer.

    A customer owns zero or more contacts, which are deleted with it.
    """

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    status = Column(
        Enum(*RECORD_STATUSES, name="customer_status"),
        default="ACTIVE",
        nullable=False,
    )

    #: Contacts owned by the customer
    contacts = relationship(
        "Contact",
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Contact.id",
    )


class Contact(TimestampMixin, Base):
    """
    SQLAlchemy model representing a contact entry.

    Each contact belongs to exactly one customer. Emails are unique
    across all contacts, not per customer.
    """

    __tablename__ = "contacts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    status = Column(
        Enum(*RECORD_STATUSES, name="contact_status"),
        default="ACTIVE",
        nullable=False,
    )

    #: Identifier of the owning customer
    customer_id = Column(
        Integer,
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    #: Reference to the owning Customer object
    customer = relationship("Customer", back_populates="contacts")
