"""Repositories for users, customers and contacts.

This module contains database interaction logic, isolated from FastAPI
route handlers. Each repository is constructed with the session it works
in and translates :class:`~crm_api.filters.ListFilter` objects into SQL.
"""

import math
from dataclasses import dataclass
from typing import Any, Generic, Mapping, Sequence, TypeVar

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, defer, selectinload, undefer

from . import models
from .errors import (
    DuplicateEmail,
    InvalidCredentials,
    NotFound,
    OldPasswordIncorrect,
    OldPasswordRequired,
)
from .filters import ListFilter
from .security import get_password_hash, verify_password

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results plus the total matching row count."""

    items: Sequence[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    def to_dict(self, serialize) -> dict:
        return {
            "data": [serialize(item) for item in self.items],
            "pagination": {
                "total": self.total,
                "page": self.page,
                "limit": self.limit,
                "totalPages": self.total_pages,
            },
        }


def filter_conditions(model, list_filter: ListFilter) -> list:
    """
    Build WHERE clauses for ``model`` from a list filter.

    Args:
        model: ORM class with name, email, status and timestamp columns.
        list_filter (ListFilter): Parsed query parameters.

    Returns:
        list: SQLAlchemy boolean expressions, AND-ed by the caller.
    """
    conditions = []
    if list_filter.name:
        conditions.append(model.name.ilike(f"%{list_filter.name}%"))
    if list_filter.email:
        conditions.append(model.email.ilike(f"%{list_filter.email}%"))
    if list_filter.statuses:
        conditions.append(model.status.in_(list_filter.statuses))

    for column, date_range in (
        (model.created_at, list_filter.created),
        (model.updated_at, list_filter.updated),
    ):
        if date_range.start is not None:
            conditions.append(column >= date_range.start)
        if date_range.end is not None:
            conditions.append(column <= date_range.end)
    return conditions


def sort_order(model, list_filter: ListFilter) -> list:
    """ORDER BY clauses in the order given, primary key last as tie-break."""
    order = []
    for key in list_filter.sort:
        column = getattr(model, key.field)
        order.append(column.desc() if key.descending else column.asc())
    order.append(model.id.asc())
    return order


def paginate(
    db: Session, model, list_filter: ListFilter, conditions: list, options=()
) -> Page:
    """
    Run the count and page queries for ``model``.

    Args:
        db (Session): Database session.
        model: ORM class being listed.
        list_filter (ListFilter): Supplies sort and limit/offset.
        conditions (list): WHERE clauses, including any scoping clause.
        options: Loader options for the page query.

    Returns:
        Page: Items of the requested page and the total row count.
    """
    total = db.scalar(select(func.count()).select_from(model).where(*conditions))
    stmt = (
        select(model)
        .where(*conditions)
        .options(*options)
        .order_by(*sort_order(model, list_filter))
        .limit(list_filter.limit)
        .offset(list_filter.offset)
    )
    items = db.scalars(stmt).all()
    return Page(items=items, total=total or 0, page=list_filter.page, limit=list_filter.limit)


class Repository:
    """Shared persistence helpers."""

    model: Any

    def __init__(self, db: Session):
        self.db = db

    def _email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        stmt = select(self.model.id).where(self.model.email == email)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        return self.db.execute(stmt).first() is not None

    def _commit(self, instance):
        """Commit, reporting a unique-email race as ``DuplicateEmail``."""
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if "email" in str(exc.orig).lower():
                raise DuplicateEmail()
            raise
        self.db.refresh(instance)
        return instance

    def _delete(self, instance) -> None:
        self.db.delete(instance)
        self.db.commit()
        logger.info("Deleted {} id={}", self.model.__tablename__, instance.id)


class UserRepository(Repository):
    """Users; the password hash never leaves this class."""

    model = models.User

    @staticmethod
    def _public():
        return defer(models.User.password_hash, raiseload=True)

    def list(self, list_filter: ListFilter) -> Page:
        return paginate(
            self.db,
            models.User,
            list_filter,
            filter_conditions(models.User, list_filter),
            options=(self._public(),),
        )

    def get(self, user_id: int) -> models.User:
        user = self.db.scalars(
            select(models.User)
            .where(models.User.id == user_id)
            .options(self._public())
        ).one_or_none()
        if user is None:
            raise NotFound("User not found")
        return user

    def _with_secret(self, *conditions) -> models.User | None:
        # populate_existing drops a raiseload left by an earlier public read
        return self.db.scalars(
            select(models.User)
            .where(*conditions)
            .options(undefer(models.User.password_hash))
            .execution_options(populate_existing=True)
        ).one_or_none()

    def get_by_email_with_secret(self, email: str) -> models.User | None:
        return self._with_secret(models.User.email == email)

    def _get_with_secret(self, user_id: int) -> models.User:
        user = self._with_secret(models.User.id == user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def authenticate(self, email: str, password: str) -> models.User:
        """
        Check login credentials.

        Raises:
            InvalidCredentials: Unknown email or wrong password alike.
        """
        user = self.get_by_email_with_secret(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Failed login attempt for {}", email)
            raise InvalidCredentials()
        return user

    def create(self, data: Mapping[str, Any]) -> models.User:
        """
        Create and persist a new user.

        Args:
            data (Mapping): Validated payload with a plaintext ``password``.

        Raises:
            DuplicateEmail: If a user with the same email already exists.

        Returns:
            User: Newly created user instance.
        """
        if self._email_taken(data["email"]):
            raise DuplicateEmail()

        user = models.User(
            name=data["name"],
            email=data["email"],
            password_hash=get_password_hash(data["password"]),
            status=data.get("status") or "ACTIVE",
            role=data.get("role") or "USER",
        )
        self.db.add(user)
        self._commit(user)
        logger.info("Created user id={}", user.id)
        return user

    def update(self, user_id: int, changes: Mapping[str, Any]) -> models.User:
        """
        Apply a partial update.

        Changing ``email`` or ``password`` requires ``oldPassword``; a name
        change does not. Role and status are never changed here.

        Raises:
            NotFound: If the user does not exist.
            OldPasswordRequired: Email/password change without ``oldPassword``.
            OldPasswordIncorrect: ``oldPassword`` does not match.
            DuplicateEmail: The new email belongs to another user.
        """
        user = self._get_with_secret(user_id)

        email = changes.get("email")
        password = changes.get("password")
        old_password = changes.get("oldPassword")

        if (email or password) and not old_password:
            raise OldPasswordRequired()
        if old_password and not verify_password(old_password, user.password_hash):
            raise OldPasswordIncorrect()
        if email and self._email_taken(email, exclude_id=user_id):
            raise DuplicateEmail("Email already used by another user")

        if changes.get("name"):
            user.name = changes["name"]
        if email:
            user.email = email
        if password:
            user.password_hash = get_password_hash(password)

        self._commit(user)
        return user

    def delete(self, user_id: int) -> None:
        self._delete(self._get_with_secret(user_id))


class CustomerRepository(Repository):
    model = models.Customer

    def list(self, list_filter: ListFilter) -> Page:
        return paginate(
            self.db,
            models.Customer,
            list_filter,
            filter_conditions(models.Customer, list_filter),
            options=(selectinload(models.Customer.contacts),),
        )

    def get(self, customer_id: int) -> models.Customer:
        customer = self.db.scalars(
            select(models.Customer)
            .where(models.Customer.id == customer_id)
            .options(selectinload(models.Customer.contacts))
        ).one_or_none()
        if customer is None:
            raise NotFound("Customer not found")
        return customer

    def exists(self, customer_id: int) -> bool:
        return (
            self.db.execute(
                select(models.Customer.id).where(models.Customer.id == customer_id)
            ).first()
            is not None
        )

    def create(self, data: Mapping[str, Any]) -> models.Customer:
        if self._email_taken(data["email"]):
            raise DuplicateEmail()
        customer = models.Customer(
            name=data["name"],
            email=data["email"],
            status=data.get("status") or "ACTIVE",
        )
        self.db.add(customer)
        self._commit(customer)
        logger.info("Created customer id={}", customer.id)
        return customer

    def update(self, customer_id: int, changes: Mapping[str, Any]) -> models.Customer:
        customer = self.get(customer_id)
        if changes.get("email") and self._email_taken(
            changes["email"], exclude_id=customer_id
        ):
            raise DuplicateEmail()
        for key, value in changes.items():
            setattr(customer, key, value)
        return self._commit(customer)

    def delete(self, customer_id: int) -> None:
        self._delete(self.get(customer_id))


class ContactRepository(Repository):
    """Contacts, always addressed through their owning customer."""

    model = models.Contact

    def _require_customer(self, customer_id: int) -> None:
        if not CustomerRepository(self.db).exists(customer_id):
            raise NotFound("Customer not found")

    def list(self, customer_id: int, list_filter: ListFilter) -> Page:
        self._require_customer(customer_id)
        conditions = [models.Contact.customer_id == customer_id]
        conditions.extend(filter_conditions(models.Contact, list_filter))
        return paginate(
            self.db,
            models.Contact,
            list_filter,
            conditions,
            options=(selectinload(models.Contact.customer),),
        )

    def get(self, customer_id: int, contact_id: int) -> models.Contact:
        """
        Retrieve a contact only if it belongs to ``customer_id``.

        Raises:
            NotFound: If the pair does not match, whether or not the
                contact exists under another customer.
        """
        contact = self.db.scalars(
            select(models.Contact)
            .where(
                models.Contact.id == contact_id,
                models.Contact.customer_id == customer_id,
            )
            .options(selectinload(models.Contact.customer))
        ).one_or_none()
        if contact is None:
            raise NotFound("Contact not found for this customer")
        return contact

    def create(self, customer_id: int, data: Mapping[str, Any]) -> models.Contact:
        self._require_customer(customer_id)
        if self._email_taken(data["email"]):
            raise DuplicateEmail()
        contact = models.Contact(
            name=data["name"],
            email=data["email"],
            status=data.get("status") or "ACTIVE",
            customer_id=customer_id,
        )
        self.db.add(contact)
        self._commit(contact)
        logger.info("Created contact id={} for customer id={}", contact.id, customer_id)
        return contact

    def update(
        self, customer_id: int, contact_id: int, changes: Mapping[str, Any]
    ) -> models.Contact:
        contact = self.get(customer_id, contact_id)
        if changes.get("email") and self._email_taken(
            changes["email"], exclude_id=contact_id
        ):
            raise DuplicateEmail()
        for key in ("name", "email", "status"):
            if key in changes:
                setattr(contact, key, changes[key])
        return self._commit(contact)

    def delete(self, customer_id: int, contact_id: int) -> None:
        self._delete(self.get(customer_id, contact_id))
