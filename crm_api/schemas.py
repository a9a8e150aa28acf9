from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class UserCreate(BaseModel):
    """Payload for creating a new user.

    Field rules live in :mod:`crm_api.validation`; this schema only fixes
    the shape of the body.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    passwordConfirm: Optional[str] = None
    status: Optional[str] = None
    role: Optional[str] = None


class UserUpdate(BaseModel):
    """Partial user update (only supplied fields change).

    Role and status are not updatable here; unknown keys are ignored.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    oldPassword: Optional[str] = None
    password: Optional[str] = None
    passwordConfirm: Optional[str] = None


class UserOut(BaseModel):
    """Response schema for user data. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    status: str
    role: str
    created_at: datetime
    updated_at: datetime


class RecordCreate(BaseModel):
    """Shared body for creating customers and contacts."""

    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None


class RecordUpdate(BaseModel):
    """Shared partial-update body for customers and contacts."""

    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None


class ContactSummary(BaseModel):
    """Contact as embedded in a customer."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    status: str


class CustomerSummary(BaseModel):
    """Customer as embedded in a contact."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    status: str


class CustomerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    status: str
    created_at: datetime
    updated_at: datetime
    contacts: List[ContactSummary] = []


class ContactOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    status: str
    customer_id: int
    created_at: datetime
    updated_at: datetime
    customer: Optional[CustomerSummary] = None


class Pagination(BaseModel):
    """Pagination metadata returned by list endpoints."""

    total: int
    page: int
    limit: int
    totalPages: int


class PageOut(BaseModel, Generic[T]):
    data: List[T]
    pagination: Pagination


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class Token(BaseModel):
    """Session token response schema."""

    token: str
    token_type: str = Field(default="bearer")
