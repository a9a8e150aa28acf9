"""Contact management routes, always nested under their customer."""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from . import schemas
from .auth import require_user_id
from .crud import ContactRepository
from .database import get_db
from .filters import CONTACT_FIELDS, parse_path_id, require_list_filter
from .validation import RECORD_CREATE_RULES, RECORD_UPDATE_RULES, ensure_valid

router = APIRouter(
    prefix="/customers/{customer_id}/contacts",
    tags=["contacts"],
    dependencies=[Depends(require_user_id)],
)


def _serialize(contact) -> dict:
    return schemas.ContactOut.model_validate(contact).model_dump(mode="json")


@router.get("", response_model=schemas.PageOut[schemas.ContactOut])
def list_contacts(customer_id: str, request: Request, db: Session = Depends(get_db)):
    """
    Retrieve a page of the customer's contacts.

    Accepts the same filter, sort and pagination parameters as
    ``GET /customers``; results never include contacts of other customers.

    Raises:
        InvalidId: If ``customer_id`` is not an integer.
        NotFound: If the customer does not exist.
    """
    parent = parse_path_id(customer_id)
    list_filter = require_list_filter(request.query_params, CONTACT_FIELDS)
    return ContactRepository(db).list(parent, list_filter).to_dict(_serialize)


@router.get("/{contact_id}", response_model=schemas.ContactOut)
def get_contact(customer_id: str, contact_id: str, db: Session = Depends(get_db)):
    """
    Retrieve a single contact of the customer.

    A contact that exists under a different customer is reported as not
    found.
    """
    parent, pk = parse_path_id(customer_id), parse_path_id(contact_id)
    return ContactRepository(db).get(parent, pk)


@router.post("", response_model=schemas.ContactOut, status_code=status.HTTP_201_CREATED)
def create_contact(
    customer_id: str, payload: schemas.RecordCreate, db: Session = Depends(get_db)
):
    """
    Create a new contact owned by the customer.

    Args:
        customer_id (str): Owning customer identifier.
        payload (RecordCreate): Name, email and optional status.
        db (Session): Database session.

    Returns:
        ContactOut: Created contact.
    """
    parent = parse_path_id(customer_id)
    data = payload.model_dump(exclude_unset=True)
    ensure_valid(RECORD_CREATE_RULES, data)
    return ContactRepository(db).create(parent, data)


@router.put("/{contact_id}", response_model=schemas.ContactOut)
def update_contact(
    customer_id: str,
    contact_id: str,
    changes: schemas.RecordUpdate,
    db: Session = Depends(get_db),
):
    """Partially update a contact of the customer."""
    parent, pk = parse_path_id(customer_id), parse_path_id(contact_id)
    data = changes.model_dump(exclude_unset=True)
    ensure_valid(RECORD_UPDATE_RULES, data)
    return ContactRepository(db).update(parent, pk, data)


@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_contact(customer_id: str, contact_id: str, db: Session = Depends(get_db)):
    parent, pk = parse_path_id(customer_id), parse_path_id(contact_id)
    ContactRepository(db).delete(parent, pk)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
