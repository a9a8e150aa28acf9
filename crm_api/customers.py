"""Customer management routes for the Customers API."""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from . import schemas
from .auth import require_user_id
from .crud import CustomerRepository
from .database import get_db
from .filters import CUSTOMER_FIELDS, parse_path_id, require_list_filter
from .validation import RECORD_CREATE_RULES, RECORD_UPDATE_RULES, ensure_valid

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
    dependencies=[Depends(require_user_id)],
)


def _serialize(customer) -> dict:
    return schemas.CustomerOut.model_validate(customer).model_dump(mode="json")


@router.get("", response_model=schemas.PageOut[schemas.CustomerOut])
def list_customers(request: Request, db: Session = Depends(get_db)):
    """
    Retrieve a page of customers.

    Query parameters ``name``, ``email``, ``status``, ``createdAfter``,
    ``createdBefore``, ``updatedAfter``, ``updatedBefore``, ``sort``,
    ``page`` and ``limit`` are parsed by
    :func:`crm_api.filters.build_list_filter`.

    Returns:
        dict: ``data`` plus ``pagination`` (total, page, limit, totalPages).
    """
    list_filter = require_list_filter(request.query_params, CUSTOMER_FIELDS)
    return CustomerRepository(db).list(list_filter).to_dict(_serialize)


@router.get("/{customer_id}", response_model=schemas.CustomerOut)
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    """Retrieve one customer together with its contacts."""
    return CustomerRepository(db).get(parse_path_id(customer_id))


@router.post(
    "", response_model=schemas.CustomerOut, status_code=status.HTTP_201_CREATED
)
def create_customer(payload: schemas.RecordCreate, db: Session = Depends(get_db)):
    """
    Create a new customer.

    Args:
        payload (RecordCreate): Name, email and optional status.
        db (Session): Database session.

    Returns:
        CustomerOut: Created customer; status defaults to ``ACTIVE``.
    """
    data = payload.model_dump(exclude_unset=True)
    ensure_valid(RECORD_CREATE_RULES, data)
    return CustomerRepository(db).create(data)


@router.put("/{customer_id}", response_model=schemas.CustomerOut)
def update_customer(
    customer_id: str, changes: schemas.RecordUpdate, db: Session = Depends(get_db)
):
    """Partially update a customer; only supplied fields change."""
    pk = parse_path_id(customer_id)
    data = changes.model_dump(exclude_unset=True)
    ensure_valid(RECORD_UPDATE_RULES, data)
    return CustomerRepository(db).update(pk, data)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: str, db: Session = Depends(get_db)):
    """Delete a customer and, with it, all of its contacts."""
    CustomerRepository(db).delete(parse_path_id(customer_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
