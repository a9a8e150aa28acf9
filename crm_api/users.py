"""User-related routes for the Customers API."""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from . import schemas
from .auth import require_user_id
from .crud import UserRepository
from .database import get_db
from .filters import USER_FIELDS, parse_path_id, require_list_filter
from .validation import USER_CREATE_RULES, USER_UPDATE_RULES, ensure_valid

router = APIRouter(prefix="/users", tags=["users"])


def _serialize(user) -> dict:
    return schemas.UserOut.model_validate(user).model_dump(mode="json")


@router.post(
    "", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED
)
def create_user(payload: schemas.UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user. This route is public.

    Args:
        payload (UserCreate): Name, email, password and its confirmation.
        db (Session): Database session.

    Raises:
        ValidationFailed: Listing every violated field rule.
        DuplicateEmail: If the email is already registered.

    Returns:
        UserOut: Created user, without any password field.
    """
    data = payload.model_dump(exclude_unset=True)
    ensure_valid(USER_CREATE_RULES, data)
    return UserRepository(db).create(data)


@router.get("", response_model=schemas.PageOut[schemas.UserOut])
def list_users(
    request: Request,
    db: Session = Depends(get_db),
    _: int = Depends(require_user_id),
):
    """
    List users with the shared name/email/status/date filters, sorting
    and pagination.
    """
    list_filter = require_list_filter(request.query_params, USER_FIELDS)
    return UserRepository(db).list(list_filter).to_dict(_serialize)


@router.get("/{user_id}", response_model=schemas.UserOut)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    _: int = Depends(require_user_id),
):
    return UserRepository(db).get(parse_path_id(user_id))


@router.put("/{user_id}", response_model=schemas.UserOut)
def update_user(
    user_id: str,
    changes: schemas.UserUpdate,
    db: Session = Depends(get_db),
    _: int = Depends(require_user_id),
):
    """
    Partially update a user.

    Changing ``email`` or ``password`` requires the current password in
    ``oldPassword``; a new ``password`` also needs ``passwordConfirm``.

    Raises:
        InvalidId: If ``user_id`` is not an integer.
        ValidationFailed: Listing every violated field rule.
        NotFound: If the user does not exist.
        OldPasswordRequired: Email or password change without ``oldPassword``.
        OldPasswordIncorrect: ``oldPassword`` does not match.
        DuplicateEmail: The new email belongs to another user.
    """
    pk = parse_path_id(user_id)
    data = changes.model_dump(exclude_unset=True)
    ensure_valid(USER_UPDATE_RULES, data)
    return UserRepository(db).update(pk, data)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    _: int = Depends(require_user_id),
):
    UserRepository(db).delete(parse_path_id(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
