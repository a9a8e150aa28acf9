"""Authentication routes and the token dependency guarding protected routes."""

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from sqlalchemy.orm import Session

from . import schemas
from .crud import UserRepository
from .database import get_db
from .errors import MissingToken
from .security import create_access_token, decode_access_token
from .validation import LOGIN_RULES, ensure_valid

bearer_scheme = HTTPBearer(auto_error=False)
router = APIRouter(tags=["auth"])


def require_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> int:
    """Dependency that admits only requests carrying a valid Bearer token.

    The decoded user id is stored on ``request.state.user_id`` and returned.

    Raises:
        MissingToken: No ``Authorization`` header, or not a Bearer scheme.
        InvalidToken: Bad signature, expired or malformed token.
    """
    if credentials is None or not credentials.credentials:
        raise MissingToken()
    user_id = decode_access_token(credentials.credentials)
    request.state.user_id = user_id
    return user_id


@router.post("/login", response_model=schemas.Token)
def login(payload: schemas.LoginRequest, db: Session = Depends(get_db)):
    """Authenticate with email and password and return a session token."""

    data = payload.model_dump(exclude_unset=True)
    ensure_valid(LOGIN_RULES, data)

    user = UserRepository(db).authenticate(data["email"], data["password"])
    logger.info("User id={} logged in", user.id)
    return schemas.Token(token=create_access_token(user.id))
