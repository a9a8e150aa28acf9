"""Password hashing and session token helpers."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from .core import get_settings
from .errors import InvalidToken

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().PASSWORD_HASH_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Compare a plain password with its hashed value.

    Malformed, empty or unrecognised hashes never raise; they simply do
    not match.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def get_password_hash(password: str) -> str:
    """Generate a salted bcrypt hash using the configured context."""
    return pwd_context.hash(password)


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Create a signed JWT whose only application claim is the user id."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {"id": user_id, "iat": now, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int:
    """Verify ``token`` and return the user id it carries.

    Raises:
        InvalidToken: If the signature is wrong, the token expired, it is
            malformed, or it carries no integer ``id`` claim.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise InvalidToken()

    user_id = payload.get("id")
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise InvalidToken()
    return user_id
