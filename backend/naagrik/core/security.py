from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from naagrik.core.config import settings
from naagrik.core.errors import Forbidden, Unauthenticated
from naagrik.models.user import Role

# bcrypt generates a salt per hash and is slow on purpose
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Every Role member must appear here
ADMIN_ROLES = {Role.ADMIN: True, Role.USER: False}


@dataclass(frozen=True)
class Principal:
    """Verified identity attached to a request"""
    user_id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLES[self.role]


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token with expiration"""
    to_encode = data.copy()

    issued_at = datetime.now(timezone.utc)
    if expires_delta:
        expire = issued_at + expires_delta
    else:
        expire = issued_at + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "iat": issued_at})

    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token"""
    try:
        # Signature and expiration are checked by jose; "none" is never in algorithms
        payload = jwt.decode(token, settings.SECRET_KEY,
                             algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        return None


def create_principal_token(user_id: str, email: str, role: Role) -> str:
    """Issue the bearer credential handed out on login"""
    return create_access_token(
        data={"sub": user_id, "email": email, "role": role.value})


def principal_from_token(token: str | None) -> Optional[Principal]:
    """
    Build a principal from a bearer token.

    Fails closed: any token that does not verify or lacks a usable claim
    yields None, never a partial identity.
    """
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None:
        return None

    user_id = payload.get("sub")
    email = payload.get("email")
    if not isinstance(user_id, str) or not user_id or not isinstance(email, str):
        return None

    try:
        role = Role(payload.get("role"))
    except ValueError:
        return None

    return Principal(user_id=user_id, email=email, role=role)


def require_authenticated(principal: Optional[Principal]) -> Principal:
    """Return the principal or raise Unauthenticated for an anonymous caller"""
    if principal is None:
        raise Unauthenticated()
    return principal


def require_admin(principal: Optional[Principal]) -> Principal:
    """Return the principal if it holds the ADMIN role"""
    principal = require_authenticated(principal)
    if not ADMIN_ROLES[principal.role]:
        raise Forbidden()
    return principal
