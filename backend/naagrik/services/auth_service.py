import logging
from typing import Optional
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Session
from naagrik.core.config import settings
from naagrik.core.errors import Unauthenticated, ValidationError, storage_guard
from naagrik.core.security import (
    Principal,
    create_principal_token,
    get_password_hash,
    pwd_context,
    require_authenticated,
    verify_password,
)
from naagrik.models.user import Role, User
from naagrik.schemas import AuthResponse, LoginRequest, RegisterRequest, UserProfile
from naagrik.services.read_model import assemble_profile

logger = logging.getLogger(__name__)

# Same message whether the email or the password was wrong
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"
EMAIL_TAKEN_MESSAGE = "Email already registered"


def _missing(value: Optional[str]) -> bool:
    return not isinstance(value, str) or not value.strip()


class AuthService:
    @staticmethod
    def register(db: Session, data: RegisterRequest) -> UserProfile:
        """Create a USER account with a bcrypt-hashed password"""
        if _missing(data.username) or _missing(data.email) or _missing(data.password):
            raise ValidationError("All fields are required")
        if len(data.password) < settings.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters")

        with storage_guard(db, "register"):
            # Explicit check gives a clear message; the unique constraint covers races
            existing_user = db.query(User).filter(User.email == data.email).first()
            if existing_user:
                raise ValidationError(EMAIL_TAKEN_MESSAGE)

            db_user = User(
                username=data.username.strip(),
                email=data.email,
                hashed_password=get_password_hash(data.password),
                role=Role.USER,
            )
            db.add(db_user)
            try:
                db.commit()
            except DBIntegrityError:
                db.rollback()
                raise ValidationError(EMAIL_TAKEN_MESSAGE)
            db.refresh(db_user)
            logger.info(f"Registered user {db_user.id}")
            return assemble_profile(db_user)

    @staticmethod
    def login(db: Session, data: LoginRequest) -> AuthResponse:
        if _missing(data.email) or _missing(data.password):
            raise ValidationError("All fields are required")

        with storage_guard(db, "login"):
            user = db.query(User).filter(User.email == data.email).first()

        if user is None:
            # Unknown emails cost the same bcrypt round as a wrong password
            pwd_context.dummy_verify()
        if not user or not verify_password(data.password, user.hashed_password):
            logger.warning("Failed login attempt")
            raise Unauthenticated(INVALID_CREDENTIALS_MESSAGE)

        token = create_principal_token(user.id, user.email, user.role)
        return AuthResponse(token=token, user=assemble_profile(user))

    @staticmethod
    def get_profile(db: Session, principal: Optional[Principal]) -> UserProfile:
        principal = require_authenticated(principal)
        with storage_guard(db, "load profile"):
            user = db.get(User, principal.user_id)
        if user is None:
            raise Unauthenticated("Could not validate credentials")
        return assemble_profile(user)


auth_service = AuthService()
