import re
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ticketing.core.config import Settings
from ticketing.core.security import (
    create_access_token, decode_access_token, hash_password, verify_password
)
from ticketing.core.timeutils import now_local
from ticketing.domain.errors import (
    AuthError, ConflictError, NotFoundError, ValidationError
)
from ticketing.domain.models import User
from ticketing.domain.schemas import CallerIdentity, UserRole

logger = logging.getLogger("user_service")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$")


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.exec(select(User).where(User.email == email)).first()


def register_user(session: Session, name: str | None, email: str | None, password: str | None, role: str | None) -> User:
    if not name:
        raise ValidationError("Name is required.")
    if not email or not EMAIL_RE.match(email):
        raise ValidationError("Invalid email format.")
    if not password or not PASSWORD_RE.match(password):
        raise ValidationError(
            "Password must be at least 8 characters long and contain a lowercase letter, "
            "an uppercase letter, a digit and one of @$!%*?&."
        )
    if role not in {r.value for r in UserRole}:
        raise ValidationError("Invalid user role.")

    if get_user_by_email(session, email):
        raise ConflictError("Email already exists.")

    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    session.add(user)
    try:
        session.commit()
    except IntegrityError as e:
        # lost the race against a concurrent registration
        session.rollback()
        raise ConflictError("Email already exists.") from e
    session.refresh(user)

    logger.info("registered user_id=%s role=%s", user.id, user.role)
    return user


def _reusable_token(user: User, settings: Settings) -> str | None:
    if not user.jwt_token:
        return None
    try:
        claims = decode_access_token(user.jwt_token, settings)
    except AuthError:
        return None
    return user.jwt_token if claims["user_id"] == user.id else None


def login_user(session: Session, email: str | None, password: str | None, settings: Settings) -> str:
    if not email or not password:
        raise ValidationError("Email and password are required.")

    user = get_user_by_email(session, email)
    if user is None:
        raise NotFoundError("User not found.")

    if not user.active:
        raise ValidationError("Account has been deactivated. Kindly contact the administrator.")

    if not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials.")

    token = _reusable_token(user, settings) or create_access_token({"user_id": user.id}, settings)

    user.jwt_token = token
    user.last_login = now_local()
    session.add(user)
    session.commit()

    logger.info("login user_id=%s", user.id)
    return token


def resolve_token(token: str | None, settings: Settings) -> CallerIdentity:
    if not token:
        raise AuthError("Access token is required.")
    claims = decode_access_token(token, settings)
    return CallerIdentity(user_id=claims["user_id"])
