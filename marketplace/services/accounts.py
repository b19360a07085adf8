import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.errors import (
    DuplicateCredential,
    Forbidden,
    InvalidCredential,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)
from marketplace.models.user import User
from marketplace.services import uploads
from marketplace.utils.enums import UserRole
from marketplace.utils.security import hash_password, verify_password
from marketplace.utils.tokens import REFRESH, TokenError, create_access_token, create_refresh_token, decode_token

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    access_token: str
    refresh_token: str
    user: User


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _ensure_unique(db: Session, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
    conditions = []
    if username:
        conditions.append(User.username == username)
    if email:
        conditions.append(User.email == email)
    if not conditions:
        return
    q = db.query(User).filter(or_(*conditions))
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first() is not None:
        raise DuplicateCredential("User already exists")


def _commit_unique(db: Session) -> None:
    # the unique indexes still decide when two requests race past _ensure_unique
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise DuplicateCredential("User already exists") from e


def register(db: Session, username: str, email: str, phone: str, password: str) -> User:
    username = (username or "").strip()
    email = (email or "").strip().lower()
    phone = (phone or "").strip()
    if not username or not email or not phone or not password:
        raise ValidationFailed("username, email, phone and password are required")

    _ensure_unique(db, username, email)

    user = User(
        username=username,
        email=email,
        phone=phone,
        password_hash=hash_password(password),
        role=UserRole.SELLER.value,
    )
    db.add(user)
    _commit_unique(db)
    db.refresh(user)
    logger.info("registered user %s (%s)", user.id, user.username)
    return user


def login(db: Session, settings: Settings, identifier: str, password: str) -> LoginResult:
    """Accepts an email or a username as the identifier."""
    identifier = (identifier or "").strip()
    if not identifier or not password:
        raise ValidationFailed("Email and password are required")

    user = (
        db.query(User)
        .filter(or_(User.email == identifier.lower(), User.username == identifier))
        .first()
    )
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("failed login for %s", identifier)
        raise InvalidCredential()
    if user.is_banned:
        logger.warning("banned user %s tried to log in", user.id)
        raise Forbidden("Account is banned.")

    logger.info("login successful for user %s", user.id)
    return LoginResult(
        access_token=create_access_token(settings, user.id, user.role),
        refresh_token=create_refresh_token(settings, user.id, user.role, user.token_version),
        user=user,
    )


def refresh(db: Session, settings: Settings, refresh_token: str) -> str:
    if not refresh_token:
        raise Unauthenticated("Refresh token is required.")
    try:
        claims = decode_token(settings, refresh_token, expected_type=REFRESH)
    except TokenError as e:
        logger.debug("rejected refresh token: %s", e)
        raise Unauthenticated("Invalid refresh token.") from e

    user = db.get(User, claims["sub"])
    if user is None:
        raise Unauthenticated("Invalid refresh token.")
    if claims.get("ver") != user.token_version:
        logger.debug("revoked refresh token for user %s", user.id)
        raise Unauthenticated("Invalid refresh token.")
    if user.is_banned:
        raise Forbidden("Account is banned.")
    return create_access_token(settings, user.id, user.role)


def logout(db: Session, user_id: int) -> None:
    """Revoke every refresh token issued to the user so far."""
    user = get_user(db, user_id)
    user.token_version = (user.token_version or 0) + 1
    db.commit()
    logger.info("user %s logged out", user.id)


def update_profile(
    db: Session,
    user_id: int,
    username: Optional[str] = None,
    phone: Optional[str] = None,
    password: Optional[str] = None,
) -> User:
    user = get_user(db, user_id)

    if username is not None:
        username = username.strip()
        if not username:
            raise ValidationFailed("username must not be empty")
        _ensure_unique(db, username, None, exclude_id=user.id)
        user.username = username
    if phone is not None:
        phone = phone.strip()
        if not phone:
            raise ValidationFailed("phone must not be empty")
        user.phone = phone
    if password:
        user.password_hash = hash_password(password)

    _commit_unique(db)
    db.refresh(user)
    logger.info("user %s updated profile", user.id)
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def grant_role(db: Session, user_id: int, role: UserRole) -> User:
    user = get_user(db, user_id)
    user.role = UserRole(role).value
    db.commit()
    db.refresh(user)
    logger.info("user %s granted role %s", user.id, user.role)
    return user


def ban(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    user.is_banned = True
    db.commit()
    db.refresh(user)
    logger.info("user %s banned", user.id)
    return user


def delete_user(db: Session, settings: Settings, user: User) -> None:
    """Delete a user together with their products."""
    user_id = user.id
    images = [p.image for p in user.products]
    db.delete(user)
    db.commit()
    for image in images:
        uploads.remove_image(image, settings)
    logger.info("user %s deleted with %d products", user_id, len(images))
