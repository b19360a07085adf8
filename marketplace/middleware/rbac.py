import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.db import get_db
from marketplace.errors import Forbidden, Unauthenticated
from marketplace.models.user import User
from marketplace.utils.enums import UserRole
from marketplace.utils.tokens import ACCESS, TokenError, decode_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def authenticate(db: Session, settings: Settings, token: Optional[str]) -> Identity:
    """Resolve a bearer token to the caller's identity.

    The token only names the user; role and ban state are read back from
    the users table so that a demoted or banned account loses its
    privileges before the token expires.
    """
    if not token:
        raise Unauthenticated("Access denied. No token provided.")

    try:
        claims = decode_token(settings, token, expected_type=ACCESS)
    except TokenError as e:
        logger.debug("rejected access token: %s", e)
        raise Unauthenticated("Invalid token.") from e

    user = db.get(User, claims["sub"])
    if user is None:
        raise Unauthenticated("Invalid token.")
    if user.is_banned:
        raise Forbidden("Account is banned.")

    if claims.get("role") != user.role:
        logger.info("role for user %s changed since token issue: %s -> %s",
                    user.id, claims.get("role"), user.role)
    return Identity(user_id=user.id, role=user.role)


def require_role(identity: Identity, role: UserRole) -> Identity:
    if identity.role != role.value:
        raise Forbidden(f"Access denied. {role.value.capitalize()}s only.")
    return identity


# ==== FastAPI dependencies ====
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Identity:
    token = credentials.credentials if credentials else None
    return authenticate(db, settings, token)


def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[Identity]:
    if credentials is None:
        return None
    return authenticate(db, settings, credentials.credentials)


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    return require_role(identity, UserRole.ADMIN)
