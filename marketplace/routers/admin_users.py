from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.db import get_db
from marketplace.middleware.rbac import Identity, get_settings, require_admin
from marketplace.schemas import UserMessage, UserOut
from marketplace.services import accounts
from marketplace.utils.enums import UserRole

router = APIRouter(prefix="/admin/users", tags=["admin-users"])


# list of users, newest first
@router.get("", response_model=List[UserOut])
def list_users(admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    return accounts.list_users(db)


@router.put("/{user_id}/grant-admin", response_model=UserMessage)
def grant_admin(user_id: int, admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    user = accounts.grant_role(db, user_id, UserRole.ADMIN)
    return {"message": "Admin rights granted", "user": user}


@router.put("/{user_id}/ban", response_model=UserMessage)
def ban_user(user_id: int, admin: Identity = Depends(require_admin), db: Session = Depends(get_db)):
    user = accounts.ban(db, user_id)
    return {"message": "User banned successfully", "user": user}


@router.delete("/{user_id}", response_model=UserMessage)
def delete_user(
    user_id: int,
    admin: Identity = Depends(require_admin),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = accounts.get_user(db, user_id)
    out = UserOut.model_validate(user)
    accounts.delete_user(db, settings, user)
    return {"message": "User deleted successfully", "user": out}
