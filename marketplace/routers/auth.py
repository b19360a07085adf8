from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.config import Settings
from marketplace.db import get_db
from marketplace.middleware.rbac import Identity, get_identity, get_settings
from marketplace.schemas import (
    AccessTokenOut,
    LoginOut,
    LoginRequest,
    MessageOut,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    UserMessage,
    UserOut,
)
from marketplace.services import accounts

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=201, response_model=UserMessage)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    user = accounts.register(db, body.username, body.email, body.phone, body.password)
    return {"message": "User registered successfully", "user": user}


@router.post("/login", response_model=LoginOut)
def login(
    body: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    result = accounts.login(db, settings, body.identifier, body.password)
    return {
        "access_token": result.access_token,
        "refresh_token": result.refresh_token,
        "user": result.user,
    }


@router.post("/refresh", response_model=AccessTokenOut)
def refresh(
    body: RefreshRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return {"access_token": accounts.refresh(db, settings, body.refresh_token)}


@router.post("/logout", response_model=MessageOut)
def logout(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    accounts.logout(db, identity.user_id)
    return {"message": "Logged out successfully"}


# ---- own profile ----
@router.get("/me", response_model=UserOut)
def me(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return accounts.get_user(db, identity.user_id)


@router.put("/me", response_model=UserMessage)
def update_me(
    body: ProfileUpdate,
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    user = accounts.update_profile(
        db, identity.user_id,
        username=body.username, phone=body.phone, password=body.password,
    )
    return {"message": "User updated successfully", "user": user}


@router.delete("/me", response_model=UserMessage)
def delete_me(
    identity: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    user = accounts.get_user(db, identity.user_id)
    out = UserOut.model_validate(user)
    accounts.delete_user(db, settings, user)
    return {"message": "User deleted successfully", "user": out}
