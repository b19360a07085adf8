from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from marketplace.utils.enums import ApprovalStatus, UserRole


# ---- users ----
class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=32)
    password: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: Optional[str] = None
    username: Optional[str] = None
    password: str

    @property
    def identifier(self) -> str:
        return self.email or self.username or ""


class RefreshRequest(BaseModel):
    refresh_token: str


class ProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=32)
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    phone: str
    role: UserRole
    is_banned: bool
    created_at: datetime


class LoginOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserOut


class AccessTokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


# ---- products ----
class SellerBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    phone: str


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: float
    description: str
    image: str
    image_url: str
    seller_id: int
    seller_contact: Optional[str] = None
    seller: Optional[SellerBrief] = None
    approval_status: ApprovalStatus
    created_at: datetime
    updated_at: datetime


class StatusOverride(BaseModel):
    approval_status: ApprovalStatus


class ProductMessage(BaseModel):
    message: str
    product: ProductOut


class MessageOut(BaseModel):
    message: str


class PurgeOut(BaseModel):
    message: str
    deleted: int


class UserMessage(BaseModel):
    message: str
    user: UserOut
