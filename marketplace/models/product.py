from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db import Base
from marketplace.utils.enums import ApprovalStatus


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image: Mapped[str] = mapped_column(String(255), nullable=False)

    seller_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    # phone of the seller at creation time; reads prefer the live value
    seller_whatsapp: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    approval_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ApprovalStatus.PENDING.value,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    seller: Mapped["User"] = relationship("User", back_populates="products")

    @property
    def seller_contact(self) -> Optional[str]:
        if self.seller is not None and self.seller.phone:
            return self.seller.phone
        return self.seller_whatsapp

    @property
    def image_url(self) -> str:
        return f"/uploads/{self.image}"
