from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from ledger.core.money import Money
from ledger.schemas.money import MoneyAmount


class CustomerCreate(BaseModel):
    external_id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    opening_balance: MoneyAmount = Field(default_factory=Money.zero)


class CustomerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    opening_balance: MoneyAmount | None = None


class CustomerResponse(BaseModel):
    id: UUID
    external_id: str
    name: str
    email: str | None
    phone: str | None
    opening_balance: MoneyAmount
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
